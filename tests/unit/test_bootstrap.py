from __future__ import annotations

import asyncio
import time
from typing import Any

import pytest
from google.api_core import exceptions as api_exceptions

from spanner_repro.bootstrap import (
    SpannerBootstrapper,
    _wait_done,
    create_database,
    database_exists,
    instance_exists,
    wait_for_operation,
)
from spanner_repro.domain.models import DatabaseConfig
from spanner_repro.emulator.facade import Emulator
from spanner_repro.errors import BootstrapError, EndpointError, OperationTimeoutError

DDL = ("CREATE TABLE t (id INT64) PRIMARY KEY (id)", "CREATE INDEX i ON t(id)")
SHORT_TIMEOUT = 0.1
NEVER = 10**9
STALL_SECONDS = 2.0


class _FakeOperation:
    def __init__(self, done_after: int = 0, error: Exception | None = None) -> None:
        self._done_after = done_after
        self._error = error
        self.polls = 0
        self.cancelled = False

    def done(self) -> bool:
        self.polls += 1
        return self.polls > self._done_after

    def result(self) -> str:
        if self._error is not None:
            raise self._error
        return "done"

    def cancel(self) -> bool:
        self.cancelled = True
        return True


class _FakeInstanceAdmin:
    def __init__(self, existing: bool = False, list_error: Exception | None = None) -> None:
        self.instances: list[str] = ["existing"] if existing else []
        self.list_error = list_error
        self.list_requests: list[Any] = []
        self.create_requests: list[Any] = []
        self.operation = _FakeOperation()

    def list_instances(self, request: Any) -> Any:
        self.list_requests.append(request)
        if self.list_error is not None:
            raise self.list_error
        return iter(list(self.instances))

    def create_instance(self, request: Any) -> _FakeOperation:
        self.create_requests.append(request)
        self.instances.append(request.instance_id)
        return self.operation


class _FakeDatabaseAdmin:
    def __init__(self, existing: bool = False) -> None:
        self.databases: set[str] = set()
        self.existing = existing
        self.get_error: Exception | None = None
        self.create_requests: list[Any] = []
        self.operation = _FakeOperation()

    def get_database(self, name: str) -> dict[str, str]:
        if self.get_error is not None:
            raise self.get_error
        if not self.existing and name not in self.databases:
            raise api_exceptions.NotFound(f"Database not found: {name}")
        return {"name": name}

    def create_database(self, request: Any) -> _FakeOperation:
        self.create_requests.append(request)
        self.databases.add(f"{request.parent}/databases/{request.create_statement.split('`')[1]}")
        return self.operation


class _RecordingEmulator:
    def __init__(self) -> None:
        self.events: list[str] = []

    def build(
        self, grpc_host: str = "localhost:9010", rest_host: str = "localhost:9020"
    ) -> Emulator:
        return Emulator(
            runner=lambda grpc, rest: self.events.append("run"),
            closer=lambda: self.events.append("close"),
            grpc_host=grpc_host,
            rest_host=rest_host,
        )


def _bootstrapper(
    emulator: Emulator,
    instance_admin: _FakeInstanceAdmin,
    database_admin: _FakeDatabaseAdmin,
    probe_answers: list[bool] | None = None,
    **kwargs: Any,
) -> SpannerBootstrapper:
    answers = iter(probe_answers if probe_answers is not None else [True])
    return SpannerBootstrapper(
        DatabaseConfig(ddl=DDL),
        emulator,
        probe=lambda endpoint, timeout: next(answers),
        instance_admin_factory=lambda endpoint: instance_admin,
        database_admin_factory=lambda endpoint: database_admin,
        **kwargs,
    )


def test_wait_for_operation_returns_result():
    operation = _FakeOperation(done_after=3)

    assert wait_for_operation(operation, timeout=1.0, poll_interval=0.001) == "done"
    assert operation.polls == 4


def test_wait_for_operation_times_out_instead_of_hanging():
    operation = _FakeOperation(done_after=NEVER)

    start = time.perf_counter()
    with pytest.raises(OperationTimeoutError, match="within 0.1s"):
        wait_for_operation(operation, timeout=SHORT_TIMEOUT, poll_interval=0.01)

    assert time.perf_counter() - start < 1.0
    assert operation.cancelled is True


class _StalledOperation(_FakeOperation):
    """`done()` blocks like a GetOperation call against an unresponsive server."""

    def __init__(self, stall: float) -> None:
        super().__init__(done_after=NEVER)
        self._stall = stall

    def done(self) -> bool:
        time.sleep(self._stall)
        return super().done()


def test_wait_for_operation_times_out_while_refresh_is_blocked():
    operation = _StalledOperation(stall=STALL_SECONDS)

    start = time.perf_counter()
    with pytest.raises(OperationTimeoutError):
        wait_for_operation(operation, timeout=SHORT_TIMEOUT, poll_interval=0.01)

    assert time.perf_counter() - start < STALL_SECONDS / 2
    assert operation.cancelled is True


def test_operation_timeout_is_a_timeout_error():
    with pytest.raises(TimeoutError):
        wait_for_operation(_FakeOperation(done_after=NEVER), timeout=0.01, poll_interval=0.001)


@pytest.mark.asyncio
async def test_poller_is_finished_when_the_bound_elapses():
    with pytest.raises(asyncio.TimeoutError):
        await _wait_done(_FakeOperation(done_after=NEVER), timeout=0.02, interval=0.001)

    assert asyncio.all_tasks() == {asyncio.current_task()}


def test_wait_for_operation_propagates_operation_error():
    operation = _FakeOperation(error=api_exceptions.InvalidArgument("bad DDL"))

    with pytest.raises(api_exceptions.InvalidArgument):
        wait_for_operation(operation, timeout=1.0)


def test_instance_exists_lists_with_name_filter():
    client = _FakeInstanceAdmin(existing=True)

    assert instance_exists(client, DatabaseConfig(project="p", instance="i")) is True
    request = client.list_requests[0]
    assert request.parent == "projects/p"
    assert request.page_size == 1
    assert request.filter == "name:i"


def test_instance_exists_matches_name_as_substring():
    client = _FakeInstanceAdmin()
    client.instances = ["projects/p/instances/test-instance-2"]
    client.list_instances = lambda request: iter(
        name for name in client.instances if request.filter[len("name:"):] in name
    )

    assert instance_exists(client, DatabaseConfig(project="p", instance="test-instance")) is True
    assert instance_exists(client, DatabaseConfig(project="p", instance="other")) is False


def test_instance_exists_false_on_empty_listing():
    assert instance_exists(_FakeInstanceAdmin(), DatabaseConfig()) is False


def test_database_exists_treats_not_found_as_absent():
    assert database_exists(_FakeDatabaseAdmin(), DatabaseConfig()) is False
    assert database_exists(_FakeDatabaseAdmin(existing=True), DatabaseConfig()) is True


def test_database_exists_propagates_other_errors():
    client = _FakeDatabaseAdmin()
    client.get_error = api_exceptions.PermissionDenied("nope")

    with pytest.raises(api_exceptions.PermissionDenied):
        database_exists(client, DatabaseConfig())


def test_create_database_sends_ddl_as_extra_statements():
    client = _FakeDatabaseAdmin()

    create_database(client, DatabaseConfig(database="db1", ddl=DDL), timeout=1.0)

    request = client.create_requests[0]
    assert request.parent == "projects/test-project/instances/test-instance"
    assert request.create_statement == "CREATE DATABASE `db1`"
    assert list(request.extra_statements) == list(DDL)


def test_create_database_wraps_statement_errors():
    client = _FakeDatabaseAdmin()
    client.operation = _FakeOperation(error=api_exceptions.InvalidArgument("syntax error"))

    with pytest.raises(BootstrapError, match="Error running extra database statements"):
        create_database(client, DatabaseConfig(ddl=DDL), timeout=1.0)


def test_run_creates_missing_instance_and_database():
    recorder = _RecordingEmulator()
    instance_admin = _FakeInstanceAdmin()
    database_admin = _FakeDatabaseAdmin()
    boot = _bootstrapper(recorder.build(), instance_admin, database_admin)

    endpoint = boot.run()

    assert endpoint == "localhost:9010"
    assert len(instance_admin.create_requests) == 1
    created = instance_admin.create_requests[0]
    assert created.instance_id == "test-instance"
    assert created.instance.node_count == 1
    assert created.instance.display_name == "Test Instance"
    assert len(database_admin.create_requests) == 1
    assert recorder.events == []  # emulator already reachable


def test_run_twice_is_idempotent():
    recorder = _RecordingEmulator()
    instance_admin = _FakeInstanceAdmin()
    database_admin = _FakeDatabaseAdmin()

    _bootstrapper(recorder.build(), instance_admin, database_admin).run()
    _bootstrapper(recorder.build(), instance_admin, database_admin).run()

    assert len(instance_admin.create_requests) == 1
    assert len(database_admin.create_requests) == 1
    assert len(instance_admin.list_requests) == 2


def test_run_starts_emulator_when_unreachable():
    recorder = _RecordingEmulator()
    boot = _bootstrapper(
        recorder.build(),
        _FakeInstanceAdmin(existing=True),
        _FakeDatabaseAdmin(existing=True),
        probe_answers=[False, True],
    )

    boot.run()

    assert recorder.events == ["run"]


def test_run_prefers_grpc_then_rest_endpoint():
    recorder = _RecordingEmulator()
    boot = _bootstrapper(
        recorder.build(grpc_host="", rest_host="localhost:9020"),
        _FakeInstanceAdmin(existing=True),
        _FakeDatabaseAdmin(existing=True),
    )

    assert boot.run() == "localhost:9020"


def test_run_without_endpoints_fails_before_side_effects():
    recorder = _RecordingEmulator()
    instance_admin = _FakeInstanceAdmin()
    boot = _bootstrapper(
        recorder.build(grpc_host="", rest_host=""), instance_admin, _FakeDatabaseAdmin()
    )

    with pytest.raises(EndpointError):
        boot.run()

    assert recorder.events == []
    assert instance_admin.list_requests == []


def test_run_propagates_listing_errors():
    instance_admin = _FakeInstanceAdmin(list_error=api_exceptions.ServiceUnavailable("down"))
    database_admin = _FakeDatabaseAdmin()
    boot = _bootstrapper(_RecordingEmulator().build(), instance_admin, database_admin)

    with pytest.raises(api_exceptions.ServiceUnavailable):
        boot.run()

    assert database_admin.create_requests == []


def test_run_surfaces_instance_creation_timeout():
    instance_admin = _FakeInstanceAdmin()
    instance_admin.operation = _FakeOperation(done_after=NEVER)
    database_admin = _FakeDatabaseAdmin()
    boot = _bootstrapper(
        _RecordingEmulator().build(),
        instance_admin,
        database_admin,
        operation_timeout=SHORT_TIMEOUT,
    )

    with pytest.raises(OperationTimeoutError, match="create instance"):
        boot.run()

    assert database_admin.create_requests == []


def test_context_manager_closes_emulator():
    recorder = _RecordingEmulator()
    boot = _bootstrapper(recorder.build(), _FakeInstanceAdmin(), _FakeDatabaseAdmin())

    with boot:
        assert recorder.events == []

    assert recorder.events == ["close"]


def test_context_manager_closes_emulator_when_bootstrap_fails():
    recorder = _RecordingEmulator()
    instance_admin = _FakeInstanceAdmin(list_error=api_exceptions.ServiceUnavailable("down"))
    boot = _bootstrapper(recorder.build(), instance_admin, _FakeDatabaseAdmin())

    with pytest.raises(api_exceptions.ServiceUnavailable):
        with boot:
            pass

    assert recorder.events == ["close"]


def test_close_is_best_effort():
    def closer() -> None:
        raise RuntimeError("already gone")

    boot = _bootstrapper(
        Emulator(runner=lambda grpc, rest: None, closer=closer),
        _FakeInstanceAdmin(),
        _FakeDatabaseAdmin(),
    )

    boot.close()
