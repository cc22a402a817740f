"""
Instance/database bootstrapper for the Spanner emulator.

Brings the emulator up (unless something already listens on its endpoint),
then makes sure the configured instance and database exist, creating them when
absent. Creation goes through long-running admin operations whose completion
is awaited with a short, fixed bound.

Usage:
    from spanner_repro.bootstrap import SpannerBootstrapper
    from spanner_repro.emulator import default_emulator

    with SpannerBootstrapper(db_config, default_emulator()) as boot:
        database = open_database(db_config, boot.endpoint)
        ...

There is no partial-success recovery: if the database cannot be created, the
instance created a moment earlier stays in place.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional

from google.api_core import exceptions as api_exceptions
from google.cloud.spanner_admin_database_v1 import CreateDatabaseRequest, DatabaseAdminClient
from google.cloud.spanner_admin_instance_v1 import (
    CreateInstanceRequest,
    Instance,
    InstanceAdminClient,
    ListInstancesRequest,
)

from spanner_repro.domain.models import DatabaseConfig
from spanner_repro.emulator.endpoints import is_reachable, wait_until_reachable
from spanner_repro.emulator.facade import Emulator
from spanner_repro.errors import BootstrapError, EndpointError, OperationTimeoutError
from spanner_repro.infrastructure.clients import database_admin_client, instance_admin_client
from spanner_repro.utils.logging import get_logger

log = get_logger(__name__)

# Tuned for the local emulator; a real instance can take far longer to create.
DEFAULT_OPERATION_TIMEOUT = 2.0
DEFAULT_READY_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 0.05

EMULATOR_INSTANCE_CONFIG = "emulator-config"
INSTANCE_NODE_COUNT = 1
INSTANCE_DISPLAY_NAME = "Test Instance"

Probe = Callable[[str, float], bool]


async def _poll_until_done(operation: Any, interval: float, executor: Executor) -> None:
    loop = asyncio.get_running_loop()
    while not await loop.run_in_executor(executor, operation.done):
        await asyncio.sleep(interval)


async def _wait_done(operation: Any, timeout: float, interval: float) -> None:
    # `done()` refreshes over gRPC and may block; it runs on a private worker
    # that loop shutdown does not join.
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="operation-poll")
    poller = asyncio.ensure_future(_poll_until_done(operation, interval, executor))
    try:
        await asyncio.wait_for(poller, timeout)
    finally:
        if not poller.done():
            poller.cancel()
            try:
                await poller
            except asyncio.CancelledError:
                pass
        executor.shutdown(wait=False)


def _cancel_quietly(operation: Any) -> None:
    try:
        operation.cancel()
    except Exception as exc:  # noqa: BLE001 - cancellation is a courtesy to the server
        log.debug("Operation cancel failed", extra={"error": str(exc)})


def wait_for_operation(
    operation: Any,
    timeout: float = DEFAULT_OPERATION_TIMEOUT,
    description: str = "operation",
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Any:
    """
    Wait at most `timeout` seconds for a long-running operation and return its result.

    Completion is polled from an asyncio task; when the bound elapses the task
    is cancelled (and awaited) before the server-side operation is cancelled
    best-effort. The poller never outlives this call. A status refresh still
    in flight when the bound elapses finishes on its worker thread and does
    not delay the timeout.

    Must be called from synchronous code: `asyncio.run` refuses to start
    while another event loop is running in the same thread.

    Raises
    ------
    OperationTimeoutError
        If the operation is still running after `timeout` seconds.
    google.api_core.exceptions.GoogleAPICallError
        If the operation finished with an error.
    RuntimeError
        If called while an event loop is already running in this thread.
    """
    try:
        asyncio.run(_wait_done(operation, timeout, poll_interval))
    except asyncio.TimeoutError as exc:
        _cancel_quietly(operation)
        raise OperationTimeoutError(
            f"{description} did not complete within {timeout:g}s"
        ) from exc
    return operation.result()


def instance_exists(client: InstanceAdminClient, config: DatabaseConfig) -> bool:
    """
    True if listing instances filtered by name yields anything.

    The `name:` filter is a substring match, so an instance named
    `test-instance-2` also makes `test-instance` look present.
    """
    request = ListInstancesRequest(
        parent=config.project_path,
        page_size=1,
        filter=f"name:{config.instance}",
    )
    pager = client.list_instances(request=request)
    return next(iter(pager), None) is not None


def create_instance(
    client: InstanceAdminClient,
    config: DatabaseConfig,
    timeout: float = DEFAULT_OPERATION_TIMEOUT,
) -> None:
    request = CreateInstanceRequest(
        parent=config.project_path,
        instance_id=config.instance,
        instance=Instance(
            config=f"{config.project_path}/instanceConfigs/{EMULATOR_INSTANCE_CONFIG}",
            node_count=INSTANCE_NODE_COUNT,
            display_name=INSTANCE_DISPLAY_NAME,
        ),
    )
    operation = client.create_instance(request=request)
    wait_for_operation(operation, timeout, description=f"create instance {config.instance}")
    log.info("Instance created", extra={"instance": config.instance_path})


def database_exists(client: DatabaseAdminClient, config: DatabaseConfig) -> bool:
    """True if the database can be fetched; NotFound means absent."""
    try:
        client.get_database(name=config.database_path)
    except api_exceptions.NotFound:
        return False
    return True


def create_database(
    client: DatabaseAdminClient,
    config: DatabaseConfig,
    timeout: float = DEFAULT_OPERATION_TIMEOUT,
) -> None:
    """Create the database, applying the configured DDL atomically at creation."""
    request = CreateDatabaseRequest(
        parent=config.instance_path,
        create_statement=f"CREATE DATABASE `{config.database}`",
        extra_statements=list(config.ddl),
    )
    try:
        operation = client.create_database(request=request)
    except api_exceptions.GoogleAPICallError as exc:
        raise BootstrapError(f"Error creating database: {exc}") from exc

    try:
        wait_for_operation(operation, timeout, description=f"create database {config.database}")
    except api_exceptions.GoogleAPICallError as exc:
        raise BootstrapError(f"Error running extra database statements: {exc}") from exc
    log.info(
        "Database created",
        extra={"database": config.database_path, "statements": len(config.ddl)},
    )


class SpannerBootstrapper:
    """
    Run the emulator and create the instance and database.

    Parameters
    ----------
    config : DatabaseConfig
        Target database and its schema.
    emulator : Emulator
        How the emulator is started and stopped.
    operation_timeout : float
        Bound, in seconds, on each create-instance/create-database operation.
    ready_timeout : float
        How long to wait for a freshly started emulator to accept connections.
        Zero disables the wait.
    reachability_timeout : float
        Connect timeout of the single "already running?" probe.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        emulator: Emulator,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
        ready_timeout: float = DEFAULT_READY_TIMEOUT,
        reachability_timeout: float = 1.0,
        probe: Probe = is_reachable,
        instance_admin_factory: Callable[[str], InstanceAdminClient] = instance_admin_client,
        database_admin_factory: Callable[[str], DatabaseAdminClient] = database_admin_client,
    ) -> None:
        self.config = config
        self.emulator = emulator
        self.operation_timeout = operation_timeout
        self.ready_timeout = ready_timeout
        self.reachability_timeout = reachability_timeout
        self._probe = probe
        self._instance_admin_factory = instance_admin_factory
        self._database_admin_factory = database_admin_factory
        self.endpoint: Optional[str] = None
        self.instance_admin: Optional[InstanceAdminClient] = None
        self.database_admin: Optional[DatabaseAdminClient] = None

    def resolve_endpoint(self) -> str:
        """gRPC endpoint preferred over REST; first non-empty wins."""
        grpc_host, rest_host = self.emulator.hosts()
        for host in (grpc_host, rest_host):
            if host:
                return host
        raise EndpointError("emulator exposes neither a gRPC nor a REST endpoint")

    def run(self) -> str:
        """Provision everything and return the endpoint clients should use."""
        endpoint = self.resolve_endpoint()
        self.endpoint = endpoint

        if self._probe(endpoint, self.reachability_timeout):
            log.info("Emulator already running", extra={"endpoint": endpoint})
        else:
            self.emulator.run()
            wait_until_reachable(
                endpoint,
                self.ready_timeout,
                probe_timeout=self.reachability_timeout,
                probe=self._probe,
            )

        self.instance_admin = self._instance_admin_factory(endpoint)
        self.database_admin = self._database_admin_factory(endpoint)

        if instance_exists(self.instance_admin, self.config):
            log.info("Instance exists", extra={"instance": self.config.instance_path})
        else:
            create_instance(self.instance_admin, self.config, self.operation_timeout)

        if database_exists(self.database_admin, self.config):
            log.info("Database exists", extra={"database": self.config.database_path})
        else:
            create_database(self.database_admin, self.config, self.operation_timeout)

        return endpoint

    def close(self) -> None:
        """Shut the emulator down, best-effort."""
        self.emulator.close_quietly()

    def __enter__(self) -> "SpannerBootstrapper":
        try:
            self.run()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "SpannerBootstrapper",
    "create_database",
    "create_instance",
    "database_exists",
    "instance_exists",
    "wait_for_operation",
]
