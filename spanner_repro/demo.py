"""
Demo transaction script: insert a `machines` row, read it back and re-stamp
its timestamp columns with the commit timestamp.

Two variants observed in the field are selectable through `DemoOptions`:

- `update_mode="parameter"` binds the string "PENDING_COMMIT_TIMESTAMP()" as
  a query parameter. The store treats it as a plain string, so the update is
  rejected; this is the behaviour being reproduced.
- `update_mode="literal"` writes `PENDING_COMMIT_TIMESTAMP()` into the SQL
  text, which is the supported way to request the commit timestamp from DML.
- `insert_commit_timestamp=True` inserts the row with the commit-timestamp
  sentinel in every timestamp column instead of a fixed value.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timezone
from typing import Any, Dict, List, Literal, Optional

from google.api_core.datetime_helpers import DatetimeWithNanoseconds
from google.cloud import spanner
from google.cloud.spanner_v1 import param_types
from google.cloud.spanner_v1.database import Database
from pydantic import ValidationError

from spanner_repro.domain.models import Machine
from spanner_repro.errors import NoRowsUpdatedError, RowNotFoundError, RowParseError
from spanner_repro.utils.logging import get_logger

log = get_logger(__name__)

TABLE = "machines"
PENDING_COMMIT_TIMESTAMP = "PENDING_COMMIT_TIMESTAMP()"
FIXED_TIMESTAMP = DatetimeWithNanoseconds(
    1970, 1, 1, 1, 1, 1, nanosecond=1, tzinfo=timezone.utc
)

UpdateMode = Literal["parameter", "literal"]


@dataclass(frozen=True)
class DemoOptions:
    update_mode: UpdateMode = "parameter"
    insert_commit_timestamp: bool = False


@dataclass
class DemoResult:
    machine_id: str
    ok: bool = False
    stage: Optional[str] = None
    machine: Optional[Machine] = None
    updated_rows: int = 0
    error: Optional[str] = None


def build_machine(machine_id: Optional[str] = None) -> Machine:
    """A row with fixed field values and a fresh uuid4 key unless one is given."""
    return Machine(
        id=machine_id or str(uuid.uuid4()),
        instance_name="instance-name",
        instance_ip="instance-ip",
        status="available",
        version="version",
        provisioner="provisioner",
        instance_group="instance-group",
        zone="zone",
        created_on=FIXED_TIMESTAMP,
        first_heartbeat=FIXED_TIMESTAMP,
        last_heartbeat=FIXED_TIMESTAMP,
        ended_on=FIXED_TIMESTAMP,
    )


def insert_values(machine: Machine, commit_timestamp: bool = False) -> List[Any]:
    """Mutation values for `machine`, optionally with the commit-timestamp sentinel."""
    if not commit_timestamp:
        return machine.values()
    return [
        spanner.COMMIT_TIMESTAMP if column in Machine.TIMESTAMP_COLUMNS else value
        for column, value in zip(Machine.columns(), machine.values())
    ]


def insert_machine(transaction: Any, machine: Machine, commit_timestamp: bool = False) -> None:
    transaction.insert(
        table=TABLE,
        columns=Machine.columns(),
        values=[insert_values(machine, commit_timestamp)],
    )


def read_machine(transaction: Any, machine_id: str) -> Machine:
    """
    Fetch one machine by key.

    Raises
    ------
    RowNotFoundError
        If no row has that key.
    RowParseError
        If the row does not fit the `Machine` model.
    """
    columns = Machine.columns()
    results = transaction.execute_sql(
        f"SELECT {', '.join(columns)} FROM {TABLE} WHERE id = @id",
        params={"id": machine_id},
        param_types={"id": param_types.STRING},
    )
    row = next(iter(results), None)
    if row is None:
        raise RowNotFoundError("Machine not found")
    try:
        return Machine.model_validate(dict(zip(columns, row)))
    except ValidationError as exc:
        raise RowParseError(f"Could not parse row into machine: {exc}") from exc


def update_statement(
    machine_id: str, mode: UpdateMode
) -> tuple[str, Dict[str, Any], Dict[str, Any]]:
    """SQL, params and param types for re-stamping created_on/ended_on."""
    params: Dict[str, Any] = {"id": machine_id}
    types: Dict[str, Any] = {"id": param_types.STRING}
    if mode == "parameter":
        sql = f"UPDATE {TABLE} SET created_on=@created_on, ended_on=@ended_on WHERE id = @id"
        for column in ("created_on", "ended_on"):
            params[column] = PENDING_COMMIT_TIMESTAMP
            types[column] = param_types.STRING
    elif mode == "literal":
        sql = (
            f"UPDATE {TABLE} SET created_on={PENDING_COMMIT_TIMESTAMP}, "
            f"ended_on={PENDING_COMMIT_TIMESTAMP} WHERE id = @id"
        )
    else:
        raise ValueError(f"Unknown update mode '{mode}'. Available: parameter, literal")
    return sql, params, types


def update_commit_timestamps(transaction: Any, machine_id: str, mode: UpdateMode) -> int:
    """
    Run the timestamp update and return the affected row count.

    Raises
    ------
    NoRowsUpdatedError
        If the statement matched no row.
    """
    sql, params, types = update_statement(machine_id, mode)
    count = transaction.execute_update(sql, params=params, param_types=types)
    if count == 0:
        raise NoRowsUpdatedError("no rows updated")
    return count


def run_demo(database: Database, options: DemoOptions = DemoOptions()) -> DemoResult:
    """
    Run both transactions and report the outcome.

    Failures are recorded on the returned `DemoResult` rather than raised, so
    the caller can print them.
    """
    machine = build_machine()
    result = DemoResult(machine_id=machine.id)

    result.stage = "insert"
    try:
        database.run_in_transaction(insert_machine, machine, options.insert_commit_timestamp)
    except Exception as exc:  # noqa: BLE001 - intentional broad catch to record failures
        log.exception("Insert failed", extra={"machine_id": machine.id})
        result.error = f"failed to insert: {exc}"
        return result
    log.info("Machine inserted", extra={"machine_id": machine.id})

    def read_and_update(transaction: Any) -> None:
        result.machine = read_machine(transaction, machine.id)
        result.updated_rows = update_commit_timestamps(transaction, machine.id, options.update_mode)

    result.stage = "update"
    try:
        database.run_in_transaction(read_and_update)
    except Exception as exc:  # noqa: BLE001 - intentional broad catch to record failures
        log.exception(
            "Update failed",
            extra={"machine_id": machine.id, "update_mode": options.update_mode},
        )
        result.error = str(exc)
        return result

    result.ok = True
    log.info(
        "Machine updated",
        extra={"machine_id": machine.id, "rows": result.updated_rows},
    )
    return result


def load_dml(database: Database, dml: str) -> int:
    """Run one DML statement in a read-write transaction; returns the row count."""
    return database.run_in_transaction(lambda transaction: transaction.execute_update(dml))


__all__ = [
    "DemoOptions",
    "DemoResult",
    "build_machine",
    "insert_machine",
    "load_dml",
    "read_machine",
    "run_demo",
    "update_commit_timestamps",
    "update_statement",
]
