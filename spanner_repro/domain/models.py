"""
Domain models for the Spanner repro harness.

Two immutable resource descriptors (which emulator, which database) and the
`machines` row written by the demo transaction script. The row model mirrors
the `machines` table in `spanner_repro.schema`.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, List, Optional, Tuple

from pydantic import BaseModel, Field

DEFAULT_PROJECT = "test-project"
DEFAULT_INSTANCE = "test-instance"
DEFAULT_DATABASE = "test-database"

DEFAULT_GRPC_HOST = "localhost:9010"
DEFAULT_REST_HOST = "localhost:9020"
DEFAULT_CONTAINER_NAME = "spanner-emulator"
DEFAULT_IMAGE = "gcr.io/cloud-spanner-emulator/emulator"


class EmulatorConfig(BaseModel):
    """
    Identifies one emulator process: the container that runs it and the two
    endpoints it listens on.
    """

    container_name: str = Field(DEFAULT_CONTAINER_NAME, description="Docker container name.")
    image: str = Field(DEFAULT_IMAGE, description="Emulator image reference.")
    grpc_host: str = Field(DEFAULT_GRPC_HOST, description="host:port of the gRPC endpoint.")
    rest_host: str = Field(DEFAULT_REST_HOST, description="host:port of the REST endpoint.")

    model_config = {"frozen": True}


class DatabaseConfig(BaseModel):
    """
    Target database plus the schema applied when it is first created.

    The DDL is only ever applied at creation time; an existing database is
    left untouched.
    """

    project: str = Field(DEFAULT_PROJECT, description="Project identifier.")
    instance: str = Field(DEFAULT_INSTANCE, description="Instance identifier.")
    database: str = Field(DEFAULT_DATABASE, description="Database identifier.")
    ddl: Tuple[str, ...] = Field(default=(), description="Ordered schema statements.")

    model_config = {"frozen": True}

    @property
    def project_path(self) -> str:
        return f"projects/{self.project}"

    @property
    def instance_path(self) -> str:
        return f"{self.project_path}/instances/{self.instance}"

    @property
    def database_path(self) -> str:
        return f"{self.instance_path}/databases/{self.database}"


class Machine(BaseModel):
    """
    Representation of a single row in the `machines` table.
    """

    id: str = Field(..., description="Primary key.")
    instance_name: str
    instance_ip: str
    status: str
    version: str
    created_on: Optional[datetime] = None
    last_heartbeat: Optional[datetime] = None
    ended_on: Optional[datetime] = None
    provisioner: str
    first_heartbeat: Optional[datetime] = None
    instance_group: str
    zone: str

    model_config = {"frozen": True}

    TIMESTAMP_COLUMNS: ClassVar[Tuple[str, ...]] = (
        "created_on",
        "last_heartbeat",
        "ended_on",
        "first_heartbeat",
    )

    @classmethod
    def columns(cls) -> List[str]:
        """Column names in table order."""
        return list(cls.model_fields.keys())

    def values(self) -> List[Any]:
        """Column values in the same order as `columns()`."""
        return [getattr(self, name) for name in self.columns()]


__all__ = [
    "DEFAULT_CONTAINER_NAME",
    "DEFAULT_DATABASE",
    "DEFAULT_GRPC_HOST",
    "DEFAULT_IMAGE",
    "DEFAULT_INSTANCE",
    "DEFAULT_PROJECT",
    "DEFAULT_REST_HOST",
    "DatabaseConfig",
    "EmulatorConfig",
    "Machine",
]
