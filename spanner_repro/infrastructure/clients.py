"""
Spanner client factories for the repro harness.

Every factory takes the emulator endpoint explicitly. The admin clients get
an insecure gRPC channel to that endpoint directly. The data client library
only switches to its emulator transport when `SPANNER_EMULATOR_HOST` is set
while the `Client` is constructed, so that variable is set for the duration
of the constructor call and restored afterwards.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Generator

import grpc
from google.auth.credentials import AnonymousCredentials
from google.cloud import spanner
from google.cloud.spanner_admin_database_v1 import DatabaseAdminClient
from google.cloud.spanner_admin_database_v1.services.database_admin.transports import (
    DatabaseAdminGrpcTransport,
)
from google.cloud.spanner_admin_instance_v1 import InstanceAdminClient
from google.cloud.spanner_admin_instance_v1.services.instance_admin.transports import (
    InstanceAdminGrpcTransport,
)
from google.cloud.spanner_v1.database import Database

from spanner_repro.domain.models import DatabaseConfig

EMULATOR_HOST_ENV = "SPANNER_EMULATOR_HOST"


@contextmanager
def emulator_host_scope(endpoint: str) -> Generator[None, None, None]:
    """Point the client library at `endpoint` for the duration of the block."""
    previous = os.environ.get(EMULATOR_HOST_ENV)
    os.environ[EMULATOR_HOST_ENV] = endpoint
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop(EMULATOR_HOST_ENV, None)
        else:
            os.environ[EMULATOR_HOST_ENV] = previous


def instance_admin_client(endpoint: str) -> InstanceAdminClient:
    transport = InstanceAdminGrpcTransport(channel=grpc.insecure_channel(endpoint))
    return InstanceAdminClient(transport=transport)


def database_admin_client(endpoint: str) -> DatabaseAdminClient:
    transport = DatabaseAdminGrpcTransport(channel=grpc.insecure_channel(endpoint))
    return DatabaseAdminClient(transport=transport)


def data_client(project: str, endpoint: str) -> spanner.Client:
    """Build a data-API client bound to the emulator at `endpoint`."""
    with emulator_host_scope(endpoint):
        return spanner.Client(project=project, credentials=AnonymousCredentials())


def open_database(config: DatabaseConfig, endpoint: str) -> Database:
    """Database handle for `config` on the emulator at `endpoint`."""
    client = data_client(config.project, endpoint)
    return client.instance(config.instance).database(config.database)


__all__ = [
    "EMULATOR_HOST_ENV",
    "data_client",
    "database_admin_client",
    "emulator_host_scope",
    "instance_admin_client",
    "open_database",
]
