"""
Infrastructure package for the Spanner repro harness.

Centralizes client construction against the emulator endpoint. Keep this layer
focused on I/O and resource wiring, decoupled from provisioning and demo logic.
"""

from spanner_repro.infrastructure.clients import (
    data_client,
    database_admin_client,
    instance_admin_client,
    open_database,
)

__all__ = [
    "data_client",
    "database_admin_client",
    "instance_admin_client",
    "open_database",
]
