"""
Domain package for the Spanner repro harness.

Exports the resource descriptors and the row model used by the bootstrapper
and the demo script. Keep this package free of client-library imports.
"""

from spanner_repro.domain.models import DatabaseConfig, EmulatorConfig, Machine

__all__ = [
    "DatabaseConfig",
    "EmulatorConfig",
    "Machine",
]
