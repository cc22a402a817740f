"""
Spanner repro - reproduction harness for commit-timestamp writes against the
Cloud Spanner emulator.

The package stands up an ephemeral emulator (docker), provisions an instance
and a database with a schema, and runs an insert-then-update transaction that
stamps timestamp columns with the server-assigned commit timestamp:

- Emulator lifecycle (container runner, reachability probe, facade)
- Instance/database bootstrapper with bounded waits on admin operations
- DDL splitting and the reproduced live schema
- The demo transaction script and its CLI
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from spanner_repro.bootstrap import SpannerBootstrapper, wait_for_operation
from spanner_repro.config import Settings, get_settings
from spanner_repro.ddl import load_ddl_file, parse_ddl
from spanner_repro.demo import DemoOptions, DemoResult, load_dml, run_demo
from spanner_repro.domain.models import DatabaseConfig, EmulatorConfig, Machine
from spanner_repro.emulator import DockerRunner, Emulator, default_emulator, is_reachable
from spanner_repro.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    "DatabaseConfig",
    "EmulatorConfig",
    # Emulator lifecycle
    "DockerRunner",
    "Emulator",
    "default_emulator",
    "is_reachable",
    # Provisioning
    "SpannerBootstrapper",
    "wait_for_operation",
    "load_ddl_file",
    "parse_ddl",
    # Demo
    "DemoOptions",
    "DemoResult",
    "Machine",
    "load_dml",
    "run_demo",
    # Logging
    "configure_logging",
    "get_logger",
]
