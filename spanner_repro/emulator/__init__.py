"""
Emulator lifecycle package: endpoint helpers, the docker runner and the
runner/closer facade consumed by the bootstrapper.
"""

from spanner_repro.emulator.docker import DockerRunner
from spanner_repro.emulator.endpoints import (
    is_reachable,
    parse_port,
    split_host,
    wait_until_reachable,
)
from spanner_repro.emulator.facade import Emulator, default_emulator

__all__ = [
    "DockerRunner",
    "Emulator",
    "default_emulator",
    "is_reachable",
    "parse_port",
    "split_host",
    "wait_until_reachable",
]
