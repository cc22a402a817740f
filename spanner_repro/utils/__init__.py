"""
Utilities package for the Spanner repro harness.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of Spanner-specific logic.
"""

from spanner_repro.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
