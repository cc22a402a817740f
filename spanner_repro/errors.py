"""
Exception hierarchy for the Spanner repro harness.

Vendor errors (`google.api_core.exceptions.GoogleAPICallError`) are not
wrapped; they propagate as-is. The classes below cover the failures this
package detects itself.
"""

from __future__ import annotations


class ReproError(Exception):
    """Base class for harness errors."""


class EndpointError(ReproError, ValueError):
    """An endpoint string is not a usable `host:port` pair."""


class ContainerError(ReproError):
    """The container runtime refused to start the emulator."""


class EmulatorNotReadyError(ReproError):
    """The emulator was started but never accepted connections."""


class BootstrapError(ReproError):
    """Instance or database provisioning failed."""


class OperationTimeoutError(BootstrapError, TimeoutError):
    """A long-running admin operation did not finish within its bound."""


class DemoError(ReproError):
    """The demo transaction script failed."""


class RowNotFoundError(DemoError):
    pass


class RowParseError(DemoError):
    pass


class NoRowsUpdatedError(DemoError):
    pass


__all__ = [
    "BootstrapError",
    "ContainerError",
    "DemoError",
    "EmulatorNotReadyError",
    "EndpointError",
    "NoRowsUpdatedError",
    "OperationTimeoutError",
    "ReproError",
    "RowNotFoundError",
    "RowParseError",
]
