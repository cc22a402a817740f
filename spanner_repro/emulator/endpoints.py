"""
Endpoint helpers: `host:port` parsing and TCP reachability probes.

`is_reachable` is a single connect attempt used to decide whether the emulator
must be started at all. `wait_until_reachable` polls it with tenacity after a
fresh container start, since `docker run -d` returns before the emulator
listens.
"""

from __future__ import annotations

import socket
from typing import Callable

from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from spanner_repro.errors import EmulatorNotReadyError, EndpointError
from spanner_repro.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_PROBE_TIMEOUT = 1.0
DEFAULT_POLL_INTERVAL = 0.25


def split_host(endpoint: str) -> tuple[str, int]:
    """
    Split `host:port` into its parts.

    Raises
    ------
    EndpointError
        If there is no colon or the port is not numeric.
    """
    host, sep, port = endpoint.rpartition(":")
    if not sep or not port.isdigit():
        raise EndpointError(f"unable to parse port from: {endpoint!r}")
    return host, int(port)


def parse_port(endpoint: str) -> str:
    """Return the port of a `host:port` string, e.g. "localhost:9010" -> "9010"."""
    _, port = split_host(endpoint)
    return str(port)


def is_reachable(endpoint: str, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    """
    Check whether something accepts TCP connections at `endpoint`.

    One attempt, no retries. The socket is closed straight away.
    """
    host, port = split_host(endpoint)
    try:
        with socket.create_connection((host or "localhost", port), timeout=timeout):
            return True
    except OSError:
        return False


def wait_until_reachable(
    endpoint: str,
    timeout: float,
    interval: float = DEFAULT_POLL_INTERVAL,
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    probe: Callable[[str, float], bool] = is_reachable,
) -> None:
    """
    Block until `endpoint` accepts connections or `timeout` seconds elapse.

    A non-positive timeout disables the wait. `probe` defaults to `is_reachable`.

    Raises
    ------
    EmulatorNotReadyError
        If the endpoint never became reachable.
    """
    if timeout <= 0:
        return

    retryer = Retrying(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ok: ok is False),
    )
    try:
        retryer(probe, endpoint, probe_timeout)
    except RetryError as exc:
        raise EmulatorNotReadyError(
            f"emulator at {endpoint} not reachable after {timeout:g}s"
        ) from exc
    log.debug("Emulator reachable", extra={"endpoint": endpoint})


__all__ = ["is_reachable", "parse_port", "split_host", "wait_until_reachable"]
