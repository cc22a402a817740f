"""
Emulator facade: how the emulator process is brought up and torn down,
separated from what gets provisioned once it is reachable.

The bootstrapper only talks to `Emulator`; swapping the runner/closer pair
(e.g. for an emulator someone already started) needs no bootstrapper change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

from spanner_repro.domain.models import DEFAULT_GRPC_HOST, DEFAULT_REST_HOST, EmulatorConfig
from spanner_repro.emulator.docker import DockerRunner
from spanner_repro.utils.logging import get_logger

log = get_logger(__name__)

Runner = Callable[[str, str], None]
Closer = Callable[[], None]


def _noop_runner(grpc_host: str, rest_host: str) -> None:
    del grpc_host, rest_host


def _noop_closer() -> None:
    return None


@dataclass(frozen=True)
class Emulator:
    runner: Runner
    closer: Closer
    grpc_host: str = DEFAULT_GRPC_HOST
    rest_host: str = DEFAULT_REST_HOST

    def hosts(self) -> Tuple[str, str]:
        return self.grpc_host, self.rest_host

    def run(self) -> None:
        self.runner(*self.hosts())

    def close(self) -> None:
        self.closer()

    def close_quietly(self) -> None:
        """Best-effort teardown: never raises."""
        try:
            self.close()
        except Exception as exc:  # noqa: BLE001 - teardown must always be safe to attempt
            log.warning("Emulator teardown failed", extra={"error": str(exc)})

    @classmethod
    def from_docker(cls, config: EmulatorConfig, docker_binary: str = "docker") -> "Emulator":
        """The emulator running in a local docker container."""
        docker = DockerRunner(config.container_name, config.image, docker_binary=docker_binary)
        return cls(
            runner=docker.run,
            closer=docker.close,
            grpc_host=config.grpc_host,
            rest_host=config.rest_host,
        )

    @classmethod
    def external(cls, grpc_host: str = DEFAULT_GRPC_HOST, rest_host: str = "") -> "Emulator":
        """An emulator managed elsewhere: run and close do nothing."""
        return cls(
            runner=_noop_runner,
            closer=_noop_closer,
            grpc_host=grpc_host,
            rest_host=rest_host,
        )


def default_emulator() -> Emulator:
    """Docker emulator with the default container name, image and ports."""
    return Emulator.from_docker(EmulatorConfig())


__all__ = ["Closer", "Emulator", "Runner", "default_emulator"]
