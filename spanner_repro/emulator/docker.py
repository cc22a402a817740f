"""
Docker-backed container runner for the Spanner emulator.

Shells out to the docker CLI. `run` returns as soon as `docker run -d` does;
readiness of the service inside the container is the caller's concern.
"""

from __future__ import annotations

import subprocess
from typing import List, Sequence

from spanner_repro.emulator.endpoints import parse_port
from spanner_repro.errors import ContainerError
from spanner_repro.utils.logging import get_logger

log = get_logger(__name__)


class DockerRunner:
    """
    Start and stop one named container.

    Parameters
    ----------
    name : str
        Container name passed to `--name`, `kill` and `rm`.
    image : str
        Image to run.
    docker_binary : str
        Docker CLI executable (podman works too).
    """

    def __init__(self, name: str, image: str, docker_binary: str = "docker") -> None:
        self.name = name
        self.image = image
        self.docker_binary = docker_binary

    def run_command(self, hosts: Sequence[str]) -> List[str]:
        """Build the `docker run` argv; every host is validated before anything runs."""
        ports = [parse_port(host) for host in hosts if host]
        argv = [self.docker_binary, "run", "-d", "--name", self.name]
        for port in ports:
            argv.extend(["-p", f"{port}:{port}"])
        argv.append(self.image)
        return argv

    def run(self, *hosts: str) -> None:
        argv = self.run_command(hosts)
        log.info(
            "Starting emulator container",
            extra={"container": self.name, "image": self.image, "hosts": list(hosts)},
        )
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ContainerError(f"unable to execute {self.docker_binary}: {exc}") from exc
        if proc.returncode != 0:
            raise ContainerError(
                f"failed to start container {self.name!r}: {proc.stderr.strip()}"
            )

    def close(self) -> None:
        """
        Best-effort kill and remove of the container.

        Errors are logged and swallowed: the container may already be gone, or
        startup may have failed half way.
        """
        for action in ("kill", "rm"):
            argv = [self.docker_binary, action, self.name]
            try:
                proc = subprocess.run(argv, capture_output=True, text=True, check=False)
            except OSError as exc:
                log.debug(
                    f"docker {action} failed",
                    extra={"container": self.name, "error": str(exc)},
                )
                continue
            if proc.returncode != 0:
                log.debug(
                    f"docker {action} failed",
                    extra={"container": self.name, "error": proc.stderr.strip()},
                )
        log.info("Emulator container teardown finished", extra={"container": self.name})


__all__ = ["DockerRunner"]
