"""
Docker CLI implementation of the generic ``ContainerRuntime`` interface.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from ...api.containers import (
    ContainerInfo,
    ContainerRuntime,
    ContainerSpec,
    ContainerState,
    ExecResult,
    NetworkSpec,
)
from ...core.errors import IntegrationError
from ...core.logging import get_logger
from .docker_cli import DockerCli


logger = get_logger("btpi.integrations.docker.client")

_INSPECT_FORMAT = "{{.State.Status}}|{{.State.StartedAt}}|{{if .State.Health}}{{.State.Health.Status}}{{end}}"

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_docker_timestamp(raw: str) -> Optional[datetime]:
    """
    Parse Docker's RFC 3339 timestamps (nanosecond precision, ``Z`` suffix).

    Returns None for empty or zero timestamps.
    """

    raw = raw.strip()
    if not raw or raw.startswith("0001-01-01"):
        return None
    value = raw.replace("Z", "+00:00")
    value = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Could not parse docker timestamp %r", raw)
        return None


class DockerContainerRuntime(ContainerRuntime):
    """
    Container runtime backed by the ``docker`` binary.
    """

    def __init__(self, cli: Optional[DockerCli] = None) -> None:
        self._cli = cli or DockerCli()

    @property
    def cli(self) -> DockerCli:
        return self._cli

    # Inspection

    def list_containers(self, all_containers: bool = False) -> List[str]:
        args = ["ps", "--format", "{{.Names}}"]
        if all_containers:
            args.insert(1, "-a")
        return self._cli.lines(args)

    def inspect(self, name: str) -> ContainerInfo:
        result = self._cli.run(["inspect", "--format", _INSPECT_FORMAT, name], check=False)
        if not result.ok:
            return ContainerInfo(name=name, state=ContainerState.ABSENT)

        status, started_at, health = (result.stdout.strip().split("|") + ["", ""])[:3]
        return ContainerInfo(
            name=name,
            state=ContainerState.parse(status),
            status=status,
            started_at=parse_docker_timestamp(started_at),
            health=health or None,
        )

    def exists(self, name: str) -> bool:
        return name in self.list_containers(all_containers=True)

    def is_running(self, name: str) -> bool:
        return name in self.list_containers()

    def logs(self, name: str, tail: int = 10) -> str:
        result = self._cli.run(["logs", f"--tail={tail}", name], check=False)
        return result.output

    # Lifecycle

    def run(self, spec: ContainerSpec) -> str:
        logger.info("Starting container %s from %s", spec.name, spec.image)
        result = self._cli.run(spec.to_run_args())
        return result.stdout.strip()

    def start(self, name: str) -> None:
        self._cli.run(["start", name])

    def stop(self, name: str) -> None:
        self._cli.run(["stop", name])

    def restart(self, name: str) -> None:
        self._cli.run(["restart", name])

    def remove(self, name: str, force: bool = True) -> None:
        args = ["rm", name]
        if force:
            args.insert(1, "-f")
        result = self._cli.run(args, check=False)
        if not result.ok and "No such container" not in result.output:
            raise IntegrationError(f"Failed to remove container {name}: {result.output}")

    def exec(self, name: str, command: List[str]) -> ExecResult:
        result = self._cli.run(["exec", name, *command], check=False)
        return ExecResult(exit_code=result.returncode, output=result.output)

    # Networks

    def list_networks(self) -> List[str]:
        return self._cli.lines(["network", "ls", "--format", "{{.Name}}"])

    def create_network(self, network: NetworkSpec) -> None:
        args = ["network", "create", "--driver", network.driver]
        if network.subnet:
            args.append(f"--subnet={network.subnet}")
        args.append(network.name)
        self._cli.run(args)

    def remove_network(self, name: str) -> None:
        self._cli.run(["network", "rm", name])

    def network_members(self, name: str) -> List[str]:
        result = self._cli.run(
            [
                "network",
                "inspect",
                name,
                "-f",
                "{{range $id, $c := .Containers}}{{$c.Name}} {{end}}",
            ],
            check=False,
        )
        if not result.ok:
            return []
        return result.stdout.split()

    def disconnect(self, network: str, container: str) -> None:
        self._cli.run(["network", "disconnect", network, container], check=False)
