"""
Generic container runtime API for BTPI-REACT.

This module defines vendor-neutral DTOs and the ``ContainerRuntime``
interface that the orchestrator uses to create networks and run, inspect
and reconcile service containers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Protocol

from ..core.dto import BaseDTO


class ContainerState(str, Enum):
    """
    Lifecycle state of a container as reported by the runtime.
    """

    RUNNING = "running"
    CREATED = "created"
    RESTARTING = "restarting"
    PAUSED = "paused"
    EXITED = "exited"
    DEAD = "dead"
    ABSENT = "absent"

    @classmethod
    def parse(cls, raw: str) -> "ContainerState":
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.DEAD


@dataclass
class PortMapping(BaseDTO):
    """
    A host port published to a container port.
    """

    host: int
    container: int
    protocol: str = "tcp"

    def to_arg(self) -> str:
        mapping = f"{self.host}:{self.container}"
        if self.protocol != "tcp":
            mapping = f"{mapping}/{self.protocol}"
        return mapping


@dataclass
class VolumeMount(BaseDTO):
    """
    A bind mount (or named volume) attached to a container.
    """

    source: str
    target: str
    read_only: bool = False

    def to_arg(self) -> str:
        mount = f"{self.source}:{self.target}"
        if self.read_only:
            mount = f"{mount}:ro"
        return mount


@dataclass
class HealthCmd(BaseDTO):
    """
    Docker-level healthcheck attached to a container.
    """

    test: str
    interval: str = "30s"
    timeout: str = "10s"
    retries: int = 5
    start_period: Optional[str] = None


@dataclass
class ContainerSpec(BaseDTO):
    """
    Everything needed for a ``docker run -d``.
    """

    name: str
    image: str
    network: Optional[str] = None
    ports: List[PortMapping] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    volumes: List[VolumeMount] = field(default_factory=list)
    ulimits: Dict[str, str] = field(default_factory=dict)
    healthcheck: Optional[HealthCmd] = None
    command: List[str] = field(default_factory=list)
    restart: str = "unless-stopped"

    def to_run_args(self) -> List[str]:
        """
        Build the argument list for ``docker run`` (without the binary).
        """

        args = ["run", "-d", "--name", self.name, "--restart", self.restart]
        if self.network:
            args += ["--network", self.network]
        for port in self.ports:
            args += ["-p", port.to_arg()]
        for key, value in self.env.items():
            args += ["-e", f"{key}={value}"]
        for volume in self.volumes:
            args += ["-v", volume.to_arg()]
        for name, limit in self.ulimits.items():
            args += ["--ulimit", f"{name}={limit}"]
        if self.healthcheck:
            args += [
                f"--health-cmd={self.healthcheck.test}",
                f"--health-interval={self.healthcheck.interval}",
                f"--health-timeout={self.healthcheck.timeout}",
                f"--health-retries={self.healthcheck.retries}",
            ]
            if self.healthcheck.start_period:
                args.append(f"--health-start-period={self.healthcheck.start_period}")
        args.append(self.image)
        args += self.command
        return args


@dataclass
class ContainerInfo(BaseDTO):
    """
    Snapshot of a container's state.
    """

    name: str
    state: ContainerState
    status: Optional[str] = None
    started_at: Optional[datetime] = None
    health: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.state == ContainerState.RUNNING


@dataclass
class NetworkSpec(BaseDTO):
    """
    A Docker bridge network managed by the bundle.
    """

    name: str
    subnet: Optional[str] = None
    description: str = ""
    driver: str = "bridge"


@dataclass
class ExecResult(BaseDTO):
    """
    Outcome of a command executed inside a container.
    """

    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ContainerRuntime(Protocol):
    """
    Vendor-neutral interface for container operations.

    Methods that act on a missing container raise ``IntegrationError``;
    ``inspect`` returns a ``ContainerInfo`` in state ``ABSENT`` instead.
    """

    # Inspection
    def list_containers(self, all_containers: bool = False) -> List[str]:
        ...

    def inspect(self, name: str) -> ContainerInfo:
        ...

    def exists(self, name: str) -> bool:
        ...

    def is_running(self, name: str) -> bool:
        ...

    def logs(self, name: str, tail: int = 10) -> str:
        ...

    # Lifecycle
    def run(self, spec: ContainerSpec) -> str:
        ...

    def start(self, name: str) -> None:
        ...

    def stop(self, name: str) -> None:
        ...

    def restart(self, name: str) -> None:
        ...

    def remove(self, name: str, force: bool = True) -> None:
        ...

    def exec(self, name: str, command: List[str]) -> ExecResult:
        ...

    # Networks
    def list_networks(self) -> List[str]:
        ...

    def create_network(self, network: NetworkSpec) -> None:
        ...

    def remove_network(self, name: str) -> None:
        ...

    def network_members(self, name: str) -> List[str]:
        ...

    def disconnect(self, network: str, container: str) -> None:
        ...
