"""
Base types for the service catalogue.

A ``Service`` describes one component of the bundle: where it sits in the
deployment order, which host ports it publishes, how to render its
configuration, how to run it and how to tell whether it is healthy. The
orchestrator only ever talks to services through this interface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..api.containers import ContainerRuntime, ContainerSpec, PortMapping
from ..api.health import HealthResult
from ..core.config import BtpiConfig, PathsConfig
from ..integrations.openssl import OpenSslCli


@dataclass
class ServiceContext:
    """
    Everything a service needs while it is prepared, run and checked.

    ``env`` holds the loaded ``.env`` secrets; ``selected`` is the list of
    services chosen for this deployment.
    """

    config: BtpiConfig
    runtime: ContainerRuntime
    env: Dict[str, str] = field(default_factory=dict)
    selected: List[str] = field(default_factory=list)
    openssl: OpenSslCli = field(default_factory=OpenSslCli)

    @property
    def paths(self) -> PathsConfig:
        return self.config.paths

    @property
    def http_timeout(self) -> int:
        return self.config.health.http_timeout_seconds

    @property
    def domain(self) -> str:
        return self.env.get("DOMAIN_NAME") or self.config.deployment.domain_name

    @property
    def server_ip(self) -> str:
        return self.env.get("SERVER_IP") or self.config.deployment.server_ip or "127.0.0.1"

    def secret(self, key: str) -> str:
        return self.env.get(key, "")


class Service:
    """
    Base class for a deployable service.

    Subclasses set the class attributes and implement ``container_spec`` and
    ``check_health``. Native services (installed outside Docker) set
    ``native`` and implement ``install_native`` instead of ``container_spec``.
    """

    name: str = ""
    category: str = ""
    description: str = ""
    image: str = ""
    dependencies: Tuple[str, ...] = ()
    ports: Tuple[PortMapping, ...] = ()
    network_key: str = "core"
    # subdomain registered in the hosts file
    hostname: Optional[str] = None
    native: bool = False
    # always remove an existing container instead of reconciling it
    recreate: bool = False

    @property
    def container_name(self) -> str:
        return self.name

    def host_ports(self) -> List[int]:
        return [port.host for port in self.ports]

    def network(self, ctx: ServiceContext) -> str:
        return getattr(ctx.config.networks, f"{self.network_key}_network")

    def data_dir(self, ctx: ServiceContext) -> Path:
        return ctx.paths.data_dir / self.name

    def config_dir(self, ctx: ServiceContext) -> Path:
        return ctx.paths.services_dir / self.name / "config"

    def prepare(self, ctx: ServiceContext) -> None:
        """
        Create data directories and render configuration files.
        """

        self.data_dir(ctx).mkdir(parents=True, exist_ok=True)

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        raise NotImplementedError(f"{self.name} does not run as a container")

    def install_native(self, ctx: ServiceContext) -> None:
        raise NotImplementedError(f"{self.name} has no native installer")

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        raise NotImplementedError

    def post_deploy(self, ctx: ServiceContext) -> None:
        """
        Optional work once the service is ready.
        """

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return []

    def __repr__(self) -> str:
        return f"<Service {self.name}>"
