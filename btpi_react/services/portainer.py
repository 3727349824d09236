"""
Portainer CE: container management UI.

Portainer's edge tunnel listens on 8000 inside the container; it is
published on host port 8100 because Velociraptor's frontend owns 8000.
"""

from __future__ import annotations

import secrets
from typing import List, Tuple

from ..api.containers import ContainerSpec, HealthCmd, PortMapping, VolumeMount
from ..api.health import HealthResult
from ..integrations.http_common import ServiceHttpClient
from .base import Service, ServiceContext
from .rendering import write_text


class PortainerService(Service):
    name = "portainer"
    category = "infrastructure"
    description = "Container management UI"
    image = "portainer/portainer-ce:latest"
    ports = (PortMapping(8100, 8000), PortMapping(9443, 9443))
    network_key = "infra"
    hostname = "portainer"
    recreate = True

    def password_file(self, ctx: ServiceContext):
        return self.data_dir(ctx) / "admin-password"

    def prepare(self, ctx: ServiceContext) -> None:
        self.data_dir(ctx).mkdir(parents=True, exist_ok=True)
        password = ctx.secret("PORTAINER_ADMIN_PASSWORD") or secrets.token_urlsafe(24)
        # plaintext, read once by --admin-password-file
        write_text(self.password_file(ctx), password, mode=0o600)

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            volumes=[
                VolumeMount("/var/run/docker.sock", "/var/run/docker.sock"),
                VolumeMount(str(self.data_dir(ctx)), "/data"),
            ],
            healthcheck=HealthCmd(
                test="wget --no-verbose --tries=1 --spider --no-check-certificate https://localhost:9443/ || exit 1",
                start_period="60s",
            ),
            command=["--admin-password-file", "/data/admin-password"],
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        client = ServiceHttpClient(base_url="https://localhost:9443", timeout_seconds=ctx.http_timeout)
        if client.is_reachable("/"):
            return HealthResult.ok(self.name, "UI responding")
        return HealthResult.unreachable(self.name, "https://localhost:9443 not responding")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("Portainer", f"https://{self.hostname}.{ctx.domain}:9443")]
