"""
TheHive 5: case management, backed by Cassandra and Elasticsearch.

The Cortex connector section is only rendered once a Cortex API key is
known, which happens after Cortex itself has been deployed.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from ..api.containers import ContainerSpec, PortMapping, VolumeMount
from ..api.health import HealthResult
from ..core.errors import IntegrationError
from ..integrations.thehive import TheHiveHttpClient
from .base import Service, ServiceContext
from .rendering import render_hocon, write_text


CORTEX_CONNECTOR_MODULE = "org.thp.thehive.connector.cortex.CortexModule"


def render_thehive_config(
    secret_key: str,
    elastic_password: str,
    cortex_api_key: str = "",
    cortex_url: str = "http://cortex:9001",
) -> str:
    """
    Render TheHive ``application.conf``.
    """

    body: Dict[str, Any] = {
        "db.janusgraph": {
            "storage": {
                "backend": "cql",
                "hostname": ["cassandra"],
                "port": 9042,
                "cql": {"cluster-name": "btpi-cluster", "keyspace": "thehive"},
            },
            "index.search": {
                "backend": "elasticsearch",
                "hostname": ["elasticsearch"],
                "index-name": "thehive",
                "elasticsearch": {
                    "http.auth.type": "basic",
                    "http.auth.basic.username": "elastic",
                    "http.auth.basic.password": elastic_password,
                },
            },
        },
        "storage": {"provider": "localfs", "localfs.location": "/opt/thehive/files"},
        "http": {"address": "0.0.0.0", "port": 9000},
        "play.http.secret.key": secret_key,
    }

    lines = ["# TheHive configuration for BTPI-REACT", render_hocon(body)]
    if cortex_api_key:
        lines.append(f"play.modules.enabled += {CORTEX_CONNECTOR_MODULE}")
        lines.append(
            render_hocon(
                {
                    "cortex": {
                        "servers": [
                            {
                                "name": "local-cortex",
                                "url": cortex_url,
                                "auth": {"type": "bearer", "key": cortex_api_key},
                            }
                        ]
                    }
                }
            )
        )
    return "\n".join(lines)


class TheHiveService(Service):
    name = "thehive"
    category = "case-management"
    description = "Security incident case management"
    image = "strangebee/thehive:5.4"
    dependencies = ("cassandra", "elasticsearch")
    ports = (PortMapping(9000, 9000),)
    network_key = "core"
    hostname = "thehive"

    def client(self, ctx: ServiceContext) -> TheHiveHttpClient:
        return TheHiveHttpClient(base_url="http://localhost:9000", timeout_seconds=ctx.http_timeout)

    def config_file(self, ctx: ServiceContext):
        return self.config_dir(ctx) / "application.conf"

    def write_config(self, ctx: ServiceContext) -> None:
        write_text(
            self.config_file(ctx),
            render_thehive_config(
                secret_key=ctx.secret("THEHIVE_SECRET"),
                elastic_password=ctx.secret("ELASTIC_PASSWORD"),
                cortex_api_key=ctx.secret("CORTEX_API_KEY") if "cortex" in ctx.selected else "",
            ),
            mode=0o600,
        )

    def prepare(self, ctx: ServiceContext) -> None:
        for sub in ("files", "index"):
            (self.data_dir(ctx) / sub).mkdir(parents=True, exist_ok=True)
        (ctx.paths.logs_dir / self.name).mkdir(parents=True, exist_ok=True)
        self.write_config(ctx)

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            env={"JVM_OPTS": "-Xms1g -Xmx2g"},
            volumes=[
                VolumeMount(str(self.config_file(ctx)), "/etc/thehive/application.conf", read_only=True),
                VolumeMount(str(self.data_dir(ctx) / "files"), "/opt/thehive/files"),
                VolumeMount(str(self.data_dir(ctx) / "index"), "/opt/thehive/index"),
                VolumeMount(str(ctx.paths.logs_dir / self.name), "/var/log/thehive"),
            ],
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        try:
            self.client(ctx).status()
        except IntegrationError as exc:
            return HealthResult.unreachable(self.name, str(exc))
        return HealthResult.ok(self.name, "status endpoint responding")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("TheHive", f"http://{self.hostname}.{ctx.domain}:9000")]
