"""
Cortex 3: observable analysis engine, indexed in Elasticsearch.
"""

from __future__ import annotations

from typing import List, Tuple

from ..api.containers import ContainerSpec, PortMapping, VolumeMount
from ..api.health import HealthResult
from ..core.errors import IntegrationError
from ..integrations.cortex import CortexHttpClient
from .base import Service, ServiceContext
from .rendering import render_hocon, write_text


CATALOG_URLS = {
    "analyzer": "https://download.thehive-project.org/analyzers.json",
    "responder": "https://download.thehive-project.org/responders.json",
}


def render_cortex_config(secret_key: str, elastic_password: str, domain: str) -> str:
    """
    Render Cortex ``application.conf``. Basic authentication is enabled so
    the orchestrator can provision users without a browser session.
    """

    executor = {"parallelism-min": 2, "parallelism-factor": 2.0, "parallelism-max": 4}
    body = {
        "search": {
            "index": "cortex",
            "uri": "http://elasticsearch:9200",
            "user": "elastic",
            "password": elastic_password,
        },
        "play.http.secret.key": secret_key,
        "auth": {
            "provider": ["local"],
            "method.basic": True,
            "defaultUserDomain": domain,
        },
        "analyzer": {"urls": [CATALOG_URLS["analyzer"]], "fork-join-executor": executor},
        "responder": {"urls": [CATALOG_URLS["responder"]], "fork-join-executor": executor},
        "job": {"runner": ["docker", "process"], "directory": "/tmp/cortex-jobs"},
    }
    return "# Cortex configuration for BTPI-REACT\n" + render_hocon(body)


class CortexService(Service):
    name = "cortex"
    category = "case-management"
    description = "Observable analysis and active response"
    image = "thehiveproject/cortex:3.1.8"
    dependencies = ("elasticsearch",)
    ports = (PortMapping(9001, 9001),)
    network_key = "core"
    hostname = "cortex"

    def client(self, ctx: ServiceContext) -> CortexHttpClient:
        return CortexHttpClient(base_url="http://localhost:9001", timeout_seconds=ctx.http_timeout)

    def config_file(self, ctx: ServiceContext):
        return self.config_dir(ctx) / "application.conf"

    def prepare(self, ctx: ServiceContext) -> None:
        (self.data_dir(ctx) / "jobs").mkdir(parents=True, exist_ok=True)
        (ctx.paths.logs_dir / self.name).mkdir(parents=True, exist_ok=True)
        write_text(
            self.config_file(ctx),
            render_cortex_config(
                secret_key=ctx.secret("CORTEX_SECRET"),
                elastic_password=ctx.secret("ELASTIC_PASSWORD"),
                domain=ctx.domain,
            ),
            mode=0o600,
        )

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            env={"JOB_DIRECTORY": "/tmp/cortex-jobs"},
            volumes=[
                VolumeMount(str(self.config_file(ctx)), "/etc/cortex/application.conf", read_only=True),
                VolumeMount("/var/run/docker.sock", "/var/run/docker.sock"),
                VolumeMount(str(self.data_dir(ctx) / "jobs"), "/tmp/cortex-jobs"),
                VolumeMount(str(ctx.paths.logs_dir / self.name), "/var/log/cortex"),
            ],
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        try:
            self.client(ctx).status()
        except IntegrationError as exc:
            return HealthResult.unreachable(self.name, str(exc))
        return HealthResult.ok(self.name, "status endpoint responding")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("Cortex", f"http://{self.hostname}.{ctx.domain}:9001")]
