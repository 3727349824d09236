"""
Elasticsearch: the shared search backend (single node, security enabled).
"""

from __future__ import annotations

import os
from typing import List, Tuple

from ..api.containers import ContainerSpec, PortMapping, VolumeMount
from ..api.health import HealthResult
from ..core.errors import IntegrationError
from ..integrations.elastic import HEALTHY_CLUSTER_STATES, ElasticHttpClient, is_security_exception
from ..integrations.http_common import HttpApiError
from .base import Service, ServiceContext
from .rendering import write_yaml


class ElasticsearchService(Service):
    name = "elasticsearch"
    category = "database"
    description = "Search and analytics engine"
    image = "docker.elastic.co/elasticsearch/elasticsearch:8.15.3"
    ports = (PortMapping(9200, 9200), PortMapping(9300, 9300))
    network_key = "core"

    def client(self, ctx: ServiceContext) -> ElasticHttpClient:
        return ElasticHttpClient(
            base_url="http://localhost:9200",
            username="elastic",
            password=ctx.secret("ELASTIC_PASSWORD") or None,
            timeout_seconds=ctx.http_timeout,
        )

    def config_file(self, ctx: ServiceContext):
        return self.config_dir(ctx) / "elasticsearch.yml"

    def prepare(self, ctx: ServiceContext) -> None:
        data_dir = self.data_dir(ctx)
        data_dir.mkdir(parents=True, exist_ok=True)
        # the image runs as uid 1000
        os.chmod(data_dir, 0o777)
        write_yaml(
            self.config_file(ctx),
            {
                "cluster.name": "btpi-cluster",
                "node.name": "btpi-node-1",
                "network.host": "0.0.0.0",
                "http.port": 9200,
                "discovery.type": "single-node",
                "bootstrap.memory_lock": True,
                "xpack.security.enabled": True,
                "xpack.security.enrollment.enabled": False,
                "xpack.security.http.ssl.enabled": False,
                "xpack.security.transport.ssl.enabled": False,
            },
        )

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            env={
                "ES_JAVA_OPTS": "-Xms512m -Xmx512m",
                "ELASTIC_PASSWORD": ctx.secret("ELASTIC_PASSWORD"),
            },
            volumes=[
                VolumeMount(str(self.data_dir(ctx)), "/usr/share/elasticsearch/data"),
                VolumeMount(
                    str(self.config_file(ctx)),
                    "/usr/share/elasticsearch/config/elasticsearch.yml",
                    read_only=True,
                ),
            ],
            ulimits={"memlock": "-1:-1"},
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        """
        Green or yellow cluster status is healthy. A ``security_exception``
        means the node is up and enforcing authentication, which also counts.
        """

        try:
            status = self.client(ctx).cluster_status()
        except HttpApiError as exc:
            if is_security_exception(exc):
                return HealthResult.ok(self.name, "responding (authentication required)")
            return HealthResult.failed(self.name, str(exc))
        except IntegrationError as exc:
            return HealthResult.unreachable(self.name, str(exc))

        if status in HEALTHY_CLUSTER_STATES:
            return HealthResult.ok(self.name, f"cluster status {status}")
        return HealthResult.failed(self.name, f"cluster status {status}")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("Elasticsearch", "http://localhost:9200")]
