"""
Wazuh indexer (OpenSearch fork) and Wazuh manager.

The indexer publishes its REST API on host port 9400 so that it does not
collide with Elasticsearch on 9200. Its security plugin is disabled, so
checks go over plain HTTP without credentials.
"""

from __future__ import annotations

import os
import shutil
from typing import List, Tuple

from ..api.containers import ContainerSpec, HealthCmd, PortMapping, VolumeMount
from ..api.health import HealthResult
from ..core.errors import IntegrationError
from ..integrations.elastic import HEALTHY_CLUSTER_STATES, ElasticHttpClient
from ..integrations.http_common import HttpApiError
from ..integrations.wazuh import WazuhHttpClient
from ..orchestrator.certificates import WAZUH_CERT_FILES, generate_wazuh_certificates
from .base import Service, ServiceContext
from .rendering import write_yaml


WAZUH_VERSION = "4.9.0"
WAZUH_API_USER = "wazuh"


class WazuhIndexerService(Service):
    name = "wazuh-indexer"
    category = "database"
    description = "Wazuh alert index (OpenSearch)"
    image = f"wazuh/wazuh-indexer:{WAZUH_VERSION}"
    dependencies = ("elasticsearch",)
    ports = (PortMapping(9400, 9200),)
    network_key = "wazuh"

    def client(self, ctx: ServiceContext) -> ElasticHttpClient:
        return ElasticHttpClient(base_url="http://localhost:9400", timeout_seconds=ctx.http_timeout)

    def config_file(self, ctx: ServiceContext):
        return self.config_dir(ctx) / "opensearch.yml"

    def prepare(self, ctx: ServiceContext) -> None:
        data_dir = self.data_dir(ctx)
        data_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(data_dir, 0o777)
        write_yaml(
            self.config_file(ctx),
            {
                "cluster.name": "wazuh-cluster",
                "node.name": "wazuh-indexer-1",
                "network.host": "0.0.0.0",
                "http.port": 9200,
                "discovery.type": "single-node",
                "bootstrap.memory_lock": True,
                "plugins.security.disabled": True,
                "plugins.security.ssl.transport.enabled": False,
                "plugins.security.ssl.http.enabled": False,
                "plugins.security.audit.type": "noop",
                "plugins.security.system_indices.enabled": False,
                "indices.memory.index_buffer_size": "10%",
                "thread_pool.write.queue_size": 10000,
                "thread_pool.search.queue_size": 10000,
            },
        )

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            env={
                "OPENSEARCH_JAVA_OPTS": "-Xms512m -Xmx512m",
                "DISABLE_SECURITY_PLUGIN": "true",
                "DISABLE_INSTALL_DEMO_CONFIG": "true",
            },
            volumes=[
                VolumeMount(str(self.data_dir(ctx)), "/usr/share/wazuh-indexer/data"),
                VolumeMount(
                    str(self.config_file(ctx)),
                    "/usr/share/wazuh-indexer/config/opensearch.yml",
                    read_only=True,
                ),
            ],
            ulimits={"memlock": "-1:-1"},
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        try:
            status = self.client(ctx).cluster_status()
        except HttpApiError as exc:
            return HealthResult.failed(self.name, str(exc))
        except IntegrationError as exc:
            return HealthResult.unreachable(self.name, str(exc))
        if status in HEALTHY_CLUSTER_STATES:
            return HealthResult.ok(self.name, f"cluster status {status}")
        return HealthResult.failed(self.name, f"cluster status {status}")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("Wazuh Indexer", "http://localhost:9400")]


class WazuhManagerService(Service):
    name = "wazuh-manager"
    category = "security"
    description = "Wazuh SIEM/XDR manager"
    image = f"wazuh/wazuh-manager:{WAZUH_VERSION}"
    dependencies = ("wazuh-indexer",)
    ports = (
        PortMapping(1514, 1514, "udp"),
        PortMapping(1515, 1515),
        PortMapping(514, 514, "udp"),
        PortMapping(55000, 55000),
    )
    network_key = "wazuh"
    hostname = "wazuh"

    _state_dirs = ("api", "etc", "logs", "queue", "var")

    def client(self, ctx: ServiceContext) -> WazuhHttpClient:
        return WazuhHttpClient(
            base_url="https://localhost:55000",
            username=WAZUH_API_USER,
            password=ctx.secret("WAZUH_API_PASSWORD") or None,
            timeout_seconds=ctx.http_timeout,
        )

    def ssl_dir(self, ctx: ServiceContext):
        return self.data_dir(ctx) / "ssl"

    def prepare(self, ctx: ServiceContext) -> None:
        for sub in self._state_dirs:
            (self.data_dir(ctx) / sub).mkdir(parents=True, exist_ok=True)

        cert_dir = ctx.paths.certificates_dir
        generate_wazuh_certificates(cert_dir, ctx.openssl)

        ssl_dir = self.ssl_dir(ctx)
        ssl_dir.mkdir(parents=True, exist_ok=True)
        for filename in WAZUH_CERT_FILES:
            target = ssl_dir / filename
            shutil.copyfile(cert_dir / filename, target)
            os.chmod(target, 0o600 if filename.endswith("-key.pem") else 0o644)

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        ssl_dir = self.ssl_dir(ctx)
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            env={
                "INDEXER_URL": "http://wazuh-indexer:9200",
                "API_USERNAME": WAZUH_API_USER,
                "API_PASSWORD": ctx.secret("WAZUH_API_PASSWORD"),
                "FILEBEAT_SSL_VERIFICATION_MODE": "none",
                "SSL_CERTIFICATE_AUTHORITIES": "/etc/ssl/root-ca.pem",
                "SSL_CERTIFICATE": "/etc/ssl/filebeat.pem",
                "SSL_KEY": "/etc/ssl/filebeat-key.pem",
            },
            volumes=[
                *(VolumeMount(str(self.data_dir(ctx) / sub), f"/var/ossec/{sub}") for sub in self._state_dirs),
                *(VolumeMount(str(ssl_dir / name), f"/etc/ssl/{name}", read_only=True) for name in WAZUH_CERT_FILES),
            ],
            healthcheck=HealthCmd(test="curl -sk https://localhost:55000 || exit 1"),
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        if self.client(ctx).is_reachable("/"):
            return HealthResult.ok(self.name, "API responding")
        return HealthResult.unreachable(self.name, "https://localhost:55000 not responding")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("Wazuh API", f"https://{self.hostname}.{ctx.domain}:55000")]
