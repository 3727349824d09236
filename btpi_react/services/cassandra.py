"""
Cassandra: storage backend for TheHive.
"""

from __future__ import annotations

import os
from typing import List, Tuple

from ..api.containers import ContainerSpec, HealthCmd, PortMapping, VolumeMount
from ..api.health import HealthResult
from ..core.errors import IntegrationError
from .base import Service, ServiceContext


CQL_HEALTH_QUERY = "SELECT release_version FROM system.local;"

_SUBDIRS = ("data", "logs", "commitlog", "saved_caches", "hints")
_MOUNTS = {
    "data": "/var/lib/cassandra",
    "logs": "/var/log/cassandra",
    "commitlog": "/var/lib/cassandra/commitlog",
    "saved_caches": "/var/lib/cassandra/saved_caches",
    "hints": "/var/lib/cassandra/hints",
}


class CassandraService(Service):
    name = "cassandra"
    category = "database"
    description = "Wide-column database"
    image = "cassandra:4.1"
    ports = (PortMapping(9042, 9042), PortMapping(7000, 7000))
    network_key = "core"

    def prepare(self, ctx: ServiceContext) -> None:
        for sub in _SUBDIRS:
            path = self.data_dir(ctx) / sub
            path.mkdir(parents=True, exist_ok=True)
            os.chmod(path, 0o777)

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            env={
                "CASSANDRA_CLUSTER_NAME": "btpi-cluster",
                "CASSANDRA_DC": "datacenter1",
                "CASSANDRA_RACK": "rack1",
                "CASSANDRA_ENDPOINT_SNITCH": "GossipingPropertyFileSnitch",
                "CASSANDRA_NUM_TOKENS": "128",
                "CASSANDRA_SEEDS": "cassandra",
                "MAX_HEAP_SIZE": "2G",
                "HEAP_NEWSIZE": "512M",
            },
            volumes=[
                VolumeMount(str(self.data_dir(ctx) / sub), target) for sub, target in _MOUNTS.items()
            ],
            healthcheck=HealthCmd(
                test=f"cqlsh -e '{CQL_HEALTH_QUERY}'",
                retries=10,
                start_period="120s",
            ),
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        try:
            result = ctx.runtime.exec(self.container_name, ["cqlsh", "-e", CQL_HEALTH_QUERY])
        except IntegrationError as exc:
            return HealthResult.unreachable(self.name, str(exc))
        if result.ok:
            return HealthResult.ok(self.name, "CQL responding")
        return HealthResult.failed(self.name, result.output[:200] or "cqlsh failed")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("Cassandra CQL", "localhost:9042")]
