"""
Service catalogue, deployment modes and host port allocation checks.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from ..core.errors import ValidationError
from .base import Service
from .cassandra import CassandraService
from .cortex import CortexService
from .elasticsearch import ElasticsearchService
from .kasm import KasmService
from .portainer import PortainerService
from .thehive import TheHiveService
from .velociraptor import VelociraptorService
from .wazuh import WazuhIndexerService, WazuhManagerService


SERVICE_CATEGORIES: Dict[str, List[str]] = {
    "kasm": ["kasm"],
    "database": ["elasticsearch", "cassandra", "wazuh-indexer"],
    "security": ["wazuh-manager", "velociraptor"],
    "infrastructure": ["portainer"],
    "case-management": ["thehive", "cortex"],
}

FULL_MODE_CATEGORIES = ("kasm", "database", "security", "infrastructure")

SIMPLE_MODE_SERVICES = ("kasm", "elasticsearch", "cassandra", "velociraptor", "portainer")


class ServiceRegistry:
    """
    Ordered collection of known services, keyed by name.
    """

    def __init__(self, services: Iterable[Service]) -> None:
        self._services: Dict[str, Service] = {}
        for service in services:
            if service.name in self._services:
                raise ValidationError(f"Duplicate service definition: {service.name}")
            self._services[service.name] = service

    def __contains__(self, name: object) -> bool:
        return name in self._services

    def __iter__(self) -> Iterator[Service]:
        return iter(self._services.values())

    def __len__(self) -> int:
        return len(self._services)

    def names(self) -> List[str]:
        return list(self._services)

    def get(self, name: str) -> Service:
        try:
            return self._services[name]
        except KeyError as exc:
            raise ValidationError(
                f"Unknown service: {name}. Available: {', '.join(self.names())}"
            ) from exc

    def resolve(self, mode: str, requested: Optional[Sequence[str]] = None) -> List[Service]:
        """
        Return the services to deploy, in deployment order.

        ``full`` walks the categories kasm, database, security and
        infrastructure; ``simple`` is a fixed minimal set; ``custom`` takes
        the requested names, rejecting unknown ones and moving selected
        dependencies ahead of their dependants.
        """

        if mode == "full":
            names = [name for category in FULL_MODE_CATEGORIES for name in SERVICE_CATEGORIES[category]]
        elif mode == "simple":
            names = list(SIMPLE_MODE_SERVICES)
        elif mode == "custom":
            if not requested:
                raise ValidationError("Custom mode requires at least one service")
            names = list(dict.fromkeys(requested))
        else:
            raise ValidationError(f"Invalid mode: {mode}. Must be full, simple, or custom.")

        services = [self.get(name) for name in names]
        if mode == "custom":
            services = order_by_dependencies(services)
        return services


def order_by_dependencies(services: Sequence[Service]) -> List[Service]:
    """
    Stable ordering that places every selected dependency before the
    services that need it.
    """

    selected = {service.name: service for service in services}
    ordered: List[Service] = []
    visiting: set = set()

    def visit(service: Service) -> None:
        if service in ordered:
            return
        if service.name in visiting:
            raise ValidationError(f"Circular dependency involving {service.name}")
        visiting.add(service.name)
        for dependency in service.dependencies:
            if dependency in selected:
                visit(selected[dependency])
        visiting.discard(service.name)
        ordered.append(service)

    for service in services:
        visit(service)
    return ordered


def validate_port_allocation(services: Iterable[Service]) -> None:
    """
    Raise ``ValidationError`` if two selected services publish the same
    host port.
    """

    owners: Dict[int, List[str]] = {}
    for service in services:
        for port in service.host_ports():
            owners.setdefault(port, []).append(service.name)

    clashes = {port: names for port, names in owners.items() if len(names) > 1}
    if clashes:
        details = ", ".join(f"{port} ({' and '.join(names)})" for port, names in sorted(clashes.items()))
        raise ValidationError(f"Host port conflict between services: {details}")



def default_registry() -> ServiceRegistry:
    return ServiceRegistry(
        [
            KasmService(),
            ElasticsearchService(),
            CassandraService(),
            WazuhIndexerService(),
            WazuhManagerService(),
            VelociraptorService(),
            PortainerService(),
            TheHiveService(),
            CortexService(),
        ]
    )
