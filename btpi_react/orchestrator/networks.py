"""
Docker bridge networks shared by the bundle.
"""

from __future__ import annotations

from typing import List

from ..api.containers import ContainerRuntime, NetworkSpec
from ..core.config import NetworkConfig
from ..core.errors import DeploymentError, IntegrationError
from ..core.logging import get_logger


logger = get_logger("btpi.orchestrator.networks")


def network_specs(networks: NetworkConfig) -> List[NetworkSpec]:
    """
    The bundle's networks in creation order.
    """

    return [
        NetworkSpec(networks.core_network, networks.core_subnet, "Core network (Elasticsearch, Cassandra, TheHive, Cortex)"),
        NetworkSpec(networks.wazuh_network, networks.wazuh_subnet, "Wazuh network (indexer, manager)"),
        NetworkSpec(networks.infra_network, networks.infra_subnet, "Infrastructure network (Portainer)"),
        NetworkSpec(networks.proxy_network, networks.proxy_subnet, "Proxy network (external access)"),
        NetworkSpec(networks.legacy_network, networks.legacy_subnet, "Legacy network (Velociraptor)"),
    ]


def setup_networks(runtime: ContainerRuntime, networks: NetworkConfig) -> List[str]:
    """
    Create every missing network.

    Returns:
        Names of the networks that were created.

    Raises:
        DeploymentError: If the core or Wazuh network is still missing
            afterwards.
    """

    existing = set(runtime.list_networks())
    created: List[str] = []

    for spec in network_specs(networks):
        if spec.name in existing:
            logger.info("Network %s already exists", spec.name)
            continue
        logger.info("Creating network %s (%s): %s", spec.name, spec.subnet, spec.description)
        try:
            runtime.create_network(spec)
        except IntegrationError as exc:
            logger.error("Failed to create network %s: %s", spec.name, exc)
            continue
        created.append(spec.name)

    available = set(runtime.list_networks())
    missing = [name for name in (networks.core_network, networks.wazuh_network) if name not in available]
    if missing:
        raise DeploymentError(f"Required networks missing after setup: {', '.join(missing)}")

    return created


def cleanup_networks(runtime: ContainerRuntime, networks: NetworkConfig) -> List[str]:
    """
    Disconnect all containers from the bundle's networks and remove them.

    Returns:
        Names of the networks that were removed.
    """

    existing = set(runtime.list_networks())
    removed: List[str] = []

    for spec in network_specs(networks):
        if spec.name not in existing:
            logger.info("Network %s does not exist", spec.name)
            continue
        for container in runtime.network_members(spec.name):
            logger.info("Disconnecting %s from %s", container, spec.name)
            runtime.disconnect(spec.name, container)
        try:
            runtime.remove_network(spec.name)
        except IntegrationError as exc:
            logger.warning("Could not remove network %s: %s", spec.name, exc)
            continue
        removed.append(spec.name)

    return removed
