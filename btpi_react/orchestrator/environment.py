"""
Generation and validation of the deployment secrets file (``config/.env``).
"""

from __future__ import annotations

import base64
import secrets
import socket
import uuid
from datetime import datetime
from typing import Dict, List, MutableMapping, Optional

from ..core.config import BtpiConfig
from ..core.config_storage import EnvSection, load_env_file, save_env_file
from ..core.logging import get_logger


logger = get_logger("btpi.orchestrator.environment")

REQUIRED_ENV_KEYS = ("BTPI_NETWORK", "SERVER_IP", "BTPI_VERSION")


def random_base64(num_bytes: int) -> str:
    """Same encoding as ``openssl rand -base64 N`` (single line)."""
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


def random_hex(num_bytes: int) -> str:
    return secrets.token_hex(num_bytes)


def detect_server_ip() -> str:
    """
    Address of the interface used for outbound traffic, or ``127.0.0.1``.

    No packet is sent: connecting a UDP socket only selects a route.
    """

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("8.8.8.8", 80))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()


def build_environment(
    config: BtpiConfig,
    deployment_id: str,
    deployment_date: str,
    server_ip: str,
) -> List[EnvSection]:
    """
    Fresh secrets and settings, grouped into titled sections.
    """

    networks = config.networks
    return [
        (
            "System Configuration",
            {
                "BTPI_VERSION": config.version,
                "DEPLOYMENT_ID": deployment_id,
                "DEPLOYMENT_DATE": deployment_date,
            },
        ),
        (
            "Database Passwords",
            {
                "ELASTIC_PASSWORD": random_base64(32),
                "CASSANDRA_PASSWORD": random_base64(32),
                "POSTGRES_PASSWORD": random_base64(32),
            },
        ),
        (
            "Application Secrets",
            {
                "VELOCIRAPTOR_PASSWORD": random_base64(32),
                "WAZUH_API_PASSWORD": random_base64(32),
                "PORTAINER_ADMIN_PASSWORD": random_base64(32),
                "THEHIVE_SECRET": random_base64(32),
                "CORTEX_SECRET": random_base64(32),
                "CORTEX_ADMIN_PASSWORD": random_base64(32),
                "CORTEX_API_KEY": "",
            },
        ),
        ("Cluster Keys", {"WAZUH_CLUSTER_KEY": random_hex(32)}),
        ("JWT Secrets", {"JWT_SECRET": random_base64(64)}),
        (
            "Domain Configuration",
            {
                "DOMAIN_NAME": config.deployment.domain_name,
                "SERVER_IP": server_ip,
            },
        ),
        (
            "Kasm Configuration",
            {
                "KASM_DEFAULT_ADMIN_PASSWORD": random_base64(16),
                "KASM_DEFAULT_USER_PASSWORD": random_base64(16),
            },
        ),
        (
            "Network Configuration",
            {
                "BTPI_NETWORK": networks.legacy_network,
                "BTPI_CORE_NETWORK": networks.core_network,
                "BTPI_WAZUH_NETWORK": networks.wazuh_network,
                "BTPI_INFRA_NETWORK": networks.infra_network,
                "BTPI_PROXY_NETWORK": networks.proxy_network,
                "BTPI_LEGACY_SUBNET": networks.legacy_subnet,
                "BTPI_CORE_SUBNET": networks.core_subnet,
                "BTPI_WAZUH_SUBNET": networks.wazuh_subnet,
                "BTPI_INFRA_SUBNET": networks.infra_subnet,
                "BTPI_PROXY_SUBNET": networks.proxy_subnet,
            },
        ),
    ]


def generate_environment(
    config: BtpiConfig,
    deployment_id: Optional[str] = None,
    deployment_date: Optional[str] = None,
    server_ip: Optional[str] = None,
) -> Dict[str, str]:
    """
    Create ``config/.env`` if it does not exist yet and return its contents.

    An existing file is never regenerated: its passwords are already baked
    into running containers and data directories.
    """

    env_file = config.paths.env_file

    if env_file.exists():
        logger.info("Environment configuration already exists")
    else:
        deployment_id = deployment_id or str(uuid.uuid4())
        deployment_date = deployment_date or datetime.now().strftime("%Y%m%d_%H%M%S")
        server_ip = server_ip or config.deployment.server_ip or detect_server_ip()

        save_env_file(
            build_environment(config, deployment_id, deployment_date, server_ip),
            env_file,
            header=[
                "BTPI-REACT Environment Configuration",
                f"Generated: {datetime.now().isoformat(timespec='seconds')}",
                f"Deployment ID: {deployment_id}",
            ],
        )
        logger.info("Environment configuration generated at %s", env_file)

    return load_env_file(env_file)


def validate_environment(env: MutableMapping[str, str], config: BtpiConfig) -> List[str]:
    """
    Fill in missing required keys with defaults.

    Returns:
        The keys that were missing.
    """

    defaults = {
        "BTPI_NETWORK": config.networks.legacy_network,
        "BTPI_CORE_NETWORK": config.networks.core_network,
        "BTPI_WAZUH_NETWORK": config.networks.wazuh_network,
        "BTPI_VERSION": config.version,
    }

    missing = [key for key in REQUIRED_ENV_KEYS if not env.get(key)]
    if missing:
        logger.warning("Missing environment variables: %s", ", ".join(missing))
    else:
        logger.info("All required environment variables are present")

    for key, value in defaults.items():
        if not env.get(key):
            env[key] = value
    if not env.get("SERVER_IP"):
        env["SERVER_IP"] = config.deployment.server_ip or detect_server_ip()

    logger.debug("BTPI_NETWORK=%s SERVER_IP=%s BTPI_VERSION=%s", env["BTPI_NETWORK"], env["SERVER_IP"], env["BTPI_VERSION"])
    logger.debug("ELASTIC_PASSWORD: %s", "SET" if env.get("ELASTIC_PASSWORD") else "UNSET")
    return missing
