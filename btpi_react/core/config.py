"""
Configuration models and loading logic for BTPI-REACT.

The goal of this module is to provide a single place where runtime
configuration (directory layout, Docker network names, health-check
budgets, logging settings, deployment mode, etc.) is defined and loaded
from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from .errors import ConfigError


BTPI_VERSION = "2.0.0"

DEPLOYMENT_MODES = ("full", "simple", "custom")

_TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass
class PathsConfig:
    """
    Directory layout of a deployment.

    Everything the orchestrator writes lives under ``root_dir``.
    """

    root_dir: Path

    @property
    def config_dir(self) -> Path:
        return self.root_dir / "config"

    @property
    def services_dir(self) -> Path:
        return self.root_dir / "services"

    @property
    def data_dir(self) -> Path:
        return self.root_dir / "data"

    @property
    def logs_dir(self) -> Path:
        return self.root_dir / "logs"

    @property
    def backups_dir(self) -> Path:
        return self.root_dir / "backups"

    @property
    def certificates_dir(self) -> Path:
        return self.config_dir / "certificates"

    @property
    def env_file(self) -> Path:
        return self.config_dir / ".env"


@dataclass
class NetworkConfig:
    """
    Docker bridge networks used by the bundle.
    """

    legacy_network: str = "btpi-network"
    legacy_subnet: str = "172.20.0.0/16"
    core_network: str = "btpi-core-network"
    core_subnet: str = "172.24.0.0/16"
    wazuh_network: str = "btpi-wazuh-network"
    wazuh_subnet: str = "172.21.0.0/16"
    infra_network: str = "btpi-infra-network"
    infra_subnet: str = "172.22.0.0/16"
    proxy_network: str = "btpi-proxy-network"
    proxy_subnet: str = "172.23.0.0/16"


@dataclass
class HealthCheckConfig:
    """
    Polling budgets for service readiness checks (all in seconds).
    """

    interval_seconds: int = 10
    default_timeout_seconds: int = 120
    service_timeout_seconds: int = 300
    dependency_timeout_seconds: int = 60
    http_timeout_seconds: int = 10
    restart_grace_seconds: int = 30


@dataclass
class LoggingConfig:
    """
    Logging-related configuration.
    """

    log_dir: str = "logs"
    log_level: str = "INFO"


@dataclass
class DeploymentConfig:
    """
    What to deploy and how.
    """

    mode: str = "full"
    services: List[str] = field(default_factory=list)
    skip_checks: bool = False
    skip_optimization: bool = False
    debug: bool = False
    domain_name: str = "btpi.local"
    server_ip: Optional[str] = None

    def validate(self) -> None:
        if self.mode not in DEPLOYMENT_MODES:
            raise ConfigError(
                f"Invalid mode: {self.mode}. Must be full, simple, or custom."
            )
        if self.mode == "custom" and not self.services:
            raise ConfigError("Custom mode requires --services to be specified")


@dataclass
class WebConfig:
    """
    Configuration for the status web server.
    """

    host: str = "0.0.0.0"
    port: int = 8085


@dataclass
class BtpiConfig:
    """
    Top-level configuration for BTPI-REACT.
    """

    paths: PathsConfig
    networks: NetworkConfig = field(default_factory=NetworkConfig)
    health: HealthCheckConfig = field(default_factory=HealthCheckConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    web: WebConfig = field(default_factory=WebConfig)
    version: str = BTPI_VERSION


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be a positive integer")
    return value


def _get_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def split_service_list(raw: Optional[str]) -> List[str]:
    """
    Split a comma (or whitespace) separated service list.
    """

    if not raw:
        return []
    return [item for item in raw.replace(",", " ").split() if item]


def load_config(environ: Optional[Mapping[str, str]] = None) -> BtpiConfig:
    """
    Load BTPI-REACT configuration from environment variables.

    Environment variables:
        BTPI_ROOT_DIR: Deployment root (default: current directory).
        BTPI_LOG_DIR: Directory for log files (default: "<root>/logs").
        BTPI_LOG_LEVEL: Root log level (default: "INFO").

        BTPI_MODE: full, simple or custom (default: "full").
        BTPI_SERVICES: Comma-separated services for custom mode.
        BTPI_SKIP_CHECKS / BTPI_SKIP_OPTIMIZATION / BTPI_DEBUG: booleans.
        BTPI_DOMAIN_NAME: Local domain (default: "btpi.local").
        BTPI_SERVER_IP: Advertised server IP (default: detected).

        BTPI_HEALTH_INTERVAL_SECONDS, BTPI_HEALTH_TIMEOUT_SECONDS,
        BTPI_SERVICE_TIMEOUT_SECONDS, BTPI_DEPENDENCY_TIMEOUT_SECONDS,
        BTPI_HTTP_TIMEOUT_SECONDS, BTPI_RESTART_GRACE_SECONDS: polling budgets.

        BTPI_NETWORK, BTPI_CORE_NETWORK, BTPI_WAZUH_NETWORK,
        BTPI_INFRA_NETWORK, BTPI_PROXY_NETWORK and matching *_SUBNET:
        Docker network names and subnets.

        BTPI_WEB_HOST / BTPI_WEB_PORT: status server bind address.
    """

    env = os.environ if environ is None else environ

    root_dir = Path(env.get("BTPI_ROOT_DIR") or os.getcwd()).resolve()
    paths = PathsConfig(root_dir=root_dir)

    logging_cfg = LoggingConfig(
        log_dir=env.get("BTPI_LOG_DIR") or str(paths.logs_dir),
        log_level=env.get("BTPI_LOG_LEVEL", "INFO"),
    )

    defaults = NetworkConfig()
    networks = NetworkConfig(
        legacy_network=env.get("BTPI_NETWORK", defaults.legacy_network),
        legacy_subnet=env.get("BTPI_LEGACY_SUBNET", defaults.legacy_subnet),
        core_network=env.get("BTPI_CORE_NETWORK", defaults.core_network),
        core_subnet=env.get("BTPI_CORE_SUBNET", defaults.core_subnet),
        wazuh_network=env.get("BTPI_WAZUH_NETWORK", defaults.wazuh_network),
        wazuh_subnet=env.get("BTPI_WAZUH_SUBNET", defaults.wazuh_subnet),
        infra_network=env.get("BTPI_INFRA_NETWORK", defaults.infra_network),
        infra_subnet=env.get("BTPI_INFRA_SUBNET", defaults.infra_subnet),
        proxy_network=env.get("BTPI_PROXY_NETWORK", defaults.proxy_network),
        proxy_subnet=env.get("BTPI_PROXY_SUBNET", defaults.proxy_subnet),
    )

    health_defaults = HealthCheckConfig()
    health = HealthCheckConfig(
        interval_seconds=_get_int(env, "BTPI_HEALTH_INTERVAL_SECONDS", health_defaults.interval_seconds),
        default_timeout_seconds=_get_int(env, "BTPI_HEALTH_TIMEOUT_SECONDS", health_defaults.default_timeout_seconds),
        service_timeout_seconds=_get_int(env, "BTPI_SERVICE_TIMEOUT_SECONDS", health_defaults.service_timeout_seconds),
        dependency_timeout_seconds=_get_int(
            env, "BTPI_DEPENDENCY_TIMEOUT_SECONDS", health_defaults.dependency_timeout_seconds
        ),
        http_timeout_seconds=_get_int(env, "BTPI_HTTP_TIMEOUT_SECONDS", health_defaults.http_timeout_seconds),
        restart_grace_seconds=_get_int(env, "BTPI_RESTART_GRACE_SECONDS", health_defaults.restart_grace_seconds),
    )

    deployment = DeploymentConfig(
        mode=env.get("BTPI_MODE", "full"),
        services=split_service_list(env.get("BTPI_SERVICES")),
        skip_checks=_get_bool(env, "BTPI_SKIP_CHECKS"),
        skip_optimization=_get_bool(env, "BTPI_SKIP_OPTIMIZATION"),
        debug=_get_bool(env, "BTPI_DEBUG"),
        domain_name=env.get("BTPI_DOMAIN_NAME", "btpi.local"),
        server_ip=env.get("BTPI_SERVER_IP") or None,
    )
    deployment.validate()

    web = WebConfig(
        host=env.get("BTPI_WEB_HOST", "0.0.0.0"),
        port=_get_int(env, "BTPI_WEB_PORT", 8085),
    )

    return BtpiConfig(
        paths=paths,
        networks=networks,
        health=health,
        logging=logging_cfg,
        deployment=deployment,
        web=web,
    )
