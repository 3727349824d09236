"""
Pre-deployment checks: host resources, required tooling, connectivity
and host port conflicts.
"""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import psutil
import requests

from ..api.containers import PortMapping
from ..core.dto import BaseDTO
from ..core.errors import DeploymentError
from ..core.logging import get_logger
from ..integrations.docker import DockerCli
from ..integrations.ports import is_port_open
from ..services.base import Service, ServiceContext
from .health import check_service_health


logger = get_logger("btpi.orchestrator.preflight")

SUPPORTED_OS = ("Ubuntu 22.04", "Ubuntu 20.04", "Debian GNU/Linux 11", "Debian GNU/Linux 12")
MIN_MEMORY_GB = 16
MIN_CPU_CORES = 4
MIN_DISK_GB = 100
CONNECTIVITY_URL = "https://www.google.com"

_GB = 1024 ** 3


@dataclass
class SystemInfo(BaseDTO):
    os_name: str
    kernel: str
    cpu_count: int
    memory_gb: float
    disk_free_gb: float
    is_root: bool


def read_os_name(os_release: Path = Path("/etc/os-release")) -> str:
    try:
        for line in os_release.read_text(encoding="utf-8").splitlines():
            if line.startswith("PRETTY_NAME="):
                return line.split("=", 1)[1].strip().strip('"')
    except OSError:
        pass
    return platform.platform()


def collect_system_info(root: Path) -> SystemInfo:
    disk_path = root if root.exists() else Path("/")
    return SystemInfo(
        os_name=read_os_name(),
        kernel=platform.release(),
        cpu_count=os.cpu_count() or 1,
        memory_gb=round(psutil.virtual_memory().total / _GB, 1),
        disk_free_gb=round(psutil.disk_usage(str(disk_path)).free / _GB, 1),
        is_root=hasattr(os, "geteuid") and os.geteuid() == 0,
    )


def has_internet_connectivity(url: str = CONNECTIVITY_URL, timeout: int = 5) -> bool:
    try:
        requests.head(url, timeout=timeout)
    except requests.exceptions.RequestException:
        return False
    return True


def is_udp_port_bound(port: int) -> bool:
    try:
        connections = psutil.net_connections(kind="udp")
    except (psutil.Error, OSError) as exc:
        logger.debug("Cannot list UDP sockets: %s", exc)
        return False
    return any(conn.laddr and conn.laddr.port == port for conn in connections)


def port_in_use(mapping: PortMapping) -> bool:
    if mapping.protocol == "udp":
        return is_udp_port_bound(mapping.host)
    return is_port_open(mapping.host)


@dataclass
class PreflightReport(BaseDTO):
    system: Optional[SystemInfo] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    port_conflicts: List[str] = field(default_factory=list)
    resolved_ports: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and not self.port_conflicts


class PreflightChecker:
    """
    Runs the pre-deployment checks. The port check is injectable for testing.
    """

    def __init__(
        self,
        ctx: ServiceContext,
        docker: Optional[DockerCli] = None,
        system_info: Callable[[Path], SystemInfo] = collect_system_info,
        connectivity: Callable[[], bool] = has_internet_connectivity,
        port_check: Callable[[PortMapping], bool] = port_in_use,
    ) -> None:
        self._ctx = ctx
        self._docker = docker or DockerCli()
        self._system_info = system_info
        self._connectivity = connectivity
        self._port_check = port_check

    def check_system_requirements(self, report: PreflightReport) -> None:
        info = self._system_info(self._ctx.paths.root_dir)
        report.system = info

        logger.info("System resources: %s CPU cores, %sGB memory, %sGB free disk", info.cpu_count, info.memory_gb, info.disk_free_gb)

        if not info.is_root:
            report.errors.append("Deployment must be run as root or with sudo")
        if not any(name in info.os_name for name in SUPPORTED_OS):
            report.warnings.append(f"{info.os_name} is not Ubuntu 22.04/20.04 or Debian 11/12")
        if info.memory_gb < MIN_MEMORY_GB:
            report.warnings.append(f"System has less than {MIN_MEMORY_GB}GB RAM. Performance may be impacted.")
        if info.cpu_count < MIN_CPU_CORES:
            report.warnings.append(f"System has less than {MIN_CPU_CORES} CPU cores. Performance may be impacted.")
        if info.disk_free_gb < MIN_DISK_GB:
            report.errors.append(f"Less than {MIN_DISK_GB}GB disk space available ({info.disk_free_gb}GB)")

        if shutil.which(self._docker.binary) is None:
            report.errors.append("Docker is not installed")
        elif self._docker.compose_version() is None:
            report.errors.append("Docker Compose is not installed or not working")

        if not self._connectivity():
            report.errors.append("No internet connectivity detected")

    def _owned_by_healthy_service(self, service: Service) -> bool:
        return check_service_health(service, self._ctx).healthy

    def check_port_conflicts(self, services: Sequence[Service], report: PreflightReport) -> None:
        """
        A port in use counts as resolved when the service that should own
        it is already up and healthy; otherwise it is a conflict.
        """

        for service in services:
            healthy: Optional[bool] = None
            for mapping in service.ports:
                if not self._port_check(mapping):
                    continue
                if healthy is None:
                    healthy = self._owned_by_healthy_service(service)
                label = f"{mapping.host}/{mapping.protocol} ({service.name})"
                if healthy:
                    logger.info("Port %s is in use by healthy %s", mapping.host, service.name)
                    report.resolved_ports.append(label)
                else:
                    logger.warning("Port %s is already in use (required for %s)", mapping.host, service.name)
                    report.port_conflicts.append(label)

    def run(self, services: Sequence[Service]) -> PreflightReport:
        """
        Run every check.

        Raises:
            DeploymentError: If a requirement is not met or a port conflict
                remains.
        """

        report = PreflightReport()
        logger.info("Checking system requirements")
        self.check_system_requirements(report)
        logger.info("Checking for port conflicts")
        self.check_port_conflicts(services, report)

        for message in report.warnings:
            logger.warning(message)
        for message in report.errors:
            logger.error(message)

        if report.port_conflicts:
            logger.error("Found %s port conflicts: %s", len(report.port_conflicts), ", ".join(report.port_conflicts))
        elif report.resolved_ports:
            logger.info("Resolved %s port conflicts automatically", len(report.resolved_ports))

        if not report.ok:
            raise DeploymentError(
                "Pre-deployment checks failed: "
                + "; ".join(report.errors + [f"port conflict {item}" for item in report.port_conflicts])
            )

        logger.info("Pre-deployment checks passed")
        return report
