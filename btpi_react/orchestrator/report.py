"""
Plain-text deployment report and console summary.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Collection, Dict, List, Optional, Sequence

from ..core.errors import IntegrationError
from ..core.logging import get_logger
from ..services.base import Service, ServiceContext
from .health import check_service_health
from .preflight import SystemInfo


logger = get_logger("btpi.orchestrator.report")

STATUS_RUNNING = "RUNNING"
STATUS_NOT_RUNNING = "NOT RUNNING"
STATUS_FAILED = "FAILED"

NEXT_STEPS = [
    "Change the default passwords stored in config/.env",
    "Configure Wazuh agents on endpoints to report to this server",
    "Deploy Velociraptor clients from data/velociraptor/clients",
    "Review firewall rules for the published ports",
    "Schedule regular backups of the data directory",
]


def service_status(service: Service, ctx: ServiceContext, failed: Collection[str] = ()) -> str:
    if service.name in failed:
        return STATUS_FAILED
    if service.native:
        return STATUS_RUNNING if check_service_health(service, ctx).healthy else STATUS_NOT_RUNNING
    try:
        running = ctx.runtime.is_running(service.container_name)
    except IntegrationError:
        running = False
    return STATUS_RUNNING if running else STATUS_NOT_RUNNING


def collect_statuses(
    services: Sequence[Service],
    ctx: ServiceContext,
    failed: Collection[str] = (),
) -> Dict[str, str]:
    return {service.name: service_status(service, ctx, failed) for service in services}


def access_lines(services: Sequence[Service], ctx: ServiceContext) -> List[str]:
    lines = []
    for service in services:
        for label, url in service.access_urls(ctx):
            lines.append(f"{label}: {url}")
    return lines


def render_deployment_report(
    ctx: ServiceContext,
    services: Sequence[Service],
    statuses: Dict[str, str],
    system: Optional[SystemInfo] = None,
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now()
    config = ctx.config
    paths = ctx.paths

    lines = [
        "BTPI-REACT Deployment Report",
        "=" * 40,
        f"Generated: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Deployment ID: {ctx.env.get('DEPLOYMENT_ID', 'unknown')}",
        f"Version: {config.version}",
        f"Mode: {config.deployment.mode}",
        "",
        "System Information",
        "-" * 20,
    ]
    if system is not None:
        lines += [
            f"OS: {system.os_name}",
            f"Kernel: {system.kernel}",
            f"CPU cores: {system.cpu_count}",
            f"Memory: {system.memory_gb}GB",
            f"Free disk: {system.disk_free_gb}GB",
        ]
    lines += [
        f"Server IP: {ctx.server_ip}",
        f"Domain: {ctx.domain}",
        "",
        "Service Status",
        "-" * 20,
    ]
    lines += [f"{name}: {status}" for name, status in statuses.items()]
    lines += ["", "Access URLs", "-" * 20]
    lines += access_lines(services, ctx)
    lines += [
        "",
        "Locations",
        "-" * 20,
        f"Configuration: {paths.config_dir}",
        f"Secrets: {paths.env_file}",
        f"Certificates: {paths.certificates_dir}",
        f"Data: {paths.data_dir}",
        f"Logs: {paths.logs_dir}",
        f"Backups: {paths.backups_dir}",
        "",
        "Next Steps",
        "-" * 20,
    ]
    lines += [f"{index}. {step}" for index, step in enumerate(NEXT_STEPS, start=1)]
    return "\n".join(lines) + "\n"


def write_deployment_report(
    ctx: ServiceContext,
    services: Sequence[Service],
    statuses: Dict[str, str],
    system: Optional[SystemInfo] = None,
    now: Optional[datetime] = None,
) -> Path:
    now = now or datetime.now()
    logs_dir = ctx.paths.logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / f"deployment_report_{now.strftime('%Y%m%d_%H%M%S')}.txt"
    path.write_text(render_deployment_report(ctx, services, statuses, system, now), encoding="utf-8")
    logger.info("Deployment report generated: %s", path)
    return path


def console_summary(ctx: ServiceContext, services: Sequence[Service], statuses: Dict[str, str]) -> str:
    lines = ["", "BTPI-REACT deployment summary", ""]
    lines += [f"  {name:<16} {status}" for name, status in statuses.items()]
    lines += ["", "Access URLs:"]
    lines += [f"  {line}" for line in access_lines(services, ctx)]
    lines += ["", f"Credentials are stored in {ctx.paths.env_file}", ""]
    return "\n".join(lines)
