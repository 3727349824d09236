"""
End-to-end deployment workflow.

``DeploymentWorkflow.run`` is strictly sequential:

backup -> preflight -> system optimisation -> directories -> .env ->
certificates -> hosts file -> networks -> services (in order) ->
integrations -> smoke tests -> report.

A failing service is recorded and the workflow moves on; services that
depend on it are skipped. The overall result is successful only when no
service failed and the smoke tests passed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..api.containers import ContainerRuntime, ContainerState
from ..api.health import HealthState
from ..core.config import BtpiConfig
from ..core.config_storage import load_env_file
from ..core.dto import BaseDTO
from ..core.errors import BtpiError, DeploymentError, HealthCheckTimeout, IntegrationError
from ..core.logging import get_logger
from ..integrations.docker import DockerContainerRuntime
from ..integrations.openssl import OpenSslCli
from ..services.base import Service, ServiceContext
from ..services.registry import ServiceRegistry, default_registry, validate_port_allocation
from .backup import create_backup
from .certificates import generate_ssl_certificates
from .deployer import ServiceDeployer
from .environment import generate_environment, validate_environment
from .health import check_service_health, wait_for_service
from .hosts import update_hosts_file
from .integrations import IntegrationOutcome, configure_thehive_cortex
from .networks import setup_networks
from .preflight import PreflightChecker, SystemInfo
from .report import collect_statuses, write_deployment_report
from .smoke_tests import SmokeTestReport, SmokeTestSuite, write_smoke_report
from .system import SystemOptimizer, fix_deprecated_options, optimize_system, validate_daemon_config


logger = get_logger("btpi.orchestrator.workflow")


@dataclass
class ServiceRun(BaseDTO):
    """
    What happened to one service during a deployment or recovery.
    """

    service: str
    ok: bool
    action: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class ServiceStatus(BaseDTO):
    name: str
    category: str
    container: str
    health: HealthState
    detail: Optional[str] = None


@dataclass
class DeploymentResult(BaseDTO):
    """
    Outcome of ``DeploymentWorkflow.run``.
    """

    mode: str
    deployment_id: Optional[str] = None
    services: List[ServiceRun] = field(default_factory=list)
    integrations: List[IntegrationOutcome] = field(default_factory=list)
    smoke_tests: Optional[Dict[str, object]] = None
    statuses: Dict[str, str] = field(default_factory=dict)
    backup_path: Optional[str] = None
    report_path: Optional[str] = None

    @property
    def failed_services(self) -> List[str]:
        return [run.service for run in self.services if not run.ok]

    @property
    def ok(self) -> bool:
        smoke_ok = self.smoke_tests is None or bool(self.smoke_tests.get("ok"))
        return not self.failed_services and smoke_ok


class DeploymentWorkflow:
    """
    Deploys the services selected by the configuration.

    The container runtime, registry, host tuning and sleep function are
    injectable; the defaults talk to the real host.
    """

    def __init__(
        self,
        config: BtpiConfig,
        runtime: Optional[ContainerRuntime] = None,
        registry: Optional[ServiceRegistry] = None,
        openssl: Optional[OpenSslCli] = None,
        preflight: Optional[Callable[[ServiceContext], PreflightChecker]] = None,
        optimizer: Optional[SystemOptimizer] = None,
        hosts_file: Path = Path("/etc/hosts"),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.runtime = runtime or DockerContainerRuntime()
        self.registry = registry or default_registry()
        self.openssl = openssl or OpenSslCli()
        self._preflight = preflight or PreflightChecker
        self._optimizer = optimizer
        self._hosts_file = hosts_file
        self._sleep = sleep

        deployment = config.deployment
        self.services: List[Service] = self.registry.resolve(deployment.mode, deployment.services)
        self.ctx = ServiceContext(
            config=config,
            runtime=self.runtime,
            env=load_env_file(config.paths.env_file),
            selected=[service.name for service in self.services],
            openssl=self.openssl,
        )

    # Steps

    def create_directories(self) -> None:
        paths = self.config.paths
        for directory in (
            paths.config_dir,
            paths.certificates_dir,
            paths.services_dir,
            paths.data_dir,
            paths.logs_dir,
            paths.backups_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def prepare_environment(self) -> Dict[str, str]:
        env = generate_environment(self.config)
        validate_environment(env, self.config)
        self.ctx.env = env
        return env

    def run_preflight(self) -> Optional[SystemInfo]:
        if self.config.deployment.skip_checks:
            logger.warning("Skipping pre-deployment checks")
            return None
        return self._preflight(self.ctx).run(self.services).system

    def tune_host(self) -> bool:
        deployment = self.config.deployment
        if deployment.skip_optimization or deployment.mode == "simple":
            return optimize_system(deployment.mode, skip=True)

        optimizer = self._optimizer or SystemOptimizer()
        check = validate_daemon_config(optimizer.daemon_file)
        if check.deprecated:
            fix_deprecated_options(optimizer.daemon_file)
        return optimize_system(deployment.mode, optimizer=optimizer)

    def generate_certificates(self) -> bool:
        return generate_ssl_certificates(
            self.config.paths.certificates_dir,
            self.ctx.server_ip,
            self.ctx.domain,
            self.openssl,
        )

    def configure_hosts(self) -> None:
        try:
            update_hosts_file(self.ctx.server_ip, self.ctx.domain, self.ctx.selected, self._hosts_file)
        except DeploymentError as exc:
            logger.warning("Hosts file not updated: %s", exc)

    def _dependencies_ready(self, service: Service, failed: List[str]) -> Optional[str]:
        """
        Wait for the selected dependencies of ``service``.

        Returns:
            Why the service must be skipped, or None if it can go ahead.
        """

        for name in service.dependencies:
            if name not in self.ctx.selected:
                continue
            if name in failed:
                return f"dependency {name} failed"
            try:
                wait_for_service(
                    self.registry.get(name),
                    self.ctx,
                    max_wait=self.config.health.dependency_timeout_seconds,
                    sleep=self._sleep,
                )
            except HealthCheckTimeout as exc:
                return f"dependency {name} not ready: {exc}"
        return None

    def deploy_services(self) -> List[ServiceRun]:
        deployer = ServiceDeployer(self.ctx, sleep=self._sleep)
        runs: List[ServiceRun] = []
        failed: List[str] = []

        for index, service in enumerate(self.services, start=1):
            logger.info("[%s/%s] Deploying %s", index, len(self.services), service.name)

            blocked = self._dependencies_ready(service, failed)
            if blocked:
                logger.error("Skipping %s: %s", service.name, blocked)
                failed.append(service.name)
                runs.append(ServiceRun(service.name, False, detail=blocked))
                continue

            try:
                outcome = deployer.deploy(service)
            except BtpiError as exc:
                logger.error("Failed to deploy %s: %s", service.name, exc)
                failed.append(service.name)
                runs.append(ServiceRun(service.name, False, detail=str(exc)))
                continue

            runs.append(ServiceRun(service.name, True, outcome.action.value, outcome.detail))

        return runs

    def run_integrations(self) -> List[IntegrationOutcome]:
        return [configure_thehive_cortex(self.ctx, self.registry)]

    def run_smoke_tests(self) -> SmokeTestReport:
        report = SmokeTestSuite(self.ctx, self.services).run()
        write_smoke_report(report, self.config.paths.logs_dir)
        return report

    # Entry points

    def run(self) -> DeploymentResult:
        """
        Run the full deployment.

        Raises:
            DeploymentError: If a step before the service loop fails
                (preflight, host tuning, certificates or networks).
            ConfigError: If the secrets file cannot be written.
        """

        deployment = self.config.deployment
        logger.info("Starting BTPI-REACT %s deployment (mode: %s)", self.config.version, deployment.mode)
        logger.info("Services: %s", ", ".join(self.ctx.selected))
        validate_port_allocation(self.services)

        result = DeploymentResult(mode=deployment.mode)

        backup = create_backup(self.config.paths)
        result.backup_path = str(backup) if backup else None

        system = self.run_preflight()
        self.tune_host()
        self.create_directories()
        self.prepare_environment()
        result.deployment_id = self.ctx.env.get("DEPLOYMENT_ID")

        try:
            self.generate_certificates()
        except IntegrationError as exc:
            raise DeploymentError(f"Certificate generation failed: {exc}") from exc

        self.configure_hosts()
        setup_networks(self.runtime, self.config.networks)

        result.services = self.deploy_services()
        result.integrations = self.run_integrations()
        result.smoke_tests = self.run_smoke_tests().summary()

        result.statuses = collect_statuses(self.services, self.ctx, result.failed_services)
        result.report_path = str(write_deployment_report(self.ctx, self.services, result.statuses, system))

        if result.ok:
            logger.info("BTPI-REACT deployment completed successfully")
        else:
            logger.error(
                "BTPI-REACT deployment finished with failures: services=%s smoke_tests=%s",
                ", ".join(result.failed_services) or "none",
                result.smoke_tests,
            )
        return result

    def service_status(self, service: Service) -> ServiceStatus:
        if service.native:
            container = "native"
        else:
            try:
                container = self.runtime.inspect(service.container_name).state.value
            except IntegrationError as exc:
                logger.debug("Cannot inspect %s: %s", service.name, exc)
                container = ContainerState.ABSENT.value
        health = check_service_health(service, self.ctx)
        return ServiceStatus(service.name, service.category, container, health.state, health.detail)

    def status(self) -> List[ServiceStatus]:
        return [self.service_status(service) for service in self.services]

    def recover(self) -> List[ServiceRun]:
        """
        Redeploy every selected service that is not healthy.
        """

        deployer = ServiceDeployer(self.ctx, sleep=self._sleep)
        runs: List[ServiceRun] = []
        for service in self.services:
            health = check_service_health(service, self.ctx)
            if health.healthy:
                logger.info("%s is healthy", service.name)
                continue

            logger.warning("%s is %s, recovering", service.name, health.state.value)
            try:
                outcome = deployer.deploy(service)
            except BtpiError as exc:
                logger.error("Recovery of %s failed: %s", service.name, exc)
                runs.append(ServiceRun(service.name, False, detail=str(exc)))
                continue
            runs.append(ServiceRun(service.name, True, outcome.action.value, outcome.detail))
        return runs
