"""
Per-service deployment with reconciliation of existing containers.

For a container service the deployer, in order:

1. keeps a running, healthy container;
2. restarts a running but unhealthy container and keeps it if it
   recovers within the restart grace period;
3. starts a stopped container and keeps it if it becomes healthy;
4. otherwise removes whatever is left and runs a fresh container, waits
   for it to become ready and runs the service's post-deploy step.

Services flagged ``recreate`` skip steps 1-3.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..api.containers import ContainerState
from ..core.dto import BaseDTO
from ..core.errors import HealthCheckTimeout
from ..core.logging import get_logger
from ..services.base import Service, ServiceContext
from .health import check_service_health, wait_for_service


logger = get_logger("btpi.orchestrator.deployer")


class DeployAction(str, Enum):
    ALREADY_HEALTHY = "already_healthy"
    RESTARTED = "restarted"
    STARTED = "started"
    DEPLOYED = "deployed"
    INSTALLED = "installed"


@dataclass
class DeployOutcome(BaseDTO):
    service: str
    action: DeployAction
    detail: Optional[str] = None


class ServiceDeployer:
    """
    Deploys one service at a time against a container runtime.
    """

    def __init__(self, ctx: ServiceContext, sleep: Callable[[float], None] = time.sleep) -> None:
        self._ctx = ctx
        self._sleep = sleep

    @property
    def _health(self):
        return self._ctx.config.health

    def _recovered_within_grace(self, service: Service) -> bool:
        try:
            wait_for_service(
                service,
                self._ctx,
                max_wait=self._health.restart_grace_seconds,
                interval=min(self._health.interval_seconds, self._health.restart_grace_seconds),
                sleep=self._sleep,
            )
        except HealthCheckTimeout:
            return False
        return True

    def reconcile(self, service: Service) -> Optional[DeployOutcome]:
        """
        Try to reuse an existing container.

        Returns:
            The outcome if the existing container is usable, otherwise None
            (any leftover container has been removed).
        """

        runtime = self._ctx.runtime
        name = service.container_name
        info = runtime.inspect(name)

        if info.state == ContainerState.ABSENT:
            return None

        if service.recreate:
            logger.info("Removing existing %s container for a clean deployment", name)
            runtime.remove(name, force=True)
            return None

        if info.is_running:
            logger.info("%s container is already running, checking health", name)
            if check_service_health(service, self._ctx).healthy:
                logger.info("%s is already running and healthy", name)
                return DeployOutcome(service.name, DeployAction.ALREADY_HEALTHY)

            logger.warning("%s is running but unhealthy, restarting", name)
            runtime.restart(name)
            if self._recovered_within_grace(service):
                logger.info("%s recovered after restart", name)
                return DeployOutcome(service.name, DeployAction.RESTARTED)
            logger.warning("%s still unhealthy after restart, redeploying", name)
        else:
            logger.info("%s container exists but is %s, starting", name, info.state.value)
            runtime.start(name)
            if self._recovered_within_grace(service):
                logger.info("%s started successfully", name)
                return DeployOutcome(service.name, DeployAction.STARTED)
            logger.warning("%s failed to become healthy after start, redeploying", name)

        runtime.remove(name, force=True)
        return None

    def deploy(self, service: Service) -> DeployOutcome:
        """
        Bring a service to a running, ready state.

        Raises:
            HealthCheckTimeout: If a fresh container never becomes ready.
            IntegrationError: If docker, openssl or an installer fails.
        """

        ctx = self._ctx
        logger.info("Deploying service: %s", service.name)

        if service.native:
            service.prepare(ctx)
            service.install_native(ctx)
            logger.info("%s native installation completed", service.name)
            return DeployOutcome(service.name, DeployAction.INSTALLED)

        outcome = self.reconcile(service)
        if outcome is not None:
            return outcome

        service.prepare(ctx)
        container_id = ctx.runtime.run(service.container_spec(ctx))
        logger.info("%s container started (%s)", service.name, container_id[:12] or "no id")

        wait_for_service(
            service,
            ctx,
            max_wait=self._health.service_timeout_seconds,
            interval=self._health.interval_seconds,
            sleep=self._sleep,
        )
        service.post_deploy(ctx)
        return DeployOutcome(service.name, DeployAction.DEPLOYED)
