"""
Service readiness: single health checks and bounded wait-for-ready polling.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from ..api.health import HealthResult, HealthState
from ..core.errors import HealthCheckTimeout, IntegrationError
from ..core.logging import get_logger
from ..services.base import Service, ServiceContext


logger = get_logger("btpi.orchestrator.health")

Sleep = Callable[[float], None]


def check_service_health(service: Service, ctx: ServiceContext) -> HealthResult:
    """
    Check a service once.

    Container services whose container is not running report
    ``NOT_RUNNING`` without a health call; native services go straight to their
    check.
    """

    if not service.native:
        try:
            running = ctx.runtime.is_running(service.container_name)
        except IntegrationError as exc:
            return HealthResult.unreachable(service.name, f"container runtime error: {exc}")
        if not running:
            return HealthResult(service=service.name, state=HealthState.NOT_RUNNING, detail="container not running")

    try:
        return service.check_health(ctx)
    except IntegrationError as exc:
        return HealthResult.unreachable(service.name, str(exc))


def log_service_debug_info(service: Service, ctx: ServiceContext) -> None:
    """
    Log the container state and its last log lines after a failed wait.
    """

    if service.native:
        return
    try:
        info = ctx.runtime.inspect(service.container_name)
        logger.error("%s container status: %s (health: %s)", service.name, info.state.value, info.health or "n/a")
        logs = ctx.runtime.logs(service.container_name, tail=10)
    except IntegrationError as exc:
        logger.error("Could not collect debug info for %s: %s", service.name, exc)
        return
    if logs:
        logger.error("Last log lines of %s:\n%s", service.name, logs)


def wait_for_service(
    service: Service,
    ctx: ServiceContext,
    max_wait: Optional[int] = None,
    interval: Optional[int] = None,
    sleep: Sleep = time.sleep,
) -> HealthResult:
    """
    Wait until a service reports healthy.

    One immediate check, then ``max(1, max_wait // interval)`` further
    checks spaced ``interval`` seconds apart.

    Raises:
        HealthCheckTimeout: If every check failed.
    """

    max_wait = max_wait or ctx.config.health.default_timeout_seconds
    interval = interval or ctx.config.health.interval_seconds

    logger.info("Waiting for %s to be ready (max %ss)", service.name, max_wait)

    result = check_service_health(service, ctx)
    if result.healthy:
        logger.info("%s is ready and healthy", service.name)
        return result

    attempts = max(1, max_wait // interval)
    for attempt in range(1, attempts + 1):
        logger.debug(
            "%s health check attempt %s/%s failed (%s), waiting %ss",
            service.name, attempt, attempts, result.detail or result.state.value, interval,
        )
        sleep(interval)
        result = check_service_health(service, ctx)
        if result.healthy:
            logger.info("%s is ready and healthy", service.name)
            return result

    logger.error("%s failed to become ready within %ss", service.name, max_wait)
    log_service_debug_info(service, ctx)
    raise HealthCheckTimeout(service.name, attempts * interval, result.detail or result.state.value)
