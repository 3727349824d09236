"""
Wiring between deployed services: TheHive learns about Cortex.

Cortex needs a database migration and a first superadmin on a fresh
install. The orchestrator then creates an organisation and a service user
for TheHive, stores that user's API key in ``.env`` and restarts TheHive
with the connector enabled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.config_storage import update_env_value
from ..core.dto import BaseDTO
from ..core.errors import BtpiError, IntegrationError
from ..core.logging import get_logger
from ..integrations.cortex import CortexHttpClient
from ..services.base import ServiceContext
from ..services.registry import ServiceRegistry
from ..services.thehive import TheHiveService
from .health import check_service_health


logger = get_logger("btpi.orchestrator.integrations")

CORTEX_ORGANISATION = "btpi-react"
CORTEX_ADMIN_USER = "admin"
THEHIVE_CORTEX_USER = "thehive"
THEHIVE_CORTEX_ROLES = ["read", "analyze", "orgadmin"]


@dataclass
class IntegrationOutcome(BaseDTO):
    name: str
    configured: bool
    detail: Optional[str] = None


def provision_cortex_api_key(client: CortexHttpClient, admin_password: str) -> str:
    """
    Prepare Cortex for TheHive and return the API key TheHive should use.

    A fresh Cortex is migrated and gets its first superadmin. When the
    superadmin can already log in, the bootstrap is skipped.

    Raises:
        IntegrationError: If Cortex rejects a step.
    """

    try:
        client.login(CORTEX_ADMIN_USER, admin_password)
    except IntegrationError:
        logger.info("Cortex has no usable superadmin yet, bootstrapping")
        client.migrate_database()
        client.create_user(
            CORTEX_ADMIN_USER,
            "Administrator",
            "cortex",
            ["superadmin"],
            password=admin_password,
        )
        client.login(CORTEX_ADMIN_USER, admin_password)
    else:
        logger.info("Cortex superadmin already provisioned")
    client.create_organisation(CORTEX_ORGANISATION, "BTPI-REACT analysis organisation")
    client.create_user(THEHIVE_CORTEX_USER, "TheHive connector", CORTEX_ORGANISATION, THEHIVE_CORTEX_ROLES)
    return client.renew_api_key(THEHIVE_CORTEX_USER)


def configure_thehive_cortex(ctx: ServiceContext, registry: ServiceRegistry) -> IntegrationOutcome:
    """
    Connect TheHive to Cortex when both are selected and healthy.

    Integration failures are reported in the outcome; they never abort a
    deployment.
    """

    name = "thehive-cortex"
    if "thehive" not in ctx.selected or "cortex" not in ctx.selected:
        return IntegrationOutcome(name, False, "TheHive and Cortex are not both selected")

    thehive = registry.get("thehive")
    cortex = registry.get("cortex")
    for service in (thehive, cortex):
        health = check_service_health(service, ctx)
        if not health.healthy:
            logger.warning("Skipping TheHive/Cortex integration: %s is %s", service.name, health.state.value)
            return IntegrationOutcome(name, False, f"{service.name} is not healthy")

    logger.info("Configuring TheHive/Cortex integration")
    client = cortex.client(ctx)
    try:
        api_key = provision_cortex_api_key(client, ctx.secret("CORTEX_ADMIN_PASSWORD"))
    except IntegrationError as exc:
        logger.error("Cortex provisioning failed: %s", exc)
        return IntegrationOutcome(name, False, str(exc))

    try:
        update_env_value(ctx.paths.env_file, "CORTEX_API_KEY", api_key)
    except BtpiError as exc:
        logger.error("Failed to store the Cortex API key: %s", exc)
        return IntegrationOutcome(name, False, str(exc))
    ctx.env["CORTEX_API_KEY"] = api_key

    if isinstance(thehive, TheHiveService):
        thehive.write_config(ctx)
    try:
        ctx.runtime.restart(thehive.container_name)
    except IntegrationError as exc:
        logger.error("Failed to restart TheHive after enabling Cortex: %s", exc)
        return IntegrationOutcome(name, False, str(exc))

    logger.info("TheHive/Cortex integration configured")
    return IntegrationOutcome(name, True, "Cortex API key stored and TheHive restarted")
