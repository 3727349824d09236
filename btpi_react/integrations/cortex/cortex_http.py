"""
Low-level HTTP client for Cortex (port 9001).

This module is responsible for:
- authentication with basic credentials (enabled in the rendered Cortex
  config) or a bearer API key
- database migration, organisation and user creation, and API key
  renewal used to wire TheHive
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ...core.errors import IntegrationError
from ...core.logging import get_logger
from ..http_common import HttpApiError, ServiceHttpClient


logger = get_logger("btpi.integrations.cortex.http")


@dataclass
class CortexHttpClient(ServiceHttpClient):
    """
    Simple HTTP client for the Cortex API.
    """

    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None

    vendor = "Cortex"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _auth(self) -> Optional[Tuple[str, str]]:
        if not self.api_key and self.username and self.password:
            return (self.username, self.password)
        return None

    def status(self) -> Dict[str, Any]:
        return self.get("/api/status")

    def login(self, user: str, password: str) -> Dict[str, Any]:
        """
        Use the given credentials for later calls and verify them. Rejected
        credentials are dropped again.

        Raises:
            IntegrationError: If Cortex rejects the credentials.
        """

        self.username = user
        self.password = password
        self.api_key = None
        try:
            current = self.get("/api/user/current")
        except HttpApiError as exc:
            self.username = None
            self.password = None
            raise IntegrationError(f"Failed to authenticate with Cortex as {user}: {exc}") from exc
        logger.info("Authenticated with Cortex as %s", user)
        return current

    def migrate_database(self) -> None:
        """
        Create or upgrade the Cortex index. Required once on a fresh install
        before the first user can be created.
        """

        self.post("/api/maintenance/migrate", json_data={})

    def create_organisation(self, name: str, description: str) -> bool:
        """
        Create an organisation. Returns False if it already exists.
        """

        try:
            self.post(
                "/api/organization",
                json_data={"name": name, "description": description, "status": "Active"},
            )
        except HttpApiError as exc:
            if exc.status_code in (400, 409):
                logger.info("Cortex organisation %s already exists", name)
                return False
            raise
        logger.info("Created Cortex organisation %s", name)
        return True

    def create_user(
        self,
        login: str,
        name: str,
        organisation: str,
        roles: List[str],
        password: Optional[str] = None,
    ) -> bool:
        """
        Create a user. Returns False if the login already exists.
        """

        payload: Dict[str, Any] = {
            "login": login,
            "name": name,
            "organization": organisation,
            "roles": roles,
        }
        if password:
            payload["password"] = password
        try:
            self.post("/api/user", json_data=payload)
        except HttpApiError as exc:
            if exc.status_code in (400, 409):
                logger.info("Cortex user %s already exists", login)
                return False
            raise
        logger.info("Created Cortex user %s in %s", login, organisation)
        return True

    def renew_api_key(self, user: str) -> str:
        """
        Renew a user's API key and return the new key.
        """

        raw = self.request("POST", f"/api/user/{user}/key/renew", allow_text=True)
        if isinstance(raw, str):
            key = raw.strip().strip('"')
        else:
            key = raw.get("key") if isinstance(raw, dict) else None
        if not key:
            raise IntegrationError(f"Cortex API key renewal returned no key: {str(raw)[:200]}")
        return key
