"""
Low-level HTTP client for the Wazuh manager REST API (port 55000).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ...core.errors import IntegrationError
from ...core.logging import get_logger
from ..http_common import ServiceHttpClient


logger = get_logger("btpi.integrations.wazuh.http")


@dataclass
class WazuhHttpClient(ServiceHttpClient):
    """
    Wazuh API client. Authentication is basic auth against
    ``/security/user/authenticate``, which returns a JWT.
    """

    username: str = "wazuh"
    password: Optional[str] = None

    vendor = "Wazuh"

    def _auth(self) -> Optional[Tuple[str, str]]:
        if self.password:
            return (self.username, self.password)
        return None

    def authenticate(self) -> str:
        """
        Exchange the API credentials for a JWT.

        Raises:
            IntegrationError: If the credentials are rejected or the answer
                carries no token.
        """

        if not self.password:
            raise IntegrationError("Wazuh API password is not set")

        raw = self.post("/security/user/authenticate")
        data = raw.get("data") if isinstance(raw, dict) else None
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise IntegrationError(f"Wazuh API authentication returned no token: {str(raw)[:200]}")
        logger.debug("Wazuh API authentication succeeded")
        return token
