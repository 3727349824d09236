"""
Low-level HTTP client for the Velociraptor GUI endpoint (port 8889).

The GUI is served with the self-signed certificate generated at deploy
time, so TLS verification stays off.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ...core.errors import IntegrationError
from ..http_common import ServiceHttpClient


VERSION_ENDPOINT = "/api/v1/GetVersion"


@dataclass
class VelociraptorHttpClient(ServiceHttpClient):
    username: Optional[str] = None
    password: Optional[str] = None

    vendor = "Velociraptor"

    def _auth(self) -> Optional[Tuple[str, str]]:
        if self.username and self.password:
            return (self.username, self.password)
        return None

    def is_api_reachable(self) -> bool:
        """Any HTTP answer from the version endpoint, including 401."""
        return self.is_reachable(VERSION_ENDPOINT)

    def get_version(self) -> str:
        raw = self.get(VERSION_ENDPOINT)
        version = raw.get("version") if isinstance(raw, dict) else None
        if not version:
            raise IntegrationError(f"Velociraptor GetVersion returned no version: {str(raw)[:200]}")
        return str(version)
