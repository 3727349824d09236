"""
Low-level HTTP client for TheHive (port 9000).

This module is responsible for:
- bearer authentication with an API key (optional)
- the status endpoint used by readiness checks
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..http_common import ServiceHttpClient


@dataclass
class TheHiveHttpClient(ServiceHttpClient):
    """
    Simple HTTP client for the TheHive API.
    """

    api_key: Optional[str] = None

    vendor = "TheHive"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def status(self) -> Dict[str, Any]:
        return self.get("/api/status")
