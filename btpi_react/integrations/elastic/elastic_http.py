"""
Low-level HTTP client for Elasticsearch.

This module is responsible for:
- basic authentication as the ``elastic`` superuser
- cluster health and document counts
- extracting Elasticsearch error types from failed responses

The same client talks to the Wazuh indexer, which speaks the same API
without authentication.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests

from ...core.logging import get_logger
from ..http_common import HttpApiError, ServiceHttpClient


logger = get_logger("btpi.integrations.elastic.http")

HEALTHY_CLUSTER_STATES = ("green", "yellow")


@dataclass
class ElasticHttpClient(ServiceHttpClient):
    """
    Simple HTTP client for the Elasticsearch REST API.
    """

    username: Optional[str] = None
    password: Optional[str] = None

    vendor = "Elastic"

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "Content-Type": "application/json"}

    def _auth(self) -> Optional[Tuple[str, str]]:
        if self.username and self.password:
            return (self.username, self.password)
        return None

    def _error_message(self, response: requests.Response) -> str:
        try:
            error = response.json().get("error", {})
        except ValueError:
            return response.text[:200]
        if isinstance(error, dict):
            return f"{error.get('type', 'Unknown')}: {error.get('reason', '')}"
        return str(error)[:200]

    def cluster_health(self) -> Dict[str, Any]:
        return self.get("/_cluster/health")

    def cluster_status(self) -> str:
        """
        Return the cluster status colour (``green``, ``yellow`` or ``red``).
        """

        return str(self.cluster_health().get("status", "unknown"))

    def count(self, index_pattern: str) -> int:
        raw = self.get(f"/{index_pattern}/_count")
        return int(raw.get("count", 0))


def is_security_exception(error: HttpApiError) -> bool:
    """
    True when Elasticsearch rejected the request for authentication reasons.

    A node that answers with ``security_exception`` is up and serving, so
    readiness checks treat it as healthy.
    """

    return error.status_code == 401 or "security_exception" in error.body
