"""
Shared HTTP plumbing for the vendor clients.

Every bundled service exposes a small HTTP API on localhost, most of them
behind self-signed certificates. The per-vendor ``*_http.py`` modules
subclass ``ServiceHttpClient`` and add authentication and the handful of
endpoints the orchestrator needs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests
import urllib3

from ..core.errors import IntegrationError
from ..core.logging import get_logger


logger = get_logger("btpi.integrations.http")

urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


class HttpApiError(IntegrationError):
    """
    An HTTP API answered with an error status.
    """

    def __init__(self, vendor: str, status_code: int, message: str, body: str = "") -> None:
        self.vendor = vendor
        self.status_code = status_code
        self.body = body
        super().__init__(f"{vendor} API error: HTTP {status_code}: {message}")


@dataclass
class ServiceHttpClient:
    """
    Minimal JSON-over-HTTP client for a bundled service.
    """

    base_url: str
    timeout_seconds: int = 10
    verify_ssl: bool = False

    vendor = "HTTP"

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def _auth(self) -> Optional[Tuple[str, str]]:
        return None

    def build_url(self, endpoint: str) -> str:
        base = self.base_url.rstrip("/")
        endpoint = endpoint.lstrip("/")
        if not endpoint:
            return f"{base}/"
        return f"{base}/{endpoint}"

    def _error_message(self, response: requests.Response) -> str:
        return response.text[:200]

    def _handle_error(self, response: requests.Response) -> None:
        if response.status_code < 400:
            return
        raise HttpApiError(
            self.vendor,
            response.status_code,
            self._error_message(response),
            body=response.text[:1000],
        )

    def request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        allow_text: bool = False,
    ) -> Any:
        """
        Make an HTTP request and return the decoded JSON body (or the raw
        text when ``allow_text`` is set and the body is not JSON).

        Raises:
            HttpApiError: If the API answers with a 4xx/5xx status.
            IntegrationError: If the request cannot be made or the body is
                not JSON.
        """

        url = self.build_url(endpoint)

        try:
            logger.debug(f"{self.vendor} {method} {url}")
            if json_data is not None:
                logger.debug(f"  JSON payload: {json.dumps(json_data)[:200]}")

            response = requests.request(
                method=method,
                url=url,
                headers=self._headers(),
                auth=self._auth(),
                json=json_data,
                params=params,
                timeout=self.timeout_seconds,
                verify=self.verify_ssl,
            )
        except requests.exceptions.Timeout as exc:
            raise IntegrationError(f"{self.vendor} API request timeout: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise IntegrationError(f"{self.vendor} API request failed: {exc}") from exc

        logger.debug(f"{self.vendor} response status: {response.status_code}")
        self._handle_error(response)

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as exc:
            if allow_text:
                return response.text
            raise IntegrationError(
                f"{self.vendor} API returned non-JSON body from {url}: {response.text[:200]}"
            ) from exc

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, json_data: Optional[Any] = None) -> Any:
        return self.request("POST", endpoint, json_data=json_data)

    def is_reachable(self, endpoint: str = "/") -> bool:
        """
        Return True if the endpoint answers with any HTTP response at all.
        """

        try:
            requests.get(
                self.build_url(endpoint),
                headers=self._headers(),
                timeout=self.timeout_seconds,
                verify=self.verify_ssl,
            )
        except requests.exceptions.RequestException as exc:
            logger.debug(f"{self.vendor} not reachable at {self.base_url}: {exc}")
            return False
        return True
