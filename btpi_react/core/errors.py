"""
Core error types for BTPI-REACT.

These exceptions provide a common base for all raised errors across the
project so that callers (the deployment workflow, the CLI and the status
server) can handle them in a consistent way.
"""

from __future__ import annotations


class BtpiError(Exception):
    """
    Base exception for all BTPI-REACT-specific errors.
    """


class ConfigError(BtpiError):
    """
    Raised when configuration is missing, invalid, or inconsistent.
    """


class IntegrationError(BtpiError):
    """
    Raised when an external tool or API (docker, openssl, Elasticsearch,
    Wazuh, Cortex, etc.) fails or returns an unexpected response.
    """


class ValidationError(BtpiError):
    """
    Raised when input data, service selections, or generated files fail
    validation.
    """


class DeploymentError(BtpiError):
    """
    Raised when a deployment step cannot be completed.
    """


class HealthCheckTimeout(DeploymentError):
    """
    Raised when a service does not become healthy within its attempt budget.
    """

    def __init__(self, service: str, waited_seconds: int, detail: str = "") -> None:
        self.service = service
        self.waited_seconds = waited_seconds
        self.detail = detail
        message = f"{service} failed to become ready within {waited_seconds}s"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
