"""
Catalogue of the services BTPI-REACT deploys.
"""

from .base import Service, ServiceContext
from .registry import (
    FULL_MODE_CATEGORIES,
    SERVICE_CATEGORIES,
    SIMPLE_MODE_SERVICES,
    ServiceRegistry,
    default_registry,
    validate_port_allocation,
)

__all__ = [
    "FULL_MODE_CATEGORIES",
    "SERVICE_CATEGORIES",
    "SIMPLE_MODE_SERVICES",
    "Service",
    "ServiceContext",
    "ServiceRegistry",
    "default_registry",
    "validate_port_allocation",
]
