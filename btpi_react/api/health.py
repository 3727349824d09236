"""
Generic health-check API for BTPI-REACT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from ..core.dto import BaseDTO


class HealthState(str, Enum):
    """
    Result of checking a service.
    """

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNREACHABLE = "unreachable"
    NOT_RUNNING = "not_running"


@dataclass
class HealthResult(BaseDTO):
    """
    Outcome of a single health check.
    """

    service: str
    state: HealthState
    detail: Optional[str] = None
    checked_at: datetime = field(default_factory=datetime.now)

    @property
    def healthy(self) -> bool:
        return self.state == HealthState.HEALTHY

    @classmethod
    def ok(cls, service: str, detail: Optional[str] = None) -> "HealthResult":
        return cls(service=service, state=HealthState.HEALTHY, detail=detail)

    @classmethod
    def failed(cls, service: str, detail: Optional[str] = None) -> "HealthResult":
        return cls(service=service, state=HealthState.UNHEALTHY, detail=detail)

    @classmethod
    def unreachable(cls, service: str, detail: Optional[str] = None) -> "HealthResult":
        return cls(service=service, state=HealthState.UNREACHABLE, detail=detail)
