"""
Common DTO utilities for BTPI-REACT.

We use Python dataclasses for DTOs across the generic API layer. This module
provides a small mixin with helper methods so all DTOs have a consistent
API (e.g., ``to_dict``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Type, TypeVar


T_BaseDTO = TypeVar("T_BaseDTO", bound="BaseDTO")


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


@dataclass
class BaseDTO:
    """
    Base mixin for DTO dataclasses.

    Inherit from this in DTOs to get a consistent ``to_dict`` method and
    a simple ``from_dict`` constructor.
    """

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this DTO into a plain, JSON-friendly dict (recursively).

        Enums are flattened to their values and datetimes to ISO strings.
        """

        return _plain(asdict(self))

    @classmethod
    def from_dict(cls: Type[T_BaseDTO], data: Dict[str, Any]) -> T_BaseDTO:
        """
        Construct this DTO from a dict of attributes.
        """

        return cls(**data)
