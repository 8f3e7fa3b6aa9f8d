"""Barista data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional


class BaristaStatus(Enum):
    """Availability of a barista, as reported by the Queue Service."""

    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"

    @classmethod
    def parse(cls, value: Any) -> "BaristaStatus":
        """
        Decode a wire value into a BaristaStatus.

        Raises:
            ValueError: If the value is not a known status
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Barista status must be a string, got {type(value).__name__}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown barista status: {value!r}") from None


@dataclass(frozen=True)
class Barista:
    """
    One barista as last seen on the Queue Service.

    The client only requests transitions (status change, assign-next);
    it never edits these fields.
    """

    id: int
    name: str
    status: BaristaStatus

    current_workload: int = 0
    """Minutes of queued + active prep time attributed to this barista."""

    total_orders_served: int = 0
    """Monotonic counter of completed orders."""

    average_prep_time: Optional[float] = None

    @property
    def is_available(self) -> bool:
        return self.status == BaristaStatus.AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase JSON shape used by the views."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "currentWorkload": self.current_workload,
            "totalOrdersServed": self.total_orders_served,
            "averagePrepTime": self.average_prep_time,
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Barista":
        """
        Create a Barista from a Queue Service payload.

        Raises:
            KeyError: If ``id``, ``name`` or ``status`` is missing
            ValueError: If the status is unknown
            TypeError: If ``data`` is not a mapping
        """
        if not isinstance(data, dict):
            raise TypeError(f"Barista payload must be an object, got {type(data).__name__}")

        average = data.get("averagePrepTime")

        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            status=BaristaStatus.parse(data["status"]),
            current_workload=int(data.get("currentWorkload") or 0),
            total_orders_served=int(data.get("totalOrdersServed") or 0),
            average_prep_time=float(average) if average is not None else None,
        )
