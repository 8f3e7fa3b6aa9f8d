"""
Order data models.

These models are point-in-time snapshots of orders owned by the Queue
Service. The client never edits them: every poll replaces the previous
list wholesale, and every mutation is followed by a re-poll.

Thread Safety:
    - Order is a frozen dataclass (immutable)
    - Safe to read from request threads while a poller swaps snapshots
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional


class OrderStatus(Enum):
    """
    Status of an order, as reported by the Queue Service.

    Lifecycle (server-owned):
        PENDING -> IN_PROGRESS -> COMPLETED
        PENDING | IN_PROGRESS -> CANCELLED
    """

    PENDING = "PENDING"
    """Waiting in the priority queue."""

    IN_PROGRESS = "IN_PROGRESS"
    """Assigned to a barista and being prepared."""

    COMPLETED = "COMPLETED"
    """Handed to the customer."""

    CANCELLED = "CANCELLED"
    """Withdrawn before completion."""

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus":
        """
        Decode a wire value into an OrderStatus.

        Raises:
            ValueError: If the value is not a known status
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Order status must be a string, got {type(value).__name__}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown order status: {value!r}") from None

    @property
    def label(self) -> str:
        """Display label (e.g. 'In Progress')."""
        return self.value.replace("_", " ").title()

    @property
    def is_active(self) -> bool:
        """Whether the order still occupies the queue or a barista."""
        return self in (OrderStatus.PENDING, OrderStatus.IN_PROGRESS)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from the Queue Service.

    Returns None for missing or unparseable values; timestamps are display
    data and never block decoding of the surrounding entity.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Order:
    """
    One order as last seen on the Queue Service.

    ``id`` and ``order_number`` are immutable identity. Everything else is
    owned by the service and may differ on the next poll.
    """

    id: int
    """Service-assigned primary key."""

    order_number: str
    """Human-facing order number (e.g. 'ORD-1042')."""

    status: OrderStatus
    """Current lifecycle status."""

    drink_name: str = ""
    """Name of the ordered drink."""

    quantity: int = 1
    """Number of drinks in the order."""

    priority_score: float = 0.0
    """Service-computed priority (higher = served sooner). Opaque to the client."""

    current_wait_minutes: int = 0
    """Minutes the order has waited so far, per the service."""

    estimated_prep_time: int = 0
    """Minutes of preparation this order needs."""

    emergency_flag: bool = False
    """Customer-set urgency hint consumed by the service's priority function."""

    barista_id: Optional[int] = None
    barista_name: Optional[str] = None
    customer_name: Optional[str] = None
    customization_notes: Optional[str] = None
    order_time: Optional[datetime] = None
    completion_time: Optional[datetime] = None

    @property
    def is_assigned(self) -> bool:
        """Whether a barista has been attached to this order."""
        return self.barista_id is not None or bool(self.barista_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase JSON shape used by the views."""
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "status": self.status.value,
            "drinkName": self.drink_name,
            "quantity": self.quantity,
            "priorityScore": self.priority_score,
            "currentWaitMinutes": self.current_wait_minutes,
            "estimatedPrepTime": self.estimated_prep_time,
            "emergencyFlag": self.emergency_flag,
            "baristaId": self.barista_id,
            "baristaName": self.barista_name,
            "customerName": self.customer_name,
            "customizationNotes": self.customization_notes,
            "orderTime": _format_timestamp(self.order_time),
            "completionTime": _format_timestamp(self.completion_time),
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Order":
        """
        Create an Order from a Queue Service payload.

        Args:
            data: One order object from the service

        Returns:
            Decoded Order

        Raises:
            KeyError: If ``id`` or ``status`` is missing
            ValueError: If the status is unknown or a number is invalid
            TypeError: If ``data`` is not a mapping
        """
        if not isinstance(data, dict):
            raise TypeError(f"Order payload must be an object, got {type(data).__name__}")

        barista_id = data.get("baristaId")

        return cls(
            id=int(data["id"]),
            order_number=str(data.get("orderNumber") or ""),
            status=OrderStatus.parse(data["status"]),
            drink_name=data.get("drinkName") or "",
            quantity=int(data.get("quantity") or 1),
            priority_score=float(data.get("priorityScore") or 0),
            current_wait_minutes=int(data.get("currentWaitMinutes") or 0),
            estimated_prep_time=int(data.get("estimatedPrepTime") or 0),
            emergency_flag=bool(data.get("emergencyFlag", False)),
            barista_id=int(barista_id) if barista_id is not None else None,
            barista_name=data.get("baristaName") or None,
            customer_name=data.get("customerName") or None,
            customization_notes=data.get("customizationNotes") or None,
            order_time=parse_timestamp(data.get("orderTime")),
            completion_time=parse_timestamp(data.get("completionTime")),
        )
