"""
Heuristic queue position and wait-time estimator.

The Queue Service ranks pending orders with a priority function the
client cannot see (emergency flag, time waited, prep time...). This module
never tries to reproduce it. It only reads the observable queue depth from
a pending-orders snapshot and turns it into a display estimate.

Formula (position known):
    wait = (position - 1) x per_order_overhead + own estimated prep time

Fallback (order no longer pending, or not yet visible):
    wait = current_wait_minutes if > 0 else estimated_prep_time
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, Sequence

from models.order import Order


# Position reported when the order is not in the pending snapshot
UNKNOWN_POSITION = 0

DEFAULT_PER_ORDER_OVERHEAD_MINUTES = 3


@dataclass(frozen=True)
class QueuePosition:
    """A customer's rank and estimated wait, derived from one snapshot."""

    position: int
    """1-based rank in the pending list, or UNKNOWN_POSITION."""

    estimated_wait_minutes: int

    orders_ahead: int = 0

    @property
    def is_known(self) -> bool:
        return self.position != UNKNOWN_POSITION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "positionKnown": self.is_known,
            "ordersAhead": self.orders_ahead,
            "estimatedWaitMinutes": self.estimated_wait_minutes,
        }


def find_position(pending_orders: Sequence[Order], order_id: int) -> int:
    """1-based index of order_id in pending_orders, or UNKNOWN_POSITION."""
    for index, pending in enumerate(pending_orders):
        if pending.id == order_id:
            return index + 1
    return UNKNOWN_POSITION


def resolve_queue_position(
    pending_orders: Sequence[Order],
    order: Order,
    per_order_overhead_minutes: int = DEFAULT_PER_ORDER_OVERHEAD_MINUTES
) -> QueuePosition:
    """
    Derive a customer's position and estimated wait.

    Args:
        pending_orders: Pending snapshot, already in the service's priority order
        order: The customer's order (as placed, or as last seen)
        per_order_overhead_minutes: Assumed service time per order ahead

    Returns:
        QueuePosition; the wait is never negative
    """
    position = find_position(pending_orders, order.id)

    if position != UNKNOWN_POSITION:
        orders_ahead = position - 1
        wait = orders_ahead * per_order_overhead_minutes + order.estimated_prep_time
        return QueuePosition(
            position=position,
            estimated_wait_minutes=max(0, wait),
            orders_ahead=orders_ahead,
        )

    # Already in progress, completed, cancelled or evicted - don't guess a rank
    if order.current_wait_minutes > 0:
        wait = order.current_wait_minutes
    else:
        wait = order.estimated_prep_time

    return QueuePosition(position=UNKNOWN_POSITION, estimated_wait_minutes=max(0, wait))


class WaitEstimator:
    """Resolver bound to the configured per-order overhead."""

    def __init__(self, per_order_overhead_minutes: int = DEFAULT_PER_ORDER_OVERHEAD_MINUTES) -> None:
        if per_order_overhead_minutes < 0:
            raise ValueError("per_order_overhead_minutes cannot be negative")
        self.per_order_overhead_minutes = per_order_overhead_minutes

    def estimate(self, pending_orders: Sequence[Order], order: Order) -> QueuePosition:
        return resolve_queue_position(pending_orders, order, self.per_order_overhead_minutes)
