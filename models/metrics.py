"""
Queue and load-test metrics models.

All of these are derived by the Queue Service and fetched wholesale.
The client never aggregates across polls: each TestMetrics snapshot
fully replaces the previous one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional

from .order import parse_timestamp


def _count_map(data: Any) -> Dict[str, int]:
    """Decode a {name: count} object, rejecting non-mapping payloads."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"Expected an object of counts, got {type(data).__name__}")
    return {str(name): int(count or 0) for name, count in data.items()}


@dataclass(frozen=True)
class QueueStats:
    """Snapshot of GET /queue/stats."""

    total_pending: int = 0
    total_in_progress: int = 0
    total_completed: int = 0
    average_wait_time: float = 0.0
    emergency_orders: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPending": self.total_pending,
            "totalInProgress": self.total_in_progress,
            "totalCompleted": self.total_completed,
            "averageWaitTime": self.average_wait_time,
            "emergencyOrders": self.emergency_orders,
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "QueueStats":
        if not isinstance(data, dict):
            raise TypeError(f"Queue stats payload must be an object, got {type(data).__name__}")
        return cls(
            total_pending=int(data.get("totalPending") or 0),
            total_in_progress=int(data.get("totalInProgress") or 0),
            total_completed=int(data.get("totalCompleted") or 0),
            average_wait_time=float(data.get("averageWaitTime") or 0),
            emergency_orders=int(data.get("emergencyOrders") or 0),
        )


@dataclass(frozen=True)
class BaristaMetrics:
    """
    Per-barista slice of a load-test metrics snapshot.

    Counts cover test orders attributed to this barista only.
    """

    barista_name: str
    current_workload: int = 0
    total_orders_served: int = 0
    pending_count: int = 0
    in_progress_count: int = 0
    completed_count: int = 0
    orders_by_drink_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baristaName": self.barista_name,
            "currentWorkload": self.current_workload,
            "totalOrdersServed": self.total_orders_served,
            "pendingCount": self.pending_count,
            "inProgressCount": self.in_progress_count,
            "completedCount": self.completed_count,
            "ordersByDrinkType": dict(self.orders_by_drink_type),
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any], default_name: str = "") -> "BaristaMetrics":
        if not isinstance(data, dict):
            raise TypeError(f"Barista metrics payload must be an object, got {type(data).__name__}")
        return cls(
            barista_name=str(data.get("baristaName") or default_name),
            current_workload=int(data.get("currentWorkload") or 0),
            total_orders_served=int(data.get("totalOrdersServed") or 0),
            pending_count=int(data.get("pendingCount") or 0),
            in_progress_count=int(data.get("inProgressCount") or 0),
            completed_count=int(data.get("completedCount") or 0),
            orders_by_drink_type=_count_map(data.get("ordersByDrinkType")),
        )


@dataclass(frozen=True)
class TestMetrics:
    """
    Snapshot of GET /test/metrics.

    Invariant (service-side): pending + in_progress + completed <= total.
    The gap is cancelled orders.
    """

    # Not a pytest test class despite the name
    __test__ = False

    total_orders: int = 0
    pending_orders: int = 0
    in_progress_orders: int = 0
    completed_orders: int = 0

    avg_wait_time: float = 0.0
    """Mean current wait in minutes across all test orders."""

    max_wait_time: int = 0
    min_wait_time: int = 0

    timeout_rate: float = 0.0
    """Percentage of test orders waiting longer than the service's timeout threshold."""

    barista_metrics: Dict[str, BaristaMetrics] = field(default_factory=dict)
    """Keyed by barista name."""

    drink_distribution: Dict[str, int] = field(default_factory=dict)
    """Order count keyed by drink name."""

    @classmethod
    def empty(cls) -> "TestMetrics":
        """All-zero snapshot (no test data)."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalOrders": self.total_orders,
            "pendingOrders": self.pending_orders,
            "inProgressOrders": self.in_progress_orders,
            "completedOrders": self.completed_orders,
            "avgWaitTime": self.avg_wait_time,
            "maxWaitTime": self.max_wait_time,
            "minWaitTime": self.min_wait_time,
            "timeoutRate": self.timeout_rate,
            "baristaMetrics": {
                name: metrics.to_dict() for name, metrics in self.barista_metrics.items()
            },
            "drinkDistribution": dict(self.drink_distribution),
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TestMetrics":
        """
        Create a TestMetrics snapshot from the service payload.

        Raises:
            TypeError: If the payload or a nested map has the wrong shape
            ValueError: If a count is not numeric
        """
        if not isinstance(data, dict):
            raise TypeError(f"Test metrics payload must be an object, got {type(data).__name__}")

        raw_baristas = data.get("baristaMetrics") or {}
        if not isinstance(raw_baristas, dict):
            raise TypeError("baristaMetrics must be an object keyed by barista name")

        return cls(
            total_orders=int(data.get("totalOrders") or 0),
            pending_orders=int(data.get("pendingOrders") or 0),
            in_progress_orders=int(data.get("inProgressOrders") or 0),
            completed_orders=int(data.get("completedOrders") or 0),
            avg_wait_time=float(data.get("avgWaitTime") or 0),
            max_wait_time=int(data.get("maxWaitTime") or 0),
            min_wait_time=int(data.get("minWaitTime") or 0),
            timeout_rate=float(data.get("timeoutRate") or 0),
            barista_metrics={
                str(name): BaristaMetrics.from_api(entry, default_name=str(name))
                for name, entry in raw_baristas.items()
            },
            drink_distribution=_count_map(data.get("drinkDistribution")),
        )


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One minute bucket of GET /test/timeseries."""

    timestamp: Optional[datetime]
    order_count: int = 0
    pending_count: int = 0
    in_progress_count: int = 0
    completed_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "orderCount": self.order_count,
            "pendingCount": self.pending_count,
            "inProgressCount": self.in_progress_count,
            "completedCount": self.completed_count,
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TimeSeriesPoint":
        if not isinstance(data, dict):
            raise TypeError(f"Time series point must be an object, got {type(data).__name__}")
        return cls(
            timestamp=parse_timestamp(data.get("timestamp")),
            order_count=int(data.get("orderCount") or 0),
            pending_count=int(data.get("pendingCount") or 0),
            in_progress_count=int(data.get("inProgressCount") or 0),
            completed_count=int(data.get("completedCount") or 0),
        )


def sort_time_series(points: List[TimeSeriesPoint]) -> List[TimeSeriesPoint]:
    """Order points chronologically, undated points last."""
    return sorted(points, key=lambda p: (p.timestamp is None, p.timestamp or datetime.min))
