"""
Load-test metrics reduction for the simulation dashboard.

Every function here is a pure reduction of ONE TestMetrics snapshot.
Nothing is carried between polls; each snapshot fully replaces the
previous dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Any, List

from models.metrics import TestMetrics


# Fixed display colors for the order-status chart
STATUS_COLORS = {
    "Pending": "#FFA500",
    "In Progress": "#4169E1",
    "Completed": "#32CD32",
}


def completion_progress(metrics: TestMetrics) -> float:
    """
    Percentage of test orders completed.

    Returns 0.0 when there are no orders; always within [0, 100].
    """
    if metrics.total_orders <= 0:
        return 0.0
    progress = metrics.completed_orders / metrics.total_orders * 100
    return min(100.0, max(0.0, progress))


def barista_workload_rows(metrics: TestMetrics) -> List[Dict[str, Any]]:
    """One row per barista for the workload comparison chart."""
    return [
        {
            "name": barista.barista_name,
            "workload": barista.current_workload,
            "completed": barista.completed_count,
            "inProgress": barista.in_progress_count,
            "pending": barista.pending_count,
            "totalServed": barista.total_orders_served,
        }
        for barista in metrics.barista_metrics.values()
    ]


def drink_distribution_rows(metrics: TestMetrics) -> List[Dict[str, Any]]:
    """One row per drink, most ordered first (ties by name)."""
    return [
        {"name": name, "count": count}
        for name, count in sorted(
            metrics.drink_distribution.items(), key=lambda item: (-item[1], item[0])
        )
    ]


def order_status_rows(metrics: TestMetrics) -> List[Dict[str, Any]]:
    """Pending / In Progress / Completed rows with their chart colors."""
    counts = {
        "Pending": metrics.pending_orders,
        "In Progress": metrics.in_progress_orders,
        "Completed": metrics.completed_orders,
    }
    return [
        {"name": name, "value": counts[name], "color": color}
        for name, color in STATUS_COLORS.items()
    ]


@dataclass(frozen=True)
class SimulationDashboard:
    """Everything the simulation view renders, built from one snapshot."""

    metrics: TestMetrics
    progress_percent: float
    barista_rows: List[Dict[str, Any]] = field(default_factory=list)
    drink_rows: List[Dict[str, Any]] = field(default_factory=list)
    status_rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def unaccounted_orders(self) -> int:
        """Orders in none of the three tracked states (cancelled)."""
        m = self.metrics
        return max(0, m.total_orders - (m.pending_orders + m.in_progress_orders + m.completed_orders))

    def to_dict(self) -> Dict[str, Any]:
        m = self.metrics
        return {
            "progressPercent": round(self.progress_percent, 1),
            "totals": {
                "totalOrders": m.total_orders,
                "pendingOrders": m.pending_orders,
                "inProgressOrders": m.in_progress_orders,
                "completedOrders": m.completed_orders,
                "cancelledOrders": self.unaccounted_orders,
            },
            "waitTimes": {
                "avgWaitTime": m.avg_wait_time,
                "maxWaitTime": m.max_wait_time,
                "minWaitTime": m.min_wait_time,
                "timeoutRate": m.timeout_rate,
            },
            "baristaWorkload": self.barista_rows,
            "drinkDistribution": self.drink_rows,
            "orderStatus": self.status_rows,
        }


def build_dashboard(metrics: TestMetrics) -> SimulationDashboard:
    """Reduce one metrics snapshot into the full dashboard."""
    return SimulationDashboard(
        metrics=metrics,
        progress_percent=completion_progress(metrics),
        barista_rows=barista_workload_rows(metrics),
        drink_rows=drink_distribution_rows(metrics),
        status_rows=order_status_rows(metrics),
    )
