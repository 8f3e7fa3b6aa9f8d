"""
Unit tests for the simulation dashboard metrics reduction.
"""

import pytest

from models.metrics import BaristaMetrics, TestMetrics
from modules.metrics_aggregator import (
    STATUS_COLORS,
    barista_workload_rows,
    build_dashboard,
    completion_progress,
    drink_distribution_rows,
    order_status_rows,
)


@pytest.fixture
def metrics():
    return TestMetrics(
        total_orders=20,
        pending_orders=6,
        in_progress_orders=3,
        completed_orders=9,
        avg_wait_time=4.5,
        max_wait_time=12,
        min_wait_time=1,
        timeout_rate=5.0,
        barista_metrics={
            "Sam": BaristaMetrics(
                barista_name="Sam", current_workload=8, total_orders_served=5,
                pending_count=2, in_progress_count=1, completed_count=5,
            ),
            "Kim": BaristaMetrics(barista_name="Kim", current_workload=3, completed_count=4),
        },
        drink_distribution={"Mocha": 4, "Latte": 9, "Espresso": 4, "Chai Latte": 3},
    )


class TestCompletionProgress:

    def test_progress(self, metrics):
        assert completion_progress(metrics) == pytest.approx(45.0)

    def test_no_orders_is_zero(self):
        assert completion_progress(TestMetrics.empty()) == 0.0

    def test_clamped_to_hundred(self):
        assert completion_progress(TestMetrics(total_orders=2, completed_orders=3)) == 100.0


class TestRows:

    def test_barista_rows(self, metrics):
        rows = barista_workload_rows(metrics)

        assert rows[0] == {
            "name": "Sam", "workload": 8, "completed": 5,
            "inProgress": 1, "pending": 2, "totalServed": 5,
        }
        assert rows[1]["name"] == "Kim"

    def test_drink_rows_sorted_by_count_then_name(self, metrics):
        rows = drink_distribution_rows(metrics)
        assert [r["name"] for r in rows] == ["Latte", "Espresso", "Mocha", "Chai Latte"]

    def test_status_rows_colors(self, metrics):
        rows = order_status_rows(metrics)

        assert rows == [
            {"name": "Pending", "value": 6, "color": "#FFA500"},
            {"name": "In Progress", "value": 3, "color": "#4169E1"},
            {"name": "Completed", "value": 9, "color": "#32CD32"},
        ]
        assert [r["color"] for r in rows] == list(STATUS_COLORS.values())


class TestBuildDashboard:

    def test_cancelled_orders_are_the_gap(self, metrics):
        dashboard = build_dashboard(metrics)
        assert dashboard.unaccounted_orders == 2

    def test_to_dict(self, metrics):
        data = build_dashboard(metrics).to_dict()

        assert data["progressPercent"] == 45.0
        assert data["totals"]["cancelledOrders"] == 2
        assert data["waitTimes"]["maxWaitTime"] == 12
        assert len(data["baristaWorkload"]) == 2
        assert data["drinkDistribution"][0] == {"name": "Latte", "count": 9}
        assert len(data["orderStatus"]) == 3

    def test_empty_metrics(self):
        data = build_dashboard(TestMetrics.empty()).to_dict()

        assert data["progressPercent"] == 0.0
        assert data["baristaWorkload"] == []
        assert data["drinkDistribution"] == []
