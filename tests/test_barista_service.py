"""
Unit tests for the barista dashboard service.

The Queue Service client is a Mock; pollers run with a long interval so
only explicit refreshes touch the snapshot.
"""

import time
import pytest
from unittest.mock import MagicMock

from core.exceptions import ProtocolError, TransportError
from core.queue_client import QueueServiceClient
from models.barista import Barista, BaristaStatus
from models.order import Order, OrderStatus
from services.barista_service import BaristaDashboardService, BaristaDashboardSnapshot


def make_order(order_id, status=OrderStatus.PENDING, **kwargs):
    return Order(id=order_id, order_number=f"ORD-{order_id}", status=status, **kwargs)


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


# Fixtures

@pytest.fixture
def baristas():
    return [
        Barista(id=1, name="Sam", status=BaristaStatus.AVAILABLE),
        Barista(id=2, name="Kim", status=BaristaStatus.BUSY),
    ]


@pytest.fixture
def client(baristas):
    mock_client = MagicMock(spec=QueueServiceClient)
    mock_client.get_all_baristas.return_value = baristas
    mock_client.get_pending_orders.return_value = [
        make_order(10, current_wait_minutes=4, emergency_flag=True),
        make_order(11, current_wait_minutes=2),
    ]
    mock_client.get_orders_by_status.return_value = [
        make_order(9, OrderStatus.IN_PROGRESS, barista_id=2, barista_name="Kim"),
    ]
    return mock_client


@pytest.fixture
def service(client):
    svc = BaristaDashboardService(client, refresh_interval_seconds=60.0)
    yield svc
    svc.close()


class TestSnapshot:

    def test_empty_before_first_refresh(self, service):
        snapshot = service.get_snapshot()
        assert not snapshot.is_loaded
        assert snapshot.baristas == ()

    def test_refresh_loads_all_three_lists(self, service, client):
        snapshot = service.refresh()

        assert snapshot.is_loaded
        assert [b.name for b in snapshot.baristas] == ["Sam", "Kim"]
        assert [o.id for o in snapshot.pending_orders] == [10, 11]
        client.get_orders_by_status.assert_called_once_with(OrderStatus.IN_PROGRESS)

    def test_summary(self, service):
        summary = service.refresh().summary()

        assert summary == {
            "pendingCount": 2,
            "emergencyCount": 1,
            "averageWaitMinutes": 3,
            "availableBaristas": 1,
        }

    def test_current_order_matched_by_name_when_no_id(self, baristas):
        snapshot = BaristaDashboardSnapshot(
            baristas=tuple(baristas),
            in_progress_orders=(make_order(5, OrderStatus.IN_PROGRESS, barista_name="Sam"),),
        )

        assert snapshot.current_order_for(1).id == 5
        assert snapshot.current_order_for(2) is None

    def test_failed_refresh_keeps_snapshot(self, service, client):
        before = service.refresh()
        client.get_all_baristas.side_effect = TransportError("GET", "/baristas", "refused")

        with pytest.raises(TransportError):
            service.refresh()

        assert service.get_snapshot() is before
        assert "unreachable" in service.last_error


class TestTakeNext:

    def test_can_take_next(self, service):
        service.refresh()

        assert service.can_take_next(1) is True
        # Kim already has order 9 in progress
        assert service.can_take_next(2) is False

    def test_cannot_take_next_with_empty_queue(self, service, client):
        client.get_pending_orders.return_value = []
        service.refresh()

        assert service.can_take_next(1) is False

    def test_take_next_refreshes_after_success(self, service, client):
        service.refresh()
        client.assign_next_order.return_value = make_order(10, OrderStatus.IN_PROGRESS, barista_id=1)
        client.get_pending_orders.return_value = [make_order(11)]

        order = service.take_next_order(1)

        assert order.id == 10
        client.assign_next_order.assert_called_once_with(1)
        assert client.get_all_baristas.call_count == 2
        assert [o.id for o in service.get_snapshot().pending_orders] == [11]

    def test_rejected_assignment_leaves_snapshot_untouched(self, service, client):
        """assign-next with nothing pending: error surfaces, no state change."""
        client.get_pending_orders.return_value = []
        before = service.refresh()
        client.assign_next_order.side_effect = ProtocolError(
            "POST", "/baristas/1/assign-next", 400, service_message="No pending orders"
        )

        with pytest.raises(ProtocolError):
            service.take_next_order(1)

        assert service.get_snapshot() is before
        assert client.get_all_baristas.call_count == 1


class TestOtherActions:

    def test_complete_order_survives_failed_refresh(self, service, client):
        before = service.refresh()
        client.complete_order.return_value = None
        client.get_pending_orders.side_effect = TransportError("GET", "/orders/pending", "timed out")

        assert service.complete_order(9) is None

        client.complete_order.assert_called_once_with(9)
        assert service.get_snapshot() is before
        assert service.last_error is not None

    def test_set_barista_status(self, service, client):
        client.update_barista_status.return_value = Barista(id=1, name="Sam", status=BaristaStatus.OFFLINE)

        barista = service.set_barista_status(1, "offline")

        assert barista.status == BaristaStatus.OFFLINE
        client.update_barista_status.assert_called_once_with(1, BaristaStatus.OFFLINE)

    def test_set_barista_status_unknown_value(self, service, client):
        with pytest.raises(ValueError):
            service.set_barista_status(1, "ON_BREAK")
        client.update_barista_status.assert_not_called()

    def test_cancel_order(self, service, client):
        client.cancel_order.return_value = make_order(11, OrderStatus.CANCELLED)

        assert service.cancel_order(11).status == OrderStatus.CANCELLED


class TestLifecycle:

    def test_activate_and_deactivate(self, service):
        service.activate()
        assert service.is_active
        assert service.is_polling

        service.deactivate()
        assert not service.is_active
        assert not service.is_polling

    def test_auto_refresh_toggle(self, service):
        service.activate()

        service.set_auto_refresh(False)
        assert not service.is_polling

        service.set_auto_refresh(True)
        assert service.is_polling

    def test_auto_refresh_off_before_activate(self, service):
        service.set_auto_refresh(False)
        service.activate()

        assert service.is_active
        assert not service.is_polling

    def test_starts_with_no_view_and_no_poller(self, service):
        assert not service.is_active
        assert not service.is_polling


class TestSharedDashboard:
    """Two browsers with the dashboard open at once."""

    def test_one_browser_closing_keeps_polling_for_the_other(self, service):
        service.activate("browser-a")
        service.activate("browser-b")

        service.deactivate("browser-a")

        assert service.is_active
        assert service.is_polling
        assert service.is_viewing("browser-b")

    def test_last_browser_closing_stops_polling(self, service):
        service.activate("browser-a")
        service.activate("browser-b")

        service.deactivate("browser-a")
        service.deactivate("browser-b")

        assert not service.is_active
        assert not service.is_polling

    def test_pausing_one_view_keeps_polling_for_the_other(self, service):
        service.activate("browser-a")
        service.activate("browser-b")

        service.set_auto_refresh(False, "browser-a")

        assert service.is_polling
        assert not service.auto_refresh_for("browser-a")
        assert service.auto_refresh_for("browser-b")

        service.set_auto_refresh(False, "browser-b")
        assert not service.is_polling

    def test_deactivate_forgets_the_pause(self, service):
        service.activate("browser-a")
        service.set_auto_refresh(False, "browser-a")
        service.deactivate("browser-a")

        service.activate("browser-a")

        assert service.auto_refresh_for("browser-a")
        assert service.is_polling


class TestIdleViews:

    def test_abandoned_dashboard_stops_the_poller(self, client):
        clock = FakeClock()
        svc = BaristaDashboardService(
            client, refresh_interval_seconds=0.02, idle_timeout_seconds=30.0, clock=clock
        )
        svc.activate("browser-a")
        assert svc.is_polling

        clock.advance(31.0)

        assert wait_until(lambda: not svc.is_polling)
        assert not svc.is_active
        svc.close()

    def test_touched_view_survives_while_idle_one_is_dropped(self, client):
        clock = FakeClock()
        svc = BaristaDashboardService(
            client, refresh_interval_seconds=60.0, idle_timeout_seconds=30.0, clock=clock
        )
        svc.activate("browser-a")
        svc.activate("browser-b")

        clock.advance(20.0)
        svc.touch("browser-b")
        clock.advance(20.0)
        # Any lifecycle call sweeps idle views
        svc.set_auto_refresh(True, "browser-b")

        assert not svc.is_viewing("browser-a")
        assert svc.is_viewing("browser-b")
        assert svc.is_polling
        svc.close()


class TestErrorText:

    def test_last_error_is_the_user_message_only(self, service, client):
        error = ProtocolError("GET", "/baristas", 500, service_message="boom")
        client.get_all_baristas.side_effect = error

        with pytest.raises(ProtocolError):
            service.refresh()

        assert service.last_error == error.message
        assert "Details" not in service.last_error
        assert "status_code" not in service.last_error
