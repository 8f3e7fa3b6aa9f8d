"""
Unit tests for the load-test (simulation) service.
"""

import threading
import time
import pytest
from unittest.mock import MagicMock

from core.exceptions import ConfirmationRequiredError, ProtocolError, TransportError
from core.queue_client import QueueServiceClient
from models.metrics import TestMetrics
from services.simulation_service import SimulationService


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
def first_metrics():
    return TestMetrics(total_orders=10, pending_orders=8, completed_orders=2)


@pytest.fixture
def client(first_metrics):
    mock_client = MagicMock(spec=QueueServiceClient)
    mock_client.generate_test_orders.return_value = "Generated 10 test orders"
    mock_client.clear_test_data.return_value = "Test data cleared"
    mock_client.get_test_metrics.return_value = first_metrics
    return mock_client


@pytest.fixture
def service(client):
    svc = SimulationService(client, refresh_interval_seconds=60.0)
    yield svc
    svc.close()


class TestGenerate:

    def test_generate_fetches_metrics_and_starts_polling(self, service, client):
        service.activate("browser-a")
        message = service.generate()

        assert message == "Generated 10 test orders"
        assert service.is_running
        assert service.is_polling
        dashboard = service.get_dashboard()
        assert dashboard.progress_percent == pytest.approx(20.0)
        client.get_test_metrics.assert_called_once()

    def test_generate_failure_changes_nothing(self, service, client):
        client.generate_test_orders.side_effect = TransportError("POST", "/test/generate", "refused")

        with pytest.raises(TransportError):
            service.generate()

        assert not service.is_running
        assert not service.is_polling
        assert service.get_dashboard() is None
        client.get_test_metrics.assert_not_called()

    def test_generate_survives_failed_first_fetch(self, service, client):
        client.get_test_metrics.side_effect = ProtocolError("GET", "/test/metrics", 503)

        service.generate()

        assert service.is_running
        assert service.get_dashboard() is None
        assert service.last_error is not None

    def test_generate_while_inactive_does_not_poll(self, service):
        service.generate()

        assert service.is_running
        assert not service.is_polling


class TestClear:

    def test_clear_requires_confirmation(self, service, client):
        with pytest.raises(ConfirmationRequiredError):
            service.clear()

        client.clear_test_data.assert_not_called()

    def test_clear_resets_local_state(self, service, client):
        service.activate("browser-a")
        service.generate()

        message = service.clear(confirmed=True)

        assert message == "Test data cleared"
        assert not service.is_running
        assert not service.is_polling
        assert service.get_dashboard() is None

    def test_failed_clear_keeps_state(self, service, client):
        service.generate()
        dashboard = service.get_dashboard()
        client.clear_test_data.side_effect = ProtocolError("DELETE", "/test/clear", 500)

        with pytest.raises(ProtocolError):
            service.clear(confirmed=True)

        assert service.is_running
        assert service.get_dashboard() is dashboard


class TestViewLifecycle:

    def test_deactivate_discards_in_flight_poll(self, service, client, first_metrics):
        """A metrics call resolving after deactivate() is never applied."""
        started = threading.Event()
        release = threading.Event()
        late_metrics = TestMetrics(total_orders=10, completed_orders=10)

        def slow_metrics():
            started.set()
            release.wait(timeout=5)
            return late_metrics

        # First fetch happens inside generate(); the poller starts on activate()
        service.generate()
        client.get_test_metrics.side_effect = slow_metrics
        service.activate()
        assert started.wait(timeout=2)

        timer = threading.Timer(0.1, release.set)
        timer.start()
        service.deactivate()
        timer.join()

        assert not service.is_polling
        assert service.get_dashboard().metrics is first_metrics

    def test_activate_resumes_only_when_running(self, service):
        service.activate()
        assert not service.is_polling

        service.generate()
        service.deactivate()
        service.activate()
        assert service.is_polling

    def test_manual_refresh(self, service, client):
        client.get_test_metrics.return_value = TestMetrics(total_orders=4, completed_orders=1)

        dashboard = service.refresh()

        assert dashboard.progress_percent == pytest.approx(25.0)

    def test_time_series_passthrough(self, service, client):
        client.get_time_series.return_value = []
        assert service.get_time_series() == []


class TestSharedViews:

    def test_not_active_until_a_view_opens(self, client):
        svc = SimulationService(client, refresh_interval_seconds=60.0)

        assert not svc.is_active
        assert not svc.is_polling
        svc.generate()
        assert not svc.is_polling
        svc.close()

    def test_one_browser_leaving_keeps_polling_for_the_other(self, service):
        service.activate("browser-a")
        service.activate("browser-b")
        service.generate()

        service.deactivate("browser-a")

        assert service.is_active
        assert service.is_polling
        assert not service.is_viewing("browser-a")

        service.deactivate("browser-b")
        assert not service.is_polling

    def test_repeated_activate_from_one_browser_counts_once(self, service):
        service.activate("browser-a")
        service.activate("browser-a")
        service.generate()

        service.deactivate("browser-a")

        assert not service.is_active
        assert not service.is_polling

    def test_abandoned_view_stops_the_poller(self, client):
        clock = FakeClock()
        svc = SimulationService(
            client, refresh_interval_seconds=0.02, idle_timeout_seconds=30.0, clock=clock
        )
        svc.activate("browser-a")
        svc.generate()
        assert svc.is_polling

        clock.advance(31.0)

        assert wait_until(lambda: not svc.is_polling)
        assert not svc.is_active
        svc.close()

    def test_touch_keeps_a_view_alive(self, client):
        clock = FakeClock()
        svc = SimulationService(
            client, refresh_interval_seconds=60.0, idle_timeout_seconds=30.0, clock=clock
        )
        svc.activate("browser-a")

        clock.advance(20.0)
        assert svc.touch("browser-a")
        clock.advance(20.0)
        svc.generate()

        assert svc.is_polling
        assert not svc.touch("browser-b")
        svc.close()


class TestErrorText:

    def test_last_error_is_the_user_message_only(self, service, client):
        error = TransportError("GET", "/test/metrics", "refused")
        client.get_test_metrics.side_effect = error

        with pytest.raises(TransportError):
            service.refresh()

        assert service.last_error == error.message
        assert "Details" not in service.last_error
        assert "resolution" not in service.last_error
