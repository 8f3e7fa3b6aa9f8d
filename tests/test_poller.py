"""
Unit tests for the Poller refresh driver.

Threaded tests synchronize on Events instead of sleeping, and use a long
interval so only the immediate tick (or refresh_now) runs.
"""

import threading
import pytest
from unittest.mock import Mock

from services.poller import Poller


LONG_INTERVAL = 60.0


# Fixtures

@pytest.fixture
def applied():
    return []


@pytest.fixture
def poller(applied):
    p = Poller("test", fetch=Mock(return_value="snapshot"), apply=applied.append,
               interval_seconds=LONG_INTERVAL)
    yield p
    p.stop()


class TestPollerManualRefresh:

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            Poller("bad", fetch=Mock(), apply=Mock(), interval_seconds=0)

    def test_refresh_now_applies(self, poller, applied):
        assert poller.refresh_now() is True
        assert applied == ["snapshot"]
        assert poller.last_success_at is not None
        assert poller.consecutive_failures == 0

    def test_refresh_now_propagates_failure(self, applied):
        on_error = Mock()
        error = RuntimeError("service down")
        p = Poller("failing", fetch=Mock(side_effect=error), apply=applied.append,
                   interval_seconds=LONG_INTERVAL, on_error=on_error)

        with pytest.raises(RuntimeError):
            p.refresh_now()

        assert applied == []
        assert p.consecutive_failures == 1
        on_error.assert_called_once_with(error)

    def test_success_resets_failure_count(self, applied):
        fetch = Mock(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])
        p = Poller("flaky", fetch=fetch, apply=applied.append, interval_seconds=LONG_INTERVAL)

        for _ in range(2):
            with pytest.raises(RuntimeError):
                p.refresh_now()
        assert p.consecutive_failures == 2

        assert p.refresh_now() is True
        assert p.consecutive_failures == 0
        assert applied == ["ok"]

    def test_error_callback_failure_is_contained(self):
        p = Poller("cb", fetch=Mock(side_effect=RuntimeError("down")), apply=Mock(),
                   interval_seconds=LONG_INTERVAL, on_error=Mock(side_effect=KeyError("x")))

        with pytest.raises(RuntimeError):
            p.refresh_now()


class TestPollerLifecycle:

    def test_start_ticks_immediately(self):
        ticked = threading.Event()
        p = Poller("immediate", fetch=Mock(return_value=1), apply=lambda _: ticked.set(),
                   interval_seconds=LONG_INTERVAL)

        p.start()
        try:
            assert ticked.wait(timeout=2)
            assert p.is_running
        finally:
            p.stop()

        assert not p.is_running

    def test_start_is_idempotent(self, poller):
        poller.start()
        thread = poller._thread
        poller.start()

        assert poller._thread is thread

    def test_stop_bumps_generation(self, poller):
        poller.start()
        generation = poller.generation
        poller.stop()

        assert poller.generation == generation + 1
        # Stopping again is a no-op
        poller.stop()
        assert poller.generation == generation + 1

    def test_running_context_manager(self, poller):
        with poller.running() as running:
            assert running.is_running
        assert not poller.is_running

    def test_restart_after_stop(self):
        ticks = []
        ticked = threading.Event()

        def apply(value):
            ticks.append(value)
            ticked.set()

        p = Poller("restart", fetch=Mock(return_value="x"), apply=apply,
                   interval_seconds=LONG_INTERVAL)

        p.start()
        assert ticked.wait(timeout=2)
        p.stop()

        ticked.clear()
        p.start()
        assert ticked.wait(timeout=2)
        p.stop()

        assert ticks == ["x", "x"]

    def test_stop_from_inside_apply(self):
        done = threading.Event()
        p = None

        def apply(_):
            p.stop()
            done.set()

        p = Poller("self-stop", fetch=Mock(return_value=1), apply=apply,
                   interval_seconds=LONG_INTERVAL)
        p.start()
        thread = p._thread

        assert done.wait(timeout=2)
        thread.join(timeout=2)
        assert not thread.is_alive()
        assert not p.is_running


class TestPollerCancellation:

    def test_result_resolving_after_stop_is_discarded(self, applied):
        started = threading.Event()
        release = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(timeout=5)
            return "late"

        p = Poller("slow", fetch=slow_fetch, apply=applied.append,
                   interval_seconds=LONG_INTERVAL)
        p.start()
        assert started.wait(timeout=2)

        thread = p._thread
        p.stop(wait=False)
        release.set()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert applied == []

    def test_manual_refresh_after_stop_still_applies(self, poller, applied):
        poller.start()
        poller.stop()
        applied.clear()

        assert poller.refresh_now() is True
        assert applied == ["snapshot"]


class TestPollerKeepRunning:

    def test_stops_itself_when_view_is_gone(self, applied):
        keep_running = Mock(side_effect=[True, False])
        fetch = Mock(return_value="snapshot")
        p = Poller("orphan", fetch=fetch, apply=applied.append,
                   interval_seconds=0.05, keep_running=keep_running)

        p.start()
        thread = p._thread
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert not p.is_running
        assert fetch.call_count == 1
        assert applied == ["snapshot"]
        assert keep_running.call_count == 2

    def test_no_tick_when_view_gone_before_start(self, applied):
        gate = threading.Event()

        def view_gone():
            gate.wait(timeout=2)
            return False

        fetch = Mock(return_value="snapshot")
        p = Poller("closed", fetch=fetch, apply=applied.append,
                   interval_seconds=LONG_INTERVAL, keep_running=view_gone)

        p.start()
        thread = p._thread
        gate.set()
        thread.join(timeout=2)

        assert not p.is_running
        fetch.assert_not_called()

    def test_restart_after_self_stop(self):
        gate = threading.Event()
        ticked = threading.Event()
        alive = {"value": False}

        def keep_running():
            gate.wait(timeout=2)
            return alive["value"]

        p = Poller("reopened", fetch=Mock(return_value="snapshot"),
                   apply=lambda snapshot: ticked.set(),
                   interval_seconds=LONG_INTERVAL, keep_running=keep_running)
        p.start()
        thread = p._thread
        gate.set()
        thread.join(timeout=2)
        assert not p.is_running

        alive["value"] = True
        p.start()

        assert ticked.wait(timeout=2)
        assert p.is_running
        p.stop()
