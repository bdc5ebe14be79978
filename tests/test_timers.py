"""Tests for the simulated clock and its timers."""

from datetime import timedelta

import pytest

from ev_fleet_charging.app.timers import TimerRegistry


@pytest.fixture
def registry(start_time):
    return TimerRegistry(start_time)


class TestCallLater:
    def test_fires_once_at_deadline(self, registry, start_time):
        seen = []
        registry.call_later(5, lambda: seen.append(registry.now), "once")

        registry.advance(4.9)
        assert seen == []
        registry.advance(0.1)
        assert seen == [start_time + timedelta(seconds=5)]
        registry.advance(100)
        assert len(seen) == 1

    def test_fired_timer_is_inactive(self, registry):
        timer = registry.call_later(1, lambda: None)
        registry.advance(1)
        assert timer.fired
        assert not timer.active
        assert registry.pending == []

    def test_cancelled_timer_never_fires(self, registry):
        seen = []
        timer = registry.call_later(1, lambda: seen.append(1))
        registry.cancel(timer)
        registry.advance(10)
        assert seen == []
        assert not timer.active

    def test_cancel_none_is_allowed(self, registry):
        registry.cancel(None)


class TestCallEvery:
    def test_first_run_one_interval_out(self, registry):
        seen = []
        registry.call_every(1, lambda: seen.append(registry.now))
        registry.advance(0.5)
        assert seen == []
        registry.advance(3)
        assert len(seen) == 3

    def test_runs_until_cancelled(self, registry):
        seen = []
        timer = registry.call_every(2, lambda: seen.append(1))
        registry.advance(6)
        registry.cancel(timer)
        registry.advance(6)
        assert len(seen) == 3

    def test_callback_may_cancel_its_own_timer(self, registry):
        seen = []

        def once():
            seen.append(1)
            registry.cancel(timer)

        timer = registry.call_every(1, once)
        registry.advance(5)
        assert seen == [1]

    @pytest.mark.parametrize("interval", [0, -1])
    def test_rejects_non_positive_interval(self, registry, interval):
        with pytest.raises(ValueError):
            registry.call_every(interval, lambda: None)


class TestOrdering:
    def test_due_timers_fire_in_deadline_order(self, registry):
        order = []
        registry.call_later(3, lambda: order.append("c"))
        registry.call_later(1, lambda: order.append("a"))
        registry.call_later(2, lambda: order.append("b"))
        registry.advance(5)
        assert order == ["a", "b", "c"]

    def test_ties_fire_in_arming_order(self, registry):
        order = []
        registry.call_later(1, lambda: order.append("first"))
        registry.call_later(1, lambda: order.append("second"))
        registry.advance(1)
        assert order == ["first", "second"]

    def test_timer_armed_inside_callback_fires_in_same_advance(self, registry):
        seen = []
        registry.call_later(1, lambda: registry.call_later(1, lambda: seen.append(registry.now)))
        registry.advance(5)
        assert len(seen) == 1

    def test_pending_lists_active_timers_soonest_first(self, registry):
        registry.call_later(10, lambda: None, "late")
        cancelled = registry.call_later(2, lambda: None, "cancelled")
        registry.call_later(5, lambda: None, "early")
        registry.cancel(cancelled)
        assert [t.name for t in registry.pending] == ["early", "late"]


class TestClock:
    def test_advance_moves_now(self, registry, start_time):
        registry.advance(90)
        assert registry.now == start_time + timedelta(seconds=90)

    def test_cannot_go_backwards(self, registry, start_time):
        with pytest.raises(ValueError):
            registry.advance(-1)
        with pytest.raises(ValueError):
            registry.advance_to(start_time - timedelta(seconds=1))

    def test_cancel_all(self, registry):
        seen = []
        registry.call_later(1, lambda: seen.append(1))
        registry.call_every(1, lambda: seen.append(2))
        registry.cancel_all()
        registry.advance(10)
        assert seen == []
        assert registry.pending == []
