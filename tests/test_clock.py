"""Tests for the clock sources."""

from unittest.mock import patch

import pytest

from turntimer.core.clock import Deferred, ManualClock, MonotonicClock, Ticker

# ---------------------------------------------------------------------------
# Deferred
# ---------------------------------------------------------------------------


class TestDeferred:
    """A deferred action runs at most once and not after cancellation."""

    def test_run_invokes_action_once(self) -> None:
        calls = []
        handle = Deferred(1.0, lambda: calls.append("x"))
        assert handle.run() is True
        assert handle.run() is False
        assert calls == ["x"]
        assert handle.fired

    def test_cancelled_action_does_not_run(self) -> None:
        calls = []
        handle = Deferred(1.0, lambda: calls.append("x"))
        assert handle.cancel() is True
        assert handle.run() is False
        assert calls == []

    def test_cancel_after_fire_reports_false(self) -> None:
        handle = Deferred(1.0, lambda: None)
        handle.run()
        assert handle.cancel() is False
        assert not handle.cancelled


# ---------------------------------------------------------------------------
# ManualClock
# ---------------------------------------------------------------------------


class TestManualClock:
    """ManualClock runs scheduled actions only when advanced."""

    def test_call_later_fires_at_deadline(self) -> None:
        clock = ManualClock()
        fired = []
        clock.call_later(1.5, lambda: fired.append(clock.now))
        clock.advance(1.25)
        assert fired == []
        clock.advance(0.25)
        assert fired == [pytest.approx(1.5)]

    def test_events_fire_in_chronological_order(self) -> None:
        clock = ManualClock()
        order = []
        clock.call_later(1.5, lambda: order.append(("later", clock.now)))
        clock.call_later(0.5, lambda: order.append(("soon", clock.now)))
        clock.call_later(1.0, lambda: order.append(("mid", clock.now)))
        clock.advance(2.0)
        assert order == [("soon", 0.5), ("mid", 1.0), ("later", 1.5)]

    def test_same_instant_fires_in_scheduling_order(self) -> None:
        clock = ManualClock()
        order = []
        clock.call_later(1.0, lambda: order.append("first"))
        clock.call_later(1.0, lambda: order.append("second"))
        clock.tick()
        assert order == ["first", "second"]

    def test_cancelled_action_never_fires(self) -> None:
        clock = ManualClock()
        fired = []
        handle = clock.call_later(1.0, lambda: fired.append(1))
        handle.cancel()
        clock.advance(5.0)
        assert fired == []

    def test_action_scheduled_by_an_action_fires_in_same_advance(self) -> None:
        clock = ManualClock()
        fired = []
        clock.call_later(1.0, lambda: clock.call_later(0.5, lambda: fired.append(clock.now)))
        clock.advance(1.5)
        assert fired == [1.5]

    def test_next_event_at(self) -> None:
        clock = ManualClock()
        assert clock.next_event_at() is None
        clock.call_later(0.25, lambda: None)
        assert clock.next_event_at() == 0.25

    def test_negative_delay_raises(self) -> None:
        with pytest.raises(ValueError):
            ManualClock().call_later(-1, lambda: None)

    def test_moving_backwards_raises(self) -> None:
        with pytest.raises(ValueError):
            ManualClock().advance(-1)


# ---------------------------------------------------------------------------
# Ticker
# ---------------------------------------------------------------------------


class TestTicker:
    """every() repeats an action with its phase set at creation."""

    def test_ticks_once_per_interval(self) -> None:
        clock = ManualClock()
        seen = []
        ticker = clock.every(1.0, lambda: seen.append(clock.now))
        clock.tick(3)
        assert seen == [1.0, 2.0, 3.0]
        assert ticker.count == 3

    def test_phase_starts_at_creation(self) -> None:
        clock = ManualClock()
        clock.advance(0.75)
        seen = []
        clock.every(1.0, lambda: seen.append(clock.now))
        clock.advance(0.25)
        assert seen == []
        clock.advance(0.75)
        assert seen == [1.75]

    def test_cancel_stops_the_chain(self) -> None:
        clock = ManualClock()
        seen = []
        ticker = clock.every(1.0, lambda: seen.append(1))
        clock.tick(2)
        assert ticker.cancel() is True
        assert not ticker.active
        clock.tick(5)
        assert seen == [1, 1]
        assert ticker.cancel() is False

    def test_cancel_from_inside_the_action(self) -> None:
        clock = ManualClock()
        seen = []
        ticker: list[Ticker] = []

        def action() -> None:
            seen.append(1)
            if len(seen) == 2:
                ticker[0].cancel()

        ticker.append(clock.every(1.0, action))
        clock.tick(5)
        assert seen == [1, 1]

    def test_non_positive_interval_raises(self) -> None:
        with pytest.raises(ValueError):
            ManualClock().every(0, lambda: None)


# ---------------------------------------------------------------------------
# MonotonicClock
# ---------------------------------------------------------------------------


class TestMonotonicClock:
    """MonotonicClock follows time.monotonic() relative to its creation."""

    def test_poll_catches_up_with_real_time(self) -> None:
        with patch("turntimer.core.clock.time") as mock_time:
            mock_time.monotonic.return_value = 100.0
            clock = MonotonicClock()
            seen = []
            clock.every(1.0, lambda: seen.append(clock.now))

            mock_time.monotonic.return_value = 102.5
            clock.poll()
            assert seen == [1.0, 2.0]
            assert clock.now == 2.5

    def test_poll_without_elapsed_time_fires_nothing(self) -> None:
        with patch("turntimer.core.clock.time") as mock_time:
            mock_time.monotonic.return_value = 50.0
            clock = MonotonicClock()
            seen = []
            clock.every(1.0, lambda: seen.append(1))
            clock.poll()
            assert seen == []

    def test_run_stops_when_asked(self) -> None:
        with patch("turntimer.core.clock.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            clock = MonotonicClock()
            seen = []
            clock.every(1.0, lambda: seen.append(1))

            polls = []

            def before_poll() -> None:
                polls.append(1)
                mock_time.monotonic.return_value = float(len(polls))

            clock.run(should_stop=lambda: len(polls) > 3, before_poll=before_poll)

            # Three polls at t=1, 2, 3; the fourth iteration stops first.
            assert seen == [1, 1, 1]
            assert mock_time.sleep.call_count == 3

    def test_run_never_sleeps_past_next_event(self) -> None:
        with patch("turntimer.core.clock.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            clock = MonotonicClock()
            clock.call_later(1.0, lambda: None)
            stops = iter([False, True])
            clock.run(should_stop=lambda: next(stops), max_sleep=5.0)
            mock_time.sleep.assert_called_once_with(1.0)

    def test_run_sleeps_max_when_nothing_is_scheduled(self) -> None:
        with patch("turntimer.core.clock.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            clock = MonotonicClock()
            stops = iter([False, True])
            clock.run(should_stop=lambda: next(stops), max_sleep=0.05)
            mock_time.sleep.assert_called_once_with(0.05)
