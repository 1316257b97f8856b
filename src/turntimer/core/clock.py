"""Clock sources that drive the turn timer.

A clock runs one-shot deferred actions and repeating tickers.  A ticker's
phase starts when it is created, so a countdown started half-way through a
second still gets a full second before its first tick.  Everything due is
fired one action at a time, in chronological order, from whichever thread
advances the clock.

:class:`ManualClock` only moves when told to and is what the tests use.
:class:`MonotonicClock` follows ``time.monotonic()`` and is what the
terminal front end runs on.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0


class Deferred:
    """Handle for a one-shot action scheduled with :meth:`ClockSource.call_later`.

    The action runs at most once.  Once cancelled or fired, :meth:`run` is a
    no-op that returns ``False``.
    """

    def __init__(self, deadline: float, action: Callable[[], None]) -> None:
        self._deadline = deadline
        self._action = action
        self._cancelled = False
        self._fired = False

    @property
    def deadline(self) -> float:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self) -> bool:
        """Cancel the action.  Returns ``True`` if it was still pending."""
        if not self.pending:
            return False
        self._cancelled = True
        return True

    def run(self) -> bool:
        """Run the action if still pending.  Returns ``True`` if it ran."""
        if not self.pending:
            return False
        self._fired = True
        self._action()
        return True


class Ticker:
    """A repeating action created with :meth:`ClockSource.every`.

    Each firing arms the next one, one interval later.  :meth:`cancel` stops
    the chain, including from inside the action itself.
    """

    def __init__(self, clock: ClockSource, interval: float, action: Callable[[], None]) -> None:
        self._clock = clock
        self._interval = interval
        self._action = action
        self._count = 0
        self._next: Deferred | None = clock.call_later(interval, self._fire)

    @property
    def active(self) -> bool:
        return self._next is not None

    @property
    def count(self) -> int:
        """Number of times the action has run."""
        return self._count

    def cancel(self) -> bool:
        """Stop ticking.  Returns ``True`` if the ticker was still active."""
        if self._next is None:
            return False
        self._next.cancel()
        self._next = None
        return True

    def _fire(self) -> None:
        self._next = self._clock.call_later(self._interval, self._fire)
        self._count += 1
        self._action()


class ClockSource:
    """Shared scheduling for deferred actions and tickers.

    Time is measured in seconds since the clock was created.  Subclasses
    decide how time moves by calling :meth:`_advance_to`.
    """

    def __init__(self) -> None:
        self._now: float = 0.0
        self._deferred: list[tuple[float, int, Deferred]] = []
        self._sequence = itertools.count()

    # -- public interface ----------------------------------------------------

    @property
    def now(self) -> float:
        """Seconds elapsed on this clock."""
        return self._now

    def call_later(self, delay: float, action: Callable[[], None]) -> Deferred:
        """Schedule *action* to run once, *delay* seconds from now."""
        if delay < 0:
            raise ValueError(f"delay must not be negative, got {delay}")
        handle = Deferred(self._now + delay, action)
        heapq.heappush(self._deferred, (handle.deadline, next(self._sequence), handle))
        return handle

    def every(self, interval: float, action: Callable[[], None]) -> Ticker:
        """Run *action* every *interval* seconds, the first time one interval from now."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        return Ticker(self, interval, action)

    def next_event_at(self) -> float | None:
        """Return the clock time of the next pending action, if any."""
        deferred = self._peek_deferred()
        return deferred.deadline if deferred is not None else None

    # -- private helpers -----------------------------------------------------

    def _advance_to(self, target: float) -> None:
        """Fire every action due up to *target*, in deadline order.

        Actions due at the same instant fire in the order they were scheduled.
        """
        while True:
            deferred = self._peek_deferred()
            if deferred is None or deferred.deadline > target:
                break
            heapq.heappop(self._deferred)
            self._now = max(self._now, deferred.deadline)
            deferred.run()
        self._now = max(self._now, target)

    def _peek_deferred(self) -> Deferred | None:
        """Return the earliest pending deferred action, dropping cancelled ones."""
        while self._deferred and not self._deferred[0][2].pending:
            heapq.heappop(self._deferred)
        return self._deferred[0][2] if self._deferred else None


class ManualClock(ClockSource):
    """A clock that only advances when told to."""

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*, firing everything that falls due."""
        if seconds < 0:
            raise ValueError(f"cannot move a clock backwards ({seconds}s)")
        self._advance_to(self._now + seconds)

    def tick(self, count: int = 1) -> None:
        """Move the clock forward by *count* tick intervals."""
        self.advance(count * TICK_INTERVAL)


class MonotonicClock(ClockSource):
    """A clock that follows ``time.monotonic()``.

    Nothing fires on its own: the owning thread calls :meth:`poll` (or
    :meth:`run`) and every due action runs on that thread.
    """

    def __init__(self) -> None:
        super().__init__()
        self._origin: float = time.monotonic()

    def poll(self) -> None:
        """Catch up with real time, firing everything that fell due."""
        self._advance_to(time.monotonic() - self._origin)

    def run(
        self,
        should_stop: Callable[[], bool],
        before_poll: Callable[[], None] | None = None,
        max_sleep: float = 0.05,
    ) -> None:
        """Drive the clock until *should_stop* returns ``True``.

        *before_poll* runs on every iteration ahead of the clock catching up;
        callers use it to drain queued commands on the same thread.
        """
        logger.debug("clock loop started")
        while True:
            if before_poll is not None:
                before_poll()
            if should_stop():
                break
            self.poll()
            wait = max_sleep
            due = self.next_event_at()
            if due is not None:
                wait = min(wait, max(due - (time.monotonic() - self._origin), 0.0))
            time.sleep(wait)
        logger.debug("clock loop stopped at %.1fs", self._now)
