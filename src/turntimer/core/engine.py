"""Turn timer engine: a single countdown shared by all players in turn.

The engine owns whose turn it is, how much time that turn has left and
whether the countdown is running.  It consumes ticks from a
:class:`~turntimer.core.clock.ClockSource`, reports every committed change to
state listeners, and reports alerts (warning ticks, expiry) to alert
listeners.  It never touches audio or rendering.

Intents that make no sense in the current state (``start()`` with no time
left, ``pause()`` while idle) are ignored rather than raised: they are
reachable through ordinary UI races.  Each intent returns ``True`` when it
changed something and ``False`` when it was ignored.

``skip()`` leaves the next player's turn IDLE; only the automatic advance
after expiry starts the next countdown by itself.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from turntimer.core.alerts import AlertEvent, alerts_for
from turntimer.core.clock import TICK_INTERVAL, ClockSource, Deferred, Ticker
from turntimer.core.sequencer import next_player, validate_player_count

logger = logging.getLogger(__name__)

TURN_DURATION = 60
GRACE_DELAY = 1.5


class RunState(Enum):
    """Possible states of the countdown."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Intent(Enum):
    """User intents that can be queued with :meth:`TurnTimer.submit`."""

    START = "start"
    PAUSE = "pause"
    TOGGLE = "toggle"
    SKIP = "skip"
    RESET = "reset"


@dataclass(frozen=True)
class TimerSnapshot:
    """Read-only view of the engine state handed to listeners."""

    active_player_index: int
    remaining: int
    run_state: RunState


StateListener = Callable[[TimerSnapshot], None]
AlertListener = Callable[[AlertEvent], None]


class TurnTimer:
    """The turn timer state machine.

    Only one thread may call the intent methods, and it must be the thread
    that advances *clock*.  Other threads hand intents over with
    :meth:`submit`; the owning thread applies them with :meth:`drain`.
    """

    def __init__(
        self,
        player_count: int,
        clock: ClockSource,
        grace_delay: float = GRACE_DELAY,
    ) -> None:
        self._player_count: int = validate_player_count(player_count)
        self._clock = clock
        self._grace_delay = grace_delay
        self._active_index: int = 0
        self._remaining: int = TURN_DURATION
        self._run_state: RunState = RunState.IDLE
        # Bumped whenever a turn is replaced, so a stale auto-advance can tell.
        self._generation: int = 0
        self._pending_advance: Deferred | None = None
        self._ticker: Ticker | None = None
        self._state_listeners: list[StateListener] = []
        self._alert_listeners: list[AlertListener] = []
        self._commands: queue.SimpleQueue[Intent] = queue.SimpleQueue()

    # -- observable state ----------------------------------------------------

    @property
    def player_count(self) -> int:
        return self._player_count

    @property
    def active_player_index(self) -> int:
        return self._active_index

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def run_state(self) -> RunState:
        return self._run_state

    @property
    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(self._active_index, self._remaining, self._run_state)

    @property
    def pending_advance(self) -> Deferred | None:
        """The armed auto-advance, or ``None`` when nothing is armed."""
        return self._pending_advance

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def add_alert_listener(self, listener: AlertListener) -> None:
        self._alert_listeners.append(listener)

    # -- intents -------------------------------------------------------------

    def start(self) -> bool:
        """Start or resume the current player's countdown."""
        if self._run_state == RunState.RUNNING:
            return self._ignore("start")
        if self._remaining == 0:
            return self._ignore("start")
        self._run_state = RunState.RUNNING
        # Each start gets a full second before its first tick.
        self._ticker = self._clock.every(TICK_INTERVAL, self._on_tick)
        self._notify()
        return True

    def pause(self) -> bool:
        """Freeze the running countdown."""
        if self._run_state != RunState.RUNNING:
            return self._ignore("pause")
        self._stop_ticking()
        self._run_state = RunState.PAUSED
        self._notify()
        return True

    def toggle(self) -> bool:
        """Pause if running, otherwise start."""
        if self._run_state == RunState.RUNNING:
            return self.pause()
        return self.start()

    def skip(self) -> bool:
        """End the current turn and hand an idle, full turn to the next player."""
        self._cancel_pending_advance()
        self._stop_ticking()
        previous = self._active_index
        self._generation += 1
        self._active_index = next_player(self._active_index, self._player_count)
        self._remaining = TURN_DURATION
        self._run_state = RunState.IDLE
        logger.info("turn passed from player %d to player %d", previous, self._active_index)
        self._notify()
        return True

    def reset(self) -> bool:
        """Give the current player a fresh, idle turn."""
        self._cancel_pending_advance()
        self._stop_ticking()
        self._generation += 1
        self._remaining = TURN_DURATION
        self._run_state = RunState.IDLE
        logger.info("turn of player %d reset", self._active_index)
        self._notify()
        return True

    # -- command queue -------------------------------------------------------

    def submit(self, intent: Intent) -> None:
        """Queue *intent* for the owning thread.  Safe to call from any thread."""
        self._commands.put(intent)

    def drain(self) -> int:
        """Apply every queued intent in order.  Returns how many changed state."""
        applied = 0
        while True:
            try:
                intent = self._commands.get_nowait()
            except queue.Empty:
                return applied
            if self._dispatch(intent):
                applied += 1

    def close(self) -> None:
        """Stop the countdown and drop any armed auto-advance."""
        self._cancel_pending_advance()
        self._stop_ticking()

    # -- private helpers -----------------------------------------------------

    def _dispatch(self, intent: Intent) -> bool:
        handlers = {
            Intent.START: self.start,
            Intent.PAUSE: self.pause,
            Intent.TOGGLE: self.toggle,
            Intent.SKIP: self.skip,
            Intent.RESET: self.reset,
        }
        return handlers[intent]()

    def _on_tick(self) -> None:
        if self._run_state != RunState.RUNNING:
            return
        before = self._remaining
        self._remaining = before - 1
        if self._remaining == 0:
            self._run_state = RunState.IDLE
            self._stop_ticking()
            self._arm_auto_advance()
            logger.info("turn of player %d expired", self._active_index)
        self._notify()
        for alert in alerts_for(before, self._remaining):
            for listener in list(self._alert_listeners):
                listener(alert)

    def _arm_auto_advance(self) -> None:
        generation = self._generation
        self._pending_advance = self._clock.call_later(
            self._grace_delay, lambda: self._auto_advance(generation)
        )

    def _auto_advance(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("discarding auto-advance for a turn that was already replaced")
            return
        self._pending_advance = None
        self.skip()
        self.start()

    def _stop_ticking(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    def _cancel_pending_advance(self) -> None:
        if self._pending_advance is not None:
            if self._pending_advance.cancel():
                logger.debug("auto-advance cancelled")
            self._pending_advance = None

    def _ignore(self, intent: str) -> bool:
        logger.debug(
            "%s() ignored in %s state with %ds remaining",
            intent,
            self._run_state.value,
            self._remaining,
        )
        return False

    def _notify(self) -> None:
        snapshot = self.snapshot
        for listener in list(self._state_listeners):
            listener(snapshot)
