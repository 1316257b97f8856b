"""CLI entry point for turntimer.

Uses Click to expose the ``turntimer`` command group.  ``turntimer play``
runs a game in the terminal: one thread reads keys and queues them, the main
thread drives the clock and is the only one that touches the game.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import Callable, TypeVar

import click

import turntimer
from turntimer.core.alerts import AlertEvent, AlertKind
from turntimer.core.clock import MonotonicClock
from turntimer.core.engine import Intent, TimerSnapshot
from turntimer.core.errors import TurnTimerError
from turntimer.core.sequencer import MIN_PLAYERS
from turntimer.core.session import Session

T = TypeVar("T")

QUIT_KEYS = frozenset({"q", "Q"})

_INTENT_KEYS = {
    " ": Intent.TOGGLE,
    "n": Intent.SKIP,
    "r": Intent.RESET,
}

_POINT_KEYS = {
    "+": 1,
    "=": 1,
    "-": -1,
}

_BELLS = {
    AlertKind.TICK: 1,
    AlertKind.EXPIRED: 3,
}

HELP_LINE = "space start/pause  n next player  r reset  +/- points  q quit"


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``TurnTimerError`` to a CLI error.

    On ``TurnTimerError`` the message is printed to stderr and the
    process exits with code 1.
    """
    try:
        return action()
    except TurnTimerError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


class TerminalView:
    """Renders a session on a single terminal line and rings the bell on alerts."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._width = 0
        session.timer.add_state_listener(self.on_state)
        session.timer.add_alert_listener(self.on_alert)

    def on_state(self, snapshot: TimerSnapshot) -> None:
        self.render()

    def on_alert(self, alert: AlertEvent) -> None:
        click.echo("\a" * _BELLS[alert.kind], nl=False)

    def render(self) -> None:
        line = f"{self._session.status()}  | {self._session.scoreboard()}"
        # Pad so a shorter line fully overwrites the previous one.
        padded = line.ljust(self._width)
        self._width = len(line)
        click.echo(f"\r{padded}", nl=False)


class KeyDispatcher:
    """Turns key presses into queued game actions.

    :meth:`handle` may run on any thread.  :meth:`apply` must run on the
    thread that drives the clock.
    """

    def __init__(
        self, session: Session, on_scores_changed: Callable[[], None] | None = None
    ) -> None:
        self._session = session
        self._on_scores_changed = on_scores_changed
        self._points: queue.SimpleQueue[int] = queue.SimpleQueue()
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def handle(self, key: str) -> None:
        """Queue the action bound to *key*.  Unbound keys are ignored."""
        if key in QUIT_KEYS:
            self.stop()
        elif key in _INTENT_KEYS:
            self._session.timer.submit(_INTENT_KEYS[key])
        elif key in _POINT_KEYS:
            self._points.put(_POINT_KEYS[key])

    def apply(self) -> None:
        """Apply queued intents and point changes on the calling thread."""
        self._session.timer.drain()
        changed = False
        while True:
            try:
                delta = self._points.get_nowait()
            except queue.Empty:
                break
            self._session.add_points(self._session.active_player.id, delta)
            changed = True
        # Scores are not part of the timer state, so they get their own hook.
        if changed and self._on_scores_changed is not None:
            self._on_scores_changed()

    def read_keys(self) -> None:
        """Read keys until quit.  Ctrl-C and Ctrl-D quit too."""
        while not self.stopped:
            try:
                key = click.getchar()
            except (KeyboardInterrupt, EOFError):
                self.stop()
                break
            self.handle(key)


def _play(session: Session, clock: MonotonicClock) -> None:
    view = TerminalView(session)
    dispatcher = KeyDispatcher(session, on_scores_changed=view.render)
    reader = threading.Thread(target=dispatcher.read_keys, name="turntimer-keys", daemon=True)

    click.echo(HELP_LINE)
    view.render()
    reader.start()
    try:
        clock.run(should_stop=lambda: dispatcher.stopped, before_poll=dispatcher.apply)
    except KeyboardInterrupt:
        dispatcher.stop()
    finally:
        session.timer.close()
        click.echo("")
        click.echo(f"Final scores: {session.scoreboard()}")


@click.group()
@click.version_option(version=turntimer.__version__, prog_name="turntimer")
def cli() -> None:
    """turntimer: a turn timer for tabletop games."""


@cli.command()
@click.option(
    "-n",
    "--players",
    "player_count",
    type=int,
    default=None,
    help="Number of players (2-4).  Defaults to the number of names, at least 2.",
)
@click.option("--name", "names", multiple=True, help="Player name, repeat once per seat.")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def play(player_count: int | None, names: tuple[str, ...], verbose: bool) -> None:
    """Play a game with 60-second turns."""
    _configure_logging(verbose)
    if player_count is None:
        player_count = max(len(names), MIN_PLAYERS)
    clock = MonotonicClock()
    session = _run(lambda: Session(player_count, list(names) or None, clock))
    _play(session, clock)
