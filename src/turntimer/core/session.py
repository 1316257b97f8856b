"""Session — one game at the table: roster, turn timer and scores."""

from __future__ import annotations

import logging
from typing import Sequence

from turntimer.core.clock import ClockSource, ManualClock
from turntimer.core.engine import RunState, TurnTimer
from turntimer.core.errors import InvalidPlayerCount, InvalidPlayerName
from turntimer.core.ledger import Player, ScoreLedger
from turntimer.core.sequencer import MAX_PLAYERS, validate_player_count

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 20
PLAYER_COLORS = ("blue", "green", "orange", "purple")

_STATE_LABELS = {
    RunState.IDLE: "ready",
    RunState.RUNNING: "running",
    RunState.PAUSED: "paused",
}


def format_remaining(seconds: int) -> str:
    """Format *seconds* as ``M:SS``."""
    return f"{seconds // 60}:{seconds % 60:02d}"


def clean_name(name: str) -> str:
    """Return *name* trimmed, or raise :class:`InvalidPlayerName`."""
    trimmed = name.strip()
    if not trimmed:
        raise InvalidPlayerName("player name must not be empty")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise InvalidPlayerName(
            f"player name must be at most {MAX_NAME_LENGTH} characters, got {len(trimmed)}"
        )
    return trimmed


def default_names(count: int) -> list[str]:
    return [f"Player {seat + 1}" for seat in range(count)]


class Session:
    """Sets up a game and wires the turn timer to the score ledger.

    The timer and the ledger are independent: scoring never touches the
    countdown, and skipping or resetting a turn never touches the scores.
    """

    def __init__(
        self,
        player_count: int,
        names: Sequence[str] | None = None,
        clock: ClockSource | None = None,
    ) -> None:
        validate_player_count(player_count)
        if names is None:
            names = default_names(player_count)
        if len(names) > player_count:
            raise InvalidPlayerCount(f"got {len(names)} names for {player_count} players")
        # Seats without a given name fall back to the default one.
        names = list(names) + default_names(player_count)[len(names):]

        self._clock: ClockSource = clock if clock is not None else ManualClock()
        self._players: list[Player] = [
            Player(id=seat, name=clean_name(name), color=PLAYER_COLORS[seat % MAX_PLAYERS])
            for seat, name in enumerate(names)
        ]
        self._ledger = ScoreLedger(self._players)
        self._timer = TurnTimer(player_count, self._clock)
        logger.info(
            "game set up for %d players: %s",
            player_count,
            ", ".join(p.name for p in self._players),
        )

    # -- public API ----------------------------------------------------------

    @property
    def timer(self) -> TurnTimer:
        return self._timer

    @property
    def ledger(self) -> ScoreLedger:
        return self._ledger

    @property
    def clock(self) -> ClockSource:
        return self._clock

    @property
    def players(self) -> list[Player]:
        return list(self._players)

    @property
    def active_player(self) -> Player:
        return self._players[self._timer.active_player_index]

    def rename(self, player_id: int, name: str) -> str:
        """Rename a player.  Returns the trimmed name that was stored."""
        player = self._ledger.player(player_id)
        player.name = clean_name(name)
        return player.name

    def add_points(self, player_id: int, delta: int) -> int:
        """Add *delta* points to a player.  Returns the new total."""
        return self._ledger.add(player_id, delta)

    def status(self) -> str:
        """Return a one-line description of the current turn."""
        snapshot = self._timer.snapshot
        label = _STATE_LABELS[snapshot.run_state]
        if snapshot.remaining == 0:
            label = "time's up"
        return (
            f"{self.active_player.name}'s turn: "
            f"{format_remaining(snapshot.remaining)} ({label})"
        )

    def scoreboard(self) -> str:
        """Return the standings as ``name points`` pairs, best first."""
        return "  ".join(f"{p.name} {p.points}" for p in self._ledger.standings())

    def new_game(self) -> "Session":
        """End this game and set up a fresh one with the same names and clock."""
        self._timer.close()
        return Session(len(self._players), [p.name for p in self._players], self._clock)

