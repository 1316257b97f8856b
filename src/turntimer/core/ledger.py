"""Score ledger: per-player points that never drop below zero."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from turntimer.core.errors import UnknownPlayer

logger = logging.getLogger(__name__)


@dataclass
class Player:
    """A seat at the table.

    ``id`` and ``color`` are fixed at setup.  ``points`` is written only by
    :class:`ScoreLedger`.
    """

    id: int
    name: str
    color: str
    points: int = 0


class ScoreLedger:
    """Tracks points for a roster of players.

    The ledger lives as long as the game does; turn skips and timer resets
    leave it alone.
    """

    def __init__(self, players: Iterable[Player]) -> None:
        self._players: dict[int, Player] = {}
        for player in players:
            if player.id in self._players:
                raise ValueError(f"duplicate player id {player.id}")
            self._players[player.id] = player

    def add(self, player_id: int, delta: int) -> int:
        """Add *delta* points to *player_id*, clamping at zero.  Returns the new total."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise TypeError(f"delta must be an integer, got {type(delta).__name__}")
        player = self.player(player_id)
        player.points = max(0, player.points + delta)
        logger.debug("player %d now has %d points", player_id, player.points)
        return player.points

    def points(self, player_id: int) -> int:
        return self.player(player_id).points

    def standings(self) -> list[Player]:
        """Players ordered by points, highest first; ties keep seat order."""
        return sorted(self._players.values(), key=lambda p: (-p.points, p.id))

    def player(self, player_id: int) -> Player:
        """Return the player record for *player_id*."""
        try:
            return self._players[player_id]
        except KeyError:
            raise UnknownPlayer(f"no player with id {player_id}") from None
