"""Exceptions raised by the turn timer core."""


class TurnTimerError(Exception):
    """Base class for all turntimer errors."""


class InvalidPlayerCount(TurnTimerError, ValueError):
    """Raised when a game is set up with an unsupported number of players."""


class InvalidPlayerName(TurnTimerError, ValueError):
    """Raised when a player name is empty or too long after trimming."""


class UnknownPlayer(TurnTimerError, KeyError):
    """Raised when a player id is not part of the current session."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
