"""Turn order: who plays after whom."""

from turntimer.core.errors import InvalidPlayerCount

MIN_PLAYERS = 2
MAX_PLAYERS = 4


def validate_player_count(count: int) -> int:
    """Return *count* unchanged if a game can be set up with it.

    Raises :class:`InvalidPlayerCount` outside ``MIN_PLAYERS..MAX_PLAYERS``.
    """
    if isinstance(count, bool) or not isinstance(count, int):
        raise InvalidPlayerCount(f"player count must be an integer, got {type(count).__name__}")
    if not (MIN_PLAYERS <= count <= MAX_PLAYERS):
        raise InvalidPlayerCount(
            f"player count must be between {MIN_PLAYERS} and {MAX_PLAYERS}, got {count}"
        )
    return count


def next_player(current: int, count: int) -> int:
    """Return the seat index that follows *current*, wrapping to 0."""
    if count < MIN_PLAYERS:
        raise InvalidPlayerCount(f"turn order needs at least {MIN_PLAYERS} players, got {count}")
    if not (0 <= current < count):
        raise ValueError(f"current must be in [0, {count}), got {current}")
    return (current + 1) % count
