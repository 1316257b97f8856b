"""Alert events emitted while a turn counts down."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AlertKind(Enum):
    """Kinds of alert the presentation layer may sound."""

    TICK = "tick"
    EXPIRED = "expired"


@dataclass(frozen=True)
class AlertEvent:
    """A single, non-persistent alert notification."""

    kind: AlertKind


TICK = AlertEvent(AlertKind.TICK)
EXPIRED = AlertEvent(AlertKind.EXPIRED)

# Ticks sound for the last ten seconds of a turn.
WARNING_THRESHOLD = 10


def alerts_for(before: int, after: int) -> list[AlertEvent]:
    """Return the alerts raised by the countdown moving from *before* to *after*.

    A step onto zero yields ``[EXPIRED]`` only; a downward step into the
    warning window yields ``[TICK]``.  Anything else yields ``[]``.
    """
    if after == 0 and before > 0:
        return [EXPIRED]
    if 0 < after <= WARNING_THRESHOLD and after < before:
        return [TICK]
    return []
