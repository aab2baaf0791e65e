from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class RouteSummary:
    """
    Statistics for one recorded route. Never stored.
    """

    point_count: int = 0
    feature_count: int = 0
    distance: int = 0  # meters
    elapsed_time: int = 0  # whole seconds


class SessionState(str, Enum):
    collecting = "collecting"
    finalizing = "finalizing"
    responded = "responded"
    active = "active"
    completed = "completed"
    abandoned = "abandoned"


TERMINAL_STATES = frozenset(
    {SessionState.responded, SessionState.completed, SessionState.abandoned}
)


class SessionClosedError(RuntimeError):
    """Raised when a stream event arrives after the session has finished."""
