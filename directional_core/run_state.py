"""Run state of a session."""

from enum import Enum


class RunState(Enum):
    """
    Lifecycle: IDLE -> RUNNING <-> PAUSED -> STOPPED -> (next start) RUNNING.

    AWAITING_CHECK is a running sub-state entered between trials while an
    attention check waits for its answer. It is not a user pause.
    """

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    AWAITING_CHECK = "awaiting_check"
    STOPPED = "stopped"

    @property
    def is_active(self) -> bool:
        """True while a session is in progress (including paused)."""
        return self in (RunState.RUNNING, RunState.PAUSED, RunState.AWAITING_CHECK)
