"""
Event marker codes.

Cue and action markers encode the direction in the last digit
(e.g. 401 = cue 'up', 504 = action 'right').
"""

from typing import Dict, Optional


SESSION_START = 8000
MODE_ANNOUNCEMENT = 8100
SESSION_END = 8999

TRIAL_START = 100
TRIAL_END = 199

REST = 200
CONCENTRATION = 300
CUE = 400
ACTION = 500
RELAX = 600

CHECK_SHOWN = 700
CHECK_CORRECT = 701
CHECK_INCORRECT = 702
CHECK_TIMEOUT = 703

PAUSE = 900
RESUME = 901

DIRECTION_OFFSETS: Dict[str, int] = {'up': 1, 'down': 2, 'left': 3, 'right': 4}

_NAMES: Dict[int, str] = {
    SESSION_START: "Session Start",
    MODE_ANNOUNCEMENT: "Mode Announcement",
    SESSION_END: "Session End",
    TRIAL_START: "Trial Start",
    TRIAL_END: "Trial End",
    REST: "Rest",
    CONCENTRATION: "Concentration",
    CUE: "Cue",
    ACTION: "Action",
    RELAX: "Relax",
    CHECK_SHOWN: "Attention Check Shown",
    CHECK_CORRECT: "Attention Check Correct",
    CHECK_INCORRECT: "Attention Check Incorrect",
    CHECK_TIMEOUT: "Attention Check Timeout",
    PAUSE: "Pause",
    RESUME: "Resume",
}


def with_direction(base: int, direction: Optional[str]) -> int:
    """Add the direction offset to a cue/action base code."""
    return base + DIRECTION_OFFSETS.get(direction, 0)


def get_name(code: int) -> str:
    """Human-readable name of a marker code."""
    if code in _NAMES:
        return _NAMES[code]
    base = code - code % 10
    if base in (CUE, ACTION):
        for direction, offset in DIRECTION_OFFSETS.items():
            if code == base + offset:
                return f"{_NAMES[base]} ({direction})"
    return f"Unknown ({code})"
