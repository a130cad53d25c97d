"""
Experiment modes and direction vocabularies.

A mode only changes what the subject is asked to do during the action phase;
the phase sequence and timings are identical across modes.
"""

from enum import Enum
from typing import List


UP = 'up'
DOWN = 'down'
LEFT = 'left'
RIGHT = 'right'

FOUR_DIRECTIONS: List[str] = [UP, DOWN, LEFT, RIGHT]
BINARY_DIRECTIONS: List[str] = [UP, DOWN]


class Mode(Enum):
    """Mental task performed during the action phase."""

    INNER_SPEECH = "inner-speech"
    VISUALIZED = "visualized"
    PRONOUNCED = "pronounced"

    @classmethod
    def parse(cls, value) -> 'Mode':
        """
        Accept a Mode, its value, or its name (case-insensitive).

        Raises:
            ValueError: If value does not name a known mode
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for mode in cls:
            if text in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(f"Unknown mode: {value!r}")

    @property
    def announcement(self) -> str:
        """Text shown during the countdown before the first trial."""
        return _ANNOUNCEMENTS[self]

    @property
    def instruction(self) -> str:
        """Text shown when the mode is selected."""
        return _INSTRUCTIONS[self]

    @property
    def condition(self) -> str:
        return self.value

    def action_text(self, direction: str) -> str:
        """Instruction shown for the action phase of a trial."""
        return _ACTION_TEMPLATES[self].format(direction=direction)


_ANNOUNCEMENTS = {
    Mode.INNER_SPEECH: "INNER SPEECH MODE: Think the direction word without speaking",
    Mode.VISUALIZED: "VISUALIZATION MODE: Imagine moving in the direction",
    Mode.PRONOUNCED: "PRONOUNCED SPEECH MODE: Say the direction word aloud",
}

_ACTION_TEMPLATES = {
    Mode.INNER_SPEECH: "Think the word: {direction}",
    Mode.VISUALIZED: "Imagine moving: {direction}",
    Mode.PRONOUNCED: "Say aloud: {direction}",
}

_INSTRUCTIONS = {
    Mode.INNER_SPEECH: "INNER SPEECH MODE: Think the direction word without moving your lips or tongue",
    Mode.VISUALIZED: "VISUALIZED MODE: Visualize an arrow pointing in the direction",
    Mode.PRONOUNCED: "PRONOUNCED SPEECH MODE: Say the direction out loud clearly",
}
