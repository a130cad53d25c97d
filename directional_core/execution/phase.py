"""
Phase base class.

A trial is a fixed sequence of timed phases (Rest, Concentration, Cue,
Action, Relax). A phase only knows what to show on entry, how long it
lasts and which marker it emits; sequencing lives in TrialProcedure.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging
import random

logger = logging.getLogger(__name__)


class Phase(ABC):
    """
    Abstract base class for all phase types.

    Subclasses:
    - RestPhase: Randomized inter-trial rest
    - ConcentrationPhase: Focus circle
    - CuePhase: Direction cue
    - ActionPhase: Mode-specific mental task
    - RelaxPhase: Post-action relaxation
    """

    marker: Optional[int] = None

    def __init__(self, name: str, duration: float):
        """
        Initialize phase.

        Args:
            name: Phase name (also used as the marker event type)
            duration: Duration in seconds
        """
        self.name = name
        self.duration = duration

    @abstractmethod
    def present(self, presenter, trial, mode):
        """
        Show this phase's stimulus.

        Args:
            presenter: Presenter receiving the display callbacks
            trial: Trial being run
            mode: Mode of the session
        """
        pass

    def get_duration(self, rng: Optional[random.Random] = None) -> float:
        """Duration to use for this occurrence of the phase."""
        return self.duration

    def marker_code(self, trial) -> Optional[int]:
        return self.marker

    def send_marker(self, emitter, trial):
        """Emit this phase's marker, if it has one."""
        code = self.marker_code(trial)
        if emitter is None or code is None:
            return
        emitter.emit(code, event_type=self.name, trial_index=trial.number,
                     direction=trial.direction)

    def validate(self) -> List[str]:
        """
        Validate phase configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if self.duration < 0:
            errors.append(f"{self.name}: duration must be non-negative, got {self.duration}")
        return errors

    def get_estimated_duration(self) -> float:
        return self.duration

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            'type': type(self).__name__,
            'name': self.name,
            'duration': self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Phase':
        """Deserialize from dictionary."""
        return cls(duration=data.get('duration', 0.0))

    def __repr__(self):
        return f"{type(self).__name__}(duration={self.duration})"
