"""
RestPhase: randomized rest before each trial.
"""

from typing import Any, Dict, List, Optional
import random

from ..phase import Phase
from ...markers import codes

REST_COLOR = '#4c76b2'


class RestPhase(Phase):
    """
    Rest period of random length in [min_duration, max_duration].

    The focus circle turns blue and direction indicators are cleared.
    """

    marker = codes.REST

    def __init__(self, min_duration: float = 1.5, max_duration: float = 2.0):
        super().__init__("rest", min_duration)
        self.min_duration = min_duration
        self.max_duration = max_duration

    def present(self, presenter, trial, mode):
        presenter.hide_directions()
        presenter.set_focus_color(REST_COLOR)
        presenter.show_timer("Rest...")

    def get_duration(self, rng: Optional[random.Random] = None) -> float:
        if self.max_duration <= self.min_duration:
            return self.min_duration
        return (rng or random).uniform(self.min_duration, self.max_duration)

    def validate(self) -> List[str]:
        errors = []
        if self.min_duration < 0:
            errors.append(f"rest: min_duration must be non-negative, got {self.min_duration}")
        if self.max_duration < self.min_duration:
            errors.append("rest: max_duration must be >= min_duration")
        return errors

    def get_estimated_duration(self) -> float:
        return (self.min_duration + self.max_duration) / 2.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'RestPhase',
            'name': self.name,
            'min_duration': self.min_duration,
            'max_duration': self.max_duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RestPhase':
        return cls(min_duration=data.get('min_duration', 1.5),
                   max_duration=data.get('max_duration', 2.0))
