"""
Trial record for the directional thought experiment.

Represents a single trial execution.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
import time


@dataclass
class AttentionCheckResult:
    """
    Outcome of an attention check asked after a trial.

    answered is None when the check timed out.
    """
    asked: str
    answered: Optional[str]
    correct: bool
    timed_out: bool = False
    feedback: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'askedDirection': self.asked,
            'answeredDirection': self.answered,
            'correct': self.correct,
            'timedOut': self.timed_out,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AttentionCheckResult':
        return cls(
            asked=data['askedDirection'],
            answered=data.get('answeredDirection'),
            correct=bool(data.get('correct')),
            timed_out=bool(data.get('timedOut', False)),
        )


def _iso(ts: Optional[float]) -> Optional[str]:
    return datetime.fromtimestamp(ts).isoformat() if ts else None


def _from_iso(text: Optional[str]) -> Optional[float]:
    return datetime.fromisoformat(text).timestamp() if text else None


class Trial:
    """
    Represents a single trial execution.

    Contains:
    - number: 1-based position in the session
    - direction: Cued direction
    - condition: Mode value the trial ran under
    - phases: (phase name, entry time) in the order entered
    - attention_check: Result of the check asked after this trial, if any
    """

    def __init__(self, number: int, direction: str, condition: str):
        """
        Initialize trial.

        Args:
            number: Trial number (1..N)
            direction: Direction cued in this trial
            condition: Mode the trial runs under (e.g. 'inner-speech')
        """
        if number < 1:
            raise ValueError("trial number must be >= 1")
        self.number = number
        self.direction = direction
        self.condition = condition
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.phases: List[tuple] = []
        self.attention_check: Optional[AttentionCheckResult] = None

    @property
    def completed(self) -> bool:
        return self.end_time is not None

    def mark_start(self):
        """Mark the trial as started."""
        self.start_time = time.time()

    def mark_end(self):
        """Mark the trial as ended."""
        self.end_time = time.time()

    def mark_phase(self, name: str):
        self.phases.append((name, time.time()))

    def get_duration(self) -> Optional[float]:
        """
        Get trial duration in seconds.

        Returns:
            Duration in seconds, or None if not completed
        """
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize trial to the persisted record layout.

        Returns:
            Dictionary with camelCase keys and ISO timestamps
        """
        data = {
            'trialNumber': self.number,
            'direction': self.direction,
            'condition': self.condition,
            'startTime': _iso(self.start_time),
            'endTime': _iso(self.end_time),
            'complete': self.completed,
            'phases': [{'name': name, 'time': _iso(ts)} for name, ts in self.phases],
        }
        if self.attention_check is not None:
            data['attentionCheck'] = self.attention_check.to_dict()
        return data

    def to_row(self) -> Dict[str, Any]:
        """Flat row for CSV output."""
        check = self.attention_check
        return {
            'trial_number': self.number,
            'direction': self.direction,
            'condition': self.condition,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration': self.get_duration(),
            'check_answered': check.answered if check else None,
            'check_correct': check.correct if check else None,
            'check_timed_out': check.timed_out if check else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Trial':
        """
        Deserialize trial from dictionary.

        Args:
            data: Dictionary produced by to_dict()

        Returns:
            Trial instance
        """
        trial = cls(
            number=data['trialNumber'],
            direction=data['direction'],
            condition=data.get('condition', '')
        )
        trial.start_time = _from_iso(data.get('startTime'))
        trial.end_time = _from_iso(data.get('endTime'))
        trial.phases = [(p['name'], _from_iso(p.get('time'))) for p in data.get('phases', [])]
        if data.get('attentionCheck'):
            trial.attention_check = AttentionCheckResult.from_dict(data['attentionCheck'])
        return trial

    def __repr__(self):
        return f"Trial(number={self.number}, direction={self.direction}, completed={self.completed})"
