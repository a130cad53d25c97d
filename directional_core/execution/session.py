"""
Session record: mode, schedule and the trials run so far.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import time

from directional_config.modes import Mode
from .trial import Trial


class Session:
    """
    One run of the experiment.

    The mode is fixed at construction; the controller creates a new Session
    on every start.
    """

    def __init__(self, mode: Mode, total_trials: int, attention_check_trials: List[int],
                 variant: str = "four-direction", session_id: Optional[str] = None):
        self.mode = mode
        self.variant = variant
        self.total_trials = total_trials
        self.attention_check_trials = list(attention_check_trials)
        self.session_id = session_id
        self.device_session_id: Optional[str] = None
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.trials: List[Trial] = []

    def begin(self):
        self.start_time = time.time()
        if self.session_id is None:
            self.session_id = f"session_{int(self.start_time * 1000)}"

    def finish(self):
        self.end_time = time.time()

    def add_trial(self, trial: Trial):
        self.trials.append(trial)

    @property
    def current_trial(self) -> Optional[Trial]:
        return self.trials[-1] if self.trials else None

    @property
    def completed_trials(self) -> List[Trial]:
        return [t for t in self.trials if t.completed]

    def is_check_trial(self, number: int) -> bool:
        return number in self.attention_check_trials

    def summary(self) -> Dict[str, Any]:
        checks = [t.attention_check for t in self.trials if t.attention_check is not None]
        correct = sum(1 for c in checks if c.correct)
        duration = None
        if self.start_time and self.end_time:
            duration = self.end_time - self.start_time
        return {
            'session_id': self.session_id,
            'mode': self.mode.value,
            'total_trials': self.total_trials,
            'trials_started': len(self.trials),
            'trials_completed': len(self.completed_trials),
            'attention_checks': len(checks),
            'attention_checks_correct': correct,
            'accuracy': (correct / len(checks)) if checks else None,
            'duration_seconds': duration,
        }

    def to_record(self, device_record: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Build the persisted session record.

        Brainwave samples from the device record are attached to the trial
        with the same trial number.
        """
        samples_by_trial: Dict[int, list] = {}
        if device_record:
            for device_trial in device_record.get('trials', []):
                number = device_trial.get('trialNumber')
                samples_by_trial.setdefault(number, []).extend(device_trial.get('brainwaves', []))

        trials = []
        for trial in self.trials:
            entry = trial.to_dict()
            if trial.number in samples_by_trial:
                entry['brainwaves'] = samples_by_trial[trial.number]
            trials.append(entry)

        record = {
            'mode': self.mode.value,
            'variant': self.variant,
            'timestamp': datetime.fromtimestamp(self.start_time or time.time()).isoformat(),
            'sessionId': self.session_id,
            'deviceSessionId': self.device_session_id,
            'startTime': datetime.fromtimestamp(self.start_time).isoformat() if self.start_time else None,
            'endTime': datetime.fromtimestamp(self.end_time).isoformat() if self.end_time else None,
            'totalTrials': self.total_trials,
            'attentionCheckTrials': self.attention_check_trials,
            'trials': trials,
        }
        if device_record:
            record['device'] = {k: v for k, v in device_record.items() if k != 'trials'}
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Session':
        session = cls(
            mode=Mode.parse(record['mode']),
            total_trials=record.get('totalTrials', len(record.get('trials', []))),
            attention_check_trials=record.get('attentionCheckTrials', []),
            variant=record.get('variant', 'four-direction'),
            session_id=record.get('sessionId'),
        )
        session.device_session_id = record.get('deviceSessionId')
        if record.get('startTime'):
            session.start_time = datetime.fromisoformat(record['startTime']).timestamp()
        if record.get('endTime'):
            session.end_time = datetime.fromisoformat(record['endTime']).timestamp()
        session.trials = [Trial.from_dict(t) for t in record.get('trials', [])]
        return session

    def __repr__(self):
        return (f"Session(id={self.session_id}, mode={self.mode.value}, "
                f"trials={len(self.trials)}/{self.total_trials})")
