"""
Marker Logger

Keeps every event marker emitted during a session for validation and
export next to the session record.
"""

import time
from collections import Counter
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from .codes import get_name


@dataclass
class MarkerEvent:
    """Record of a single marker event"""
    timestamp: float
    marker: int
    event_type: Optional[str] = None
    trial_index: Optional[int] = None
    additional_data: Optional[Dict[str, Any]] = None

    @property
    def name(self) -> str:
        return get_name(self.marker)

    def to_dict(self) -> dict:
        return asdict(self)


class MarkerLogger:
    """
    In-memory log of emitted markers.

    Usage:
        logger = MarkerLogger(session_id="session_1712345678901")
        logger.log_marker(401, event_type="cue", trial_index=3, direction="up")
        logger.export_to_csv("data/markers.csv")
    """

    def __init__(self, session_id: str = "default"):
        self.session_id = session_id
        self.events: List[MarkerEvent] = []
        self.started_at = time.time()

    def log_marker(self, marker: int, event_type: Optional[str] = None,
                   trial_index: Optional[int] = None, **additional_data):
        self.events.append(MarkerEvent(
            timestamp=time.time(),
            marker=marker,
            event_type=event_type,
            trial_index=trial_index,
            additional_data=additional_data if additional_data else None
        ))

    def get_events(self, marker: Optional[int] = None, event_type: Optional[str] = None,
                   trial_index: Optional[int] = None) -> List[MarkerEvent]:
        """Events matching every filter that is given."""
        wanted = {'marker': marker, 'event_type': event_type, 'trial_index': trial_index}
        wanted = {k: v for k, v in wanted.items() if v is not None}
        return [e for e in self.events
                if all(getattr(e, k) == v for k, v in wanted.items())]

    def get_marker_counts(self) -> Dict[int, int]:
        return dict(Counter(e.marker for e in self.events))

    def to_dataframe(self) -> pd.DataFrame:
        rows = [{
            'timestamp': e.timestamp,
            'relative_time_sec': round(e.timestamp - self.started_at, 3),
            'marker': e.marker,
            'name': e.name,
            'event_type': e.event_type or '',
            'trial_index': e.trial_index if e.trial_index is not None else '',
            'additional_data': str(e.additional_data) if e.additional_data else '',
        } for e in self.events]
        columns = ['timestamp', 'relative_time_sec', 'marker', 'name', 'event_type',
                   'trial_index', 'additional_data']
        return pd.DataFrame(rows, columns=columns)

    def export_to_csv(self, output_path: str):
        self.to_dataframe().to_csv(output_path, index=False)

    def clear(self):
        self.events.clear()

    def get_event_count(self) -> int:
        return len(self.events)
