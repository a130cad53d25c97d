"""
SessionStore: persistence of session records.

Writes the JSON session record at the end of a run and a trial-level CSV
after every trial so a crash loses at most the trial in progress.
"""

from typing import Any, Dict, List, Optional
import json
import os
from datetime import datetime

import pandas as pd

from .execution.session import Session
from .execution.trial import Trial


class SessionStore:
    """
    Manages session output files.

    Responsibilities:
    - Save intermediate trial data (crash recovery)
    - Write the final session record as JSON ({mode}-session-{timestamp}.json)
    - Write the final trial table as CSV
    - Load records back for analysis
    """

    def __init__(self, output_dir: str = "data", save_enabled: bool = True):
        """
        Initialize session store.

        Args:
            output_dir: Directory to save data files
            save_enabled: False turns every save into a no-op
        """
        self.output_directory = output_dir
        self.save_enabled = save_enabled
        self.trials_data: List[Dict[str, Any]] = []
        self._file_stem: Optional[str] = None

        if save_enabled:
            os.makedirs(output_dir, exist_ok=True)

        print(f"[SessionStore] Initialized (output: {output_dir})")

    @staticmethod
    def file_stem(session: Session) -> str:
        """Filename stem shared by every file of a session (':' is not filename-safe)."""
        started = datetime.fromtimestamp(session.start_time) if session.start_time else datetime.now()
        return f"{session.mode.value}-session-{started.isoformat().replace(':', '-')}"

    def begin_session(self, session: Session):
        """Reset trial buffer for a new session."""
        self.trials_data = []
        self._file_stem = self.file_stem(session)

    def _path(self, suffix: str) -> str:
        return os.path.join(self.output_directory, f"{self._file_stem or 'session'}{suffix}")

    def save_trial(self, trial: Trial):
        """
        Record a finished trial and refresh the crash-recovery CSV.

        Saving the same trial again replaces its row (e.g. once its
        attention check is answered).

        Args:
            trial: Completed trial
        """
        if not trial.completed:
            print(f"[SessionStore] Warning: Trial {trial.number} is not complete")
            return

        self.trials_data = [row for row in self.trials_data
                            if row['trial_number'] != trial.number]
        self.trials_data.append(trial.to_row())
        self._save_intermediate()

    def _save_intermediate(self):
        """Save intermediate data for crash recovery."""
        if not self.save_enabled or not self.trials_data:
            return
        pd.DataFrame(self.trials_data).to_csv(self._path("_partial.csv"), index=False)

    def save_session(self, session: Session,
                     device_record: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        Write the session record and trial table.

        Args:
            session: Finished session
            device_record: Session record returned by the device (brainwave samples)

        Returns:
            Path of the JSON record, or None if saving failed or is disabled
        """
        if not self.save_enabled:
            print("[SessionStore] Data saving disabled - no files will be written")
            return None

        if self._file_stem is None:
            self._file_stem = self.file_stem(session)

        record = session.to_record(device_record)
        json_path = self._path(".json")

        try:
            os.makedirs(self.output_directory, exist_ok=True)
            with open(json_path, 'w', encoding='utf-8') as f:
                json.dump(record, f, indent=2)

            rows = [t.to_row() for t in session.trials]
            if rows:
                pd.DataFrame(rows).to_csv(self._path("_trials.csv"), index=False)

            partial = self._path("_partial.csv")
            if os.path.exists(partial):
                os.remove(partial)

        except (OSError, TypeError, ValueError) as e:
            print(f"[SessionStore] Error saving session: {e}")
            return None

        print(f"[SessionStore] Saved {len(session.trials)} trials to {json_path}")
        return json_path

    @staticmethod
    def load_session(filepath: str) -> Dict[str, Any]:
        """
        Read a session record.

        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not valid JSON
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            return json.load(f)

    def get_trial_count(self) -> int:
        return len(self.trials_data)

    def __repr__(self):
        return f"SessionStore(output='{self.output_directory}', trials={len(self.trials_data)})"
