"""
Signal device boundary.

The session engine talks to a headset only through the five calls defined
here (connect, start_session, start_trial, end_trial, end_session). Adapters
report outcomes as DeviceResult; raised exceptions are converted into failed
results at the call site by call_device().
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class DeviceError(Exception):
    """Raised inside adapters when the device cannot perform an operation."""


@dataclass
class DeviceResult:
    """Outcome of a device call."""
    success: bool
    message: str = ""
    session_id: Optional[str] = None
    session_record: Optional[Dict[str, Any]] = None
    filename: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class SessionInfo:
    mode: str
    start_time: str
    total_trials: int

    def to_dict(self) -> Dict[str, Any]:
        return {'mode': self.mode, 'startTime': self.start_time, 'totalTrials': self.total_trials}


@dataclass
class TrialInfo:
    trial_number: int
    direction: str
    condition: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trialNumber': self.trial_number,
            'direction': self.direction,
            'condition': self.condition,
            'timestamp': self.timestamp,
        }


def _now_iso() -> str:
    return datetime.now().isoformat()


def call_device(operation: str, func: Callable, *args) -> DeviceResult:
    """
    Invoke a device operation and normalize its outcome.

    Accepts adapters returning a DeviceResult, a dict with 'success' (and
    optionally 'message', 'sessionId', 'sessionRecord', 'filename') or a
    bool. Any exception becomes a failed result.
    """
    try:
        result = func(*args)
    except Exception as e:
        logger.error(f"Device {operation} raised: {e}")
        return DeviceResult(success=False, message=f"{operation} failed: {e}")

    if isinstance(result, DeviceResult):
        return result
    if isinstance(result, dict):
        return DeviceResult(
            success=bool(result.get('success')),
            message=result.get('message', ''),
            session_id=result.get('sessionId'),
            session_record=result.get('sessionRecord') or result.get('sessionData'),
            filename=result.get('filename'),
        )
    return DeviceResult(success=bool(result))


class DeviceAdapter(ABC):
    """
    Base class for headset adapters.

    Keeps session and trial bookkeeping and, while a trial is open, samples
    power-by-band from the concrete device on the session clock every
    sample_interval seconds. Subclasses only implement connection and the
    per-channel band read.
    """

    name = "device"
    # Cloud-backed headsets need DEVICE_ID / EMAIL / PASSWORD
    requires_credentials = False

    def __init__(self, clock=None, sample_interval: float = 0.25):
        self.clock = clock
        self.sample_interval = sample_interval
        self.is_connected = False
        self.device_id: Optional[str] = None
        self.session_data: Optional[Dict[str, Any]] = None
        self.current_trial: Optional[Dict[str, Any]] = None
        self.recording = False

    @property
    def session_active(self) -> bool:
        return self.session_data is not None

    def attach_clock(self, clock):
        """Use clock for sampling unless one was given at construction."""
        if self.clock is None:
            self.clock = clock

    @abstractmethod
    def _connect_impl(self, device_id: Optional[str], email: Optional[str],
                      password: Optional[str]) -> str:
        """
        Open the device. Return a human-readable description.

        Raises:
            DeviceError: If the device cannot be reached or authenticated
        """
        pass

    def _disconnect_impl(self):
        pass

    @abstractmethod
    def _read_band_powers(self) -> Optional[List[Dict[str, float]]]:
        """Current power per band for every channel, or None if no data yet."""
        pass

    def connect(self, device_id: Optional[str] = None, email: Optional[str] = None,
                password: Optional[str] = None) -> DeviceResult:
        try:
            description = self._connect_impl(device_id, email, password)
        except DeviceError as e:
            self.is_connected = False
            logger.error(f"[{self.name}] Connection failed: {e}")
            return DeviceResult(success=False, message=f"Failed to connect: {e}")

        self.is_connected = True
        self.device_id = device_id
        logger.info(f"[{self.name}] {description}")
        return DeviceResult(success=True, message=description or "Connected")

    def disconnect(self) -> DeviceResult:
        self._stop_recording()
        if self.is_connected:
            self._disconnect_impl()
        self.is_connected = False
        return DeviceResult(success=True, message="Disconnected")

    def start_session(self, info: SessionInfo) -> DeviceResult:
        if not self.is_connected:
            return DeviceResult(success=False, message="Device not connected")
        if self.session_data is not None:
            return DeviceResult(success=False, message="A session is already active")

        session_id = f"session_{int(time.time() * 1000)}"
        self.session_data = {
            'sessionId': session_id,
            'device': self.name,
            'deviceId': self.device_id,
            'mode': info.mode,
            'startTime': info.start_time,
            'totalTrials': info.total_trials,
            'trials': [],
        }
        logger.info(f"[{self.name}] Session {session_id} started ({info.mode})")
        return DeviceResult(success=True, message="Session started", session_id=session_id)

    def start_trial(self, info: TrialInfo) -> DeviceResult:
        if not self.is_connected:
            return DeviceResult(success=False, message="Device not connected")
        if self.session_data is None:
            return DeviceResult(success=False, message="No active session")

        if self.current_trial is not None:
            logger.warning(f"[{self.name}] Trial {self.current_trial['trialNumber']} was never ended")
            self._close_trial(complete=False)

        self.current_trial = dict(info.to_dict(), startTime=info.timestamp, brainwaves=[])
        self._start_recording()
        return DeviceResult(success=True, message=f"Trial {info.trial_number} started")

    def end_trial(self) -> DeviceResult:
        if self.current_trial is None:
            return DeviceResult(success=False, message="No active trial to end")

        number = self.current_trial['trialNumber']
        samples = len(self.current_trial['brainwaves'])
        self._close_trial(complete=True)
        return DeviceResult(success=True, message=f"Trial {number} ended ({samples} samples)")

    def end_session(self) -> DeviceResult:
        if self.session_data is None:
            return DeviceResult(success=False, message="No active session to end")

        if self.current_trial is not None:
            self._close_trial(complete=False)

        record = self.session_data
        record['endTime'] = _now_iso()
        self.session_data = None
        logger.info(f"[{self.name}] Session {record['sessionId']} ended "
                    f"({len(record['trials'])} trials)")
        return DeviceResult(success=True, message="Session ended",
                            session_id=record['sessionId'], session_record=record)

    def _close_trial(self, complete: bool):
        self._stop_recording()
        trial = self.current_trial
        trial['endTime'] = _now_iso()
        trial['complete'] = complete
        self.session_data['trials'].append(trial)
        self.current_trial = None

    def _start_recording(self):
        self.recording = True
        if self.clock is not None:
            self.clock.schedule_interval(self._sample, self.sample_interval)

    def _stop_recording(self):
        if self.recording and self.clock is not None:
            self.clock.unschedule(self._sample)
        self.recording = False

    def _sample(self, dt):
        if not self.recording or self.current_trial is None:
            return
        try:
            channels = self._read_band_powers()
        except DeviceError as e:
            logger.warning(f"[{self.name}] Sample failed: {e}")
            return
        if not channels:
            return
        self.current_trial['brainwaves'].append({
            'timestamp': int(time.time() * 1000),
            'data': {'data': channels},
        })
