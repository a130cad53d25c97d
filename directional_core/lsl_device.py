"""
Headset adapter reading raw EEG from a Lab Streaming Layer stream.

Band powers are computed over a sliding window of the most recent samples
each time the session clock asks for a sample.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from .device_adapter import DeviceAdapter, DeviceError
from .signal_bands import band_powers

logger = logging.getLogger(__name__)


class LSLDeviceAdapter(DeviceAdapter):
    """
    Adapter over a pylsl StreamInlet.

    Args:
        stream_name: Name of the EEG stream to resolve (device_id overrides it)
        window_seconds: Length of the analysis window
        resolve_timeout: Seconds to wait for stream discovery
        inlet: Pre-built inlet (skips discovery)
    """

    name = "lsl"

    def __init__(self, stream_name: str = "EEG", clock=None, sample_interval: float = 0.25,
                 window_seconds: float = 1.0, resolve_timeout: float = 5.0, inlet=None):
        super().__init__(clock=clock, sample_interval=sample_interval)
        self.stream_name = stream_name
        self.window_seconds = window_seconds
        self.resolve_timeout = resolve_timeout
        self.inlet = inlet
        self.sfreq: float = 0.0
        self.channel_count = 0
        self._buffer: Optional[np.ndarray] = None

    def _connect_impl(self, device_id, email, password) -> str:
        if self.inlet is None:
            self.inlet = self._open_inlet(device_id or self.stream_name)

        info = self.inlet.info()
        self.sfreq = float(info.nominal_srate())
        self.channel_count = int(info.channel_count())
        if self.sfreq <= 0:
            raise DeviceError(f"Stream '{info.name()}' has an irregular sampling rate")

        self._buffer = np.zeros((0, self.channel_count))
        return (f"Connected to LSL stream '{info.name()}' "
                f"({self.channel_count} ch @ {self.sfreq:g} Hz)")

    def _open_inlet(self, name: str):
        # Import pylsl only when a stream is actually needed
        from pylsl import StreamInlet, resolve_streams

        for info in resolve_streams(wait_time=self.resolve_timeout):
            if info.name() == name:
                return StreamInlet(info, max_buflen=60, max_chunklen=0, recover=True)
        raise DeviceError(f"No LSL stream named '{name}' found")

    def _disconnect_impl(self):
        if self.inlet is not None and hasattr(self.inlet, 'close_stream'):
            self.inlet.close_stream()
        self.inlet = None
        self._buffer = None

    def _start_recording(self):
        # A trial's window holds only EEG pulled after its start
        if self.inlet is not None:
            try:
                self._drain()
            except Exception as e:
                logger.warning(f"[{self.name}] Could not drain inlet backlog: {e}")
        self._buffer = np.zeros((0, self.channel_count))
        super()._start_recording()

    def _drain(self, max_samples: int = 1024):
        """Discard everything queued in the inlet."""
        while True:
            chunk, _timestamps = self.inlet.pull_chunk(timeout=0.0, max_samples=max_samples)
            if len(chunk) < max_samples:
                return

    def _pull(self):
        chunk, _timestamps = self.inlet.pull_chunk(timeout=0.0)
        if not chunk:
            return
        arr = np.asarray(chunk, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr[None, :]
        window = max(1, int(self.window_seconds * self.sfreq))
        self._buffer = np.vstack([self._buffer, arr[:, :self.channel_count]])[-window:]

    def _read_band_powers(self) -> Optional[List[Dict[str, float]]]:
        if self.inlet is None:
            raise DeviceError("Inlet is closed")
        try:
            self._pull()
        except Exception as e:
            raise DeviceError(f"pull_chunk failed: {e}") from e

        # Need at least a quarter second of data for a meaningful spectrum
        if self._buffer is None or len(self._buffer) < max(2, int(self.sfreq * 0.25)):
            return None
        return band_powers(self._buffer, self.sfreq)
