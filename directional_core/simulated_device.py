"""
Simulated headset producing synthetic power-by-band samples.

Baselines per band with uniform jitter; 'up' trials carry extra gamma and
'down' trials extra alpha so offline analysis has something to find.
"""

import random
from typing import Dict, List, Optional

from .device_adapter import DeviceAdapter, DeviceError


_BASELINE = {
    'delta': (4.0, 2.0),
    'theta': (3.0, 2.0),
    'alpha': (2.0, 3.0),
    'beta': (2.0, 2.0),
    'gamma': (1.0, 1.0),
}

_DIRECTION_BOOST = {
    'up': ('gamma', 2.0),
    'down': ('alpha', 2.0),
}


class SimulatedDeviceAdapter(DeviceAdapter):
    """Device adapter that needs no hardware."""

    name = "simulated"

    def __init__(self, clock=None, sample_interval: float = 0.25, channel_count: int = 8,
                 seed: Optional[int] = None, fail_connect: bool = False):
        super().__init__(clock=clock, sample_interval=sample_interval)
        self.channel_count = channel_count
        self.fail_connect = fail_connect
        self._rng = random.Random(seed)

    def _connect_impl(self, device_id, email, password) -> str:
        if self.fail_connect:
            raise DeviceError("simulated connection failure")
        return f"Connected to simulated device ({self.channel_count} channels)"

    def _read_band_powers(self) -> List[Dict[str, float]]:
        direction = self.current_trial['direction'] if self.current_trial else None
        boost = _DIRECTION_BOOST.get(direction)
        channels = []
        for _ in range(self.channel_count):
            values = {band: base + self._rng.random() * spread
                      for band, (base, spread) in _BASELINE.items()}
            if boost:
                values[boost[0]] += boost[1]
            channels.append(values)
        return channels
