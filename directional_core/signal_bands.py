"""
EEG frequency bands and band-power helpers.
"""

from typing import Dict, List

import numpy as np
from scipy.signal import welch


BANDS: Dict[str, tuple] = {
    'delta': (1.0, 4.0),
    'theta': (4.0, 7.5),
    'alpha': (7.5, 12.5),
    'beta': (12.5, 30.0),
    'gamma': (30.0, 100.0),
}

BAND_NAMES: List[str] = list(BANDS.keys())


def bandpower(sig, fs, fmin, fmax):
    """Welch power in band [fmin,fmax]"""
    if len(sig) < 2:
        return 0.0
    f, pxx = welch(sig, fs=fs, nperseg=min(512, len(sig)))
    if len(f) < 2:
        return 0.0
    df = f[1] - f[0]
    mask = (f >= fmin) & (f < fmax)
    return float(np.sum(pxx[mask]) * df) if np.any(mask) else 0.0


def band_powers(window: np.ndarray, fs: float) -> List[Dict[str, float]]:
    """
    Power per band for every channel of a (samples, channels) window.

    Returns:
        One {band: power} dict per channel
    """
    data = np.asarray(window, dtype=np.float64)
    if data.ndim == 1:
        data = data[:, None]
    nyquist = fs / 2.0
    channels = []
    for ch in range(data.shape[1]):
        sig = data[:, ch] - np.mean(data[:, ch])
        channels.append({
            band: bandpower(sig, fs, fmin, min(fmax, nyquist))
            for band, (fmin, fmax) in BANDS.items()
        })
    return channels
