"""
Offline analysis of recorded sessions.

Per trial, band power is averaged over every sample and channel; per
direction, the mean and population standard deviation of those trial
averages are reported.
"""

import json
import os
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .signal_bands import BAND_NAMES


def load_session_data(filepath: str) -> Dict[str, Any]:
    """
    Read a session record from disk.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        return json.load(f)


def _channel_rows(sample: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Per-channel band values of one sample.

    Accepts {'data': {'data': [{band: value}, ...]}} (one dict per channel)
    and {'data': {'data': {band: [value per channel]}}}.
    """
    data = sample.get('data') if isinstance(sample, dict) else None
    if isinstance(data, dict):
        data = data.get('data')
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if isinstance(data, dict):
        columns = {band: np.atleast_1d(np.asarray(
                       [] if data.get(band) is None else data[band], dtype=float))
                   for band in BAND_NAMES}
        width = max((len(v) for v in columns.values()), default=0)
        return [{band: (values[i] if i < len(values) else None)
                 for band, values in columns.items()} for i in range(width)]
    return []


def trial_band_averages(trial: Dict[str, Any]) -> Optional[Dict[str, float]]:
    """
    Average power per band over all samples and channels of a trial.

    Missing band values count as 0. Returns None if the trial has no samples.
    """
    rows = []
    for sample in trial.get('brainwaves') or []:
        rows.extend(_channel_rows(sample))
    if not rows:
        return None

    frame = pd.DataFrame(rows).reindex(columns=BAND_NAMES)
    frame = frame.apply(pd.to_numeric, errors='coerce').fillna(0.0)
    return {band: float(value) for band, value in frame.mean().items()}


def extract_features(session_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Group trial band averages by direction.

    Returns:
        {'mode', 'timestamp', 'directionFeatures': {direction:
            {'averagePowerByBand': {band: [trial averages]}, 'trialCount': n}}}

    Raises:
        ValueError: If the record has no trials
    """
    trials = (session_data or {}).get('trials') or []
    if not trials:
        raise ValueError("Invalid session data: no trials")

    features = {
        'mode': session_data.get('mode'),
        'timestamp': session_data.get('timestamp'),
        'directionFeatures': {},
    }

    for trial in trials:
        direction = trial.get('direction')
        entry = features['directionFeatures'].setdefault(direction, {
            'averagePowerByBand': {band: [] for band in BAND_NAMES},
            'trialCount': 0,
        })
        entry['trialCount'] += 1

        averages = trial_band_averages(trial)
        if averages is None:
            continue
        for band in BAND_NAMES:
            entry['averagePowerByBand'][band].append(averages[band])

    return features


def calculate_statistics(features: Dict[str, Any]) -> Dict[str, Any]:
    """Mean and population standard deviation of the trial averages per direction and band."""
    statistics = {
        'mode': features.get('mode'),
        'timestamp': features.get('timestamp'),
        'directionStats': {},
    }

    for direction, data in features.get('directionFeatures', {}).items():
        averages = {}
        deviations = {}
        for band in BAND_NAMES:
            values = np.asarray(data['averagePowerByBand'].get(band, []), dtype=float)
            averages[band] = float(values.mean()) if values.size else 0.0
            deviations[band] = float(values.std(ddof=0)) if values.size else 0.0
        statistics['directionStats'][direction] = {
            'bandAverages': averages,
            'bandStdDeviations': deviations,
        }

    return statistics


def print_analysis_results(statistics: Dict[str, Any]):
    print(f"\n=== Analysis Results for {statistics['mode']} mode ===")
    print(f"Session timestamp: {statistics['timestamp']}\n")

    for direction, stats in statistics['directionStats'].items():
        print(f"\nDirection: {str(direction).upper()}")
        print("-" * 31)
        print("Average power by frequency band:")
        for band, value in stats['bandAverages'].items():
            print(f"  {band:<5}: {value:.6f}")
        print("\nStandard deviation by frequency band:")
        for band, value in stats['bandStdDeviations'].items():
            print(f"  {band:<5}: {value:.6f}")


def analyze_session_file(filepath: str, output_dir: Optional[str] = None) -> Optional[str]:
    """
    Load, analyze, print and save the statistics of one session file.

    Args:
        filepath: Session record (JSON)
        output_dir: Where to write the analysis (default: ../analysis next to the data dir)

    Returns:
        Path of the analysis JSON, or None on failure
    """
    print(f"Analyzing session data from: {filepath}")

    try:
        session_data = load_session_data(filepath)
    except (OSError, ValueError) as e:
        print(f"Error loading session data: {e}")
        return None

    try:
        features = extract_features(session_data)
    except ValueError as e:
        print(f"Failed to extract features from session data: {e}")
        return None

    statistics = calculate_statistics(features)
    print_analysis_results(statistics)

    if output_dir is None:
        output_dir = os.path.join(os.path.dirname(os.path.abspath(filepath)), '..', 'analysis')
    os.makedirs(output_dir, exist_ok=True)

    stamp = str(statistics['timestamp'] or 'unknown').replace(':', '-')
    output_path = os.path.join(output_dir, f"analysis-{statistics['mode']}-{stamp}.json")
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(statistics, f, indent=2)

    print(f"\nAnalysis results saved to: {output_path}")
    return output_path
