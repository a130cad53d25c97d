"""
Unit tests for offline session analysis.
"""

import json

import pytest

from directional_core.analysis import (
    analyze_session_file, calculate_statistics, extract_features, trial_band_averages
)
from directional_core.signal_bands import BAND_NAMES


def _sample(*channels):
    return {'timestamp': 0, 'data': {'data': list(channels)}}


def _bands(value):
    return {band: value for band in BAND_NAMES}


@pytest.fixture
def session_record():
    return {
        'mode': 'inner-speech',
        'timestamp': '2024-05-01T10:00:00',
        'trials': [
            {'trialNumber': 1, 'direction': 'up',
             'brainwaves': [_sample(_bands(1.0), _bands(3.0))]},
            {'trialNumber': 2, 'direction': 'up',
             'brainwaves': [_sample(_bands(4.0)), _sample(_bands(6.0))]},
            {'trialNumber': 3, 'direction': 'down', 'brainwaves': []},
            {'trialNumber': 4, 'direction': 'down',
             'brainwaves': [_sample({'alpha': 2.0})]},
        ],
    }


@pytest.mark.unit
def test_trial_average_over_samples_and_channels():
    trial = {'brainwaves': [_sample(_bands(1.0), _bands(3.0)), _sample(_bands(5.0))]}

    averages = trial_band_averages(trial)

    assert averages['alpha'] == pytest.approx(3.0)


@pytest.mark.unit
def test_trial_average_without_samples():
    assert trial_band_averages({'brainwaves': []}) is None


@pytest.mark.unit
def test_band_major_sample_layout():
    sample = {'data': {'data': {'alpha': [1.0, 3.0], 'beta': [2.0, 2.0]}}}

    averages = trial_band_averages({'brainwaves': [sample]})

    assert averages['alpha'] == pytest.approx(2.0)
    assert averages['beta'] == pytest.approx(2.0)
    assert averages['gamma'] == 0.0


@pytest.mark.unit
def test_extract_features(session_record):
    features = extract_features(session_record)

    up = features['directionFeatures']['up']
    down = features['directionFeatures']['down']
    assert up['trialCount'] == 2
    assert up['averagePowerByBand']['alpha'] == pytest.approx([2.0, 5.0])
    # Trials without samples are counted but not averaged
    assert down['trialCount'] == 2
    assert down['averagePowerByBand']['alpha'] == pytest.approx([2.0])
    assert down['averagePowerByBand']['beta'] == pytest.approx([0.0])


@pytest.mark.unit
def test_extract_features_without_trials():
    with pytest.raises(ValueError):
        extract_features({'mode': 'inner-speech', 'trials': []})


@pytest.mark.unit
def test_statistics_use_population_std(session_record):
    stats = calculate_statistics(extract_features(session_record))

    up = stats['directionStats']['up']
    assert up['bandAverages']['alpha'] == pytest.approx(3.5)
    assert up['bandStdDeviations']['alpha'] == pytest.approx(1.5)
    assert stats['directionStats']['down']['bandStdDeviations']['alpha'] == 0.0


@pytest.mark.unit
def test_analyze_session_file_writes_results(tmp_path, session_record, capsys):
    data_file = tmp_path / "data" / "inner-speech-session.json"
    data_file.parent.mkdir()
    data_file.write_text(json.dumps(session_record))

    path = analyze_session_file(str(data_file), output_dir=str(tmp_path / "analysis"))

    assert path.endswith("analysis-inner-speech-2024-05-01T10-00-00.json")
    with open(path) as f:
        stats = json.load(f)
    assert set(stats['directionStats']) == {'up', 'down'}
    assert "Direction: UP" in capsys.readouterr().out


@pytest.mark.unit
def test_analyze_invalid_file(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")

    assert analyze_session_file(str(bad)) is None
    assert analyze_session_file(str(tmp_path / "missing.json")) is None
