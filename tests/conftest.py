"""
Pytest configuration and fixtures for the directional session engine tests.

Provides a manually driven pyglet clock, a call-recording fake device and
short phase timings so whole sessions run in simulated time.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pyglet

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from directional_config.experiment import ExperimentConfig, PhaseTimings
from directional_core.device_adapter import DeviceResult
from directional_core.presenter import Presenter


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Add custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: unit test (fast, no I/O)")
    config.addinivalue_line("markers", "integration: integration test (with mocks)")
    config.addinivalue_line("markers", "hardware: requires a real headset or LSL stream")


# ==================== CLOCK ====================

class ManualTime:
    """Time source that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self):
        return self.now


class ClockDriver:
    """
    pyglet Clock on manual time.

    advance() moves time forward in small steps and ticks after each one, so
    scheduled callbacks fire in order at (close to) their due time.
    """

    def __init__(self):
        self.time = ManualTime()
        self.clock = pyglet.clock.Clock(time_function=self.time)

    def tick(self):
        self.clock.tick()

    def advance(self, seconds: float, step: float = 0.01):
        target = self.time.now + seconds
        while self.time.now < target - 1e-9:
            self.time.now = min(self.time.now + step, target)
            self.clock.tick()
        self.clock.tick()

    def advance_until(self, predicate, max_seconds: float = 120.0, step: float = 0.01) -> bool:
        deadline = self.time.now + max_seconds
        self.clock.tick()
        while not predicate():
            if self.time.now >= deadline:
                return False
            self.time.now += step
            self.clock.tick()
        return True

    def sleep(self, seconds: float):
        """Drop-in for time.sleep that advances manual time instead."""
        self.time.now += max(seconds, 0.001)


@pytest.fixture
def clock_driver():
    return ClockDriver()


# ==================== CONFIG ====================

@pytest.fixture
def short_timings():
    """Phase timings scaled down so a trial lasts 0.45 s of simulated time."""
    return PhaseTimings(rest_min=0.1, rest_max=0.1, concentration=0.05, cue=0.05,
                        action=0.2, relax=0.05, mode_announcement=0.03, check_feedback=0.05)


@pytest.fixture
def make_config(short_timings, tmp_path):
    """Factory for ExperimentConfig with short timings and tmp output."""
    def _make(**overrides):
        params = dict(total_trials=3, check_probability=0.0, seed=1234,
                      timings=short_timings, output_directory=str(tmp_path / "data"))
        params.update(overrides)
        return ExperimentConfig(**params)
    return _make


# ==================== MOCK FIXTURES ====================

class FakeDevice:
    """
    Device double recording every call.

    Set fail_<operation> to return a failed result, or raise_<operation>
    to raise from that operation.
    """

    def __init__(self, **flags):
        self.calls = []
        self.is_connected = True
        self.flags = flags

    def _outcome(self, operation, **extra):
        if self.flags.get(f"raise_{operation}"):
            raise RuntimeError(f"{operation} exploded")
        if self.flags.get(f"fail_{operation}"):
            return DeviceResult(success=False, message=f"{operation} refused")
        return DeviceResult(success=True, message=f"{operation} ok", **extra)

    def start_session(self, info):
        self.calls.append(('start_session', info.mode))
        return self._outcome('start_session', session_id='session_fake')

    def start_trial(self, info):
        self.calls.append(('start_trial', info.trial_number, info.direction))
        return self._outcome('start_trial')

    def end_trial(self):
        self.calls.append(('end_trial',))
        return self._outcome('end_trial')

    def end_session(self):
        self.calls.append(('end_session',))
        return self._outcome('end_session', session_record={'sessionId': 'session_fake', 'trials': []})

    def call_names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_device():
    return FakeDevice()


@pytest.fixture
def mock_presenter():
    """Presenter mock that records every display callback."""
    return MagicMock(spec=Presenter)


@pytest.fixture
def mock_lsl_outlet():
    """
    Mock LSL StreamOutlet for marker testing.

    Captures all markers sent for verification.
    """
    class MockLSLOutlet:
        def __init__(self):
            self.markers_sent = []

        def push_sample(self, marker):
            """Record marker for later verification."""
            if isinstance(marker, list):
                self.markers_sent.extend(marker)
            else:
                self.markers_sent.append(marker)

        def get_markers(self):
            return self.markers_sent

    return MockLSLOutlet()


@pytest.fixture
def device_factory():
    """FakeDevice class, for tests that need failure flags."""
    return FakeDevice
