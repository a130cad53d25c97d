"""
Unit tests for SessionController.

Sessions run on a manually driven clock with short phase timings, so a
whole run takes a fraction of a second of simulated time.
"""

import os

import pandas as pd
import pytest
from unittest.mock import MagicMock

from directional_config.modes import Mode
from directional_core.data_collector import SessionStore
from directional_core.markers import MarkerEmitter, MarkerLogger, codes
from directional_core.run_state import RunState
from directional_core.session_controller import SessionController


@pytest.fixture
def make_controller(make_config, clock_driver, mock_presenter, fake_device):
    def _make(config=None, device=fake_device, store=None, **config_overrides):
        config = config or make_config(**config_overrides)
        return SessionController(config, device=device, presenter=mock_presenter,
                                 clock=clock_driver.clock, store=store)
    return _make


def _stopped(controller):
    return lambda: controller.state == RunState.STOPPED


# ==================== PRECONDITIONS ====================

@pytest.mark.unit
def test_start_requires_mode(make_controller):
    controller = make_controller()

    result = controller.start()

    assert not result.success
    assert result.message == "Please select a mode first"
    assert controller.state == RunState.IDLE


@pytest.mark.unit
def test_start_requires_connected_device(make_controller):
    controller = make_controller(device=None, require_device=True)

    result = controller.start(Mode.VISUALIZED)

    assert not result.success
    assert result.message == "Please connect to the device first"
    assert controller.state == RunState.IDLE


@pytest.mark.unit
def test_select_mode_rejects_unknown_mode(make_controller):
    controller = make_controller()

    assert not controller.select_mode('telepathy').success
    assert controller.mode is None


@pytest.mark.unit
def test_select_mode_shows_instruction(make_controller, mock_presenter):
    controller = make_controller()

    assert controller.select_mode('pronounced').success
    mock_presenter.show_instruction.assert_called_with(Mode.PRONOUNCED.instruction)


@pytest.mark.unit
def test_mode_locked_while_running(make_controller):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)

    assert not controller.select_mode(Mode.VISUALIZED).success
    assert controller.mode == Mode.INNER_SPEECH


@pytest.mark.unit
def test_start_twice_rejected(make_controller):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)

    result = controller.start()
    assert not result.success
    assert result.message == "A session is already running"


# ==================== FULL RUN ====================

@pytest.mark.unit
def test_full_session_device_call_order(make_controller, clock_driver, fake_device):
    controller = make_controller()

    assert controller.start(Mode.INNER_SPEECH).success
    assert clock_driver.advance_until(_stopped(controller))

    assert fake_device.calls == [
        ('start_session', 'inner-speech'),
        ('start_trial', 1, controller.session.trials[0].direction),
        ('end_trial',),
        ('start_trial', 2, controller.session.trials[1].direction),
        ('end_trial',),
        ('start_trial', 3, controller.session.trials[2].direction),
        ('end_trial',),
        ('end_session',),
    ]
    assert controller.last_result.success
    assert controller.last_result.data['completed']
    assert controller.last_result.data['trials_completed'] == 3


@pytest.mark.unit
def test_runs_without_device(make_controller, clock_driver):
    controller = make_controller(device=None)

    controller.start(Mode.VISUALIZED)
    assert clock_driver.advance_until(_stopped(controller))

    assert len(controller.session.completed_trials) == 3
    assert controller.last_result.message == "Experiment completed."


@pytest.mark.unit
def test_countdown_precedes_first_trial(make_controller, mock_presenter):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)

    mock_presenter.show_instruction.assert_called_with(Mode.INNER_SPEECH.announcement)
    mock_presenter.show_timer.assert_called_with("Starting in 3...")
    assert controller.current_trial_number == 0


@pytest.mark.unit
def test_trials_use_mode_condition_and_four_directions(make_controller, clock_driver):
    controller = make_controller(total_trials=12)
    controller.start('pronounced')
    clock_driver.advance_until(_stopped(controller))

    trials = controller.session.trials
    assert [t.number for t in trials] == list(range(1, 13))
    assert all(t.condition == 'pronounced' for t in trials)
    assert set(t.direction for t in trials) <= {'up', 'down', 'left', 'right'}


@pytest.mark.unit
def test_balanced_variant_uses_exact_counts(make_controller, clock_driver):
    controller = make_controller(variant='up-down', up_trials=3, down_trials=2)
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(_stopped(controller))

    directions = [t.direction for t in controller.session.trials]
    assert sorted(directions) == ['down', 'down', 'up', 'up', 'up']


@pytest.mark.unit
def test_session_saved_to_store(make_controller, clock_driver, tmp_path):
    store = SessionStore(str(tmp_path / "out"))
    controller = make_controller(store=store)

    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(_stopped(controller))

    path = controller.last_result.data['record_path']
    assert path is not None and os.path.exists(path)
    assert os.path.basename(path).startswith("inner-speech-session-")
    assert controller.last_result.message == f"Experiment completed. Data saved to: {path}"
    assert store.get_trial_count() == 3


@pytest.mark.unit
def test_on_finished_callback(make_controller, clock_driver):
    controller = make_controller()
    controller.on_finished = MagicMock()

    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(_stopped(controller))

    controller.on_finished.assert_called_once_with(controller.last_result)


@pytest.mark.unit
def test_restart_after_stop(make_controller, clock_driver):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(_stopped(controller))
    first_session = controller.session

    assert controller.start().success
    assert controller.session is not first_session
    assert controller.current_trial_number == 0
    assert clock_driver.advance_until(_stopped(controller))


# ==================== DEVICE FAILURES ====================

@pytest.mark.unit
def test_start_session_failure_keeps_idle(make_controller, device_factory, mock_presenter):
    device = device_factory(fail_start_session=True)
    controller = make_controller(device=device)

    result = controller.start(Mode.INNER_SPEECH)

    assert not result.success
    assert result.message == "Failed to start device session: start_session refused"
    assert controller.state == RunState.IDLE
    assert device.call_names() == ['start_session']
    mock_presenter.show_status.assert_called_with(result.message, 'error')


@pytest.mark.unit
def test_start_session_exception_keeps_idle(make_controller, device_factory):
    device = device_factory(raise_start_session=True)
    controller = make_controller(device=device)

    assert not controller.start(Mode.INNER_SPEECH).success
    assert controller.state == RunState.IDLE


@pytest.mark.unit
def test_start_trial_failure_is_not_fatal(make_controller, device_factory, clock_driver):
    device = device_factory(fail_start_trial=True)
    controller = make_controller(device=device)

    controller.start(Mode.INNER_SPEECH)
    assert clock_driver.advance_until(_stopped(controller))

    assert device.call_names().count('start_trial') == 3
    assert len(controller.session.completed_trials) == 3


@pytest.mark.unit
def test_end_session_failure_reported(make_controller, device_factory, clock_driver):
    device = device_factory(fail_end_session=True)
    controller = make_controller(device=device)

    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(_stopped(controller))

    assert not controller.last_result.success
    assert controller.last_result.message == \
        "Experiment completed, but there was an error saving data."


@pytest.mark.unit
def test_disconnected_device_is_skipped(make_controller, fake_device, clock_driver):
    fake_device.is_connected = False
    controller = make_controller()

    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(_stopped(controller))

    assert fake_device.calls == []


# ==================== PAUSE / RESUME ====================

@pytest.mark.unit
def test_pause_parks_at_phase_boundary(make_controller, fake_device, clock_driver):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(lambda: controller.status()['phase'] == 'action')

    assert controller.pause().success
    assert controller.state == RunState.PAUSED
    calls_before = list(fake_device.calls)
    trial = controller.session.current_trial

    clock_driver.advance(5.0)

    assert fake_device.calls == calls_before
    assert controller.status()['phase'] == 'action'
    assert [name for name, _ in trial.phases][-1] == 'action'
    assert not trial.completed

    # pause() toggles back to running
    assert controller.pause().success
    assert controller.state == RunState.RUNNING
    assert clock_driver.advance_until(_stopped(controller))
    assert len(controller.session.completed_trials) == 3


@pytest.mark.unit
def test_resume_via_start(make_controller, clock_driver, mock_presenter):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance(0.2)
    controller.pause()
    mock_presenter.show_paused.assert_called_with(True)

    assert controller.start().message == "Session resumed"
    mock_presenter.show_paused.assert_called_with(False)


@pytest.mark.unit
def test_resume_when_not_paused(make_controller):
    controller = make_controller()
    assert not controller.resume().success


@pytest.mark.unit
def test_pause_during_countdown(make_controller, clock_driver):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)
    controller.pause()

    clock_driver.advance(1.0)
    assert controller.current_trial_number == 0

    controller.resume()
    clock_driver.advance_until(lambda: controller.current_trial_number == 1)


@pytest.mark.unit
def test_pause_rejected_when_idle(make_controller):
    result = make_controller().pause()
    assert not result.success
    assert result.message == "No session is running"


# ==================== ATTENTION CHECKS ====================

@pytest.mark.unit
def test_attention_check_after_scheduled_trial(make_controller, clock_driver, mock_presenter):
    controller = make_controller(check_probability=1.0)
    controller.start(Mode.INNER_SPEECH)

    assert controller.session.attention_check_trials == [1, 2, 3]
    assert clock_driver.advance_until(lambda: controller.state == RunState.AWAITING_CHECK)
    assert controller.current_trial_number == 1

    # The session waits for the answer
    clock_driver.advance(10.0)
    assert controller.state == RunState.AWAITING_CHECK
    assert controller.current_trial_number == 1

    expected = controller.last_direction
    result = controller.answer_attention_check(expected)
    assert result.success
    assert result.data['correct']

    assert clock_driver.advance_until(lambda: controller.current_trial_number == 2)
    assert controller.session.trials[0].attention_check.correct


@pytest.mark.unit
def test_check_result_reaches_recovery_csv(make_controller, clock_driver, tmp_path):
    store = SessionStore(str(tmp_path / "out"))
    controller = make_controller(store=store, total_trials=2, check_probability=1.0)
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(lambda: controller.state == RunState.AWAITING_CHECK)

    asked = controller.last_direction
    wrong = 'left' if asked != 'left' else 'right'
    controller.answer_attention_check(wrong)
    assert clock_driver.advance_until(lambda: controller.current_trial_number == 2)

    partial = tmp_path / "out" / f"{SessionStore.file_stem(controller.session)}_partial.csv"
    df = pd.read_csv(partial)
    assert list(df['trial_number']) == [1]
    assert df['check_answered'][0] == wrong
    assert not df['check_correct'][0]
    assert not df['check_timed_out'][0]


@pytest.mark.unit
def test_pause_rejected_while_awaiting_check(make_controller, clock_driver):
    controller = make_controller(check_probability=1.0)
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(lambda: controller.state == RunState.AWAITING_CHECK)

    result = controller.pause()

    assert not result.success
    assert controller.state == RunState.AWAITING_CHECK


@pytest.mark.unit
def test_answer_without_check(make_controller):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)

    result = controller.answer_attention_check('up')
    assert not result.success
    assert result.message == "No attention check is pending"


@pytest.mark.unit
def test_all_checks_answered_accuracy(make_controller, clock_driver):
    controller = make_controller(check_probability=1.0)
    controller.start(Mode.INNER_SPEECH)

    answers = 0
    while controller.state != RunState.STOPPED:
        assert clock_driver.advance_until(
            lambda: controller.state in (RunState.AWAITING_CHECK, RunState.STOPPED))
        if controller.state == RunState.AWAITING_CHECK:
            # Answer the first check wrongly
            direction = controller.last_direction
            if answers == 0:
                direction = 'left' if direction != 'left' else 'right'
            controller.answer_attention_check(direction)
            answers += 1
            clock_driver.advance_until(lambda: controller.state != RunState.AWAITING_CHECK)

    summary = controller.last_result.data
    assert answers == 3
    assert summary['attention_checks'] == 3
    assert summary['attention_checks_correct'] == 2


@pytest.mark.unit
def test_check_timeout_continues_session(make_controller, clock_driver):
    controller = make_controller(total_trials=1, check_probability=1.0, check_timeout=0.5)
    controller.start(Mode.INNER_SPEECH)

    assert clock_driver.advance_until(_stopped(controller))
    check = controller.session.trials[0].attention_check
    assert check.timed_out
    assert not check.correct


@pytest.mark.unit
def test_stop_while_awaiting_check(make_controller, clock_driver, fake_device):
    controller = make_controller(check_probability=1.0)
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(lambda: controller.state == RunState.AWAITING_CHECK)

    assert controller.stop().success
    clock_driver.advance(2.0)

    assert controller.state == RunState.STOPPED
    assert controller.current_trial_number == 1
    assert fake_device.call_names()[-1] == 'end_session'


# ==================== STOP ====================

@pytest.mark.unit
def test_stop_mid_trial(make_controller, clock_driver, fake_device):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(lambda: controller.status()['phase'] == 'cue')

    result = controller.stop()
    clock_driver.advance(2.0)

    assert result.success
    assert result.message == "Experiment stopped."
    assert not result.data['completed']
    assert fake_device.call_names() == ['start_session', 'start_trial', 'end_session']
    assert controller.session.trials[0].completed is False


@pytest.mark.unit
def test_stop_is_idempotent(make_controller, clock_driver, fake_device):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance(0.1)

    assert controller.stop().success
    second = controller.stop()

    assert not second.success
    assert second.message == "No session is running"
    assert fake_device.call_names().count('end_session') == 1


@pytest.mark.unit
def test_stop_when_idle_has_no_effect(make_controller, fake_device):
    controller = make_controller()

    assert not controller.stop().success
    assert fake_device.calls == []
    assert controller.state == RunState.IDLE


@pytest.mark.unit
def test_stop_while_paused(make_controller, clock_driver):
    controller = make_controller()
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance(0.2)
    controller.pause()

    assert controller.stop().success
    assert controller.state == RunState.STOPPED
    assert not controller.resume().success


# ==================== QUERIES / MARKERS ====================

@pytest.mark.unit
def test_status_reports_progress(make_controller, clock_driver):
    controller = make_controller()
    assert controller.status()['state'] == 'idle'

    controller.start(Mode.VISUALIZED)
    clock_driver.advance_until(lambda: controller.current_trial_number == 2)

    status = controller.status()
    assert status['state'] == 'running'
    assert status['mode'] == 'visualized'
    assert status['current_trial'] == 2
    assert status['total_trials'] == 3
    assert status['device_connected']


@pytest.mark.unit
def test_estimated_duration_includes_checks(make_config):
    config = make_config(total_trials=20, check_probability=0.5)
    controller = SessionController(config)

    expected = config.get_estimated_duration() + 10 * config.timings.check_feedback
    assert controller.estimated_duration() == pytest.approx(expected)


@pytest.mark.unit
def test_session_markers(make_config, clock_driver):
    marker_logger = MarkerLogger()
    controller = SessionController(make_config(total_trials=1), clock=clock_driver.clock,
                                   emitter=MarkerEmitter(marker_logger=marker_logger))
    controller.start(Mode.INNER_SPEECH)
    clock_driver.advance_until(_stopped(controller))

    markers = [e.marker for e in marker_logger.events]
    assert markers[:2] == [codes.SESSION_START, codes.MODE_ANNOUNCEMENT]
    assert markers[-1] == codes.SESSION_END
    assert markers.count(codes.TRIAL_START) == 1
