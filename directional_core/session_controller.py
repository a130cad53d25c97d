"""
SessionController: lifecycle of one experiment session.

Owns the run state and drives the trial loop:

    start → mode countdown → trial 1 → [attention check] → trial 2 → ... → end

Device session/trial calls wrap the run and every trial. All waiting is done
with Delays on the controller's pyglet clock; pause and stop take effect at
the next phase boundary through _advance().
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from directional_config.experiment import ExperimentConfig
from directional_config.modes import Mode
from .device_adapter import call_device, SessionInfo, TrialInfo
from .execution.attention_check import AttentionCheckCoordinator
from .execution.phases import build_trial_phases
from .execution.procedure import TrialProcedure
from .execution.sequencer import TrialSequencer
from .execution.session import Session
from .execution.trial import AttentionCheckResult, Trial
from .markers import codes
from .presenter import Presenter
from .run_state import RunState
from .timing import Delay, create_clock

logger = logging.getLogger(__name__)

COUNTDOWN_STEPS = 3


@dataclass
class ControlResult:
    """Outcome of a control operation (start, pause, stop, ...)."""
    success: bool
    message: str = ""
    data: Optional[Dict[str, Any]] = None


class SessionController:
    """
    Runs sessions of the directional thought experiment.

    Example:
        controller = SessionController(ExperimentConfig(), device=SimulatedDeviceAdapter(),
                                       presenter=LoggingPresenter(), store=SessionStore("data"))
        controller.connect_device()
        controller.start(Mode.INNER_SPEECH)
        run_until(controller.clock, lambda: controller.state == RunState.STOPPED)

    Args:
        config: Experiment configuration
        device: Device adapter (optional unless config.require_device)
        presenter: Receives display callbacks
        clock: pyglet clock (a private one is created if omitted)
        store: SessionStore for trial and session persistence
        emitter: MarkerEmitter for event markers
        sequencer: TrialSequencer (seeded from config.seed if omitted)
    """

    def __init__(self, config: Optional[ExperimentConfig] = None, device=None,
                 presenter: Optional[Presenter] = None, clock=None, store=None,
                 emitter=None, sequencer: Optional[TrialSequencer] = None):
        self.config = config or ExperimentConfig()
        self.clock = clock or create_clock()
        self.device = device
        if device is not None and hasattr(device, 'attach_clock'):
            device.attach_clock(self.clock)
        self.presenter = presenter or Presenter()
        self.store = store
        self.emitter = emitter
        self.sequencer = sequencer or TrialSequencer(self.config.seed)

        self.phases = build_trial_phases(self.config.timings)
        self.checks = AttentionCheckCoordinator(
            self.clock, self.presenter,
            feedback_duration=self.config.timings.check_feedback,
            timeout=self.config.check_timeout,
            strict=self.config.strict_checks,
            emitter=emitter,
            directions=self.config.directions,
        )

        self.state = RunState.IDLE
        self.mode: Optional[Mode] = None
        self.session: Optional[Session] = None
        self.current_trial_number = 0
        self.last_direction: Optional[str] = None
        self.sequence: List[str] = []
        self.procedure: Optional[TrialProcedure] = None
        self.last_result: Optional[ControlResult] = None
        self.on_finished: Optional[Callable[[ControlResult], None]] = None

        self._pending_step: Optional[Callable[[], None]] = None
        self._countdown: Optional[Delay] = None
        self._device_session_active = False

    # ---- device ------------------------------------------------------

    @property
    def device_connected(self) -> bool:
        return self.device is not None and bool(getattr(self.device, 'is_connected', False))

    def connect_device(self, device_id: Optional[str] = None, email: Optional[str] = None,
                       password: Optional[str] = None) -> ControlResult:
        if self.device is None:
            return ControlResult(False, "No device adapter configured")
        if self.state.is_active:
            return ControlResult(False, "Cannot connect while a session is running")

        result = call_device('connect', self.device.connect, device_id, email, password)
        self.presenter.show_status(result.message, 'info' if result.success else 'error')
        return ControlResult(result.success, result.message)

    def disconnect_device(self) -> ControlResult:
        if self.device is None:
            return ControlResult(False, "No device adapter configured")
        if self.state.is_active:
            return ControlResult(False, "Stop the session before disconnecting")

        result = call_device('disconnect', self.device.disconnect)
        return ControlResult(result.success, result.message)

    # ---- lifecycle ---------------------------------------------------

    def select_mode(self, mode) -> ControlResult:
        """Choose the mode for the next session. Only allowed while no session runs."""
        if self.state.is_active:
            return ControlResult(False, "Cannot change mode while a session is running")
        try:
            self.mode = Mode.parse(mode)
        except ValueError as e:
            return ControlResult(False, str(e))

        self.presenter.show_instruction(self.mode.instruction)
        return ControlResult(True, f"Mode set to {self.mode.value}")

    def start(self, mode=None) -> ControlResult:
        """
        Start a session (or resume a paused one).

        Args:
            mode: Optional mode to select before starting

        Returns:
            ControlResult; on failure the run state is unchanged (Idle)
        """
        if self.state == RunState.PAUSED:
            return self.resume()
        if self.state in (RunState.RUNNING, RunState.AWAITING_CHECK):
            return ControlResult(False, "A session is already running")
        if self.state == RunState.STOPPED:
            self.state = RunState.IDLE

        if mode is not None:
            selected = self.select_mode(mode)
            if not selected.success:
                return selected
        if self.mode is None:
            return ControlResult(False, "Please select a mode first")
        if self.config.require_device and not self.device_connected:
            return ControlResult(False, "Please connect to the device first")

        total = self.config.total_trials
        schedule = self.sequencer.generate_attention_checks(total, self.config.check_probability)
        if self.config.balanced:
            self.sequence = self.sequencer.generate_sequence(
                total, self.config.directions, self.config.randomize_order,
                counts=self.config.direction_counts())
        else:
            self.sequence = []

        session = Session(self.mode, total, schedule, variant=self.config.variant)
        session.begin()

        if self.device_connected:
            info = SessionInfo(mode=self.mode.value, start_time=datetime.now().isoformat(),
                               total_trials=total)
            result = call_device('start_session', self.device.start_session, info)
            if not result.success:
                message = f"Failed to start device session: {result.message}"
                logger.error(message)
                self.presenter.show_status(message, 'error')
                return ControlResult(False, message)
            session.device_session_id = result.session_id
            self._device_session_active = True

        self.session = session
        self.current_trial_number = 0
        self.last_direction = None
        self._pending_step = None
        self.last_result = None
        if self.store is not None:
            self.store.begin_session(session)

        self.state = RunState.RUNNING
        self._emit(codes.SESSION_START, 'session_start', mode=self.mode.value)
        logger.info(f"Session {session.session_id} started: {self.mode.value}, "
                    f"{total} trials, checks after {schedule}")

        self._announce_mode()
        return ControlResult(True, "Session started", data={
            'session_id': session.session_id,
            'attention_check_trials': schedule,
        })

    def _announce_mode(self):
        self.presenter.show_instruction(self.mode.announcement)
        self._emit(codes.MODE_ANNOUNCEMENT, 'mode_announcement', mode=self.mode.value)
        if self.config.timings.mode_announcement <= 0:
            self.run_next_trial()
            return
        self._countdown_tick(COUNTDOWN_STEPS)

    def _countdown_tick(self, remaining: int):
        self._countdown = None
        if remaining == 0:
            self.presenter.show_timer('')
            self.run_next_trial()
            return

        self.presenter.show_timer(f"Starting in {remaining}...")
        interval = self.config.timings.mode_announcement / COUNTDOWN_STEPS
        self._countdown = Delay(
            self.clock, interval,
            lambda: self._advance(lambda: self._countdown_tick(remaining - 1))
        ).start()

    def run_next_trial(self):
        """Start the next trial, or end the session after the last one."""
        if self.state != RunState.RUNNING:
            return

        self.current_trial_number += 1
        number = self.current_trial_number
        total = self.session.total_trials
        if number > total:
            self.end()
            return

        if self.config.balanced:
            direction = self.sequence[number - 1]
        else:
            direction = self.sequencer.sample_direction(self.config.directions)
        self.last_direction = direction

        trial = Trial(number, direction, self.mode.condition)
        self.session.add_trial(trial)
        self.presenter.show_progress(number, total)
        logger.info(f"Trial {number}/{total}: {direction}")

        if self._device_session_active:
            info = TrialInfo(trial_number=number, direction=direction,
                             condition=self.mode.condition, timestamp=datetime.now().isoformat())
            result = call_device('start_trial', self.device.start_trial, info)
            if not result.success:
                logger.warning(f"Failed to start device trial {number}: {result.message}")

        self.procedure = TrialProcedure(
            self.phases, trial, self.mode, self.clock,
            presenter=self.presenter,
            gate=self._advance,
            on_complete=self._on_trial_complete,
            device=self.device if self._device_session_active else None,
            emitter=self.emitter,
            rng=self.sequencer.rng,
        )
        self.procedure.start()

    def _advance(self, step: Callable[[], None]) -> bool:
        """
        Phase-boundary gate.

        Runs step while running, parks it while paused and drops it otherwise.

        Returns:
            False if the session is no longer running and step was dropped
        """
        if self.state == RunState.RUNNING:
            step()
            return True
        if self.state == RunState.PAUSED:
            self._pending_step = step
            return True
        return False

    def _on_trial_complete(self, trial: Trial):
        self.procedure = None
        if self.store is not None:
            self.store.save_trial(trial)

        if self.session.is_check_trial(trial.number):
            self.state = RunState.AWAITING_CHECK
            self.checks.request(self.last_direction, self._on_check_resolved,
                                trial_index=trial.number)
        else:
            self.run_next_trial()

    def _on_check_resolved(self, result: AttentionCheckResult):
        trial = self.session.current_trial
        trial.attention_check = result
        if self.store is not None:
            self.store.save_trial(trial)
        logger.info(f"Attention check: answered={result.answered}, correct={result.correct}")
        if self.state != RunState.AWAITING_CHECK:
            return
        self.state = RunState.RUNNING
        self.run_next_trial()

    def answer_attention_check(self, direction: str) -> ControlResult:
        if self.state != RunState.AWAITING_CHECK:
            return ControlResult(False, "No attention check is pending")

        result = self.checks.submit_answer(direction)
        if result is None:
            return ControlResult(False, "Attention check already answered")
        return ControlResult(True, result.feedback, data=result.to_dict())

    def pause(self) -> ControlResult:
        """Pause a running session, or resume a paused one."""
        if self.state == RunState.PAUSED:
            return self.resume()
        if self.state == RunState.AWAITING_CHECK:
            return ControlResult(False, "Cannot pause while an attention check is awaiting an answer")
        if self.state != RunState.RUNNING:
            return ControlResult(False, "No session is running")

        self.state = RunState.PAUSED
        self.presenter.show_paused(True)
        self._emit(codes.PAUSE, 'pause')
        logger.info(f"Paused during trial {self.current_trial_number}")
        return ControlResult(True, "Session paused")

    def resume(self) -> ControlResult:
        if self.state != RunState.PAUSED:
            return ControlResult(False, "Session is not paused")

        self.state = RunState.RUNNING
        self.presenter.show_paused(False)
        self._emit(codes.RESUME, 'resume')
        logger.info(f"Resumed at trial {self.current_trial_number}")

        step, self._pending_step = self._pending_step, None
        if step is not None:
            step()
        return ControlResult(True, "Session resumed")

    def stop(self) -> ControlResult:
        """Stop the session early. No-op if nothing is running."""
        return self._terminate(completed=False)

    def end(self) -> ControlResult:
        """Finish the session after the last trial."""
        return self._terminate(completed=True)

    def _terminate(self, completed: bool) -> ControlResult:
        if self.state in (RunState.IDLE, RunState.STOPPED):
            return ControlResult(False, "No session is running")

        self.state = RunState.STOPPED
        if self.procedure is not None:
            self.procedure.cancel()
            self.procedure = None
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None
        self.checks.cancel()
        self._pending_step = None

        self.session.finish()
        self.presenter.hide_directions()
        self.presenter.show_timer('')
        self._emit(codes.SESSION_END, 'session_end', completed=completed)

        success = True
        device_record = None
        if self._device_session_active:
            self._device_session_active = False
            result = call_device('end_session', self.device.end_session)
            if result.success:
                device_record = result.session_record
            else:
                success = False
                logger.error(f"Failed to end device session: {result.message}")

        record_path = None
        if self.store is not None:
            record_path = self.store.save_session(self.session, device_record)
            if record_path is None and self.store.save_enabled:
                success = False

        verb = "completed" if completed else "stopped"
        if not success:
            message = f"Experiment {verb}, but there was an error saving data."
        elif record_path:
            message = f"Experiment {verb}. Data saved to: {record_path}"
        else:
            message = f"Experiment {verb}."

        self.presenter.show_status(message, 'info' if success else 'error')
        logger.info(message)

        data = self.session.summary()
        data['completed'] = completed
        data['record_path'] = record_path
        result = ControlResult(success, message, data=data)
        self.last_result = result
        if self.on_finished is not None:
            self.on_finished(result)
        return result

    # ---- queries -----------------------------------------------------

    def status(self) -> Dict[str, Any]:
        phase = self.procedure.current_phase if self.procedure else None
        return {
            'state': self.state.value,
            'mode': self.mode.value if self.mode else None,
            'current_trial': self.current_trial_number,
            'total_trials': self.session.total_trials if self.session else self.config.total_trials,
            'last_direction': self.last_direction,
            'phase': phase.name if phase else None,
            'attention_check_trials': list(self.session.attention_check_trials) if self.session else [],
            'awaiting_check': self.state == RunState.AWAITING_CHECK,
            'device_connected': self.device_connected,
        }

    def estimated_duration(self) -> float:
        """Approximate session length in seconds, including attention-check feedback."""
        checks = int(self.config.total_trials * self.config.check_probability)
        return self.config.get_estimated_duration() + checks * self.config.timings.check_feedback

    def _emit(self, code: int, event_type: str, **data):
        if self.emitter is not None:
            self.emitter.emit(code, event_type=event_type,
                              trial_index=self.current_trial_number or None, **data)
