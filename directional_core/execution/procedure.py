"""
TrialProcedure: runs one trial through its phase sequence.

Phases are entered one after another on the session clock. Every phase
boundary (including the final transition to completion) is passed through
the gate supplied by the session controller, which decides whether the
next step runs now, waits for a resume, or is dropped because the session
stopped.
"""

import logging
from typing import Callable, List, Optional
import random

from ..device_adapter import call_device
from ..markers import codes
from ..presenter import Presenter
from ..timing import Delay
from .phase import Phase
from .trial import Trial

logger = logging.getLogger(__name__)


class TrialProcedure:
    """
    Phase-index state machine for a single trial.

    Example:
        procedure = TrialProcedure(phases, trial, Mode.INNER_SPEECH, clock,
                                   gate=controller._advance,
                                   on_complete=controller._on_trial_complete)
        procedure.start()

    Args:
        phases: Ordered phases of the trial
        trial: Trial record (owned by the procedure while it runs)
        mode: Session mode, passed to each phase's presentation
        clock: pyglet clock the phase delays are scheduled on
        presenter: Receives display callbacks
        gate: gate(step) -> bool. Runs or parks step; False means the session
              stopped and the trial is abandoned
        on_complete: Called with the trial after it finished normally
        device: Device adapter whose end_trial() is called on completion
        emitter: MarkerEmitter for phase markers
        rng: Random source for variable phase durations
    """

    def __init__(self, phases: List[Phase], trial: Trial, mode, clock,
                 presenter: Optional[Presenter] = None,
                 gate: Optional[Callable[[Callable[[], None]], bool]] = None,
                 on_complete: Optional[Callable[[Trial], None]] = None,
                 device=None, emitter=None, rng: Optional[random.Random] = None):
        self.phases = phases
        self.trial = trial
        self.mode = mode
        self.clock = clock
        self.presenter = presenter or Presenter()
        self.gate = gate
        self.on_complete = on_complete
        self.device = device
        self.emitter = emitter
        self.rng = rng

        self.index = -1
        self.started = False
        self.finished = False
        self.aborted = False
        self._delay: Optional[Delay] = None

    @property
    def current_phase(self) -> Optional[Phase]:
        if 0 <= self.index < len(self.phases) and not (self.finished or self.aborted):
            return self.phases[self.index]
        return None

    @property
    def running(self) -> bool:
        return self.started and not self.finished and not self.aborted

    def start(self):
        if self.started:
            raise RuntimeError(f"Trial {self.trial.number} already started")
        self.started = True
        self.trial.mark_start()
        self._emit(codes.TRIAL_START, 'trial_start')
        self._enter(0)

    def cancel(self):
        """Abandon the trial without completing it."""
        if self._delay is not None:
            self._delay.cancel()
            self._delay = None
        if not self.finished:
            self.aborted = True

    def _enter(self, index: int):
        if self.aborted:
            return
        if index >= len(self.phases):
            self._complete()
            return

        self.index = index
        phase = self.phases[index]
        duration = phase.get_duration(self.rng)

        self.trial.mark_phase(phase.name)
        logger.debug(f"Trial {self.trial.number}: {phase.name} ({duration:.3f}s)")

        phase.present(self.presenter, self.trial, self.mode)
        phase.send_marker(self.emitter, self.trial)
        self._delay = Delay(self.clock, duration, self._leave).start()

    def _leave(self):
        self._delay = None
        next_index = self.index + 1
        self._pass(lambda: self._enter(next_index))

    def _pass(self, step: Callable[[], None]):
        if self.gate is None:
            step()
            return
        if not self.gate(step):
            self.aborted = True
            logger.info(f"Trial {self.trial.number} abandoned at end of "
                        f"{self.phases[self.index].name}")

    def _complete(self):
        self.presenter.hide_directions()
        self.presenter.set_focus_color('')
        self.presenter.show_timer('')

        self.trial.mark_end()
        self._emit(codes.TRIAL_END, 'trial_end')

        if self.device is not None:
            result = call_device('end_trial', self.device.end_trial)
            if not result.success:
                logger.warning(f"Failed to end device trial {self.trial.number}: {result.message}")

        self.finished = True
        logger.debug(f"Trial {self.trial.number} complete ({self.trial.get_duration():.3f}s)")

        if self.on_complete:
            self.on_complete(self.trial)

    def _emit(self, code: int, event_type: str):
        if self.emitter is not None:
            self.emitter.emit(code, event_type=event_type, trial_index=self.trial.number,
                              direction=self.trial.direction)
