"""
Attention checks between trials.

The coordinator holds at most one outstanding check. It shows the prompt,
waits for submit_answer() (or an optional timeout), shows feedback for a
fixed time and then hands the result to the caller's callback.
"""

import logging
from typing import Callable, Optional, Sequence

from directional_config.modes import FOUR_DIRECTIONS
from ..markers import codes
from ..presenter import Presenter
from ..timing import Delay
from .trial import AttentionCheckResult

logger = logging.getLogger(__name__)

PROMPT = "Which direction was shown in the last trial?"


class AttentionCheckError(RuntimeError):
    """A second attention check was requested while one is outstanding."""


class AttentionCheckCoordinator:
    """
    Single-slot attention check.

    Args:
        clock: pyglet clock for feedback and timeout delays
        presenter: Receives the check panel callbacks
        feedback_duration: Seconds feedback stays visible before resolving
        timeout: Seconds to wait for an answer (None waits indefinitely)
        strict: Raise AttentionCheckError on a concurrent request instead of
                logging and ignoring it
        emitter: MarkerEmitter for check markers
        directions: Answer options shown with the prompt
    """

    def __init__(self, clock, presenter: Optional[Presenter] = None,
                 feedback_duration: float = 2.5, timeout: Optional[float] = None,
                 strict: bool = True, emitter=None,
                 directions: Sequence[str] = FOUR_DIRECTIONS):
        self.clock = clock
        self.presenter = presenter or Presenter()
        self.feedback_duration = feedback_duration
        self.timeout = timeout
        self.strict = strict
        self.emitter = emitter
        self.directions = list(directions)

        self._correct: Optional[str] = None
        self._callback: Optional[Callable[[AttentionCheckResult], None]] = None
        self._trial_index: Optional[int] = None
        self._result: Optional[AttentionCheckResult] = None
        self._timeout_delay: Optional[Delay] = None
        self._feedback_delay: Optional[Delay] = None

    @property
    def pending(self) -> bool:
        """True from request() until the callback has been invoked."""
        return self._callback is not None

    @property
    def awaiting_answer(self) -> bool:
        return self.pending and self._result is None

    def request(self, correct_direction: str,
                on_resolved: Callable[[AttentionCheckResult], None],
                trial_index: Optional[int] = None) -> bool:
        """
        Show an attention check about correct_direction.

        Returns:
            True if the check was started, False if ignored (non-strict mode)

        Raises:
            AttentionCheckError: If a check is already pending and strict is set
        """
        if self.pending:
            message = "An attention check is already pending"
            if self.strict:
                raise AttentionCheckError(message)
            logger.error(message)
            return False

        self._correct = correct_direction
        self._callback = on_resolved
        self._trial_index = trial_index
        self._result = None

        self.presenter.show_attention_check(PROMPT, self.directions)
        self._emit(codes.CHECK_SHOWN, 'check_shown')
        logger.info(f"Attention check after trial {trial_index}")

        if self.timeout is not None:
            self._timeout_delay = Delay(self.clock, self.timeout, self._on_timeout).start()
        return True

    def submit_answer(self, direction: str) -> Optional[AttentionCheckResult]:
        """
        Answer the outstanding check.

        Returns:
            The scored result, or None if no check is awaiting an answer
        """
        if not self.awaiting_answer:
            logger.warning(f"Ignoring answer '{direction}': no attention check awaiting an answer")
            return None

        if self._timeout_delay is not None:
            self._timeout_delay.cancel()
            self._timeout_delay = None

        answer = str(direction).strip().lower()
        correct = answer == self._correct
        if correct:
            feedback = "Correct! Continuing experiment..."
        else:
            feedback = f"Incorrect. The direction was {self._correct}. Please pay more attention."

        result = AttentionCheckResult(asked=self._correct, answered=answer,
                                      correct=correct, feedback=feedback)
        self._show_result(result)
        return result

    def cancel(self):
        """Drop the outstanding check without invoking its callback."""
        for delay in (self._timeout_delay, self._feedback_delay):
            if delay is not None:
                delay.cancel()
        if self.pending:
            self.presenter.hide_attention_check()
        self._reset()

    def _on_timeout(self):
        self._timeout_delay = None
        logger.warning(f"Attention check after trial {self._trial_index} timed out")
        result = AttentionCheckResult(
            asked=self._correct, answered=None, correct=False, timed_out=True,
            feedback=f"No answer given. The direction was {self._correct}."
        )
        self._show_result(result)

    def _show_result(self, result: AttentionCheckResult):
        self._result = result
        self.presenter.show_feedback(result.feedback, result.correct)
        if result.timed_out:
            self._emit(codes.CHECK_TIMEOUT, 'check_timeout')
        else:
            self._emit(codes.CHECK_CORRECT if result.correct else codes.CHECK_INCORRECT,
                       'check_answered', answer=result.answered)
        self._feedback_delay = Delay(self.clock, self.feedback_duration, self._finish).start()

    def _finish(self):
        self._feedback_delay = None
        self.presenter.hide_attention_check()
        callback, result = self._callback, self._result
        self._reset()
        callback(result)

    def _reset(self):
        self._correct = None
        self._callback = None
        self._trial_index = None
        self._result = None
        self._timeout_delay = None
        self._feedback_delay = None

    def _emit(self, code: int, event_type: str, **data):
        if self.emitter is not None:
            self.emitter.emit(code, event_type=event_type, trial_index=self._trial_index,
                              expected=self._correct, **data)
