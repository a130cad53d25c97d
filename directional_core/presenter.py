"""
Presentation layer boundary.

The engine never draws anything itself; it tells a Presenter what the
subject should see. Presenter is a no-op base, LoggingPresenter narrates to
the log for headless runs and QueuePresenter forwards every event as an IPC
message for a display process.
"""

import logging
from typing import Any, Dict, Optional

from .ipc.messages import MessageType, IPCMessage

logger = logging.getLogger(__name__)


class Presenter:
    """Base presenter: every callback is a no-op."""

    def show_instruction(self, text: str):
        pass

    def show_timer(self, text: str):
        pass

    def set_focus_color(self, color: str):
        pass

    def show_focus_circle(self, visible: bool):
        pass

    def show_direction(self, direction: str):
        pass

    def hide_directions(self):
        pass

    def show_attention_check(self, prompt: str, options):
        pass

    def show_feedback(self, text: str, correct: bool):
        pass

    def hide_attention_check(self):
        pass

    def show_status(self, message: str, level: str = "info"):
        pass

    def show_progress(self, trial_number: int, total_trials: int):
        pass

    def show_paused(self, paused: bool):
        pass


class LoggingPresenter(Presenter):
    """Narrates presentation events to the log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def show_instruction(self, text):
        self.log.info(f"[screen] {text}")

    def show_timer(self, text):
        if text:
            self.log.info(f"[timer] {text}")

    def show_direction(self, direction):
        self.log.debug(f"[screen] highlight {direction}")

    def show_attention_check(self, prompt, options):
        self.log.info(f"[check] {prompt} {list(options)}")

    def show_feedback(self, text, correct):
        self.log.info(f"[check] {text}")

    def show_status(self, message, level="info"):
        self.log.log(logging.ERROR if level == "error" else logging.INFO, f"[status] {message}")

    def show_progress(self, trial_number, total_trials):
        self.log.info(f"[progress] Trial {trial_number}/{total_trials}")

    def show_paused(self, paused):
        self.log.info("[screen] PAUSED" if paused else "[screen] resumed")


class QueuePresenter(Presenter):
    """
    Forwards presentation events to a multiprocessing Queue.

    Each event becomes a PRESENT message with the callback name as 'action'.
    Progress and status use their own message types.
    """

    def __init__(self, queue):
        self.queue = queue

    def _put(self, message: IPCMessage):
        self.queue.put(message.to_dict())

    def _present(self, action: str, **data: Any):
        payload: Dict[str, Any] = {'action': action}
        payload.update(data)
        self._put(IPCMessage(type=MessageType.PRESENT, data=payload))

    def show_instruction(self, text):
        self._present('instruction', text=text)

    def show_timer(self, text):
        self._present('timer', text=text)

    def set_focus_color(self, color):
        self._present('focus_color', color=color)

    def show_focus_circle(self, visible):
        self._present('focus_circle', visible=visible)

    def show_direction(self, direction):
        self._present('direction', direction=direction)

    def hide_directions(self):
        self._present('hide_directions')

    def show_attention_check(self, prompt, options):
        self._present('attention_check', prompt=prompt, options=list(options))

    def show_feedback(self, text, correct):
        self._present('feedback', text=text, correct=correct)

    def hide_attention_check(self):
        self._present('hide_attention_check')

    def show_paused(self, paused):
        self._present('paused', paused=paused)

    def show_status(self, message, level="info"):
        self._put(IPCMessage(type=MessageType.STATUS, data={'message': message, 'level': level}))

    def show_progress(self, trial_number, total_trials):
        self._put(IPCMessage(type=MessageType.PROGRESS,
                             data={'trial': trial_number, 'total_trials': total_trials}))
