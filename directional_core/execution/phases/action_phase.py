"""
ActionPhase: the mental task, worded by the session mode.
"""

from ..phase import Phase
from ...markers import codes


class ActionPhase(Phase):
    """
    Hides the cue and asks the subject to think, imagine or say the direction.

    This is the only phase whose content depends on the mode.
    """

    marker = codes.ACTION

    def __init__(self, duration: float = 2.5):
        super().__init__("action", duration)

    def present(self, presenter, trial, mode):
        presenter.hide_directions()
        presenter.show_timer(mode.action_text(trial.direction))

    def marker_code(self, trial):
        return codes.with_direction(codes.ACTION, trial.direction)
