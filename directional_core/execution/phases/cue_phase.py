"""
CuePhase: shows the direction for the current trial.
"""

from ..phase import Phase
from ...markers import codes


class CuePhase(Phase):
    """Highlights the cued direction. The marker code carries the direction."""

    marker = codes.CUE

    def __init__(self, duration: float = 0.5):
        super().__init__("cue", duration)

    def present(self, presenter, trial, mode):
        presenter.show_direction(trial.direction)
        presenter.show_timer(f"Cue: {trial.direction}")

    def marker_code(self, trial):
        return codes.with_direction(codes.CUE, trial.direction)
