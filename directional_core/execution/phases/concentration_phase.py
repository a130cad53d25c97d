"""
ConcentrationPhase: white focus circle before the cue.
"""

from ..phase import Phase
from ...markers import codes


class ConcentrationPhase(Phase):
    marker = codes.CONCENTRATION

    def __init__(self, duration: float = 0.5):
        super().__init__("concentration", duration)

    def present(self, presenter, trial, mode):
        presenter.show_focus_circle(True)
        presenter.set_focus_color('white')
        presenter.show_timer("Focus on the circle")
