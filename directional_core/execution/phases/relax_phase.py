"""
RelaxPhase: short pause after the action.
"""

from ..phase import Phase
from ...markers import codes


class RelaxPhase(Phase):
    marker = codes.RELAX

    def __init__(self, duration: float = 1.0):
        super().__init__("relax", duration)

    def present(self, presenter, trial, mode):
        presenter.set_focus_color('blue')
        presenter.show_timer("Relax (don't blink)")
