"""
Concrete phase implementations.

Available phases:
- RestPhase: Randomized rest before the trial
- ConcentrationPhase: Focus circle
- CuePhase: Direction cue
- ActionPhase: Mode-specific mental task
- RelaxPhase: Post-action relaxation
"""

from typing import List

from .rest_phase import RestPhase
from .concentration_phase import ConcentrationPhase
from .cue_phase import CuePhase
from .action_phase import ActionPhase
from .relax_phase import RelaxPhase

# Phase registry for deserialization
PHASE_TYPES = {
    'RestPhase': RestPhase,
    'ConcentrationPhase': ConcentrationPhase,
    'CuePhase': CuePhase,
    'ActionPhase': ActionPhase,
    'RelaxPhase': RelaxPhase,
}


def phase_from_dict(data: dict):
    """
    Create phase instance from dictionary.

    Args:
        data: Dictionary with 'type' key and phase-specific data

    Returns:
        Phase instance
    """
    phase_type = data.get('type')
    if phase_type not in PHASE_TYPES:
        raise ValueError(f"Unknown phase type: {phase_type}")

    return PHASE_TYPES[phase_type].from_dict(data)


def build_trial_phases(timings) -> List:
    """Fixed trial sequence Rest → Concentration → Cue → Action → Relax."""
    return [
        RestPhase(timings.rest_min, timings.rest_max),
        ConcentrationPhase(timings.concentration),
        CuePhase(timings.cue),
        ActionPhase(timings.action),
        RelaxPhase(timings.relax),
    ]


__all__ = [
    'RestPhase',
    'ConcentrationPhase',
    'CuePhase',
    'ActionPhase',
    'RelaxPhase',
    'phase_from_dict',
    'build_trial_phases',
]
