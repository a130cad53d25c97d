"""
Configuration structures for the directional thought experiment.

Data classes for session parameters and phase timing, the mode/direction
vocabulary, and JSON/.env loading helpers.
"""

from .modes import Mode, FOUR_DIRECTIONS, BINARY_DIRECTIONS
from .experiment import ExperimentConfig, PhaseTimings, VARIANT_FOUR_DIRECTION, VARIANT_UP_DOWN

__all__ = [
    'Mode', 'FOUR_DIRECTIONS', 'BINARY_DIRECTIONS',
    'ExperimentConfig', 'PhaseTimings', 'VARIANT_FOUR_DIRECTION', 'VARIANT_UP_DOWN',
]
