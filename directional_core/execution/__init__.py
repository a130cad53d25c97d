"""
Trial execution: records, sequencing, phases and the per-trial state machine.
"""

from .trial import Trial, AttentionCheckResult
from .session import Session
from .sequencer import TrialSequencer
from .phase import Phase
from .procedure import TrialProcedure
from .attention_check import AttentionCheckCoordinator, AttentionCheckError

__all__ = [
    'Trial', 'AttentionCheckResult', 'Session', 'TrialSequencer', 'Phase',
    'TrialProcedure', 'AttentionCheckCoordinator', 'AttentionCheckError',
]
