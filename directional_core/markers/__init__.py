"""
Event marker system: codes, logging and LSL output.
"""

from .logger import MarkerLogger, MarkerEvent
from .outlet import MarkerEmitter, create_marker_outlet

__all__ = ['MarkerLogger', 'MarkerEvent', 'MarkerEmitter', 'create_marker_outlet']
