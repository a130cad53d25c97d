"""
Inter-process communication between a controlling process and a session process.
"""

from .messages import MessageType, IPCMessage

__all__ = ['MessageType', 'IPCMessage']
