"""
Queue protocol between a controlling process (console or GUI) and a
session process.

Commands flow to the session, updates flow back. Both travel as dicts
built by the constructors below.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class MessageType(Enum):
    """Kinds of queue message."""

    # Controller → Session commands
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    ANSWER = "answer"
    SHUTDOWN = "shutdown"

    # Session → Controller updates
    PRESENT = "present"
    PROGRESS = "progress"
    STATUS = "status"
    ERROR = "error"
    COMPLETE = "complete"
    LOG = "log"


COMMAND_TYPES = frozenset({
    MessageType.START, MessageType.PAUSE, MessageType.RESUME,
    MessageType.STOP, MessageType.ANSWER, MessageType.SHUTDOWN,
})


@dataclass
class IPCMessage:
    """
    One message on a session queue.

    Queues carry plain dicts ({'type': str, 'data': dict | None}) so they
    pickle across process boundaries.
    """
    type: MessageType
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type.value, 'data': self.data}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'IPCMessage':
        """
        Raises:
            KeyError: If 'type' is missing
            ValueError: If 'type' is not a known MessageType
        """
        return cls(type=MessageType(d['type']), data=d.get('data'))

    @property
    def is_command(self) -> bool:
        return self.type in COMMAND_TYPES


def error_message(error: str, traceback: str = "") -> Dict[str, Any]:
    """Error report from the session process."""
    return IPCMessage(type=MessageType.ERROR,
                      data={'error': error, 'traceback': traceback}).to_dict()


def complete_message(summary: Dict[str, Any]) -> Dict[str, Any]:
    """Completion signal carrying the session summary."""
    return IPCMessage(type=MessageType.COMPLETE, data=summary).to_dict()


def log_message(message: str, level: str = "INFO") -> Dict[str, Any]:
    return IPCMessage(type=MessageType.LOG, data={'message': message, 'level': level}).to_dict()


# Command message constructors (Controller → Session)

def start_command(mode: Optional[str] = None) -> Dict[str, Any]:
    """Create a start command, optionally selecting the mode."""
    return IPCMessage(type=MessageType.START, data={'mode': mode} if mode else None).to_dict()


def pause_command() -> Dict[str, Any]:
    return IPCMessage(MessageType.PAUSE).to_dict()


def resume_command() -> Dict[str, Any]:
    return IPCMessage(MessageType.RESUME).to_dict()


def stop_command() -> Dict[str, Any]:
    """Stop the session early; the record is still saved."""
    return IPCMessage(MessageType.STOP).to_dict()


def answer_command(direction: str) -> Dict[str, Any]:
    """Create an attention-check answer message."""
    return IPCMessage(type=MessageType.ANSWER, data={'direction': direction}).to_dict()


def shutdown_command() -> Dict[str, Any]:
    """Ask the session process to exit its loop."""
    return IPCMessage(type=MessageType.SHUTDOWN).to_dict()
