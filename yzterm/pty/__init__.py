"""PTY session management for interactive ssh sessions."""

from .buffer import OutputBuffer, OutputBufferRegistry
from .liveness import LivenessTracker
from .manager import PTYSessionManager, SessionRegistry
from .process import SSHProcess
from .session import PTYSession
from .types import PTYSessionConfig, SessionState

__all__ = [
    "LivenessTracker",
    "OutputBuffer",
    "OutputBufferRegistry",
    "PTYSession",
    "PTYSessionConfig",
    "PTYSessionManager",
    "SSHProcess",
    "SessionRegistry",
    "SessionState",
]
