"""Connection controller and the interfaces of its external collaborators."""

from .boundary import HostStore, MemoryHostStore, TerminalRenderer
from .controller import AUTH_FAILURE_MARKER, SessionController
from .generation import GenerationCounter

__all__ = [
    "AUTH_FAILURE_MARKER",
    "GenerationCounter",
    "HostStore",
    "MemoryHostStore",
    "SessionController",
    "TerminalRenderer",
]
