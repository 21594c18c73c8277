"""PTY session types and dataclasses."""

from dataclasses import dataclass, field
from enum import Enum

from ..config import config


class SessionState(Enum):
    """State of a PTY session."""

    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"
    STOPPED = "stopped"


@dataclass
class PTYSessionConfig:
    """Configuration for a PTY session.

    Defaults are pulled from the centralized config.
    """

    address: str
    username: str
    port: int = 22

    # Terminal
    term: str = field(default_factory=lambda: config.TERMINAL_TYPE)
    cols: int = field(default_factory=lambda: config.TERMINAL_COLS)
    rows: int = field(default_factory=lambda: config.TERMINAL_ROWS)
    read_chunk_size: int = field(default_factory=lambda: config.READ_CHUNK_SIZE)
