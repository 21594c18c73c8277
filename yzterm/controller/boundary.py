"""Interfaces of the collaborators that live outside the session core."""

import threading
from typing import Any, Optional, Protocol

from ..models import HostProfile


class TerminalRenderer(Protocol):
    """Terminal emulator fed with raw output.

    Receives ``{"type": "output", "data": str}`` and ``{"type": "clear"}``.
    Messages coming back (``input``/``ready``) are passed to
    ``SessionController.handle_renderer_message``.
    """

    def send(self, message: dict[str, Any]) -> None: ...


class HostStore(Protocol):
    """Persistence for host profiles. Never sees secrets."""

    def load(self) -> list[HostProfile]: ...

    def save(self, hosts: list[HostProfile]) -> None: ...


class MemoryHostStore:
    """In-process host store.

    Profiles are stored as dicts so callers never share mutable records with
    the store.
    """

    def __init__(self, hosts: Optional[list[HostProfile]] = None) -> None:
        self._records: list[dict[str, Any]] = [h.to_dict() for h in hosts or []]
        self._lock = threading.Lock()

    def load(self) -> list[HostProfile]:
        with self._lock:
            return [HostProfile.from_dict(r) for r in self._records]

    def save(self, hosts: list[HostProfile]) -> None:
        with self._lock:
            self._records = [h.to_dict() for h in hosts]
