"""PTY session manager for concurrent interactive ssh sessions.

Uses a single registry object that owns all mutation of the id -> session
map; per-session buffers and keep-alive records live in their own
registries with their own locks.
"""

import asyncio
import threading
import uuid
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from ..errors import InvalidConfig, SessionNotFound, SSHConnectionError
from .buffer import OutputBufferRegistry
from .liveness import LivenessTracker
from .process import SSHProcess
from .session import PTYSession
from .types import PTYSessionConfig


class SessionRegistry:
    """Owns the id -> session map.

    Only map access is serialized; process I/O on a session happens after
    the lookup, outside the lock.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, PTYSession] = {}
        self._lock = threading.Lock()

    def add(self, session: PTYSession) -> None:
        with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Duplicate session id: {session.session_id}")
            self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional[PTYSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def pop(self, session_id: str) -> Optional[PTYSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def pop_all(self) -> list[PTYSession]:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            return sessions

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions.keys())

    def snapshot(self) -> list[PTYSession]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions


class PTYSessionManager:
    """Opens, drives and tears down PTY-backed ssh sessions.

    All methods except ``open``/``close``/``close_all`` are synchronous and
    never block on the remote side. ``open`` and ``close`` must be awaited on
    the loop that delivers the sessions' readiness callbacks.
    """

    def __init__(
        self,
        buffers: Optional[OutputBufferRegistry] = None,
        liveness: Optional[LivenessTracker] = None,
        process_factory: Callable[[PTYSessionConfig], SSHProcess] = SSHProcess,
    ) -> None:
        self.buffers = buffers or OutputBufferRegistry()
        self.liveness = liveness or LivenessTracker()
        self._process_factory = process_factory
        self._registry = SessionRegistry()

    async def open(
        self,
        address: str,
        port: int,
        username: str,
        secret: Optional[str] = None,
    ) -> str:
        """Spawn an interactive ssh client and start reading its output.

        Returns as soon as the process exists; connection and authentication
        progress arrives through the session's output buffer.

        Raises
        ------
        InvalidConfig
            If address or username is missing.
        SSHConnectionError
            If the pseudo-terminal or the client process cannot be created.
        """
        if not address or not username:
            raise InvalidConfig("Missing hostname or username")

        session_id = str(uuid.uuid4())
        session_config = PTYSessionConfig(address=address, port=port, username=username)
        session = PTYSession(
            session_id=session_id,
            config=session_config,
            on_output=lambda text: self.buffers.append(session_id, text),
            process=self._process_factory(session_config),
        )

        loop = asyncio.get_running_loop()
        self.buffers.create(session_id)
        try:
            await loop.run_in_executor(None, session.spawn, secret)
        except SSHConnectionError:
            self.buffers.discard(session_id)
            raise

        try:
            session.attach_reader(loop)
        except (OSError, ValueError) as e:
            self.buffers.discard(session_id)
            await loop.run_in_executor(None, session.terminate)
            raise SSHConnectionError(f"Failed to watch PTY: {e}", code="PTY_FAILED") from e

        self._registry.add(session)
        self.liveness.start(session_id)
        logger.info(
            f"Created PTY session {session_id} for {username}@{address}:{port} "
            f"(pid: {session.pid}, total: {len(self._registry)})"
        )
        return session_id

    def write(self, session_id: str, data: str) -> None:
        """Forward input to the session; unknown ids are ignored."""
        session = self._registry.get(session_id)
        if session is None:
            logger.debug(f"Ignoring write to unknown session {session_id}")
            return
        try:
            session.write(data)
        except OSError as e:
            logger.warning(f"Write to session {session_id} failed: {e}")
            return
        self.liveness.touch(session_id)

    def resize(self, session_id: str, cols: int, rows: int) -> None:
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        session.resize(cols, rows)
        logger.debug(f"Resized session {session_id} to {cols}x{rows}")

    def drain(self, session_id: str) -> str:
        """Output produced since the previous drain ("" when there is none)."""
        return self.buffers.drain(session_id)

    def idle_seconds(self, session_id: str) -> float:
        return self.liveness.idle_seconds(session_id)

    async def close(self, session_id: str) -> bool:
        """Stop and remove a session.

        Returns True if session was found and removed.
        """
        session = self._registry.pop(session_id)
        if session is None:
            return False
        await self._teardown(session)
        logger.info(f"Removed PTY session {session_id} (remaining: {len(self._registry)})")
        return True

    async def close_all(self) -> int:
        """Stop all sessions (for shutdown)."""
        sessions = self._registry.pop_all()
        if not sessions:
            return 0
        await asyncio.gather(*(self._teardown(s) for s in sessions))
        logger.info(f"Closed {len(sessions)} PTY session(s)")
        return len(sessions)

    async def _teardown(self, session: PTYSession) -> None:
        session.detach_reader()
        self.liveness.stop(session.session_id)
        self.buffers.discard(session.session_id)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, session.terminate)

    def is_alive(self, session_id: str) -> bool:
        session = self._registry.get(session_id)
        return session is not None and session.is_alive()

    def session_ids(self) -> list[str]:
        return self._registry.ids()

    def session_info(self, session_id: Optional[str] = None) -> Optional[dict] | list[dict]:
        """Get info about session(s).

        If session_id is given: a dict for that session, or None if unknown.
        Otherwise: a list of dicts for all sessions.
        """

        def describe(s: PTYSession) -> dict:
            return {
                "session_id": s.session_id,
                "state": s.state.value,
                "destination": f"{s.config.username}@{s.config.address}:{s.config.port}",
                "created_at": s.created_at.isoformat(),
                "last_output": s.last_activity.isoformat(),
                "idle_seconds": self.liveness.idle_seconds(s.session_id),
                "uptime_seconds": (datetime.now() - s.created_at).total_seconds(),
                "pending_chars": self.buffers.pending(s.session_id),
                "is_alive": s.is_alive(),
                "pid": s.pid,
            }

        if session_id is not None:
            session = self._registry.get(session_id)
            return describe(session) if session else None
        return [describe(s) for s in self._registry.snapshot()]

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._registry
