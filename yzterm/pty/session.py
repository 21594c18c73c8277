"""A single live ssh client bound to a pseudo-terminal."""

import asyncio
import codecs
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from .process import SSHProcess
from .types import PTYSessionConfig, SessionState


class PTYSession:
    """One ssh process plus its pseudo-terminal master.

    Output is read by a readiness callback registered on the event loop
    (``loop.add_reader``), decoded incrementally as UTF-8 and handed to
    ``on_output``. Owned by the session manager; callers never hold one
    directly.
    """

    def __init__(
        self,
        session_id: str,
        config: PTYSessionConfig,
        on_output: Callable[[str], None],
        process: Optional[SSHProcess] = None,
    ) -> None:
        self.session_id = session_id
        self.config = config
        self.on_output = on_output
        self.process = process or SSHProcess(config)

        self.state = SessionState.STARTING
        self.created_at = datetime.now()
        self.last_activity = datetime.now()

        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reader_fd: Optional[int] = None

    def spawn(self, secret: Optional[str] = None) -> None:
        """Start the ssh client (blocking; run in a worker thread)."""
        self.process.spawn(secret)
        self.state = SessionState.RUNNING

    def attach_reader(self, loop: asyncio.AbstractEventLoop) -> None:
        """Register the master descriptor for readiness notifications."""
        fd = self.process.fd
        loop.add_reader(fd, self._on_readable)
        self._loop = loop
        self._reader_fd = fd

    def detach_reader(self) -> None:
        if self._loop is None or self._reader_fd is None:
            return
        loop, fd = self._loop, self._reader_fd
        self._loop = None
        self._reader_fd = None
        if loop.is_closed():
            return
        try:
            loop.remove_reader(fd)
        except (ValueError, OSError) as e:
            logger.debug(f"Reader for {self.session_id} already gone: {e}")

    @property
    def reading(self) -> bool:
        return self._reader_fd is not None

    def _on_readable(self) -> None:
        try:
            data = self.process.read_available()
        except EOFError:
            logger.info(f"PTY session {self.session_id} reached EOF")
            self.state = SessionState.EXITED
            self.detach_reader()
            return
        if not data:
            return
        self.last_activity = datetime.now()
        self._deliver(data)

    def _deliver(self, data: bytes) -> None:
        try:
            text = self._decoder.decode(data)
        except UnicodeDecodeError as e:
            self._decoder.reset()
            logger.warning(
                f"Dropped {len(data)} undecodable bytes from {self.session_id}: {e.reason}"
            )
            return
        if text:
            self.on_output(text)

    def write(self, data: str) -> None:
        self.process.send(data.encode("utf-8"))
        self.last_activity = datetime.now()

    def resize(self, cols: int, rows: int) -> None:
        self.process.resize(rows, cols)

    def terminate(self) -> None:
        """Stop the client and release the descriptor (blocking)."""
        self.detach_reader()
        self.process.terminate()
        self.state = SessionState.STOPPED

    def is_alive(self) -> bool:
        return self.process.is_alive()

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid
