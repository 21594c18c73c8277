"""Per-session output accumulators for pull-based consumption.

The PTY reader appends decoded text as it arrives and the UI poll drains it.
Both sides take the buffer's own lock, so a drain never observes a half
applied append and nothing is returned twice.
"""

import threading
from collections import deque
from typing import Optional

from loguru import logger

from ..config import config


class OutputBuffer:
    """Append/drain text buffer for one session."""

    def __init__(self, max_chars: Optional[int] = None) -> None:
        self.max_chars = max_chars if max_chars is not None else config.MAX_BUFFER_CHARS
        self.total_received = 0
        self.dropped_chars = 0
        self._chunks: deque[str] = deque()
        self._size = 0
        self._lock = threading.Lock()

    def append(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            self._chunks.append(text)
            self._size += len(text)
            self.total_received += len(text)
            if self._size > self.max_chars:
                self._trim(self._size - self.max_chars)

    def _trim(self, overflow: int) -> None:
        """Drop the oldest ``overflow`` characters. Caller holds the lock."""
        self.dropped_chars += overflow
        self._size -= overflow
        while overflow > 0:
            head = self._chunks[0]
            if len(head) <= overflow:
                self._chunks.popleft()
                overflow -= len(head)
            else:
                self._chunks[0] = head[overflow:]
                overflow = 0

    def drain(self) -> str:
        """Return everything appended since the last drain and reset."""
        with self._lock:
            if not self._chunks:
                return ""
            text = "".join(self._chunks)
            self._chunks.clear()
            self._size = 0
            return text

    def __len__(self) -> int:
        with self._lock:
            return self._size


class OutputBufferRegistry:
    """Maps session ids to their buffers.

    The registry lock only guards the map itself; appends and drains on
    different sessions never contend with each other.
    """

    def __init__(self, max_chars: Optional[int] = None) -> None:
        self.max_chars = max_chars
        self._buffers: dict[str, OutputBuffer] = {}
        self._lock = threading.Lock()

    def create(self, session_id: str) -> OutputBuffer:
        with self._lock:
            buffer = self._buffers.get(session_id)
            if buffer is None:
                buffer = OutputBuffer(self.max_chars)
                self._buffers[session_id] = buffer
            return buffer

    def get(self, session_id: str) -> Optional[OutputBuffer]:
        with self._lock:
            return self._buffers.get(session_id)

    def append(self, session_id: str, text: str) -> None:
        buffer = self.get(session_id)
        if buffer is None:
            logger.debug(f"Dropping {len(text)} chars for unknown session {session_id}")
            return
        buffer.append(text)

    def drain(self, session_id: str) -> str:
        buffer = self.get(session_id)
        if buffer is None:
            return ""
        return buffer.drain()

    def pending(self, session_id: str) -> int:
        """Number of characters waiting to be drained."""
        buffer = self.get(session_id)
        return len(buffer) if buffer is not None else 0

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._buffers.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._buffers.clear()

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._buffers
