"""Keep-alive ticking and idle-time accounting per session."""

import asyncio
import threading
import time
from typing import Optional

from loguru import logger

from ..config import config


class LivenessTracker:
    """Tracks the last activity time of every live session.

    A periodic tick refreshes the activity time without sending anything to
    the remote side. Staleness is only reported through ``idle_seconds``;
    nothing is disconnected automatically.
    """

    def __init__(self, interval: Optional[float] = None) -> None:
        self.interval = interval if interval is not None else config.timeouts.session.keepalive
        self._last_activity: dict[str, float] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()

    def start(self, session_id: str) -> None:
        """Begin tracking a session and schedule its keep-alive ticks.

        Must be called from the event loop thread.
        """
        with self._lock:
            self._last_activity[session_id] = time.monotonic()
            previous = self._tasks.pop(session_id, None)
            self._tasks[session_id] = asyncio.get_running_loop().create_task(
                self._tick_loop(session_id)
            )
        if previous is not None:
            previous.cancel()
        logger.debug(f"Keep-alive started for {session_id} (interval: {self.interval}s)")

    def stop(self, session_id: str) -> None:
        with self._lock:
            self._last_activity.pop(session_id, None)
            task = self._tasks.pop(session_id, None)
        if task is not None:
            task.cancel()

    def stop_all(self) -> None:
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
            self._last_activity.clear()
        for task in tasks:
            task.cancel()

    def touch(self, session_id: str) -> None:
        """Record real activity (a write) on a tracked session."""
        with self._lock:
            if session_id in self._last_activity:
                self._last_activity[session_id] = time.monotonic()

    def idle_seconds(self, session_id: str) -> float:
        """Seconds since the last write or tick; 0.0 for untracked sessions."""
        with self._lock:
            last = self._last_activity.get(session_id)
        if last is None:
            return 0.0
        return max(0.0, time.monotonic() - last)

    def is_tracking(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._last_activity

    async def _tick_loop(self, session_id: str) -> None:
        while True:
            await asyncio.sleep(self.interval)
            with self._lock:
                if session_id not in self._last_activity:
                    return
                self._last_activity[session_id] = time.monotonic()
            logger.debug(f"Keep-alive tick for {session_id}")
