"""Unit tests for keep-alive and idle accounting."""

import asyncio
from types import SimpleNamespace

import pytest

from yzterm.pty import liveness
from yzterm.pty.liveness import LivenessTracker


@pytest.mark.asyncio
async def test_idle_seconds_grows_until_touched(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(liveness, "time", SimpleNamespace(monotonic=lambda: now[0]))
    tracker = LivenessTracker(interval=3600)
    tracker.start("s1")
    try:
        now[0] += 42.0
        assert tracker.idle_seconds("s1") == pytest.approx(42.0)

        tracker.touch("s1")
        assert tracker.idle_seconds("s1") == pytest.approx(0.0)
    finally:
        tracker.stop_all()


@pytest.mark.asyncio
async def test_tick_refreshes_activity():
    tracker = LivenessTracker(interval=0.01)
    tracker.start("s1")
    try:
        await asyncio.sleep(0.05)
        assert tracker.idle_seconds("s1") < 0.05
    finally:
        tracker.stop_all()


@pytest.mark.asyncio
async def test_stop_cancels_ticking_and_forgets_session():
    tracker = LivenessTracker(interval=0.01)
    tracker.start("s1")
    task = tracker._tasks["s1"]

    tracker.stop("s1")
    await asyncio.sleep(0)

    assert task.cancelled() or task.done()
    assert not tracker.is_tracking("s1")
    assert tracker.idle_seconds("s1") == 0.0


def test_unknown_session_is_not_idle():
    tracker = LivenessTracker(interval=60)
    assert tracker.idle_seconds("missing") == 0.0
    tracker.touch("missing")
    assert not tracker.is_tracking("missing")
