"""Unit tests for PTY session output decoding."""

from unittest.mock import MagicMock

from yzterm.pty.session import PTYSession
from yzterm.pty.types import PTYSessionConfig, SessionState


def _session(received: list[str]) -> PTYSession:
    return PTYSession(
        session_id="s1",
        config=PTYSessionConfig(address="example.com", username="deploy"),
        on_output=received.append,
        process=MagicMock(),
    )


def test_multibyte_character_split_across_reads_is_reassembled():
    received: list[str] = []
    session = _session(received)
    encoded = "héllo ✓".encode("utf-8")

    session._deliver(encoded[:2])
    session._deliver(encoded[2:9])
    session._deliver(encoded[9:])

    assert "".join(received) == "héllo ✓"


def test_malformed_chunk_is_dropped_and_decoding_continues():
    received: list[str] = []
    session = _session(received)

    session._deliver(b"ok ")
    session._deliver(b"\xff\xfe bad")
    session._deliver(b"after")

    assert received == ["ok ", "after"]


def test_eof_marks_session_exited():
    received: list[str] = []
    session = _session(received)
    session.process.read_available.side_effect = EOFError("pty closed")

    session._on_readable()

    assert session.state == SessionState.EXITED
    assert received == []


def test_empty_read_delivers_nothing():
    received: list[str] = []
    session = _session(received)
    session.process.read_available.return_value = b""

    session._on_readable()

    assert received == []
    assert session.state == SessionState.STARTING


def test_write_encodes_and_resize_swaps_order():
    session = _session([])

    session.write("pwd\r")
    session.resize(132, 43)

    session.process.send.assert_called_once_with(b"pwd\r")
    session.process.resize.assert_called_once_with(43, 132)


def test_terminate_stops_process():
    session = _session([])
    session.spawn("pw")

    session.terminate()

    session.process.spawn.assert_called_once_with("pw")
    session.process.terminate.assert_called_once_with()
    assert session.state == SessionState.STOPPED
