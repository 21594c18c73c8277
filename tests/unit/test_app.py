"""Unit tests for the console entry point helpers."""

import argparse
import io
import os
import signal
from unittest import mock

import pytest

from yzterm.app import (
    StdinForwarder,
    StdoutRenderer,
    build_parser,
    install_stop_signals,
    main,
    parse_destination,
    remove_stop_signals,
)
from yzterm.config import Config


class TestParseDestination:
    """Tests for parse_destination."""

    def test_user_and_host(self):
        profile = parse_destination("deploy@web.example.com")

        assert profile.username == "deploy"
        assert profile.address == "web.example.com"
        assert profile.port == 22
        assert profile.id == "deploy@web.example.com:22"

    def test_port_in_destination(self):
        assert parse_destination("root@10.0.0.5:2222").port == 2222

    def test_explicit_port_wins(self):
        profile = parse_destination("root@10.0.0.5:2222", port=2022)
        assert profile.port == 2022
        assert profile.id == "root@10.0.0.5:2022"

    @pytest.mark.parametrize("value", ["web.example.com", "@host", "user@", "a b@host"])
    def test_rejects_malformed(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_destination(value)


class TestStdoutRenderer:
    """Tests for StdoutRenderer."""

    def test_output_is_written_verbatim(self):
        stream = io.StringIO()
        renderer = StdoutRenderer(stream)

        renderer.send({"type": "output", "data": "\x1b[32mok\x1b[0m\r\n"})

        assert stream.getvalue() == "\x1b[32mok\x1b[0m\r\n"

    def test_clear_resets_screen(self):
        stream = io.StringIO()
        StdoutRenderer(stream).send({"type": "clear"})
        assert stream.getvalue() == "\x1b[2J\x1b[H"


def test_parser_flags():
    args = build_parser().parse_args(["deploy@host", "-p", "2200", "--save-password"])

    assert args.destination == "deploy@host"
    assert args.port == 2200
    assert args.save_password is True
    assert args.forget_password is False


@pytest.mark.asyncio
async def test_main_stops_on_configuration_errors():
    with mock.patch.object(Config, "validate_required", return_value=["SSH_BINARY missing"]):
        assert await main(["deploy@host"]) == 1


class TestStdinForwarder:
    """Tests for keyboard input decoding."""

    def test_character_split_across_reads_is_forwarded_whole(self):
        read_fd, write_fd = os.pipe()
        written: list[str] = []
        forwarder = StdinForwarder(read_fd, written.append, lambda: None)
        encoded = "日本".encode("utf-8")
        try:
            os.write(write_fd, encoded[:1])
            forwarder.on_readable()
            os.write(write_fd, encoded[1:4])
            forwarder.on_readable()
            os.write(write_fd, encoded[4:])
            forwarder.on_readable()
        finally:
            os.close(read_fd)
            os.close(write_fd)

        assert "".join(written) == "日本"
        assert "\ufffd" not in "".join(written)

    def test_eof_flushes_and_signals(self):
        read_fd, write_fd = os.pipe()
        written: list[str] = []
        ended: list[bool] = []
        forwarder = StdinForwarder(read_fd, written.append, lambda: ended.append(True))
        try:
            os.write(write_fd, b"ls\r\xe6")
            forwarder.on_readable()
            os.close(write_fd)
            forwarder.on_readable()
        finally:
            os.close(read_fd)

        assert written == ["ls\r", "\ufffd"]
        assert ended == [True]


def test_stop_signals_cover_interrupt_and_terminate():
    loop = mock.MagicMock()
    stop = mock.MagicMock()

    install_stop_signals(loop, stop)
    remove_stop_signals(loop)

    added = {c.args[0] for c in loop.add_signal_handler.call_args_list}
    removed = {c.args[0] for c in loop.remove_signal_handler.call_args_list}
    assert added == {signal.SIGINT, signal.SIGTERM}
    assert removed == added
    assert all(c.args[1] is stop for c in loop.add_signal_handler.call_args_list)
