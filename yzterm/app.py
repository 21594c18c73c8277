#!/usr/bin/env python3
"""
yzterm - Console Entry Point

Attaches the local terminal to a remote shell through the session
controller: raw keystrokes go to the session, its output goes to stdout.
"""

import argparse
import asyncio
import codecs
import getpass
import os
import re
import signal
import sys
import termios
import tty
from typing import Any, Callable, Optional

from loguru import logger

from yzterm.config import config
from yzterm.controller import MemoryHostStore, SessionController
from yzterm.errors import YzTermError
from yzterm.models import ConnectionState, HostProfile

DESTINATION_RE = re.compile(r"^(?P<user>[^@\s]+)@(?P<host>[^:\s]+)(?::(?P<port>\d+))?$")

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class StdoutRenderer:
    """Writes session output to the local terminal unmodified."""

    def __init__(self, stream=None) -> None:
        self.stream = stream or sys.stdout

    def send(self, message: dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == "output":
            self.stream.write(message.get("data", ""))
        elif kind == "clear":
            self.stream.write("\x1b[2J\x1b[H")
        self.stream.flush()


class StdinForwarder:
    """Decodes raw keyboard bytes and hands the text to ``write``.

    A read can end in the middle of a multi-byte character (large pastes);
    the incremental decoder holds the partial sequence until the next read.
    """

    def __init__(
        self,
        fd: int,
        write: Callable[[str], None],
        on_eof: Callable[[], None],
        chunk_size: int = 1024,
    ) -> None:
        self.fd = fd
        self.write = write
        self.on_eof = on_eof
        self.chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def on_readable(self) -> None:
        data = os.read(self.fd, self.chunk_size)
        if not data:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self.write(tail)
            self.on_eof()
            return
        text = self._decoder.decode(data)
        if text:
            self.write(text)


def install_stop_signals(loop: asyncio.AbstractEventLoop, stop: Callable[[], None]) -> None:
    for sig in STOP_SIGNALS:
        loop.add_signal_handler(sig, stop)


def remove_stop_signals(loop: asyncio.AbstractEventLoop) -> None:
    for sig in STOP_SIGNALS:
        loop.remove_signal_handler(sig)


def parse_destination(value: str, port: Optional[int] = None) -> HostProfile:
    """Build an ad-hoc profile from ``user@host[:port]``.

    The profile id is derived from the destination so that a saved password
    is found again on the next run.
    """
    match = DESTINATION_RE.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"Expected user@host[:port], got {value!r}")
    resolved_port = port or int(match.group("port") or 22)
    username, address = match.group("user"), match.group("host")
    return HostProfile(
        id=f"{username}@{address}:{resolved_port}",
        name=address,
        address=address,
        username=username,
        port=resolved_port,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="yzterm", description=__doc__.strip().splitlines()[0])
    parser.add_argument("destination", help="user@host[:port]")
    parser.add_argument("-p", "--port", type=int, default=None, help="remote port")
    parser.add_argument(
        "--save-password",
        action="store_true",
        help="prompt for a password and store it in the credential vault first",
    )
    parser.add_argument(
        "--forget-password",
        action="store_true",
        help="remove the stored password for this destination and exit",
    )
    return parser


async def _watch_session(controller: SessionController, done: asyncio.Event) -> None:
    """Finish once the remote shell exits or the controller goes idle."""
    interval = config.timeouts.controller.poll
    while not done.is_set():
        session_id = controller.session_id
        if controller.state is ConnectionState.IDLE or session_id is None:
            break
        if not controller.manager.is_alive(session_id):
            # Let the poll deliver the last output first.
            await asyncio.sleep(interval * 3)
            break
        await asyncio.sleep(interval * 5)
    done.set()


async def main(argv: Optional[list[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    # Validate configuration
    errors = config.validate_required()
    if errors:
        logger.error("Configuration errors:")
        for error in errors:
            logger.error(f"  - {error}")
        return 1

    profile = parse_destination(args.destination, args.port)

    async def on_alert(title: str, message: str) -> None:
        logger.error(f"{title}: {message}")

    controller = SessionController(
        hosts=MemoryHostStore([profile]),
        renderer=StdoutRenderer(),
        on_alert=on_alert,
    )

    try:
        if args.forget_password:
            await controller.vault.delete(profile.id)
            return 0
        if args.save_password:
            secret = getpass.getpass(f"Password for {profile.destination}: ")
            await controller.save_host(profile, secret or None)
    except YzTermError as e:
        logger.error(f"Credential vault error: {e.message}")
        return 1

    if not await controller.connect(profile.id):
        await controller.shutdown()
        return 1

    loop = asyncio.get_running_loop()
    done = asyncio.Event()
    stdin_fd = sys.stdin.fileno()
    saved_mode = termios.tcgetattr(stdin_fd) if os.isatty(stdin_fd) else None

    stdin = StdinForwarder(stdin_fd, controller.write, done.set)

    def on_winch() -> None:
        size = os.get_terminal_size(sys.stdout.fileno())
        controller.resize(size.columns, size.lines)

    if saved_mode is not None:
        tty.setraw(stdin_fd)
        on_winch()
        loop.add_signal_handler(signal.SIGWINCH, on_winch)
    loop.add_reader(stdin_fd, stdin.on_readable)
    install_stop_signals(loop, done.set)

    watcher = asyncio.create_task(_watch_session(controller, done))
    try:
        await done.wait()
    finally:
        watcher.cancel()
        loop.remove_reader(stdin_fd)
        remove_stop_signals(loop)
        if saved_mode is not None:
            loop.remove_signal_handler(signal.SIGWINCH)
            termios.tcsetattr(stdin_fd, termios.TCSADRAIN, saved_mode)
        await controller.shutdown()

    logger.info(f"Session with {profile.destination} ended")
    return 0
