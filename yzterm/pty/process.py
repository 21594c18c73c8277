"""Low-level ssh client process management with pexpect."""

import os
import select
from typing import Optional

import pexpect
from loguru import logger

from ..config import config
from ..errors import SSHConnectionError
from ..remote.commands import build_env, describe, interactive_ssh_argv
from .types import PTYSessionConfig


class SSHProcess:
    """Low-level pexpect wrapper for an interactive ssh client.

    pexpect allocates the pseudo-terminal pair, binds the child to the slave
    side and hands back the master descriptor. The master is switched to
    non-blocking mode so that reads can be driven by readiness callbacks
    instead of pexpect's own blocking reads.
    """

    def __init__(self, config: PTYSessionConfig) -> None:
        self.config = config
        self.child: Optional[pexpect.spawn] = None

    def spawn(self, secret: Optional[str] = None) -> None:
        """Spawn the ssh client bound to a fresh pseudo-terminal.

        Blocking (fork/exec latency); call from a worker thread.

        Raises
        ------
        SSHConnectionError
            If the pseudo-terminal cannot be allocated or the client
            cannot be started.
        """
        argv = interactive_ssh_argv(
            self.config.address,
            self.config.port,
            self.config.username,
            secret,
        )
        env = build_env(
            secret,
            TERM=self.config.term,
            COLUMNS=str(self.config.cols),
            LINES=str(self.config.rows),
        )

        logger.info(f"Spawning ssh: {describe(argv)}")

        try:
            self.child = pexpect.spawn(
                argv[0],
                args=argv[1:],
                env=env,
                encoding=None,
                dimensions=(self.config.rows, self.config.cols),
            )
        except pexpect.ExceptionPexpect as e:
            raise SSHConnectionError(f"Failed to start SSH: {e}") from e
        except OSError as e:
            raise SSHConnectionError(f"Failed to create PTY: {e}", code="PTY_FAILED") from e

        try:
            os.set_blocking(self.child.child_fd, False)
        except OSError as e:
            self.terminate()
            self.child = None
            raise SSHConnectionError(f"Failed to configure PTY: {e}", code="PTY_FAILED") from e

    @property
    def fd(self) -> int:
        """Master side of the pseudo-terminal (-1 once closed)."""
        if self.child is None:
            return -1
        return self.child.child_fd

    def read_available(self) -> bytes:
        """Read whatever is currently available on the master.

        Returns
        -------
        bytes
            Data read; empty when nothing is pending.

        Raises
        ------
        EOFError
            If the client has exited and the master reports end of file.
        """
        try:
            data = os.read(self.fd, self.config.read_chunk_size)
        except BlockingIOError:
            return b""
        except OSError as e:
            # Linux reports EIO on the master once the slave side is gone.
            raise EOFError(str(e)) from e
        if not data:
            raise EOFError("pty closed")
        return data

    def send(self, data: bytes) -> None:
        """Write all of ``data`` to the master, waiting for room if needed."""
        view = memoryview(data)
        while view:
            try:
                written = os.write(self.fd, view)
            except BlockingIOError:
                select.select([], [self.fd], [], 0.05)
                continue
            view = view[written:]

    def resize(self, rows: int, cols: int) -> None:
        """Propagate a window-size change to the pseudo-terminal."""
        if self.child:
            self.child.setwinsize(rows, cols)
            self.config.rows = rows
            self.config.cols = cols

    def is_alive(self) -> bool:
        """Check if process is still running."""
        return self.child is not None and self.child.isalive()

    @property
    def pid(self) -> Optional[int]:
        """Get the process ID."""
        if self.child is not None:
            return self.child.pid
        return None

    @property
    def exit_status(self) -> Optional[int]:
        if self.child is None:
            return None
        return self.child.exitstatus

    def terminate(self) -> None:
        """Terminate the client and release the master descriptor.

        Blocking (pexpect waits between signals); call from a worker thread.
        """
        if self.child is None:
            return
        child = self.child
        # Wait between escalating signals.
        child.delayafterterminate = config.timeouts.session.stop_grace
        try:
            if child.isalive():
                child.terminate(force=True)
        except pexpect.ExceptionPexpect as e:
            logger.warning(f"Failed to terminate ssh pid={child.pid}: {e}")
        finally:
            try:
                child.close(force=True)
            except pexpect.ExceptionPexpect as e:
                logger.warning(f"Failed to close pty for pid={child.pid}: {e}")
