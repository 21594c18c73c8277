"""Argument vectors for the external ssh/scp clients.

A non-empty secret switches the invocation to ``sshpass -e``, which reads the
password from the ``SSHPASS`` environment variable so it never appears on a
command line.
"""

import os
import shlex
from typing import Optional

from ..config import config


def host_key_options() -> list[str]:
    if config.STRICT_HOST_KEY_CHECKING:
        return ["-o", "StrictHostKeyChecking=yes"]
    return [
        "-o",
        "StrictHostKeyChecking=no",
        "-o",
        "UserKnownHostsFile=/dev/null",
    ]


def _wrap_secret(argv: list[str], secret: Optional[str]) -> list[str]:
    if secret:
        return [config.SSHPASS_BINARY, "-e", *argv]
    return argv


def build_env(secret: Optional[str] = None, **extra: str) -> dict[str, str]:
    """Copy of the current environment with the secret exported for sshpass."""
    env = os.environ.copy()
    env.pop("SSHPASS", None)
    env.update(extra)
    if secret:
        env["SSHPASS"] = secret
    return env


def interactive_ssh_argv(
    address: str, port: int, username: str, secret: Optional[str] = None
) -> list[str]:
    """Arguments for a PTY-bound interactive shell (forced tty allocation)."""
    argv = [
        config.SSH_BINARY,
        "-tt",
        *host_key_options(),
        "-p",
        str(port),
        f"{username}@{address}",
    ]
    return _wrap_secret(argv, secret)


def remote_exec_argv(
    address: str,
    port: int,
    username: str,
    command: str,
    secret: Optional[str] = None,
) -> list[str]:
    """Arguments for a one-shot remote command."""
    argv = [
        config.SSH_BINARY,
        "-p",
        str(port),
        *host_key_options(),
        f"{username}@{address}",
        command,
    ]
    return _wrap_secret(argv, secret)


def scp_argv(
    port: int, source: str, destination: str, secret: Optional[str] = None
) -> list[str]:
    argv = [
        config.SCP_BINARY,
        "-P",
        str(port),
        *host_key_options(),
        source,
        destination,
    ]
    return _wrap_secret(argv, secret)


def remote_spec(address: str, username: str, path: str) -> str:
    """``user@host:path`` operand for scp."""
    return f"{username}@{address}:{path}"


def describe(argv: list[str]) -> str:
    """Printable form of an argument vector for log lines."""
    return shlex.join(argv)
