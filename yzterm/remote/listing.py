"""Remote directory listing over a one-shot ssh invocation."""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from ..errors import ListError, ListFailed
from ..models import FileEntry, FileKind
from .commands import build_env, describe, remote_exec_argv

HOME = "~"

# permissions, links, owner, group, size, month, day, time-or-year, name
LISTING_FIELDS = 9

HOST_KEY_WARNING = "Warning: Permanently added"


def quote_remote_path(path: str) -> str:
    """Quote a path for the remote shell, keeping a leading ``~`` expandable."""
    if path == HOME:
        return HOME
    if path.startswith(HOME + "/"):
        return f"{HOME}/{_single_quote(path[2:])}"
    return _single_quote(path)


def _single_quote(value: str) -> str:
    return "'" + value.replace("'", "'\\''") + "'"


def build_list_command(path: str) -> str:
    return f"ls -la {quote_remote_path(path)}"


def parse_listing(output: str) -> list[FileEntry]:
    """Parse ``ls -la`` output into entries.

    Lines that do not split into the expected nine fields are skipped rather
    than failing the whole listing. Names containing newlines, or a name
    whose first characters are whitespace, are not recovered correctly; link
    entries keep their ``name -> target`` text.
    """
    entries: list[FileEntry] = []
    for line in output.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("total"):
            continue

        parts = trimmed.split(maxsplit=LISTING_FIELDS - 1)
        if len(parts) < LISTING_FIELDS:
            logger.debug(f"Skipping unparsable listing line: {trimmed!r}")
            continue

        permissions, name = parts[0], parts[8]
        if name in (".", ".."):
            continue

        try:
            size = int(parts[4])
        except ValueError:
            size = 0

        entries.append(
            FileEntry(
                name=name,
                kind=FileKind.from_permissions(permissions),
                size=size,
                permissions=permissions,
            )
        )
    return entries


def filter_stderr(stderr: str) -> str:
    """Drop the ssh client's benign known-hosts warnings."""
    return "\n".join(
        line for line in stderr.splitlines() if HOST_KEY_WARNING not in line
    ).strip()


def child_path(current: str, name: str) -> str:
    """Path of entry ``name`` inside directory ``current``."""
    if current == HOME:
        return f"{HOME}/{name}"
    if current.endswith("/"):
        return f"{current}{name}"
    return f"{current}/{name}"


def parent_path(current: str) -> str:
    """Parent directory, stopping at ``~`` and ``/``."""
    if current in (HOME, "/"):
        return current
    parts = current.rstrip("/").split("/")
    parts.pop()
    if parts == [HOME]:
        return HOME
    return "/".join(parts) or "/"


class DirectoryEnumerator:
    """Lists remote directories with a fresh ssh invocation per request.

    Independent of any open PTY session.
    """

    async def list(
        self,
        address: str,
        port: int,
        username: str,
        secret: Optional[str] = None,
        path: str = HOME,
    ) -> list[FileEntry]:
        """List ``path`` on the remote host.

        Raises
        ------
        ListFailed
            If the remote command exits non-zero.
        ListError
            If the ssh client cannot be started.
        """
        argv = remote_exec_argv(address, port, username, build_list_command(path), secret)
        stdout, stderr, returncode = await self._run(argv, secret)

        if returncode != 0:
            message = filter_stderr(stderr) or "Failed to list directory"
            logger.warning(f"Listing {path} on {address} failed ({returncode}): {message}")
            raise ListFailed(message)

        entries = parse_listing(stdout)
        logger.debug(f"Listed {path} on {address}: {len(entries)} entries")
        return entries

    async def _run(self, argv: list[str], secret: Optional[str]) -> tuple[str, str, int]:
        """Run a command and return (stdout, stderr, returncode)."""
        logger.debug(f"Running: {describe(argv)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=build_env(secret),
            )
            stdout_bytes, stderr_bytes = await process.communicate()
        except OSError as e:
            raise ListError(f"Failed to run ssh: {e}") from e

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return stdout, stderr, process.returncode
