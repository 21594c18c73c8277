"""File transfer over one-shot scp invocations."""

import asyncio
from typing import Optional

from loguru import logger

from ..errors import TransferError, TransferFailed
from ..models import TransferDirection, TransferResult
from .commands import build_env, describe, remote_spec, scp_argv
from .listing import HOME


def remote_join(directory: str, name: str) -> str:
    """Remote destination for ``name`` inside ``directory``."""
    if directory == HOME:
        return f"{HOME}/{name}"
    return f"{directory.rstrip('/')}/{name}"


class TransferRunner:
    """Copies single files to and from a remote host with scp.

    Transfers can take minutes; callers run them as background work.
    """

    async def upload(
        self,
        address: str,
        port: int,
        username: str,
        secret: Optional[str],
        local_path: str,
        remote_path: str,
    ) -> TransferResult:
        argv = scp_argv(port, local_path, remote_spec(address, username, remote_path), secret)
        await self._run(TransferDirection.UPLOAD, argv, secret)
        logger.info(f"Uploaded {local_path} to {address}:{remote_path}")
        return TransferResult(
            success=True,
            local_path=local_path,
            remote_path=remote_path,
            message="File uploaded successfully",
        )

    async def download(
        self,
        address: str,
        port: int,
        username: str,
        secret: Optional[str],
        remote_path: str,
        local_path: str,
    ) -> TransferResult:
        argv = scp_argv(port, remote_spec(address, username, remote_path), local_path, secret)
        await self._run(TransferDirection.DOWNLOAD, argv, secret)
        logger.info(f"Downloaded {address}:{remote_path} to {local_path}")
        return TransferResult(
            success=True,
            local_path=local_path,
            remote_path=remote_path,
            message="File downloaded successfully",
        )

    async def _run(
        self, direction: TransferDirection, argv: list[str], secret: Optional[str]
    ) -> None:
        label = direction.value.upper()
        logger.debug(f"Running: {describe(argv)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=build_env(secret),
            )
            _, stderr_bytes = await process.communicate()
        except OSError as e:
            raise TransferError(str(e), code=f"{label}_ERROR") from e

        if process.returncode != 0:
            stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
            message = stderr or f"{direction.value.capitalize()} failed"
            logger.warning(f"{direction.value.capitalize()} failed ({process.returncode}): {message}")
            raise TransferFailed(message, code=f"{label}_FAILED")
