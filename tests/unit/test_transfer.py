"""Unit tests for scp transfers."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from yzterm.errors import TransferError, TransferFailed
from yzterm.remote.transfer import TransferRunner, remote_join


def _process(stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(b"", stderr))
    process.returncode = returncode
    return process


def test_remote_join():
    assert remote_join("~", "a.txt") == "~/a.txt"
    assert remote_join("/srv/app/", "a.txt") == "/srv/app/a.txt"
    assert remote_join("~/logs", "a.txt") == "~/logs/a.txt"


@pytest.mark.asyncio
async def test_upload_copies_local_to_remote_spec():
    with patch(
        "asyncio.create_subprocess_exec", new=AsyncMock(return_value=_process())
    ) as create:
        result = await TransferRunner().upload(
            "example.com", 2222, "deploy", None, "/tmp/a.txt", "~/a.txt"
        )

    assert result.success
    assert result.message == "File uploaded successfully"
    argv = create.call_args.args
    assert argv[:3] == ("scp", "-P", "2222")
    assert argv[-2:] == ("/tmp/a.txt", "deploy@example.com:~/a.txt")


@pytest.mark.asyncio
async def test_download_copies_remote_spec_to_local():
    with patch(
        "asyncio.create_subprocess_exec", new=AsyncMock(return_value=_process())
    ) as create:
        result = await TransferRunner().download(
            "example.com", 22, "deploy", "pw", "/var/log/app.log", "/tmp/app.log"
        )

    assert result.message == "File downloaded successfully"
    argv = create.call_args.args
    assert argv[:2] == ("sshpass", "-e")
    assert argv[-2:] == ("deploy@example.com:/var/log/app.log", "/tmp/app.log")
    assert create.call_args.kwargs["env"]["SSHPASS"] == "pw"


@pytest.mark.asyncio
async def test_upload_nonzero_exit_reports_stderr():
    process = _process(stderr=b"scp: /tmp/missing: No such file or directory\n", returncode=1)
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=process)):
        with pytest.raises(TransferFailed) as exc_info:
            await TransferRunner().upload(
                "example.com", 22, "deploy", None, "/tmp/missing", "~/missing"
            )

    assert exc_info.value.code == "UPLOAD_FAILED"
    assert "No such file or directory" in exc_info.value.message


@pytest.mark.asyncio
async def test_failure_without_stderr_uses_generic_message():
    with patch(
        "asyncio.create_subprocess_exec", new=AsyncMock(return_value=_process(returncode=1))
    ):
        with pytest.raises(TransferFailed) as upload_exc:
            await TransferRunner().upload("example.com", 22, "deploy", None, "/a", "~/a")
        with pytest.raises(TransferFailed) as download_exc:
            await TransferRunner().download("example.com", 22, "deploy", None, "~/a", "/a")

    assert upload_exc.value.message == "Upload failed"
    assert download_exc.value.message == "Download failed"
    assert download_exc.value.code == "DOWNLOAD_FAILED"


@pytest.mark.asyncio
async def test_missing_scp_raises_transfer_error():
    with patch(
        "asyncio.create_subprocess_exec",
        new=AsyncMock(side_effect=FileNotFoundError("scp not found")),
    ):
        with pytest.raises(TransferError) as exc_info:
            await TransferRunner().download("example.com", 22, "deploy", None, "~/a", "/a")

    assert exc_info.value.code == "DOWNLOAD_ERROR"
