"""Connection controller for the currently selected host.

Drives the session core on behalf of the UI: credential fetch, session open,
output polling, directory browsing and file transfer. Every asynchronous
step captures the generation that was current when it started and drops its
result once the user has moved to another target.
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Coroutine, Optional

from loguru import logger

from ..config import config
from ..errors import InvalidConfig, SessionNotFound, UserCanceled, YzTermError
from ..models import (
    ConnectionState,
    FileEntry,
    HostProfile,
    TransferDirection,
    TransferProgress,
    TransferResult,
)
from ..pty import PTYSessionManager
from ..remote import DirectoryEnumerator, TransferRunner, child_path, parent_path, remote_join
from ..remote.listing import HOME
from ..vault import CredentialVault
from .boundary import HostStore, TerminalRenderer
from .generation import GenerationCounter

# Signature the remote side prints when password or key authentication fails.
AUTH_FAILURE_MARKER = "Permission denied"

YELLOW = "\x1b[33m"
GREEN = "\x1b[32m"
RESET = "\x1b[0m"


class SessionController:
    """Owns the connection to the current target.

    State machine: IDLE -> CONNECTING -> CONNECTED -> IDLE, with a jump back
    to CONNECTING from any state when the user picks another host.
    """

    def __init__(
        self,
        hosts: HostStore,
        renderer: TerminalRenderer,
        manager: Optional[PTYSessionManager] = None,
        vault: Optional[CredentialVault] = None,
        enumerator: Optional[DirectoryEnumerator] = None,
        transfers: Optional[TransferRunner] = None,
        on_state_change: Optional[Callable[[ConnectionState], Awaitable[None]]] = None,
        on_alert: Optional[Callable[[str, str], Awaitable[None]]] = None,
        on_listing: Optional[Callable[[str, list[FileEntry]], Awaitable[None]]] = None,
        on_progress: Optional[Callable[[TransferProgress], Awaitable[None]]] = None,
    ) -> None:
        self.hosts = hosts
        self.renderer = renderer
        self.manager = manager or PTYSessionManager()
        self.vault = vault or CredentialVault()
        self.enumerator = enumerator or DirectoryEnumerator()
        self.transfers = transfers or TransferRunner()
        self.on_state_change = on_state_change
        self.on_alert = on_alert
        self.on_listing = on_listing
        self.on_progress = on_progress

        self.generation = GenerationCounter()
        self.state = ConnectionState.IDLE
        self.selected_host: Optional[HostProfile] = None
        self.session_id: Optional[str] = None
        self.renderer_ready = False

        self.current_path = HOME
        self.files: list[FileEntry] = []
        self.loading_files = False
        self.upload_progress: Optional[TransferProgress] = None
        self.download_progress: Optional[TransferProgress] = None

        self._secret: Optional[str] = None
        self._alert_shown = False
        self._poll_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()
        self._timeouts = config.timeouts.controller
        self._progress = config.timeouts.progress

    # ------------------------------------------------------------------
    # Host selection and editing
    # ------------------------------------------------------------------

    def find_host(self, host_id: str) -> HostProfile:
        for host in self.hosts.load():
            if host.id == host_id:
                return host
        raise InvalidConfig(f"Unknown host: {host_id}")

    def select(self, host_id: str) -> HostProfile:
        """Make ``host_id`` the target for browsing without connecting."""
        self.selected_host = self.find_host(host_id)
        return self.selected_host

    async def save_host(self, profile: HostProfile, secret: Optional[str] = None) -> HostProfile:
        """Create or update a profile; a given secret goes to the vault only."""
        profile.validate()
        hosts = self.hosts.load()
        for index, host in enumerate(hosts):
            if host.id == profile.id:
                hosts[index] = profile
                break
        else:
            hosts.append(profile)
        self.hosts.save(hosts)

        if secret:
            await self.vault.save(profile.id, secret)
        if self.selected_host is not None and self.selected_host.id == profile.id:
            self.selected_host = profile
        logger.info(f"Saved host {profile.id} ({profile.name})")
        return profile

    async def delete_host(self, host_id: str) -> None:
        hosts = [h for h in self.hosts.load() if h.id != host_id]
        self.hosts.save(hosts)
        await self.vault.delete(host_id)
        if self.selected_host is not None and self.selected_host.id == host_id:
            if self.session_id is not None or self.state is not ConnectionState.IDLE:
                await self.disconnect()
            self.selected_host = None
        logger.info(f"Deleted host {host_id}")

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self, host_id: str) -> bool:
        """Connect to ``host_id``, superseding any attempt in flight.

        Returns True when this attempt ended up as the live connection.
        """
        host = self.find_host(host_id)
        token = self.generation.advance()
        self._alert_shown = False
        self.selected_host = host
        self.loading_files = False
        await self._release_current_session()
        if not self.generation.is_current(token):
            return False

        await self._set_state(ConnectionState.CONNECTING)
        self._write_banner(
            f"{YELLOW}Connecting to {host.username}@{host.address}:{host.port}...{RESET}\r\n"
        )
        logger.info(f"[G:{token}] Connecting to host {host.id} ({host.destination})")

        try:
            secret = await self.vault.fetch(host.id)
        except UserCanceled:
            if self.generation.is_current(token):
                self._write_banner(f"{YELLOW}Verification canceled{RESET}\r\n")
                await self._set_state(ConnectionState.IDLE)
            return False
        except YzTermError as e:
            # Connect without a stored secret (key auth may still work).
            logger.warning(f"[G:{token}] Credential fetch for {host.id} failed: {e.code}")
            secret = None

        if not self.generation.is_current(token):
            logger.debug(f"[G:{token}] Dropping stale credential result for {host.id}")
            return False

        try:
            session_id = await self.manager.open(host.address, host.port, host.username, secret)
        except YzTermError as e:
            if not self.generation.is_current(token):
                logger.debug(f"[G:{token}] Dropping stale connect failure for {host.id}")
                return False
            logger.error(f"[G:{token}] Connection to {host.destination} failed: {e.message}")
            await self._set_state(ConnectionState.IDLE)
            await self._alert_once("Connection failed", e.message)
            return False

        if not self.generation.is_current(token):
            logger.info(f"[G:{token}] Closing orphaned session {session_id}")
            await self.manager.close(session_id)
            return False

        self.session_id = session_id
        self._secret = secret
        self.renderer_ready = True
        await self._set_state(ConnectionState.CONNECTED)
        self._write_banner(f"{GREEN}Connected to {host.address}{RESET}\r\n")

        self._poll_task = asyncio.create_task(self._poll_output(token, session_id))
        self._spawn(self._post_connect(token, session_id))
        self._spawn(self._initial_listing(token))
        return True

    async def disconnect(self) -> None:
        """Drop the current connection and invalidate everything in flight."""
        self.generation.advance()
        await self._release_current_session()
        self.renderer_ready = False
        self.loading_files = False
        await self._set_state(ConnectionState.IDLE)
        self.renderer.send({"type": "clear"})

    async def shutdown(self) -> None:
        """Full teardown: disconnect and close every session."""
        await self.disconnect()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.manager.close_all()

    async def _release_current_session(self) -> None:
        session_id = self.session_id
        self.session_id = None
        self._secret = None
        await self._stop_poll()
        if session_id is not None:
            await self.manager.close(session_id)

    # ------------------------------------------------------------------
    # Terminal I/O
    # ------------------------------------------------------------------

    def write(self, data: str) -> None:
        if self.session_id is None:
            return
        self.manager.write(self.session_id, data)

    def resize(self, cols: int, rows: int) -> None:
        if self.session_id is None:
            return
        try:
            self.manager.resize(self.session_id, cols, rows)
        except SessionNotFound:
            logger.debug(f"Resize for closed session {self.session_id} ignored")

    def handle_renderer_message(self, message: dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == "input":
            self.write(message.get("data", ""))
        elif kind == "ready":
            self.renderer_ready = True
            logger.debug("Terminal renderer ready")
        else:
            logger.debug(f"Ignoring renderer message type: {kind!r}")

    def idle_seconds(self) -> float:
        if self.session_id is None:
            return 0.0
        return self.manager.idle_seconds(self.session_id)

    async def _poll_output(self, token: int, session_id: str) -> None:
        """Drain the session buffer at a fixed interval into the renderer."""
        while self.generation.is_current(token):
            output = self.manager.drain(session_id)
            if output and self.generation.is_current(token):
                self.renderer.send({"type": "output", "data": output})
                if AUTH_FAILURE_MARKER in output and not self._alert_shown:
                    self._alert_shown = True
                    self._spawn(self._handle_auth_failure(token))
            await asyncio.sleep(self._timeouts.poll)

    async def _handle_auth_failure(self, token: int) -> None:
        await asyncio.sleep(self._timeouts.auth_failure)
        if not self.generation.is_current(token):
            return
        logger.warning(f"[G:{token}] Remote authentication failed, disconnecting")
        await self.disconnect()
        if self.on_alert:
            await self.on_alert(
                "Authentication failed",
                "Wrong password or key, check the host settings and try again",
            )

    async def _stop_poll(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _post_connect(self, token: int, session_id: str) -> None:
        await asyncio.sleep(self._timeouts.post_connect)
        if self.generation.is_current(token) and config.POST_CONNECT_COMMAND:
            self.manager.write(session_id, config.POST_CONNECT_COMMAND)

    async def _initial_listing(self, token: int) -> None:
        await asyncio.sleep(self._timeouts.initial_listing)
        if self.generation.is_current(token):
            await self.list_directory(HOME)

    # ------------------------------------------------------------------
    # Directory browsing
    # ------------------------------------------------------------------

    async def list_directory(self, path: str) -> list[FileEntry]:
        """Load ``path`` into the file browser.

        Failures degrade to an empty listing; stale results are dropped.
        """
        host = self.selected_host
        if host is None:
            return []
        token = self.generation.current
        self.loading_files = True
        try:
            entries = await self.enumerator.list(
                host.address, host.port, host.username, self._secret, path
            )
        except YzTermError as e:
            if self.generation.is_current(token):
                logger.warning(f"Directory listing of {path} failed: {e.message}")
                self.files = []
                self.loading_files = False
                await self._notify_listing()
            return []

        if not self.generation.is_current(token):
            logger.debug(f"[G:{token}] Dropping stale listing of {path}")
            return []

        self.files = entries
        self.current_path = path
        self.loading_files = False
        await self._notify_listing()
        return entries

    async def refresh(self) -> list[FileEntry]:
        return await self.list_directory(self.current_path)

    async def open_entry(self, entry: FileEntry) -> list[FileEntry]:
        """Descend into a directory entry; other kinds are left alone."""
        if not entry.is_directory:
            return self.files
        return await self.list_directory(child_path(self.current_path, entry.name))

    async def go_up(self) -> list[FileEntry]:
        if self.current_path in (HOME, "/"):
            return self.files
        return await self.list_directory(parent_path(self.current_path))

    async def _notify_listing(self) -> None:
        if self.on_listing:
            await self.on_listing(self.current_path, list(self.files))

    # ------------------------------------------------------------------
    # File transfer
    # ------------------------------------------------------------------

    async def upload(self, local_path: str) -> TransferResult:
        """Upload a local file into the directory shown in the browser."""
        host = self._require_connected_host()
        token = self.generation.current
        file_name = Path(local_path).name
        remote_path = remote_join(self.current_path, file_name)
        progress = TransferProgress(file_name=file_name, direction=TransferDirection.UPLOAD)
        self.upload_progress = progress

        try:
            result = await self._with_progress(
                progress,
                self.transfers.upload(
                    host.address, host.port, host.username, self._secret, local_path, remote_path
                ),
            )
        except YzTermError as e:
            logger.warning(f"Upload of {local_path} failed: {e.message}")
            raise
        finally:
            self.upload_progress = None

        if self.generation.is_current(token):
            await self.refresh()
        return result

    async def download(self, entry_name: str, local_path: str) -> TransferResult:
        """Download ``entry_name`` from the browsed directory to ``local_path``."""
        host = self._require_connected_host()
        remote_path = remote_join(self.current_path, entry_name)
        progress = TransferProgress(file_name=entry_name, direction=TransferDirection.DOWNLOAD)
        self.download_progress = progress

        try:
            return await self._with_progress(
                progress,
                self.transfers.download(
                    host.address, host.port, host.username, self._secret, remote_path, local_path
                ),
            )
        except YzTermError as e:
            logger.error(f"Download of {remote_path} failed: {e.message}")
            if self.on_alert:
                await self.on_alert("Download failed", e.message or "Unknown error")
            raise
        finally:
            self.download_progress = None

    def _require_connected_host(self) -> HostProfile:
        if self.selected_host is None or self.session_id is None:
            raise InvalidConfig("Not connected")
        return self.selected_host

    async def _with_progress(
        self, progress: TransferProgress, transfer: Coroutine[Any, Any, TransferResult]
    ) -> TransferResult:
        """Await a transfer while publishing simulated progress.

        The last event always has ``done`` set, whatever the outcome.
        """
        await self._emit_progress(progress)
        ticker = asyncio.create_task(self._tick_progress(progress))
        try:
            result = await transfer
            progress.percent = 100
            return result
        finally:
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass
            progress.done = True
            await self._emit_progress(progress)

    async def _tick_progress(self, progress: TransferProgress) -> None:
        while True:
            await asyncio.sleep(self._progress.tick_interval)
            progress.percent = min(progress.percent + self._progress.step, self._progress.cap)
            await self._emit_progress(progress)

    async def _emit_progress(self, progress: TransferProgress) -> None:
        if self.on_progress:
            await self.on_progress(progress)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _set_state(self, new_state: ConnectionState) -> None:
        """Update connection state and notify callback."""
        self.state = new_state
        if self.on_state_change:
            await self.on_state_change(new_state)

    async def _alert_once(self, title: str, message: str) -> None:
        """Surface a connect failure unless this attempt already did."""
        if self._alert_shown:
            return
        self._alert_shown = True
        if self.on_alert:
            await self.on_alert(title, message)

    def _write_banner(self, text: str) -> None:
        self.renderer.send({"type": "output", "data": text})

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(f"Background task failed: {exc}")
