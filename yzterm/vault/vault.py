"""Credential vault keyed by host id, backed by the system keyring."""

import asyncio
from typing import Optional

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, KeyringLocked, PasswordDeleteError
from loguru import logger

from ..config import config
from ..errors import AuthFailed, InvalidConfig, KeychainError
from .presence import PresenceChallenge, SystemPresence


class CredentialVault:
    """Save, fetch and delete per-host secrets.

    Reads are gated by a user-presence challenge. Secrets never appear in
    log lines or exception messages; only the host id does.
    """

    def __init__(
        self,
        service: Optional[str] = None,
        presence: Optional[PresenceChallenge] = None,
        backend: Optional[KeyringBackend] = None,
    ) -> None:
        self.service = service or config.KEYCHAIN_SERVICE
        self.presence = presence or SystemPresence()
        self._backend = backend

    @property
    def backend(self) -> KeyringBackend:
        if self._backend is None:
            self._backend = keyring.get_keyring()
        return self._backend

    async def save(self, host_id: str, secret: str) -> None:
        """Replace any stored secret for ``host_id`` with ``secret``."""
        if not host_id:
            raise InvalidConfig("Host id is required")
        if not secret:
            raise InvalidConfig("Secret must not be empty")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._save, host_id, secret)
        logger.info(f"Saved credential for host {host_id}")

    async def fetch(self, host_id: str) -> Optional[str]:
        """Return the stored secret, or None when nothing is stored.

        Raises
        ------
        UserCanceled
            If the user dismissed the user-presence prompt.
        AuthFailed
            If verification failed or the keyring is locked.
        KeychainError
            For any other backend failure.
        """
        await self.presence.verify(config.PRESENCE_PROMPT)
        loop = asyncio.get_running_loop()
        secret = await loop.run_in_executor(None, self._fetch, host_id)
        if secret is None:
            logger.debug(f"No credential stored for host {host_id}")
        return secret

    async def delete(self, host_id: str) -> None:
        """Remove the secret for ``host_id``; absent secrets are not an error."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._delete, host_id)
        logger.info(f"Deleted credential for host {host_id}")

    def _save(self, host_id: str, secret: str) -> None:
        self._delete(host_id)
        try:
            self.backend.set_password(self.service, host_id, secret)
        except KeyringError as e:
            raise KeychainError(f"Failed to save password for {host_id}: {type(e).__name__}") from e

    def _fetch(self, host_id: str) -> Optional[str]:
        try:
            return self.backend.get_password(self.service, host_id)
        except KeyringLocked as e:
            raise AuthFailed() from e
        except KeyringError as e:
            raise KeychainError(f"Failed to read password for {host_id}: {type(e).__name__}") from e

    def _delete(self, host_id: str) -> None:
        try:
            self.backend.delete_password(self.service, host_id)
        except PasswordDeleteError:
            return
        except KeyringError as e:
            raise KeychainError(f"Failed to delete password for {host_id}: {type(e).__name__}") from e
