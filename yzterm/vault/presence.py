"""User-presence challenges that gate credential retrieval."""

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from loguru import logger

from ..errors import AuthFailed, UserCanceled

PromptResult = Optional[bool]
PromptCallback = Callable[[str], Union[PromptResult, Awaitable[PromptResult]]]


class PresenceChallenge(ABC):
    """Confirms that the user is present before a secret is released."""

    @abstractmethod
    async def verify(self, reason: str) -> None:
        """Return normally when verified.

        Raises
        ------
        UserCanceled
            If the user dismissed the prompt.
        AuthFailed
            If verification did not succeed.
        """


class SystemPresence(PresenceChallenge):
    """Defers to the credential backend's own OS access policy.

    Backends such as the macOS Keychain prompt for biometrics or the device
    passcode themselves when an item is read, so there is nothing to do here.
    """

    async def verify(self, reason: str) -> None:
        return None


class CallbackPresence(PresenceChallenge):
    """Runs a prompt supplied by the UI.

    The callback receives the prompt text and returns True (verified), False
    (failed) or None (canceled). Blocking callbacks run in a worker thread;
    coroutine functions are awaited directly.
    """

    def __init__(self, prompt: PromptCallback) -> None:
        self.prompt = prompt

    async def verify(self, reason: str) -> None:
        if inspect.iscoroutinefunction(self.prompt):
            result = await self.prompt(reason)
        else:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(None, self.prompt, reason)
            if inspect.isawaitable(result):
                result = await result

        if result is None:
            logger.info("User-presence challenge canceled")
            raise UserCanceled()
        if not result:
            logger.warning("User-presence challenge failed")
            raise AuthFailed()
