"""Credential vault and user-presence challenges."""

from .presence import CallbackPresence, PresenceChallenge, SystemPresence
from .vault import CredentialVault

__all__ = [
    "CallbackPresence",
    "CredentialVault",
    "PresenceChallenge",
    "SystemPresence",
]
