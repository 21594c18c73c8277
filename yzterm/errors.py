"""Error kinds raised by the session core.

Each error carries a stable ``code`` so that a UI layer can map failures to
messages without matching on exception text.
"""

from typing import Optional


class YzTermError(Exception):
    """Base class for all session core errors."""

    code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class SSHConnectionError(YzTermError):
    """Raised when the PTY cannot be allocated or the ssh client fails to spawn."""

    code = "SSH_FAILED"


class SessionNotFound(YzTermError):
    """Raised when an operation names a session id that is not live."""

    code = "INVALID_SESSION"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class ListFailed(YzTermError):
    """Raised when the remote listing command exits with a non-zero status."""

    code = "LIST_FAILED"


class ListError(YzTermError):
    """Raised when the remote listing command could not be run at all."""

    code = "LIST_ERROR"


class TransferFailed(YzTermError):
    """Raised when scp exits with a non-zero status."""

    code = "UPLOAD_FAILED"


class TransferError(YzTermError):
    """Raised when scp could not be run at all."""

    code = "UPLOAD_ERROR"


class UserCanceled(YzTermError):
    """Raised when the user dismisses the user-presence challenge."""

    code = "USER_CANCELED"

    def __init__(self, message: str = "User canceled verification"):
        super().__init__(message)


class AuthFailed(YzTermError):
    """Raised when the user-presence challenge fails."""

    code = "AUTH_FAILED"

    def __init__(self, message: str = "Verification failed"):
        super().__init__(message)


class KeychainError(YzTermError):
    """Raised when the credential store cannot be read or written."""

    code = "KEYCHAIN_ERROR"


class InvalidConfig(YzTermError):
    """Raised when a request is missing required fields."""

    code = "INVALID_CONFIG"
