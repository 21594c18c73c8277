from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
import uuid

from .errors import InvalidConfig


class FileKind(Enum):
    """Kind of a remote directory entry."""

    DIRECTORY = "directory"
    FILE = "file"
    LINK = "link"

    @classmethod
    def from_permissions(cls, permissions: str) -> "FileKind":
        if permissions.startswith("d"):
            return cls.DIRECTORY
        if permissions.startswith("l"):
            return cls.LINK
        return cls.FILE


class ConnectionState(Enum):
    """State of the controller's current target."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TransferDirection(Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"


@dataclass
class HostProfile:
    """A saved remote host. The secret itself lives only in the vault."""

    name: str = ""
    address: str = ""
    username: str = ""
    port: int = 22
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    secret_ref: Optional[str] = None

    def validate(self) -> None:
        missing = [
            label
            for label, value in (
                ("name", self.name),
                ("address", self.address),
                ("username", self.username),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise InvalidConfig(f"Missing required host fields: {', '.join(missing)}")
        if not 0 < self.port <= 65535:
            raise InvalidConfig(f"Port out of range: {self.port}")

    @property
    def destination(self) -> str:
        """``user@address`` as passed to the ssh client."""
        return f"{self.username}@{self.address}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "port": self.port,
            "username": self.username,
            "secret_ref": self.secret_ref,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HostProfile":
        # Older records may still carry a "password" key; it is never read back.
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            name=data.get("name", ""),
            address=data.get("address") or data.get("hostname", ""),
            port=int(data.get("port") or 22),
            username=data.get("username", ""),
            secret_ref=data.get("secret_ref"),
        )


@dataclass
class FileEntry:
    """One parsed line of a remote ``ls -la`` listing."""

    name: str
    kind: FileKind
    size: int = 0
    permissions: str = ""

    @property
    def is_directory(self) -> bool:
        return self.kind is FileKind.DIRECTORY

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind.value,
            "size": self.size,
            "permissions": self.permissions,
        }


@dataclass
class TransferProgress:
    file_name: str
    direction: TransferDirection
    percent: int = 0
    done: bool = False


@dataclass
class TransferResult:
    """Outcome of a completed scp invocation."""

    success: bool
    local_path: str
    remote_path: str
    message: str = ""
    finished_at: datetime = field(default_factory=datetime.now)
