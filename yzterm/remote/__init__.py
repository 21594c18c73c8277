"""One-shot remote invocations: directory listing and file transfer."""

from .listing import DirectoryEnumerator, child_path, parent_path, parse_listing
from .transfer import TransferRunner, remote_join

__all__ = [
    "DirectoryEnumerator",
    "TransferRunner",
    "child_path",
    "parent_path",
    "parse_listing",
    "remote_join",
]
