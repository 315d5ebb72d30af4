"""Idempotent folder path resolution against the storage API."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from gmail_drive_flow.core.models import StoredFile
from gmail_drive_flow.resilience.guard import ServiceGuard

logger = logging.getLogger(__name__)


class Folder(Protocol):
    def list_children_by_name(self, name: str) -> list[Any]: ...

    def create_child(self, name: str) -> Any: ...

    def write_file(self, name: str, data: bytes, mime_type: str = ...) -> StoredFile: ...


class Storage(Protocol):
    def get_root_folder(self) -> Folder: ...


def split_path(path: str) -> list[str]:
    """Split a ``/``-delimited path into its non-blank segments."""
    return [part for part in path.split("/") if part.strip()]


class FolderResolver:
    """Get-or-create a folder path, one segment at a time from the root.

    A segment is only created after listing the parent shows no child with
    that name, so a retried or repeated call reuses folders made earlier.
    This relies on the storage API being read-after-write consistent; two
    processes creating the same missing segment at once can still produce
    duplicate folders.
    """

    def __init__(self, storage: Storage, guard: ServiceGuard) -> None:
        self._storage = storage
        self._guard = guard

    def resolve_or_create(self, path: str) -> Folder:
        """Return the folder at ``path``, creating missing segments."""
        return self._guard.call(
            lambda: self._walk(split_path(path)),
            f"Creating/accessing folder: {path}",
        )

    def _walk(self, segments: list[str]) -> Folder:
        current = self._storage.get_root_folder()
        for name in segments:
            existing = current.list_children_by_name(name)
            if existing:
                current = existing[0]
            else:
                logger.info("Folder segment %r missing, creating it", name)
                current = current.create_child(name)
        return current
