"""Dataclasses for the Gmail Drive Flow domain model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FlowConfig:
    """A user-defined Gmail to Drive flow."""

    flow_name: str
    drive_folder: str
    file_types: tuple[str, ...] = field(default_factory=tuple)
    senders: str = ""
    email_filter: str | None = None
    max_threads: int | None = None


@dataclass(frozen=True)
class AttachmentDescriptor:
    """Read-only view of one attachment as supplied by the mail API.

    ``data`` holds inline bytes. When ``attachment_id`` is set the bytes live
    server-side and are fetched with the owning message's
    ``get_attachment_data()``.
    """

    name: str
    mime_type: str
    size_bytes: int
    data: bytes = field(default=b"", repr=False)
    attachment_id: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class StoredFile:
    """Handle returned by the storage API once a file is written."""

    id: str
    url: str


@dataclass(frozen=True)
class ProcessedAttachmentRecord:
    """An attachment that has been durably written to storage."""

    original_name: str
    saved_name: str
    size_bytes: int
    mime_type: str
    storage_file_id: str
    storage_file_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalName": self.original_name,
            "savedName": self.saved_name,
            "size": self.size_bytes,
            "type": self.mime_type,
            "fileId": self.storage_file_id,
            "fileUrl": self.storage_file_url,
        }


@dataclass(frozen=True)
class ScopedError:
    """An error caught and recorded at one level of the thread hierarchy.

    Indexes are 1-based. ``thread_index`` is the thread's position in the
    whole run; ``message_index`` its message's position within the thread.
    """

    scope: str
    scope_index: int
    message: str
    thread_index: int | None = None
    message_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "scope": self.scope,
            "scopeIndex": self.scope_index,
            "error": self.message,
        }
        if self.thread_index is not None:
            data["threadIndex"] = self.thread_index
        if self.message_index is not None:
            data["messageIndex"] = self.message_index
        return data


@dataclass
class ScopeResult:
    """Counts, saved records and errors aggregated for one scope."""

    processed_emails: int = 0
    saved_attachments: int = 0
    processed_attachments: list[ProcessedAttachmentRecord] = field(default_factory=list)
    errors: list[ScopedError] = field(default_factory=list)

    def merge(self, child: ScopeResult) -> None:
        """Fold a child scope's result into this one."""
        self.processed_emails += child.processed_emails
        self.saved_attachments += child.saved_attachments
        self.processed_attachments.extend(child.processed_attachments)
        self.errors.extend(child.errors)


@dataclass
class MessageResult(ScopeResult):
    pass


@dataclass
class ThreadResult(ScopeResult):
    pass


@dataclass
class BatchResult(ScopeResult):
    batch_index: int = 0


@dataclass
class RunResult(ScopeResult):
    """Aggregate of a whole pipeline run, handed to the result consumer."""

    threads_found: int = 0
    batches_processed: int = 0
    deadline_exceeded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "processedEmails": self.processed_emails,
            "savedAttachments": self.saved_attachments,
            "processedAttachments": [r.to_dict() for r in self.processed_attachments],
            "errors": [e.to_dict() for e in self.errors],
            "emailsFound": self.threads_found,
        }


@dataclass
class FlowProgress:
    """Mutable progress tracker for pipeline status reporting."""

    total_threads: int = 0
    total_batches: int = 0
    current_batch: int = 0
    threads_processed: int = 0
    attachments_saved: int = 0
    errors: int = 0
    current_stage: str = "idle"
