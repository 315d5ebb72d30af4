"""Shared fixtures and in-memory fakes for Gmail Drive Flow tests."""

from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from gmail_drive_flow.config.settings import GmailDriveFlowSettings
from gmail_drive_flow.core.clock import Clock
from gmail_drive_flow.core.models import AttachmentDescriptor, FlowConfig, StoredFile
from gmail_drive_flow.pipeline.context import ExecutionContext

EPOCH = datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC)


class FakeClock(Clock):
    """Simulated clock: sleeping advances time instantly and is recorded."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now = start_ms
        self.sleeps: list[int] = []

    def now_ms(self) -> int:
        return self.now

    def sleep_ms(self, ms: int) -> None:
        self.sleeps.append(ms)
        self.now += max(ms, 0)

    def advance(self, ms: int) -> None:
        self.now += ms

    def utcnow(self) -> datetime:
        return EPOCH + timedelta(milliseconds=self.now)


class FakeMessage:
    def __init__(
        self,
        attachments: list[AttachmentDescriptor] | None = None,
        error: Exception | None = None,
        download_errors: dict[str, Exception] | None = None,
    ) -> None:
        self.attachments = attachments or []
        self.error = error
        self.download_errors = download_errors or {}
        self.calls = 0
        self.downloads: list[str] = []

    def get_attachments(self) -> list[AttachmentDescriptor]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.attachments)

    def get_attachment_data(self, attachment: AttachmentDescriptor) -> bytes:
        self.downloads.append(attachment.name)
        if attachment.name in self.download_errors:
            raise self.download_errors[attachment.name]
        return attachment.data


class FakeThread:
    def __init__(self, messages: list[FakeMessage], error: Exception | None = None) -> None:
        self.messages = messages
        self.error = error

    def get_messages(self) -> list[FakeMessage]:
        if self.error:
            raise self.error
        return list(self.messages)


class FakeFolder:
    """In-memory folder tree with read-after-write consistency."""

    _ids = itertools.count(1)

    def __init__(self, store: FakeStorage, name: str) -> None:
        self.store = store
        self.name = name
        self.id = f"folder-{next(self._ids)}"
        self.children: list[FakeFolder] = []
        self.files: dict[str, bytes] = {}

    def list_children_by_name(self, name: str) -> list[FakeFolder]:
        self.store.lookups += 1
        return [c for c in self.children if c.name == name]

    def create_child(self, name: str) -> FakeFolder:
        self.store.creations += 1
        child = FakeFolder(self.store, name)
        self.children.append(child)
        return child

    def write_file(self, name: str, data: bytes, mime_type: str = "") -> StoredFile:
        if self.store.write_errors:
            raise self.store.write_errors.pop(0)
        self.files[name] = data
        file_id = f"file-{len(self.store.written) + 1}"
        self.store.written.append((self, name))
        return StoredFile(id=file_id, url=f"https://drive.example/{file_id}")


class FakeStorage:
    def __init__(self) -> None:
        self.lookups = 0
        self.creations = 0
        self.written: list[tuple[FakeFolder, str]] = []
        self.write_errors: list[Exception] = []
        self.root = FakeFolder(self, "root")

    def get_root_folder(self) -> FakeFolder:
        return self.root


def make_attachment(
    name: str = "invoice.pdf", mime_type: str = "application/pdf", data: bytes = b"%PDF"
) -> AttachmentDescriptor:
    return AttachmentDescriptor(name=name, mime_type=mime_type, size_bytes=len(data), data=data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def settings(tmp_path: Path) -> GmailDriveFlowSettings:
    """Settings with small quotas and pointing at temporary paths."""
    return GmailDriveFlowSettings(
        credentials_path=tmp_path / "creds" / "client_secret.json",
        token_path=tmp_path / "creds" / "token.json",
        max_retries=3,
        base_delay_ms=1000,
        max_delay_ms=30000,
        exponential_backoff=True,
        gmail_calls_per_minute=250,
        drive_calls_per_minute=1000,
        batch_size=2,
        inter_batch_delay_ms=2000,
        circuit_failure_threshold=5,
        circuit_reset_timeout_ms=60000,
    )


@pytest.fixture
def context(settings: GmailDriveFlowSettings, clock: FakeClock) -> ExecutionContext:
    return ExecutionContext.from_settings(settings, clock)


@pytest.fixture
def flow() -> FlowConfig:
    return FlowConfig(flow_name="Invoices", drive_folder="Mail/Invoices")
