"""Batch pipeline: thread → message → attachment walk with scoped error isolation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Protocol

from gmail_drive_flow.core.exceptions import ScopedProcessingError
from gmail_drive_flow.core.filters import should_process
from gmail_drive_flow.core.models import (
    AttachmentDescriptor,
    BatchResult,
    FlowConfig,
    FlowProgress,
    MessageResult,
    ProcessedAttachmentRecord,
    RunResult,
    ScopedError,
    ThreadResult,
)
from gmail_drive_flow.pipeline.context import ExecutionContext
from gmail_drive_flow.storage.folders import FolderResolver, Storage

logger = logging.getLogger(__name__)


class MailMessage(Protocol):
    def get_attachments(self) -> Sequence[AttachmentDescriptor]: ...

    def get_attachment_data(self, attachment: AttachmentDescriptor) -> bytes: ...


class MailThread(Protocol):
    def get_messages(self) -> Sequence[MailMessage]: ...


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with milliseconds and ``Z``, with ``:`` and ``.`` made file-safe.

    Example: 2024-01-15T10:30:00.123Z -> 2024-01-15T10-30-00-123Z
    """
    moment = moment.astimezone(UTC)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def build_saved_name(flow_name: str, moment: datetime, original_name: str) -> str:
    return f"{flow_name}_{format_timestamp(moment)}_{original_name}"


class BatchPipeline:
    """Walks threads in fixed-size batches and saves admitted attachments.

    Errors are caught at the scope that raised them: an attachment failure is
    recorded by its message, a message failure by its thread, a thread failure
    by its batch and a batch failure by the run. ``run()`` always returns.
    """

    def __init__(
        self,
        context: ExecutionContext,
        storage: Storage,
        on_progress: Callable[[FlowProgress], None] | None = None,
    ) -> None:
        self._context = context
        self._folders = FolderResolver(storage, context.storage)
        self._on_progress = on_progress
        self._progress = FlowProgress()

    @property
    def progress(self) -> FlowProgress:
        return self._progress

    def run(
        self,
        threads: Sequence[MailThread],
        flow: FlowConfig,
        *,
        deadline_ms: int | None = None,
    ) -> RunResult:
        """Process every thread and return the aggregate result.

        Args:
            threads: Ordered threads to process.
            flow: Flow naming, folder and file-type policy.
            deadline_ms: Optional absolute deadline on the context clock; once
                reached, remaining threads are skipped.
        """
        threads = list(threads)
        batch_size = self._context.batch_size
        result = RunResult(threads_found=len(threads))
        starts = range(0, len(threads), batch_size)

        self._progress = FlowProgress(
            total_threads=len(threads),
            total_batches=len(starts),
            current_stage="processing",
        )
        self._notify()
        logger.info("Processing %d threads in batches of %d", len(threads), batch_size)

        for batch_index, start in enumerate(starts, start=1):
            if self._deadline_passed(deadline_ms):
                break

            batch = threads[start : start + batch_size]
            self._progress.current_batch = batch_index
            self._notify()
            logger.info("Processing batch %d (%d threads)", batch_index, len(batch))

            try:
                result.merge(self._process_batch(batch, batch_index, start, flow, deadline_ms))
            except Exception as e:
                err = ScopedProcessingError("batch", batch_index, e)
                logger.error("%s", err)
                result.errors.append(ScopedError("batch", batch_index, str(e)))
            result.batches_processed += 1

            if start + batch_size < len(threads) and not self._deadline_passed(deadline_ms):
                logger.info(
                    "Waiting %dms between batches", self._context.inter_batch_delay_ms
                )
                self._context.clock.sleep_ms(self._context.inter_batch_delay_ms)

        skipped = len(threads) - self._progress.threads_processed
        if skipped > 0 and self._deadline_passed(deadline_ms):
            result.deadline_exceeded = True
            message = f"Deadline exceeded; {skipped} of {len(threads)} threads not processed"
            logger.warning(message)
            result.errors.append(ScopedError("run", 1, message))

        self._progress.errors = len(result.errors)
        self._progress.current_stage = "complete"
        self._notify()
        logger.info(
            "Run complete: %d emails, %d attachments saved, %d errors",
            result.processed_emails, result.saved_attachments, len(result.errors),
        )
        return result

    def _process_batch(
        self,
        batch: Sequence[MailThread],
        batch_index: int,
        offset: int,
        flow: FlowConfig,
        deadline_ms: int | None,
    ) -> BatchResult:
        result = BatchResult(batch_index=batch_index)

        for position, thread in enumerate(batch, start=1):
            if self._deadline_passed(deadline_ms):
                break

            thread_index = offset + position
            try:
                result.merge(self._process_thread(thread, thread_index, flow))
            except Exception as e:
                err = ScopedProcessingError("thread", thread_index, e)
                logger.error("%s", err)
                result.errors.append(
                    ScopedError("thread", thread_index, str(e), thread_index=thread_index)
                )
            finally:
                self._progress.threads_processed += 1
                self._notify()

        return result

    def _process_thread(
        self, thread: MailThread, thread_index: int, flow: FlowConfig
    ) -> ThreadResult:
        messages = self._context.mail.call(
            thread.get_messages, f"Fetching messages of thread {thread_index}"
        )
        result = ThreadResult()

        for message_index, message in enumerate(messages, start=1):
            try:
                result.merge(self._process_message(message, thread_index, message_index, flow))
            except Exception as e:
                err = ScopedProcessingError("message", message_index, e)
                logger.error("Thread %d: %s", thread_index, err)
                result.errors.append(
                    ScopedError(
                        "message",
                        message_index,
                        str(e),
                        thread_index=thread_index,
                        message_index=message_index,
                    )
                )

        return result

    def _process_message(
        self, message: MailMessage, thread_index: int, message_index: int, flow: FlowConfig
    ) -> MessageResult:
        attachments = self._context.mail.call(
            message.get_attachments,
            f"Fetching attachments of thread {thread_index} message {message_index}",
        )
        result = MessageResult()

        for attachment_index, attachment in enumerate(attachments, start=1):
            if not should_process(attachment, flow.file_types):
                logger.debug("Skipping %s (%s)", attachment.name, attachment.mime_type)
                continue
            try:
                record = self._save_attachment(message, attachment, flow)
            except Exception as e:
                err = ScopedProcessingError("attachment", attachment_index, e)
                logger.error("Thread %d message %d: %s", thread_index, message_index, err)
                result.errors.append(
                    ScopedError(
                        "attachment",
                        attachment_index,
                        str(e),
                        thread_index=thread_index,
                        message_index=message_index,
                    )
                )
                continue

            result.saved_attachments += 1
            result.processed_attachments.append(record)
            self._progress.attachments_saved += 1

        result.processed_emails = 1
        return result

    def _save_attachment(
        self, message: MailMessage, attachment: AttachmentDescriptor, flow: FlowConfig
    ) -> ProcessedAttachmentRecord:
        data = self._context.mail.call(
            lambda: message.get_attachment_data(attachment),
            f"Downloading attachment: {attachment.name}",
        )
        saved_name = build_saved_name(flow.flow_name, self._context.clock.utcnow(), attachment.name)
        folder = self._folders.resolve_or_create(flow.drive_folder)
        stored = self._context.storage.call(
            lambda: folder.write_file(saved_name, data, attachment.mime_type),
            f"Saving attachment: {attachment.name}",
        )
        logger.info("Saved attachment %s as %s", attachment.name, saved_name)

        return ProcessedAttachmentRecord(
            original_name=attachment.name,
            saved_name=saved_name,
            size_bytes=attachment.size_bytes,
            mime_type=attachment.mime_type,
            storage_file_id=stored.id,
            storage_file_url=stored.url,
        )

    def _deadline_passed(self, deadline_ms: int | None) -> bool:
        return deadline_ms is not None and self._context.clock.now_ms() >= deadline_ms

    def _notify(self) -> None:
        """Send progress update to callback if registered."""
        if self._on_progress:
            self._on_progress(self._progress)
