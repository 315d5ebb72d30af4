"""Gmail Drive Flow - Save filtered Gmail attachments to Google Drive."""

from gmail_drive_flow.core.models import (
    AttachmentDescriptor,
    FlowConfig,
    FlowProgress,
    ProcessedAttachmentRecord,
    RunResult,
    ScopedError,
)
from gmail_drive_flow.pipeline.batch import BatchPipeline
from gmail_drive_flow.pipeline.context import ExecutionContext
from gmail_drive_flow.pipeline.runner import FlowRunner

__all__ = [
    "AttachmentDescriptor",
    "BatchPipeline",
    "ExecutionContext",
    "FlowConfig",
    "FlowProgress",
    "FlowRunner",
    "ProcessedAttachmentRecord",
    "RunResult",
    "ScopedError",
]
