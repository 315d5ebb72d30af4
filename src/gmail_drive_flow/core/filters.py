"""Attachment admission by declared file-type category."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from gmail_drive_flow.core.models import AttachmentDescriptor

logger = logging.getLogger(__name__)

KNOWN_CATEGORIES = frozenset({"pdf", "images", "documents"})

_DOCUMENT_EXTENSION = re.compile(r"\.(doc|docx|txt|rtf)$")


def should_process(
    attachment: AttachmentDescriptor, allowed_categories: Iterable[str] | None
) -> bool:
    """Decide whether an attachment matches any of the allowed categories.

    No categories means everything is admitted. Matching is case-insensitive
    on both filename and MIME type.

    Unrecognised category tokens admit every attachment. Existing flows rely
    on that behaviour, so it is kept and only logged.
    """
    categories = list(allowed_categories or ())
    if not categories:
        return True

    file_name = attachment.name.lower()
    mime_type = attachment.mime_type.lower()

    return any(_matches(category, file_name, mime_type) for category in categories)


def _matches(category: str, file_name: str, mime_type: str) -> bool:
    category = category.strip().lower()
    if category == "pdf":
        return file_name.endswith(".pdf") or "pdf" in mime_type
    if category == "images":
        return mime_type.startswith("image/")
    if category == "documents":
        return (
            "document" in mime_type
            or "text" in mime_type
            or _DOCUMENT_EXTENSION.search(file_name) is not None
        )

    logger.warning("Unrecognised file type category %r admits every attachment", category)
    return True
