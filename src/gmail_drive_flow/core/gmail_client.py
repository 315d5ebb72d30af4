"""Gmail API client: thread search, message listing and attachment download."""

from __future__ import annotations

import base64
import logging
from collections.abc import Iterator
from typing import Any

from googleapiclient.discovery import Resource

from gmail_drive_flow.core.google_api import execute_request
from gmail_drive_flow.core.models import AttachmentDescriptor

logger = logging.getLogger(__name__)


class GmailClient:
    """Thin wrapper around the Gmail API exposing the thread/message/attachment walk.

    Calls are not retried here; callers wrap them in a ServiceGuard.
    """

    def __init__(self, service: Resource, user_id: str = "me", *, page_size: int = 100) -> None:
        self._service = service
        self._user_id = user_id
        self._page_size = page_size

    def search(self, query: str, offset: int = 0, limit: int = 10) -> list[GmailThread]:
        """Return up to ``limit`` threads matching ``query``, skipping the first ``offset``.

        Gmail pages by token only, so the offset is applied client-side.
        """
        if offset < 0 or limit < 0:
            raise ValueError("offset and limit must be non-negative")

        wanted = offset + limit
        thread_ids: list[str] = []
        page_token: str | None = None

        while len(thread_ids) < wanted:
            kwargs: dict[str, Any] = {
                "userId": self._user_id,
                "q": query,
                "maxResults": min(self._page_size, wanted - len(thread_ids)),
            }
            if page_token:
                kwargs["pageToken"] = page_token

            request = self._service.users().threads().list(**kwargs)
            response = execute_request(request, "search threads")

            threads = response.get("threads", [])
            thread_ids.extend(t["id"] for t in threads)
            logger.debug("Search page returned %d threads", len(threads))

            page_token = response.get("nextPageToken")
            if not threads or not page_token:
                break

        selected = thread_ids[offset:wanted]
        logger.info("Search %r matched %d threads", query, len(selected))
        return [GmailThread(self, thread_id) for thread_id in selected]

    def get_thread(self, thread_id: str) -> dict[str, Any]:
        request = self._service.users().threads().get(
            userId=self._user_id, id=thread_id, format="full"
        )
        return execute_request(request, f"get thread {thread_id}")

    def get_attachment_data(self, message_id: str, attachment_id: str) -> bytes:
        request = (
            self._service.users()
            .messages()
            .attachments()
            .get(userId=self._user_id, messageId=message_id, id=attachment_id)
        )
        response = execute_request(request, f"get attachment of message {message_id}")
        return decode_base64url(response.get("data", ""))


class GmailThread:
    """A search hit; messages are fetched on demand."""

    def __init__(self, client: GmailClient, thread_id: str) -> None:
        self._client = client
        self.thread_id = thread_id

    def get_messages(self) -> list[GmailMessage]:
        raw_thread = self._client.get_thread(self.thread_id)
        return [GmailMessage(self._client, raw) for raw in raw_thread.get("messages", [])]

    def __repr__(self) -> str:
        return f"GmailThread({self.thread_id!r})"


class GmailMessage:
    """A message within a thread, as returned by threads.get(format=full)."""

    def __init__(self, client: GmailClient, raw_message: dict[str, Any]) -> None:
        self._client = client
        self._raw = raw_message
        self.message_id: str = raw_message.get("id", "")

    @property
    def subject(self) -> str:
        for header in self._raw.get("payload", {}).get("headers", []):
            if header.get("name", "").lower() == "subject":
                return header.get("value", "")
        return "(no subject)"

    def get_attachments(self) -> list[AttachmentDescriptor]:
        """Describe every attachment part of the message, in MIME order.

        Nothing is downloaded here: inline parts carry their decoded bytes,
        others only their ``attachment_id``.
        """
        attachments: list[AttachmentDescriptor] = []
        for part in _iter_attachment_parts(self._raw.get("payload", {})):
            body = part.get("body", {})
            data = decode_base64url(body.get("data", ""))
            attachments.append(
                AttachmentDescriptor(
                    name=part["filename"],
                    mime_type=part.get("mimeType", "application/octet-stream"),
                    size_bytes=body.get("size", len(data)),
                    data=data,
                    attachment_id=body.get("attachmentId") or None,
                )
            )
        return attachments

    def get_attachment_data(self, attachment: AttachmentDescriptor) -> bytes:
        """Return the attachment's bytes, downloading them when held server-side."""
        if attachment.attachment_id:
            return self._client.get_attachment_data(self.message_id, attachment.attachment_id)
        return attachment.data

    def __repr__(self) -> str:
        return f"GmailMessage({self.message_id!r})"


def _iter_attachment_parts(part: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Recursively yield MIME parts that carry a filename."""
    if part.get("filename"):
        yield part
    for sub_part in part.get("parts", []):
        yield from _iter_attachment_parts(sub_part)


def decode_base64url(data: str) -> bytes:
    """Decode Gmail's base64url (RFC 4648 §5) data, tolerating missing padding."""
    if not data:
        return b""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded)
