"""Tests for GmailClient with a mocked Gmail API service."""

from __future__ import annotations

import base64
from unittest.mock import MagicMock

import pytest

from gmail_drive_flow.core.exceptions import TransientUpstreamError, UpstreamError
from gmail_drive_flow.core.gmail_client import GmailClient, GmailMessage, decode_base64url


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


@pytest.fixture
def mock_service() -> MagicMock:
    """Create a fully-mocked Gmail API Resource."""
    return MagicMock()


@pytest.fixture
def client(mock_service: MagicMock) -> GmailClient:
    return GmailClient(mock_service, user_id="me", page_size=2)


# ---------- decode_base64url ----------


class TestDecodeBase64url:
    def test_decodes_unpadded_data(self) -> None:
        assert decode_base64url(_b64(b"hello world")) == b"hello world"

    def test_empty_string(self) -> None:
        assert decode_base64url("") == b""


# ---------- search ----------


class TestSearch:
    """Tests for GmailClient.search()."""

    def test_returns_threads_for_single_page(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        mock_service.users().threads().list().execute.return_value = {
            "threads": [{"id": "t1"}, {"id": "t2"}]
        }

        threads = client.search("has:attachment", offset=0, limit=2)

        assert [t.thread_id for t in threads] == ["t1", "t2"]

    def test_paginates_and_applies_offset(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        """Offset is applied client-side across pages."""
        mock_service.users().threads().list().execute.side_effect = [
            {"threads": [{"id": "t1"}, {"id": "t2"}], "nextPageToken": "p2"},
            {"threads": [{"id": "t3"}, {"id": "t4"}], "nextPageToken": "p3"},
        ]

        threads = client.search("q", offset=1, limit=3)

        assert [t.thread_id for t in threads] == ["t2", "t3", "t4"]
        list_call = mock_service.users().threads().list
        list_call.assert_called_with(userId="me", q="q", maxResults=2, pageToken="p2")

    def test_stops_when_no_more_pages(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        mock_service.users().threads().list().execute.return_value = {"threads": [{"id": "t1"}]}

        assert [t.thread_id for t in client.search("q", limit=10)] == ["t1"]

    def test_no_results(self, client: GmailClient, mock_service: MagicMock) -> None:
        mock_service.users().threads().list().execute.return_value = {}

        assert client.search("q") == []

    def test_rejects_negative_offset(self, client: GmailClient) -> None:
        with pytest.raises(ValueError):
            client.search("q", offset=-1)

    def test_rate_limit_is_transient(self, client: GmailClient, mock_service: MagicMock) -> None:
        mock_service.users().threads().list().execute.side_effect = Exception(
            "HttpError 429: rateLimitExceeded"
        )

        with pytest.raises(TransientUpstreamError, match="search threads"):
            client.search("q")

    def test_other_errors_are_upstream_errors(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        mock_service.users().threads().list().execute.side_effect = Exception("invalid query")

        with pytest.raises(UpstreamError, match="Failed to search threads") as exc_info:
            client.search("q")

        assert not isinstance(exc_info.value, TransientUpstreamError)


# ---------- messages and attachments ----------


def _raw_message() -> dict:
    return {
        "id": "m1",
        "payload": {
            "mimeType": "multipart/mixed",
            "headers": [{"name": "Subject", "value": "Your invoice"}],
            "parts": [
                {"mimeType": "text/plain", "filename": "", "body": {"data": _b64(b"hi")}},
                {
                    "mimeType": "application/pdf",
                    "filename": "invoice.pdf",
                    "body": {"attachmentId": "att-1", "size": 1234},
                },
                {
                    "mimeType": "multipart/related",
                    "filename": "",
                    "parts": [
                        {
                            "mimeType": "image/png",
                            "filename": "logo.png",
                            "body": {"data": _b64(b"PNG"), "size": 3},
                        }
                    ],
                },
            ],
        },
    }


class TestThreadMessages:
    def test_get_messages_fetches_full_thread(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        mock_service.users().threads().list().execute.return_value = {"threads": [{"id": "t1"}]}
        mock_service.users().threads().get().execute.return_value = {
            "messages": [_raw_message(), {"id": "m2", "payload": {}}]
        }

        [thread] = client.search("q")
        messages = thread.get_messages()

        assert [m.message_id for m in messages] == ["m1", "m2"]
        mock_service.users().threads().get.assert_called_with(
            userId="me", id="t1", format="full"
        )

    def test_subject(self, client: GmailClient) -> None:
        assert GmailMessage(client, _raw_message()).subject == "Your invoice"
        assert GmailMessage(client, {"id": "x"}).subject == "(no subject)"


class TestGetAttachments:
    """Tests for GmailMessage.get_attachments() and get_attachment_data()."""

    def test_lists_attachments_without_downloading(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        attachments = GmailMessage(client, _raw_message()).get_attachments()

        assert [a.name for a in attachments] == ["invoice.pdf", "logo.png"]
        pdf, logo = attachments
        assert pdf.mime_type == "application/pdf"
        assert pdf.size_bytes == 1234
        assert pdf.attachment_id == "att-1"
        assert pdf.data == b""
        assert logo.data == b"PNG"
        assert logo.size_bytes == 3
        assert logo.attachment_id is None
        mock_service.users().messages().attachments().get().execute.assert_not_called()

    def test_downloads_server_side_data(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        mock_service.users().messages().attachments().get().execute.return_value = {
            "data": _b64(b"%PDF-1.7")
        }
        message = GmailMessage(client, _raw_message())
        pdf, logo = message.get_attachments()

        assert message.get_attachment_data(pdf) == b"%PDF-1.7"
        mock_service.users().messages().attachments().get.assert_called_with(
            userId="me", messageId="m1", id="att-1"
        )
        assert message.get_attachment_data(logo) == b"PNG"

    def test_message_without_attachments(self, client: GmailClient) -> None:
        raw = {"id": "m3", "payload": {"mimeType": "text/plain", "body": {"data": _b64(b"x")}}}

        assert GmailMessage(client, raw).get_attachments() == []

    def test_download_failure_propagates(
        self, client: GmailClient, mock_service: MagicMock
    ) -> None:
        mock_service.users().messages().attachments().get().execute.side_effect = TimeoutError(
            "read timed out"
        )
        message = GmailMessage(client, _raw_message())
        pdf, _ = message.get_attachments()

        with pytest.raises(TransientUpstreamError):
            message.get_attachment_data(pdf)
