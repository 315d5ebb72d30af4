"""Google Drive storage: folder lookup/creation and file upload."""

from __future__ import annotations

import io
import logging

from googleapiclient.discovery import Resource
from googleapiclient.http import MediaIoBaseUpload

from gmail_drive_flow.core.google_api import execute_request
from gmail_drive_flow.core.models import StoredFile

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def _escape_query_value(value: str) -> str:
    """Escape a string literal for the Drive files.list query language."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveStorage:
    """Entry point to the Drive API; hands out folder handles."""

    def __init__(self, service: Resource) -> None:
        self._service = service

    def get_root_folder(self) -> DriveFolder:
        return DriveFolder(self._service, "root", "My Drive")


class DriveFolder:
    """A Drive folder identified by its file ID."""

    def __init__(self, service: Resource, folder_id: str, name: str = "") -> None:
        self._service = service
        self.id = folder_id
        self.name = name

    def list_children_by_name(self, name: str) -> list[DriveFolder]:
        """Child folders with exactly ``name``, oldest first."""
        query = (
            f"name = '{_escape_query_value(name)}' and "
            f"'{self.id}' in parents and "
            f"mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        )
        request = self._service.files().list(
            q=query,
            spaces="drive",
            fields="files(id, name)",
            orderBy="createdTime",
        )
        response = execute_request(request, f"list folder {name!r}")
        return [
            DriveFolder(self._service, f["id"], f.get("name", name))
            for f in response.get("files", [])
        ]

    def create_child(self, name: str) -> DriveFolder:
        metadata = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [self.id]}
        request = self._service.files().create(body=metadata, fields="id, name")
        response = execute_request(request, f"create folder {name!r}")
        logger.info("Created Drive folder %r (%s) under %s", name, response["id"], self.id)
        return DriveFolder(self._service, response["id"], response.get("name", name))

    def write_file(
        self, name: str, data: bytes, mime_type: str = "application/octet-stream"
    ) -> StoredFile:
        """Upload ``data`` as a new file in this folder."""
        metadata = {"name": name, "parents": [self.id]}
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)
        request = self._service.files().create(
            body=metadata, media_body=media, fields="id, webViewLink"
        )
        response = execute_request(request, f"upload file {name!r}")
        logger.debug("Uploaded %s to folder %s", name, self.id)
        return StoredFile(id=response["id"], url=response.get("webViewLink", ""))

    def __repr__(self) -> str:
        return f"DriveFolder({self.id!r}, {self.name!r})"
