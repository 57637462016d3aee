"""Google API client implementations using service credentials."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

import google.auth
from google.auth.transport.requests import Request
from google.oauth2 import id_token, service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..pollers.drive import CSV_MIME_TYPE, ExportError

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]
LIST_FIELDS = "nextPageToken, files(id, name, modifiedTime)"


def load_credentials(credentials_path: str | None = None) -> Any:
    """Load Drive credentials from a key file, or application default credentials."""

    if credentials_path:
        return service_account.Credentials.from_service_account_file(
            credentials_path, scopes=DRIVE_SCOPES
        )
    credentials, _ = google.auth.default(scopes=DRIVE_SCOPES)
    return credentials


class GoogleDriveClient:
    """Google Drive v3 client for folder listing and CSV export."""

    def __init__(self, credentials: Any, service: Any | None = None) -> None:
        self._credentials = credentials
        self._service = service

    def _get_service(self):
        """Get or create Drive API service."""
        if self._service is None:
            self._service = build("drive", "v3", credentials=self._credentials, cache_discovery=False)
        return self._service

    def get_folder(self, folder_id: str) -> Mapping[str, object]:
        service = self._get_service()
        return service.files().get(
            fileId=folder_id,
            fields="id, name, mimeType",
            supportsAllDrives=True,
        ).execute()

    def list_spreadsheets(self, query: str) -> Iterable[Mapping[str, object]]:
        """List every file matching *query*, following pagination."""
        service = self._get_service()
        files: list[Mapping[str, object]] = []
        page_token = None

        while True:
            request_params = {
                "q": query,
                "fields": LIST_FIELDS,
                "corpora": "user",
                "includeItemsFromAllDrives": True,
                "supportsAllDrives": True,
            }
            if page_token:
                request_params["pageToken"] = page_token

            response = service.files().list(**request_params).execute()
            files.extend(response.get("files", []))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return files

    def export_csv(self, file_id: str) -> str:
        service = self._get_service()
        try:
            content = service.files().export(fileId=file_id, mimeType=CSV_MIME_TYPE).execute()
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            raise ExportError(file_id, int(status) if status is not None else None, _reason(exc)) from exc
        if isinstance(content, bytes):
            return content.decode("utf-8", errors="replace")
        return str(content)


class IdentityTokenProvider:
    """Mint OIDC identity tokens for invoking an access-restricted endpoint."""

    def __init__(self, audience: str) -> None:
        self.audience = audience

    def get_token(self) -> str:
        return id_token.fetch_id_token(Request(), self.audience)


def _reason(exc: HttpError) -> str:
    reason = getattr(exc, "reason", None) or getattr(exc.resp, "reason", None)
    return str(reason) if reason else "unknown error"


__all__ = ["GoogleDriveClient", "IdentityTokenProvider", "load_credentials"]
