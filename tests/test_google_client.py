from __future__ import annotations

from unittest import mock

import pytest
from googleapiclient.errors import HttpError

from sheetrelay.clients.google import GoogleDriveClient, IdentityTokenProvider, load_credentials
from sheetrelay.pollers.drive import ExportError


def _http_error(status: int, reason: str) -> HttpError:
    return HttpError(resp=mock.Mock(status=status, reason=reason), content=b"")


def test_list_spreadsheets_follows_pages():
    service = mock.MagicMock()
    files_api = service.files.return_value
    files_api.list.return_value.execute.side_effect = [
        {"files": [{"id": "1", "name": "A"}], "nextPageToken": "p2"},
        {"files": [{"id": "2", "name": "B"}]},
    ]
    client = GoogleDriveClient(credentials=None, service=service)

    files = client.list_spreadsheets("q")

    assert [f["id"] for f in files] == ["1", "2"]
    first, second = files_api.list.call_args_list
    assert first.kwargs == {
        "q": "q",
        "fields": "nextPageToken, files(id, name, modifiedTime)",
        "corpora": "user",
        "includeItemsFromAllDrives": True,
        "supportsAllDrives": True,
    }
    assert second.kwargs["pageToken"] == "p2"


def test_get_folder_supports_shared_drives():
    service = mock.MagicMock()
    service.files.return_value.get.return_value.execute.return_value = {"id": "f", "name": "Shared"}
    client = GoogleDriveClient(credentials=None, service=service)

    assert client.get_folder("f")["name"] == "Shared"
    service.files.return_value.get.assert_called_once_with(
        fileId="f", fields="id, name, mimeType", supportsAllDrives=True
    )


def test_export_csv_decodes_bytes():
    service = mock.MagicMock()
    service.files.return_value.export.return_value.execute.return_value = "a,b\n1,2".encode("utf-8")
    client = GoogleDriveClient(credentials=None, service=service)

    assert client.export_csv("1") == "a,b\n1,2"
    service.files.return_value.export.assert_called_once_with(fileId="1", mimeType="text/csv")


def test_export_csv_maps_http_errors():
    service = mock.MagicMock()
    service.files.return_value.export.return_value.execute.side_effect = _http_error(403, "Forbidden")
    client = GoogleDriveClient(credentials=None, service=service)

    with pytest.raises(ExportError) as excinfo:
        client.export_csv("1")
    assert excinfo.value.file_id == "1"
    assert excinfo.value.status == 403


def test_load_credentials_prefers_key_file():
    with mock.patch("sheetrelay.clients.google.service_account.Credentials.from_service_account_file") as from_file:
        assert load_credentials("key.json") is from_file.return_value
    from_file.assert_called_once_with("key.json", scopes=["https://www.googleapis.com/auth/drive.readonly"])

    with mock.patch("sheetrelay.clients.google.google.auth.default", return_value=("adc", "project")) as default:
        assert load_credentials(None) == "adc"
    default.assert_called_once()


def test_identity_token_uses_audience():
    with mock.patch("sheetrelay.clients.google.id_token.fetch_id_token", return_value="tok") as fetch:
        assert IdentityTokenProvider("https://processor.example.com").get_token() == "tok"
    assert fetch.call_args.args[1] == "https://processor.example.com"
