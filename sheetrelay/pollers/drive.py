from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, Protocol
import json
import logging

from ..checkpoint import CheckpointStore, format_timestamp
from ..config import SheetRelayConfig

logger = logging.getLogger(__name__)

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
CSV_MIME_TYPE = "text/csv"


class ExportError(Exception):
    """Raised when a document cannot be exported as CSV."""

    def __init__(self, file_id: str, status: int | None = None, reason: str | None = None) -> None:
        self.file_id = file_id
        self.status = status
        self.reason = reason
        super().__init__(f"Export of {file_id} failed: {reason or 'unknown error'} (Status: {status})")


class RelayError(Exception):
    """Raised when the relay request could not be delivered at all."""


@dataclass(slots=True)
class SheetFile:
    id: str
    name: str
    modified_time: str | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, object]) -> "SheetFile":
        modified = data.get("modifiedTime")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            modified_time=modified if isinstance(modified, str) else None,
        )


@dataclass(slots=True)
class RelayPayload:
    file_id: str
    file_name: str
    csv_content: str

    def to_json(self) -> dict[str, str]:
        return {
            "fileId": self.file_id,
            "fileName": self.file_name,
            "csvContent": self.csv_content,
        }

    def encode(self) -> bytes:
        return json.dumps(self.to_json(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(slots=True)
class RelayResponse:
    status_code: int
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(slots=True)
class PollSummary:
    checkpoint_before: datetime
    checkpoint_after: datetime | None = None
    matched: int = 0
    exported: int = 0
    relayed: int = 0
    export_failures: list[str] = field(default_factory=list)
    relay_failures: list[str] = field(default_factory=list)


class DriveClient(Protocol):  # pragma: no cover - protocol definition
    def get_folder(self, folder_id: str) -> Mapping[str, object]: ...

    def list_spreadsheets(self, query: str) -> Iterable[Mapping[str, object]]: ...

    def export_csv(self, file_id: str) -> str: ...


class RelaySink(Protocol):  # pragma: no cover - protocol definition
    def send(self, payload: RelayPayload) -> RelayResponse: ...


def build_query(folder_id: str, checkpoint: str) -> str:
    """Return the Drive ``files.list`` filter for spreadsheets modified after *checkpoint*."""

    return (
        f'"{folder_id}" in parents'
        f" and mimeType = '{SPREADSHEET_MIME_TYPE}'"
        " and trashed = false"
        f" and modifiedTime > '{checkpoint}'"
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SheetPoller:
    """Relay Google Sheets modified since the last checkpoint to the processor."""

    def __init__(
        self,
        drive_client: DriveClient,
        relay: RelaySink,
        checkpoint_store: CheckpointStore,
        config: SheetRelayConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._drive = drive_client
        self._relay = relay
        self._checkpoints = checkpoint_store
        self._config = config
        self._clock = clock
        self.last_summary: PollSummary | None = None

    def run(self) -> None:
        logger.info("Polling started...")
        checkpoint = self._checkpoints.read()
        summary = PollSummary(checkpoint_before=checkpoint)
        self.last_summary = summary
        query = build_query(self._config.folder_id, format_timestamp(checkpoint))

        try:
            folder = self._drive.get_folder(self._config.folder_id)
            logger.info('Polling folder: "%s" (ID: %s)', folder.get("name"), folder.get("id"))

            files = [SheetFile.from_api(item) for item in self._drive.list_spreadsheets(query)]
            summary.matched = len(files)
            if not files:
                logger.info("No new Google Sheets found.")
                return

            logger.info("Found %d new or modified Google Sheet(s).", len(files))
            for sheet in files:
                self._relay_file(sheet, summary)

            advanced = max(self._clock(), checkpoint)
            self._checkpoints.write(advanced)
            summary.checkpoint_after = advanced
            logger.info("Updated lastCheckedTime to: %s", format_timestamp(advanced))
        except Exception:
            logger.exception("Polling error")
            raise
        finally:
            logger.info(
                "Polling finished: matched=%d exported=%d relayed=%d export_failures=%d relay_failures=%d",
                summary.matched,
                summary.exported,
                summary.relayed,
                len(summary.export_failures),
                len(summary.relay_failures),
            )

    def _relay_file(self, sheet: SheetFile, summary: PollSummary) -> None:
        logger.info("Exporting & triggering processor for: %s", sheet.name)
        try:
            csv_text = self._drive.export_csv(sheet.id)
        except ExportError as exc:
            logger.error(
                "Failed to export file %s: %s (Status: %s)", sheet.name, exc.reason, exc.status
            )
            summary.export_failures.append(sheet.id)
            return
        summary.exported += 1

        payload = RelayPayload(file_id=sheet.id, file_name=sheet.name, csv_content=csv_text)
        try:
            response = self._relay.send(payload)
        except RelayError as exc:
            logger.error("Failed to send '%s' to processor: %s", sheet.name, exc)
            summary.relay_failures.append(sheet.id)
            return

        if not response.ok:
            logger.error(
                "Processor rejected '%s': %s (Status: %s)", sheet.name, response.reason, response.status_code
            )
            summary.relay_failures.append(sheet.id)
            return
        summary.relayed += 1
        logger.info("Successfully sent '%s' to processor.", sheet.name)


__all__ = [
    "DriveClient",
    "ExportError",
    "PollSummary",
    "RelayError",
    "RelayPayload",
    "RelayResponse",
    "RelaySink",
    "SheetFile",
    "SheetPoller",
    "build_query",
]
