"""Durable storage for the "last checked" timestamp."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
import logging
import os

from google.api_core.exceptions import NotFound
from google.cloud import storage

from .config import DEFAULT_CHECKPOINT_OBJECT

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""

    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class CheckpointStore(Protocol):  # pragma: no cover - protocol definition
    def read(self) -> datetime: ...

    def write(self, value: datetime) -> None: ...


class GCSCheckpointStore:
    """Checkpoint held as a plain-text object inside a Cloud Storage bucket."""

    def __init__(
        self,
        bucket_name: str,
        object_name: str = DEFAULT_CHECKPOINT_OBJECT,
        client: Any | None = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.object_name = object_name
        self._client = client
        self._blob = None

    def _get_blob(self):
        if self._blob is None:
            if self._client is None:
                self._client = storage.Client()
            self._blob = self._client.bucket(self.bucket_name).blob(self.object_name)
        return self._blob

    def read(self) -> datetime:
        """Return the stored checkpoint, or the epoch when it cannot be read."""

        try:
            contents = self._get_blob().download_as_text().strip()
        except NotFound:
            logger.warning(
                "'%s' not found in bucket '%s'. Initializing from epoch.",
                self.object_name,
                self.bucket_name,
            )
            return EPOCH
        except Exception as exc:
            logger.error("Error retrieving '%s' from GCS: %s", self.object_name, exc)
            return EPOCH

        parsed = parse_timestamp(contents)
        if parsed is None:
            logger.warning(
                "Unreadable checkpoint %r in gs://%s/%s. Initializing from epoch.",
                contents,
                self.bucket_name,
                self.object_name,
            )
            return EPOCH
        logger.info("Retrieved lastCheckedTime from GCS: %s", contents)
        return parsed

    def write(self, value: datetime) -> None:
        self._get_blob().upload_from_string(format_timestamp(value), content_type="text/plain")


@dataclass
class FileCheckpointStore:
    """Checkpoint kept in a local text file, for runs without a bucket."""

    base_dir: Path
    file_name: str = DEFAULT_CHECKPOINT_OBJECT
    _path: Path = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_dir = Path(self.base_dir)
        self._path = self.base_dir / self.file_name
        self.ensure_directory()

    @property
    def path(self) -> Path:
        return self._path

    def ensure_directory(self) -> Path:
        """Create the checkpoint directory; only a directory created here is restricted to 0o700."""

        if not self.base_dir.exists():
            self.base_dir.mkdir(parents=True)
            os.chmod(self.base_dir, 0o700)
        return self.base_dir

    def read(self) -> datetime:
        if not self.path.exists():
            logger.warning("'%s' not found. Initializing from epoch.", self.path)
            return EPOCH
        try:
            contents = self.path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.error("Error retrieving '%s': %s", self.path, exc)
            return EPOCH
        parsed = parse_timestamp(contents)
        if parsed is None:
            logger.warning("Unreadable checkpoint %r in %s. Initializing from epoch.", contents, self.path)
            return EPOCH
        return parsed

    def write(self, value: datetime) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            fh.write(format_timestamp(value))
        os.replace(tmp_path, self.path)
        os.chmod(self.path, 0o600)


__all__ = [
    "EPOCH",
    "CheckpointStore",
    "FileCheckpointStore",
    "GCSCheckpointStore",
    "format_timestamp",
    "parse_timestamp",
]
