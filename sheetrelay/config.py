"""Configuration utilities for sheetrelay."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Union
import os


DEFAULT_DOTENV_PATH = Path(".env")
DEFAULT_CHECKPOINT_OBJECT = "last_checked_time.txt"
DEFAULT_POLL_INTERVAL_SECONDS = 30
DEFAULT_RELAY_TIMEOUT_SECONDS = 60

MODE_SCHEDULED = "scheduled"
MODE_TIMER = "timer"

# Cloud Functions sets FUNCTION_NAME, Cloud Run sets K_SERVICE.
CLOUD_ENV_MARKERS = ("FUNCTION_NAME", "K_SERVICE")


class ConfigurationError(ValueError):
    """Raised when a required setting is missing or malformed."""


@dataclass(frozen=True)
class ScheduledTrigger:
    """Managed cloud workload invoked once per scheduler message."""

    relay_url: str
    attach_identity_token: bool = True

    name = MODE_SCHEDULED


@dataclass(frozen=True)
class TimerLoop:
    """Local/manual process polling on a fixed interval."""

    relay_url: str
    interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    credentials_path: str | None = None
    attach_identity_token: bool = False

    name = MODE_TIMER


ExecutionMode = Union[ScheduledTrigger, TimerLoop]


@dataclass(frozen=True)
class SheetRelayConfig:
    """Process-wide settings, built once at startup and passed to the poller."""

    folder_id: str
    mode: ExecutionMode
    bucket_name: str | None = None
    checkpoint_object: str = DEFAULT_CHECKPOINT_OBJECT
    checkpoint_dir: str | None = None
    relay_timeout_seconds: int = DEFAULT_RELAY_TIMEOUT_SECONDS
    log_level: str = "INFO"

    @property
    def relay_url(self) -> str:
        return self.mode.relay_url

    @property
    def is_scheduled(self) -> bool:
        return isinstance(self.mode, ScheduledTrigger)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "SheetRelayConfig":
        """Create a configuration instance from an environment-style mapping."""

        def get_str(key: str) -> str | None:
            raw = values.get(key)
            if raw is None or raw.strip() == "":
                return None
            return raw.strip()

        def get_int(key: str, default: int) -> int:
            raw = values.get(key)
            if raw is None or raw.strip() == "":
                return default
            try:
                value = int(raw)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid integer for {key}: {raw!r}") from exc
            if value <= 0:
                raise ConfigurationError(f"{key} must be positive, got {value}")
            return value

        folder_id = get_str("SHARED_FOLDER_ID")
        if not folder_id:
            raise ConfigurationError("SHARED_FOLDER_ID environment variable is not set.")

        mode_name = _select_mode(values)
        processor_url = get_str("PROCESSOR_FUNCTION_URL")
        mode: ExecutionMode
        if mode_name == MODE_SCHEDULED:
            if not processor_url:
                raise ConfigurationError("PROCESSOR_FUNCTION_URL environment variable is not set.")
            mode = ScheduledTrigger(relay_url=processor_url)
        else:
            relay_url = get_str("LOCAL_URL") or processor_url
            if not relay_url:
                raise ConfigurationError(
                    "PROCESSOR_FUNCTION_URL environment variable is not set (or LOCAL_URL for local runs)."
                )
            mode = TimerLoop(
                relay_url=relay_url,
                interval_seconds=get_int("POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS),
                credentials_path=get_str("CREDENTIALS_PATH"),
            )

        bucket_name = get_str("ASSETS_BUCKET_NAME")
        checkpoint_dir = get_str("CHECKPOINT_DIR")
        if not bucket_name and not checkpoint_dir:
            raise ConfigurationError("ASSETS_BUCKET_NAME environment variable is not set.")

        return cls(
            folder_id=folder_id,
            mode=mode,
            bucket_name=bucket_name,
            checkpoint_object=get_str("CHECKPOINT_OBJECT") or DEFAULT_CHECKPOINT_OBJECT,
            checkpoint_dir=checkpoint_dir,
            relay_timeout_seconds=get_int("RELAY_TIMEOUT_SECONDS", DEFAULT_RELAY_TIMEOUT_SECONDS),
            log_level=(get_str("LOG_LEVEL") or "INFO").upper(),
        )


def _select_mode(values: Mapping[str, str]) -> str:
    override = (values.get("SHEETRELAY_MODE") or "").strip().lower()
    if override:
        if override not in (MODE_SCHEDULED, MODE_TIMER):
            raise ConfigurationError(
                f"SHEETRELAY_MODE must be '{MODE_SCHEDULED}' or '{MODE_TIMER}', got {override!r}"
            )
        return override
    if any(values.get(marker) for marker in CLOUD_ENV_MARKERS):
        return MODE_SCHEDULED
    return MODE_TIMER


def _parse_dotenv(path: Path) -> Dict[str, str]:
    """Parse a minimal .env file into a dictionary."""

    data: Dict[str, str] = {}
    if not path.exists():
        return data

    for line in path.read_text().splitlines():
        striped = line.strip()
        if not striped or striped.startswith("#"):
            continue
        if "=" not in striped:
            continue
        key, value = striped.split("=", 1)
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def load_config(
    *,
    dotenv_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SheetRelayConfig:
    """Load configuration from an optional .env file overridden by the environment."""

    values: Dict[str, str] = {}
    if dotenv_path is not None:
        values.update(_parse_dotenv(dotenv_path))
    elif DEFAULT_DOTENV_PATH.exists():
        values.update(_parse_dotenv(DEFAULT_DOTENV_PATH))

    env_mapping = os.environ if environ is None else environ
    values.update(env_mapping)
    return SheetRelayConfig.from_mapping(values)


__all__ = [
    "ConfigurationError",
    "ExecutionMode",
    "ScheduledTrigger",
    "SheetRelayConfig",
    "TimerLoop",
    "load_config",
]
