"""Factories wiring configuration to concrete clients, and the message trigger."""
from __future__ import annotations

import logging
import sys
from typing import Any

from .checkpoint import CheckpointStore, FileCheckpointStore, GCSCheckpointStore
from .clients.google import GoogleDriveClient, IdentityTokenProvider, load_credentials
from .clients.relay import RelayClient
from .config import SheetRelayConfig, TimerLoop
from .pollers.drive import SheetPoller

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)


def create_checkpoint_store(config: SheetRelayConfig) -> CheckpointStore:
    if config.checkpoint_dir:
        return FileCheckpointStore(base_dir=config.checkpoint_dir, file_name=config.checkpoint_object)
    return GCSCheckpointStore(config.bucket_name, config.checkpoint_object)


def create_drive_client(config: SheetRelayConfig) -> GoogleDriveClient:
    credentials_path = config.mode.credentials_path if isinstance(config.mode, TimerLoop) else None
    return GoogleDriveClient(load_credentials(credentials_path))


def create_relay_client(config: SheetRelayConfig) -> RelayClient:
    token_provider = None
    if config.mode.attach_identity_token:
        token_provider = IdentityTokenProvider(audience=config.relay_url)
    return RelayClient(config.relay_url, token_provider=token_provider, timeout=config.relay_timeout_seconds)


def create_poller(config: SheetRelayConfig) -> SheetPoller:
    logger.info("Configured for %s mode, relaying to %s", config.mode.name, config.relay_url)
    return SheetPoller(
        create_drive_client(config),
        create_relay_client(config),
        create_checkpoint_store(config),
        config,
    )


def handle_message(poller: SheetPoller, message: Any = None, context: Any = None) -> None:
    """Run one poll for a scheduler message; the message itself is not inspected."""

    event_id = getattr(context, "event_id", None)
    logger.info("Scheduled poll triggered%s", f" (event {event_id})" if event_id else "")
    poller.run()


__all__ = [
    "configure_logging",
    "create_checkpoint_store",
    "create_drive_client",
    "create_poller",
    "create_relay_client",
    "handle_message",
]
