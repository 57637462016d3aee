"""Cloud Functions entry points for the scheduled Drive poll."""
from __future__ import annotations

from functools import lru_cache

import functions_framework

from sheetrelay.config import load_config
from sheetrelay.functions import configure_logging, create_poller, handle_message
from sheetrelay.pollers.drive import SheetPoller

# Missing settings raise ConfigurationError here, when the instance loads.
config = load_config()
configure_logging(config.log_level)


@lru_cache(maxsize=1)
def get_poller() -> SheetPoller:
    return create_poller(config)


def poll_drive(message=None, context=None) -> None:
    """Pub/Sub background function: ``gcloud functions deploy --entry-point poll_drive``."""
    handle_message(get_poller(), message, context)


@functions_framework.cloud_event
def poll_drive_event(cloud_event) -> None:
    """CloudEvent variant for 2nd gen functions and Eventarc triggers."""
    handle_message(get_poller(), cloud_event)
