"""sheetrelay: relay modified Google Sheets from a Drive folder to a processor endpoint."""

from .checkpoint import FileCheckpointStore, GCSCheckpointStore
from .config import ConfigurationError, ScheduledTrigger, SheetRelayConfig, TimerLoop, load_config
from .pollers.drive import SheetPoller

__all__ = [
    "ConfigurationError",
    "FileCheckpointStore",
    "GCSCheckpointStore",
    "ScheduledTrigger",
    "SheetPoller",
    "SheetRelayConfig",
    "TimerLoop",
    "load_config",
]
