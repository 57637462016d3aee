"""Poller implementations for data sources."""

from .drive import ExportError, RelayError, SheetPoller

__all__ = ["ExportError", "RelayError", "SheetPoller"]
