"""Client implementations for external services."""

from .google import GoogleDriveClient, IdentityTokenProvider, load_credentials
from .relay import RelayClient

__all__ = ["GoogleDriveClient", "IdentityTokenProvider", "RelayClient", "load_credentials"]
