"""HTTP client forwarding exported sheets to the processor endpoint."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import requests

from ..pollers.drive import RelayError, RelayPayload, RelayResponse


class TokenProvider(Protocol):  # pragma: no cover - protocol definition
    def get_token(self) -> str: ...


@dataclass(slots=True)
class RelayClient:
    """POST relay payloads as JSON, optionally with a bearer identity token."""

    url: str
    token_provider: TokenProvider | None = None
    timeout: int = 60

    def send(self, payload: RelayPayload) -> RelayResponse:
        headers = {"Content-Type": "application/json"}
        try:
            if self.token_provider is not None:
                headers["Authorization"] = f"Bearer {self.token_provider.get_token()}"
            response = requests.post(
                self.url,
                headers=headers,
                data=payload.encode(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise RelayError(f"POST {self.url} failed: {exc}") from exc
        return RelayResponse(status_code=response.status_code, reason=response.reason or "")


__all__ = ["RelayClient", "TokenProvider"]
