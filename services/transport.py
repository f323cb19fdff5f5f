"""Transport boundary between the requester and the EnergyGrid API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

import httpx

from services.errors import TransportError


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: bytes


class Transport(Protocol):
    def send(self, path: str, body: bytes, headers: Mapping[str, str]) -> TransportResponse:
        """POST ``body`` to ``path``; raise ``TransportError`` if no response arrives."""
        ...


class HttpxTransport:
    """Transport backed by a synchronous ``httpx.Client``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def send(self, path: str, body: bytes, headers: Mapping[str, str]) -> TransportResponse:
        try:
            response = self._client.post(path, content=body, headers=dict(headers))
        except httpx.HTTPError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        return TransportResponse(status_code=response.status_code, body=response.content)
