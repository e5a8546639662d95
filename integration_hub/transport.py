"""
Integration Hub outbound transport.

The dispatcher talks HTTP through a small protocol so hosts and tests can
swap the wire layer:
- ApiResponse: standardized response envelope
- Transport: the protocol the dispatcher depends on
- HttpxTransport: shared httpx.AsyncClient implementation
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol
import json
import time

import httpx

from integration_hub.errors import TransportError


@dataclass
class ApiResponse:
    """Standardized response to an outbound call."""
    status_code: int
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Transport backed by one long-lived httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        start = time.perf_counter()
        try:
            resp = await self._client.request(
                method=method.upper(),
                url=url,
                content=json.dumps(body, default=str) if body is not None else None,
                headers=headers,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__, endpoint=url) from exc

        latency = (time.perf_counter() - start) * 1000
        return ApiResponse(
            status_code=resp.status_code,
            data=_decode(resp),
            headers=dict(resp.headers),
            latency_ms=latency,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def _decode(resp: httpx.Response) -> Any:
    if resp.headers.get("content-type", "").startswith("application/json"):
        try:
            return resp.json()
        except ValueError:
            return resp.text
    return resp.text
