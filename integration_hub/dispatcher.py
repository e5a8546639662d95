"""
Integration Hub API Dispatcher: authenticated outbound calls.

Pipeline for every call:
    Registry lookup -> Rate limit -> Auth headers -> Send -> Event log

Rejections by the rate limiter never reach the network and are not
logged as events. Transport failures are logged and re-raised; the
dispatcher never retries.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Optional
import logging
import time

from opentelemetry.trace import Status, StatusCode

from integration_hub.errors import RateLimitExceeded, TransportError
from integration_hub.events import EventLog
from integration_hub.models import (
    EventDirection,
    EventMetadata,
    EventStatus,
    EventType,
    IntegrationConfig,
    utcnow,
)
from integration_hub.observability import get_tracer
from integration_hub.registry import IntegrationRegistry
from integration_hub.transport import ApiResponse, Transport

logger = logging.getLogger(__name__)


def build_auth_headers(config: IntegrationConfig) -> dict[str, str]:
    """Bearer auth from the integration's credentials.

    An access token takes precedence over an API key when both are set.
    """
    headers: dict[str, str] = {}
    creds = config.credentials
    if creds.api_key:
        headers["Authorization"] = f"Bearer {creds.api_key}"
    if creds.access_token:
        headers["Authorization"] = f"Bearer {creds.access_token}"
    return headers


class ApiDispatcher:
    """Performs rate-limited, logged outbound calls for registered integrations."""

    def __init__(
        self,
        registry: IntegrationRegistry,
        transport: Transport,
        events: EventLog,
        clock: Callable[[], datetime] = utcnow,
        request_timeout: float = 30.0,
    ):
        self._registry = registry
        self._transport = transport
        self._events = events
        self._clock = clock
        self._request_timeout = request_timeout
        self._tracer = get_tracer()

    async def call(
        self,
        integration_id: str,
        method: str,
        endpoint: str,
        body: Any = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        """Send one request. Non-2xx responses are returned, not raised."""
        config = self._registry.require(integration_id)

        limiter = self._registry.limiter_for(integration_id)
        if limiter is not None and not limiter.can_make_request(self._clock().timestamp()):
            logger.warning(f"Rate limit exceeded for integration {integration_id}")
            raise RateLimitExceeded(integration_id)

        url = config.endpoints.resolve(endpoint)
        request_headers = {
            "Content-Type": "application/json",
            **build_auth_headers(config),
            **(headers or {}),
        }
        method = method.upper()
        request_data = {"method": method, "endpoint": url, "data": body}

        with self._tracer.start_as_current_span(
            "integration.call",
            attributes={
                "integration.id": integration_id,
                "http.request.method": method,
                "url.full": url,
            },
        ) as span:
            start = time.perf_counter()
            try:
                response = await self._transport.send(
                    method,
                    url,
                    request_headers,
                    body,
                    timeout if timeout is not None else self._request_timeout,
                )
            except Exception as exc:
                latency = (time.perf_counter() - start) * 1000
                message = str(exc) or type(exc).__name__
                self._events.record(
                    integration_id,
                    EventType.API_CALL,
                    EventDirection.OUTBOUND,
                    EventStatus.FAILED,
                    data=request_data,
                    error=message,
                    metadata=EventMetadata(endpoint=url, response_time_ms=latency),
                )
                logger.error(f"{method} {url} for integration {integration_id} failed after {latency:.0f}ms: {message}")
                if isinstance(exc, TransportError):
                    exc.integration_id = exc.integration_id or integration_id
                    exc.endpoint = exc.endpoint or url
                    raise
                raise TransportError(message, integration_id, url) from exc

            latency = (time.perf_counter() - start) * 1000
            span.set_attribute("http.response.status_code", response.status_code)
            if not response.ok:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))

        self._events.record(
            integration_id,
            EventType.API_CALL,
            EventDirection.OUTBOUND,
            EventStatus.SUCCESS if response.ok else EventStatus.FAILED,
            data=request_data,
            error=None if response.ok else f"HTTP {response.status_code}",
            metadata=EventMetadata(endpoint=url, http_status=response.status_code, response_time_ms=latency),
        )
        return response
