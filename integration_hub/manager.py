"""
Integration Hub Manager: the service object hosts construct and own.

Wires the registry, dispatcher, webhook router, sync orchestrator and
event log together and gives them a lifecycle:

    construct -> start() -> accept calls -> shutdown() (drain, close transport)

Usage::

    async with IntegrationManager(HubConfig.from_env()) as hub:
        await hub.register(config)
        response = await hub.call("sendgrid", "POST", "send", body=message)
"""
from __future__ import annotations
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, AsyncIterator, Callable, Iterable, Optional
import asyncio
import logging

from integration_hub.config import HubConfig
from integration_hub.dispatcher import ApiDispatcher
from integration_hub.errors import ConfigurationError, HubNotRunning, RateLimitExceeded, TransportError
from integration_hub.events import EventLog, EventSink
from integration_hub.models import (
    EventDirection,
    EventStatus,
    EventType,
    IntegrationCategory,
    IntegrationConfig,
    IntegrationEvent,
    IntegrationStatus,
    Metrics,
    SyncDirection,
    Timeframe,
    utcnow,
)
from integration_hub.registry import IntegrationRegistry
from integration_hub.sync import SyncAdapter, SyncOrchestrator, SyncOutcome
from integration_hub.transport import ApiResponse, HttpxTransport, Transport
from integration_hub.webhooks import WebhookHandler, WebhookHandlerRegistration, WebhookRouter

logger = logging.getLogger(__name__)


class HubState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class IntegrationManager:
    """External-integration dispatcher for one host process."""

    def __init__(
        self,
        config: HubConfig | None = None,
        transport: Transport | None = None,
        clock: Callable[[], datetime] = utcnow,
        event_sink: Optional[EventSink] = None,
    ):
        self.config = config or HubConfig()
        self._clock = clock
        self._owns_transport = transport is None
        self._transport = transport or HttpxTransport(timeout=self.config.request_timeout)

        self.registry = IntegrationRegistry(clock=clock)
        self.events = EventLog(self.config.event_log_capacity, sink=event_sink, clock=clock)
        self.dispatcher = ApiDispatcher(
            self.registry,
            self._transport,
            self.events,
            clock=clock,
            request_timeout=self.config.request_timeout,
        )
        self.webhooks = WebhookRouter(self.events, handler_timeout=self.config.handler_timeout)
        self.syncer = SyncOrchestrator(
            self.registry,
            self.dispatcher,
            self.events,
            clock=clock,
            sync_timeout=self.config.sync_timeout,
        )

        self._state = HubState.CREATED
        self._active = 0
        self._idle: asyncio.Event | None = None

    # --- Lifecycle ---

    @property
    def state(self) -> HubState:
        return self._state

    async def start(self) -> "IntegrationManager":
        if self._state == HubState.RUNNING:
            return self
        if self._state != HubState.CREATED:
            raise ConfigurationError(f"Cannot start an integration hub in state {self._state.value}")
        self._idle = asyncio.Event()
        self._idle.set()
        self._state = HubState.RUNNING
        logger.info("Integration hub started")
        return self

    async def shutdown(self) -> None:
        """Stop accepting calls, drain in-flight work, close the transport."""
        if self._state == HubState.STOPPED:
            return
        self._state = HubState.DRAINING

        if self._idle is not None and not self._idle.is_set():
            try:
                await asyncio.wait_for(self._idle.wait(), timeout=self.config.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Integration hub shutdown timed out with {self._active} operation(s) in flight"
                )

        if self._owns_transport:
            await self._transport.aclose()
        self._state = HubState.STOPPED
        logger.info("Integration hub stopped")

    async def __aenter__(self) -> "IntegrationManager":
        return await self.start()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    @asynccontextmanager
    async def _operation(self) -> AsyncIterator[None]:
        if self._state != HubState.RUNNING:
            raise HubNotRunning(self._state.value)
        self._active += 1
        self._idle.clear()
        try:
            yield
        finally:
            self._active -= 1
            if self._active == 0:
                self._idle.set()

    def _ensure_running(self) -> None:
        if self._state != HubState.RUNNING:
            raise HubNotRunning(self._state.value)

    # --- Registry ---

    async def register(self, config: IntegrationConfig, replace: bool = False) -> IntegrationConfig:
        """Store an integration, bind its limiter and test the connection."""
        async with self._operation():
            self.registry.add(config, replace_existing=replace)
            await self._test_connection(config.id)
            return self.registry.require(config.id)

    def update(self, integration_id: str, **changes: Any) -> IntegrationConfig:
        self._ensure_running()
        return self.registry.update(integration_id, **changes)

    def get(self, integration_id: str) -> Optional[IntegrationConfig]:
        return self.registry.get(integration_id)

    def list(self, category: IntegrationCategory | str | None = None) -> list[IntegrationConfig]:
        return self.registry.list(category)

    async def test_connection(self, integration_id: str) -> bool:
        """Probe the integration's health endpoint and set its status."""
        async with self._operation():
            return await self._test_connection(integration_id)

    async def _test_connection(self, integration_id: str) -> bool:
        config = self.registry.require(integration_id)
        url = f"{config.endpoints.base.rstrip('/')}{self.config.health_path}"

        try:
            response = await self.dispatcher.call(integration_id, "GET", url)
        except (TransportError, RateLimitExceeded) as exc:
            error = str(exc)
        else:
            if response.ok:
                self.registry.set_status(integration_id, IntegrationStatus.ACTIVE)
                return True
            error = f"HTTP {response.status_code}"

        self.registry.set_status(integration_id, IntegrationStatus.ERROR)
        self.events.record(
            integration_id,
            EventType.ERROR,
            EventDirection.OUTBOUND,
            EventStatus.FAILED,
            data={"endpoint": url},
            error=error,
        )
        logger.warning(f"Connection test failed for integration {integration_id}: {error}")
        return False

    async def enable(self, integration_id: str) -> bool:
        """Re-test a disabled integration; the test decides active or error."""
        return await self.test_connection(integration_id)

    def disable(self, integration_id: str) -> IntegrationConfig:
        self._ensure_running()
        config = self.registry.set_status(integration_id, IntegrationStatus.INACTIVE)
        logger.info(f"Disabled integration {integration_id}")
        return config

    # --- Outbound calls ---

    async def call(
        self,
        integration_id: str,
        method: str,
        endpoint: str,
        body: Any = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        async with self._operation():
            return await self.dispatcher.call(integration_id, method, endpoint, body, headers, timeout)

    # --- Webhooks ---

    def register_handler(
        self,
        integration_id: str,
        event_types: Iterable[str],
        handler: WebhookHandler,
    ) -> WebhookHandlerRegistration:
        return self.webhooks.register_handler(integration_id, event_types, handler)

    def unregister_handler(self, registration_id: str) -> bool:
        return self.webhooks.unregister_handler(registration_id)

    async def dispatch_webhook(self, integration_id: str, event_type: str, payload: Any) -> None:
        async with self._operation():
            self.registry.require(integration_id)
            await self.webhooks.dispatch(integration_id, event_type, payload)

    # --- Sync ---

    def register_sync_adapter(self, integration_id: str, adapter: SyncAdapter) -> None:
        self.syncer.register_adapter(integration_id, adapter)

    async def sync(
        self,
        integration_id: str,
        direction: SyncDirection | str = SyncDirection.PULL,
        timeout: Optional[float] = None,
    ) -> SyncOutcome:
        async with self._operation():
            return await self.syncer.sync(integration_id, direction, timeout)

    def integrations_due_for_sync(self, now: datetime | None = None) -> list[IntegrationConfig]:
        """Sync-enabled integrations whose interval has elapsed since last sync."""
        now = now or self._clock()
        due = []
        for config in self.registry.list():
            settings = config.settings
            if not settings.sync_enabled:
                continue
            if settings.last_sync is None or now - settings.last_sync >= timedelta(minutes=settings.sync_interval):
                due.append(config)
        return due

    # --- Events & metrics ---

    def query_events(self, integration_id: str | None = None, limit: int | None = None) -> list[IntegrationEvent]:
        if limit is None:
            limit = self.config.default_query_limit
        return self.events.query(integration_id, limit)

    def metrics(self, integration_id: str, timeframe: Timeframe | str = Timeframe.DAY) -> Metrics:
        self.registry.require(integration_id)
        return self.events.metrics(integration_id, timeframe)

    def summary(self) -> dict[str, int]:
        """Counters for the integrations dashboard."""
        configs = self.registry.list()
        return {
            "total": len(configs),
            "active": sum(1 for c in configs if c.status == IntegrationStatus.ACTIVE),
            "sync_enabled": sum(1 for c in configs if c.settings.sync_enabled),
            "error": sum(1 for c in configs if c.status == IntegrationStatus.ERROR),
        }
