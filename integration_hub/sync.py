"""
Integration Hub Sync Orchestrator: pull/push data exchange.

Runs provider-specific sync adapters for an integration:
- pull, push or bidirectional (pull then push)
- At most one sync in flight per integration
- Bounded by a timeout; task cancellation is never swallowed
- Failures are recorded in the event log and never raised
"""
from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol
import asyncio
import logging
import threading

from integration_hub.dispatcher import ApiDispatcher
from integration_hub.errors import ConfigurationError, SyncError
from integration_hub.events import EventLog
from integration_hub.models import (
    EventDirection,
    EventStatus,
    EventType,
    IntegrationConfig,
    SyncDirection,
    utcnow,
)
from integration_hub.observability import get_tracer
from integration_hub.registry import IntegrationRegistry

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    DISABLED = "disabled"  # settings.sync_enabled is off
    SKIPPED = "skipped"    # another sync for the same integration is running


class SyncAdapter(Protocol):
    """Provider-specific pull and push steps."""

    async def pull(self, integration: IntegrationConfig, dispatcher: ApiDispatcher) -> None: ...

    async def push(self, integration: IntegrationConfig, dispatcher: ApiDispatcher) -> None: ...


class LoggingSyncAdapter:
    """Default adapter for integrations without a provider implementation."""

    async def pull(self, integration: IntegrationConfig, dispatcher: ApiDispatcher) -> None:
        logger.info(f"Pulling data from integration {integration.id}")

    async def push(self, integration: IntegrationConfig, dispatcher: ApiDispatcher) -> None:
        logger.info(f"Pushing data to integration {integration.id}")


class SyncOrchestrator:
    """Triggers data exchange for registered integrations."""

    def __init__(
        self,
        registry: IntegrationRegistry,
        dispatcher: ApiDispatcher,
        events: EventLog,
        clock: Callable[[], datetime] = utcnow,
        sync_timeout: float = 300.0,
    ):
        self._registry = registry
        self._dispatcher = dispatcher
        self._events = events
        self._clock = clock
        self._sync_timeout = sync_timeout
        self._adapters: dict[str, SyncAdapter] = {}
        self._default_adapter: SyncAdapter = LoggingSyncAdapter()
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()
        self._tracer = get_tracer()

    def register_adapter(self, integration_id: str, adapter: SyncAdapter) -> None:
        self._adapters[integration_id] = adapter

    def adapter_for(self, integration_id: str) -> SyncAdapter:
        return self._adapters.get(integration_id, self._default_adapter)

    def is_syncing(self, integration_id: str) -> bool:
        return integration_id in self._in_flight

    def _reserve(self, integration_id: str) -> bool:
        with self._lock:
            if integration_id in self._in_flight:
                return False
            self._in_flight.add(integration_id)
            return True

    def _release(self, integration_id: str) -> None:
        with self._lock:
            self._in_flight.discard(integration_id)

    async def sync(
        self,
        integration_id: str,
        direction: SyncDirection | str = SyncDirection.PULL,
        timeout: Optional[float] = None,
    ) -> SyncOutcome:
        """Run one sync. Step failures are logged as events, never raised."""
        config = self._registry.require(integration_id)
        try:
            direction = SyncDirection(direction)
        except ValueError:
            raise ConfigurationError(f"Unknown sync direction: {direction!r}") from None

        if not config.settings.sync_enabled:
            logger.debug(f"Sync disabled for integration {integration_id}")
            return SyncOutcome.DISABLED

        if not self._reserve(integration_id):
            logger.warning(f"Sync already in progress for integration {integration_id}, skipping")
            return SyncOutcome.SKIPPED

        try:
            return await self._run(config, direction, timeout)
        finally:
            self._release(integration_id)

    async def _run(
        self,
        config: IntegrationConfig,
        direction: SyncDirection,
        timeout: Optional[float],
    ) -> SyncOutcome:
        timeout = timeout if timeout is not None else self._sync_timeout
        data = {"direction": direction.value}

        with self._tracer.start_as_current_span(
            "integration.sync",
            attributes={"integration.id": config.id, "sync.direction": direction.value},
        ) as span:
            try:
                await asyncio.wait_for(self._steps(config, direction), timeout=timeout)
            except asyncio.TimeoutError:
                error = SyncError(config.id, direction.value, TimeoutError(f"Sync timed out after {timeout}s"))
            except Exception as exc:
                error = SyncError(config.id, direction.value, exc)
            else:
                self._registry.mark_synced(config.id, self._clock())
                self._events.record(
                    config.id,
                    EventType.SYNC,
                    EventDirection.OUTBOUND,
                    EventStatus.SUCCESS,
                    data=data,
                )
                logger.info(f"Synced integration {config.id} ({direction.value})")
                return SyncOutcome.COMPLETED

            span.set_attribute("sync.error", str(error))
            self._events.record(
                config.id,
                EventType.SYNC,
                EventDirection.OUTBOUND,
                EventStatus.FAILED,
                data=data,
                error=str(error),
            )
            logger.warning(f"Sync of integration {config.id} ({direction.value}) failed: {error}")
            return SyncOutcome.FAILED

    async def _steps(self, config: IntegrationConfig, direction: SyncDirection) -> None:
        adapter = self.adapter_for(config.id)
        if direction in (SyncDirection.PULL, SyncDirection.BIDIRECTIONAL):
            await adapter.pull(config, self._dispatcher)
        if direction in (SyncDirection.PUSH, SyncDirection.BIDIRECTIONAL):
            await adapter.push(config, self._dispatcher)
