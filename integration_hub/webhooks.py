"""
Integration Hub Webhook Router: inbound event fan-out.

Routes provider-initiated events to registered handlers:
- Handlers keyed by integration id and a set of event types
- Concurrent fan-out, each handler bounded by a timeout
- Each handler gets its own copy of the payload
- Per-handler outcome recorded in the event log
- Handler failures are absorbed, never raised to the caller
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Union
import asyncio
import copy
import inspect
import logging
import threading
import uuid

from integration_hub.errors import HandlerError
from integration_hub.events import EventLog
from integration_hub.models import (
    EventDirection,
    EventMetadata,
    EventStatus,
    EventType,
    utcnow,
)

logger = logging.getLogger(__name__)

WebhookHandler = Callable[[Any], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class WebhookHandlerRegistration:
    """A handler subscribed to some event types of one integration."""
    integration_id: str
    event_types: frozenset[str]
    handler: WebhookHandler
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def matches(self, integration_id: str, event_type: str) -> bool:
        return self.integration_id == integration_id and event_type in self.event_types

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "integration_id": self.integration_id,
            "event_types": sorted(self.event_types),
            "handler": getattr(self.handler, "__qualname__", type(self.handler).__name__),
            "created_at": self.created_at.isoformat(),
        }


class WebhookRouter:
    """Dispatches inbound webhook events to registered handlers."""

    def __init__(self, events: EventLog, handler_timeout: float = 30.0):
        self._events = events
        self._handler_timeout = handler_timeout
        self._registrations: tuple[WebhookHandlerRegistration, ...] = ()
        self._lock = threading.Lock()

    def register_handler(
        self,
        integration_id: str,
        event_types: Iterable[str],
        handler: WebhookHandler,
    ) -> WebhookHandlerRegistration:
        """Subscribe a handler. Returns the registration (keep its id to unregister)."""
        if isinstance(event_types, str):
            event_types = [event_types]
        registration = WebhookHandlerRegistration(
            integration_id=integration_id,
            event_types=frozenset(event_types),
            handler=handler,
        )
        with self._lock:
            self._registrations = self._registrations + (registration,)
        return registration

    def unregister_handler(self, registration_id: str) -> bool:
        with self._lock:
            kept = tuple(r for r in self._registrations if r.id != registration_id)
            removed = len(kept) != len(self._registrations)
            self._registrations = kept
        return removed

    def list_handlers(self, integration_id: str | None = None) -> list[WebhookHandlerRegistration]:
        regs = list(self._registrations)
        if integration_id:
            regs = [r for r in regs if r.integration_id == integration_id]
        return regs

    async def dispatch(self, integration_id: str, event_type: str, payload: Any) -> None:
        """Run every matching handler. No match is a no-op."""
        matching = [r for r in self._registrations if r.matches(integration_id, event_type)]
        if not matching:
            logger.debug(f"No webhook handlers for {integration_id}/{event_type}")
            return

        received = copy.deepcopy(payload)
        await asyncio.gather(*(
            self._run(registration, event_type, received) for registration in matching
        ))

    async def _run(
        self,
        registration: WebhookHandlerRegistration,
        event_type: str,
        payload: Any,
    ) -> None:
        metadata = EventMetadata(extra={"event_type": event_type, "handler_id": registration.id})
        try:
            await asyncio.wait_for(
                _invoke(registration.handler, copy.deepcopy(payload)),
                timeout=self._handler_timeout,
            )
        except asyncio.TimeoutError:
            error = HandlerError(
                registration.integration_id,
                event_type,
                TimeoutError(f"Handler timed out after {self._handler_timeout}s"),
            )
        except Exception as exc:
            error = HandlerError(registration.integration_id, event_type, exc)
        else:
            self._events.record(
                registration.integration_id,
                EventType.WEBHOOK,
                EventDirection.INBOUND,
                EventStatus.SUCCESS,
                data=payload,
                metadata=metadata,
            )
            return

        logger.warning(
            f"Webhook handler {registration.id} failed for "
            f"{registration.integration_id}/{event_type}: {error}"
        )
        self._events.record(
            registration.integration_id,
            EventType.WEBHOOK,
            EventDirection.INBOUND,
            EventStatus.FAILED,
            data=payload,
            error=str(error),
            metadata=metadata,
        )


async def _invoke(handler: WebhookHandler, payload: Any) -> Any:
    """Await coroutine handlers; run plain callables in a worker thread."""
    if inspect.iscoroutinefunction(handler):
        return await handler(payload)
    result = await asyncio.to_thread(handler, payload)
    if inspect.isawaitable(result):
        result = await result
    return result
