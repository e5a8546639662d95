"""
Integration Hub Event Log: bounded history plus rolling metrics.

Every dispatch, webhook and sync outcome lands here:
- FIFO eviction once capacity is reached
- Lock-free append (deque.append is atomic)
- Payloads are deep-copied on append, so logged data never changes
- Optional sink for the audit/observability collaborator
- Per-integration metrics over hour/day/week windows
"""
from __future__ import annotations
from collections import deque
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Optional
import copy
import logging

from integration_hub.models import (
    EventDirection,
    EventMetadata,
    EventStatus,
    EventType,
    IntegrationEvent,
    Metrics,
    Timeframe,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10_000

TIMEFRAMES: dict[Timeframe, timedelta] = {
    Timeframe.HOUR: timedelta(hours=1),
    Timeframe.DAY: timedelta(days=1),
    Timeframe.WEEK: timedelta(days=7),
}

EventSink = Callable[[IntegrationEvent], Any]


class EventLog:
    """Append-only, capacity-bounded record of hub activity."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        sink: Optional[EventSink] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if capacity <= 0:
            raise ValueError("Event log capacity must be positive")
        self.capacity = capacity
        self._events: deque[IntegrationEvent] = deque(maxlen=capacity)
        self._sink = sink
        self._clock = clock

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: IntegrationEvent) -> IntegrationEvent:
        """Add an event to the tail, evicting the oldest when full."""
        if event.data is not None:
            event = replace(event, data=copy.deepcopy(event.data))
        self._events.append(event)
        if self._sink is not None:
            try:
                self._sink(event)
            except Exception:
                logger.exception(f"Event sink failed for event {event.id}")
        return event

    def record(
        self,
        integration_id: str,
        type: EventType,
        direction: EventDirection,
        status: EventStatus,
        data: Any = None,
        error: str | None = None,
        metadata: EventMetadata | None = None,
        retry_count: int = 0,
    ) -> IntegrationEvent:
        """Build an event stamped with the log's clock and append it."""
        return self.append(IntegrationEvent(
            integration_id=integration_id,
            type=type,
            direction=direction,
            status=status,
            data=data,
            error=error,
            metadata=metadata,
            retry_count=retry_count,
            timestamp=self._clock(),
        ))

    def snapshot(self) -> list[IntegrationEvent]:
        """Retained events, oldest first."""
        return list(self._events)

    def query(
        self,
        integration_id: str | None = None,
        limit: int = 100,
        type: EventType | None = None,
    ) -> list[IntegrationEvent]:
        """Most recent events, newest first (append order, not timestamps)."""
        matched: list[IntegrationEvent] = []
        if limit <= 0:
            return matched
        for event in reversed(self.snapshot()):
            if integration_id and event.integration_id != integration_id:
                continue
            if type and event.type != type:
                continue
            matched.append(event)
            if len(matched) == limit:
                break
        return matched

    def metrics(
        self,
        integration_id: str,
        timeframe: Timeframe | str = Timeframe.DAY,
        now: datetime | None = None,
    ) -> Metrics:
        """Aggregate api_call outcomes inside the trailing window."""
        timeframe = Timeframe(timeframe)
        cutoff = (now or self._clock()) - TIMEFRAMES[timeframe]

        calls = [
            e for e in self.snapshot()
            if e.integration_id == integration_id
            and e.type == EventType.API_CALL
            and e.timestamp > cutoff
        ]
        total = len(calls)
        successful = sum(1 for e in calls if e.status == EventStatus.SUCCESS)
        failed = total - successful

        latencies = [
            e.metadata.response_time_ms for e in calls
            if e.metadata is not None and e.metadata.response_time_ms is not None
        ]
        average = sum(latencies) / len(latencies) if latencies else 0.0
        error_rate = failed / total * 100 if total else 0.0

        return Metrics(
            integration_id=integration_id,
            timeframe=timeframe,
            total_requests=total,
            successful_requests=successful,
            failed_requests=failed,
            average_response_time=average,
            error_rate=error_rate,
        )
