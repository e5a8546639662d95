"""Test the bounded event log and metrics."""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from integration_hub.events import EventLog
from integration_hub.models import (
    EventDirection,
    EventMetadata,
    EventStatus,
    EventType,
    IntegrationEvent,
    Timeframe,
)


def _call(log, integration_id="acme", ok=True, latency=None):
    return log.record(
        integration_id,
        EventType.API_CALL,
        EventDirection.OUTBOUND,
        EventStatus.SUCCESS if ok else EventStatus.FAILED,
        error=None if ok else "HTTP 500",
        metadata=EventMetadata(response_time_ms=latency) if latency is not None else None,
    )


def test_capacity_evicts_oldest_first():
    log = EventLog()
    appended = [
        log.append(IntegrationEvent("acme", EventType.WEBHOOK, EventDirection.INBOUND, EventStatus.SUCCESS, data=i))
        for i in range(10_005)
    ]
    assert len(log) == 10_000
    retained = log.snapshot()
    assert [e.data for e in retained[:2]] == [5, 6]
    assert retained[-1] is appended[-1]
    assert all(e.id not in {a.id for a in appended[:5]} for e in retained)


def test_small_capacity():
    log = EventLog(capacity=3)
    for _ in range(7):
        _call(log)
    assert len(log) == 3


def test_query_newest_first_with_filter_and_limit(clock):
    log = EventLog(clock=clock)
    for i in range(5):
        _call(log, "acme")
        _call(log, "other")
        clock.advance(seconds=1)

    events = log.query("acme", limit=3)
    assert len(events) == 3
    assert all(e.integration_id == "acme" for e in events)
    assert events[0].timestamp > events[1].timestamp > events[2].timestamp
    assert len(log.query(limit=100)) == 10


def test_query_by_type(clock):
    log = EventLog(clock=clock)
    _call(log)
    log.record("acme", EventType.SYNC, EventDirection.OUTBOUND, EventStatus.SUCCESS)
    assert [e.type for e in log.query(type=EventType.SYNC)] == [EventType.SYNC]


def test_metrics_counts_and_rates(clock):
    log = EventLog(clock=clock)
    _call(log, ok=True, latency=100)
    _call(log, ok=True, latency=300)
    _call(log, ok=False)
    _call(log, ok=False, latency=200)
    log.record("acme", EventType.WEBHOOK, EventDirection.INBOUND, EventStatus.FAILED)

    m = log.metrics("acme", Timeframe.HOUR)
    assert m.total_requests == 4
    assert m.successful_requests == 2
    assert m.failed_requests == 2
    assert m.successful_requests + m.failed_requests == m.total_requests
    assert m.error_rate == 50.0
    assert m.average_response_time == 200.0


def test_metrics_empty_is_zero(clock):
    log = EventLog(clock=clock)
    m = log.metrics("nobody", "week")
    assert m.total_requests == 0
    assert m.error_rate == 0
    assert m.average_response_time == 0


def test_metrics_respect_timeframe(clock):
    log = EventLog(clock=clock)
    _call(log, ok=False)
    clock.advance(hours=2)
    _call(log, ok=True)

    assert log.metrics("acme", Timeframe.HOUR).total_requests == 1
    assert log.metrics("acme", Timeframe.HOUR).error_rate == 0
    assert log.metrics("acme", Timeframe.DAY).total_requests == 2

    clock.advance(days=8)
    assert log.metrics("acme", Timeframe.WEEK).total_requests == 0
    assert log.metrics("acme", Timeframe.WEEK, now=clock() - timedelta(days=8)).total_requests == 2


def test_sink_receives_events_and_failures_are_contained(clock):
    seen = []

    def sink(event):
        seen.append(event.id)
        raise RuntimeError("audit backend down")

    log = EventLog(sink=sink, clock=clock)
    event = _call(log)
    assert seen == [event.id]
    assert len(log) == 1


def test_event_ids_are_unique():
    log = EventLog()
    ids = {_call(log).id for _ in range(500)}
    assert len(ids) == 500


def test_query_orders_by_append_when_timestamps_tie(clock):
    log = EventLog(clock=clock)
    for i in range(3):
        log.record("acme", EventType.SYNC, EventDirection.OUTBOUND, EventStatus.SUCCESS, data=i)

    assert [e.data for e in log.query("acme", limit=1)] == [2]
    assert [e.data for e in log.query("acme")] == [2, 1, 0]
    assert log.query("acme", limit=0) == []


def test_logged_data_is_a_snapshot(clock):
    log = EventLog(clock=clock)
    payload = {"invoice": "in_1", "lines": [{"sku": "A"}]}
    event = log.record("acme", EventType.WEBHOOK, EventDirection.INBOUND, EventStatus.SUCCESS, data=payload)

    payload["invoice"] = "tampered"
    payload["lines"][0]["sku"] = "B"

    assert event.data == {"invoice": "in_1", "lines": [{"sku": "A"}]}
    assert log.query("acme")[0].data == {"invoice": "in_1", "lines": [{"sku": "A"}]}


def test_concurrent_appends_respect_capacity():
    seen = []
    log = EventLog(capacity=100, sink=seen.append)

    def worker(n):
        for i in range(500):
            log.record(f"crm-{n}", EventType.API_CALL, EventDirection.OUTBOUND, EventStatus.SUCCESS, data=i)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(8)))

    assert len(log) == 100
    assert len(seen) == 4000
    assert len({e.id for e in log.snapshot()}) == 100
