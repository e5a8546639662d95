"""Shared fixtures: a scripted transport, a controllable clock, config factory."""
from datetime import datetime, timedelta, timezone

import pytest

from integration_hub.models import (
    Credentials,
    Endpoints,
    IntegrationCategory,
    IntegrationConfig,
    RateLimits,
    SyncSettings,
)
from integration_hub.transport import ApiResponse


class FakeTransport:
    """Returns scripted status codes (or raises scripted errors) per URL."""

    def __init__(self, default_status: int = 200):
        self.default_status = default_status
        self.routes: dict[str, object] = {}
        self.requests: list[dict] = []
        self.closed = False

    def route(self, url: str, outcome) -> None:
        self.routes[url] = outcome

    async def send(self, method, url, headers, body=None, timeout=None):
        self.requests.append({
            "method": method,
            "url": url,
            "headers": headers,
            "body": body,
            "timeout": timeout,
        })
        outcome = self.routes.get(url, self.default_status)
        if isinstance(outcome, Exception):
            raise outcome
        return ApiResponse(status_code=outcome, data={"ok": 200 <= outcome < 300}, latency_ms=1.0)

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_config():
    def _make(
        integration_id: str = "acme",
        rate_limits: RateLimits | None = None,
        sync_enabled: bool = False,
        credentials: Credentials | None = None,
        category: IntegrationCategory = IntegrationCategory.CRM,
        base: str = "https://api.acme.test/v1",
    ) -> IntegrationConfig:
        return IntegrationConfig(
            id=integration_id,
            name=integration_id.title(),
            category=category,
            provider="Acme",
            credentials=credentials or Credentials(),
            settings=SyncSettings(sync_enabled=sync_enabled, rate_limits=rate_limits),
            endpoints=Endpoints(base=base, extra={"contacts": "/contacts"}),
        )
    return _make
