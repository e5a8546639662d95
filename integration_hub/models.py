"""
Integration Hub data model.

Typed records for everything the hub stores or emits:
- IntegrationConfig and its parts (credentials, settings, endpoints)
- IntegrationEvent, the immutable event log entry
- Metrics, the rolling aggregate computed from the log

Well-known fields are typed; provider-specific extras live in one explicit
``extra`` dict per record.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
import secrets
import time

from integration_hub.errors import ConfigurationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class IntegrationCategory(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    CALENDAR = "calendar"
    STORAGE = "storage"
    CRM = "crm"
    PAYMENT = "payment"
    ANALYTICS = "analytics"
    COMMUNICATION = "communication"


class IntegrationStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"
    PENDING = "pending"


class EventType(str, Enum):
    SYNC = "sync"
    WEBHOOK = "webhook"
    API_CALL = "api_call"
    ERROR = "error"
    AUTH_REFRESH = "auth_refresh"


class EventDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class EventStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class SyncDirection(str, Enum):
    PULL = "pull"
    PUSH = "push"
    BIDIRECTIONAL = "bidirectional"


class Timeframe(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


# ---------------------------------------------------------------------------
# Integration configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Credentials:
    """Opaque secrets used to build auth headers. Any subset may be set."""
    api_key: str | None = None
    api_secret: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    webhook_secret: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def present_keys(self) -> list[str]:
        keys = [
            name for name in (
                "api_key", "api_secret", "access_token", "refresh_token",
                "client_id", "client_secret", "webhook_secret",
            )
            if getattr(self, name)
        ]
        return keys + sorted(self.extra)


@dataclass(frozen=True)
class RateLimits:
    requests_per_second: int
    requests_per_hour: int
    requests_per_day: int

    def __post_init__(self):
        for name in ("requests_per_second", "requests_per_hour", "requests_per_day"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"Rate limit {name} must be a positive integer, got {value!r}")

    def to_dict(self) -> dict[str, int]:
        return {
            "requests_per_second": self.requests_per_second,
            "requests_per_hour": self.requests_per_hour,
            "requests_per_day": self.requests_per_day,
        }


@dataclass(frozen=True)
class SyncSettings:
    sync_enabled: bool = False
    sync_interval: int = 60  # minutes, advisory
    last_sync: datetime | None = None
    webhook_url: str | None = None
    rate_limits: RateLimits | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sync_enabled": self.sync_enabled,
            "sync_interval": self.sync_interval,
            "last_sync": _iso(self.last_sync),
            "webhook_url": self.webhook_url,
            "rate_limits": self.rate_limits.to_dict() if self.rate_limits else None,
            **self.extra,
        }


@dataclass(frozen=True)
class Endpoints:
    """Named provider URLs. ``base`` is mandatory."""
    base: str
    auth: str | None = None
    webhook: str | None = None
    extra: dict[str, str] = field(default_factory=dict)

    def resolve(self, name_or_path: str) -> str:
        """Return an absolute URL for a named endpoint, relative path or URL."""
        if name_or_path.startswith(("http://", "https://")):
            return name_or_path
        named = {"auth": self.auth, "webhook": self.webhook, **self.extra}.get(name_or_path)
        path = named or name_or_path
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base.rstrip('/')}/{path.lstrip('/')}"

    def to_dict(self) -> dict[str, str]:
        data = {"base": self.base}
        if self.auth:
            data["auth"] = self.auth
        if self.webhook:
            data["webhook"] = self.webhook
        data.update(self.extra)
        return data


@dataclass(frozen=True)
class IntegrationConfig:
    """A configured connection to one external service."""
    id: str
    name: str
    category: IntegrationCategory
    provider: str
    endpoints: Endpoints
    status: IntegrationStatus = IntegrationStatus.PENDING
    credentials: Credentials = field(default_factory=Credentials)
    settings: SyncSettings = field(default_factory=SyncSettings)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def validate(self) -> None:
        if not self.id:
            raise ConfigurationError("Integration id is required")
        if not self.endpoints.base:
            raise ConfigurationError(f"Integration {self.id} has no base endpoint")
        if not isinstance(self.category, IntegrationCategory):
            raise ConfigurationError(f"Unknown integration category: {self.category!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "provider": self.provider,
            "status": self.status.value,
            "credentials": self.credentials.present_keys(),
            "settings": self.settings.to_dict(),
            "endpoints": self.endpoints.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

def generate_event_id() -> str:
    """Time + random so concurrent writers never collide."""
    return f"evt_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


@dataclass(frozen=True)
class EventMetadata:
    endpoint: str | None = None
    http_status: int | None = None
    response_time_ms: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "http_status": self.http_status,
            "response_time_ms": round(self.response_time_ms, 1) if self.response_time_ms is not None else None,
            **self.extra,
        }


@dataclass(frozen=True)
class IntegrationEvent:
    """Immutable record of something the hub did."""
    integration_id: str
    type: EventType
    direction: EventDirection
    status: EventStatus
    data: Any = None
    error: str | None = None
    id: str = field(default_factory=generate_event_id)
    timestamp: datetime = field(default_factory=utcnow)
    retry_count: int = 0  # reserved: the hub never retries on its own
    metadata: Optional[EventMetadata] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "integration_id": self.integration_id,
            "type": self.type.value,
            "direction": self.direction.value,
            "status": self.status.value,
            "data": self.data,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
            "retry_count": self.retry_count,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


@dataclass(frozen=True)
class Metrics:
    """Rolling api_call aggregate for one integration and timeframe."""
    integration_id: str
    timeframe: Timeframe
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    error_rate: float = 0.0  # percent

    def to_dict(self) -> dict[str, Any]:
        return {
            "integration_id": self.integration_id,
            "timeframe": self.timeframe.value,
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "average_response_time": round(self.average_response_time, 1),
            "error_rate": round(self.error_rate, 2),
        }
