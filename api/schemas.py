"""Pydantic schemas for integration API request validation."""

from dataclasses import replace
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from integration_hub.models import (
    Credentials,
    Endpoints,
    IntegrationCategory,
    IntegrationConfig,
    RateLimits,
    SyncDirection,
    SyncSettings,
)


# ---------------------------------------------------------------------------
# Nested request parts
# ---------------------------------------------------------------------------

class RateLimitsIn(BaseModel):
    requests_per_second: int = Field(..., gt=0)
    requests_per_hour: int = Field(..., gt=0)
    requests_per_day: int = Field(..., gt=0)

    def to_model(self) -> RateLimits:
        return RateLimits(**self.model_dump())


class CredentialsIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    webhook_secret: Optional[str] = None

    def to_model(self) -> Credentials:
        known = self.model_dump(exclude=set(self.model_extra or {}))
        return Credentials(**known, extra=dict(self.model_extra or {}))


class SettingsIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    sync_enabled: bool = False
    sync_interval: int = Field(60, ge=1)
    webhook_url: Optional[str] = None
    rate_limits: Optional[RateLimitsIn] = None

    def to_model(self) -> SyncSettings:
        return SyncSettings(
            sync_enabled=self.sync_enabled,
            sync_interval=self.sync_interval,
            webhook_url=self.webhook_url,
            rate_limits=self.rate_limits.to_model() if self.rate_limits else None,
            extra=dict(self.model_extra or {}),
        )


class EndpointsIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    base: str = Field(..., min_length=1)
    auth: Optional[str] = None
    webhook: Optional[str] = None

    def to_model(self) -> Endpoints:
        return Endpoints(
            base=self.base,
            auth=self.auth,
            webhook=self.webhook,
            extra={k: str(v) for k, v in (self.model_extra or {}).items()},
        )


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class IntegrationCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    category: IntegrationCategory
    provider: str = Field(..., min_length=1)
    credentials: CredentialsIn = Field(default_factory=CredentialsIn)
    settings: SettingsIn = Field(default_factory=SettingsIn)
    endpoints: EndpointsIn

    def to_config(self) -> IntegrationConfig:
        return IntegrationConfig(
            id=self.id,
            name=self.name,
            category=self.category,
            provider=self.provider,
            credentials=self.credentials.to_model(),
            settings=self.settings.to_model(),
            endpoints=self.endpoints.to_model(),
        )


class IntegrationUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[IntegrationCategory] = None
    provider: Optional[str] = None
    credentials: Optional[CredentialsIn] = None
    settings: Optional[SettingsIn] = None
    endpoints: Optional[EndpointsIn] = None

    def to_changes(self, current: IntegrationConfig) -> dict[str, Any]:
        """Top-level replacements. A new settings block keeps the last sync time."""
        changes: dict[str, Any] = {}
        for name in ("name", "category", "provider"):
            value = getattr(self, name)
            if value is not None:
                changes[name] = value
        if self.credentials is not None:
            changes["credentials"] = self.credentials.to_model()
        if self.settings is not None:
            changes["settings"] = replace(self.settings.to_model(), last_sync=current.settings.last_sync)
        if self.endpoints is not None:
            changes["endpoints"] = self.endpoints.to_model()
        return changes


class SyncRequest(BaseModel):
    direction: SyncDirection = SyncDirection.PULL
    timeout: Optional[float] = Field(None, gt=0)
