"""
Integration Hub Registry: the catalog of configured connections.

Read-mostly store with copy-on-write snapshots:
- Writers serialize on one lock and publish a fresh dict
- Readers use the published snapshot and never block
- Owns one RateLimiter per integration that declares limits
- Sole writer of IntegrationConfig.status
"""
from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional
import logging
import threading

from integration_hub.errors import ConfigurationError, DuplicateIntegration, IntegrationNotFound
from integration_hub.models import (
    IntegrationCategory,
    IntegrationConfig,
    IntegrationStatus,
    utcnow,
)
from integration_hub.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "category", "provider", "credentials", "settings", "endpoints"})


class IntegrationRegistry:
    """Thread-safe store of IntegrationConfig records keyed by id."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entries: dict[str, IntegrationConfig] = {}
        self._limiters: dict[str, RateLimiter] = {}
        self._write_lock = threading.Lock()

    def __contains__(self, integration_id: str) -> bool:
        return integration_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # --- Writes ---

    def add(self, config: IntegrationConfig, replace_existing: bool = False) -> IntegrationConfig:
        """Store a new integration, binding a fresh limiter if it declares limits."""
        config.validate()
        now = self._clock()
        stored = replace(config, created_at=now, updated_at=now)

        with self._write_lock:
            if stored.id in self._entries and not replace_existing:
                raise DuplicateIntegration(stored.id)
            limiters = dict(self._limiters)
            limiters.pop(stored.id, None)
            if stored.settings.rate_limits is not None:
                limiters[stored.id] = RateLimiter(stored.settings.rate_limits)
            self._limiters = limiters
            self._entries = {**self._entries, stored.id: stored}

        logger.info(f"Registered integration {stored.id} ({stored.provider}, {stored.category.value})")
        return stored

    def update(self, integration_id: str, **changes: Any) -> IntegrationConfig:
        """Shallow-merge top-level fields. The bound limiter is left as is."""
        if "status" in changes:
            raise ConfigurationError("Integration status is managed by connection tests")
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ConfigurationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "category" in changes:
            try:
                changes["category"] = IntegrationCategory(changes["category"])
            except ValueError:
                raise ConfigurationError(f"Unknown integration category: {changes['category']!r}") from None
        return self._write(integration_id, **changes)

    def set_status(self, integration_id: str, status: IntegrationStatus) -> IntegrationConfig:
        return self._write(integration_id, status=IntegrationStatus(status))

    def mark_synced(self, integration_id: str, when: datetime) -> IntegrationConfig:
        with self._write_lock:
            current = self._require_locked(integration_id)
            return self._publish_locked(
                replace(current, settings=replace(current.settings, last_sync=when))
            )

    def _write(self, integration_id: str, **changes: Any) -> IntegrationConfig:
        with self._write_lock:
            current = self._require_locked(integration_id)
            updated = replace(current, **changes)
            updated.validate()
            return self._publish_locked(updated)

    def _require_locked(self, integration_id: str) -> IntegrationConfig:
        current = self._entries.get(integration_id)
        if current is None:
            raise IntegrationNotFound(integration_id)
        return current

    def _publish_locked(self, config: IntegrationConfig) -> IntegrationConfig:
        config = replace(config, updated_at=self._clock())
        self._entries = {**self._entries, config.id: config}
        return config

    # --- Reads ---

    def get(self, integration_id: str) -> Optional[IntegrationConfig]:
        return self._entries.get(integration_id)

    def require(self, integration_id: str) -> IntegrationConfig:
        config = self._entries.get(integration_id)
        if config is None:
            raise IntegrationNotFound(integration_id)
        return config

    def list(self, category: IntegrationCategory | str | None = None) -> list[IntegrationConfig]:
        """All integrations in registration order, optionally by category."""
        entries = list(self._entries.values())
        if category:
            category = IntegrationCategory(category)
            entries = [c for c in entries if c.category == category]
        return entries

    def limiter_for(self, integration_id: str) -> Optional[RateLimiter]:
        return self._limiters.get(integration_id)
