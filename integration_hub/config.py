"""Dataclass-based hub configuration.

Limits and timeouts are a frozen dataclass with sensible defaults, so a
running hub never sees its configuration change underneath it. Override
from environment variables with ``HubConfig.from_env()``.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class HubConfig:
    """Runtime configuration for an IntegrationManager.

    Usage::

        config = HubConfig.from_env()
        async with IntegrationManager(config) as hub:
            await hub.call("sendgrid", "GET", "/templates")
    """

    event_log_capacity: int = 10_000
    request_timeout: float = 30.0  # seconds
    handler_timeout: float = 30.0
    sync_timeout: float = 300.0
    shutdown_timeout: float = 10.0
    health_path: str = "/health"
    default_query_limit: int = 100

    @classmethod
    def from_env(cls, prefix: str = "INTEGRATION_HUB_") -> "HubConfig":
        """Create config from environment variables.

        Example: INTEGRATION_HUB_HANDLER_TIMEOUT=5
        """
        casts = {
            "event_log_capacity": int,
            "request_timeout": float,
            "handler_timeout": float,
            "sync_timeout": float,
            "shutdown_timeout": float,
            "health_path": str,
            "default_query_limit": int,
        }
        overrides = {}
        for name, cast in casts.items():
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw:
                overrides[name] = cast(raw)
        return cls(**overrides)
