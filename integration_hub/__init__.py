"""
Integration Hub: external-integration dispatcher for the CRM.

Provides the connective tissue between the CRM and third-party services:
- IntegrationRegistry: configured connections and their lifecycle status
- RateLimiter: per-integration sliding-window admission (second/hour/day)
- ApiDispatcher: authenticated, rate-limited, logged outbound calls
- WebhookRouter: inbound event fan-out to registered handlers
- SyncOrchestrator: pull/push data exchange with an in-flight guard
- EventLog: bounded activity log and rolling metrics
- IntegrationManager: the service object tying them together
"""
from integration_hub.config import HubConfig
from integration_hub.dispatcher import ApiDispatcher, build_auth_headers
from integration_hub.errors import (
    ConfigurationError,
    DuplicateIntegration,
    HandlerError,
    HubNotRunning,
    IntegrationHubError,
    IntegrationNotFound,
    RateLimitExceeded,
    SyncError,
    TransportError,
)
from integration_hub.events import EventLog
from integration_hub.manager import HubState, IntegrationManager
from integration_hub.models import (
    Credentials,
    Endpoints,
    EventDirection,
    EventMetadata,
    EventStatus,
    EventType,
    IntegrationCategory,
    IntegrationConfig,
    IntegrationEvent,
    IntegrationStatus,
    Metrics,
    RateLimits,
    SyncDirection,
    SyncSettings,
    Timeframe,
)
from integration_hub.rate_limiter import RateLimiter
from integration_hub.registry import IntegrationRegistry
from integration_hub.sync import LoggingSyncAdapter, SyncAdapter, SyncOrchestrator, SyncOutcome
from integration_hub.transport import ApiResponse, HttpxTransport, Transport
from integration_hub.webhooks import WebhookHandlerRegistration, WebhookRouter

__all__ = [
    # Service
    "HubConfig",
    "HubState",
    "IntegrationManager",
    # Components
    "ApiDispatcher",
    "EventLog",
    "IntegrationRegistry",
    "LoggingSyncAdapter",
    "RateLimiter",
    "SyncAdapter",
    "SyncOrchestrator",
    "SyncOutcome",
    "WebhookHandlerRegistration",
    "WebhookRouter",
    "build_auth_headers",
    # Transport
    "ApiResponse",
    "HttpxTransport",
    "Transport",
    # Models
    "Credentials",
    "Endpoints",
    "EventDirection",
    "EventMetadata",
    "EventStatus",
    "EventType",
    "IntegrationCategory",
    "IntegrationConfig",
    "IntegrationEvent",
    "IntegrationStatus",
    "Metrics",
    "RateLimits",
    "SyncDirection",
    "SyncSettings",
    "Timeframe",
    # Errors
    "ConfigurationError",
    "DuplicateIntegration",
    "HandlerError",
    "HubNotRunning",
    "IntegrationHubError",
    "IntegrationNotFound",
    "RateLimitExceeded",
    "SyncError",
    "TransportError",
]
