"""Integration Hub error taxonomy.

Caller-visible:
- ConfigurationError (and IntegrationNotFound, DuplicateIntegration, HubNotRunning)
- RateLimitExceeded
- TransportError

Absorbed into the event log, never raised past the hub boundary:
- HandlerError
- SyncError
"""
from __future__ import annotations


class IntegrationHubError(Exception):
    """Base class for all hub errors."""


class ConfigurationError(IntegrationHubError):
    """Caller or programmer error. Never retried."""


class IntegrationNotFound(ConfigurationError):
    def __init__(self, integration_id: str):
        self.integration_id = integration_id
        super().__init__(f"Integration {integration_id} not found")


class DuplicateIntegration(ConfigurationError):
    def __init__(self, integration_id: str):
        self.integration_id = integration_id
        super().__init__(
            f"Integration {integration_id} is already registered; pass replace=True to overwrite"
        )


class HubNotRunning(ConfigurationError):
    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Integration hub is not accepting calls (state: {state})")


class RateLimitExceeded(IntegrationHubError):
    def __init__(self, integration_id: str):
        self.integration_id = integration_id
        super().__init__(f"Rate limit exceeded for integration {integration_id}")


class TransportError(IntegrationHubError):
    """Network-level failure of an outbound call."""

    def __init__(self, message: str, integration_id: str = "", endpoint: str = ""):
        self.integration_id = integration_id
        self.endpoint = endpoint
        super().__init__(message)


class HandlerError(IntegrationHubError):
    """A webhook handler raised or timed out."""

    def __init__(self, integration_id: str, event_type: str, cause: BaseException):
        self.integration_id = integration_id
        self.event_type = event_type
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)


class SyncError(IntegrationHubError):
    """A pull or push step raised or timed out."""

    def __init__(self, integration_id: str, direction: str, cause: BaseException):
        self.integration_id = integration_id
        self.direction = direction
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)
