"""Default catalog of common CRM integrations.

Pre-built configs for the providers every deployment offers out of the
box. Credentials are left empty; operators fill them in through
``IntegrationManager.update`` and re-test the connection.
"""

import logging

from integration_hub.manager import IntegrationManager
from integration_hub.models import (
    Endpoints,
    IntegrationCategory,
    IntegrationConfig,
    IntegrationStatus,
    RateLimits,
    SyncSettings,
)

logger = logging.getLogger(__name__)


SENDGRID = IntegrationConfig(
    id="sendgrid",
    name="SendGrid",
    category=IntegrationCategory.EMAIL,
    provider="SendGrid",
    status=IntegrationStatus.INACTIVE,
    settings=SyncSettings(
        sync_enabled=False,
        sync_interval=60,
        rate_limits=RateLimits(requests_per_second=10, requests_per_hour=3600, requests_per_day=86400),
    ),
    endpoints=Endpoints(
        base="https://api.sendgrid.com/v3",
        extra={"send": "/mail/send", "templates": "/templates"},
    ),
)

TWILIO = IntegrationConfig(
    id="twilio",
    name="Twilio",
    category=IntegrationCategory.SMS,
    provider="Twilio",
    status=IntegrationStatus.INACTIVE,
    settings=SyncSettings(
        sync_enabled=False,
        sync_interval=30,
        rate_limits=RateLimits(requests_per_second=1, requests_per_hour=3600, requests_per_day=86400),
    ),
    endpoints=Endpoints(
        base="https://api.twilio.com/2010-04-01",
        extra={"messages": "/Messages.json"},
    ),
)

GOOGLE_CALENDAR = IntegrationConfig(
    id="google_calendar",
    name="Google Calendar",
    category=IntegrationCategory.CALENDAR,
    provider="Google",
    status=IntegrationStatus.INACTIVE,
    settings=SyncSettings(
        sync_enabled=True,
        sync_interval=15,
        rate_limits=RateLimits(requests_per_second=10, requests_per_hour=3600, requests_per_day=86400),
    ),
    endpoints=Endpoints(
        base="https://www.googleapis.com/calendar/v3",
        extra={"events": "/calendars/primary/events"},
    ),
)

AWS_S3 = IntegrationConfig(
    id="aws_s3",
    name="Amazon S3",
    category=IntegrationCategory.STORAGE,
    provider="AWS",
    status=IntegrationStatus.INACTIVE,
    settings=SyncSettings(
        sync_enabled=False,
        sync_interval=60,
        rate_limits=RateLimits(requests_per_second=100, requests_per_hour=360000, requests_per_day=8640000),
    ),
    endpoints=Endpoints(base="https://s3.amazonaws.com"),
)

COMMON_INTEGRATIONS: tuple[IntegrationConfig, ...] = (SENDGRID, TWILIO, GOOGLE_CALENDAR, AWS_S3)


async def setup_common_integrations(manager: IntegrationManager) -> list[str]:
    """Register each catalog entry not already present. Returns the new ids."""
    added = []
    for config in COMMON_INTEGRATIONS:
        if config.id in manager.registry:
            continue
        await manager.register(config)
        added.append(config.id)
    if added:
        logger.info(f"Loaded common integrations: {', '.join(added)}")
    return added
