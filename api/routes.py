"""Integrations API router.

Thin HTTP surface over the IntegrationManager owned by the app:
- Registry CRUD, connection tests and the enable/disable toggle
- Manual sync trigger
- Inbound webhook intake (authentication happens upstream)
- Event history and rolling metrics for the dashboard

Hub errors are translated to HTTP statuses by the handlers in api.main.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from api.schemas import IntegrationCreate, IntegrationUpdate, SyncRequest
from integration_hub.manager import IntegrationManager
from integration_hub.models import IntegrationCategory, Timeframe

router = APIRouter()


def get_manager(request: Request) -> IntegrationManager:
    """The hub instance created in the app lifespan."""
    return request.app.state.hub


# ============================================================================
# Registry
# ============================================================================

@router.get("")
async def list_integrations(
    category: Optional[IntegrationCategory] = None,
    hub: IntegrationManager = Depends(get_manager),
):
    return {"data": [c.to_dict() for c in hub.list(category)]}


@router.post("", status_code=201)
async def register_integration(
    body: IntegrationCreate,
    hub: IntegrationManager = Depends(get_manager),
):
    """Register an integration; the connection is tested before returning."""
    config = await hub.register(body.to_config())
    return config.to_dict()


@router.get("/summary")
async def integrations_summary(hub: IntegrationManager = Depends(get_manager)):
    return hub.summary()


@router.get("/{integration_id}")
async def get_integration(integration_id: str, hub: IntegrationManager = Depends(get_manager)):
    return hub.registry.require(integration_id).to_dict()


@router.patch("/{integration_id}")
async def update_integration(
    integration_id: str,
    body: IntegrationUpdate,
    hub: IntegrationManager = Depends(get_manager),
):
    current = hub.registry.require(integration_id)
    return hub.update(integration_id, **body.to_changes(current)).to_dict()


@router.post("/{integration_id}/test")
async def test_integration(integration_id: str, hub: IntegrationManager = Depends(get_manager)):
    success = await hub.test_connection(integration_id)
    return {"success": success, "integration": hub.registry.require(integration_id).to_dict()}


@router.post("/{integration_id}/enable")
async def enable_integration(integration_id: str, hub: IntegrationManager = Depends(get_manager)):
    success = await hub.enable(integration_id)
    return {"success": success, "integration": hub.registry.require(integration_id).to_dict()}


@router.post("/{integration_id}/disable")
async def disable_integration(integration_id: str, hub: IntegrationManager = Depends(get_manager)):
    return hub.disable(integration_id).to_dict()


# ============================================================================
# Sync & webhooks
# ============================================================================

@router.post("/{integration_id}/sync")
async def sync_integration(
    integration_id: str,
    body: Optional[SyncRequest] = None,
    hub: IntegrationManager = Depends(get_manager),
):
    body = body or SyncRequest()
    outcome = await hub.sync(integration_id, body.direction, body.timeout)
    return {"integration_id": integration_id, "direction": body.direction.value, "outcome": outcome.value}


@router.post("/{integration_id}/webhooks/{event_type}", status_code=202)
async def receive_webhook(
    integration_id: str,
    event_type: str,
    payload: Any = Body(None),
    hub: IntegrationManager = Depends(get_manager),
):
    await hub.dispatch_webhook(integration_id, event_type, payload)
    return {"status": "accepted"}


# ============================================================================
# Events & metrics
# ============================================================================

@router.get("/{integration_id}/events")
async def list_events(
    integration_id: str,
    limit: int = Query(100, ge=1, le=1000),
    hub: IntegrationManager = Depends(get_manager),
):
    hub.registry.require(integration_id)
    return {"data": [e.to_dict() for e in hub.query_events(integration_id, limit)]}


@router.get("/{integration_id}/metrics")
async def integration_metrics(
    integration_id: str,
    timeframe: Timeframe = Timeframe.DAY,
    hub: IntegrationManager = Depends(get_manager),
):
    return hub.metrics(integration_id, timeframe).to_dict()
