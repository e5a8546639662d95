"""Test the HTTP surface over a hub with a scripted transport."""
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from integration_hub.manager import IntegrationManager

ACME = {
    "id": "acme",
    "name": "Acme CRM",
    "category": "crm",
    "provider": "Acme",
    "credentials": {"api_key": "secret"},
    "settings": {"sync_enabled": True, "sync_interval": 15},
    "endpoints": {"base": "https://api.acme.test/v1", "contacts": "/contacts"},
}


@pytest.fixture
def hub(transport, clock):
    return IntegrationManager(transport=transport, clock=clock)


@pytest.fixture
def client(hub):
    with TestClient(create_app(hub=hub, load_common=False)) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["hub"] == "running"


def test_register_and_fetch(client):
    response = client.post("/api/integrations", json=ACME)
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "active"
    assert body["credentials"] == ["api_key"]
    assert body["endpoints"]["contacts"] == "/contacts"

    assert client.get("/api/integrations/acme").json()["name"] == "Acme CRM"
    assert client.post("/api/integrations", json=ACME).status_code == 409


def test_unknown_integration_is_404(client):
    assert client.get("/api/integrations/ghost").status_code == 404
    assert client.get("/api/integrations/ghost/metrics").status_code == 404
    assert client.post("/api/integrations/ghost/sync").status_code == 404


def test_invalid_body_is_422(client):
    broken = {**ACME, "settings": {"rate_limits": {"requests_per_second": 0}}}
    assert client.post("/api/integrations", json=broken).status_code == 422


def test_list_filter_and_summary(client, transport):
    transport.route("https://mail.test/health", 500)
    client.post("/api/integrations", json=ACME)
    client.post("/api/integrations", json={
        **ACME,
        "id": "mailer",
        "category": "email",
        "settings": {},
        "endpoints": {"base": "https://mail.test"},
    })

    assert [c["id"] for c in client.get("/api/integrations").json()["data"]] == ["acme", "mailer"]
    emails = client.get("/api/integrations", params={"category": "email"}).json()["data"]
    assert [c["id"] for c in emails] == ["mailer"]
    assert emails[0]["status"] == "error"

    assert client.get("/api/integrations/summary").json() == {
        "total": 2,
        "active": 1,
        "sync_enabled": 1,
        "error": 1,
    }


def test_patch_updates_fields_but_not_status(client):
    client.post("/api/integrations", json=ACME)
    response = client.patch("/api/integrations/acme", json={"name": "Acme 2", "status": "inactive"})
    assert response.status_code == 200
    assert response.json()["name"] == "Acme 2"
    assert response.json()["status"] == "active"


def test_disable_enable_and_test(client, transport):
    client.post("/api/integrations", json=ACME)
    assert client.post("/api/integrations/acme/disable").json()["status"] == "inactive"

    enabled = client.post("/api/integrations/acme/enable").json()
    assert enabled["success"] is True
    assert enabled["integration"]["status"] == "active"

    transport.route("https://api.acme.test/v1/health", 503)
    tested = client.post("/api/integrations/acme/test").json()
    assert tested["success"] is False
    assert tested["integration"]["status"] == "error"


def test_manual_sync(client):
    client.post("/api/integrations", json=ACME)
    response = client.post("/api/integrations/acme/sync", json={"direction": "bidirectional"})
    assert response.json() == {"integration_id": "acme", "direction": "bidirectional", "outcome": "completed"}

    default = client.post("/api/integrations/acme/sync").json()
    assert default["direction"] == "pull"
    assert client.get("/api/integrations/acme").json()["settings"]["last_sync"] is not None


def test_webhook_intake_runs_handlers(client, hub):
    client.post("/api/integrations", json=ACME)
    received = []
    hub.register_handler("acme", ["contact.created"], received.append)

    response = client.post("/api/integrations/acme/webhooks/contact.created", json={"id": "c_1"})
    assert response.status_code == 202
    assert received == [{"id": "c_1"}]

    events = client.get("/api/integrations/acme/events", params={"limit": 1}).json()["data"]
    assert len(events) == 1
    assert events[0]["type"] == "webhook"
    assert events[0]["direction"] == "inbound"


def test_metrics(client, transport):
    client.post("/api/integrations", json=ACME)
    transport.route("https://api.acme.test/v1/health", 500)
    client.post("/api/integrations/acme/test")

    metrics = client.get("/api/integrations/acme/metrics", params={"timeframe": "hour"}).json()
    assert metrics["timeframe"] == "hour"
    assert metrics["total_requests"] == 2
    assert metrics["failed_requests"] == 1
    assert metrics["error_rate"] == 50.0

    assert client.get("/api/integrations/acme/metrics", params={"timeframe": "year"}).status_code == 422


def test_rate_limited_connection_test_reports_failure(client):
    limited = {
        **ACME,
        "settings": {"rate_limits": {
            "requests_per_second": 1,
            "requests_per_hour": 10,
            "requests_per_day": 10,
        }},
    }
    client.post("/api/integrations", json=limited)
    response = client.post("/api/integrations/acme/test")
    assert response.status_code == 200
    assert response.json()["success"] is False
