"""Test the integration registry."""
import pytest

from integration_hub.errors import ConfigurationError, DuplicateIntegration, IntegrationNotFound
from integration_hub.models import (
    Endpoints,
    IntegrationCategory,
    IntegrationStatus,
    RateLimits,
    SyncSettings,
)
from integration_hub.registry import IntegrationRegistry

LIMITS = RateLimits(requests_per_second=1, requests_per_hour=5, requests_per_day=10)


def test_add_sets_timestamps_and_limiter(clock, make_config):
    registry = IntegrationRegistry(clock=clock)
    stored = registry.add(make_config("acme", rate_limits=LIMITS))
    assert stored.created_at == clock()
    assert stored.updated_at == clock()
    assert registry.limiter_for("acme") is not None
    assert "acme" in registry


def test_no_limiter_without_rate_limits(make_config):
    registry = IntegrationRegistry()
    registry.add(make_config("acme"))
    assert registry.limiter_for("acme") is None


def test_duplicate_rejected_unless_replacing(make_config):
    registry = IntegrationRegistry()
    registry.add(make_config("acme"))
    with pytest.raises(DuplicateIntegration):
        registry.add(make_config("acme"))

    replaced = registry.add(make_config("acme", rate_limits=LIMITS), replace_existing=True)
    assert replaced.settings.rate_limits == LIMITS
    assert registry.limiter_for("acme") is not None
    assert len(registry) == 1


def test_missing_base_endpoint_rejected(make_config):
    registry = IntegrationRegistry()
    with pytest.raises(ConfigurationError):
        registry.add(make_config("acme", base=""))


def test_update_merges_and_bumps_updated_at(clock, make_config):
    registry = IntegrationRegistry(clock=clock)
    registry.add(make_config("acme"))
    clock.advance(minutes=5)

    updated = registry.update("acme", name="Acme CRM", endpoints=Endpoints(base="https://new.acme.test"))
    assert updated.name == "Acme CRM"
    assert updated.endpoints.base == "https://new.acme.test"
    assert updated.provider == "Acme"
    assert updated.updated_at > updated.created_at
    assert registry.get("acme") == updated


def test_update_keeps_stale_limiter(make_config):
    registry = IntegrationRegistry()
    registry.add(make_config("acme", rate_limits=LIMITS))
    limiter = registry.limiter_for("acme")

    registry.update("acme", settings=SyncSettings(rate_limits=RateLimits(100, 100, 100)))
    assert registry.limiter_for("acme") is limiter
    assert limiter.limits == LIMITS


def test_update_refuses_status_and_unknown_fields(make_config):
    registry = IntegrationRegistry()
    registry.add(make_config("acme"))
    with pytest.raises(ConfigurationError):
        registry.update("acme", status=IntegrationStatus.ACTIVE)
    with pytest.raises(ConfigurationError):
        registry.update("acme", created_at=None)
    with pytest.raises(ConfigurationError, match="Unknown integration category"):
        registry.update("acme", category="fax")
    assert registry.get("acme").category == IntegrationCategory.CRM
    with pytest.raises(IntegrationNotFound):
        registry.update("missing", name="x")


def test_set_status_and_mark_synced(clock, make_config):
    registry = IntegrationRegistry(clock=clock)
    registry.add(make_config("acme"))
    assert registry.set_status("acme", IntegrationStatus.ERROR).status == IntegrationStatus.ERROR
    synced = registry.mark_synced("acme", clock())
    assert synced.settings.last_sync == clock()
    assert synced.status == IntegrationStatus.ERROR


def test_list_in_registration_order_with_category_filter(make_config):
    registry = IntegrationRegistry()
    registry.add(make_config("b", category=IntegrationCategory.EMAIL))
    registry.add(make_config("a", category=IntegrationCategory.SMS))
    registry.add(make_config("c", category=IntegrationCategory.EMAIL))

    assert [c.id for c in registry.list()] == ["b", "a", "c"]
    assert [c.id for c in registry.list("email")] == ["b", "c"]
    assert registry.list(IntegrationCategory.PAYMENT) == []


def test_snapshot_reads_are_isolated_from_later_writes(make_config):
    registry = IntegrationRegistry()
    registry.add(make_config("acme"))
    before = registry.list()
    registry.add(make_config("beta"))
    assert [c.id for c in before] == ["acme"]


def test_require_unknown():
    with pytest.raises(IntegrationNotFound):
        IntegrationRegistry().require("ghost")
