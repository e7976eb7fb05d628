from decimal import Decimal

import pytest

from servicehub.domain.commission.service import CommissionService, load_resolver
from servicehub.enums import ProviderTier, ServiceType
from servicehub.errors import InvalidCommissionRate, InvalidTransition
from servicehub.models import OutboxEvent


def test_unconfigured_rates_are_the_seed(db):
    rates = CommissionService(db).get_rates()
    assert rates["version"] == 0
    assert rates["rates"]["NEW"] == 20.0
    assert rates["rates"]["ENTERPRISE"] == 12.0


def test_update_rates_writes_document_history_and_event(db):
    service = CommissionService(db)
    result = service.update_rates({"VERIFIED": 16.5}, changed_by="ops@servicehub.example", reason="Promo")

    assert result["version"] == 1
    assert result["rates"]["VERIFIED"] == 16.5
    assert result["rates"]["NEW"] == 20.0

    history = service.get_rate_history()
    assert len(history) == 1
    assert history[0].tier == "VERIFIED"
    assert history[0].old_rate == Decimal("18")
    assert history[0].new_rate == Decimal("16.5")
    assert db.query(OutboxEvent).filter(OutboxEvent.event_type == "commission.rates_updated").count() == 1

    assert load_resolver(db).resolve(ProviderTier.VERIFIED) == Decimal("0.165")


def test_second_update_bumps_version(db):
    service = CommissionService(db)
    service.update_rates({"NEW": 22}, changed_by="a@example.com")
    result = service.update_rates({"PREMIUM": 14}, changed_by="b@example.com", expected_version=1)

    assert result["version"] == 2
    assert result["rates"]["NEW"] == 22.0
    assert result["rates"]["PREMIUM"] == 14.0
    assert [c.tier for c in service.get_rate_history()] == ["PREMIUM", "NEW"]


@pytest.mark.parametrize("percent", [4.99, 50.01, -1, None])
def test_out_of_range_rates_are_rejected(db, percent):
    with pytest.raises(InvalidCommissionRate):
        CommissionService(db).update_rates({"NEW": percent}, changed_by="ops@servicehub.example")
    assert CommissionService(db).get_rates()["version"] == 0


def test_bounds_are_inclusive(db):
    result = CommissionService(db).update_rates({"NEW": 5, "ENTERPRISE": 50}, changed_by="ops@servicehub.example")
    assert result["rates"]["NEW"] == 5.0
    assert result["rates"]["ENTERPRISE"] == 50.0


def test_stale_version_is_rejected(db):
    service = CommissionService(db)
    service.update_rates({"NEW": 22}, changed_by="a@example.com")
    with pytest.raises(InvalidTransition):
        service.update_rates({"NEW": 23}, changed_by="b@example.com", expected_version=0)
    assert service.get_rates()["rates"]["NEW"] == 22.0


def test_unchanged_rates_do_not_bump_version(db):
    service = CommissionService(db)
    result = service.update_rates({"NEW": 20}, changed_by="a@example.com")
    assert result["version"] == 0
    assert service.get_rate_history() == []


def test_quote_rate(db):
    quote = CommissionService(db).quote_rate(ProviderTier.PREMIUM, ServiceType.EMERGENCY)
    assert quote["rate"] == 0.25
    assert quote["ratePercent"] == 25.0
