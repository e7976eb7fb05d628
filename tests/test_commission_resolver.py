from decimal import Decimal

import pytest

from servicehub.domain.commission.resolver import (
    SEED_TIER_RATES,
    CommissionRateResolver,
    CommissionSettings,
    coerce_tier,
    rate_to_percent,
    tier_bucket,
)
from servicehub.enums import ProviderTier, ServiceType


@pytest.mark.parametrize(
    "tier,expected",
    [
        (ProviderTier.NEW, "0.20"),
        (ProviderTier.VERIFIED, "0.18"),
        (ProviderTier.STANDARD, "0.18"),
        (ProviderTier.PREMIUM, "0.15"),
        (ProviderTier.ENTERPRISE, "0.12"),
    ],
)
def test_seed_rates(tier, expected):
    resolver = CommissionRateResolver(configured_rates=SEED_TIER_RATES)
    assert resolver.resolve(tier) == Decimal(expected)


def test_bucket_fallback_when_tier_not_configured():
    resolver = CommissionRateResolver(configured_rates={"STANDARD": 17, "PREMIUM": 14})
    assert resolver.resolve(ProviderTier.NEW) == Decimal("0.17")
    assert resolver.resolve(ProviderTier.ENTERPRISE) == Decimal("0.14")


def test_builtin_bucket_defaults_without_configuration():
    resolver = CommissionRateResolver()
    assert resolver.resolve(ProviderTier.VERIFIED) == Decimal("0.18")
    assert resolver.resolve(ProviderTier.ENTERPRISE) == Decimal("0.15")


def test_service_type_overrides_tier_rate():
    resolver = CommissionRateResolver(configured_rates=SEED_TIER_RATES)
    assert resolver.resolve(ProviderTier.ENTERPRISE, ServiceType.EMERGENCY) == Decimal("0.25")
    assert resolver.resolve(ProviderTier.NEW, ServiceType.RECURRING) == Decimal("0.15")
    assert resolver.resolve(ProviderTier.NEW, "STANDARD") == Decimal("0.20")


def test_result_is_clamped():
    resolver = CommissionRateResolver(configured_rates={"NEW": 80, "ENTERPRISE": 1})
    assert resolver.resolve(ProviderTier.NEW) == Decimal("0.50")
    assert resolver.resolve(ProviderTier.ENTERPRISE) == Decimal("0.05")

    settings = CommissionSettings(min_rate=Decimal("0.10"), max_rate=Decimal("0.20"))
    assert CommissionRateResolver(settings).resolve(ProviderTier.NEW, ServiceType.EMERGENCY) == Decimal("0.20")


def test_unknown_tier_and_service_type_fall_back():
    assert coerce_tier(None) == ProviderTier.NEW
    assert coerce_tier("gold") == ProviderTier.NEW
    assert coerce_tier("premium") == ProviderTier.PREMIUM

    resolver = CommissionRateResolver(configured_rates=SEED_TIER_RATES)
    assert resolver.resolve("gold", "SOMETHING_ELSE") == Decimal("0.20")


def test_rate_to_percent():
    assert rate_to_percent(Decimal("0.18")) == Decimal("18")


def test_every_tier_has_a_bucket():
    assert {tier: tier_bucket(tier) for tier in ProviderTier} == {
        ProviderTier.NEW: ProviderTier.STANDARD,
        ProviderTier.VERIFIED: ProviderTier.STANDARD,
        ProviderTier.STANDARD: ProviderTier.STANDARD,
        ProviderTier.PREMIUM: ProviderTier.PREMIUM,
        ProviderTier.ENTERPRISE: ProviderTier.PREMIUM,
    }
