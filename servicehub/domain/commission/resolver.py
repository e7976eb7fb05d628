"""
Commission rate resolution

Precedence for a provider tier:
    1. admin-configured rate for the exact tier
    2. admin-configured rate for the tier's bucket (STANDARD or PREMIUM)
    3. the bucket's built-in default
    4. CommissionSettings.default_rate

An EMERGENCY or RECURRING service type replaces the tier rate with that
type's fixed rate. The result is always clamped to [min_rate, max_rate].
Rates are Decimal fractions (0.18 == 18%).
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Union

from ...enums import ProviderTier, ServiceType

PERCENT = Decimal("100")

# Tier -> bucket used when the exact tier has no configured rate
_TIER_BUCKETS = {
    ProviderTier.NEW: ProviderTier.STANDARD,
    ProviderTier.VERIFIED: ProviderTier.STANDARD,
    ProviderTier.STANDARD: ProviderTier.STANDARD,
    ProviderTier.PREMIUM: ProviderTier.PREMIUM,
    ProviderTier.ENTERPRISE: ProviderTier.PREMIUM,
}

# Rates (percent) written when no configuration exists yet
SEED_TIER_RATES = {
    ProviderTier.NEW.value: 20.0,
    ProviderTier.VERIFIED.value: 18.0,
    ProviderTier.STANDARD.value: 18.0,
    ProviderTier.PREMIUM.value: 15.0,
    ProviderTier.ENTERPRISE.value: 12.0,
}


def tier_bucket(tier: ProviderTier) -> ProviderTier:
    return _TIER_BUCKETS[tier]


def coerce_tier(tier: Union[ProviderTier, str, None]) -> ProviderTier:
    """Unknown or missing tiers resolve as NEW"""
    if isinstance(tier, ProviderTier):
        return tier
    try:
        return ProviderTier(str(tier or "").upper())
    except ValueError:
        return ProviderTier.NEW


def percent_to_rate(value) -> Decimal:
    return Decimal(str(value)) / PERCENT


def rate_to_percent(rate: Decimal) -> Decimal:
    return (rate * PERCENT).normalize()


@dataclass(frozen=True)
class CommissionSettings:
    """Built-in commission constants, passed to the resolver explicitly"""

    default_rate: Decimal = Decimal("0.18")
    bucket_rates: Mapping[ProviderTier, Decimal] = field(
        default_factory=lambda: {
            ProviderTier.STANDARD: Decimal("0.18"),
            ProviderTier.PREMIUM: Decimal("0.15"),
        }
    )
    service_type_rates: Mapping[ServiceType, Decimal] = field(
        default_factory=lambda: {
            ServiceType.EMERGENCY: Decimal("0.25"),
            ServiceType.RECURRING: Decimal("0.15"),
        }
    )
    min_rate: Decimal = Decimal("0.05")
    max_rate: Decimal = Decimal("0.50")

    def clamp(self, rate: Decimal) -> Decimal:
        return min(max(rate, self.min_rate), self.max_rate)


class CommissionRateResolver:
    """Maps (tier, service type) to a commission rate"""

    def __init__(
        self,
        settings: Optional[CommissionSettings] = None,
        configured_rates: Optional[Mapping[str, float]] = None,
    ):
        self.settings = settings or CommissionSettings()
        # Percentages keyed by tier name, as stored in commission_config
        self.configured_rates = {
            str(k).upper(): percent_to_rate(v) for k, v in (configured_rates or {}).items() if v is not None
        }

    def tier_rate(self, tier: Union[ProviderTier, str, None]) -> Decimal:
        tier = coerce_tier(tier)
        if tier.value in self.configured_rates:
            return self.configured_rates[tier.value]
        bucket = tier_bucket(tier)
        if bucket.value in self.configured_rates:
            return self.configured_rates[bucket.value]
        if bucket in self.settings.bucket_rates:
            return self.settings.bucket_rates[bucket]
        return self.settings.default_rate

    def resolve(
        self,
        tier: Union[ProviderTier, str, None],
        service_type: Union[ServiceType, str, None] = ServiceType.STANDARD,
    ) -> Decimal:
        """Effective rate as a fraction, always within [min_rate, max_rate]"""
        try:
            service_type = ServiceType(service_type or ServiceType.STANDARD)
        except ValueError:
            service_type = ServiceType.STANDARD

        override = self.settings.service_type_rates.get(service_type)
        rate = override if override is not None else self.tier_rate(tier)
        return self.settings.clamp(rate)
