"""Commission service - Admin configuration of tier rates and rate resolution"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...enums import ProviderTier, ServiceType
from ...errors import InvalidCommissionRate, InvalidTransition
from ...models_commission import CommissionRateChange
from ...services.notification_service import COMMISSION_RATES_UPDATED, record_event
from .repository import CommissionRepository
from .resolver import SEED_TIER_RATES, CommissionRateResolver, CommissionSettings, rate_to_percent

logger = logging.getLogger(__name__)

MIN_RATE_PERCENT = 5
MAX_RATE_PERCENT = 50


def load_resolver(db: Session, settings: Optional[CommissionSettings] = None) -> CommissionRateResolver:
    """Resolver over the current configuration document (seed rates when none is stored)"""
    config = CommissionRepository.get_config(db)
    rates = config.rates if config else SEED_TIER_RATES
    return CommissionRateResolver(settings or CommissionSettings(), rates)


class CommissionService:
    """Service layer for commission configuration"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CommissionRepository()

    def get_rates(self) -> dict:
        config = self.repo.get_config(self.db)
        if not config:
            return {"rates": dict(SEED_TIER_RATES), "version": 0, "updatedBy": None, "updatedAt": None, "reason": None}
        return {
            "rates": {k: float(v) for k, v in config.rates.items()},
            "version": config.version,
            "updatedBy": config.updated_by,
            "updatedAt": config.updated_at,
            "reason": config.reason,
        }

    def update_rates(
        self,
        rates: dict,
        changed_by: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> dict:
        """
        Replace the tier rate document atomically

        Args:
            rates: Tier -> percentage for the tiers being changed
            changed_by: Admin identity recorded in the audit trail
            reason: Free-text reason recorded in the audit trail
            expected_version: Optimistic lock; defaults to the version just read

        Raises:
            InvalidCommissionRate: If any rate is outside [5, 50]
            InvalidTransition: If another admin changed the rates concurrently
        """
        incoming = {}
        for tier, percent in rates.items():
            tier_name = ProviderTier(tier).value
            if percent is None or not MIN_RATE_PERCENT <= float(percent) <= MAX_RATE_PERCENT:
                raise InvalidCommissionRate(
                    f"Commission rate for {tier_name} must be between {MIN_RATE_PERCENT}% and {MAX_RATE_PERCENT}%",
                    tier=tier_name,
                    rate=percent,
                )
            incoming[tier_name] = float(percent)

        current = self.get_rates()
        version = current["version"] if expected_version is None else expected_version
        if version != current["version"]:
            raise InvalidTransition(
                "Commission rates were changed by someone else; reload and retry",
                expected_version=version,
                current_version=current["version"],
            )

        new_rates = dict(current["rates"])
        new_rates.update(incoming)
        changed = {
            tier: (current["rates"].get(tier), percent)
            for tier, percent in incoming.items()
            if current["rates"].get(tier) != percent
        }
        if not changed:
            logger.info("ℹ️ Commission rate update contained no changes")
            return current

        try:
            if version == 0:
                self.repo.add_config(self.db, new_rates, changed_by, reason)
                new_version = 1
            else:
                if not self.repo.replace_rates(self.db, version, new_rates, changed_by, reason):
                    raise InvalidTransition(
                        "Commission rates were changed by someone else; reload and retry",
                        expected_version=version,
                    )
                new_version = version + 1

            for tier, (old, new) in changed.items():
                self.repo.add_rate_change(
                    self.db,
                    tier=tier,
                    old_rate=Decimal(str(old)) if old is not None else None,
                    new_rate=Decimal(str(new)),
                    changed_by=changed_by,
                    reason=reason,
                    config_version=new_version,
                )
            record_event(
                self.db,
                COMMISSION_RATES_UPDATED,
                "commission_config",
                new_version,
                {"changes": {t: {"old": o, "new": n} for t, (o, n) in changed.items()}, "changed_by": changed_by},
            )
            self.db.commit()
        except IntegrityError as e:
            # Concurrent first write of the configuration document
            self.db.rollback()
            raise InvalidTransition("Commission rates were changed by someone else; reload and retry") from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Commission rates updated by {changed_by} (version {new_version}): {changed}")
        return self.get_rates()

    def get_rate_history(self, tier: Optional[str] = None, limit: int = 100) -> list[CommissionRateChange]:
        return self.repo.get_rate_history(self.db, tier, limit)

    def quote_rate(self, tier: ProviderTier, service_type: ServiceType) -> dict:
        """Rate the resolver would apply right now"""
        rate = load_resolver(self.db).resolve(tier, service_type)
        return {
            "tier": tier.value,
            "serviceType": service_type.value,
            "rate": float(rate),
            "ratePercent": float(rate_to_percent(rate)),
        }
