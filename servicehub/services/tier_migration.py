"""
One-time provider backfill

Legacy provider rows can lack a tier, performance metrics or an availability
template. This pass fills them in so business code can assume all three.
"""

import logging

from sqlalchemy.orm import Session

from ..domain.availability.repository import AvailabilityRepository
from ..domain.availability.service import create_default_availability
from ..domain.providers.service import BASELINE_PERFORMANCE_METRICS
from ..enums import ProviderTier
from ..models import Provider
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)


def backfill_provider_records(db: Session) -> dict:
    """
    Assign missing tiers, baseline metrics and default availability

    Returns:
        dict: Summary of rows touched
    """
    summary = {"providers": 0, "tiers_assigned": 0, "metrics_initialized": 0, "availability_created": 0}
    now = utcnow()

    try:
        for provider in db.query(Provider).order_by(Provider.id).all():
            summary["providers"] += 1

            if not provider.tier:
                provider.tier = (ProviderTier.PREMIUM if provider.is_premium else ProviderTier.STANDARD).value
                provider.tier_assigned_at = now
                summary["tiers_assigned"] += 1
                logger.info(f"✅ Provider {provider.id} assigned tier {provider.tier}")

            if not provider.performance_metrics:
                provider.performance_metrics = dict(BASELINE_PERFORMANCE_METRICS)
                summary["metrics_initialized"] += 1

            if AvailabilityRepository.get_availability(db, provider.id) is None:
                create_default_availability(db, provider.id)
                summary["availability_created"] += 1
                logger.info(f"✅ Default availability created for provider {provider.id}")

        db.commit()
    except Exception as e:
        logger.error(f"❌ Provider backfill failed: {str(e)}")
        db.rollback()
        raise

    logger.info(f"📊 Provider backfill summary: {summary}")
    return summary
