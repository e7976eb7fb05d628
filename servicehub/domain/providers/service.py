"""Provider service - Business logic for provider registration and tiers"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...enums import ProviderTier
from ...errors import ProviderNotFound
from ...models import Provider
from ...shared.timeutils import Clock, utcnow
from ..availability.service import create_default_availability
from .repository import ProviderRepository
from .schemas import ProviderCreate, ProviderTierUpdate

logger = logging.getLogger(__name__)

BASELINE_PERFORMANCE_METRICS = {
    "completed_bookings": 0,
    "cancelled_bookings": 0,
    "average_rating": None,
    "total_revenue": "0.00",
}


class ProviderService:
    """Service layer for provider business logic"""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.repo = ProviderRepository()

    def get_provider(self, provider_id: int) -> Provider:
        provider = self.repo.get_provider(self.db, provider_id)
        if not provider:
            raise ProviderNotFound(provider_id=provider_id)
        return provider

    def register_provider(self, data: ProviderCreate) -> Provider:
        """Create the provider together with its default availability template"""
        logger.info(f"📥 Registering provider {data.email}")

        if self.repo.get_provider_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="A provider with this email already exists")

        try:
            provider = self.repo.add_provider(
                self.db,
                email=data.email,
                business_name=data.businessName,
                tier=data.tier.value,
                is_premium=data.tier in (ProviderTier.PREMIUM, ProviderTier.ENTERPRISE),
                tier_assigned_at=self.clock(),
                performance_metrics=dict(BASELINE_PERFORMANCE_METRICS),
            )
            create_default_availability(self.db, provider.id)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="A provider with this email already exists") from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(provider)
        logger.info(f"✅ Provider {provider.id} registered with tier {provider.tier}")
        return provider

    def set_tier(self, provider_id: int, data: ProviderTierUpdate) -> Provider:
        """Admin tier assignment; affects future invoices only"""
        provider = self.get_provider(provider_id)
        old_tier = provider.tier
        is_premium = data.isPremium
        if is_premium is None:
            is_premium = data.tier in (ProviderTier.PREMIUM, ProviderTier.ENTERPRISE)

        provider = self.repo.update_provider(
            self.db,
            provider,
            tier=data.tier.value,
            is_premium=is_premium,
            tier_assigned_at=self.clock(),
        )
        logger.info(f"✅ Provider {provider_id} tier changed {old_tier} → {provider.tier}")
        return provider
