"""Commission router - Admin configuration surface for tier rates"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Actor, get_current_actor, require_admin
from ...database import get_db
from ...enums import ProviderTier, ServiceType
from .schemas import CommissionRatesResponse, CommissionRatesUpdate, RateChangeResponse, RateQuoteResponse
from .service import CommissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commission", tags=["Commission"])


def get_commission_service(db: Session = Depends(get_db)) -> CommissionService:
    """Dependency injection for CommissionService"""
    return CommissionService(db)


@router.get("/rates", response_model=CommissionRatesResponse)
async def get_rates(
    actor: Actor = Depends(get_current_actor),
    service: CommissionService = Depends(get_commission_service),
):
    """Current tier rates (percent)"""
    return service.get_rates()


@router.put("/rates", response_model=CommissionRatesResponse)
async def update_rates(
    data: CommissionRatesUpdate,
    admin: Actor = Depends(require_admin),
    service: CommissionService = Depends(get_commission_service),
):
    """Replace tier rates; every rate must be within [5, 50] percent"""
    logger.info(f"📥 Commission rate update from {admin.email}")
    return service.update_rates(
        {tier.value: percent for tier, percent in data.rates.items()},
        changed_by=admin.email,
        reason=data.reason,
        expected_version=data.expectedVersion,
    )


@router.get("/rates/history", response_model=list[RateChangeResponse])
async def get_rate_history(
    tier: Optional[ProviderTier] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    admin: Actor = Depends(require_admin),
    service: CommissionService = Depends(get_commission_service),
):
    """Audit trail of rate changes, newest first"""
    return [
        RateChangeResponse(
            tier=c.tier,
            oldRate=float(c.old_rate) if c.old_rate is not None else None,
            newRate=float(c.new_rate),
            changedBy=c.changed_by,
            changedAt=c.changed_at,
            reason=c.reason,
            configVersion=c.config_version,
        )
        for c in service.get_rate_history(tier.value if tier else None, limit)
    ]


@router.get("/rates/quote", response_model=RateQuoteResponse)
async def quote_rate(
    tier: ProviderTier = Query(...),
    service_type: ServiceType = Query(ServiceType.STANDARD, alias="serviceType"),
    actor: Actor = Depends(get_current_actor),
    service: CommissionService = Depends(get_commission_service),
):
    """Effective rate for a tier and service type"""
    return service.quote_rate(tier, service_type)
