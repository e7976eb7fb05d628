"""Provider router - FastAPI endpoints for provider registration and tiers"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import Actor, get_current_actor, require_admin
from ...database import get_db
from ...enums import ActorRole
from ...models import Provider
from .schemas import ProviderCreate, ProviderResponse, ProviderTierUpdate
from .service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["Providers"])


def get_provider_service(db: Session = Depends(get_db)) -> ProviderService:
    """Dependency injection for ProviderService"""
    return ProviderService(db)


def _provider_response(p: Provider) -> ProviderResponse:
    return ProviderResponse(
        id=p.id,
        email=p.email,
        businessName=p.business_name,
        tier=p.tier,
        isPremium=bool(p.is_premium),
        tierAssignedAt=p.tier_assigned_at,
        performanceMetrics=p.performance_metrics,
        created_at=p.created_at,
    )


@router.post("", response_model=ProviderResponse, status_code=201)
async def register_provider(
    data: ProviderCreate,
    actor: Actor = Depends(get_current_actor),
    service: ProviderService = Depends(get_provider_service),
):
    """Register a provider (self-registration or by an admin)"""
    if not actor.is_admin:
        if actor.role != ActorRole.PROVIDER or actor.email != data.email:
            raise HTTPException(status_code=403, detail="Providers can only register themselves")
    return _provider_response(service.register_provider(data))


@router.get("/{provider_id}", response_model=ProviderResponse)
async def get_provider(
    provider_id: int,
    service: ProviderService = Depends(get_provider_service),
):
    return _provider_response(service.get_provider(provider_id))


@router.put("/{provider_id}/tier", response_model=ProviderResponse)
async def set_provider_tier(
    provider_id: int,
    data: ProviderTierUpdate,
    admin: Actor = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
):
    """Assign a provider's commission tier (admin only)"""
    logger.info(f"📥 Admin {admin.email} setting tier for provider {provider_id}")
    return _provider_response(service.set_tier(provider_id, data))
