"""Availability router - FastAPI endpoints for working hours, blocked time and slots"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Actor, ensure_provider_access, get_current_actor
from ...database import get_db
from .schemas import (
    AvailabilityResponse,
    AvailabilityUpdate,
    BlockedSlotCreate,
    BlockedSlotResponse,
    SlotsResponse,
)
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers/{provider_id}", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def _block_response(block) -> BlockedSlotResponse:
    return BlockedSlotResponse(
        id=block.id,
        date=block.date,
        startTime=block.start_time,
        endTime=block.end_time,
        reason=block.reason,
    )


# ============================================================================
# PUBLIC READS
# ============================================================================


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    provider_id: int,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get the provider's effective weekly availability"""
    return service.get_availability(provider_id)


@router.get("/slots", response_model=SlotsResponse)
async def get_available_slots(
    provider_id: int,
    day: date = Query(..., alias="date"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get open slot labels for a provider on a date"""
    return service.get_available_slots(provider_id, day)


# ============================================================================
# PROVIDER MANAGEMENT
# ============================================================================


@router.put("/availability", response_model=AvailabilityResponse)
async def set_availability(
    provider_id: int,
    data: AvailabilityUpdate,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Supersede the provider's weekly template"""
    ensure_provider_access(actor, provider_id)
    return service.set_availability(provider_id, data)


@router.get("/blocked-slots", response_model=list[BlockedSlotResponse])
async def list_blocked_slots(
    provider_id: int,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    ensure_provider_access(actor, provider_id)
    return [_block_response(b) for b in service.list_blocked_slots(provider_id)]


@router.post("/blocked-slots", response_model=BlockedSlotResponse, status_code=201)
async def add_blocked_slot(
    provider_id: int,
    data: BlockedSlotCreate,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Block a time range on a specific date"""
    ensure_provider_access(actor, provider_id)
    return _block_response(service.add_blocked_slot(provider_id, data))


@router.delete("/blocked-slots/{slot_id}", status_code=204)
async def remove_blocked_slot(
    provider_id: int,
    slot_id: str,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    ensure_provider_access(actor, provider_id)
    service.remove_blocked_slot(provider_id, slot_id)
