"""Booking router - FastAPI endpoints for the booking lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import Actor, ensure_provider_access, get_current_actor
from ...config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW_SECONDS
from ...database import get_db
from ...enums import ActorRole, BookingStatus
from ...models import Booking
from ...rate_limiter import check_rate_limit
from .schemas import (
    BookingCreate,
    BookingResponse,
    BookingStatsResponse,
    RescheduleRequest,
    StatusLogResponse,
    TransitionRequest,
)
from .service import BookingService
from .state_machine import allowed_actions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def booking_response(b: Booking) -> BookingResponse:
    return BookingResponse(
        id=b.id,
        providerId=b.provider_id,
        customerEmail=b.customer_email,
        customerName=b.customer_name,
        date=b.date,
        time=b.time,
        status=b.status,
        serviceType=b.service_type,
        serviceDetails=b.service_details,
        notes=b.notes,
        paymentMethod=b.payment_method,
        paymentStatus=b.payment_status,
        totalAmount=b.total_amount,
        platformCommission=b.platform_commission,
        providerPayout=b.provider_payout,
        commissionOwed=b.commission_owed,
        invoiceGenerated=bool(b.invoice_generated),
        invoiceId=b.invoice_id,
        serviceCompletionDate=b.service_completion_date,
        rescheduleHistory=b.reschedule_history or [],
        allowedActions=[a.value for a in allowed_actions(b.status)],
        created_at=b.created_at,
        updated_at=b.updated_at,
    )


# ============================================================================
# CUSTOMER OPERATIONS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=201)
async def request_booking(
    data: BookingCreate,
    request: Request,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Request a booking for a provider slot"""
    if actor.role != ActorRole.CUSTOMER:
        raise HTTPException(status_code=403, detail="Only customers can request bookings")
    check_rate_limit(
        request,
        f"booking:{actor.email}",
        max_requests=BOOKING_RATE_LIMIT,
        window_seconds=BOOKING_RATE_WINDOW_SECONDS,
    )
    return booking_response(service.request_booking(data, actor.email))


@router.get("/mine", response_model=list[BookingResponse])
async def list_my_bookings(
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings made by the current customer"""
    return [booking_response(b) for b in service.list_customer_bookings(actor.email)]


@router.delete("/{booking_id}", status_code=204)
async def delete_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Delete a booking that has not been confirmed yet (customer only)"""
    service.delete_booking(booking_id, actor)


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id)
    service.authorize(booking, actor)
    return booking_response(booking)


@router.post("/{booking_id}/transitions", response_model=BookingResponse)
async def transition_booking(
    booking_id: int,
    data: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Apply confirm / decline / cancel / start / complete"""
    return booking_response(service.transition(booking_id, data.action, actor, data.reason))


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: int,
    data: RescheduleRequest,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return booking_response(service.reschedule(booking_id, data.date, data.time, actor, data.reason))


@router.get("/{booking_id}/history", response_model=list[StatusLogResponse])
async def get_booking_history(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Status transitions and reschedules, oldest first"""
    service.authorize(service.get_booking(booking_id), actor)
    return [
        StatusLogResponse(
            action=entry.action,
            previousStatus=entry.previous_status,
            newStatus=entry.new_status,
            changedBy=entry.changed_by,
            reason=entry.reason,
            changedAt=entry.changed_at,
        )
        for entry in service.get_status_log(booking_id)
    ]


# ============================================================================
# PROVIDER VIEWS
# ============================================================================


@router.get("/provider/{provider_id}", response_model=list[BookingResponse])
async def list_provider_bookings(
    provider_id: int,
    day: Optional[date] = Query(None, alias="date"),
    status: Optional[BookingStatus] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    ensure_provider_access(actor, provider_id)
    return [booking_response(b) for b in service.list_provider_bookings(provider_id, day, status)]


@router.get("/provider/{provider_id}/stats", response_model=BookingStatsResponse)
async def provider_booking_stats(
    provider_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    ensure_provider_access(actor, provider_id)
    return service.provider_stats(provider_id)
