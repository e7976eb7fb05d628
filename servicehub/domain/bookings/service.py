"""Booking service - Request, transition, reschedule and delete bookings"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import Actor
from ...enums import ACTIVE_BOOKING_STATUSES, ActorRole, BookingAction, BookingStatus
from ...errors import (
    BookingNotFound,
    InvalidTransition,
    NotBookableError,
    PastDateError,
    ProviderNotFound,
    SlotConflict,
)
from ...models import Booking
from ...services.notification_service import (
    BOOKING_DELETED,
    BOOKING_REQUESTED,
    BOOKING_RESCHEDULED,
    BOOKING_STATUS_CHANGED,
    record_event,
)
from ...services.service_classifier import classify_service
from ...shared.money import to_money
from ...shared.timeutils import Clock, combine, utcnow
from ..availability.allocator import SlotAllocator
from ..providers.repository import ProviderRepository
from .repository import BookingRepository
from .schemas import BookingCreate
from .state_machine import PROVIDER_ONLY_ACTIONS, can_reschedule, next_status

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for booking lifecycle"""

    def __init__(self, db: Session, clock: Clock = utcnow, allocator: Optional[SlotAllocator] = None):
        self.db = db
        self.clock = clock
        self.repo = BookingRepository()
        self.allocator = allocator or SlotAllocator(db, clock=clock)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise BookingNotFound(booking_id=booking_id)
        return booking

    def authorize(self, booking: Booking, actor: Actor, customer_allowed: bool = True) -> None:
        """Admins and the owning provider always; the booking's customer when allowed"""
        if actor.is_admin or actor.owns_provider(booking.provider_id):
            return
        if customer_allowed and actor.role == ActorRole.CUSTOMER and actor.email == booking.customer_email:
            return
        logger.warning(f"⚠️ {actor.email} denied access to booking {booking.id}")
        raise HTTPException(status_code=403, detail="Not allowed to manage this booking")

    def _check_slot(self, provider_id: int, day: date, label: str, exclude_booking_id: Optional[int] = None):
        """Past date, then grid/bookability, then conflicts with active bookings"""
        if day < self.allocator.today(provider_id):
            raise PastDateError(date=day.isoformat())
        if not self.allocator.is_slot_offered(provider_id, day, label):
            raise NotBookableError(
                "The provider is not available at the requested time",
                date=day.isoformat(),
                time=label,
            )
        if self.allocator.is_slot_held(provider_id, day, label, exclude_booking_id):
            raise SlotConflict("Time slot no longer available", date=day.isoformat(), time=label)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def request_booking(self, data: BookingCreate, customer_email: str) -> Booking:
        """Create a PENDING booking holding the requested slot"""
        logger.info(f"📥 Booking request for provider {data.providerId} on {data.date} {data.time}")

        if not ProviderRepository.get_provider(self.db, data.providerId):
            raise ProviderNotFound(provider_id=data.providerId)

        self._check_slot(data.providerId, data.date, data.time)

        now = self.clock()
        service_type = classify_service(
            details=data.serviceDetails,
            is_emergency=data.isEmergency,
            is_recurring=data.isRecurring,
            scheduled_at=combine(data.date, data.time),
            requested_at=self.allocator.now(data.providerId),
        )

        try:
            booking = self.repo.add_booking(
                self.db,
                provider_id=data.providerId,
                customer_email=customer_email,
                customer_name=data.customerName,
                date=data.date,
                time=data.time,
                status=BookingStatus.PENDING.value,
                service_details=data.serviceDetails,
                is_emergency=data.isEmergency,
                is_recurring=data.isRecurring,
                service_type=service_type.value,
                notes=data.notes or "",
                payment_status="PENDING",
                total_amount=to_money(0),
                platform_commission=to_money(0),
                provider_payout=to_money(0),
                commission_owed=to_money(0),
                invoice_generated=False,
                reschedule_history=[],
                created_at=now,
                updated_at=now,
                updated_by=customer_email,
            )
            self.repo.add_status_log(
                self.db,
                booking_id=booking.id,
                action="request",
                previous_status=None,
                new_status=BookingStatus.PENDING.value,
                changed_by=customer_email,
                changed_at=now,
            )
            record_event(
                self.db,
                BOOKING_REQUESTED,
                "booking",
                booking.id,
                {
                    "booking_id": booking.id,
                    "provider_id": booking.provider_id,
                    "customer_email": customer_email,
                    "date": booking.date,
                    "time": booking.time,
                    "service_type": service_type,
                },
            )
            self.db.commit()
        except IntegrityError as e:
            # Another request took the slot between the check and the insert
            self.db.rollback()
            logger.warning(f"⚠️ Slot race lost for provider {data.providerId} {data.date} {data.time}")
            raise SlotConflict("Time slot no longer available", date=data.date.isoformat(), time=data.time) from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking.id} created ({service_type.value})")
        return booking

    def transition(self, booking_id: int, action: BookingAction, actor: Actor, reason: Optional[str] = None) -> Booking:
        """Apply a lifecycle action atomically; InvalidTransition on illegal pairs or lost races"""
        action = BookingAction(action)
        booking = self.get_booking(booking_id)
        self.authorize(booking, actor, customer_allowed=action not in PROVIDER_ONLY_ACTIONS)

        current = BookingStatus(booking.status)
        target = next_status(current, action)
        now = self.clock()

        values = {"status": target.value, "updated_at": now, "updated_by": actor.email}
        if action == BookingAction.COMPLETE:
            values["service_completion_date"] = now

        try:
            if not self.repo.compare_and_set(self.db, booking_id, {"status": current.value}, **values):
                raise InvalidTransition(
                    "Booking was changed by another request; reload and retry",
                    status=current.value,
                    action=action.value,
                )
            self.repo.add_status_log(
                self.db,
                booking_id=booking_id,
                action=action.value,
                previous_status=current.value,
                new_status=target.value,
                changed_by=actor.email,
                reason=reason,
                changed_at=now,
            )
            record_event(
                self.db,
                BOOKING_STATUS_CHANGED,
                "booking",
                booking_id,
                {
                    "booking_id": booking_id,
                    "provider_id": booking.provider_id,
                    "customer_email": booking.customer_email,
                    "action": action,
                    "previous_status": current,
                    "new_status": target,
                    "reason": reason,
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking_id}: {current.value} → {target.value} by {actor.email}")
        return booking

    def reschedule(
        self, booking_id: int, new_date: date, new_time: str, actor: Actor, reason: Optional[str] = None
    ) -> Booking:
        """Move a PENDING or CONFIRMED booking to another slot"""
        booking = self.get_booking(booking_id)
        self.authorize(booking, actor)

        current = BookingStatus(booking.status)
        if not can_reschedule(current):
            raise InvalidTransition(
                f"Cannot reschedule a booking that is {current.value.lower().replace('_', ' ')}",
                status=current.value,
                action="reschedule",
            )

        if new_date < self.allocator.today(booking.provider_id):
            raise PastDateError(date=new_date.isoformat())
        if booking.date == new_date and booking.time == new_time:
            logger.info(f"ℹ️ Booking {booking_id} rescheduled onto its own slot, nothing to do")
            return booking
        self._check_slot(booking.provider_id, new_date, new_time, exclude_booking_id=booking_id)

        now = self.clock()
        entry = {
            "from_date": booking.date.isoformat(),
            "from_time": booking.time,
            "to_date": new_date.isoformat(),
            "to_time": new_time,
            "reason": reason,
            "rescheduled_by": actor.email,
            "rescheduled_at": now.isoformat(),
        }
        history = list(booking.reschedule_history or []) + [entry]
        old_date, old_time = booking.date, booking.time

        try:
            moved = self.repo.compare_and_set(
                self.db,
                booking_id,
                {"status": current.value, "date": old_date, "time": old_time},
                date=new_date,
                time=new_time,
                reschedule_history=history,
                updated_at=now,
                updated_by=actor.email,
            )
            if not moved:
                raise InvalidTransition(
                    "Booking was changed by another request; reload and retry",
                    status=current.value,
                    action="reschedule",
                )
            self.repo.add_status_log(
                self.db,
                booking_id=booking_id,
                action="reschedule",
                previous_status=current.value,
                new_status=current.value,
                changed_by=actor.email,
                reason=reason,
                changed_at=now,
            )
            record_event(self.db, BOOKING_RESCHEDULED, "booking", booking_id, {"booking_id": booking_id, **entry})
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise SlotConflict("Time slot no longer available", date=new_date.isoformat(), time=new_time) from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"✅ Booking {booking_id} rescheduled {old_date} {old_time} → {new_date} {new_time}")
        return booking

    def delete_booking(self, booking_id: int, actor: Actor) -> None:
        """Customer-initiated physical delete, only before confirmation"""
        booking = self.get_booking(booking_id)
        if actor.role != ActorRole.CUSTOMER or actor.email != booking.customer_email:
            raise HTTPException(status_code=403, detail="Only the customer can delete their booking")
        if booking.status != BookingStatus.PENDING.value:
            raise InvalidTransition(
                "Only pending bookings can be deleted", status=booking.status, action="delete"
            )

        provider_id = booking.provider_id
        try:
            if not self.repo.delete_if_status(self.db, booking_id, BookingStatus.PENDING.value):
                raise InvalidTransition(
                    "Only pending bookings can be deleted", status=booking.status, action="delete"
                )
            record_event(
                self.db,
                BOOKING_DELETED,
                "booking",
                booking_id,
                {"booking_id": booking_id, "provider_id": provider_id, "customer_email": actor.email},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"🗑️ Booking {booking_id} deleted by customer")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_provider_bookings(
        self, provider_id: int, day: Optional[date] = None, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        return self.repo.get_provider_bookings(self.db, provider_id, day, status.value if status else None)

    def list_customer_bookings(self, customer_email: str) -> list[Booking]:
        return self.repo.get_customer_bookings(self.db, customer_email)

    def get_status_log(self, booking_id: int):
        self.get_booking(booking_id)
        return self.repo.get_status_log(self.db, booking_id)

    def provider_stats(self, provider_id: int) -> dict:
        by_status = self.repo.count_by_status(self.db, provider_id)
        today = self.allocator.today(provider_id)
        upcoming = sum(
            1
            for b in self.repo.get_provider_bookings(self.db, provider_id)
            if b.status in ACTIVE_BOOKING_STATUSES and b.date >= today
        )
        return {
            "providerId": provider_id,
            "total": sum(by_status.values()),
            "byStatus": {s.value: by_status.get(s.value, 0) for s in BookingStatus},
            "upcoming": upcoming,
            "invoicedRevenue": to_money(self.repo.invoiced_revenue(self.db, provider_id) or 0),
        }
