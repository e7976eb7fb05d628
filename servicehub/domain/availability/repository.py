"""Availability repository - Database operations for working hours and blocked time"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...enums import ACTIVE_BOOKING_STATUSES
from ...models import BlockedSlot, Booking, ProviderAvailability


class AvailabilityRepository:
    """Repository for availability database operations"""

    @staticmethod
    def get_availability(db: Session, provider_id: int) -> Optional[ProviderAvailability]:
        return (
            db.query(ProviderAvailability)
            .filter(ProviderAvailability.provider_id == provider_id)
            .first()
        )

    @staticmethod
    def add_availability(db: Session, provider_id: int, **fields) -> ProviderAvailability:
        """Stage a new availability record (caller commits)"""
        availability = ProviderAvailability(provider_id=provider_id, version=1, **fields)
        db.add(availability)
        db.flush()
        return availability

    @staticmethod
    def get_blocked_slots(
        db: Session, provider_id: int, day: Optional[date] = None
    ) -> list[BlockedSlot]:
        """Blocks for a provider, ordered by (date, start_time)"""
        query = db.query(BlockedSlot).filter(BlockedSlot.provider_id == provider_id)
        if day is not None:
            query = query.filter(BlockedSlot.date == day)
        return query.order_by(BlockedSlot.date, BlockedSlot.start_time).all()

    @staticmethod
    def get_blocked_slot(db: Session, slot_id: str) -> Optional[BlockedSlot]:
        return db.query(BlockedSlot).filter(BlockedSlot.id == slot_id).first()

    @staticmethod
    def create_blocked_slot(db: Session, provider_id: int, **fields) -> BlockedSlot:
        block = BlockedSlot(provider_id=provider_id, **fields)
        db.add(block)
        db.commit()
        db.refresh(block)
        return block

    @staticmethod
    def delete_blocked_slot(db: Session, block: BlockedSlot) -> None:
        db.delete(block)
        db.commit()

    @staticmethod
    def get_held_slot_labels(
        db: Session, provider_id: int, day: date, exclude_booking_id: Optional[int] = None
    ) -> set[str]:
        """Slot labels held by active bookings for a provider on a date"""
        query = db.query(Booking.time).filter(
            Booking.provider_id == provider_id,
            Booking.date == day,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return {row.time for row in query.all()}
