"""Booking repository - Database operations for bookings and their audit trail"""

from datetime import date
from typing import Optional

from sqlalchemy import delete, func, update
from sqlalchemy.orm import Session

from ...models import Booking, BookingStatusLog


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_provider_bookings(
        db: Session, provider_id: int, day: Optional[date] = None, status: Optional[str] = None
    ) -> list[Booking]:
        query = db.query(Booking).filter(Booking.provider_id == provider_id)
        if day is not None:
            query = query.filter(Booking.date == day)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.date, Booking.time).all()

    @staticmethod
    def get_customer_bookings(db: Session, customer_email: str) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.customer_email == customer_email)
            .order_by(Booking.date.desc(), Booking.time.desc())
            .all()
        )

    @staticmethod
    def get_by_gateway_reference(db: Session, reference: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.gateway_reference == reference).first()

    @staticmethod
    def count_by_status(db: Session, provider_id: int) -> dict[str, int]:
        rows = (
            db.query(Booking.status, func.count(Booking.id))
            .filter(Booking.provider_id == provider_id)
            .group_by(Booking.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def invoiced_revenue(db: Session, provider_id: int):
        return (
            db.query(func.coalesce(func.sum(Booking.total_amount), 0))
            .filter(Booking.provider_id == provider_id, Booking.invoice_generated.is_(True))
            .scalar()
        )

    @staticmethod
    def add_booking(db: Session, **fields) -> Booking:
        """Stage a booking; the active-slot unique index fires on flush"""
        booking = Booking(**fields)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def compare_and_set(db: Session, booking_id: int, expected: dict, **values) -> bool:
        """Update the booking only if every column in `expected` still matches"""
        conditions = [Booking.id == booking_id]
        conditions.extend(getattr(Booking, column) == value for column, value in expected.items())
        result = db.execute(
            update(Booking)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def delete_if_status(db: Session, booking_id: int, status: str) -> bool:
        db.execute(delete(BookingStatusLog).where(BookingStatusLog.booking_id == booking_id))
        result = db.execute(
            delete(Booking)
            .where(Booking.id == booking_id, Booking.status == status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def add_status_log(db: Session, **fields) -> BookingStatusLog:
        entry = BookingStatusLog(**fields)
        db.add(entry)
        return entry

    @staticmethod
    def get_status_log(db: Session, booking_id: int) -> list[BookingStatusLog]:
        return (
            db.query(BookingStatusLog)
            .filter(BookingStatusLog.booking_id == booking_id)
            .order_by(BookingStatusLog.id)
            .all()
        )
