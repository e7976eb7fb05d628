import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .enums import ACTIVE_BOOKING_STATUSES

_ACTIVE_STATUS_SQL = "status IN ({})".format(", ".join(f"'{s}'" for s in ACTIVE_BOOKING_STATUSES))


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class Provider(Base):
    """Service provider (business) that accepts bookings"""

    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    business_name = Column(String(255), nullable=False)
    # NEW, VERIFIED, STANDARD, PREMIUM, ENTERPRISE - null only on legacy rows before migration
    tier = Column(String(20), nullable=True)
    is_premium = Column(Boolean, default=False, nullable=False)  # Admin-promoted
    tier_assigned_at = Column(DateTime, nullable=True)
    performance_metrics = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    availability = relationship(
        "ProviderAvailability", back_populates="provider", uselist=False
    )
    bookings = relationship("Booking", back_populates="provider")


class ProviderAvailability(Base):
    """Weekly working-hour template for a provider (superseded in place, never deleted)"""

    __tablename__ = "provider_availability"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), unique=True, nullable=False)
    # {"monday": {"enabled": true, "start": "09:00", "end": "17:00"}, ...}
    working_hours = Column(JSON, nullable=False)
    slot_duration_minutes = Column(Integer, default=60, nullable=False)
    buffer_minutes = Column(Integer, default=0, nullable=False)
    timezone = Column(String(64), nullable=True)
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("Provider", back_populates="availability")


class BlockedSlot(Base):
    """Ad-hoc blocked time range on a specific date"""

    __tablename__ = "blocked_slots"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    reason = Column(String(255), default="Unavailable")

    created_at = Column(DateTime, server_default=func.now())


class Booking(Base):
    """Customer booking of a provider slot"""

    __tablename__ = "bookings"
    __table_args__ = (
        # No double-booking: one active booking per provider slot
        Index(
            "uq_bookings_active_slot",
            "provider_id",
            "date",
            "time",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_name = Column(String(255), nullable=True)

    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # Canonical HH:MM slot label

    # PENDING → CONFIRMED → IN_PROGRESS → COMPLETED, or CANCELLED
    status = Column(String(20), default="PENDING", nullable=False, index=True)

    # Service description and classification (classified once, at request time)
    service_details = Column(Text, default="")
    is_emergency = Column(Boolean, default=False, nullable=False)
    is_recurring = Column(Boolean, default=False, nullable=False)
    service_type = Column(String(20), default="STANDARD", nullable=False)
    notes = Column(Text, default="")

    # Payment and settlement
    payment_method = Column(String(20), nullable=True)  # CASH, ELECTRONIC - chosen at invoicing
    payment_status = Column(String(20), default="PENDING", nullable=False)  # PENDING, PAID, REFUNDED
    total_amount = Column(Numeric(12, 2), default=0, nullable=False)
    platform_commission = Column(Numeric(12, 2), default=0, nullable=False)  # ELECTRONIC only
    provider_payout = Column(Numeric(12, 2), default=0, nullable=False)
    commission_owed = Column(Numeric(12, 2), default=0, nullable=False)  # CASH only
    invoice_generated = Column(Boolean, default=False, nullable=False)
    invoice_id = Column(String(50), nullable=True)  # Invoice number
    gateway_reference = Column(String(100), nullable=True, index=True)
    service_completion_date = Column(DateTime, nullable=True)

    reschedule_history = Column(JSON, default=list)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    updated_by = Column(String(255), nullable=True)

    provider = relationship("Provider", back_populates="bookings")


class BookingStatusLog(Base):
    """Audit trail of booking transitions and reschedules"""

    __tablename__ = "booking_status_log"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(20), nullable=False)
    previous_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(255), nullable=True)
    reason = Column(Text, nullable=True)
    changed_at = Column(DateTime, server_default=func.now())


class OutboxEvent(Base):
    """Event awaiting delivery to the notification collaborator"""

    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(64), nullable=False, index=True)
    aggregate_type = Column(String(32), nullable=False)
    aggregate_id = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=False)

    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    dispatched_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
