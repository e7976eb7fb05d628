"""
Invoice and Payment Transaction Models for Commission Settlement
"""

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from .database import Base


class Invoice(Base):
    """Immutable financial summary of a settled booking"""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    # One invoice per booking - second writer fails on this constraint
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)

    customer_email = Column(String(255), nullable=False)
    customer_name = Column(String(255), nullable=True)
    service_description = Column(Text, nullable=True)
    service_date = Column(Date, nullable=False)

    # Financial split (snapshot - later rate changes never touch it)
    total_amount = Column(Numeric(12, 2), nullable=False)
    commission_rate = Column(Numeric(6, 4), nullable=False)
    platform_commission = Column(Numeric(12, 2), nullable=False)
    provider_payout = Column(Numeric(12, 2), nullable=False)
    commission_owed = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), nullable=False)
    provider_tier = Column(String(20), nullable=False)
    service_type = Column(String(20), nullable=False)
    currency = Column(String(10), default="GHS")
    notes = Column(Text, nullable=True)

    issued_at = Column(DateTime, server_default=func.now())


class PaymentTransaction(Base):
    """Ledger entry for a settled booking (audit record, never deleted)"""

    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    invoice_id = Column(String(50), nullable=False, index=True)  # Invoice number
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    customer_id = Column(String(255), nullable=False)  # Customer email

    total_amount = Column(Numeric(12, 2), nullable=False)
    platform_commission = Column(Numeric(12, 2), nullable=False)
    provider_payout = Column(Numeric(12, 2), nullable=False)
    commission_owed = Column(Numeric(12, 2), nullable=False)
    commission_rate = Column(Numeric(6, 4), nullable=False)

    payment_method = Column(String(20), nullable=False)  # CASH, ELECTRONIC
    payment_status = Column(String(20), default="PENDING", nullable=False)  # PENDING, COMPLETED, FAILED, REFUNDED
    commission_status = Column(String(20), default="PENDING", nullable=False, index=True)  # PENDING, COLLECTED, OVERDUE

    # Gateway reference fields (opaque to settlement)
    gateway_reference = Column(String(100), nullable=True, index=True)
    gateway_transaction_id = Column(String(100), nullable=True)
    gateway_fees = Column(Numeric(12, 2), default=0)

    # Commission tracking for cash payments
    commission_due_date = Column(DateTime, nullable=True)
    commission_paid_date = Column(DateTime, nullable=True)
    commission_payment_method = Column(String(50), nullable=True)
    commission_payment_reference = Column(String(100), nullable=True)

    currency = Column(String(10), default="GHS")
    notes = Column(Text, nullable=True)
    extra = Column(JSON, default=dict)  # Tier and service type used

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
