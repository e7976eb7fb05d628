"""Enumerated states and classifications stored as strings in the database"""

from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Statuses that hold a slot; at most one booking per (provider, date, time) may be in one
ACTIVE_BOOKING_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.IN_PROGRESS.value,
)
TERMINAL_BOOKING_STATUSES = (BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value)


class BookingAction(str, Enum):
    CONFIRM = "confirm"
    DECLINE = "decline"
    CANCEL = "cancel"
    START = "start"
    COMPLETE = "complete"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    # Paid through the payment gateway; commission is deducted at source
    ELECTRONIC = "ELECTRONIC"


class BookingPaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class TransactionPaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class CommissionStatus(str, Enum):
    PENDING = "PENDING"
    COLLECTED = "COLLECTED"
    OVERDUE = "OVERDUE"


class ProviderTier(str, Enum):
    NEW = "NEW"
    VERIFIED = "VERIFIED"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    ENTERPRISE = "ENTERPRISE"


class ServiceType(str, Enum):
    STANDARD = "STANDARD"
    EMERGENCY = "EMERGENCY"
    RECURRING = "RECURRING"


class ActorRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"
