"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from ...enums import BookingAction
from ...shared.timeutils import normalize_time_label


class BookingCreate(BaseModel):
    """Schema for a customer booking request"""

    providerId: int
    date: date
    time: str
    customerName: Optional[str] = None
    serviceDetails: str = ""
    isEmergency: bool = False
    isRecurring: bool = False
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return normalize_time_label(v)


class TransitionRequest(BaseModel):
    action: BookingAction
    reason: Optional[str] = None


class RescheduleRequest(BaseModel):
    date: date
    time: str
    reason: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return normalize_time_label(v)


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    providerId: int
    customerEmail: str
    customerName: Optional[str] = None
    date: date
    time: str
    status: str
    serviceType: str
    serviceDetails: Optional[str] = None
    notes: Optional[str] = None
    paymentMethod: Optional[str] = None
    paymentStatus: str
    totalAmount: Decimal
    platformCommission: Decimal
    providerPayout: Decimal
    commissionOwed: Decimal
    invoiceGenerated: bool
    invoiceId: Optional[str] = None
    serviceCompletionDate: Optional[datetime] = None
    rescheduleHistory: list[dict] = []
    allowedActions: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusLogResponse(BaseModel):
    action: str
    previousStatus: Optional[str] = None
    newStatus: str
    changedBy: Optional[str] = None
    reason: Optional[str] = None
    changedAt: Optional[datetime] = None


class BookingStatsResponse(BaseModel):
    providerId: int
    total: int
    byStatus: dict[str, int]
    upcoming: int
    invoicedRevenue: Decimal
