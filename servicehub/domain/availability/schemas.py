"""Availability domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.timeutils import WEEKDAYS, normalize_time_label, provider_zone


class DayHours(BaseModel):
    """Working window for one weekday"""

    enabled: bool = False
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v):
        return normalize_time_label(v)


class AvailabilityUpdate(BaseModel):
    """Schema for superseding a provider's weekly template"""

    workingHours: dict[str, DayHours]
    slotDuration: int = Field(60, gt=0, le=24 * 60)
    bufferTime: int = Field(0, ge=0, le=24 * 60)
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v:
            provider_zone(v.strip())
            return v.strip()
        return None

    @field_validator("workingHours")
    @classmethod
    def validate_weekdays(cls, v):
        normalized = {}
        for key, hours in v.items():
            day = key.strip().lower()
            if day not in WEEKDAYS:
                raise ValueError(f"Unknown weekday: {key}")
            normalized[day] = hours
        return normalized


class AvailabilityResponse(BaseModel):
    providerId: int
    configured: bool
    workingHours: dict[str, DayHours]
    slotDuration: int
    bufferTime: int
    timezone: Optional[str] = None
    version: Optional[int] = None


class BlockedSlotCreate(BaseModel):
    """Schema for blocking a time range on a date"""

    date: date
    startTime: str
    endTime: str
    reason: Optional[str] = "Unavailable"

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return normalize_time_label(v)


class BlockedSlotResponse(BaseModel):
    id: str
    date: date
    startTime: str
    endTime: str
    reason: Optional[str] = None


class SlotsResponse(BaseModel):
    providerId: int
    date: date
    bookable: bool
    slots: list[str]
