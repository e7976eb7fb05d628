"""Commission domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...enums import ProviderTier


class CommissionRatesUpdate(BaseModel):
    """Admin update of tier rates, in percent"""

    rates: dict[ProviderTier, float]
    reason: Optional[str] = None
    expectedVersion: Optional[int] = None

    @field_validator("rates")
    @classmethod
    def validate_not_empty(cls, v):
        if not v:
            raise ValueError("At least one tier rate is required")
        return v


class CommissionRatesResponse(BaseModel):
    rates: dict[str, float]
    version: int
    updatedBy: Optional[str] = None
    updatedAt: Optional[datetime] = None
    reason: Optional[str] = None


class RateChangeResponse(BaseModel):
    tier: str
    oldRate: Optional[float] = None
    newRate: float
    changedBy: str
    changedAt: Optional[datetime] = None
    reason: Optional[str] = None
    configVersion: int


class RateQuoteResponse(BaseModel):
    tier: str
    serviceType: str
    rate: float
    ratePercent: float
