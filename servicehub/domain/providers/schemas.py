"""Provider domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...enums import ProviderTier
from ...shared.validators import validate_email


class ProviderCreate(BaseModel):
    """Schema for registering a provider"""

    email: str
    businessName: str
    tier: ProviderTier = ProviderTier.NEW

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)

    @field_validator("businessName")
    @classmethod
    def validate_business_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Business name is required")
        return v.strip()


class ProviderTierUpdate(BaseModel):
    """Admin tier assignment"""

    tier: ProviderTier
    isPremium: Optional[bool] = None


class ProviderResponse(BaseModel):
    id: int
    email: str
    businessName: str
    tier: Optional[str] = None
    isPremium: bool = False
    tierAssignedAt: Optional[datetime] = None
    performanceMetrics: Optional[dict] = None
    created_at: Optional[datetime] = None
