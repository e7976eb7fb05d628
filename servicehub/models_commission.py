"""
Commission Configuration Models (admin-managed tier rates and their audit trail)
"""

from sqlalchemy import JSON, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from .database import Base

PROVIDER_TIERS_KEY = "provider_tiers"


class CommissionConfig(Base):
    """Current tier → percentage map, replaced as a whole document on every change"""

    __tablename__ = "commission_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(50), unique=True, nullable=False, default=PROVIDER_TIERS_KEY)
    rates = Column(JSON, nullable=False)  # {"NEW": 20.0, "VERIFIED": 18.0, ...} in percent
    version = Column(Integer, default=1, nullable=False)

    updated_by = Column(String(255), nullable=True)
    reason = Column(Text, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class CommissionRateChange(Base):
    """One row per tier whose rate changed in an admin update"""

    __tablename__ = "commission_rate_history"

    id = Column(Integer, primary_key=True, index=True)
    tier = Column(String(20), nullable=False, index=True)
    old_rate = Column(Numeric(5, 2), nullable=True)
    new_rate = Column(Numeric(5, 2), nullable=False)
    changed_by = Column(String(255), nullable=False)
    reason = Column(Text, nullable=True)
    config_version = Column(Integer, nullable=False)
    changed_at = Column(DateTime, server_default=func.now())
