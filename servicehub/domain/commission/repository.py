"""Commission repository - Database operations for tier rate configuration"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ...models_commission import PROVIDER_TIERS_KEY, CommissionConfig, CommissionRateChange


class CommissionRepository:
    """Repository for commission configuration database operations"""

    @staticmethod
    def get_config(db: Session, key: str = PROVIDER_TIERS_KEY) -> Optional[CommissionConfig]:
        return db.query(CommissionConfig).filter(CommissionConfig.key == key).first()

    @staticmethod
    def add_config(db: Session, rates: dict, updated_by: str, reason: Optional[str]) -> CommissionConfig:
        config = CommissionConfig(
            key=PROVIDER_TIERS_KEY, rates=rates, version=1, updated_by=updated_by, reason=reason
        )
        db.add(config)
        db.flush()
        return config

    @staticmethod
    def replace_rates(
        db: Session, expected_version: int, rates: dict, updated_by: str, reason: Optional[str]
    ) -> bool:
        """Whole-document replace guarded by version; False when another writer won"""
        result = db.execute(
            update(CommissionConfig)
            .where(
                CommissionConfig.key == PROVIDER_TIERS_KEY,
                CommissionConfig.version == expected_version,
            )
            .values(
                rates=rates,
                version=expected_version + 1,
                updated_by=updated_by,
                reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def add_rate_change(db: Session, **fields) -> CommissionRateChange:
        change = CommissionRateChange(**fields)
        db.add(change)
        return change

    @staticmethod
    def get_rate_history(db: Session, tier: Optional[str] = None, limit: int = 100) -> list[CommissionRateChange]:
        query = db.query(CommissionRateChange)
        if tier:
            query = query.filter(CommissionRateChange.tier == tier)
        return query.order_by(CommissionRateChange.id.desc()).limit(limit).all()
