"""Provider repository - Database operations for providers"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Provider


class ProviderRepository:
    """Repository for provider database operations"""

    @staticmethod
    def get_provider(db: Session, provider_id: int) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.id == provider_id).first()

    @staticmethod
    def get_provider_by_email(db: Session, email: str) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.email == email).first()

    @staticmethod
    def add_provider(db: Session, **fields) -> Provider:
        """Stage a new provider (caller commits)"""
        provider = Provider(**fields)
        db.add(provider)
        db.flush()
        return provider

    @staticmethod
    def update_provider(db: Session, provider: Provider, **updates) -> Provider:
        for key, value in updates.items():
            if value is not None and hasattr(provider, key):
                setattr(provider, key, value)
        db.commit()
        db.refresh(provider)
        return provider
