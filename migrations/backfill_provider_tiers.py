"""
Backfill provider tiers, performance metrics and availability

Run once before bringing the service online:
    python -m migrations.backfill_provider_tiers
"""

import logging

from servicehub import models, models_commission, models_invoice  # noqa: F401 - register tables
from servicehub.database import Base, SessionLocal, engine
from servicehub.services.tier_migration import backfill_provider_records

logger = logging.getLogger(__name__)


def upgrade():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        return backfill_provider_records(db)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    print(upgrade())
