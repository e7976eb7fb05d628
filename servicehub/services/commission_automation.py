"""
Automated commission status transitions
Handles PENDING → OVERDUE for cash commission past its due date
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.ledger.service import LedgerService

logger = logging.getLogger(__name__)


def flag_overdue_commissions(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Flag overdue cash commission
    Should be run as a scheduled job (daily cron)

    Returns:
        dict: checked / flagged / skipped counts
    """
    summary = LedgerService(db).flag_overdue_commissions(now)
    if summary["flagged"]:
        logger.info(f"📊 Commission automation summary: {summary}")
    else:
        logger.debug("ℹ️ No overdue commission to flag")
    return summary
