"""Ledger repository - Database operations for payment transactions"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func, update
from sqlalchemy.orm import Session

from ...enums import CommissionStatus, PaymentMethod
from ...models import Provider
from ...models_invoice import PaymentTransaction

OUTSTANDING_STATUSES = (CommissionStatus.PENDING.value, CommissionStatus.OVERDUE.value)


class LedgerRepository:
    """Repository for ledger database operations"""

    @staticmethod
    def get_transaction(db: Session, transaction_id: int) -> Optional[PaymentTransaction]:
        return db.query(PaymentTransaction).filter(PaymentTransaction.id == transaction_id).first()

    @staticmethod
    def get_by_booking(db: Session, booking_id: int) -> Optional[PaymentTransaction]:
        return db.query(PaymentTransaction).filter(PaymentTransaction.booking_id == booking_id).first()

    @staticmethod
    def get_provider_transactions(
        db: Session, provider_id: int, commission_status: Optional[str] = None, limit: int = 100
    ) -> list[PaymentTransaction]:
        query = db.query(PaymentTransaction).filter(PaymentTransaction.provider_id == provider_id)
        if commission_status:
            query = query.filter(PaymentTransaction.commission_status == commission_status)
        return query.order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc()).limit(limit).all()

    @staticmethod
    def get_outstanding(db: Session, provider_id: int) -> list[PaymentTransaction]:
        """CASH entries whose commission is still owed"""
        return (
            db.query(PaymentTransaction)
            .filter(
                PaymentTransaction.provider_id == provider_id,
                PaymentTransaction.payment_method == PaymentMethod.CASH.value,
                PaymentTransaction.commission_status.in_(OUTSTANDING_STATUSES),
            )
            .order_by(PaymentTransaction.commission_due_date, PaymentTransaction.id)
            .all()
        )

    @staticmethod
    def get_due_pending(db: Session, now: datetime) -> list[PaymentTransaction]:
        return (
            db.query(PaymentTransaction)
            .filter(
                PaymentTransaction.payment_method == PaymentMethod.CASH.value,
                PaymentTransaction.commission_status == CommissionStatus.PENDING.value,
                PaymentTransaction.commission_due_date.isnot(None),
                PaymentTransaction.commission_due_date < now,
            )
            .order_by(PaymentTransaction.id)
            .all()
        )

    @staticmethod
    def set_commission_status(
        db: Session, transaction_id: int, from_statuses: tuple, to_status: str, **values
    ) -> bool:
        """Compare-and-set on commission_status; False when the entry was not in from_statuses"""
        result = db.execute(
            update(PaymentTransaction)
            .where(
                PaymentTransaction.id == transaction_id,
                PaymentTransaction.commission_status.in_(from_statuses),
            )
            .values(commission_status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def totals(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        is_cash = PaymentTransaction.payment_method == PaymentMethod.CASH.value
        outstanding = is_cash & PaymentTransaction.commission_status.in_(OUTSTANDING_STATUSES)
        query = db.query(
            func.count(PaymentTransaction.id),
            func.coalesce(func.sum(PaymentTransaction.total_amount), 0),
            func.coalesce(func.sum(PaymentTransaction.platform_commission), 0),
            func.coalesce(func.sum(case((outstanding, PaymentTransaction.commission_owed), else_=0)), 0),
            func.coalesce(func.sum(case((is_cash, 1), else_=0)), 0),
        )
        if start is not None:
            query = query.filter(PaymentTransaction.created_at >= start)
        if end is not None:
            query = query.filter(PaymentTransaction.created_at <= end)
        count, volume, earned, owed, cash_count = query.one()
        return {
            "count": int(count or 0),
            "volume": volume,
            "earned": earned,
            "owed": owed,
            "cash_count": int(cash_count or 0),
        }

    @staticmethod
    def top_providers(
        db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None, limit: int = 5
    ) -> list:
        total_commission = func.sum(PaymentTransaction.platform_commission).label("total_commission")
        query = (
            db.query(
                PaymentTransaction.provider_id,
                Provider.business_name,
                total_commission,
                func.count(PaymentTransaction.id).label("transaction_count"),
            )
            .join(Provider, Provider.id == PaymentTransaction.provider_id)
        )
        if start is not None:
            query = query.filter(PaymentTransaction.created_at >= start)
        if end is not None:
            query = query.filter(PaymentTransaction.created_at <= end)
        return (
            query.group_by(PaymentTransaction.provider_id, Provider.business_name)
            .order_by(total_commission.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_providers_owing(db: Session, now: Optional[datetime] = None) -> int:
        """Providers with OVERDUE entries (or PENDING ones past due when `now` is given)"""
        condition = PaymentTransaction.commission_status == CommissionStatus.OVERDUE.value
        if now is not None:
            condition = condition | (
                (PaymentTransaction.commission_status == CommissionStatus.PENDING.value)
                & (PaymentTransaction.commission_due_date < now)
            )
        return (
            db.query(func.count(func.distinct(PaymentTransaction.provider_id)))
            .filter(PaymentTransaction.payment_method == PaymentMethod.CASH.value, condition)
            .scalar()
            or 0
        )

    @staticmethod
    def recent(db: Session, limit: int = 10) -> list[PaymentTransaction]:
        return (
            db.query(PaymentTransaction)
            .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
            .limit(limit)
            .all()
        )
