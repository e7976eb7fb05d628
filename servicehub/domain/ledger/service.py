"""Ledger service - Commission reconciliation and gateway payment updates"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...enums import BookingPaymentStatus, CommissionStatus, PaymentMethod, TransactionPaymentStatus
from ...errors import InvalidTransition, ProviderNotFound, TransactionNotFound
from ...models_invoice import PaymentTransaction
from ...services.notification_service import (
    COMMISSION_COLLECTED,
    COMMISSION_OVERDUE,
    PAYMENT_FAILED,
    record_event,
)
from ...shared.money import ZERO, from_minor_units, to_money
from ...shared.timeutils import Clock, utcnow
from ..bookings.repository import BookingRepository
from ..commission.resolver import coerce_tier
from ..commission.service import load_resolver
from ..providers.repository import ProviderRepository
from .repository import OUTSTANDING_STATUSES, LedgerRepository

logger = logging.getLogger(__name__)

COMMISSION_PAYMENT_TYPE = "commission_payment"


class LedgerService:
    """Service layer for commission ledger reconciliation"""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.repo = LedgerRepository()

    def get_transaction(self, transaction_id: int) -> PaymentTransaction:
        transaction = self.repo.get_transaction(self.db, transaction_id)
        if not transaction:
            raise TransactionNotFound(transaction_id=transaction_id)
        return transaction

    def list_provider_transactions(
        self, provider_id: int, commission_status: Optional[CommissionStatus] = None, limit: int = 100
    ) -> list[PaymentTransaction]:
        return self.repo.get_provider_transactions(
            self.db, provider_id, commission_status.value if commission_status else None, limit
        )

    # ------------------------------------------------------------------
    # Outstanding commission
    # ------------------------------------------------------------------

    def outstanding_commission(self, provider_id: int) -> dict:
        """Sum of commission owed on CASH entries that are PENDING or OVERDUE"""
        entries = self.repo.get_outstanding(self.db, provider_id)
        due_dates = [e.commission_due_date for e in entries if e.commission_due_date]
        return {
            "providerId": provider_id,
            "totalOwed": to_money(sum((e.commission_owed for e in entries), ZERO)),
            "transactionCount": len(entries),
            "oldestDueDate": min(due_dates) if due_dates else None,
        }

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def mark_collected(
        self, transaction_id: int, collection_method: str, reference: Optional[str] = None
    ) -> PaymentTransaction:
        """PENDING/OVERDUE → COLLECTED; an already COLLECTED entry is returned unchanged"""
        transaction = self.get_transaction(transaction_id)
        if transaction.commission_status == CommissionStatus.COLLECTED.value:
            logger.info(f"ℹ️ Commission for transaction {transaction_id} already collected")
            return transaction

        now = self.clock()
        previous = transaction.commission_status
        try:
            updated = self.repo.set_commission_status(
                self.db,
                transaction_id,
                OUTSTANDING_STATUSES,
                CommissionStatus.COLLECTED.value,
                commission_paid_date=now,
                commission_payment_method=collection_method,
                commission_payment_reference=reference,
                updated_at=now,
            )
            if updated:
                record_event(
                    self.db,
                    COMMISSION_COLLECTED,
                    "payment_transaction",
                    transaction_id,
                    {
                        "transaction_id": transaction_id,
                        "provider_id": transaction.provider_id,
                        "amount": transaction.commission_owed,
                        "previous_status": previous,
                        "collection_method": collection_method,
                        "reference": reference,
                    },
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        # A concurrent collector may have won; either way the entry is now COLLECTED
        self.db.refresh(transaction)
        if updated:
            logger.info(f"✅ Commission collected for transaction {transaction_id} via {collection_method}")
        return transaction

    def flag_overdue(self, transaction_id: int, now: Optional[datetime] = None) -> PaymentTransaction:
        """PENDING → OVERDUE once the due date has passed"""
        now = now or self.clock()
        transaction = self.get_transaction(transaction_id)

        if transaction.commission_status != CommissionStatus.PENDING.value:
            raise InvalidTransition(
                "Only pending commission can be flagged overdue",
                transaction_id=transaction_id,
                status=transaction.commission_status,
            )
        if transaction.commission_due_date is None or transaction.commission_due_date >= now:
            raise InvalidTransition(
                "Commission is not yet due",
                transaction_id=transaction_id,
                due_date=transaction.commission_due_date.isoformat() if transaction.commission_due_date else None,
            )

        try:
            updated = self.repo.set_commission_status(
                self.db,
                transaction_id,
                (CommissionStatus.PENDING.value,),
                CommissionStatus.OVERDUE.value,
                updated_at=now,
            )
            if not updated:
                raise InvalidTransition(
                    "Commission status changed concurrently", transaction_id=transaction_id
                )
            record_event(
                self.db,
                COMMISSION_OVERDUE,
                "payment_transaction",
                transaction_id,
                {
                    "transaction_id": transaction_id,
                    "provider_id": transaction.provider_id,
                    "invoice_id": transaction.invoice_id,
                    "amount": transaction.commission_owed,
                    "due_date": transaction.commission_due_date,
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(transaction)
        logger.info(f"⚠️ Commission for transaction {transaction_id} flagged overdue")
        return transaction

    def flag_overdue_commissions(self, now: Optional[datetime] = None) -> dict:
        """Flag every PENDING cash commission past its due date"""
        now = now or self.clock()
        candidates = self.repo.get_due_pending(self.db, now)
        summary = {"checked": len(candidates), "flagged": 0, "skipped": 0}

        for transaction in candidates:
            try:
                self.flag_overdue(transaction.id, now)
                summary["flagged"] += 1
            except InvalidTransition as e:
                # Collected or flagged by someone else since the query
                summary["skipped"] += 1
                logger.info(f"ℹ️ Skipped transaction {transaction.id}: {e.message}")

        logger.info(f"✅ Overdue sweep: {summary['flagged']} flagged, {summary['skipped']} skipped")
        return summary

    # ------------------------------------------------------------------
    # Summaries (read-only)
    # ------------------------------------------------------------------

    def provider_summary(self, provider_id: int) -> dict:
        provider = ProviderRepository.get_provider(self.db, provider_id)
        if not provider:
            raise ProviderNotFound(provider_id=provider_id)

        outstanding = self.outstanding_commission(provider_id)
        transactions = self.repo.get_provider_transactions(self.db, provider_id, limit=1000)

        breakdown = {
            "cash": {"count": 0, "amount": ZERO, "commission": ZERO},
            "electronic": {"count": 0, "amount": ZERO, "commission": ZERO},
        }
        total_earned = ZERO
        last_payment = None
        for t in transactions:
            if t.payment_method == PaymentMethod.CASH.value:
                bucket = breakdown["cash"]
                bucket["commission"] += t.commission_owed or ZERO
            else:
                bucket = breakdown["electronic"]
                bucket["commission"] += t.platform_commission or ZERO
            bucket["count"] += 1
            bucket["amount"] += t.total_amount or ZERO
            total_earned += t.provider_payout or ZERO

            if t.commission_status == CommissionStatus.COLLECTED.value and t.commission_paid_date:
                if last_payment is None or t.commission_paid_date > last_payment["date"]:
                    last_payment = {
                        "date": t.commission_paid_date,
                        "amount": t.commission_owed or t.platform_commission or ZERO,
                        "method": t.commission_payment_method or "gateway_deduction",
                    }

        tier = coerce_tier(provider.tier)
        return {
            "providerId": provider_id,
            "providerTier": tier.value,
            "commissionRate": load_resolver(self.db).resolve(tier),
            "totalOwed": outstanding["totalOwed"],
            "totalEarned": to_money(total_earned),
            "pendingTransactions": outstanding["transactionCount"],
            "oldestDueDate": outstanding["oldestDueDate"],
            "lastPayment": last_payment,
            "breakdown": {k: {**v, "amount": to_money(v["amount"]), "commission": to_money(v["commission"])} for k, v in breakdown.items()},
        }

    def admin_summary(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        totals = self.repo.totals(self.db, start, end)
        return {
            "totalCommissionEarned": to_money(totals["earned"]),
            "totalCommissionOwed": to_money(totals["owed"]),
            "totalTransactions": totals["count"],
            "totalVolume": to_money(totals["volume"]),
            "electronicTransactions": totals["count"] - totals["cash_count"],
            "cashTransactions": totals["cash_count"],
            "overdueProviders": self.repo.count_providers_owing(self.db, self.clock()),
            "topProviders": [
                {
                    "providerId": row.provider_id,
                    "businessName": row.business_name,
                    "totalCommission": to_money(row.total_commission or 0),
                    "transactionCount": row.transaction_count,
                }
                for row in self.repo.top_providers(self.db, start, end)
            ],
            "recentTransactions": self.repo.recent(self.db),
        }

    # ------------------------------------------------------------------
    # Gateway payments
    # ------------------------------------------------------------------

    def prepare_commission_payment(self, provider_id: int) -> dict:
        """Amount and entries a provider would settle through the gateway"""
        if not ProviderRepository.get_provider(self.db, provider_id):
            raise ProviderNotFound(provider_id=provider_id)
        entries = self.repo.get_outstanding(self.db, provider_id)
        return {
            "amount": to_money(sum((e.commission_owed for e in entries), ZERO)),
            "transaction_ids": [e.id for e in entries],
            "reference": f"COM-{provider_id}-{uuid.uuid4().hex[:12]}",
        }

    def apply_commission_payment(
        self, reference: str, transaction_ids: list, provider_id: Optional[int] = None
    ) -> dict:
        """Mark every entry paid by a commission payment as COLLECTED"""
        summary = {"collected": 0, "missing": 0}
        for raw_id in transaction_ids or []:
            try:
                transaction = self.get_transaction(int(raw_id))
            except (TransactionNotFound, ValueError, TypeError):
                summary["missing"] += 1
                logger.warning(f"⚠️ Commission payment {reference} lists unknown transaction {raw_id}")
                continue
            if provider_id is not None and transaction.provider_id != provider_id:
                summary["missing"] += 1
                logger.warning(f"⚠️ Commission payment {reference} lists transaction {raw_id} of another provider")
                continue
            self.mark_collected(transaction.id, "paystack", reference)
            summary["collected"] += 1

        logger.info(f"✅ Commission payment {reference}: {summary['collected']} entries collected")
        return summary

    def handle_charge_success(self, data: dict) -> dict:
        """Gateway confirmed a charge: booking payment or commission payment"""
        reference = data.get("reference")
        metadata = data.get("metadata") or {}
        if isinstance(metadata, dict) and metadata.get("type") == COMMISSION_PAYMENT_TYPE:
            provider_id = metadata.get("provider_id")
            return self.apply_commission_payment(
                reference,
                metadata.get("transaction_ids") or [],
                int(provider_id) if provider_id is not None else None,
            )

        booking = BookingRepository.get_by_gateway_reference(self.db, reference) if reference else None
        if not booking:
            logger.warning(f"⚠️ No booking found for reference: {reference}")
            return {"message": "Booking not found"}

        now = self.clock()
        gateway_id = str(data["id"]) if data.get("id") is not None else None
        try:
            booking.payment_status = BookingPaymentStatus.PAID.value
            booking.updated_at = now
            transaction = self.repo.get_by_booking(self.db, booking.id)
            if transaction:
                transaction.payment_status = TransactionPaymentStatus.COMPLETED.value
                transaction.gateway_reference = reference
                transaction.gateway_transaction_id = gateway_id
                transaction.gateway_fees = from_minor_units(data.get("fees") or 0)
                if transaction.payment_method == PaymentMethod.ELECTRONIC.value:
                    transaction.commission_status = CommissionStatus.COLLECTED.value
                    transaction.commission_paid_date = transaction.commission_paid_date or now
                transaction.updated_at = now
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Charge success processed for booking {booking.id}")
        return {"message": "Charge success processed", "booking_id": booking.id}

    def handle_charge_failed(self, data: dict) -> dict:
        reference = data.get("reference")
        booking = BookingRepository.get_by_gateway_reference(self.db, reference) if reference else None
        if not booking:
            logger.warning(f"⚠️ No booking found for reference: {reference}")
            return {"message": "Booking not found"}

        now = self.clock()
        try:
            transaction = self.repo.get_by_booking(self.db, booking.id)
            if transaction and transaction.payment_status != TransactionPaymentStatus.COMPLETED.value:
                transaction.payment_status = TransactionPaymentStatus.FAILED.value
                transaction.updated_at = now
            record_event(
                self.db,
                PAYMENT_FAILED,
                "booking",
                booking.id,
                {"booking_id": booking.id, "reference": reference, "customer_email": booking.customer_email},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"❌ Charge failure processed for booking {booking.id}")
        return {"message": "Charge failure processed", "booking_id": booking.id}
