"""
Settlement service - Invoice a completed booking and write its ledger entry

ELECTRONIC: the gateway deducts commission at source, so the provider is paid
price - commission and the ledger commission is COLLECTED immediately.
CASH: the provider keeps the whole price and owes the commission back; the
ledger commission starts PENDING with a due date.

Invoicing is idempotent per booking. The booking's invoice_generated flag is
flipped by compare-and-set and invoices/ledger entries are unique per booking,
so a retry or a concurrent second call returns the first invoice.
"""

import logging
import uuid
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import COMMISSION_DUE_DAYS, PLATFORM_CURRENCY
from ...enums import (
    BookingPaymentStatus,
    BookingStatus,
    CommissionStatus,
    PaymentMethod,
    TransactionPaymentStatus,
)
from ...errors import (
    BookingNotCompleted,
    BookingNotFound,
    DuplicateInvoice,
    InvalidAmount,
    InvalidTransition,
)
from ...models import Booking
from ...models_invoice import Invoice
from ...services.notification_service import INVOICE_GENERATED, record_event
from ...shared.money import ZERO, to_money
from ...shared.timeutils import Clock, utcnow
from ..bookings.repository import BookingRepository
from ..commission.resolver import CommissionSettings, coerce_tier
from ..commission.service import load_resolver
from ..providers.repository import ProviderRepository
from .repository import SettlementRepository

logger = logging.getLogger(__name__)


def invoice_number_for(booking_id: int, issued_at) -> str:
    return f"INV-{issued_at:%Y%m%d}-{booking_id:06d}"


def split_commission(price: Decimal, rate: Decimal, method: PaymentMethod) -> dict:
    """
    Financial split for a price at a rate

    Returns:
        Dict with commission (always the computed amount), provider_payout and
        commission_owed for the payment method
    """
    commission = to_money(price * rate)
    if method == PaymentMethod.ELECTRONIC:
        return {"commission": commission, "provider_payout": to_money(price - commission), "commission_owed": ZERO}
    return {"commission": commission, "provider_payout": to_money(price), "commission_owed": commission}


class SettlementService:
    """Service layer for invoice generation"""

    def __init__(self, db: Session, clock: Clock = utcnow, settings: Optional[CommissionSettings] = None):
        self.db = db
        self.clock = clock
        self.settings = settings
        self.repo = SettlementRepository()
        self.bookings = BookingRepository()

    def _get_booking(self, booking_id: int) -> Booking:
        booking = self.bookings.get_booking(self.db, booking_id)
        if not booking:
            raise BookingNotFound(booking_id=booking_id)
        return booking

    def get_invoice(self, booking_id: int) -> Optional[Invoice]:
        self._get_booking(booking_id)
        return self.repo.get_invoice_by_booking(self.db, booking_id)

    def list_provider_invoices(self, provider_id: int, limit: int = 100) -> list[Invoice]:
        return self.repo.get_provider_invoices(self.db, provider_id, limit)

    def generate_invoice(
        self,
        booking_id: int,
        service_price,
        payment_method: PaymentMethod,
        notes: Optional[str] = None,
        payment_reference: Optional[str] = None,
        payment_verified: bool = False,
        gateway_fees: Optional[Decimal] = None,
        gateway_transaction_id: Optional[str] = None,
    ) -> Invoice:
        """
        Invoice a completed booking

        Args:
            booking_id: Booking to settle
            service_price: Final price in major units, must be > 0
            payment_method: CASH or ELECTRONIC
            notes: Free text copied onto the invoice
            payment_reference: Gateway reference of an electronic payment
            payment_verified: Whether the gateway confirmed that reference

        Raises:
            BookingNotFound, BookingNotCompleted, InvalidAmount
        """
        booking = self._get_booking(booking_id)

        existing = self.repo.get_invoice_by_booking(self.db, booking_id)
        if existing:
            logger.info(f"ℹ️ Invoice already generated for booking {booking_id}: {existing.invoice_number}")
            return existing

        if booking.status != BookingStatus.COMPLETED.value:
            raise BookingNotCompleted(booking_id=booking_id, status=booking.status)

        try:
            price = to_money(service_price)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidAmount(price=str(service_price)) from e
        if price <= 0:
            raise InvalidAmount(price=str(price))

        method = PaymentMethod(payment_method)
        provider = ProviderRepository.get_provider(self.db, booking.provider_id)
        tier = coerce_tier(provider.tier if provider else None)
        rate = load_resolver(self.db, self.settings).resolve(tier, booking.service_type)
        split = split_commission(price, rate, method)

        now = self.clock()
        invoice_number = invoice_number_for(booking_id, now)
        electronic = method == PaymentMethod.ELECTRONIC
        reference = payment_reference or booking.gateway_reference

        if electronic:
            # The charge.success webhook may have marked the booking PAID before it was invoiced
            paid = payment_verified or booking.payment_status == BookingPaymentStatus.PAID.value
            payment_status = TransactionPaymentStatus.COMPLETED if paid else TransactionPaymentStatus.PENDING
            booking_payment_status = BookingPaymentStatus.PAID if paid else BookingPaymentStatus.PENDING
            commission_status = CommissionStatus.COLLECTED
            due_date, paid_date = None, now
        else:
            payment_status = TransactionPaymentStatus.COMPLETED
            booking_payment_status = BookingPaymentStatus.PAID
            commission_status = CommissionStatus.PENDING
            due_date, paid_date = now + timedelta(days=COMMISSION_DUE_DAYS), None

        try:
            flipped = self.bookings.compare_and_set(
                self.db,
                booking_id,
                {"invoice_generated": False, "status": BookingStatus.COMPLETED.value},
                invoice_generated=True,
                invoice_id=invoice_number,
                payment_method=method.value,
                payment_status=booking_payment_status.value,
                total_amount=price,
                platform_commission=split["commission"] if electronic else ZERO,
                provider_payout=split["provider_payout"],
                commission_owed=split["commission_owed"],
                gateway_reference=reference if electronic else booking.gateway_reference,
                updated_at=now,
            )
            if not flipped:
                raise DuplicateInvoice(booking_id=booking_id)

            invoice = self.repo.add_invoice(
                self.db,
                invoice_number=invoice_number,
                booking_id=booking_id,
                provider_id=booking.provider_id,
                customer_email=booking.customer_email,
                customer_name=booking.customer_name,
                service_description=booking.service_details,
                service_date=booking.date,
                total_amount=price,
                commission_rate=rate,
                platform_commission=split["commission"],
                provider_payout=split["provider_payout"],
                commission_owed=split["commission_owed"],
                payment_method=method.value,
                provider_tier=tier.value,
                service_type=booking.service_type,
                currency=PLATFORM_CURRENCY,
                notes=notes,
                issued_at=now,
            )
            self.repo.add_transaction(
                self.db,
                booking_id=booking_id,
                invoice_id=invoice_number,
                provider_id=booking.provider_id,
                customer_id=booking.customer_email,
                total_amount=price,
                platform_commission=split["commission"],
                provider_payout=split["provider_payout"],
                commission_owed=split["commission_owed"],
                commission_rate=rate,
                payment_method=method.value,
                payment_status=payment_status.value,
                commission_status=commission_status.value,
                gateway_reference=reference if electronic else None,
                gateway_transaction_id=gateway_transaction_id if electronic else None,
                gateway_fees=to_money(gateway_fees or 0),
                commission_due_date=due_date,
                commission_paid_date=paid_date,
                commission_payment_method="gateway_deduction" if electronic else None,
                currency=PLATFORM_CURRENCY,
                notes=notes,
                extra={"provider_tier": tier.value, "service_type": booking.service_type},
                created_at=now,
                updated_at=now,
            )
            self.db.flush()
            record_event(
                self.db,
                INVOICE_GENERATED,
                "booking",
                booking_id,
                {
                    "booking_id": booking_id,
                    "invoice_number": invoice_number,
                    "provider_id": booking.provider_id,
                    "customer_email": booking.customer_email,
                    "payment_method": method,
                    "total_amount": price,
                    "platform_commission": split["commission"],
                    "provider_payout": split["provider_payout"],
                    "commission_owed": split["commission_owed"],
                    "commission_due_date": due_date,
                },
            )
            self.db.commit()
        except (DuplicateInvoice, IntegrityError) as e:
            self.db.rollback()
            winner = self.repo.get_invoice_by_booking(self.db, booking_id)
            if winner is None:
                raise
            logger.info(f"ℹ️ {DuplicateInvoice.code} for booking {booking_id}, returning {winner.invoice_number} ({type(e).__name__})")
            return winner
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(invoice)
        logger.info(
            f"✅ Invoice {invoice_number} generated for booking {booking_id}: "
            f"{method.value} {price} @ {rate} → commission {split['commission']}, payout {split['provider_payout']}"
        )
        return invoice

    def attach_payment_reference(self, booking_id: int, reference: Optional[str] = None) -> str:
        """Give a booking a fresh gateway reference before the customer pays electronically"""
        booking = self._get_booking(booking_id)
        if booking.status == BookingStatus.CANCELLED.value:
            raise InvalidTransition("Cannot pay for a cancelled booking", status=booking.status, action="pay")
        if booking.payment_status == BookingPaymentStatus.PAID.value:
            raise InvalidTransition("Booking is already paid", status=booking.status, action="pay")

        reference = reference or f"BK-{booking_id}-{uuid.uuid4().hex[:12]}"
        booking.gateway_reference = reference
        booking.updated_at = self.clock()
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return reference
