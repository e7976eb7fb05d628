from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import FIXED_NOW, fixed_clock
from servicehub.domain.settlement.service import SettlementService, invoice_number_for, split_commission
from servicehub.enums import PaymentMethod, ProviderTier
from servicehub.errors import BookingNotCompleted, BookingNotFound, InvalidAmount
from servicehub.models_invoice import Invoice, PaymentTransaction


@pytest.fixture
def settlement(db):
    return SettlementService(db, clock=fixed_clock)


def test_split_for_each_payment_method():
    cash = split_commission(Decimal("350"), Decimal("0.18"), PaymentMethod.CASH)
    assert cash == {"commission": Decimal("63.00"), "provider_payout": Decimal("350.00"), "commission_owed": Decimal("63.00")}

    electronic = split_commission(Decimal("450"), Decimal("0.12"), PaymentMethod.ELECTRONIC)
    assert electronic["commission"] == Decimal("54.00")
    assert electronic["provider_payout"] == Decimal("396.00")
    assert electronic["commission_owed"] == Decimal("0.00")


def test_split_rounds_half_up():
    # 0.18 * 10.25 = 1.845
    assert split_commission(Decimal("10.25"), Decimal("0.18"), PaymentMethod.CASH)["commission"] == Decimal("1.85")


def test_invoice_number_format():
    assert invoice_number_for(42, FIXED_NOW) == "INV-20261019-000042"


def test_cash_invoice_for_verified_provider(db, provider, completed_booking, settlement):
    booking = completed_booking(provider)

    invoice = settlement.generate_invoice(booking.id, Decimal("350"), PaymentMethod.CASH)

    assert invoice.invoice_number == f"INV-20261019-{booking.id:06d}"
    assert invoice.commission_rate == Decimal("0.18")
    assert invoice.platform_commission == Decimal("63.00")
    assert invoice.provider_payout == Decimal("350.00")
    assert invoice.commission_owed == Decimal("63.00")
    assert invoice.provider_tier == "VERIFIED"

    db.refresh(booking)
    assert booking.invoice_generated is True
    assert booking.payment_status == "PAID"
    assert booking.platform_commission == Decimal("0.00")
    assert booking.commission_owed == Decimal("63.00")

    entry = db.query(PaymentTransaction).filter(PaymentTransaction.booking_id == booking.id).one()
    assert entry.commission_status == "PENDING"
    assert entry.payment_status == "COMPLETED"
    assert entry.commission_due_date == FIXED_NOW + timedelta(days=7)
    assert entry.commission_paid_date is None


def test_electronic_invoice_for_enterprise_provider(db, make_provider, completed_booking, settlement):
    provider = make_provider(ProviderTier.ENTERPRISE)
    booking = completed_booking(provider)

    invoice = settlement.generate_invoice(
        booking.id, Decimal("450"), PaymentMethod.ELECTRONIC, payment_reference="BK-ref-1", payment_verified=True
    )

    assert invoice.platform_commission == Decimal("54.00")
    assert invoice.provider_payout == Decimal("396.00")
    assert invoice.commission_owed == Decimal("0.00")

    db.refresh(booking)
    assert booking.platform_commission == Decimal("54.00")
    assert booking.commission_owed == Decimal("0.00")
    assert booking.gateway_reference == "BK-ref-1"

    entry = db.query(PaymentTransaction).filter(PaymentTransaction.booking_id == booking.id).one()
    assert entry.commission_status == "COLLECTED"
    assert entry.payment_status == "COMPLETED"
    assert entry.commission_paid_date == FIXED_NOW
    assert entry.commission_due_date is None


def test_unverified_electronic_payment_stays_pending(db, provider, completed_booking, settlement):
    booking = completed_booking(provider)
    settlement.generate_invoice(booking.id, Decimal("200"), PaymentMethod.ELECTRONIC)

    entry = db.query(PaymentTransaction).filter(PaymentTransaction.booking_id == booking.id).one()
    assert entry.payment_status == "PENDING"
    assert entry.commission_status == "COLLECTED"
    db.refresh(booking)
    assert booking.payment_status == "PENDING"


def test_emergency_rate_applies_at_invoice_time(make_provider, completed_booking, settlement):
    provider = make_provider(ProviderTier.ENTERPRISE)
    booking = completed_booking(provider, details="Emergency: burst pipe")

    invoice = settlement.generate_invoice(booking.id, Decimal("100"), PaymentMethod.CASH)
    assert invoice.service_type == "EMERGENCY"
    assert invoice.commission_rate == Decimal("0.25")
    assert invoice.commission_owed == Decimal("25.00")


def test_invoicing_is_idempotent(db, provider, completed_booking, settlement):
    booking = completed_booking(provider)

    first = settlement.generate_invoice(booking.id, Decimal("350"), PaymentMethod.CASH)
    second = settlement.generate_invoice(booking.id, Decimal("999"), PaymentMethod.ELECTRONIC)

    assert second.invoice_number == first.invoice_number
    assert second.total_amount == Decimal("350.00")
    assert db.query(Invoice).filter(Invoice.booking_id == booking.id).count() == 1
    assert db.query(PaymentTransaction).filter(PaymentTransaction.booking_id == booking.id).count() == 1


def test_only_completed_bookings_are_invoiced(provider, make_booking, settlement):
    booking = make_booking(provider)
    with pytest.raises(BookingNotCompleted):
        settlement.generate_invoice(booking.id, Decimal("100"), PaymentMethod.CASH)
    with pytest.raises(BookingNotFound):
        settlement.generate_invoice(9999, Decimal("100"), PaymentMethod.CASH)


@pytest.mark.parametrize("price", [Decimal("0"), Decimal("-5"), "abc"])
def test_price_must_be_positive(db, provider, completed_booking, settlement, price):
    booking = completed_booking(provider)
    with pytest.raises(InvalidAmount):
        settlement.generate_invoice(booking.id, price, PaymentMethod.CASH)
    db.refresh(booking)
    assert booking.invoice_generated is False


def test_later_rate_change_does_not_touch_existing_invoice(db, provider, completed_booking, settlement):
    from servicehub.domain.commission.service import CommissionService

    booking = completed_booking(provider)
    invoice = settlement.generate_invoice(booking.id, Decimal("350"), PaymentMethod.CASH)
    CommissionService(db).update_rates({"VERIFIED": 30}, changed_by="ops@servicehub.example")

    db.refresh(invoice)
    assert invoice.commission_rate == Decimal("0.18")
    assert invoice.commission_owed == Decimal("63.00")
