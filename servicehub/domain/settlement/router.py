"""Settlement router - Invoice completed bookings and start electronic payments"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import Actor, ensure_provider_access, get_current_actor
from ...database import get_db
from ...enums import PaymentMethod
from ...models_invoice import Invoice
from ...services.paystack_service import PaystackService, get_paystack_service
from ...shared.money import to_money
from ..bookings.service import BookingService
from .schemas import InvoiceRequest, InvoiceResponse, PaymentInitRequest, PaymentInitResponse
from .service import SettlementService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Settlement"])


def get_settlement_service(db: Session = Depends(get_db)) -> SettlementService:
    """Dependency injection for SettlementService"""
    return SettlementService(db)


def invoice_response(i: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        invoiceNumber=i.invoice_number,
        bookingId=i.booking_id,
        providerId=i.provider_id,
        customerEmail=i.customer_email,
        customerName=i.customer_name,
        serviceDescription=i.service_description,
        serviceDate=i.service_date,
        totalAmount=i.total_amount,
        commissionRate=i.commission_rate,
        platformCommission=i.platform_commission,
        providerPayout=i.provider_payout,
        commissionOwed=i.commission_owed,
        paymentMethod=i.payment_method,
        providerTier=i.provider_tier,
        serviceType=i.service_type,
        currency=i.currency,
        notes=i.notes,
        issuedAt=i.issued_at,
    )


@router.post("/bookings/{booking_id}/invoice", response_model=InvoiceResponse)
async def generate_invoice(
    booking_id: int,
    data: InvoiceRequest,
    actor: Actor = Depends(get_current_actor),
    service: SettlementService = Depends(get_settlement_service),
    paystack: PaystackService = Depends(get_paystack_service),
):
    """
    Invoice a completed booking (provider or admin)

    For ELECTRONIC payments a supplied payment reference is verified with the
    gateway first; unverified payments settle with payment status PENDING and
    are completed by the gateway webhook.
    """
    booking = BookingService(service.db).get_booking(booking_id)
    ensure_provider_access(actor, booking.provider_id)

    verified = False
    fees = None
    gateway_id = None
    reference = data.paymentReference
    if data.paymentMethod == PaymentMethod.ELECTRONIC and reference and not booking.invoice_generated:
        result = await paystack.verify_payment(reference)
        verified = result["success"] and result["amount"] >= to_money(data.servicePrice)
        if result["success"] and not verified:
            logger.warning(
                f"⚠️ Payment {reference} amount {result['amount']} is below the invoiced price {data.servicePrice}"
            )
        fees = result["fees"]
        gateway_id = result["transaction_id"]

    invoice = service.generate_invoice(
        booking_id,
        data.servicePrice,
        data.paymentMethod,
        notes=data.notes,
        payment_reference=reference,
        payment_verified=verified,
        gateway_fees=fees,
        gateway_transaction_id=gateway_id,
    )
    return invoice_response(invoice)


@router.get("/bookings/{booking_id}/invoice", response_model=InvoiceResponse)
async def get_invoice(
    booking_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SettlementService = Depends(get_settlement_service),
):
    booking_service = BookingService(service.db)
    booking_service.authorize(booking_service.get_booking(booking_id), actor)
    invoice = service.get_invoice(booking_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice_response(invoice)


@router.get("/providers/{provider_id}/invoices", response_model=list[InvoiceResponse])
async def list_provider_invoices(
    provider_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SettlementService = Depends(get_settlement_service),
):
    ensure_provider_access(actor, provider_id)
    return [invoice_response(i) for i in service.list_provider_invoices(provider_id)]


@router.post("/bookings/{booking_id}/payment/initialize", response_model=PaymentInitResponse)
async def initialize_booking_payment(
    booking_id: int,
    data: PaymentInitRequest,
    actor: Actor = Depends(get_current_actor),
    service: SettlementService = Depends(get_settlement_service),
    paystack: PaystackService = Depends(get_paystack_service),
):
    """Start an electronic payment for a booking (customer)"""
    booking_service = BookingService(service.db)
    booking = booking_service.get_booking(booking_id)
    booking_service.authorize(booking, actor)

    reference = service.attach_payment_reference(booking_id)
    result = await paystack.initialize_payment(
        data.amount,
        reference,
        data.email or booking.customer_email,
        metadata={"type": "booking_payment", "booking_id": booking_id, "provider_id": booking.provider_id},
    )
    return PaymentInitResponse(
        authorizationUrl=result["authorization_url"],
        accessCode=result["access_code"],
        reference=result["reference"],
    )
