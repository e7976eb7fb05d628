"""Settlement domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from ...enums import PaymentMethod


class InvoiceRequest(BaseModel):
    """Provider request to invoice a completed booking"""

    servicePrice: Decimal
    paymentMethod: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None
    # Gateway reference of the customer's electronic payment, verified before settling
    paymentReference: Optional[str] = None


class InvoiceResponse(BaseModel):
    invoiceNumber: str
    bookingId: int
    providerId: int
    customerEmail: str
    customerName: Optional[str] = None
    serviceDescription: Optional[str] = None
    serviceDate: date
    totalAmount: Decimal
    commissionRate: Decimal
    platformCommission: Decimal
    providerPayout: Decimal
    commissionOwed: Decimal
    paymentMethod: str
    providerTier: str
    serviceType: str
    currency: str
    notes: Optional[str] = None
    issuedAt: Optional[datetime] = None


class PaymentInitRequest(BaseModel):
    amount: Decimal
    email: Optional[str] = None


class PaymentInitResponse(BaseModel):
    authorizationUrl: Optional[str] = None
    accessCode: Optional[str] = None
    reference: str
