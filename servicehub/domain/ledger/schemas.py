"""Ledger domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class TransactionResponse(BaseModel):
    id: int
    bookingId: int
    invoiceId: str
    providerId: int
    customerId: str
    totalAmount: Decimal
    platformCommission: Decimal
    providerPayout: Decimal
    commissionOwed: Decimal
    commissionRate: Decimal
    paymentMethod: str
    paymentStatus: str
    commissionStatus: str
    gatewayReference: Optional[str] = None
    gatewayFees: Optional[Decimal] = None
    commissionDueDate: Optional[datetime] = None
    commissionPaidDate: Optional[datetime] = None
    commissionPaymentMethod: Optional[str] = None
    currency: Optional[str] = None
    created_at: Optional[datetime] = None


class OutstandingCommissionResponse(BaseModel):
    providerId: int
    totalOwed: Decimal
    transactionCount: int
    oldestDueDate: Optional[datetime] = None


class MarkCollectedRequest(BaseModel):
    collectionMethod: str = "manual"
    reference: Optional[str] = None


class MethodBreakdown(BaseModel):
    count: int
    amount: Decimal
    commission: Decimal


class LastPayment(BaseModel):
    date: datetime
    amount: Decimal
    method: str


class ProviderSummaryResponse(BaseModel):
    providerId: int
    providerTier: str
    commissionRate: Decimal
    totalOwed: Decimal
    totalEarned: Decimal
    pendingTransactions: int
    oldestDueDate: Optional[datetime] = None
    lastPayment: Optional[LastPayment] = None
    breakdown: dict[str, MethodBreakdown]


class TopProvider(BaseModel):
    providerId: int
    businessName: str
    totalCommission: Decimal
    transactionCount: int


class AdminSummaryResponse(BaseModel):
    totalCommissionEarned: Decimal
    totalCommissionOwed: Decimal
    totalTransactions: int
    totalVolume: Decimal
    electronicTransactions: int
    cashTransactions: int
    overdueProviders: int
    topProviders: list[TopProvider]
    recentTransactions: list[TransactionResponse]


class CommissionPaymentInitRequest(BaseModel):
    email: Optional[str] = None


class CommissionPaymentInitResponse(BaseModel):
    authorizationUrl: Optional[str] = None
    reference: str
    amount: Decimal
    transactionCount: int


class CommissionPaymentVerifyRequest(BaseModel):
    reference: str


class OverdueSweepResponse(BaseModel):
    checked: int
    flagged: int
    skipped: int
