"""Ledger router - Commission reconciliation for providers and admins"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import Actor, ensure_provider_access, get_current_actor, require_admin
from ...database import get_db
from ...enums import CommissionStatus
from ...models_invoice import PaymentTransaction
from ...services.paystack_service import PaystackService, get_paystack_service
from .schemas import (
    AdminSummaryResponse,
    CommissionPaymentInitRequest,
    CommissionPaymentInitResponse,
    CommissionPaymentVerifyRequest,
    MarkCollectedRequest,
    OutstandingCommissionResponse,
    OverdueSweepResponse,
    ProviderSummaryResponse,
    TransactionResponse,
)
from .service import COMMISSION_PAYMENT_TYPE, LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ledger", tags=["Ledger"])


def get_ledger_service(db: Session = Depends(get_db)) -> LedgerService:
    """Dependency injection for LedgerService"""
    return LedgerService(db)


def transaction_response(t: PaymentTransaction) -> TransactionResponse:
    return TransactionResponse(
        id=t.id,
        bookingId=t.booking_id,
        invoiceId=t.invoice_id,
        providerId=t.provider_id,
        customerId=t.customer_id,
        totalAmount=t.total_amount,
        platformCommission=t.platform_commission,
        providerPayout=t.provider_payout,
        commissionOwed=t.commission_owed,
        commissionRate=t.commission_rate,
        paymentMethod=t.payment_method,
        paymentStatus=t.payment_status,
        commissionStatus=t.commission_status,
        gatewayReference=t.gateway_reference,
        gatewayFees=t.gateway_fees,
        commissionDueDate=t.commission_due_date,
        commissionPaidDate=t.commission_paid_date,
        commissionPaymentMethod=t.commission_payment_method,
        currency=t.currency,
        created_at=t.created_at,
    )


# ============================================================================
# PROVIDER VIEWS
# ============================================================================


@router.get("/providers/{provider_id}/outstanding", response_model=OutstandingCommissionResponse)
async def get_outstanding_commission(
    provider_id: int,
    actor: Actor = Depends(get_current_actor),
    service: LedgerService = Depends(get_ledger_service),
):
    """Commission the provider still owes on cash-paid jobs"""
    ensure_provider_access(actor, provider_id)
    return service.outstanding_commission(provider_id)


@router.get("/providers/{provider_id}/transactions", response_model=list[TransactionResponse])
async def list_provider_transactions(
    provider_id: int,
    commission_status: Optional[CommissionStatus] = Query(None, alias="commissionStatus"),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    service: LedgerService = Depends(get_ledger_service),
):
    ensure_provider_access(actor, provider_id)
    return [transaction_response(t) for t in service.list_provider_transactions(provider_id, commission_status, limit)]


@router.get("/providers/{provider_id}/summary", response_model=ProviderSummaryResponse)
async def get_provider_summary(
    provider_id: int,
    actor: Actor = Depends(get_current_actor),
    service: LedgerService = Depends(get_ledger_service),
):
    ensure_provider_access(actor, provider_id)
    return service.provider_summary(provider_id)


@router.post(
    "/providers/{provider_id}/commission-payment/initialize", response_model=CommissionPaymentInitResponse
)
async def initialize_commission_payment(
    provider_id: int,
    data: CommissionPaymentInitRequest,
    actor: Actor = Depends(get_current_actor),
    service: LedgerService = Depends(get_ledger_service),
    paystack: PaystackService = Depends(get_paystack_service),
):
    """Pay all outstanding cash commission through the gateway"""
    ensure_provider_access(actor, provider_id)
    payment = service.prepare_commission_payment(provider_id)
    if payment["amount"] <= 0:
        raise HTTPException(status_code=400, detail="No outstanding commission to pay")

    result = await paystack.initialize_payment(
        payment["amount"],
        payment["reference"],
        data.email or actor.email,
        metadata={
            "type": COMMISSION_PAYMENT_TYPE,
            "provider_id": provider_id,
            "transaction_ids": payment["transaction_ids"],
        },
    )
    logger.info(f"💰 Commission payment {payment['reference']} started for provider {provider_id}")
    return CommissionPaymentInitResponse(
        authorizationUrl=result["authorization_url"],
        reference=result["reference"],
        amount=payment["amount"],
        transactionCount=len(payment["transaction_ids"]),
    )


@router.post("/providers/{provider_id}/commission-payment/verify")
async def verify_commission_payment(
    provider_id: int,
    data: CommissionPaymentVerifyRequest,
    actor: Actor = Depends(get_current_actor),
    service: LedgerService = Depends(get_ledger_service),
    paystack: PaystackService = Depends(get_paystack_service),
):
    """Confirm a commission payment with the gateway and mark the entries collected"""
    ensure_provider_access(actor, provider_id)
    result = await paystack.verify_payment(data.reference)
    if not result["success"]:
        raise HTTPException(status_code=400, detail=f"Payment not successful: {result['status']}")

    metadata = result["metadata"]
    if metadata.get("type") != COMMISSION_PAYMENT_TYPE or str(metadata.get("provider_id")) != str(provider_id):
        raise HTTPException(status_code=400, detail="Reference is not a commission payment for this provider")

    summary = service.apply_commission_payment(data.reference, metadata.get("transaction_ids") or [], provider_id)
    return {"status": "verified", "reference": data.reference, **summary}


# ============================================================================
# TRANSACTIONS
# ============================================================================


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: int,
    actor: Actor = Depends(get_current_actor),
    service: LedgerService = Depends(get_ledger_service),
):
    transaction = service.get_transaction(transaction_id)
    ensure_provider_access(actor, transaction.provider_id)
    return transaction_response(transaction)


@router.post("/transactions/{transaction_id}/collect", response_model=TransactionResponse)
async def mark_commission_collected(
    transaction_id: int,
    data: MarkCollectedRequest,
    admin: Actor = Depends(require_admin),
    service: LedgerService = Depends(get_ledger_service),
):
    """Record that a provider remitted cash commission (admin)"""
    logger.info(f"📥 {admin.email} marking transaction {transaction_id} collected")
    return transaction_response(service.mark_collected(transaction_id, data.collectionMethod, data.reference))


@router.post("/transactions/{transaction_id}/flag-overdue", response_model=TransactionResponse)
async def flag_commission_overdue(
    transaction_id: int,
    admin: Actor = Depends(require_admin),
    service: LedgerService = Depends(get_ledger_service),
):
    return transaction_response(service.flag_overdue(transaction_id))


# ============================================================================
# ADMIN
# ============================================================================


@router.post("/overdue-sweep", response_model=OverdueSweepResponse)
async def run_overdue_sweep(
    admin: Actor = Depends(require_admin),
    service: LedgerService = Depends(get_ledger_service),
):
    """Flag every pending cash commission past its due date"""
    logger.info(f"🔄 Manual overdue sweep triggered by {admin.email}")
    return service.flag_overdue_commissions()


@router.get("/admin/summary", response_model=AdminSummaryResponse)
async def get_admin_summary(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    admin: Actor = Depends(require_admin),
    service: LedgerService = Depends(get_ledger_service),
):
    """Platform-wide commission totals"""
    summary = service.admin_summary(start, end)
    summary["recentTransactions"] = [transaction_response(t) for t in summary["recentTransactions"]]
    return summary
