"""Payment gateway webhooks - confirm or fail electronic payments"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...config import PAYSTACK_WEBHOOK_SECRET
from ...database import get_db
from ...webhook_security import verify_paystack_webhook
from .service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/paystack")
async def paystack_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Handle Paystack webhook events

    Events:
    - charge.success: booking payment completed or commission payment settled
    - charge.failed: booking payment failed
    Other events are acknowledged and ignored.
    """
    raw_body = await verify_paystack_webhook(request, PAYSTACK_WEBHOOK_SECRET)

    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError as e:
        logger.error(f"❌ Invalid webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    event_type = payload.get("event")
    data = payload.get("data") or {}
    logger.info(f"📥 Paystack event: {event_type}, reference={data.get('reference')}")

    service = LedgerService(db)
    if event_type == "charge.success":
        result = service.handle_charge_success(data)
    elif event_type == "charge.failed":
        result = service.handle_charge_failed(data)
    else:
        logger.info(f"ℹ️ Unhandled Paystack event type: {event_type}")
        result = {"message": f"Event {event_type} ignored"}

    return {"status": "ok", **result}
