"""
Notification outbox

Booking and settlement operations record events in the same transaction as
the state change that produced them. The worker later delivers pending events
to the notifier (which owns message formatting and delivery).
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import NOTIFIER_TIMEOUT, NOTIFIER_WEBHOOK_URL, OUTBOX_BATCH_SIZE, OUTBOX_MAX_ATTEMPTS
from ..models import OutboxEvent
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)

# Event types
BOOKING_REQUESTED = "booking.requested"
BOOKING_STATUS_CHANGED = "booking.status_changed"
BOOKING_RESCHEDULED = "booking.rescheduled"
BOOKING_DELETED = "booking.deleted"
INVOICE_GENERATED = "invoice.generated"
PAYMENT_FAILED = "payment.failed"
COMMISSION_COLLECTED = "commission.collected"
COMMISSION_OVERDUE = "commission.overdue"
COMMISSION_RATES_UPDATED = "commission.rates_updated"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "value"):  # Enum
        return value.value
    return value


def record_event(
    db: Session, event_type: str, aggregate_type: str, aggregate_id: Any, payload: dict
) -> OutboxEvent:
    """Add an event to the outbox; committed by the caller's transaction"""
    event = OutboxEvent(
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=str(aggregate_id),
        payload=_jsonable(payload),
        attempts=0,
    )
    db.add(event)
    return event


def get_pending_events(db: Session, limit: int = OUTBOX_BATCH_SIZE) -> list[OutboxEvent]:
    return (
        db.query(OutboxEvent)
        .filter(OutboxEvent.dispatched_at.is_(None), OutboxEvent.attempts < OUTBOX_MAX_ATTEMPTS)
        .order_by(OutboxEvent.id)
        .limit(limit)
        .all()
    )


async def dispatch_pending_events(
    db: Session,
    client: Optional[httpx.AsyncClient] = None,
    webhook_url: Optional[str] = NOTIFIER_WEBHOOK_URL,
) -> dict:
    """
    Deliver pending outbox events to the notifier

    Events that fail stay pending with their attempt count bumped, until
    OUTBOX_MAX_ATTEMPTS is reached.

    Returns:
        Summary dict with dispatched/failed counts
    """
    events = get_pending_events(db)
    summary = {"dispatched": 0, "failed": 0}
    if not events:
        return summary

    owns_client = client is None and webhook_url is not None
    if owns_client:
        client = httpx.AsyncClient(timeout=NOTIFIER_TIMEOUT)

    try:
        for event in events:
            body = {
                "id": event.id,
                "type": event.event_type,
                "aggregate_type": event.aggregate_type,
                "aggregate_id": event.aggregate_id,
                "payload": event.payload,
                "created_at": event.created_at.isoformat() if event.created_at else None,
            }
            event.attempts += 1
            if not webhook_url:
                logger.info(f"📣 Notifier not configured, event {event.event_type} #{event.id}: {event.payload}")
                event.dispatched_at = utcnow()
                summary["dispatched"] += 1
                continue

            try:
                response = await client.post(webhook_url, json=body)
                response.raise_for_status()
                event.dispatched_at = utcnow()
                event.last_error = None
                summary["dispatched"] += 1
            except httpx.HTTPError as e:
                event.last_error = str(e)[:1000]
                summary["failed"] += 1
                logger.warning(f"⚠️ Failed to dispatch event #{event.id} (attempt {event.attempts}): {e}")
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_client:
            await client.aclose()

    logger.info(f"✅ Outbox dispatch: {summary['dispatched']} sent, {summary['failed']} failed")
    return summary
