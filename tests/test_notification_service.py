import asyncio
import json

import httpx

from servicehub.models import OutboxEvent
from servicehub.services.notification_service import dispatch_pending_events, record_event


def _seed(db, count=2):
    for i in range(count):
        record_event(db, "booking.requested", "booking", i + 1, {"booking_id": i + 1})
    db.commit()


def test_record_event_is_committed_by_caller(db):
    record_event(db, "booking.requested", "booking", 1, {"booking_id": 1})
    db.rollback()
    assert db.query(OutboxEvent).count() == 0


def test_dispatch_posts_events_and_marks_them_sent(db):
    _seed(db)
    received = []

    def handler(request):
        received.append(json.loads(request.content))
        return httpx.Response(202)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await dispatch_pending_events(db, client=client, webhook_url="https://notifier.test/events")

    assert asyncio.run(run()) == {"dispatched": 2, "failed": 0}
    assert [e["type"] for e in received] == ["booking.requested", "booking.requested"]
    assert received[0]["payload"] == {"booking_id": 1}
    assert db.query(OutboxEvent).filter(OutboxEvent.dispatched_at.is_(None)).count() == 0


def test_failed_delivery_stays_pending(db):
    _seed(db, count=1)

    async def run():
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            return await dispatch_pending_events(db, client=client, webhook_url="https://notifier.test/events")

    assert asyncio.run(run()) == {"dispatched": 0, "failed": 1}
    event = db.query(OutboxEvent).one()
    assert event.dispatched_at is None
    assert event.attempts == 1
    assert "500" in event.last_error


def test_without_notifier_events_are_logged_and_marked_sent(db):
    _seed(db, count=1)
    assert asyncio.run(dispatch_pending_events(db, webhook_url=None)) == {"dispatched": 1, "failed": 0}
    assert db.query(OutboxEvent).one().dispatched_at is not None
