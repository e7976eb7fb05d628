from datetime import date

import pytest
from fastapi import HTTPException

from conftest import ADMIN, CUSTOMER, CUSTOMER_EMAIL, SATURDAY, TUESDAY, provider_actor
from servicehub.auth import Actor
from servicehub.domain.bookings.schemas import BookingCreate
from servicehub.enums import ActorRole, BookingAction, BookingStatus, ServiceType
from servicehub.errors import (
    InvalidTransition,
    NotBookableError,
    PastDateError,
    ProviderNotFound,
    SlotConflict,
)
from servicehub.models import OutboxEvent


def test_request_creates_pending_booking(db, provider, make_booking):
    booking = make_booking(provider, time="2:00 PM")

    assert booking.status == BookingStatus.PENDING.value
    assert booking.time == "14:00"
    assert booking.customer_email == CUSTOMER_EMAIL
    assert booking.service_type == ServiceType.STANDARD.value
    assert booking.invoice_generated is False

    events = db.query(OutboxEvent).filter(OutboxEvent.event_type == "booking.requested").all()
    assert len(events) == 1
    assert events[0].payload["booking_id"] == booking.id


def test_request_classifies_service_once(provider, make_booking):
    booking = make_booking(provider, details="Weekly maintenance of the garden")
    assert booking.service_type == ServiceType.RECURRING.value

    urgent = make_booking(provider, time="11:00", details="Burst pipe in the kitchen")
    assert urgent.service_type == ServiceType.EMERGENCY.value


def test_request_checks_in_order(provider, make_booking, booking_service):
    with pytest.raises(PastDateError):
        make_booking(provider, day=date(2026, 10, 12))
    with pytest.raises(NotBookableError):
        make_booking(provider, day=SATURDAY)
    with pytest.raises(NotBookableError):
        make_booking(provider, time="17:00")
    with pytest.raises(ProviderNotFound):
        booking_service.request_booking(BookingCreate(providerId=999, date=TUESDAY, time="10:00"), CUSTOMER_EMAIL)


def test_second_request_for_held_slot_conflicts(provider, make_booking):
    make_booking(provider)
    with pytest.raises(SlotConflict):
        make_booking(provider, email="kofi@example.com")


def test_cancelled_booking_frees_slot(provider, make_booking, booking_service):
    first = make_booking(provider)
    booking_service.transition(first.id, BookingAction.CANCEL, CUSTOMER, reason="Changed plans")

    second = make_booking(provider, email="kofi@example.com")
    assert second.status == BookingStatus.PENDING.value


def test_full_lifecycle_and_history(provider, make_booking, booking_service):
    booking = make_booking(provider)
    actor = provider_actor(provider)

    booking = booking_service.transition(booking.id, BookingAction.CONFIRM, actor)
    booking = booking_service.transition(booking.id, BookingAction.START, actor)
    booking = booking_service.transition(booking.id, BookingAction.COMPLETE, actor)

    assert booking.status == BookingStatus.COMPLETED.value
    assert booking.service_completion_date is not None
    # Completing never invoices
    assert booking.invoice_generated is False

    log = booking_service.get_status_log(booking.id)
    assert [(e.action, e.new_status) for e in log] == [
        ("request", "PENDING"),
        ("confirm", "CONFIRMED"),
        ("start", "IN_PROGRESS"),
        ("complete", "COMPLETED"),
    ]


def test_illegal_transition_leaves_booking_unchanged(provider, make_booking, booking_service):
    booking = make_booking(provider)
    with pytest.raises(InvalidTransition):
        booking_service.transition(booking.id, BookingAction.COMPLETE, provider_actor(provider))
    assert booking_service.get_booking(booking.id).status == BookingStatus.PENDING.value


def test_customer_cannot_confirm(provider, make_booking, booking_service):
    booking = make_booking(provider)
    with pytest.raises(HTTPException) as exc_info:
        booking_service.transition(booking.id, BookingAction.CONFIRM, CUSTOMER)
    assert exc_info.value.status_code == 403


def test_other_provider_cannot_touch_booking(provider, make_provider, make_booking, booking_service):
    booking = make_booking(provider)
    stranger = provider_actor(make_provider())
    with pytest.raises(HTTPException):
        booking_service.transition(booking.id, BookingAction.CONFIRM, stranger)


def test_reschedule_onto_own_slot_is_a_no_op(provider, make_booking, booking_service):
    booking = make_booking(provider)
    result = booking_service.reschedule(booking.id, TUESDAY, "10:00", CUSTOMER)
    assert result.date == TUESDAY
    assert result.time == "10:00"
    assert result.reschedule_history == []


def test_reschedule_moves_slot_and_records_history(provider, make_booking, booking_service):
    booking = make_booking(provider)
    booking_service.transition(booking.id, BookingAction.CONFIRM, provider_actor(provider))

    moved = booking_service.reschedule(booking.id, date(2026, 10, 21), "15:00", CUSTOMER, reason="Work trip")

    assert moved.status == BookingStatus.CONFIRMED.value
    assert (moved.date, moved.time) == (date(2026, 10, 21), "15:00")
    assert moved.reschedule_history[0]["from_time"] == "10:00"
    assert moved.reschedule_history[0]["reason"] == "Work trip"
    # Old slot is free again
    assert "10:00" in booking_service.allocator.get_available_slots(provider.id, TUESDAY)


def test_reschedule_into_held_slot_conflicts(provider, make_booking, booking_service):
    booking = make_booking(provider)
    make_booking(provider, time="12:00", email="kofi@example.com")
    with pytest.raises(SlotConflict):
        booking_service.reschedule(booking.id, TUESDAY, "12:00", CUSTOMER)


def test_reschedule_rejects_past_dates_and_started_work(provider, make_booking, booking_service):
    booking = make_booking(provider)
    with pytest.raises(PastDateError):
        booking_service.reschedule(booking.id, date(2026, 10, 1), "10:00", CUSTOMER)

    actor = provider_actor(provider)
    booking_service.transition(booking.id, BookingAction.CONFIRM, actor)
    booking_service.transition(booking.id, BookingAction.START, actor)
    with pytest.raises(InvalidTransition):
        booking_service.reschedule(booking.id, date(2026, 10, 21), "10:00", ADMIN)


def test_customer_deletes_pending_booking(db, provider, make_booking, booking_service):
    booking_id = make_booking(provider).id
    booking_service.delete_booking(booking_id, CUSTOMER)

    assert booking_service.repo.get_booking(db, booking_id) is None
    assert db.query(OutboxEvent).filter(OutboxEvent.event_type == "booking.deleted").count() == 1


def test_delete_rules(provider, make_booking, booking_service):
    booking = make_booking(provider)

    with pytest.raises(HTTPException):
        booking_service.delete_booking(booking.id, provider_actor(provider))
    someone_else = Actor(subject="c2", email="kofi@example.com", role=ActorRole.CUSTOMER)
    with pytest.raises(HTTPException):
        booking_service.delete_booking(booking.id, someone_else)

    booking_service.transition(booking.id, BookingAction.CONFIRM, provider_actor(provider))
    with pytest.raises(InvalidTransition):
        booking_service.delete_booking(booking.id, CUSTOMER)


def test_provider_stats(provider, make_booking, booking_service):
    make_booking(provider)
    second = make_booking(provider, time="13:00")
    booking_service.transition(second.id, BookingAction.DECLINE, provider_actor(provider))

    stats = booking_service.provider_stats(provider.id)
    assert stats["total"] == 2
    assert stats["byStatus"]["PENDING"] == 1
    assert stats["byStatus"]["CANCELLED"] == 1
    assert stats["upcoming"] == 1
