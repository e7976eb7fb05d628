from datetime import date, datetime

import pytest
from pydantic import ValidationError

from conftest import SATURDAY, TUESDAY, fixed_clock
from servicehub.domain.availability.allocator import (
    MissingAvailabilityPolicy,
    SlotAllocator,
    build_slot_grid,
    merge_ranges,
    ranges_cover,
)
from servicehub.domain.availability.schemas import AvailabilityUpdate, BlockedSlotCreate, DayHours
from servicehub.domain.availability.service import AvailabilityService
from servicehub.domain.bookings.schemas import BookingCreate
from servicehub.domain.bookings.service import BookingService
from servicehub.errors import BlockedSlotNotFound, InvalidAvailability, PastDateError
from servicehub.models import Provider

DEFAULT_DAY = ["09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00"]


def test_grid_steps_by_duration_plus_buffer():
    # 09:00-12:00, 45 min slots with 15 min buffer
    assert build_slot_grid(540, 720, 45, 15) == [540, 600, 660]


def test_grid_drops_slot_that_would_overrun_window():
    assert build_slot_grid(540, 630, 60) == [540]


def test_grid_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        build_slot_grid(540, 600, 0)


def test_merge_ranges_joins_overlapping_and_adjacent():
    assert merge_ranges([(600, 660), (540, 600), (700, 720), (710, 730)]) == [(540, 660), (700, 730)]


def test_ranges_cover_needs_the_whole_window():
    assert ranges_cover([(540, 780), (780, 1020)], 540, 1020)
    assert not ranges_cover([(540, 780), (800, 1020)], 540, 1020)


def test_default_template_offers_hourly_weekday_slots(db, provider):
    allocator = SlotAllocator(db, clock=fixed_clock)
    assert allocator.get_available_slots(provider.id, TUESDAY) == DEFAULT_DAY
    assert allocator.get_available_slots(provider.id, SATURDAY) == []
    assert not allocator.is_date_bookable(provider.id, SATURDAY)


def test_past_dates_are_not_bookable(db, provider):
    allocator = SlotAllocator(db, clock=fixed_clock)
    assert not allocator.is_date_bookable(provider.id, date(2026, 10, 16))


def test_block_removes_slots_starting_inside_it(db, provider):
    service = AvailabilityService(db, clock=fixed_clock)
    service.add_blocked_slot(
        provider.id, BlockedSlotCreate(date=TUESDAY, startTime="10:30", endTime="12:00", reason="Dentist")
    )
    # 10:00 starts before the block; 11:00 starts inside it; 12:00 is the exclusive end
    slots = SlotAllocator(db, clock=fixed_clock).get_available_slots(provider.id, TUESDAY)
    assert "10:00" in slots
    assert "11:00" not in slots
    assert "12:00" in slots


def test_blocks_composing_the_full_day_make_it_unbookable(db, provider):
    service = AvailabilityService(db, clock=fixed_clock)
    service.add_blocked_slot(provider.id, BlockedSlotCreate(date=TUESDAY, startTime="09:00", endTime="13:00"))
    allocator = SlotAllocator(db, clock=fixed_clock)
    assert allocator.is_date_bookable(provider.id, TUESDAY)

    service.add_blocked_slot(provider.id, BlockedSlotCreate(date=TUESDAY, startTime="1:00 PM", endTime="5:00 PM"))
    assert not allocator.is_date_bookable(provider.id, TUESDAY)
    assert allocator.get_available_slots(provider.id, TUESDAY) == []


def test_active_bookings_hold_their_slot(db, provider, make_booking, booking_service):
    from conftest import CUSTOMER

    booking = make_booking(provider, time="11:00")
    allocator = SlotAllocator(db, clock=fixed_clock)
    assert "11:00" not in allocator.get_available_slots(provider.id, TUESDAY)
    assert "11:00" in allocator.get_available_slots(provider.id, TUESDAY, exclude_booking_id=booking.id)

    booking_service.transition(booking.id, "cancel", CUSTOMER)
    assert "11:00" in allocator.get_available_slots(provider.id, TUESDAY)


def test_missing_availability_uses_default_template(db):
    legacy = Provider(email="legacy@example.com", business_name="Legacy Co", tier=None)
    db.add(legacy)
    db.commit()

    allocator = SlotAllocator(db, clock=fixed_clock, policy=MissingAvailabilityPolicy.DEFAULT_TEMPLATE)
    assert allocator.get_available_slots(legacy.id, TUESDAY) == DEFAULT_DAY

    strict = SlotAllocator(db, clock=fixed_clock, policy=MissingAvailabilityPolicy.UNBOOKABLE)
    assert strict.get_available_slots(legacy.id, TUESDAY) == []
    assert not strict.is_date_bookable(legacy.id, TUESDAY)


def test_set_availability_supersedes_template(db, provider):
    service = AvailabilityService(db, clock=fixed_clock)
    result = service.set_availability(
        provider.id,
        AvailabilityUpdate(
            workingHours={
                "Tuesday": DayHours(enabled=True, start="08:00", end="10:00"),
                "saturday": DayHours(enabled=True, start="10:00", end="12:00"),
            },
            slotDuration=30,
        ),
    )
    assert result["version"] == 2
    assert result["workingHours"]["monday"]["enabled"] is False

    allocator = SlotAllocator(db, clock=fixed_clock)
    assert allocator.get_available_slots(provider.id, TUESDAY) == ["08:00", "08:30", "09:00", "09:30"]
    assert allocator.get_available_slots(provider.id, SATURDAY) == ["10:00", "10:30", "11:00", "11:30"]


def test_set_availability_rejects_inverted_window(db, provider):
    service = AvailabilityService(db, clock=fixed_clock)
    with pytest.raises(InvalidAvailability):
        service.set_availability(
            provider.id,
            AvailabilityUpdate(workingHours={"monday": DayHours(enabled=True, start="17:00", end="09:00")}),
        )


def test_remove_blocked_slot_checks_owner(db, provider, make_provider):
    service = AvailabilityService(db, clock=fixed_clock)
    block = service.add_blocked_slot(provider.id, BlockedSlotCreate(date=TUESDAY, startTime="09:00", endTime="10:00"))
    other = make_provider()

    with pytest.raises(BlockedSlotNotFound):
        service.remove_blocked_slot(other.id, block.id)

    service.remove_blocked_slot(provider.id, block.id)
    assert service.list_blocked_slots(provider.id) == []


# Monday 23:00 UTC is already Tuesday midday in Auckland
LATE_MONDAY_UTC = datetime(2026, 10, 19, 23, 0)
MONDAY = date(2026, 10, 19)


def _late_monday():
    return LATE_MONDAY_UTC


def _weekdays_in(timezone):
    return AvailabilityUpdate(
        workingHours={day: DayHours(enabled=True) for day in ("monday", "tuesday")},
        timezone=timezone,
    )


def test_today_follows_provider_timezone(db, make_provider):
    auckland, utc = make_provider(), make_provider()
    service = AvailabilityService(db, clock=fixed_clock)
    service.set_availability(auckland.id, _weekdays_in("Pacific/Auckland"))
    service.set_availability(utc.id, _weekdays_in(None))

    allocator = SlotAllocator(db, clock=_late_monday)
    assert allocator.today() == MONDAY
    assert allocator.today(utc.id) == MONDAY
    assert allocator.today(auckland.id) == TUESDAY
    assert allocator.is_date_bookable(utc.id, MONDAY)
    assert not allocator.is_date_bookable(auckland.id, MONDAY)
    assert allocator.is_date_bookable(auckland.id, TUESDAY)


def test_booking_past_date_uses_provider_timezone(db, make_provider):
    auckland = make_provider()
    AvailabilityService(db, clock=fixed_clock).set_availability(auckland.id, _weekdays_in("Pacific/Auckland"))

    bookings = BookingService(db, clock=_late_monday, allocator=SlotAllocator(db, clock=_late_monday))
    with pytest.raises(PastDateError):
        bookings.request_booking(BookingCreate(providerId=auckland.id, date=MONDAY, time="16:00"), "ama@example.com")


def test_unknown_timezone_is_rejected():
    with pytest.raises(ValidationError):
        _weekdays_in("Mars/Olympus_Mons")
