from datetime import datetime

from servicehub.enums import ServiceType
from servicehub.services.service_classifier import classify_service, is_same_day_urgent

REQUESTED = datetime(2026, 10, 19, 8, 0)


def test_flags_win():
    assert classify_service("Lawn mowing", is_emergency=True) == ServiceType.EMERGENCY
    assert classify_service("Lawn mowing", is_recurring=True) == ServiceType.RECURRING


def test_emergency_beats_recurring():
    assert classify_service("Monthly check, but there is a gas leak", is_recurring=True) == ServiceType.EMERGENCY


def test_keywords_are_case_insensitive():
    assert classify_service("URGENT: no hot water") == ServiceType.EMERGENCY
    assert classify_service("Quarterly deep clean") == ServiceType.RECURRING
    assert classify_service("Paint the fence") == ServiceType.STANDARD


def test_same_day_slot_within_window_is_emergency():
    assert is_same_day_urgent(datetime(2026, 10, 19, 11, 0), REQUESTED)
    assert not is_same_day_urgent(datetime(2026, 10, 19, 13, 0), REQUESTED)
    assert not is_same_day_urgent(datetime(2026, 10, 20, 9, 0), REQUESTED)
    assert classify_service("Paint the fence", scheduled_at=datetime(2026, 10, 19, 9, 0), requested_at=REQUESTED) == (
        ServiceType.EMERGENCY
    )


def test_missing_timing_is_not_urgent():
    assert not is_same_day_urgent(None, REQUESTED)
    assert classify_service("") == ServiceType.STANDARD
