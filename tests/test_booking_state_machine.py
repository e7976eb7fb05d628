import pytest

from servicehub.domain.bookings.state_machine import allowed_actions, can_reschedule, next_status
from servicehub.enums import BookingAction, BookingStatus
from servicehub.errors import InvalidTransition

LEGAL = {
    (BookingStatus.PENDING, BookingAction.CONFIRM): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingAction.DECLINE): BookingStatus.CANCELLED,
    (BookingStatus.PENDING, BookingAction.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingAction.START): BookingStatus.IN_PROGRESS,
    (BookingStatus.CONFIRMED, BookingAction.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.IN_PROGRESS, BookingAction.COMPLETE): BookingStatus.COMPLETED,
}


@pytest.mark.parametrize("status", list(BookingStatus))
@pytest.mark.parametrize("action", list(BookingAction))
def test_transition_grid(status, action):
    expected = LEGAL.get((status, action))
    if expected is None:
        with pytest.raises(InvalidTransition) as exc_info:
            next_status(status, action)
        assert exc_info.value.details["status"] == status.value
        assert exc_info.value.details["action"] == action.value
    else:
        assert next_status(status, action) == expected


@pytest.mark.parametrize("status", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
def test_terminal_statuses_allow_nothing(status):
    assert allowed_actions(status) == []
    assert not can_reschedule(status)


def test_reschedule_only_before_work_starts():
    assert can_reschedule("PENDING")
    assert can_reschedule(BookingStatus.CONFIRMED)
    assert not can_reschedule(BookingStatus.IN_PROGRESS)


def test_accepts_raw_strings():
    assert next_status("CONFIRMED", "start") == BookingStatus.IN_PROGRESS
