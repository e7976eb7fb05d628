"""
Booking lifecycle transitions

    PENDING      --confirm-->  CONFIRMED
    PENDING      --decline-->  CANCELLED
    PENDING      --cancel--->  CANCELLED
    CONFIRMED    --start---->  IN_PROGRESS
    CONFIRMED    --cancel--->  CANCELLED
    IN_PROGRESS  --complete->  COMPLETED

COMPLETED and CANCELLED are terminal. Rescheduling keeps the status and is
allowed from PENDING and CONFIRMED only. Completing a booking never invoices
it; settlement is a separate step.
"""

from typing import Union

from ...enums import BookingAction, BookingStatus
from ...errors import InvalidTransition

TRANSITIONS: dict[BookingStatus, dict[BookingAction, BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingAction.CONFIRM: BookingStatus.CONFIRMED,
        BookingAction.DECLINE: BookingStatus.CANCELLED,
        BookingAction.CANCEL: BookingStatus.CANCELLED,
    },
    BookingStatus.CONFIRMED: {
        BookingAction.START: BookingStatus.IN_PROGRESS,
        BookingAction.CANCEL: BookingStatus.CANCELLED,
    },
    BookingStatus.IN_PROGRESS: {
        BookingAction.COMPLETE: BookingStatus.COMPLETED,
    },
    BookingStatus.COMPLETED: {},
    BookingStatus.CANCELLED: {},
}

RESCHEDULABLE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

# Actions only the provider (or an admin) may take; customers may only cancel
PROVIDER_ONLY_ACTIONS = (
    BookingAction.CONFIRM,
    BookingAction.DECLINE,
    BookingAction.START,
    BookingAction.COMPLETE,
)


def allowed_actions(status: Union[BookingStatus, str]) -> list[BookingAction]:
    return list(TRANSITIONS[BookingStatus(status)].keys())


def next_status(status: Union[BookingStatus, str], action: Union[BookingAction, str]) -> BookingStatus:
    """
    Target status for an action

    Raises:
        InvalidTransition: If the action is not legal from the current status
    """
    status = BookingStatus(status)
    action = BookingAction(action)
    target = TRANSITIONS[status].get(action)
    if target is None:
        raise InvalidTransition(
            f"Cannot {action.value} a booking that is {status.value.lower().replace('_', ' ')}",
            status=status.value,
            action=action.value,
            allowed=[a.value for a in allowed_actions(status)],
        )
    return target


def can_reschedule(status: Union[BookingStatus, str]) -> bool:
    return BookingStatus(status) in RESCHEDULABLE_STATUSES
