"""
Slot allocation

Turns a provider's weekly template, the date's blocked ranges and the active
bookings into the list of bookable slot labels. Everything here is a read.

Slot grid: starts at the working-window start and steps by
slot_duration + buffer while start + slot_duration <= working-window end.
A slot is removed when its start falls inside [block.start, block.end) of any
block on that date, or when an active booking (PENDING, CONFIRMED,
IN_PROGRESS) holds its label.

Providers with no stored availability are handled by a single policy,
MissingAvailabilityPolicy, chosen through AVAILABILITY_FALLBACK.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from ...config import AVAILABILITY_FALLBACK
from ...shared.timeutils import (
    WEEKDAYS,
    Clock,
    format_time_label,
    local_date,
    local_now,
    parse_time_label,
    utcnow,
    weekday_name,
)
from .repository import AvailabilityRepository

logger = logging.getLogger(__name__)

DEFAULT_SLOT_DURATION = 60
DEFAULT_BUFFER = 0


class MissingAvailabilityPolicy(str, Enum):
    # Mon-Fri 09:00-17:00, hourly slots
    DEFAULT_TEMPLATE = "default_template"
    # Nothing can be booked until the provider saves availability
    UNBOOKABLE = "unbookable"


def default_working_hours() -> dict:
    return {
        day: {"enabled": day not in ("saturday", "sunday"), "start": "09:00", "end": "17:00"}
        for day in WEEKDAYS
    }


@dataclass(frozen=True)
class WeeklyTemplate:
    """Effective weekly availability used by the allocator"""

    working_hours: dict = field(default_factory=default_working_hours)
    slot_duration_minutes: int = DEFAULT_SLOT_DURATION
    buffer_minutes: int = DEFAULT_BUFFER
    configured: bool = False
    # IANA name; "today" is the provider's local date, UTC when unset
    timezone: Optional[str] = None

    def window(self, day: date) -> Optional[tuple[int, int]]:
        """Working window in minutes for the date's weekday, None when disabled"""
        hours = self.working_hours.get(weekday_name(day))
        if not hours or not hours.get("enabled"):
            return None
        start = parse_time_label(hours["start"])
        end = parse_time_label(hours["end"])
        if start >= end:
            return None
        return start, end


def build_slot_grid(start: int, end: int, duration: int, buffer: int = 0) -> list[int]:
    """Slot start times (minutes) inside [start, end)"""
    if duration <= 0:
        raise ValueError("Slot duration must be positive")
    step = duration + max(buffer, 0)
    slots = []
    current = start
    while current + duration <= end:
        slots.append(current)
        current += step
    return slots


def merge_ranges(ranges: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Union of [start, end) ranges; overlapping and adjacent ranges are joined"""
    merged: list[list[int]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [(s, e) for s, e in merged]


def ranges_cover(ranges: list[tuple[int, int]], start: int, end: int) -> bool:
    """True when the union of ranges covers all of [start, end)"""
    for range_start, range_end in merge_ranges(ranges):
        if range_start <= start and range_end >= end:
            return True
    return False


class SlotAllocator:
    """Computes bookable slots for a provider on a date"""

    def __init__(
        self,
        db: Session,
        clock: Clock = utcnow,
        policy: Optional[MissingAvailabilityPolicy] = None,
    ):
        self.db = db
        self.clock = clock
        self.policy = policy or MissingAvailabilityPolicy(AVAILABILITY_FALLBACK)
        self.repo = AvailabilityRepository()

    def now(self, provider_id: Optional[int] = None) -> datetime:
        """Wall-clock time in the provider's timezone, or UTC without a provider"""
        if provider_id is None:
            return self.clock()
        template = self.get_template(provider_id)
        return local_now(self.clock(), template.timezone if template else None)

    def today(self, provider_id: Optional[int] = None) -> date:
        return self.now(provider_id).date()

    def get_template(self, provider_id: int) -> Optional[WeeklyTemplate]:
        """Stored template, or the missing-availability policy result (None = unbookable)"""
        availability = self.repo.get_availability(self.db, provider_id)
        if availability:
            return WeeklyTemplate(
                working_hours=availability.working_hours or {},
                slot_duration_minutes=availability.slot_duration_minutes or DEFAULT_SLOT_DURATION,
                buffer_minutes=availability.buffer_minutes or 0,
                configured=True,
                timezone=availability.timezone,
            )
        logger.debug(f"🔍 No availability stored for provider {provider_id}, policy={self.policy.value}")
        if self.policy == MissingAvailabilityPolicy.UNBOOKABLE:
            return None
        return WeeklyTemplate()

    def _block_ranges(self, provider_id: int, day: date) -> list[tuple[int, int]]:
        return [
            (parse_time_label(b.start_time), parse_time_label(b.end_time))
            for b in self.repo.get_blocked_slots(self.db, provider_id, day)
        ]

    def offered_slots(self, provider_id: int, day: date) -> list[str]:
        """Grid for the date with blocked ranges removed, ignoring bookings"""
        template = self.get_template(provider_id)
        if template is None:
            return []
        window = template.window(day)
        if window is None:
            return []

        blocks = self._block_ranges(provider_id, day)
        grid = build_slot_grid(window[0], window[1], template.slot_duration_minutes, template.buffer_minutes)
        return [
            format_time_label(start)
            for start in grid
            if not any(block_start <= start < block_end for block_start, block_end in blocks)
        ]

    def get_available_slots(
        self, provider_id: int, day: date, exclude_booking_id: Optional[int] = None
    ) -> list[str]:
        """Ordered slot labels still open for booking"""
        offered = self.offered_slots(provider_id, day)
        if not offered:
            return []
        held = self.repo.get_held_slot_labels(self.db, provider_id, day, exclude_booking_id)
        return [label for label in offered if label not in held]

    def is_date_bookable(self, provider_id: int, day: date) -> bool:
        template = self.get_template(provider_id)
        if template is None:
            return False
        if day < local_date(self.clock(), template.timezone):
            return False
        window = template.window(day)
        if window is None:
            return False
        # Blocks may compose to cover the whole window
        return not ranges_cover(self._block_ranges(provider_id, day), window[0], window[1])

    def is_slot_offered(self, provider_id: int, day: date, label: str) -> bool:
        """Whether the grid (ignoring bookings) offers this slot on a bookable date"""
        return self.is_date_bookable(provider_id, day) and label in self.offered_slots(provider_id, day)

    def is_slot_held(
        self, provider_id: int, day: date, label: str, exclude_booking_id: Optional[int] = None
    ) -> bool:
        return label in self.repo.get_held_slot_labels(self.db, provider_id, day, exclude_booking_id)
