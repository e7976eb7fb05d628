"""Time label parsing and clock helpers shared by availability and bookings"""

import re
from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def provider_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is not a known timezone
    """
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def local_now(now: datetime, tz_name: Optional[str] = None) -> datetime:
    """Naive wall-clock time of a naive UTC instant in the provider's timezone (UTC when unset)"""
    zone = provider_zone(tz_name)
    if zone is None:
        return now
    return now.replace(tzinfo=timezone.utc).astimezone(zone).replace(tzinfo=None)


def local_date(now: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar date of a naive UTC instant in the provider's timezone (UTC when unset)"""
    return local_now(now, tz_name).date()


def parse_time_label(value: str) -> int:
    """
    Parse "HH:MM" or "HH:MM AM/PM" into minutes since midnight.

    Raises:
        ValueError: If the label is not a valid time of day
    """
    if value is None:
        raise ValueError("Time is required")
    text = value.strip()

    match = _TIME_12H.match(text)
    if match:
        hours, minutes, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if not 1 <= hours <= 12:
            raise ValueError(f"Invalid time: {value}")
        if meridiem == "PM" and hours != 12:
            hours += 12
        if meridiem == "AM" and hours == 12:
            hours = 0
    else:
        match = _TIME_24H.match(text)
        if not match:
            raise ValueError(f"Invalid time: {value}")
        hours, minutes = int(match.group(1)), int(match.group(2))
        # 24:00 is allowed as an end-of-day bound
        if hours == 24 and minutes == 0:
            return 24 * 60
        if hours > 23:
            raise ValueError(f"Invalid time: {value}")

    if minutes > 59:
        raise ValueError(f"Invalid time: {value}")
    return hours * 60 + minutes


def format_time_label(minutes: int) -> str:
    """Format minutes since midnight as a canonical "HH:MM" label"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time_label(value: str) -> str:
    return format_time_label(parse_time_label(value))


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def combine(day: date, label: str) -> datetime:
    """Naive datetime for a slot label on a given day"""
    minutes = parse_time_label(label)
    return datetime(day.year, day.month, day.day, minutes // 60, minutes % 60)
