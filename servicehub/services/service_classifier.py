"""
Service type classification

APPROXIMATE HEURISTIC. The service type that can override a provider's tier
commission rate is inferred from free text and timing:

1. EMERGENCY when the booking is flagged as an emergency, or the description
   contains one of EMERGENCY_KEYWORDS, or the slot starts on the day the
   request is made and within SAME_DAY_URGENT_HOURS of it.
2. RECURRING when flagged as recurring or the description contains one of
   RECURRING_KEYWORDS.
3. STANDARD otherwise.

Keyword matching is case-insensitive substring matching, so it can misfire
(e.g. "no leak found"). Callers store the result on the booking once, at
request time, so an invoice always uses the classification the customer saw.
"""

from datetime import datetime
from typing import Optional

from ..enums import ServiceType

EMERGENCY_KEYWORDS = (
    "emergency",
    "urgent",
    "leak",
    "burst",
    "flooding",
    "electrical fault",
    "power outage",
    "gas leak",
    "broken",
    "immediate",
    "asap",
)

RECURRING_KEYWORDS = (
    "weekly",
    "monthly",
    "quarterly",
    "regular",
    "maintenance",
    "subscription",
    "recurring",
    "routine",
    "scheduled",
)

SAME_DAY_URGENT_HOURS = 4


def _contains_keyword(text: str, keywords: tuple) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def is_same_day_urgent(scheduled_at: Optional[datetime], requested_at: Optional[datetime]) -> bool:
    """Slot starts on the request day, within SAME_DAY_URGENT_HOURS"""
    if scheduled_at is None or requested_at is None:
        return False
    if scheduled_at.date() != requested_at.date():
        return False
    hours_until = (scheduled_at - requested_at).total_seconds() / 3600
    return 0 <= hours_until <= SAME_DAY_URGENT_HOURS


def classify_service(
    details: str = "",
    is_emergency: bool = False,
    is_recurring: bool = False,
    scheduled_at: Optional[datetime] = None,
    requested_at: Optional[datetime] = None,
) -> ServiceType:
    """Infer the service type; see module docstring for the rules"""
    if (
        is_emergency
        or _contains_keyword(details, EMERGENCY_KEYWORDS)
        or is_same_day_urgent(scheduled_at, requested_at)
    ):
        return ServiceType.EMERGENCY
    if is_recurring or _contains_keyword(details, RECURRING_KEYWORDS):
        return ServiceType.RECURRING
    return ServiceType.STANDARD
