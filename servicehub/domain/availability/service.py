"""Availability service - Business logic for working hours, blocked time and slots"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from ...errors import BlockedSlotNotFound, InvalidAvailability, ProviderNotFound
from ...models import BlockedSlot, Provider, ProviderAvailability
from ...shared.timeutils import WEEKDAYS, Clock, parse_time_label, utcnow
from ...shared.validators import validate_time_range, validate_uuid
from ..providers.repository import ProviderRepository
from .allocator import SlotAllocator, default_working_hours
from .repository import AvailabilityRepository
from .schemas import AvailabilityUpdate, BlockedSlotCreate

logger = logging.getLogger(__name__)


def create_default_availability(db: Session, provider_id: int) -> ProviderAvailability:
    """Stage the default weekly template for a provider (caller commits)"""
    return AvailabilityRepository.add_availability(
        db,
        provider_id,
        working_hours=default_working_hours(),
        slot_duration_minutes=60,
        buffer_minutes=0,
    )


def _check_range(start: str, end: str, what: str) -> None:
    try:
        validate_time_range(parse_time_label(start), parse_time_label(end))
    except ValueError as e:
        raise InvalidAvailability(f"{what}: start time must be before end time", start=start, end=end) from e


class AvailabilityService:
    """Service layer for availability business logic"""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.repo = AvailabilityRepository()
        self.allocator = SlotAllocator(db, clock=clock)

    def _require_provider(self, provider_id: int) -> Provider:
        provider = ProviderRepository.get_provider(self.db, provider_id)
        if not provider:
            raise ProviderNotFound(provider_id=provider_id)
        return provider

    def get_availability(self, provider_id: int) -> dict:
        """Effective availability (stored record or the missing-availability policy result)"""
        self._require_provider(provider_id)
        stored = self.repo.get_availability(self.db, provider_id)
        template = self.allocator.get_template(provider_id)

        if template is None:
            # Unbookable policy: every day disabled
            working_hours = {day: {"enabled": False, "start": "09:00", "end": "17:00"} for day in WEEKDAYS}
            slot_duration, buffer = 60, 0
        else:
            working_hours = template.working_hours
            slot_duration, buffer = template.slot_duration_minutes, template.buffer_minutes

        return {
            "providerId": provider_id,
            "configured": stored is not None,
            "workingHours": working_hours,
            "slotDuration": slot_duration,
            "bufferTime": buffer,
            "timezone": stored.timezone if stored else None,
            "version": stored.version if stored else None,
        }

    def set_availability(self, provider_id: int, data: AvailabilityUpdate) -> dict:
        """Supersede the weekly template; enabled days must have start < end"""
        self._require_provider(provider_id)

        working_hours = default_working_hours()
        for day in working_hours:
            working_hours[day]["enabled"] = False
        for day, hours in data.workingHours.items():
            if hours.enabled:
                _check_range(hours.start, hours.end, day.capitalize())
            working_hours[day] = {"enabled": hours.enabled, "start": hours.start, "end": hours.end}

        try:
            availability = self.repo.get_availability(self.db, provider_id)
            if availability:
                availability.working_hours = working_hours
                availability.slot_duration_minutes = data.slotDuration
                availability.buffer_minutes = data.bufferTime
                availability.timezone = data.timezone
                availability.version = (availability.version or 1) + 1
            else:
                availability = self.repo.add_availability(
                    self.db,
                    provider_id,
                    working_hours=working_hours,
                    slot_duration_minutes=data.slotDuration,
                    buffer_minutes=data.bufferTime,
                    timezone=data.timezone,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Availability for provider {provider_id} saved (version {availability.version})")
        return self.get_availability(provider_id)

    def list_blocked_slots(self, provider_id: int) -> list[BlockedSlot]:
        self._require_provider(provider_id)
        return self.repo.get_blocked_slots(self.db, provider_id)

    def add_blocked_slot(self, provider_id: int, data: BlockedSlotCreate) -> BlockedSlot:
        self._require_provider(provider_id)
        _check_range(data.startTime, data.endTime, "Blocked slot")

        block = self.repo.create_blocked_slot(
            self.db,
            provider_id,
            date=data.date,
            start_time=data.startTime,
            end_time=data.endTime,
            reason=data.reason or "Unavailable",
        )
        logger.info(
            f"✅ Blocked {data.date} {data.startTime}-{data.endTime} for provider {provider_id}"
        )
        return block

    def remove_blocked_slot(self, provider_id: int, slot_id: str) -> None:
        block = self.repo.get_blocked_slot(self.db, slot_id) if validate_uuid(slot_id) else None
        if not block or block.provider_id != provider_id:
            raise BlockedSlotNotFound(slot_id=slot_id)
        self.repo.delete_blocked_slot(self.db, block)
        logger.info(f"🗑️ Removed blocked slot {slot_id} for provider {provider_id}")

    def get_available_slots(self, provider_id: int, day: date) -> dict:
        self._require_provider(provider_id)
        return {
            "providerId": provider_id,
            "date": day,
            "bookable": self.allocator.is_date_bookable(provider_id, day),
            "slots": self.allocator.get_available_slots(provider_id, day),
        }
