"""
Availability Service
Reader slot CRUD, conflict checks, calendar week and bookable start times
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.config import settings
from soulseer.models.availability import AvailabilitySlot
from soulseer.models.user import User, UserRole
from soulseer.repositories.availability_repository import AvailabilityRepository
from soulseer.repositories.session_repository import SessionRepository
from soulseer.repositories.user_repository import UserRepository
from soulseer.schemas.availability import (BookableSlotsResponse,
                                           CalendarResponse,
                                           OccurrenceResponse,
                                           SlotCreateRequest, SlotListResponse,
                                           SlotResponse, SlotUpdateRequest)
from soulseer.utils.datetime import ensure_utc, to_naive_utc, utc_now
from soulseer.utils.scheduling import (Window, bookable_starts, build_week,
                                       expand_slots, find_conflicts, get_zone,
                                       is_valid_timezone, local_to_utc,
                                       local_today, open_windows, parse_hhmm,
                                       sunday_weekday, week_start)

logger = logging.getLogger(__name__)

SLOT_FIELDS = (
    "day_of_week", "start_time", "end_time", "is_recurring", "recurrence_type",
    "specific_date", "recurrence_end_date", "is_blocked", "notes",
)


class AvailabilityService:
    """Reader availability service"""

    def __init__(self):
        self.repo = AvailabilityRepository()
        self.session_repo = SessionRepository()
        self.user_repo = UserRepository()

    # ========== helpers ==========

    async def _reader_or_404(self, db: AsyncSession, reader_id: int) -> User:
        user = await self.user_repo.get_by_id(db, reader_id)
        if not user or user.role != UserRole.READER:
            raise HTTPException(status_code=404, detail="Reader not found")
        return user

    async def _owned_slot(self, db: AsyncSession, user: User, slot_id: int) -> AvailabilitySlot:
        slot = await self.repo.get_by_id(db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Availability slot not found")
        if slot.reader_id != user.user_id and user.role != UserRole.ADMIN:
            raise HTTPException(status_code=403, detail="Not the owner of this slot")
        return slot

    @staticmethod
    def _normalize(values: dict, reader_tz: str) -> dict:
        """
        Validate a slot definition and fill the derived fields.
        Raises 400 on any rule violation.
        """
        try:
            start = parse_hhmm(values["start_time"])
            end = parse_hhmm(values["end_time"])
        except (KeyError, TypeError, ValueError):
            raise HTTPException(status_code=400, detail="Times must use HH:MM (00:00-23:59)")
        if start >= end:
            raise HTTPException(status_code=400, detail="start_time must be before end_time")

        specific_date = values.get("specific_date")

        if not values.get("is_recurring", True):
            if specific_date is None:
                raise HTTPException(status_code=400, detail="specific_date is required for one-off slots")
            values["day_of_week"] = sunday_weekday(specific_date)
            values["recurrence_end_date"] = None
            return values

        if specific_date is None:
            specific_date = local_today(reader_tz)
            values["specific_date"] = specific_date

        recurrence = values.get("recurrence_type")
        if values.get("day_of_week") is None:
            if recurrence is not None and recurrence.value in ("WEEKLY", "BIWEEKLY"):
                raise HTTPException(status_code=400, detail="day_of_week is required for weekly slots")
            values["day_of_week"] = sunday_weekday(specific_date)

        end_date = values.get("recurrence_end_date")
        if end_date is not None and end_date < specific_date:
            raise HTTPException(status_code=400, detail="recurrence_end_date is before the first occurrence")
        return values

    def _check_conflicts(self, candidate, existing: List[AvailabilitySlot], reader_tz: str,
                         exclude_slot_id: Optional[int] = None) -> None:
        conflicts = find_conflicts(
            candidate,
            existing,
            today=local_today(reader_tz),
            horizon_days=settings.AVAILABILITY_CONFLICT_HORIZON_DAYS,
            exclude_slot_id=exclude_slot_id,
        )
        if conflicts:
            ids = ", ".join(str(s.slot_id) for s in conflicts)
            raise HTTPException(status_code=409, detail=f"Slot overlaps existing availability ({ids})")

    async def booked_windows(self, db: AsyncSession, reader_id: int, start: datetime, end: datetime) -> List[Window]:
        """Active sessions of the reader inside [start, end) as UTC windows"""
        sessions = await self.session_repo.active_overlapping(
            db, to_naive_utc(start), to_naive_utc(end), reader_id=reader_id
        )
        return [
            (ensure_utc(s.scheduled_at), ensure_utc(s.scheduled_at) + timedelta(minutes=s.duration_minutes))
            for s in sessions
        ]

    async def windows_between(self, db: AsyncSession, reader: User, start: datetime, end: datetime) -> List[Window]:
        """
        Open windows of a reader covering the UTC range [start, end)
        """
        tz = get_zone(reader.timezone)
        # local dates touched by the range, plus a day of slack for overnight offsets
        first = ensure_utc(start).astimezone(tz).date() - timedelta(days=1)
        last = ensure_utc(end).astimezone(tz).date() + timedelta(days=1)

        slots = await self.repo.list_for_reader(db, reader.user_id)
        occurrences = expand_slots(slots, first, last, reader.timezone)
        booked = await self.booked_windows(db, reader.user_id, start, end)
        return open_windows(occurrences, booked)

    # ========== slot CRUD ==========

    async def create_slot(self, db: AsyncSession, user: User, data: SlotCreateRequest) -> SlotResponse:
        values = self._normalize(data.model_dump(), user.timezone)
        existing = await self.repo.list_for_reader(db, user.user_id)
        candidate = AvailabilitySlot(reader_id=user.user_id, **values)
        self._check_conflicts(candidate, existing, user.timezone)

        slot = await self.repo.create(db, candidate)
        await db.commit()

        logger.info(f"Slot created: reader={user.user_id} slot={slot.slot_id} "
                    f"{slot.recurrence_type.value if slot.is_recurring else slot.specific_date} "
                    f"{slot.start_time}-{slot.end_time}")
        return SlotResponse.model_validate(slot)

    async def update_slot(self, db: AsyncSession, user: User, slot_id: int, data: SlotUpdateRequest) -> SlotResponse:
        slot = await self._owned_slot(db, user, slot_id)
        nulls = data.null_fields()
        if nulls:
            raise HTTPException(status_code=400, detail=f"{', '.join(nulls)} cannot be null")
        changes = data.changes()
        if not changes:
            raise HTTPException(status_code=400, detail="Nothing to update")

        merged = {field: getattr(slot, field) for field in SLOT_FIELDS}
        merged.update(changes)
        owner = await self.user_repo.get_by_id(db, slot.reader_id)
        values = self._normalize(merged, owner.timezone)

        # validated as a detached copy so a rejected update leaves the row untouched
        candidate = SimpleNamespace(slot_id=slot.slot_id, created_at=slot.created_at, **values)
        existing = await self.repo.list_for_reader(db, slot.reader_id)
        self._check_conflicts(candidate, existing, owner.timezone, exclude_slot_id=slot.slot_id)

        for field, value in values.items():
            setattr(slot, field, value)
        slot = await self.repo.update(db, slot)
        await db.commit()

        logger.info(f"Slot updated: slot={slot.slot_id} ({', '.join(changes)})")
        return SlotResponse.model_validate(slot)

    async def delete_slot(self, db: AsyncSession, user: User, slot_id: int) -> None:
        slot = await self._owned_slot(db, user, slot_id)
        await self.repo.soft_delete(db, slot)
        await db.commit()
        logger.info(f"Slot deleted: slot={slot_id}")

    async def get_slot(self, db: AsyncSession, slot_id: int) -> SlotResponse:
        slot = await self.repo.get_by_id(db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Availability slot not found")
        return SlotResponse.model_validate(slot)

    async def list_slots(
        self,
        db: AsyncSession,
        reader_id: int,
        day_of_week: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> SlotListResponse:
        reader = await self._reader_or_404(db, reader_id)
        slots = await self.repo.list_for_reader(db, reader_id, day_of_week)

        occurrences = None
        if start_date and end_date:
            if end_date < start_date:
                raise HTTPException(status_code=400, detail="end_date is before start_date")
            if (end_date - start_date).days > 366:
                raise HTTPException(status_code=400, detail="Date range is limited to one year")
            occurrences = [
                OccurrenceResponse(slot_id=o.slot_id, date=o.local_date, start=o.start,
                                   end=o.end, is_blocked=o.is_blocked)
                for o in expand_slots(slots, start_date, end_date, reader.timezone)
            ]

        return SlotListResponse(
            slots=[SlotResponse.model_validate(s) for s in slots],
            occurrences=occurrences,
        )

    # ========== calendar / bookable starts ==========

    async def calendar(
        self,
        db: AsyncSession,
        reader_id: int,
        day: Optional[date] = None,
        tz_name: Optional[str] = None,
    ) -> CalendarResponse:
        """
        Week grid (Sunday first, always 7 days) containing `day`.
        Occurrences are expanded in the reader's timezone and displayed in tz_name.
        """
        reader = await self._reader_or_404(db, reader_id)
        if tz_name and not is_valid_timezone(tz_name):
            raise HTTPException(status_code=400, detail=f"Unknown timezone: {tz_name}")
        display_tz = tz_name or reader.timezone or "UTC"
        day = day or local_today(display_tz)

        first = week_start(day)
        # two days of slack: reader and viewer offsets can differ by up to 26 hours
        slots = await self.repo.list_for_reader(db, reader_id)
        occurrences = expand_slots(slots, first - timedelta(days=2), first + timedelta(days=8), reader.timezone)

        zone = get_zone(display_tz)
        range_start = local_to_utc(first, parse_hhmm("00:00"), zone)
        range_end = local_to_utc(first + timedelta(days=7), parse_hhmm("00:00"), zone)
        booked = await self.booked_windows(db, reader_id, range_start, range_end)

        return CalendarResponse(
            reader_id=reader_id,
            timezone=display_tz,
            week_start=first,
            days=build_week(day, occurrences, display_tz, booked),
        )

    async def bookable_slots(
        self,
        db: AsyncSession,
        reader_id: int,
        day: date,
        duration_minutes: int,
        now: Optional[datetime] = None,
    ) -> BookableSlotsResponse:
        """Start times (UTC) on the reader's local `day` where a session fits"""
        reader = await self._reader_or_404(db, reader_id)
        zone = get_zone(reader.timezone)
        start = local_to_utc(day, parse_hhmm("00:00"), zone)
        end = local_to_utc(day + timedelta(days=1), parse_hhmm("00:00"), zone)

        windows = [
            (max(w_start, start), min(w_end, end))
            for w_start, w_end in await self.windows_between(db, reader, start, end)
            if w_start < end and w_end > start
        ]
        starts = bookable_starts(
            windows,
            duration_minutes,
            settings.BOOKING_SLOT_STEP_MINUTES,
            not_before=ensure_utc(now) if now else utc_now(),
        )
        return BookableSlotsResponse(
            reader_id=reader_id,
            date=day,
            timezone=reader.timezone,
            duration_minutes=duration_minutes,
            slots=starts,
        )
