"""
Availability calculator

Pure functions behind the reader calendar and the booking flow:
- recurring slot expansion (one-off / weekly / biweekly / monthly)
- slot conflict detection
- open windows (availability minus blocked time minus bookings)
- Sunday-first week grid

Slot times are wall-clock "HH:MM" in the reader's timezone. Occurrences carry
UTC instants, so a DST change moves the UTC time but keeps the local time.
Weekdays are Sunday based: 0 = Sunday ... 6 = Saturday.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from soulseer.models.availability import RecurrenceType

logger = logging.getLogger(__name__)

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

Window = Tuple[datetime, datetime]


@dataclass
class Occurrence:
    """One dated instance of an availability slot"""
    slot_id: Optional[int]
    local_date: date
    start: datetime  # UTC
    end: datetime  # UTC
    is_blocked: bool = False


# ----------------------------------------------------------------------
# time / timezone helpers
# ----------------------------------------------------------------------
def parse_hhmm(value: str) -> time:
    if not isinstance(value, str) or not HHMM_RE.match(value):
        raise ValueError("Time must be HH:MM (00:00-23:59)")
    hh, mm = value.split(":")
    return time(int(hh), int(mm))


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def get_zone(name: Optional[str]) -> ZoneInfo:
    """ZoneInfo for an IANA name, UTC when the name is empty or unknown"""
    if is_valid_timezone(name):
        return ZoneInfo(name)
    if name:
        logger.warning(f"Unknown timezone '{name}', falling back to UTC")
    return ZoneInfo("UTC")


def local_to_utc(day: date, at: time, tz: ZoneInfo) -> datetime:
    return datetime(day.year, day.month, day.day, at.hour, at.minute, tzinfo=tz).astimezone(timezone.utc)


def local_today(tz_name: Optional[str], now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(get_zone(tz_name)).date()


def sunday_weekday(day: date) -> int:
    """date.weekday() is Monday based; shift so Sunday == 0"""
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    """Sunday on or before the given date"""
    return day - timedelta(days=sunday_weekday(day))


def week_dates(day: date) -> List[date]:
    """The 7 dates (Sunday..Saturday) of the week containing day"""
    start = week_start(day)
    return [start + timedelta(days=i) for i in range(7)]


def date_range(start_date: date, end_date: date) -> Iterable[date]:
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


# ----------------------------------------------------------------------
# interval helpers
# ----------------------------------------------------------------------
def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open [start, end) overlap; touching ranges do not overlap"""
    return a_start < b_end and b_start < a_end


def merge_windows(windows: Iterable[Window]) -> List[Window]:
    windows = sorted((w for w in windows if w[1] > w[0]), key=lambda w: w[0])
    merged: List[Window] = []
    for st, en in windows:
        if merged and st <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], en))
        else:
            merged.append((st, en))
    return merged


def subtract_window(base: Sequence[Window], block: Window) -> List[Window]:
    st, en = block
    out: List[Window] = []
    for bst, ben in base:
        if en <= bst or st >= ben:
            out.append((bst, ben))
            continue
        if st > bst:
            out.append((bst, st))
        if en < ben:
            out.append((en, ben))
    return out


# ----------------------------------------------------------------------
# slot expansion
# ----------------------------------------------------------------------
def slot_anchor(slot) -> Optional[date]:
    """
    First date a slot may occur on: specific_date, else the creation date
    """
    if slot.specific_date is not None:
        return slot.specific_date
    created_at = getattr(slot, "created_at", None)
    return created_at.date() if created_at is not None else None


def occurs_on(slot, day: date) -> bool:
    """Whether the slot has an occurrence on the given local date"""
    if not slot.is_recurring:
        return slot.specific_date == day

    anchor = slot_anchor(slot)
    if anchor is not None and day < anchor:
        return False
    if slot.recurrence_end_date is not None and day > slot.recurrence_end_date:
        return False

    recurrence = slot.recurrence_type or RecurrenceType.WEEKLY

    if recurrence == RecurrenceType.MONTHLY:
        # months without the anchor's day (e.g. the 31st) are skipped
        return anchor is not None and day.day == anchor.day

    if sunday_weekday(day) != slot.day_of_week:
        return False

    if recurrence == RecurrenceType.BIWEEKLY:
        reference = week_start(anchor) if anchor is not None else date(1970, 1, 4)
        weeks = (week_start(day) - reference).days // 7
        return weeks % 2 == 0

    return True


def occurrence_dates(slot, start_date: date, end_date: date) -> List[date]:
    if start_date > end_date:
        return []
    if not slot.is_recurring:
        d = slot.specific_date
        return [d] if d is not None and start_date <= d <= end_date else []
    return [d for d in date_range(start_date, end_date) if occurs_on(slot, d)]


def expand_slot(slot, start_date: date, end_date: date, tz_name: str = "UTC") -> List[Occurrence]:
    """
    Expand a slot into dated occurrences between start_date and end_date
    (inclusive, local dates in the reader's timezone).
    """
    tz = get_zone(tz_name)
    start_t = parse_hhmm(slot.start_time)
    end_t = parse_hhmm(slot.end_time)

    return [
        Occurrence(
            slot_id=slot.slot_id,
            local_date=d,
            start=local_to_utc(d, start_t, tz),
            end=local_to_utc(d, end_t, tz),
            is_blocked=bool(slot.is_blocked),
        )
        for d in occurrence_dates(slot, start_date, end_date)
    ]


def expand_slots(slots: Iterable, start_date: date, end_date: date, tz_name: str = "UTC") -> List[Occurrence]:
    occurrences: List[Occurrence] = []
    for slot in slots:
        occurrences.extend(expand_slot(slot, start_date, end_date, tz_name))
    occurrences.sort(key=lambda o: (o.start, o.is_blocked))
    return occurrences


# ----------------------------------------------------------------------
# conflicts
# ----------------------------------------------------------------------
def conflict_window(slot, today: date, horizon_days: int) -> Tuple[date, date]:
    """Dates checked for co-occurrence when validating a slot"""
    if not slot.is_recurring and slot.specific_date is not None:
        return slot.specific_date, slot.specific_date
    start = max(today, slot_anchor(slot) or today)
    return start, start + timedelta(days=horizon_days)


def slots_conflict(a, b, start_date: date, end_date: date) -> bool:
    """
    Two available slots conflict when their times overlap on a shared date.
    Blocked slots never conflict; they exist to overlap availability.
    """
    if a.is_blocked or b.is_blocked:
        return False
    if not overlaps(parse_hhmm(a.start_time), parse_hhmm(a.end_time),
                    parse_hhmm(b.start_time), parse_hhmm(b.end_time)):
        return False
    return any(occurs_on(b, d) for d in occurrence_dates(a, start_date, end_date))


def find_conflicts(candidate, existing: Iterable, today: date, horizon_days: int,
                   exclude_slot_id: Optional[int] = None) -> list:
    start_date, end_date = conflict_window(candidate, today, horizon_days)
    return [
        other for other in existing
        if other.slot_id != exclude_slot_id
        and slots_conflict(candidate, other, start_date, end_date)
    ]


# ----------------------------------------------------------------------
# open windows / bookable starts
# ----------------------------------------------------------------------
def open_windows(occurrences: Iterable[Occurrence], booked: Iterable[Window] = ()) -> List[Window]:
    """
    Available occurrences merged, minus blocked occurrences, minus bookings
    """
    occurrences = list(occurrences)
    windows = merge_windows((o.start, o.end) for o in occurrences if not o.is_blocked)
    for o in occurrences:
        if o.is_blocked:
            windows = subtract_window(windows, (o.start, o.end))
    for window in booked:
        windows = subtract_window(windows, window)
    return merge_windows(windows)


def window_covers(windows: Iterable[Window], start: datetime, end: datetime) -> bool:
    return any(w_start <= start and end <= w_end for w_start, w_end in windows)


def bookable_starts(windows: Iterable[Window], duration_minutes: int, step_minutes: int,
                    not_before: Optional[datetime] = None) -> List[datetime]:
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=max(1, step_minutes))

    starts: List[datetime] = []
    for w_start, w_end in windows:
        cursor = w_start
        while cursor + duration <= w_end:
            if not_before is None or cursor >= not_before:
                starts.append(cursor)
            cursor += step
    return starts


# ----------------------------------------------------------------------
# week grid
# ----------------------------------------------------------------------
def build_week(day: date, occurrences: Iterable[Occurrence], tz_name: str = "UTC",
               booked: Sequence[Window] = ()) -> List[dict]:
    """
    Calendar week containing day: exactly 7 entries, Sunday first.
    Occurrences are placed by their start date in tz_name.
    """
    tz = get_zone(tz_name)
    days = week_dates(day)
    grid = {d: [] for d in days}

    for o in sorted(occurrences, key=lambda o: o.start):
        local_start = o.start.astimezone(tz)
        local_end = o.end.astimezone(tz)
        bucket = grid.get(local_start.date())
        if bucket is None:
            continue
        bucket.append({
            "slot_id": o.slot_id,
            "start_time": local_start.strftime("%H:%M"),
            "end_time": local_end.strftime("%H:%M"),
            "start_utc": o.start,
            "end_utc": o.end,
            "is_blocked": o.is_blocked,
            "is_booked": any(overlaps(o.start, o.end, b_start, b_end) for b_start, b_end in booked),
        })

    return [
        {"date": d, "day_of_week": sunday_weekday(d), "slots": grid[d]}
        for d in days
    ]
