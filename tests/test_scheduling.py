"""Tests for slot expansion, conflicts, open windows and the week grid."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from soulseer.models.availability import RecurrenceType
from soulseer.utils.scheduling import (Occurrence, bookable_starts, build_week,
                                       expand_slots, find_conflicts,
                                       open_windows, parse_hhmm,
                                       sunday_weekday, week_start,
                                       window_covers)


def make_slot(slot_id=None, *, day_of_week=1, start="09:00", end="10:00", recurring=True,
              recurrence=RecurrenceType.WEEKLY, specific_date=None, end_date=None, blocked=False):
    return SimpleNamespace(
        slot_id=slot_id,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        is_recurring=recurring,
        recurrence_type=recurrence,
        specific_date=specific_date,
        recurrence_end_date=end_date,
        is_blocked=blocked,
        created_at=None,
    )


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ---------------------------------------------------------------
# helpers
# ---------------------------------------------------------------


def test_sunday_is_day_zero():
    assert sunday_weekday(date(2024, 3, 3)) == 0  # Sunday
    assert sunday_weekday(date(2024, 3, 4)) == 1
    assert sunday_weekday(date(2024, 3, 9)) == 6  # Saturday


def test_week_start_is_previous_sunday():
    assert week_start(date(2024, 3, 6)) == date(2024, 3, 3)
    assert week_start(date(2024, 3, 3)) == date(2024, 3, 3)


@pytest.mark.parametrize("value", ["24:00", "9:00", "12:60", "noon", ""])
def test_parse_hhmm_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_hhmm(value)


# ---------------------------------------------------------------
# expansion
# ---------------------------------------------------------------


def test_weekly_slot_repeats_every_week():
    slot = make_slot(1, day_of_week=1, specific_date=date(2024, 3, 4))
    occ = expand_slots([slot], date(2024, 3, 1), date(2024, 3, 31))
    assert [o.local_date for o in occ] == [
        date(2024, 3, 4), date(2024, 3, 11), date(2024, 3, 18), date(2024, 3, 25),
    ]
    assert occ[0].start == utc(2024, 3, 4, 9, 0)
    assert occ[0].end == utc(2024, 3, 4, 10, 0)


def test_weekly_slot_stops_at_recurrence_end():
    slot = make_slot(1, day_of_week=1, specific_date=date(2024, 3, 4), end_date=date(2024, 3, 12))
    occ = expand_slots([slot], date(2024, 3, 1), date(2024, 3, 31))
    assert [o.local_date for o in occ] == [date(2024, 3, 4), date(2024, 3, 11)]


def test_biweekly_slot_skips_alternate_weeks():
    slot = make_slot(1, day_of_week=1, specific_date=date(2024, 3, 4), recurrence=RecurrenceType.BIWEEKLY)
    occ = expand_slots([slot], date(2024, 3, 1), date(2024, 3, 31))
    assert [o.local_date for o in occ] == [date(2024, 3, 4), date(2024, 3, 18)]


def test_monthly_slot_skips_months_without_the_day():
    slot = make_slot(1, day_of_week=3, specific_date=date(2024, 1, 31), recurrence=RecurrenceType.MONTHLY)
    occ = expand_slots([slot], date(2024, 1, 1), date(2024, 5, 31))
    assert [o.local_date for o in occ] == [date(2024, 1, 31), date(2024, 3, 31), date(2024, 5, 31)]


def test_one_off_slot_outside_range_is_empty():
    slot = make_slot(1, recurring=False, specific_date=date(2024, 4, 2), day_of_week=2)
    assert expand_slots([slot], date(2024, 3, 1), date(2024, 3, 31)) == []


def test_local_time_is_kept_across_dst():
    friday = make_slot(1, recurring=False, specific_date=date(2024, 3, 8), day_of_week=5,
                       start="10:00", end="11:00")
    monday = make_slot(2, recurring=False, specific_date=date(2024, 3, 11), day_of_week=1,
                       start="10:00", end="11:00")
    occ = expand_slots([friday, monday], date(2024, 3, 1), date(2024, 3, 31), "America/New_York")

    # EST (UTC-5) before the switch, EDT (UTC-4) after
    assert occ[0].start == utc(2024, 3, 8, 15, 0)
    assert occ[1].start == utc(2024, 3, 11, 14, 0)


# ---------------------------------------------------------------
# conflicts
# ---------------------------------------------------------------


def test_overlapping_weekly_slots_conflict():
    existing = make_slot(7, specific_date=date(2024, 3, 4), start="09:00", end="10:00")
    candidate = make_slot(specific_date=date(2024, 3, 4), start="09:30", end="11:00")
    assert find_conflicts(candidate, [existing], date(2024, 3, 1), 84) == [existing]


def test_touching_slots_do_not_conflict():
    existing = make_slot(7, specific_date=date(2024, 3, 4), start="09:00", end="10:00")
    candidate = make_slot(specific_date=date(2024, 3, 4), start="10:00", end="11:00")
    assert find_conflicts(candidate, [existing], date(2024, 3, 1), 84) == []


def test_blocked_slots_never_conflict():
    existing = make_slot(7, specific_date=date(2024, 3, 4), start="09:00", end="12:00")
    candidate = make_slot(specific_date=date(2024, 3, 4), start="10:00", end="11:00", blocked=True)
    assert find_conflicts(candidate, [existing], date(2024, 3, 1), 84) == []


def test_biweekly_slots_on_alternate_weeks_do_not_conflict():
    existing = make_slot(7, specific_date=date(2024, 3, 4), recurrence=RecurrenceType.BIWEEKLY)
    candidate = make_slot(specific_date=date(2024, 3, 11), recurrence=RecurrenceType.BIWEEKLY)
    assert find_conflicts(candidate, [existing], date(2024, 3, 1), 84) == []


def test_updated_slot_does_not_conflict_with_itself():
    existing = make_slot(7, specific_date=date(2024, 3, 4))
    candidate = make_slot(specific_date=date(2024, 3, 4), start="09:15", end="10:15")
    assert find_conflicts(candidate, [existing], date(2024, 3, 1), 84, exclude_slot_id=7) == []


# ---------------------------------------------------------------
# open windows
# ---------------------------------------------------------------


def test_open_windows_subtract_blocks_and_bookings():
    occ = [
        Occurrence(1, date(2024, 3, 4), utc(2024, 3, 4, 9), utc(2024, 3, 4, 12)),
        Occurrence(2, date(2024, 3, 4), utc(2024, 3, 4, 10), utc(2024, 3, 4, 11), is_blocked=True),
    ]
    booked = [(utc(2024, 3, 4, 11), utc(2024, 3, 4, 11, 30))]

    windows = open_windows(occ, booked)

    assert windows == [
        (utc(2024, 3, 4, 9), utc(2024, 3, 4, 10)),
        (utc(2024, 3, 4, 11, 30), utc(2024, 3, 4, 12)),
    ]
    assert window_covers(windows, utc(2024, 3, 4, 9, 15), utc(2024, 3, 4, 9, 45))
    assert not window_covers(windows, utc(2024, 3, 4, 9, 30), utc(2024, 3, 4, 10, 30))


def test_adjacent_occurrences_merge():
    occ = [
        Occurrence(1, date(2024, 3, 4), utc(2024, 3, 4, 9), utc(2024, 3, 4, 10)),
        Occurrence(2, date(2024, 3, 4), utc(2024, 3, 4, 10), utc(2024, 3, 4, 11)),
    ]
    assert open_windows(occ) == [(utc(2024, 3, 4, 9), utc(2024, 3, 4, 11))]


def test_bookable_starts_step_through_window():
    window = [(utc(2024, 3, 4, 9), utc(2024, 3, 4, 10))]
    starts = bookable_starts(window, 30, 15)
    assert starts == [utc(2024, 3, 4, 9), utc(2024, 3, 4, 9, 15), utc(2024, 3, 4, 9, 30)]


def test_bookable_starts_respect_not_before():
    window = [(utc(2024, 3, 4, 9), utc(2024, 3, 4, 10))]
    starts = bookable_starts(window, 30, 15, not_before=utc(2024, 3, 4, 9, 10))
    assert starts == [utc(2024, 3, 4, 9, 15), utc(2024, 3, 4, 9, 30)]


# ---------------------------------------------------------------
# week grid
# ---------------------------------------------------------------


def test_build_week_has_seven_days_sunday_first():
    week = build_week(date(2024, 3, 6), [])
    assert len(week) == 7
    assert week[0]["date"] == date(2024, 3, 3)
    assert [d["day_of_week"] for d in week] == list(range(7))
    assert all(d["slots"] == [] for d in week)


def test_build_week_places_slots_in_display_timezone():
    start = utc(2024, 3, 5, 2, 0)  # Monday 21:00 in New York
    occ = [Occurrence(3, date(2024, 3, 5), start, start + timedelta(hours=1))]
    booked = [(start + timedelta(minutes=30), start + timedelta(minutes=60))]

    week = build_week(date(2024, 3, 6), occ, "America/New_York", booked)

    monday = week[1]
    assert monday["date"] == date(2024, 3, 4)
    assert monday["slots"][0]["start_time"] == "21:00"
    assert monday["slots"][0]["is_booked"] is True
    assert week[2]["slots"] == []
