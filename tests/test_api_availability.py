"""Tests for availability slots, the weekly calendar and bookable starts."""

from __future__ import annotations

from datetime import date, timedelta

import pytest


@pytest.fixture
def slot_day(tomorrow):
    return tomorrow(0).date()


async def create_slot(api_client, reader, **body):
    return await api_client.post("/api/availability", json=body, headers=reader.headers)


async def test_create_one_off_slot_derives_weekday(api_client, reader_account, slot_day):
    resp = await create_slot(
        api_client, reader_account,
        is_recurring=False, specific_date=slot_day.isoformat(), start_time="09:00", end_time="12:00",
    )
    assert resp.status_code == 201
    slot = resp.json()
    assert slot["reader_id"] == reader_account.id
    assert slot["day_of_week"] == (slot_day.weekday() + 1) % 7


async def test_overlapping_slot_is_rejected(api_client, reader_account, slot_day):
    await create_slot(api_client, reader_account, is_recurring=False, specific_date=slot_day.isoformat(),
                      start_time="09:00", end_time="12:00")
    resp = await create_slot(api_client, reader_account, is_recurring=False, specific_date=slot_day.isoformat(),
                             start_time="11:00", end_time="13:00")
    assert resp.status_code == 409


async def test_blocked_slot_may_overlap(api_client, reader_account, slot_day):
    await create_slot(api_client, reader_account, is_recurring=False, specific_date=slot_day.isoformat(),
                      start_time="09:00", end_time="12:00")
    resp = await create_slot(api_client, reader_account, is_recurring=False, specific_date=slot_day.isoformat(),
                             start_time="10:00", end_time="11:00", is_blocked=True)
    assert resp.status_code == 201


@pytest.mark.parametrize("start,end", [("25:00", "26:00"), ("12:00", "09:00"), ("10:00", "10:00")])
async def test_invalid_times(api_client, reader_account, slot_day, start, end):
    resp = await create_slot(api_client, reader_account, is_recurring=False,
                             specific_date=slot_day.isoformat(), start_time=start, end_time=end)
    assert resp.status_code == 400


async def test_one_off_slot_needs_a_date(api_client, reader_account):
    resp = await create_slot(api_client, reader_account, is_recurring=False, start_time="09:00", end_time="10:00")
    assert resp.status_code == 400


async def test_clients_cannot_create_slots(api_client, client_account, slot_day):
    resp = await create_slot(api_client, client_account, is_recurring=False, specific_date=slot_day.isoformat(),
                             start_time="09:00", end_time="10:00")
    assert resp.status_code == 403


async def test_update_and_delete_slot(api_client, reader_account, make_reader, slot_day):
    resp = await create_slot(api_client, reader_account, is_recurring=False, specific_date=slot_day.isoformat(),
                             start_time="09:00", end_time="10:00")
    slot_id = resp.json()["slot_id"]

    # moving a slot over its own old time is not a conflict
    resp = await api_client.put(f"/api/availability/{slot_id}", json={"end_time": "10:30"},
                                headers=reader_account.headers)
    assert resp.status_code == 200
    assert resp.json()["end_time"] == "10:30"

    other = await make_reader("Bo Star")
    resp = await api_client.delete(f"/api/availability/{slot_id}", headers=other.headers)
    assert resp.status_code == 403

    resp = await api_client.delete(f"/api/availability/{slot_id}", headers=reader_account.headers)
    assert resp.status_code == 204
    assert (await api_client.get(f"/api/availability/{slot_id}")).status_code == 404


@pytest.mark.parametrize("field", ["is_blocked", "is_recurring", "recurrence_type", "start_time"])
async def test_update_rejects_null_for_required_fields(api_client, reader_account, field):
    anchor = date.today() + timedelta(days=1)
    resp = await create_slot(api_client, reader_account, day_of_week=(anchor.weekday() + 1) % 7,
                             specific_date=anchor.isoformat(), start_time="09:00", end_time="10:00")
    slot = resp.json()

    resp = await api_client.put(f"/api/availability/{slot['slot_id']}", json={field: None},
                                headers=reader_account.headers)
    assert resp.status_code == 400
    assert field in resp.json()["detail"]

    # the weekly slot is untouched
    resp = await api_client.get(f"/api/availability/{slot['slot_id']}")
    assert resp.json()["is_recurring"] is True
    assert resp.json()["recurrence_type"] == "WEEKLY"
    assert resp.json()["is_blocked"] is False

    # nullable fields may still be cleared
    resp = await api_client.put(f"/api/availability/{slot['slot_id']}", json={"notes": None},
                                headers=reader_account.headers)
    assert resp.status_code == 200


async def test_list_slots_with_occurrences(api_client, reader_account):
    anchor = date.today() + timedelta(days=1)
    await create_slot(api_client, reader_account, day_of_week=(anchor.weekday() + 1) % 7,
                      specific_date=anchor.isoformat(), start_time="09:00", end_time="10:00")

    resp = await api_client.get("/api/availability", params={
        "reader_id": reader_account.id,
        "start_date": anchor.isoformat(),
        "end_date": (anchor + timedelta(days=20)).isoformat(),
    })
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["slots"]) == 1
    assert [o["date"] for o in body["occurrences"]] == [
        (anchor + timedelta(days=7 * i)).isoformat() for i in range(3)
    ]


async def test_list_slots_rejects_reversed_range(api_client, reader_account):
    resp = await api_client.get("/api/availability", params={
        "reader_id": reader_account.id, "start_date": "2024-03-10", "end_date": "2024-03-01",
    })
    assert resp.status_code == 400


async def test_calendar_week(api_client, make_reader):
    reader = await make_reader("Cy Sun", tz="America/New_York")
    base = date.today() + timedelta(days=14)
    # a Wednesday, so the next day is in the same Sunday-first week
    day = base - timedelta(days=(base.weekday() + 1) % 7) + timedelta(days=3)
    await create_slot(api_client, reader, is_recurring=False, specific_date=day.isoformat(),
                      start_time="21:00", end_time="22:00")

    resp = await api_client.get("/api/availability/calendar",
                                params={"reader_id": reader.id, "date": day.isoformat()})
    assert resp.status_code == 200
    body = resp.json()
    assert body["timezone"] == "America/New_York"
    assert len(body["days"]) == 7
    assert body["days"][0]["day_of_week"] == 0
    slots = [s for d in body["days"] for s in d["slots"]]
    assert [s["start_time"] for s in slots] == ["21:00"]

    # shown in UTC the same slot lands on the next day
    resp = await api_client.get("/api/availability/calendar",
                                params={"reader_id": reader.id, "date": day.isoformat(), "tz": "UTC"})
    by_date = {d["date"]: d["slots"] for d in resp.json()["days"]}
    assert by_date[day.isoformat()] == []
    assert by_date[(day + timedelta(days=1)).isoformat()][0]["start_time"] in ("01:00", "02:00")


async def test_calendar_unknown_timezone(api_client, reader_account):
    resp = await api_client.get("/api/availability/calendar",
                                params={"reader_id": reader_account.id, "tz": "Nowhere/City"})
    assert resp.status_code == 400


async def test_bookable_slots(api_client, reader_account, slot_day):
    await create_slot(api_client, reader_account, is_recurring=False, specific_date=slot_day.isoformat(),
                      start_time="09:00", end_time="12:00")
    await create_slot(api_client, reader_account, is_recurring=False, specific_date=slot_day.isoformat(),
                      start_time="10:00", end_time="11:00", is_blocked=True)

    resp = await api_client.get("/api/availability/slots", params={
        "reader_id": reader_account.id, "date": slot_day.isoformat(), "duration": 60,
    })
    assert resp.status_code == 200
    starts = [s[11:16] for s in resp.json()["slots"]]
    assert starts == ["09:00", "11:00"]


async def test_calendar_for_unknown_reader(api_client, client_account):
    resp = await api_client.get("/api/availability/calendar", params={"reader_id": client_account.id})
    assert resp.status_code == 404


@pytest.mark.parametrize("reader_tz, viewer_tz, offset, start, shown_on, shown_at", [
    # UTC-12 reader, UTC+14 viewer: Friday 23:00 is the viewer's Sunday 01:00
    ("Etc/GMT+12", "Pacific/Kiritimati", -2, "23:00", 0, "01:00"),
    # and the other way round: the Monday after is the viewer's Saturday 23:00
    ("Pacific/Kiritimati", "Etc/GMT+12", 8, "01:00", 6, "23:00"),
])
async def test_calendar_across_widest_offsets(api_client, make_reader, reader_tz, viewer_tz,
                                              offset, start, shown_on, shown_at):
    reader = await make_reader("Di Date", tz=reader_tz)
    base = date.today() + timedelta(days=21)
    sunday = base - timedelta(days=(base.weekday() + 1) % 7)
    await create_slot(api_client, reader, is_recurring=False,
                      specific_date=(sunday + timedelta(days=offset)).isoformat(),
                      start_time=start, end_time=start[:3] + "30")

    resp = await api_client.get("/api/availability/calendar", params={
        "reader_id": reader.id, "date": sunday.isoformat(), "tz": viewer_tz,
    })
    days = resp.json()["days"]
    assert days[0]["date"] == sunday.isoformat()
    assert [s["start_time"] for s in days[shown_on]["slots"]] == [shown_at]
    assert sum(len(d["slots"]) for d in days) == 1
