"""Tests for the dashboard calculation helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from soulseer.utils.analytics_calc import (DailySeriesCalc, average,
                                           growth_rate, period_bounds,
                                           rating_distribution)


def test_growth_rate():
    assert growth_rate(150, 100) == 50.0
    assert growth_rate(50, 100) == -50.0
    assert growth_rate(5, 0) == 100.0
    assert growth_rate(0, 0) == 0.0


def test_period_bounds_are_back_to_back():
    now = datetime(2024, 3, 31, 12, 0)
    prev_start, start, end = period_bounds("7d", now)
    assert end == now
    assert start == now - timedelta(days=7)
    assert prev_start == now - timedelta(days=14)


def test_unknown_period_falls_back_to_thirty_days():
    now = datetime(2024, 3, 31)
    _, start, _ = period_bounds("forever", now)
    assert start == now - timedelta(days=30)


def test_daily_series_is_zero_filled():
    calc = DailySeriesCalc(date(2024, 3, 1), date(2024, 3, 3))
    rows = [
        {"date": datetime(2024, 3, 1, 9), "revenue": 10},
        {"date": datetime(2024, 3, 1, 17), "revenue": 5.5},
        {"date": datetime(2024, 3, 3, 8), "revenue": 2},
    ]

    points = calc.build({
        "revenue": calc.series(rows, "revenue"),
        "sessions": calc.series(rows),
    })

    assert [p["date"] for p in points] == ["2024-03-01", "2024-03-02", "2024-03-03"]
    assert [p["revenue"] for p in points] == [15.5, 0.0, 2.0]
    assert [p["sessions"] for p in points] == [2.0, 0.0, 1.0]


def test_daily_series_without_rows():
    calc = DailySeriesCalc(date(2024, 3, 1), date(2024, 3, 7))
    points = calc.build({"revenue": calc.series([], "revenue")})
    assert len(points) == 7
    assert all(p["revenue"] == 0.0 for p in points)


def test_rating_distribution_lists_every_star():
    assert rating_distribution([5, 5, 4]) == {1: 0, 2: 0, 3: 0, 4: 1, 5: 2}
    assert rating_distribution([]) == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


def test_average():
    assert average([]) == 0.0
    assert average([4, 5]) == 4.5
    assert average([1, 2, 2]) == 1.67
