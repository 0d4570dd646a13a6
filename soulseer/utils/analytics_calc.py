# soulseer/utils/analytics_calc.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}


def period_days(period: str) -> int:
    """Unknown periods fall back to 30 days"""
    return PERIOD_DAYS.get(period, 30)


def period_bounds(period: str, now: datetime) -> Tuple[datetime, datetime, datetime]:
    """
    (previous_start, start, now): the current period is [start, now) and the
    previous equal-length period is [previous_start, start)
    """
    length = timedelta(days=period_days(period))
    start = now - length
    return start - length, start, now


def growth_rate(current: float, previous: float) -> float:
    """
    Percent change vs the previous period.
    No previous activity: 100 when there is current activity, else 0.
    """
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0 if current > 0 else 0.0


class DailySeriesCalc:
    """
    Builds zero-filled daily series from raw rows.

    rows: [{"date": datetime|date, "<metric>": number, ...}, ...]
    series(rows, metric) sums metric per day; without a metric it counts rows
    """

    def __init__(self, start_date: date, end_date: date):
        self.index = pd.date_range(start=start_date, end=end_date, freq="D")

    def series(self, rows: Iterable[Dict[str, Any]], metric: Optional[str] = None) -> pd.Series:
        df = pd.DataFrame(list(rows))
        if df.empty:
            return pd.Series(np.zeros(len(self.index)), index=self.index)

        df["day"] = pd.to_datetime(df["date"]).dt.normalize()
        if metric is None:
            grouped = df.groupby("day").size().astype(float)
        else:
            grouped = df[metric].astype(float).groupby(df["day"]).sum()

        return grouped.reindex(self.index, fill_value=0.0)

    def build(self, columns: Dict[str, pd.Series]) -> List[Dict[str, Any]]:
        frame = pd.DataFrame(columns, index=self.index).fillna(0.0)
        out = []
        for ts, row in frame.iterrows():
            item: Dict[str, Any] = {"date": ts.date().isoformat()}
            for key, value in row.items():
                item[key] = round(float(value), 2)
            out.append(item)
        return out


def rating_distribution(ratings: Iterable[int]) -> Dict[int, int]:
    """Count per star 1..5 (every star present)"""
    counts = pd.Series(list(ratings), dtype="float64").value_counts()
    return {star: int(counts.get(float(star), 0)) for star in range(1, 6)}


def average(values: Iterable[float]) -> float:
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0
    return round(float(arr.mean()), 2)
