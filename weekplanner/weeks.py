"""Week key calculator.

Week numbers follow ``ceil((days_since_jan1 + jan1_weekday + 1) / 7)`` where
weekdays are counted Sunday=0. This is not ISO-8601: the Monday 2025-12-29
belongs to ``2025-W53`` here while ISO calls it 2026-W01. Stored week keys
depend on this exact rounding, so it must not be "corrected".
"""
from __future__ import annotations

import math
from datetime import date, timedelta
from typing import List, Optional


def _sunday_based(d: date) -> int:
    # date.weekday(): 0=Mon..6=Sun  ->  0=Sun..6=Sat
    return (d.weekday() + 1) % 7


def monday_of_week(offset: int = 0, today: Optional[date] = None) -> date:
    shifted = (today or date.today()) + timedelta(days=offset * 7)
    wd = _sunday_based(shifted)
    back = 6 if wd == 0 else wd - 1
    return shifted - timedelta(days=back)


def week_number(monday: date) -> int:
    jan1 = date(monday.year, 1, 1)
    days_since_jan1 = (monday - jan1).days
    return math.ceil((days_since_jan1 + _sunday_based(jan1) + 1) / 7)


def week_key(offset: int = 0, today: Optional[date] = None) -> str:
    monday = monday_of_week(offset, today)
    return f"{monday.year}-W{week_number(monday):02d}"


def week_dates(offset: int = 0, today: Optional[date] = None) -> List[date]:
    monday = monday_of_week(offset, today)
    return [monday + timedelta(days=i) for i in range(7)]


def fmt_short(d: date) -> str:
    return d.strftime("%d.%m.%y")


def week_date_labels(offset: int = 0, today: Optional[date] = None) -> List[str]:
    return [fmt_short(d) for d in week_dates(offset, today)]


def week_date_range(offset: int = 0, today: Optional[date] = None) -> str:
    dates = week_dates(offset, today)
    return f"{fmt_short(dates[0])} - {fmt_short(dates[-1])}"


def current_day_index(today: Optional[date] = None) -> int:
    """Monday=0 .. Sunday=6."""
    return (today or date.today()).weekday()


def day_relation(offset: int, day_index: int, today: Optional[date] = None) -> str:
    """Classify a grid column as "past", "current" or "future"."""
    if offset < 0:
        return "past"
    if offset > 0:
        return "future"
    idx = current_day_index(today)
    if day_index < idx:
        return "past"
    if day_index > idx:
        return "future"
    return "current"
