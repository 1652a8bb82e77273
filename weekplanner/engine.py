from __future__ import annotations

from typing import Any, Dict, Iterator, List, Set, Tuple

from .models import (
    BASICS,
    DAYS_OF_WEEK,
    FOCUS,
    GOAL,
    LEISURE,
    SLOT_COUNTS,
    WORK,
    Todo,
    Week,
)


DAILY_CAPACITY = 480  # minutes (8 hours)

LOAD_COLORS: List[Tuple[float, str, str]] = [
    (95, "red", "#ef4444"),
    (75, "orange", "#f97316"),
    (50, "yellow", "#eab308"),
]
LOAD_GREEN = ("green", "#22c55e")


# -----------------------------
# Input coercion
# -----------------------------

def coerce_duration(value: Any, default: int = 0) -> int:
    """
    Minutes as a non-negative int. Anything unparsable (or negative)
    falls back to ``default``; fractions are truncated.
    """
    if isinstance(value, bool):
        return default
    try:
        minutes = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return default
    if minutes < 0:
        return default
    return minutes


# -----------------------------
# Category rules
# -----------------------------

def flags_for_category(category: str) -> Tuple[bool, bool]:
    """(urgent, important) implied by dropping a pool task into ``category``."""
    if category == GOAL:
        return True, True
    if category == FOCUS:
        return False, True
    if category == WORK:
        return True, False
    if category in (LEISURE, BASICS):
        return False, False
    raise ValueError(f"unknown category: {category!r}")


def quick_add_flags(category: str) -> Tuple[bool, bool]:
    return category in (GOAL, WORK), category in (GOAL, FOCUS)


def remaining_slots(week: Week, day: str, category: str) -> int:
    """Empty placeholders to render; purely cosmetic."""
    used = len(week.get(day, {}).get(category, []))
    return max(0, SLOT_COUNTS.get(category, 0) - used)


# -----------------------------
# Week traversal
# -----------------------------

def iter_week_tasks(week: Week) -> Iterator[Tuple[str, str, Todo]]:
    """Yield (day, category, todo) in day order, then the day's category order."""
    for day in DAYS_OF_WEEK:
        for category, todos in week.get(day, {}).items():
            for todo in todos:
                yield day, category, todo


def all_ids(week_values, pool: List[Todo]) -> Set[int]:
    ids = {t.id for t in pool}
    for week in week_values:
        for day_tasks in week.values():
            for todos in day_tasks.values():
                ids.update(t.id for t in todos)
    return ids


# -----------------------------
# Pool views
# -----------------------------

def backlog(pool: List[Todo]) -> List[Todo]:
    """Non-habit pool tasks, newest (highest id) first."""
    return sorted((t for t in pool if not t.habit), key=lambda t: t.id, reverse=True)


def basics_templates(pool: List[Todo], week: Week) -> List[Todo]:
    """
    Habit templates not already instantiated somewhere in ``week``.
    A template disappears while one of its instances is scheduled and
    comes back once that instance is removed.
    """
    scheduled = {t.source_id for _, _, t in iter_week_tasks(week) if t.is_habit_instance}
    return [t for t in pool if t.is_habit_template and t.id not in scheduled]


# -----------------------------
# Daily load
# -----------------------------

def load_color(percentage: float) -> Tuple[str, str]:
    for threshold, tier, hex_code in LOAD_COLORS:
        if percentage >= threshold:
            return tier, hex_code
    return LOAD_GREEN


def daily_load(week: Week, capacity: int = DAILY_CAPACITY) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for day in DAYS_OF_WEEK:
        total = sum(int(t.duration or 0) for todos in week.get(day, {}).values() for t in todos)
        percentage = min(total / capacity * 100, 100) if capacity > 0 else 0
        tier, hex_code = load_color(percentage)
        out[day] = {"total": total, "percentage": percentage, "tier": tier, "color": hex_code}
    return out
