from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


DAYS_OF_WEEK = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"]

GOAL = "goal"
FOCUS = "focus"
WORK = "work"
LEISURE = "leisure"
BASICS = "basics"

CATEGORIES = [GOAL, FOCUS, WORK, LEISURE, BASICS]

# Empty slots rendered per category. Only goal is enforced (see transfer).
SLOT_COUNTS: Dict[str, int] = {
    GOAL: 1,
    FOCUS: 3,
    WORK: 3,
    LEISURE: 2,
    BASICS: 4,
}

# Old category name -> current name
LEGACY_CATEGORIES: Dict[str, str] = {
    "chore": BASICS,
    "core": WORK,
    "offTime": LEISURE,
}


@dataclass
class Todo:
    id: int
    text: str
    completed: bool = False
    urgent: bool = False
    important: bool = True
    duration: int = 30          # minutes
    habit: bool = False         # recurring template when it lives in the pool
    source_id: Optional[int] = None  # set on habit instances only

    @property
    def is_habit_instance(self) -> bool:
        return self.source_id is not None

    @property
    def is_habit_template(self) -> bool:
        return self.habit and self.source_id is None

    def to_jsonable(self) -> dict:
        raw = asdict(self)
        source_id = raw.pop("source_id")
        if source_id is not None:
            raw["sourceId"] = source_id
        return raw

    @staticmethod
    def from_jsonable(raw: dict) -> "Todo":
        source_id = raw.get("sourceId", raw.get("source_id"))
        try:
            duration = max(0, int(raw.get("duration") or 0))
        except (TypeError, ValueError):
            duration = 0
        return Todo(
            id=int(raw["id"]),
            text=str(raw.get("text", "")),
            completed=bool(raw.get("completed", False)),
            urgent=bool(raw.get("urgent", False)),
            important=bool(raw.get("important", True)),
            duration=duration,
            habit=bool(raw.get("habit", False)),
            source_id=int(source_id) if source_id is not None else None,
        )


# day -> category -> tasks
DayTasks = Dict[str, List[Todo]]
Week = Dict[str, DayTasks]
WeekCollection = Dict[str, Week]


def initialize_day() -> DayTasks:
    return {category: [] for category in CATEGORIES}


def initialize_week() -> Week:
    return {day: initialize_day() for day in DAYS_OF_WEEK}


def _todos_from_jsonable(raw: Any) -> List[Todo]:
    if not isinstance(raw, list):
        return []
    out: List[Todo] = []
    for entry in raw:
        if not isinstance(entry, dict) or "id" not in entry:
            continue
        try:
            out.append(Todo.from_jsonable(entry))
        except (TypeError, ValueError):
            continue
    return out


def weeks_to_jsonable(weeks: WeekCollection) -> dict:
    return {
        key: {
            day: {category: [t.to_jsonable() for t in todos] for category, todos in day_tasks.items()}
            for day, day_tasks in week.items()
        }
        for key, week in weeks.items()
    }


def weeks_from_jsonable(raw: Any) -> WeekCollection:
    """
    Keeps every list-valued category key, legacy names included, so that
    the store's migration step can rename them afterwards.
    """
    weeks: WeekCollection = {}
    if not isinstance(raw, dict):
        return weeks
    for key, raw_week in raw.items():
        week: Week = {}
        if isinstance(raw_week, dict):
            for day, raw_day in raw_week.items():
                if not isinstance(raw_day, dict):
                    continue
                week[day] = {category: _todos_from_jsonable(v) for category, v in raw_day.items()}
        weeks[str(key)] = week
    return weeks


def pool_to_jsonable(pool: List[Todo]) -> list:
    return [t.to_jsonable() for t in pool]


def pool_from_jsonable(raw: Any) -> List[Todo]:
    return _todos_from_jsonable(raw)


def initial_todo_pool() -> List[Todo]:
    return [
        Todo(id=1, text="Review quarterly report", duration=90, urgent=True, important=True),
        Todo(id=2, text="Brainstorm marketing campaign", duration=60, urgent=False, important=True),
        Todo(id=3, text="Schedule dentist appointment", duration=15, urgent=True, important=False),
        Todo(id=4, text="Read one chapter of a book", duration=30, urgent=False, important=False),
        Todo(id=5, text="Weekly grocery shopping", duration=75, urgent=False, important=False, habit=True),
        Todo(id=6, text="Vacuum the house", duration=20, urgent=False, important=False, habit=True),
        Todo(id=7, text="Pay monthly bills", duration=30, urgent=False, important=False, habit=True),
        Todo(id=8, text="Take out the trash", duration=5, urgent=False, important=False, habit=True),
        Todo(id=9, text="Meal prep for the week", duration=120, urgent=False, important=False, habit=True),
    ]
