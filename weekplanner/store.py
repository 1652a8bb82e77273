from __future__ import annotations

import copy
import time
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import structlog

from . import engine, weeks
from .models import (
    CATEGORIES,
    DAYS_OF_WEEK,
    LEGACY_CATEGORIES,
    Todo,
    Week,
    WeekCollection,
    initial_todo_pool,
    initialize_day,
    initialize_week,
)

log = structlog.get_logger()

# listener(store, changed) where changed is "weeks", "pool" or "all"
Listener = Callable[["PlannerStore", str], None]
Mutator = Callable[[WeekCollection, List[Todo]], Optional[bool]]


def migrate_week(week: Any) -> bool:
    """
    Upgrade one stored week in place. Returns True if anything changed.

    chore -> basics, core -> work, offTime -> leisure; focus/goal and
    missing days are created empty. Unexpected shapes become empty lists.
    """
    changed = False
    for day in DAYS_OF_WEEK:
        day_tasks = week.get(day)
        if not isinstance(day_tasks, dict):
            week[day] = initialize_day()
            changed = True
            continue

        for legacy, current in LEGACY_CATEGORIES.items():
            if legacy not in day_tasks:
                continue
            moved = day_tasks.pop(legacy)
            existing = day_tasks.get(current)
            day_tasks[current] = (existing if isinstance(existing, list) else []) + (
                moved if isinstance(moved, list) else []
            )
            changed = True

        for category in CATEGORIES:
            if not isinstance(day_tasks.get(category), list):
                day_tasks[category] = []
                changed = True
    return changed


class PlannerStore:
    """
    Owns the week collection, the todo pool and the active week offset.

    Published structures are replaced, never edited: every mutation works
    on a deep copy and swaps it in with a single assignment, then notifies
    listeners. Derived views are computed on each read.
    """

    def __init__(
        self,
        all_weeks: Optional[WeekCollection] = None,
        todo_pool: Optional[List[Todo]] = None,
        week_offset: int = 0,
        today: Optional[date] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._weeks: WeekCollection = dict(all_weeks or {})
        self._pool: List[Todo] = list(todo_pool) if todo_pool is not None else initial_todo_pool()
        self._listeners: List[Listener] = []
        self._today = today
        self._clock = clock
        self.week_offset = week_offset

        self.migrate_legacy_categories()
        self.ensure_week(self.current_week_key)

    # -----------------------------
    # Reactive plumbing
    # -----------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, changed: str) -> None:
        for listener in list(self._listeners):
            listener(self, changed)

    def transaction(self, mutator: Mutator) -> bool:
        """
        Run ``mutator(weeks_draft, pool_draft)`` on deep copies and publish
        both at once. Returning False from the mutator discards the drafts.
        """
        weeks_draft = copy.deepcopy(self._weeks)
        pool_draft = copy.deepcopy(self._pool)
        if mutator(weeks_draft, pool_draft) is False:
            return False
        weeks_changed = weeks_draft != self._weeks
        pool_changed = pool_draft != self._pool
        self._weeks = weeks_draft
        self._pool = pool_draft
        if weeks_changed and pool_changed:
            self._publish("all")
        elif weeks_changed:
            self._publish("weeks")
        elif pool_changed:
            self._publish("pool")
        return True

    def update_weeks(self, mutator: Callable[[WeekCollection], Optional[bool]]) -> bool:
        return self.transaction(lambda weeks_draft, _pool: mutator(weeks_draft))

    def update_pool(self, mutator: Callable[[List[Todo]], Optional[bool]]) -> bool:
        return self.transaction(lambda _weeks, pool_draft: mutator(pool_draft))

    def replace_all(self, all_weeks: WeekCollection, todo_pool: List[Todo]) -> None:
        weeks_draft = copy.deepcopy(all_weeks)
        for week in weeks_draft.values():
            migrate_week(week)
        weeks_draft.setdefault(self.current_week_key, initialize_week())
        self._weeks = weeks_draft
        self._pool = copy.deepcopy(todo_pool)
        log.info("Planner state replaced", weeks=len(self._weeks), pool=len(self._pool))
        self._publish("all")

    # -----------------------------
    # Snapshots
    # -----------------------------

    @property
    def all_weeks(self) -> WeekCollection:
        return self._weeks

    @property
    def todo_pool(self) -> List[Todo]:
        return self._pool

    @property
    def today(self) -> date:
        return self._today or date.today()

    # -----------------------------
    # Week navigation
    # -----------------------------

    @property
    def current_week_key(self) -> str:
        return weeks.week_key(self.week_offset, self.today)

    @property
    def week(self) -> Week:
        return self._weeks.get(self.current_week_key) or initialize_week()

    @property
    def week_date_labels(self) -> List[str]:
        return weeks.week_date_labels(self.week_offset, self.today)

    @property
    def week_date_range(self) -> str:
        return weeks.week_date_range(self.week_offset, self.today)

    def day_relation(self, day: str) -> str:
        return weeks.day_relation(self.week_offset, DAYS_OF_WEEK.index(day), self.today)

    def navigate_week(self, direction: int) -> str:
        self.week_offset += direction
        key = self.current_week_key
        self.ensure_week(key)
        return key

    def go_to_current_week(self) -> str:
        return self.navigate_week(-self.week_offset)

    # -----------------------------
    # Week store
    # -----------------------------

    def ensure_week(self, key: str) -> bool:
        if key in self._weeks:
            return False

        def add(weeks_draft: WeekCollection) -> None:
            weeks_draft[key] = initialize_week()

        log.debug("Week created", week_key=key)
        return self.update_weeks(add)

    def migrate_legacy_categories(self) -> bool:
        def migrate(weeks_draft: WeekCollection) -> bool:
            changed = False
            for key in list(weeks_draft):
                if not isinstance(weeks_draft[key], dict):
                    weeks_draft[key] = initialize_week()
                    changed = True
                elif migrate_week(weeks_draft[key]):
                    changed = True
            return changed

        migrated = self.update_weeks(migrate)
        if migrated:
            log.info("Legacy week data migrated", weeks=len(self._weeks))
        return migrated

    # -----------------------------
    # Ids
    # -----------------------------

    def next_id(self) -> int:
        """Millisecond clock, bumped past every live id."""
        live = engine.all_ids(self._weeks.values(), self._pool)
        candidate = int(self._clock() * 1000)
        if live and candidate <= max(live):
            candidate = max(live) + 1
        return candidate

    # -----------------------------
    # Adding tasks
    # -----------------------------

    def add_todo(self, text: str, duration: Any = 30) -> Optional[Todo]:
        text = (text or "").strip()
        if not text:
            return None
        todo = Todo(
            id=self.next_id(),
            text=text,
            completed=False,
            urgent=False,
            important=True,
            duration=engine.coerce_duration(duration, 30) or 30,
            habit=False,
        )
        self.update_pool(lambda pool: pool.insert(0, todo))
        log.info("Pool task added", todo_id=todo.id)
        return todo

    def add_todo_to_day(self, day: str, category: str, text: str, duration: Any = 30) -> Optional[Todo]:
        text = (text or "").strip()
        if not text:
            return None
        if day not in DAYS_OF_WEEK or category not in CATEGORIES:
            log.warning("Quick add ignored: unknown slot", day=day, category=category)
            return None

        urgent, important = engine.quick_add_flags(category)
        todo = Todo(
            id=self.next_id(),
            text=text,
            completed=False,
            urgent=urgent,
            important=important,
            duration=engine.coerce_duration(duration, 30),
            habit=False,
        )
        key = self.current_week_key

        def add(weeks_draft: WeekCollection) -> None:
            week = weeks_draft.setdefault(key, initialize_week())
            week[day][category].append(todo)

        self.update_weeks(add)
        log.info("Task added to day", todo_id=todo.id, week_key=key, day=day, category=category)
        return todo

    # -----------------------------
    # Derived views
    # -----------------------------

    @property
    def backlog(self) -> List[Todo]:
        return engine.backlog(self._pool)

    @property
    def basics_templates(self) -> List[Todo]:
        return engine.basics_templates(self._pool, self.week)

    @property
    def daily_load(self) -> Dict[str, Dict[str, Any]]:
        return engine.daily_load(self.week)

    def remaining_slots(self, day: str, category: str) -> int:
        return engine.remaining_slots(self.week, day, category)
