"""Drag-and-drop transfer of tasks between the pool and the week grid.

States: idle -> dragging -> hovering (target may change) -> idle.
A drop or a cancel always ends in idle.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional

import structlog

from . import engine
from .models import CATEGORIES, DAYS_OF_WEEK, GOAL, Todo, WeekCollection, initialize_week
from .store import PlannerStore

log = structlog.get_logger()

POOL = "pool"
WEEK = "week"
DAY = "day"

IDLE = "idle"
DRAGGING = "dragging"
HOVERING = "hovering"


@dataclass(frozen=True)
class DragSource:
    source: str                      # "pool" | "week"
    todo: Todo
    week_key: Optional[str] = None   # week sources only
    day: Optional[str] = None
    category: Optional[str] = None

    @staticmethod
    def from_pool(todo: Todo) -> "DragSource":
        return DragSource(source=POOL, todo=todo)

    @staticmethod
    def from_week(week_key: str, day: str, category: str, todo: Todo) -> "DragSource":
        return DragSource(source=WEEK, todo=todo, week_key=week_key, day=day, category=category)


@dataclass(frozen=True)
class DropTarget:
    type: str                        # "pool" | "day"
    day: Optional[str] = None
    category: Optional[str] = None

    @staticmethod
    def pool() -> "DropTarget":
        return DropTarget(type=POOL)

    @staticmethod
    def slot(day: str, category: str) -> "DropTarget":
        return DropTarget(type=DAY, day=day, category=category)


def _without(todos: List[Todo], todo_id: int) -> List[Todo]:
    return [t for t in todos if t.id != todo_id]


class TransferCoordinator:
    def __init__(self, store: PlannerStore) -> None:
        self.store = store
        self.is_dragging = False
        self.source: Optional[DragSource] = None
        self.target: Optional[DropTarget] = None

    @property
    def state(self) -> str:
        if not self.is_dragging:
            return IDLE
        return HOVERING if self.target is not None else DRAGGING

    # -----------------------------
    # Drag lifecycle
    # -----------------------------

    def begin_drag(self, source: DragSource) -> None:
        self.source = source
        self.is_dragging = True

    def hover(self, target: DropTarget) -> None:
        self.target = target

    def cancel(self) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        self.is_dragging = False
        self.source = None
        self.target = None

    # -----------------------------
    # Highlight queries
    # -----------------------------

    def is_drop_target(self, day: str, category: str) -> bool:
        t = self.target
        return t is not None and t.type == DAY and t.day == day and t.category == category

    def is_pool_drop_target(self) -> bool:
        return self.target is not None and self.target.type == POOL

    def is_being_dragged(self, todo: Todo) -> bool:
        return self.source is not None and self.source.source == POOL and self.source.todo.id == todo.id

    # -----------------------------
    # Drops
    # -----------------------------

    def drop_on_grid(self, day: str, category: str) -> bool:
        """Drop the dragged task into ``day``/``category`` of the active week."""
        try:
            return self._drop_on_grid(day, category)
        finally:
            self.cleanup()

    def _drop_on_grid(self, day: str, category: str) -> bool:
        data = self.source
        if data is None:
            return False
        if day not in DAYS_OF_WEEK or category not in CATEGORIES:
            log.warning("Drop ignored: unknown slot", day=day, category=category)
            return False

        todo = replace(data.todo, completed=False)
        target_key = self.store.current_week_key

        if category == GOAL:
            occupants = self.store.week.get(day, {}).get(GOAL, [])
            if any(t.id != todo.id for t in occupants):
                log.debug("Drop rejected: goal slot occupied", day=day, todo_id=todo.id)
                return False

        if data.source == POOL:
            urgent, important = engine.flags_for_category(category)
            todo = replace(todo, urgent=urgent, important=important)

        if data.source == POOL and todo.is_habit_template:
            instance = replace(todo, id=self.store.next_id(), source_id=todo.id)

            def instantiate(weeks_draft: WeekCollection, _pool: List[Todo]) -> None:
                weeks_draft.setdefault(target_key, initialize_week())[day][category].append(instance)

            self.store.transaction(instantiate)
            log.info("Habit instantiated", template_id=todo.id, todo_id=instance.id, day=day, category=category)
            return True

        def move(weeks_draft: WeekCollection, pool_draft: List[Todo]) -> None:
            if data.source == WEEK:
                origin = weeks_draft.get(data.week_key or "", {}).get(data.day or "", {})
                if data.category in origin:
                    origin[data.category] = _without(origin[data.category], todo.id)
            weeks_draft.setdefault(target_key, initialize_week())[day][category].append(todo)
            if data.source == POOL:
                pool_draft[:] = _without(pool_draft, todo.id)

        self.store.transaction(move)
        log.info("Task moved", todo_id=todo.id, source=data.source, week_key=target_key, day=day, category=category)
        return True

    def drop_on_pool(self) -> bool:
        """Return a grid task to the pool; habit instances are deleted instead."""
        try:
            return self._drop_on_pool()
        finally:
            self.cleanup()

    def _drop_on_pool(self) -> bool:
        data = self.source
        if data is None or data.source != WEEK:
            return False
        todo = data.todo

        def take_back(weeks_draft: WeekCollection, pool_draft: List[Todo]) -> None:
            origin = weeks_draft.get(data.week_key or "", {}).get(data.day or "", {})
            if data.category in origin:
                origin[data.category] = _without(origin[data.category], todo.id)
            if not todo.is_habit_instance:
                pool_draft.insert(0, replace(todo, urgent=False, important=True))

        self.store.transaction(take_back)
        if not todo.is_habit_instance:
            log.info("Task returned to pool", todo_id=todo.id)
        else:
            log.info("Habit instance removed", todo_id=todo.id, template_id=todo.source_id)
        return True
