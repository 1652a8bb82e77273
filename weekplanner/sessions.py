from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, List, Optional

import structlog

from . import engine
from .audio import AudioFeedback, SilentAudio
from .models import Todo, WeekCollection
from .persistence import TimerFactory
from .store import PlannerStore

log = structlog.get_logger()

JUST_COMPLETED_SECONDS = 1.0


@dataclass
class EditDraft:
    id: int
    text: str
    duration: Any   # raw form value, coerced on commit


class EditSession:
    """Edits text/duration of one task, wherever it currently lives."""

    def __init__(self, store: PlannerStore) -> None:
        self.store = store
        self.draft: Optional[EditDraft] = None

    @property
    def editing_id(self) -> Optional[int]:
        return self.draft.id if self.draft else None

    def begin(self, todo: Todo) -> EditDraft:
        self.draft = EditDraft(id=todo.id, text=todo.text, duration=todo.duration)
        return self.draft

    def discard(self) -> None:
        self.draft = None

    def commit(self) -> bool:
        """
        Active week first (day order, then category order), pool second.
        Returns False when the task no longer exists.
        """
        draft = self.draft
        if draft is None:
            return False
        self.draft = None

        text = draft.text
        duration = engine.coerce_duration(draft.duration, 0)
        key = self.store.current_week_key

        def edit_week(weeks_draft: WeekCollection) -> bool:
            for _, _, todo in engine.iter_week_tasks(weeks_draft.get(key, {})):
                if todo.id == draft.id:
                    todo.text = text
                    todo.duration = duration
                    return True
            return False

        if self.store.update_weeks(edit_week):
            log.info("Task edited", todo_id=draft.id, week_key=key)
            return True

        def edit_pool(pool_draft: List[Todo]) -> bool:
            for todo in pool_draft:
                if todo.id == draft.id:
                    todo.text = text
                    todo.duration = duration
                    return True
            return False

        if self.store.update_pool(edit_pool):
            log.info("Pool task edited", todo_id=draft.id)
            return True

        log.debug("Edit dropped: task no longer exists", todo_id=draft.id)
        return False


class CompletionToggle:
    def __init__(
        self,
        store: PlannerStore,
        audio: Optional[AudioFeedback] = None,
        timer_factory: TimerFactory = threading.Timer,
        marker_seconds: float = JUST_COMPLETED_SECONDS,
    ) -> None:
        self.store = store
        self.audio = audio or SilentAudio()
        self.timer_factory = timer_factory
        self.marker_seconds = marker_seconds
        self.just_completed_id: Optional[int] = None
        self._marker_timer = None

    def toggle(self, day: str, category: str, todo_id: int) -> Optional[bool]:
        """Flip ``completed``; returns the new value, or None if not found."""
        key = self.store.current_week_key
        result: List[bool] = []

        def flip(weeks_draft: WeekCollection) -> bool:
            for todo in weeks_draft.get(key, {}).get(day, {}).get(category, []):
                if todo.id == todo_id:
                    todo.completed = not todo.completed
                    result.append(todo.completed)
                    return True
            return False

        if not self.store.update_weeks(flip):
            log.debug("Toggle ignored: task not found", todo_id=todo_id, day=day, category=category)
            return None

        completed = result[0]
        if completed:
            self._celebrate(todo_id)
        return completed

    def _celebrate(self, todo_id: int) -> None:
        try:
            self.audio.play_success_sound()
        except Exception as exc:
            log.warning("Success sound failed", error=str(exc))

        if self._marker_timer is not None:
            self._marker_timer.cancel()
        self.just_completed_id = todo_id
        self._marker_timer = self.timer_factory(self.marker_seconds, self._clear_marker, args=(todo_id,))
        self._marker_timer.daemon = True
        self._marker_timer.start()

    def _clear_marker(self, todo_id: int) -> None:
        if self.just_completed_id == todo_id:
            self.just_completed_id = None
