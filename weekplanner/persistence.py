"""Debounced write-through of planner state to a storage collaborator."""
from __future__ import annotations

import threading
from typing import Any, Callable, Optional

import structlog

from .models import pool_to_jsonable, weeks_to_jsonable
from .storage import POOL_KEY, WEEKS_KEY

log = structlog.get_logger()

SAVE_DELAY_SECONDS = 1.2

SAVING = "Saving..."
SAVED = "All changes saved"

# Same call shape as threading.Timer: factory(interval, function, args=...)
TimerFactory = Callable[..., Any]


class SaveScheduler:
    """
    Every store change restarts one pending timer; when it fires the latest
    weeks and pool are written together. Only one timer is ever pending.
    """

    def __init__(
        self,
        store,
        storage,
        delay: float = SAVE_DELAY_SECONDS,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.store = store
        self.storage = storage
        self.delay = delay
        self.timer_factory = timer_factory
        self.status = SAVED
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self._generation = 0
        self._unsubscribe = store.subscribe(self._on_change)
        # migration, week creation and pool seeding already happened in the store
        self.schedule()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def _on_change(self, store, changed: str) -> None:
        self.schedule()

    def schedule(self) -> None:
        with self._lock:
            self.status = SAVING
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = self.timer_factory(self.delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._timer is None:
                return  # superseded or flushed
            self._timer = None
        self._write()

    def _write(self) -> None:
        # published snapshots are never mutated, so reading them here is safe
        weeks = self.store.all_weeks
        pool = self.store.todo_pool
        try:
            self.storage.set_many({WEEKS_KEY: weeks_to_jsonable(weeks), POOL_KEY: pool_to_jsonable(pool)})
        except OSError as exc:
            log.error("Saving planner state failed", error=str(exc))
            return
        self.status = SAVED
        log.debug("Planner state saved", weeks=len(weeks), pool=len(pool))

    def flush(self) -> None:
        """Write now if a save is pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        self._write()

    def close(self) -> None:
        self._unsubscribe()
        self.flush()
