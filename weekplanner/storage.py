from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional, Protocol

import structlog

from .models import pool_from_jsonable, weeks_from_jsonable
from .store import PlannerStore

log = structlog.get_logger()

WEEKS_KEY = "planner-allWeeks"
POOL_KEY = "planner-todoPool"


class Storage(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, blob: Any) -> None: ...

    def set_many(self, blobs: Dict[str, Any]) -> None: ...


def default_db_path() -> str:
    # next to wherever `streamlit run app.py` is started
    return os.path.join(".", "data", "weekplanner.json")


def resolve_db_path() -> str:
    return os.environ.get("WEEKPLANNER_DB", default_db_path())


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)


class MemoryStorage:
    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(data or {})
        self.writes = 0

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def set(self, key: str, blob: Any) -> None:
        self.set_many({key: blob})

    def set_many(self, blobs: Dict[str, Any]) -> None:
        self.data.update(blobs)
        self.writes += 1


class JsonFileStorage:
    """All keys live in one JSON document; every write replaces the whole file atomically."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or resolve_db_path()

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            log.warning("Storage file unreadable, starting empty", path=self.path, error=str(exc))
            return {}
        return raw if isinstance(raw, dict) else {}

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, blob: Any) -> None:
        self.set_many({key: blob})

    def set_many(self, blobs: Dict[str, Any]) -> None:
        data = self._read()
        data.update(blobs)
        ensure_parent_dir(self.path)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)


def load_store(storage: Storage, **kwargs: Any) -> PlannerStore:
    """Build a store from persisted blobs; a missing pool gets the seed tasks."""
    raw_weeks = storage.get(WEEKS_KEY)
    raw_pool = storage.get(POOL_KEY)
    store = PlannerStore(
        all_weeks=weeks_from_jsonable(raw_weeks) if raw_weeks is not None else {},
        todo_pool=pool_from_jsonable(raw_pool) if raw_pool is not None else None,
        **kwargs,
    )
    log.info("Planner loaded", weeks=len(store.all_weeks), pool=len(store.todo_pool))
    return store
