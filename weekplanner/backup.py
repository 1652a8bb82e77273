from __future__ import annotations

import json
from datetime import date
from typing import Optional

import structlog

from .errors import BackupParseError, InvalidBackupError
from .models import pool_from_jsonable, pool_to_jsonable, weeks_from_jsonable, weeks_to_jsonable
from .store import PlannerStore

log = structlog.get_logger()


def backup_filename(today: Optional[date] = None) -> str:
    return f"planner_backup_{(today or date.today()).isoformat()}.json"


def export_backup(store: PlannerStore) -> str:
    data = {
        "allWeeks": weeks_to_jsonable(store.all_weeks),
        "todoPool": pool_to_jsonable(store.todo_pool),
    }
    return json.dumps(data, ensure_ascii=False, indent=2)


def import_backup(store: PlannerStore, text) -> None:
    """
    Replace all planner state with the backup in ``text`` (str or bytes).

    Raises BackupParseError for unparsable input and InvalidBackupError when
    ``allWeeks`` or ``todoPool`` is missing or has the wrong shape. The
    store is untouched in both cases.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        log.warning("Backup import failed: parse error", error=str(exc))
        raise BackupParseError(str(exc)) from exc

    if not isinstance(data, dict):
        raise InvalidBackupError("Expected a JSON object.")
    raw_weeks = data.get("allWeeks")
    raw_pool = data.get("todoPool")
    if not isinstance(raw_weeks, dict) or not isinstance(raw_pool, list):
        log.warning("Backup import failed: invalid data", keys=sorted(data))
        raise InvalidBackupError("Both 'allWeeks' and 'todoPool' are required.")

    store.replace_all(weeks_from_jsonable(raw_weeks), pool_from_jsonable(raw_pool))
    log.info("Backup imported", weeks=len(raw_weeks), pool=len(raw_pool))
