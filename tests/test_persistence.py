import json
import os
import tempfile
import unittest
from unittest import mock
from datetime import date

from weekplanner.models import Todo, weeks_to_jsonable
from weekplanner.persistence import SAVED, SAVING, SaveScheduler
from weekplanner.storage import POOL_KEY, WEEKS_KEY, JsonFileStorage, MemoryStorage, load_store
from weekplanner.store import PlannerStore

TODAY = date(2026, 10, 19)


class FakeTimer:
    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.cancelled = False
        self.daemon = False

    def start(self):
        pass

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


class RecordingFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=()):
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer


class FailingStorage(MemoryStorage):
    def set_many(self, blobs):
        raise OSError("disk full")


def make_store() -> PlannerStore:
    return PlannerStore(todo_pool=[], today=TODAY, clock=lambda: 4000.0)


class TestSaveScheduler(unittest.TestCase):
    def test_startup_schedules_a_save(self) -> None:
        store = make_store()
        storage = MemoryStorage()
        factory = RecordingFactory()
        saver = SaveScheduler(store, storage, timer_factory=factory)
        self.assertEqual(saver.status, SAVING)
        self.assertTrue(saver.pending)
        self.assertEqual(len(factory.timers), 1)

        factory.timers[0].fire()
        self.assertEqual(saver.status, SAVED)
        self.assertEqual(storage.writes, 1)
        self.assertIn("2026-W43", storage.get(WEEKS_KEY))
        self.assertEqual(storage.get(POOL_KEY), [])

    def test_debounce_writes_latest_state_once(self) -> None:
        store = make_store()
        storage = MemoryStorage()
        factory = RecordingFactory()
        saver = SaveScheduler(store, storage, timer_factory=factory)

        store.add_todo("a")
        store.add_todo("b")
        store.add_todo_to_day("MONDAY", "work", "c")
        self.assertEqual(saver.status, SAVING)
        self.assertEqual(len(factory.timers), 4)
        self.assertTrue(all(t.cancelled for t in factory.timers[:-1]))
        self.assertEqual(factory.timers[-1].interval, 1.2)
        self.assertEqual(storage.writes, 0)

        factory.timers[-1].fire()
        self.assertEqual(saver.status, SAVED)
        self.assertEqual(storage.writes, 1)
        self.assertEqual([t["text"] for t in storage.get(POOL_KEY)], ["b", "a"])
        self.assertEqual(storage.get(WEEKS_KEY), weeks_to_jsonable(store.all_weeks))
        self.assertFalse(saver.pending)

    def test_weeks_and_pool_go_out_in_one_write(self) -> None:
        store = make_store()
        storage = MemoryStorage()
        calls = []
        storage.set = lambda key, blob: calls.append(("set", key))
        original_set_many = storage.set_many

        def record_set_many(blobs):
            calls.append(("set_many", tuple(sorted(blobs))))
            original_set_many(blobs)

        storage.set_many = record_set_many
        saver = SaveScheduler(store, storage, timer_factory=RecordingFactory())
        saver.flush()
        self.assertEqual(calls, [("set_many", tuple(sorted([WEEKS_KEY, POOL_KEY])))])

    def test_failed_save_leaves_stored_state_untouched(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "planner.json")
            storage = JsonFileStorage(path)
            storage.set_many({WEEKS_KEY: {"2026-W42": {}}, POOL_KEY: [{"id": 1, "text": "old"}]})

            def broken_replace(src, dst):
                raise OSError("disk full")

            store = make_store()
            store.add_todo("new")
            saver = SaveScheduler(store, storage, timer_factory=RecordingFactory())
            with mock.patch("weekplanner.storage.os.replace", broken_replace):
                saver.flush()
            self.assertEqual(saver.status, SAVING)

            reread = JsonFileStorage(path)
            self.assertEqual(reread.get(WEEKS_KEY), {"2026-W42": {}})
            self.assertEqual(reread.get(POOL_KEY), [{"id": 1, "text": "old"}])

    def test_stale_timer_callback_is_ignored(self) -> None:
        store = make_store()
        storage = MemoryStorage()
        factory = RecordingFactory()
        SaveScheduler(store, storage, timer_factory=factory)
        store.add_todo("a")
        store.add_todo("b")
        for stale in factory.timers[:-1]:
            stale.function(*stale.args)
        self.assertEqual(storage.writes, 0)

    def test_flush_and_close(self) -> None:
        store = make_store()
        storage = MemoryStorage()
        factory = RecordingFactory()
        saver = SaveScheduler(store, storage, timer_factory=factory)
        saver.flush()
        self.assertEqual(storage.writes, 1)
        saver.flush()
        self.assertEqual(storage.writes, 1)

        store.add_todo("a")
        saver.close()
        self.assertEqual(storage.writes, 2)
        self.assertTrue(factory.timers[-1].cancelled)
        store.add_todo("b")
        self.assertEqual(len(factory.timers), 2)

    def test_write_failure_keeps_saving_status(self) -> None:
        store = make_store()
        factory = RecordingFactory()
        saver = SaveScheduler(store, FailingStorage(), timer_factory=factory)
        store.add_todo("a")
        factory.timers[-1].fire()
        self.assertEqual(saver.status, SAVING)


class TestJsonFileStorage(unittest.TestCase):
    def test_get_set_roundtrip_on_disk(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "nested", "planner.json")
            storage = JsonFileStorage(path)
            self.assertIsNone(storage.get(WEEKS_KEY))
            storage.set(WEEKS_KEY, {"2026-W43": {}})
            storage.set(POOL_KEY, [{"id": 1, "text": "a"}])
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            self.assertEqual(set(raw), {WEEKS_KEY, POOL_KEY})
            self.assertEqual(JsonFileStorage(path).get(POOL_KEY), [{"id": 1, "text": "a"}])

    def test_unreadable_file_counts_as_empty(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "planner.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            self.assertIsNone(JsonFileStorage(path).get(POOL_KEY))

    def test_path_from_environment(self) -> None:
        old = os.environ.get("WEEKPLANNER_DB")
        os.environ["WEEKPLANNER_DB"] = "/tmp/somewhere/else.json"
        try:
            self.assertEqual(JsonFileStorage().path, "/tmp/somewhere/else.json")
        finally:
            if old is None:
                del os.environ["WEEKPLANNER_DB"]
            else:
                os.environ["WEEKPLANNER_DB"] = old

    def test_default_path_is_relative_to_working_directory(self) -> None:
        with mock.patch.dict(os.environ, clear=False) as env:
            env.pop("WEEKPLANNER_DB", None)
            self.assertEqual(JsonFileStorage().path, os.path.join(".", "data", "weekplanner.json"))


class TestLoadStore(unittest.TestCase):
    def test_empty_storage_seeds_pool(self) -> None:
        store = load_store(MemoryStorage(), today=TODAY)
        self.assertEqual(len(store.todo_pool), 9)
        self.assertIn("2026-W43", store.all_weeks)

    def test_saved_state_loads_back(self) -> None:
        store = make_store()
        storage = MemoryStorage()
        factory = RecordingFactory()
        saver = SaveScheduler(store, storage, timer_factory=factory)
        store.add_todo("keep me", 20)
        store.add_todo_to_day("FRIDAY", "focus", "deep work", 120)
        saver.flush()

        loaded = load_store(storage, today=TODAY)
        self.assertEqual(loaded.all_weeks, store.all_weeks)
        self.assertEqual(loaded.todo_pool, store.todo_pool)

    def test_legacy_blob_is_migrated_on_load(self) -> None:
        storage = MemoryStorage(
            {
                WEEKS_KEY: {"2026-W43": {"MONDAY": {"core": [{"id": 1, "text": "legacy", "duration": 60}]}}},
                POOL_KEY: [],
            }
        )
        store = load_store(storage, today=TODAY)
        self.assertEqual(store.week["MONDAY"]["work"], [Todo(id=1, text="legacy", duration=60)])
        self.assertEqual(store.daily_load["MONDAY"]["total"], 60)

    def test_missing_flags_load_with_dataclass_defaults(self) -> None:
        storage = MemoryStorage({POOL_KEY: [{"id": 3, "text": "bare"}]})
        store = load_store(storage, today=TODAY)
        self.assertEqual(store.todo_pool, [Todo(id=3, text="bare", duration=0)])
        self.assertTrue(store.todo_pool[0].important)
        self.assertFalse(store.todo_pool[0].urgent)


if __name__ == "__main__":
    unittest.main(verbosity=2)
