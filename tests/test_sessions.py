import unittest
from datetime import date

from weekplanner.models import Todo
from weekplanner.sessions import CompletionToggle, EditSession
from weekplanner.store import PlannerStore

TODAY = date(2026, 10, 19)


class FakeTimer:
    created = []

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.cancelled = False
        self.started = False
        self.daemon = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


class RecordingAudio:
    def __init__(self, fail=False):
        self.plays = 0
        self.fail = fail

    def play_success_sound(self):
        self.plays += 1
        if self.fail:
            raise RuntimeError("no audio device")


def make_store(pool=None) -> PlannerStore:
    return PlannerStore(todo_pool=pool or [], today=TODAY, clock=lambda: 3000.0)


class TestEditSession(unittest.TestCase):
    def test_commit_in_active_week(self) -> None:
        store = make_store([Todo(id=1, text="pool copy")])
        todo = store.add_todo_to_day("TUESDAY", "focus", "draft", 30)
        session = EditSession(store)
        draft = session.begin(todo)
        self.assertEqual(session.editing_id, todo.id)
        draft.text = "final"
        draft.duration = "90"
        self.assertTrue(session.commit())
        edited = store.week["TUESDAY"]["focus"][0]
        self.assertEqual((edited.text, edited.duration), ("final", 90))
        self.assertIsNone(session.draft)
        self.assertEqual(store.todo_pool[0].text, "pool copy")

    def test_commit_falls_back_to_pool(self) -> None:
        store = make_store([Todo(id=7, text="old", duration=10)])
        session = EditSession(store)
        draft = session.begin(store.todo_pool[0])
        draft.text = "new"
        draft.duration = "not a number"
        self.assertTrue(session.commit())
        self.assertEqual((store.todo_pool[0].text, store.todo_pool[0].duration), ("new", 0))

    def test_commit_for_vanished_task_is_noop(self) -> None:
        store = make_store()
        weeks, pool = store.all_weeks, store.todo_pool
        session = EditSession(store)
        session.begin(Todo(id=404, text="gone"))
        self.assertFalse(session.commit())
        self.assertIs(store.all_weeks, weeks)
        self.assertIs(store.todo_pool, pool)

    def test_discard_leaves_task_alone(self) -> None:
        store = make_store([Todo(id=7, text="old")])
        session = EditSession(store)
        draft = session.begin(store.todo_pool[0])
        draft.text = "changed"
        session.discard()
        self.assertIsNone(session.editing_id)
        self.assertFalse(session.commit())
        self.assertEqual(store.todo_pool[0].text, "old")


class TestCompletionToggle(unittest.TestCase):
    def setUp(self) -> None:
        FakeTimer.created = []

    def test_toggle_on_plays_sound_and_marks(self) -> None:
        store = make_store()
        todo = store.add_todo_to_day("MONDAY", "work", "x")
        audio = RecordingAudio()
        toggle = CompletionToggle(store, audio=audio, timer_factory=FakeTimer)

        self.assertTrue(toggle.toggle("MONDAY", "work", todo.id))
        self.assertTrue(store.week["MONDAY"]["work"][0].completed)
        self.assertEqual(audio.plays, 1)
        self.assertEqual(toggle.just_completed_id, todo.id)
        timer = FakeTimer.created[-1]
        self.assertEqual(timer.interval, 1.0)
        self.assertTrue(timer.started)
        timer.fire()
        self.assertIsNone(toggle.just_completed_id)

    def test_toggle_off_is_quiet(self) -> None:
        store = make_store()
        todo = store.add_todo_to_day("MONDAY", "work", "x")
        audio = RecordingAudio()
        toggle = CompletionToggle(store, audio=audio, timer_factory=FakeTimer)
        toggle.toggle("MONDAY", "work", todo.id)
        FakeTimer.created[-1].fire()
        self.assertFalse(toggle.toggle("MONDAY", "work", todo.id))
        self.assertEqual(audio.plays, 1)
        self.assertIsNone(toggle.just_completed_id)

    def test_audio_failure_does_not_affect_data(self) -> None:
        store = make_store()
        todo = store.add_todo_to_day("MONDAY", "work", "x")
        toggle = CompletionToggle(store, audio=RecordingAudio(fail=True), timer_factory=FakeTimer)
        self.assertTrue(toggle.toggle("MONDAY", "work", todo.id))
        self.assertTrue(store.week["MONDAY"]["work"][0].completed)

    def test_newer_completion_keeps_marker(self) -> None:
        store = make_store()
        a = store.add_todo_to_day("MONDAY", "work", "a")
        b = store.add_todo_to_day("MONDAY", "work", "b")
        toggle = CompletionToggle(store, timer_factory=FakeTimer)
        toggle.toggle("MONDAY", "work", a.id)
        first = FakeTimer.created[-1]
        toggle.toggle("MONDAY", "work", b.id)
        self.assertTrue(first.cancelled)
        first.function(*first.args)
        self.assertEqual(toggle.just_completed_id, b.id)

    def test_unknown_task(self) -> None:
        store = make_store()
        toggle = CompletionToggle(store, timer_factory=FakeTimer)
        self.assertIsNone(toggle.toggle("MONDAY", "work", 12345))
        self.assertEqual(FakeTimer.created, [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
