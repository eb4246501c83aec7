"""Tests for the durable store and the collections built on it."""

import json

import pytest

from scholar_hub.models.planner import Priority, Routine, Subtask, TaskItem, TimetableEntry, Weekday
from scholar_hub.models.profile import ProfileRecord
from scholar_hub.models.study import Achievement, Subject
from scholar_hub.storage.repositories import Collection, PointsLedger, ProfileRepository
from scholar_hub.storage.seeds import default_achievements, default_subjects
from scholar_hub.storage.store import StorageKey


class TestDurableStoreRoundTrip:
    def test_tasks_round_trip(self, store):
        tasks = [
            TaskItem(
                title="Essay draft",
                priority=Priority.HIGH,
                due_date="2026-11-02",
                duration_minutes=45,
                subtasks=[Subtask(title="Outline"), Subtask(title="Intro", is_completed=True)],
            ),
            TaskItem(title="Read chapter 4", is_completed=True),
        ]
        store.set(StorageKey.TASKS, tasks)
        assert store.get(StorageKey.TASKS, [], shape=list[TaskItem]) == tasks

    def test_routines_and_timetable_round_trip(self, store):
        routines = [Routine(title="Meditate", time="07:00 AM", duration_minutes=10)]
        entries = [
            TimetableEntry(
                day=Weekday.MONDAY, subject="Math", start_time="09:00", end_time="10:00"
            )
        ]
        store.set(StorageKey.ROUTINES, routines)
        store.set(StorageKey.TIMETABLE, entries)
        assert store.get(StorageKey.ROUTINES, [], shape=list[Routine]) == routines
        assert store.get(StorageKey.TIMETABLE, [], shape=list[TimetableEntry]) == entries

    def test_profile_round_trip(self, store):
        repo = ProfileRepository(store)
        profile = ProfileRecord(name="Asha", grade="11", school="KV", goal="JEE", language="Hindi")
        repo.save(profile)
        assert repo.load() == profile

    def test_achievements_round_trip_keeps_unlock_time(self, store):
        achievements = default_achievements()
        achievements[0] = achievements[0].model_copy(update={"is_unlocked": True})
        store.set(StorageKey.ACHIEVEMENTS, achievements)
        assert store.get(StorageKey.ACHIEVEMENTS, [], shape=list[Achievement]) == achievements

    def test_untyped_get_returns_raw_json(self, store):
        store.set("custom", {"a": [1, 2]})
        assert store.get("custom", None) == {"a": [1, 2]}


class TestDurableStoreFallback:
    def test_missing_key_returns_default(self, store):
        assert store.get(StorageKey.TASKS, [], shape=list[TaskItem]) == []

    def test_invalid_json_returns_default(self, store):
        store.path_for(StorageKey.TASKS).write_text("{not json")
        assert store.get(StorageKey.TASKS, [], shape=list[TaskItem]) == []

    def test_deeply_nested_json_returns_default(self, store):
        store.path_for(StorageKey.TASKS).write_text("[" * 200_000)
        assert Collection(store, StorageKey.TASKS, TaskItem).list() == []

    def test_null_value_returns_default(self, store):
        store.path_for(StorageKey.POINTS).write_text("null")
        assert store.get(StorageKey.POINTS, 50, shape=int) == 50

    def test_old_shape_resets_to_default(self, store):
        # An older schema stored plain titles
        store.path_for(StorageKey.TASKS).write_text(json.dumps(["Essay", "Lab report"]))
        assert store.get(StorageKey.TASKS, [], shape=list[TaskItem]) == []

    def test_default_is_a_fresh_copy(self, store):
        default: list = []
        first = store.get(StorageKey.TASKS, default)
        first.append("mutated")
        assert default == []
        assert store.get(StorageKey.TASKS, default) == []

    def test_set_overwrites_corrupt_value(self, store):
        store.path_for(StorageKey.PROFILE).write_text("garbage")
        store.set(StorageKey.PROFILE, ProfileRecord(name="Ravi"))
        assert json.loads(store.path_for(StorageKey.PROFILE).read_text())["name"] == "Ravi"

    def test_delete(self, store):
        store.set(StorageKey.POINTS, 70)
        store.delete(StorageKey.POINTS)
        assert store.get(StorageKey.POINTS, 50) == 50


class TestCollection:
    def test_corrupt_tasks_then_add_overwrites(self, store):
        store.path_for(StorageKey.TASKS).write_text("[{broken")
        tasks = Collection(store, StorageKey.TASKS, TaskItem)

        assert tasks.list() == []

        task = TaskItem(title="Physics worksheet")
        tasks.add(task)

        assert tasks.list() == [task]
        raw = json.loads(store.path_for(StorageKey.TASKS).read_text())
        assert [t["id"] for t in raw] == [task.id]

    def test_add_keeps_insertion_order(self, store):
        tasks = Collection(store, StorageKey.TASKS, TaskItem)
        first, second = TaskItem(title="A"), TaskItem(title="B")
        tasks.add(first)
        tasks.add(second)
        assert [t.title for t in tasks.list()] == ["A", "B"]

    def test_add_rejects_duplicate_id(self, store):
        tasks = Collection(store, StorageKey.TASKS, TaskItem)
        task = TaskItem(id="t1", title="A")
        tasks.add(task)
        with pytest.raises(ValueError):
            tasks.add(TaskItem(id="t1", title="B"))
        assert tasks.list() == [task]

    def test_update_replaces_verbatim(self, store):
        tasks = Collection(store, StorageKey.TASKS, TaskItem)
        tasks.add(TaskItem(title="old"))
        replacement = [TaskItem(title="new 1"), TaskItem(title="new 2")]
        tasks.update(replacement)
        assert tasks.list() == replacement

    def test_update_rejects_repeated_id(self, store):
        tasks = Collection(store, StorageKey.TASKS, TaskItem)
        original = tasks.add(TaskItem(id="t0", title="keep"))
        with pytest.raises(ValueError):
            tasks.update([TaskItem(id="t1", title="A"), TaskItem(id="t1", title="B")])
        assert tasks.list() == original

    def test_remove_and_get(self, store):
        routines = Collection(store, StorageKey.ROUTINES, Routine)
        keep, drop = Routine(title="Stretch"), Routine(title="Journal")
        routines.update([keep, drop])
        routines.remove(drop.id)
        assert routines.list() == [keep]
        assert routines.get(keep.id) == keep
        assert routines.get(drop.id) is None

    def test_seeded_default(self, store):
        subjects = Collection(store, StorageKey.SUBJECTS, Subject, default_subjects)
        assert [s.name for s in subjects.list()] == ["Mathematics", "Science", "History"]


class TestPointsLedger:
    def test_default_balance(self, store):
        assert PointsLedger(store).balance == 50

    def test_credit_persists(self, store):
        ledger = PointsLedger(store)
        assert ledger.credit(5) == 55
        assert PointsLedger(store).balance == 55

    def test_negative_stored_balance_resets(self, store):
        store.set(StorageKey.POINTS, -20)
        assert PointsLedger(store).balance == 50

    def test_spend_only_when_affordable(self, store):
        ledger = PointsLedger(store, starting_points=15)
        assert ledger.spend(10) is True
        assert ledger.balance == 5
        assert ledger.spend(10) is False
        assert ledger.balance == 5
