# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import date

import pytest

from taskboard.core.errors import TaskValidationError
from taskboard.tasks.task_models import (
    IdentityKey,
    OwnerFilter,
    Partition,
    Priority,
    ProjectRef,
    SubtaskRecord,
    TaskOrigin,
    TaskStatus,
)
from taskboard.tasks.task_store import TaskStore

from .fakes import OWNER_EMAIL, make_task

DAY = date(2024, 5, 1)


def test_create_and_read_back_round_trip(store: TaskStore, owner: OwnerFilter) -> None:
    task = make_task(
        "Audit",
        DAY,
        description="quarterly",
        priority=Priority.P1,
        project=ProjectRef(id="p-1", name="Finance"),
        status_label="Blocked by Vendor",
    )
    assert store.create_record(Partition.SELF, task) == 1

    [back] = store.list_partition(Partition.SELF, owner)
    assert back.title == "Audit"
    assert back.due_date == task.due_date
    assert back.description == "quarterly"
    assert back.priority is Priority.P1
    assert back.project == ProjectRef(id="p-1", name="Finance")
    assert back.status is TaskStatus.NOT_STARTED
    assert back.status_label == "Blocked by Vendor"
    assert back.partition is Partition.SELF

    [entry] = store.list_activity(back.key)
    assert entry.type == "creation"


def test_create_rejects_empty_title(store: TaskStore) -> None:
    with pytest.raises(TaskValidationError):
        store.create_record(Partition.SELF, make_task("   ", DAY))
    assert store.count_tasks() == 0


def test_empty_owner_filter_returns_nothing(store: TaskStore) -> None:
    store.create_record(Partition.SELF, make_task("Audit", DAY))
    seen: list[list] = []
    sub = store.subscribe(Partition.SELF, OwnerFilter(), seen.append)
    assert seen == [[]]
    sub.cancel()
    assert store.fetch_assigned(OwnerFilter()) == []


def test_owner_filter_scopes_records(store: TaskStore, owner: OwnerFilter) -> None:
    store.create_record(Partition.ADMIN, make_task("Mine", DAY, origin=TaskOrigin.ADMIN_SHARED))
    store.create_record(
        Partition.ADMIN,
        make_task(
            "Theirs",
            DAY,
            origin=TaskOrigin.ADMIN_SHARED,
            owner_uid="u-2",
            assigned_to="other@example.com",
            created_by="other@example.com",
        ),
    )
    assert [t.title for t in store.list_partition(Partition.ADMIN, owner)] == ["Mine"]
    assert [t.title for t in store.fetch_assigned(OwnerFilter(email=OWNER_EMAIL.upper()))] == ["Mine"]


def test_subscription_redelivers_after_writes_until_cancelled(store: TaskStore, owner: OwnerFilter) -> None:
    deliveries: list[list[str]] = []
    sub = store.subscribe(Partition.SELF, owner, lambda recs: deliveries.append([r.title for r in recs]))
    assert deliveries == [[]]

    store.create_record(Partition.SELF, make_task("One", DAY))
    assert deliveries[-1] == ["One"]

    sub.cancel()
    store.create_record(Partition.SELF, make_task("Two", DAY))
    assert deliveries[-1] == ["One"]


def test_listener_exception_does_not_break_writer(store: TaskStore, owner: OwnerFilter) -> None:
    calls = {"n": 0}

    def bad_listener(_records) -> None:
        calls["n"] += 1
        raise RuntimeError("boom")

    store.subscribe(Partition.SELF, owner, bad_listener)
    assert store.create_record(Partition.SELF, make_task("One", DAY)) == 1
    assert calls["n"] == 2


def test_write_status_resets_label_and_logs_one_entry(store: TaskStore) -> None:
    task = make_task("Audit", DAY, status_label="Custom")
    store.create_record(Partition.SELF, task)
    key = task.key

    assert store.write_status(key, TaskStatus.STUCK, comment="vendor late", actor="Me") == 1

    back = store.get_record(key)
    assert back is not None
    assert back.status is TaskStatus.STUCK
    assert back.status_label == "Stuck"
    assert [c.message for c in back.comments] == ["vendor late"]

    entries = store.list_activity(key)
    assert [(e.action, e.message, e.user) for e in entries[1:]] == [
        ("changed status to Stuck", "vendor late", "Me")
    ]


def test_writes_match_by_identity_key_only(store: TaskStore) -> None:
    store.create_record(Partition.SELF, make_task("Audit", DAY))
    other_day = IdentityKey.of("Audit", date(2024, 5, 2), Partition.SELF)
    other_partition = IdentityKey.of("Audit", DAY, Partition.ADMIN)

    assert store.write_progress(other_day, 50) == 0
    assert store.write_progress(other_partition, 50) == 0
    assert store.write_progress(IdentityKey.of(" AUDIT ", DAY, Partition.SELF), 150) == 1

    back = store.get_record(IdentityKey.of("audit", DAY, Partition.SELF))
    assert back is not None and back.progress == 100


def test_progress_subscription(store: TaskStore) -> None:
    task = make_task("Audit", DAY)
    store.create_record(Partition.SELF, task)
    seen: list[int] = []
    store.subscribe_progress(task.key, seen.append)
    store.write_progress(task.key, 40)
    store.write_progress(task.key, -5)
    assert seen == [0, 40, 0]


def test_archive_and_unarchive_keep_identity_and_history(store: TaskStore, owner: OwnerFilter) -> None:
    task = make_task("Audit", DAY, origin=TaskOrigin.ADMIN_SHARED)
    store.create_record(Partition.ADMIN, task)
    store.write_status(task.key, TaskStatus.STUCK)

    assert store.archive_record(task.key) == 1
    assert store.list_partition(Partition.ADMIN, owner) == []
    [archived] = store.list_partition(Partition.ARCHIVED, owner)
    assert archived.archived
    assert len(store.list_activity(archived.key)) == 2

    assert store.unarchive_record(archived.key) == 1
    [restored] = store.list_partition(Partition.ADMIN, owner)
    assert restored.status is TaskStatus.STUCK
    assert not restored.archived
    assert store.list_partition(Partition.ARCHIVED, owner) == []


def test_delete_record_falls_back_to_archived_partition(store: TaskStore) -> None:
    task = make_task("Audit", DAY)
    store.create_record(Partition.SELF, task)
    store.archive_record(task.key)

    assert store.delete_record(task.key) == 1
    assert store.count_tasks() == 0


def test_delete_by_title_sweeps_owner_records_in_active_partitions(store: TaskStore, owner: OwnerFilter) -> None:
    store.create_record(Partition.SELF, make_task("Mmm", DAY))
    store.create_record(Partition.ADMIN, make_task("mmm", date(2024, 5, 2), origin=TaskOrigin.ADMIN_SHARED))
    store.create_record(
        Partition.SELF,
        make_task("Mmm", date(2024, 5, 3), owner_uid="u-2", assigned_to="x@example.com", created_by="x@example.com"),
    )
    store.create_record(Partition.SELF, make_task("Real", DAY))

    assert store.delete_records_by_title(["Mmm"], OwnerFilter()) == 0
    assert store.delete_records_by_title(["Mmm"], owner) == 2
    assert store.count_tasks() == 2


def test_structured_subtasks_by_id(store: TaskStore) -> None:
    task = make_task("Audit", DAY)
    store.create_record(Partition.SELF, task)
    seen: list[list[str]] = []
    store.subscribe_subtasks(task.key, lambda items: seen.append([i.title for i in items]))

    store.add_subtask(task.key, SubtaskRecord(id="s1", title="Collect receipts"))
    store.add_subtask(task.key, SubtaskRecord(id="s2", title="Reconcile"))
    assert store.update_subtask_status(task.key, "s2", TaskStatus.COMPLETED) == 1
    assert store.delete_subtask(task.key, "s1") == 1

    [only] = store.list_subtasks(task.key)
    assert (only.id, only.status) == ("s2", TaskStatus.COMPLETED)
    assert seen[0] == [] and seen[2] == ["Collect receipts", "Reconcile"]


def test_status_catalog_options(store: TaskStore) -> None:
    seen: list[dict] = []
    store.subscribe_status_catalog(seen.append)
    store.add_status_option("TODO", "#8E8E93")
    store.add_status_option("Blocked by Vendor", "#123456")
    store.rename_status_option("Blocked by Vendor", "Vendor Hold")
    store.remove_status_option("TODO")

    assert seen[0] == {"labels": [], "colors": {}}
    assert seen[-1] == {"labels": ["Vendor Hold"], "colors": {"Vendor Hold": "#123456"}}


def test_schema_migration_adds_missing_columns(tmp_path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        """
        CREATE TABLE tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            partition TEXT NOT NULL,
            title TEXT NOT NULL,
            title_key TEXT NOT NULL,
            due_at REAL NOT NULL,
            due_day TEXT NOT NULL,
            start_at REAL NOT NULL,
            created_at REAL NOT NULL,
            updated_at REAL NOT NULL
        )
        """
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)
    task = make_task("Audit", DAY)
    store.create_record(Partition.SELF, task)
    back = store.get_record(task.key)
    assert back is not None and back.status_label == "TODO"


def test_get_record_looks_only_inside_the_key_partition(store: TaskStore) -> None:
    store.create_record(Partition.SELF, make_task("Audit", DAY))

    assert store.get_record(IdentityKey.of("audit ", DAY, Partition.SELF)).title == "Audit"
    assert store.get_record(IdentityKey.of("Audit", DAY, Partition.ADMIN)) is None
    assert store.get_record(IdentityKey.of("Audit", date(2024, 5, 2), Partition.SELF)) is None
