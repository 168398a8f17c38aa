# tests/test_board.py

from __future__ import annotations

from datetime import date, datetime, time

from taskboard.core.errors import StoreError
from taskboard.tasks.board import TaskBoard
from taskboard.tasks.filter_pipeline import TaskFilters
from taskboard.tasks.lifecycle import LifecycleEngine
from taskboard.tasks.status_catalog import StatusCatalog
from taskboard.tasks.task_api import create_task, reassign_origin
from taskboard.tasks.task_models import OwnerFilter, Partition, TaskOrigin, TaskStatus
from taskboard.tasks.task_store import TaskStore

from .fakes import make_task

AUDIT_DAY = date(2024, 5, 1)


def _board_for(store: TaskStore, owner: OwnerFilter, today: date) -> TaskBoard:
    engine = LifecycleEngine(store, actor="Me", clock=lambda: today)
    return TaskBoard(store, engine, StatusCatalog(), owner, clock=lambda: today)


def test_duplicate_across_partitions_shows_admin_copy(store: TaskStore, board: TaskBoard) -> None:
    store.create_record(
        Partition.ADMIN, make_task("Audit", AUDIT_DAY, origin=TaskOrigin.ADMIN_SHARED, description="admin copy")
    )
    store.create_record(Partition.SELF, make_task("audit ", AUDIT_DAY, description="self copy"))
    board.start()

    audits = [t for t in board.view() if t.title.strip().lower() == "audit"]
    assert len(audits) == 1
    assert audits[0].description == "admin copy"


def test_expired_recurring_task_only_in_expired_view(store: TaskStore, owner: OwnerFilter) -> None:
    task = make_task("Daily check", date(2024, 5, 10), start=date(2024, 5, 1), is_recurring=True)
    task.recurring_end_date = datetime.combine(date(2024, 5, 10), time(9, 0))
    create_task(store, task)

    board = _board_for(store, owner, date(2024, 5, 11))
    board.start()
    try:
        assert board.view() == []
        assert [t.title for t in board.expired_tasks()] == ["Daily check"]
    finally:
        board.stop()


def test_custom_label_is_shown_verbatim(store: TaskStore, board: TaskBoard) -> None:
    create_task(store, make_task("Ship parts", date(2024, 5, 8), status=TaskStatus.IN_PROGRESS))
    board.start()
    [task] = board.view()

    board.engine.set_status_label(task, "Blocked by Vendor")

    [fresh] = board.view()
    assert fresh is not task  # re-delivered by the subscription
    assert fresh.status is TaskStatus.IN_PROGRESS
    assert fresh.status_label == "Blocked by Vendor"
    assert fresh.display_label == "Blocked by Vendor"


def test_denylisted_task_hidden_and_swept_on_next_sync(store: TaskStore, owner: OwnerFilter) -> None:
    create_task(store, make_task("Mmm", date(2024, 5, 8)))
    create_task(store, make_task("Real", date(2024, 5, 8)))

    first = _board_for(store, owner, date(2024, 5, 6))
    first.start(sweep=False)
    assert [t.title for t in first.view()] == ["Real"]
    assert [t.title for t in first.view(TaskFilters(search="mmm"))] == []
    first.stop()
    assert store.count_tasks() == 2

    second = _board_for(store, owner, date(2024, 5, 6))
    second.start()
    second.stop()
    assert store.count_tasks() == 1


def test_board_recomputes_on_deliveries_until_stopped(store: TaskStore, owner: OwnerFilter) -> None:
    changes = {"n": 0}
    engine = LifecycleEngine(store)
    board = TaskBoard(store, engine, StatusCatalog(), owner, on_change=lambda: changes.__setitem__("n", changes["n"] + 1))
    board.start()
    after_start = changes["n"]

    create_task(store, make_task("One", date(2024, 5, 8)))
    assert changes["n"] == after_start + 1
    assert [t.title for t in board.all_tasks()] == ["One"]

    board.stop()
    create_task(store, make_task("Two", date(2024, 5, 8)))
    assert changes["n"] == after_start + 1


class _AdminDownStore(TaskStore):
    """Admin partition subscription fails; everything else works."""

    def subscribe(self, partition, owner, on_change, on_error=None):
        if partition == Partition.ADMIN:
            if on_error is not None:
                on_error(StoreError("admin partition offline"))
            return super().subscribe(partition, OwnerFilter(), lambda _records: None)
        return super().subscribe(partition, owner, on_change, on_error)


def test_fallback_stream_fills_in_when_admin_stream_is_empty(tmp_path, owner: OwnerFilter) -> None:
    store = _AdminDownStore(tmp_path / "down.sqlite3")
    create_task(store, make_task("Assigned report", date(2024, 5, 8), origin=TaskOrigin.ADMIN_SHARED))
    create_task(store, make_task("Mine", date(2024, 5, 8)))

    board = _board_for(store, owner, date(2024, 5, 6))
    board.start()
    try:
        assert sorted(t.title for t in board.view()) == ["Assigned report", "Mine"]
    finally:
        board.stop()


def test_archive_moves_task_between_views(store: TaskStore, board: TaskBoard) -> None:
    create_task(store, make_task("Audit", AUDIT_DAY))
    board.start()
    [task] = board.view()

    assert board.engine.archive(task).ok
    assert board.view() == []
    [archived] = board.archived_tasks()

    assert board.engine.unarchive(archived).ok
    assert [t.title for t in board.view()] == ["Audit"]
    assert board.archived_tasks() == []


def test_reassign_origin_recreates_in_target_partition(store: TaskStore, board: TaskBoard) -> None:
    create_task(store, make_task("Audit", AUDIT_DAY, status_label="Blocked by Vendor"))
    board.start()
    [task] = board.view()
    board.engine.add_comment(task, "history entry")

    assert reassign_origin(store, task, TaskOrigin.ADMIN_SHARED).ok

    [moved] = board.view()
    assert moved.origin is TaskOrigin.ADMIN_SHARED
    assert moved.partition is Partition.ADMIN
    assert moved.status_label == "Blocked by Vendor"
    # activity of the old record is not carried over
    assert [e.type for e in store.list_activity(moved.key)] == ["creation"]
