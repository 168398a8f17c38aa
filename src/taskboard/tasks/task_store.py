# src/taskboard/tasks/task_store.py

from __future__ import annotations

import contextlib
import itertools
import json
import logging
import sqlite3
import threading
import time
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from ..core.errors import StoreError, TaskValidationError
from ..core.ports import ErrorHandler, StatusCatalogSnapshot
from .task_models import (
    ActivityEntry,
    Comment,
    IdentityKey,
    OwnerFilter,
    Partition,
    Priority,
    ProjectRef,
    RecurringPattern,
    SubtaskRecord,
    TaskOrigin,
    TaskRecord,
    TaskStatus,
    calendar_day,
    title_key,
)

logger = logging.getLogger(__name__)

_ACTIVE_PARTITIONS = (Partition.ADMIN, Partition.SELF)


@dataclass(slots=True)
class _Listener:
    kind: str  # "partition" | "progress" | "subtasks" | "activity" | "catalog"
    callback: Callable[[Any], None]
    on_error: ErrorHandler | None
    partition: Partition | None = None
    owner: OwnerFilter | None = None
    key: IdentityKey | None = None


class _StoreSubscription:
    def __init__(self, store: TaskStore | None, listener_id: int | None) -> None:
        self._store = store
        self._listener_id = listener_id

    def cancel(self) -> None:
        if self._store is not None and self._listener_id is not None:
            self._store._remove_listener(self._listener_id)
        self._store = None
        self._listener_id = None


class TaskStore:
    """
    SQLite implementation of the partitioned task store.

    Schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Records are addressed by IdentityKey (title + due day + partition).
    Listeners are in-process: every committed write re-delivers fresh snapshots
    to the listeners it affects, on the writer's thread.

    Thread-safety:
    - each method opens its own SQLite connection
    - the listener registry is guarded by a lock; callbacks run outside it
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._listeners: dict[int, _Listener] = {}
        self._listener_ids = itertools.count(1)
        self._lock = threading.RLock()
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except StoreError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Drop all listeners (no persistent connections to close)."""
        with self._lock:
            self._listeners.clear()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success and turns sqlite errors into StoreError."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
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

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("archived_from", "TEXT")
            add_col("origin", "TEXT NOT NULL DEFAULT 'Self'")
            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("status", "TEXT NOT NULL DEFAULT 'TODO'")
            add_col("status_label", "TEXT NOT NULL DEFAULT ''")
            add_col("priority", "TEXT NOT NULL DEFAULT 'P2'")
            add_col("assigned_to", "TEXT NOT NULL DEFAULT ''")
            add_col("owner_uid", "TEXT")
            add_col("created_by", "TEXT")
            add_col("project_id", "TEXT")
            add_col("project_name", "TEXT")
            add_col("is_recurring", "INTEGER NOT NULL DEFAULT 0")
            add_col("recurring_pattern", "TEXT")
            add_col("recurring_days", "INTEGER")
            add_col("recurring_end_at", "REAL")
            add_col("subtask", "TEXT")
            add_col("subtask_status", "TEXT")
            add_col("progress", "INTEGER NOT NULL DEFAULT 0")
            add_col("comments", "TEXT NOT NULL DEFAULT '[]'")

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS subtasks (
                    id TEXT PRIMARY KEY,
                    task_id INTEGER NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'TODO',
                    priority TEXT NOT NULL DEFAULT 'P2',
                    due_day TEXT,
                    assigned_to TEXT
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS activity (
                    id TEXT PRIMARY KEY,
                    task_id INTEGER NOT NULL,
                    user TEXT NOT NULL,
                    action TEXT NOT NULL,
                    message TEXT,
                    type TEXT NOT NULL DEFAULT 'history',
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS status_options (
                    name TEXT PRIMARY KEY,
                    color TEXT,
                    position INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_identity ON tasks(partition, title_key, due_day)"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_subtasks_task ON subtasks(task_id, position)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_activity_task ON activity(task_id, created_at)")

    @staticmethod
    def _ts(value: datetime | date | None) -> float | None:
        if value is None:
            return None
        if not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day)
        return value.timestamp()

    @staticmethod
    def _comments_to_str(comments: Iterable[Comment]) -> str:
        return json.dumps(
            [
                {"user": c.user, "message": c.message, "timestamp": c.timestamp.timestamp()}
                for c in comments
            ],
            ensure_ascii=False,
        )

    @staticmethod
    def _str_to_comments(s: str | None) -> list[Comment]:
        if not s:
            return []
        try:
            raw = json.loads(s)
        except ValueError:
            return []
        out: list[Comment] = []
        for item in raw if isinstance(raw, list) else []:
            if not isinstance(item, dict):
                continue
            out.append(
                Comment(
                    user=str(item.get("user", "")),
                    message=str(item.get("message", "")),
                    timestamp=datetime.fromtimestamp(float(item.get("timestamp") or 0.0)),
                )
            )
        return out

    def _row_to_task(self, row: sqlite3.Row) -> TaskRecord:
        partition = Partition(row["partition"])
        project = None
        if row["project_name"] or row["project_id"]:
            project = ProjectRef(id=row["project_id"], name=row["project_name"] or row["project_id"])
        end_at = row["recurring_end_at"]
        return TaskRecord(
            title=str(row["title"]),
            description=str(row["description"] or ""),
            due_date=datetime.fromtimestamp(float(row["due_at"])),
            start_date=datetime.fromtimestamp(float(row["start_at"])),
            origin=TaskOrigin.from_db(row["origin"]),
            status=TaskStatus.from_db(row["status"]),
            status_label=str(row["status_label"] or ""),
            priority=Priority.from_label(row["priority"]),
            assigned_to=str(row["assigned_to"] or ""),
            project=project,
            is_recurring=bool(row["is_recurring"]),
            recurring_pattern=RecurringPattern.from_db(row["recurring_pattern"]),
            recurring_days=row["recurring_days"],
            recurring_end_date=datetime.fromtimestamp(float(end_at)) if end_at is not None else None,
            subtask=row["subtask"],
            subtask_status=TaskStatus(row["subtask_status"]) if row["subtask_status"] else None,
            progress=int(row["progress"] or 0),
            comments=self._str_to_comments(row["comments"]),
            archived=partition == Partition.ARCHIVED,
            owner_uid=row["owner_uid"],
            created_by=row["created_by"],
            partition=partition,
        )

    @staticmethod
    def _key_where(key: IdentityKey) -> tuple[str, tuple[Any, ...]]:
        return (
            "partition = ? AND title_key = ? AND due_day = ?",
            (key.partition.value, key.title, key.due_day.isoformat()),
        )

    def _task_ids(self, conn: sqlite3.Connection, key: IdentityKey) -> list[int]:
        where, params = self._key_where(key)
        cur = conn.execute(f"SELECT id FROM tasks WHERE {where} ORDER BY id ASC", params)
        return [int(r["id"]) for r in cur.fetchall()]

    @staticmethod
    def _add_activity(
        conn: sqlite3.Connection,
        task_id: int,
        *,
        user: str,
        action: str,
        message: str | None,
        type_: str,
    ) -> None:
        conn.execute(
            """
            INSERT INTO activity(id, task_id, user, action, message, type, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (str(uuid.uuid4()), task_id, user, action, message, type_, time.time()),
        )

    # ---- listener registry ----

    def _add_listener(self, listener: _Listener) -> _StoreSubscription:
        with self._lock:
            lid = next(self._listener_ids)
            self._listeners[lid] = listener
        self._deliver(listener)
        return _StoreSubscription(self, lid)

    def _remove_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    def _snapshot_for(self, listener: _Listener) -> Any:
        if listener.kind == "partition":
            assert listener.partition is not None and listener.owner is not None
            return self.list_partition(listener.partition, listener.owner)
        if listener.kind == "progress":
            assert listener.key is not None
            rec = self.get_record(listener.key)
            return rec.progress if rec is not None else 0
        if listener.kind == "subtasks":
            assert listener.key is not None
            return self.list_subtasks(listener.key)
        if listener.kind == "activity":
            assert listener.key is not None
            return self.list_activity(listener.key)
        return self.get_status_catalog()

    def _deliver(self, listener: _Listener) -> None:
        try:
            snapshot = self._snapshot_for(listener)
        except StoreError as e:
            logger.warning("Listener snapshot failed kind=%s: %s", listener.kind, e)
            if listener.on_error is not None:
                try:
                    listener.on_error(e)
                except Exception:
                    logger.exception("Listener on_error crashed kind=%s", listener.kind)
            return
        try:
            listener.callback(snapshot)
        except Exception:
            logger.exception("Listener callback crashed kind=%s", listener.kind)

    def _notify(
        self,
        *,
        partitions: Iterable[Partition] = (),
        keys: Iterable[IdentityKey] = (),
        catalog: bool = False,
    ) -> None:
        parts = set(partitions)
        naturals = {k.natural for k in keys}
        parts.update(k.partition for k in keys)
        with self._lock:
            listeners = list(self._listeners.values())
        for lst in listeners:
            if lst.kind == "partition":
                hit = lst.partition in parts
            elif lst.kind == "catalog":
                hit = catalog
            else:
                hit = lst.key is not None and lst.key.natural in naturals
            if hit:
                self._deliver(lst)

    # ---- reads ----

    def count_tasks(self) -> int:
        with self._connection() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def list_partition(self, partition: Partition, owner: OwnerFilter) -> list[TaskRecord]:
        """Records of one partition visible to `owner`, in insertion order."""
        if owner.is_empty:
            return []
        with self._connection() as conn:
            cur = conn.execute(
                "SELECT * FROM tasks WHERE partition = ? ORDER BY id ASC", (partition.value,)
            )
            rows = cur.fetchall()
        records = [self._row_to_task(r) for r in rows]
        return [r for r in records if owner.matches(r)]

    def list_all(self, partition: Partition) -> list[TaskRecord]:
        """Unscoped listing (admin surfaces)."""
        with self._connection() as conn:
            cur = conn.execute(
                "SELECT * FROM tasks WHERE partition = ? ORDER BY id ASC", (partition.value,)
            )
            return [self._row_to_task(r) for r in cur.fetchall()]

    def get_record(self, key: IdentityKey) -> TaskRecord | None:
        """Lookup inside key.partition only; the partition is part of the identity."""
        where, params = self._key_where(key)
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT * FROM tasks WHERE {where} ORDER BY id ASC LIMIT 1", params
            ).fetchone()
        return self._row_to_task(row) if row else None

    def fetch_assigned(self, owner: OwnerFilter) -> list[TaskRecord]:
        """One-shot "assigned to me" query over the admin/shared partition."""
        if owner.is_empty:
            return []
        email = (owner.email or "").strip().lower()
        uid = (owner.uid or "").strip()
        return [
            r
            for r in self.list_all(Partition.ADMIN)
            if (email and r.assigned_to.strip().lower() == email) or (uid and r.owner_uid == uid)
        ]

    def list_subtasks(self, key: IdentityKey) -> list[SubtaskRecord]:
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            if not ids:
                return []
            cur = conn.execute(
                "SELECT * FROM subtasks WHERE task_id = ? ORDER BY position ASC", (ids[0],)
            )
            rows = cur.fetchall()
        return [
            SubtaskRecord(
                id=str(r["id"]),
                title=str(r["title"]),
                status=TaskStatus.from_db(r["status"]),
                priority=Priority.from_label(r["priority"]),
                due_date=date.fromisoformat(r["due_day"]) if r["due_day"] else None,
                assigned_to=r["assigned_to"],
            )
            for r in rows
        ]

    def list_activity(self, key: IdentityKey) -> list[ActivityEntry]:
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            if not ids:
                return []
            cur = conn.execute(
                "SELECT * FROM activity WHERE task_id = ? ORDER BY created_at ASC, rowid ASC",
                (ids[0],),
            )
            rows = cur.fetchall()
        return [
            ActivityEntry(
                id=str(r["id"]),
                user=str(r["user"]),
                action=str(r["action"]),
                message=r["message"],
                timestamp=datetime.fromtimestamp(float(r["created_at"])),
                type=str(r["type"]),
            )
            for r in rows
        ]

    def get_status_catalog(self) -> StatusCatalogSnapshot:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT name, color FROM status_options ORDER BY position ASC, name ASC"
            ).fetchall()
        return {
            "labels": [str(r["name"]) for r in rows],
            "colors": {str(r["name"]): str(r["color"]) for r in rows if r["color"]},
        }

    # ---- subscriptions ----

    def subscribe(
        self,
        partition: Partition,
        owner: OwnerFilter,
        on_change: Callable[[list[TaskRecord]], None],
        on_error: ErrorHandler | None = None,
    ) -> _StoreSubscription:
        if owner.is_empty:
            logger.debug("subscribe(%s) without owner filter -> empty", partition.value)
            on_change([])
            return _StoreSubscription(None, None)
        return self._add_listener(
            _Listener(kind="partition", callback=on_change, on_error=on_error, partition=partition, owner=owner)
        )

    def subscribe_progress(
        self,
        key: IdentityKey,
        on_change: Callable[[int], None],
        on_error: ErrorHandler | None = None,
    ) -> _StoreSubscription:
        return self._add_listener(_Listener(kind="progress", callback=on_change, on_error=on_error, key=key))

    def subscribe_subtasks(
        self,
        key: IdentityKey,
        on_change: Callable[[list[SubtaskRecord]], None],
        on_error: ErrorHandler | None = None,
    ) -> _StoreSubscription:
        return self._add_listener(_Listener(kind="subtasks", callback=on_change, on_error=on_error, key=key))

    def subscribe_activity(
        self,
        key: IdentityKey,
        on_change: Callable[[list[ActivityEntry]], None],
        on_error: ErrorHandler | None = None,
    ) -> _StoreSubscription:
        return self._add_listener(_Listener(kind="activity", callback=on_change, on_error=on_error, key=key))

    def subscribe_status_catalog(
        self,
        on_change: Callable[[StatusCatalogSnapshot], None],
        on_error: ErrorHandler | None = None,
    ) -> _StoreSubscription:
        return self._add_listener(_Listener(kind="catalog", callback=on_change, on_error=on_error))

    # ---- writes: records ----

    def create_record(self, partition: Partition, record: TaskRecord) -> int:
        if not record.title or not record.title.strip():
            raise TaskValidationError("title is required")
        if partition == Partition.ARCHIVED:
            raise TaskValidationError("records are archived with archive_record(), not created archived")

        now = time.time()
        due_ts = self._ts(record.due_date)
        start_ts = self._ts(record.start_date)
        with self._connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks(
                    partition, title, title_key, due_at, due_day, start_at,
                    created_at, updated_at, origin, description, status, status_label,
                    priority, assigned_to, owner_uid, created_by, project_id, project_name,
                    is_recurring, recurring_pattern, recurring_days, recurring_end_at,
                    subtask, subtask_status, progress, comments
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    partition.value,
                    record.title.strip(),
                    title_key(record.title),
                    due_ts,
                    calendar_day(record.due_date).isoformat(),
                    start_ts,
                    now,
                    now,
                    record.origin.value,
                    record.description,
                    record.status.value,
                    record.status_label or record.status.value,
                    record.priority.value,
                    record.assigned_to,
                    record.owner_uid,
                    record.created_by,
                    record.project.id if record.project else None,
                    record.project.name if record.project else None,
                    1 if record.is_recurring else 0,
                    record.recurring_pattern.value if record.recurring_pattern else None,
                    record.recurring_days,
                    self._ts(record.recurring_end_date),
                    record.subtask,
                    record.subtask_status.value if record.subtask_status else None,
                    max(0, min(100, int(record.progress))),
                    self._comments_to_str(record.comments),
                ),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise StoreError("SQLite did not return lastrowid for tasks insert")
            self._add_activity(
                conn,
                int(rowid),
                user=record.created_by or record.assigned_to or "System",
                action="created this task",
                message=None,
                type_="creation",
            )
        logger.debug("Task created partition=%s title=%r due=%s", partition.value, record.title, record.due_day)
        self._notify(partitions=[partition])
        return 1

    def _update_fields(self, key: IdentityKey, fields: dict[str, Any]) -> int:
        if not fields:
            return 0
        assignments = ", ".join(f"{name} = ?" for name in fields)
        where, params = self._key_where(key)
        with self._connection() as conn:
            cur = conn.execute(
                f"UPDATE tasks SET {assignments}, updated_at = ? WHERE {where}",
                (*fields.values(), time.time(), *params),
            )
            n = cur.rowcount
        if n:
            self._notify(keys=[key])
        return n

    def write_status(
        self,
        key: IdentityKey,
        status: TaskStatus,
        comment: str | None = None,
        actor: str | None = None,
    ) -> int:
        """Set status (label reset to the canonical one); log exactly one activity entry per record."""
        user = actor or "System"
        note = (comment or "").strip() or None
        where, params = self._key_where(key)
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            if not ids:
                return 0
            conn.execute(
                f"UPDATE tasks SET status = ?, status_label = ?, updated_at = ? WHERE {where}",
                (status.value, status.value, time.time(), *params),
            )
            for task_id in ids:
                if note:
                    row = conn.execute("SELECT comments FROM tasks WHERE id = ?", (task_id,)).fetchone()
                    comments = self._str_to_comments(row["comments"])
                    comments.append(Comment(user=user, message=note, timestamp=datetime.now()))
                    conn.execute(
                        "UPDATE tasks SET comments = ? WHERE id = ?",
                        (self._comments_to_str(comments), task_id),
                    )
                self._add_activity(
                    conn,
                    task_id,
                    user=user,
                    action=f"changed status to {status.value}",
                    message=note,
                    type_="status",
                )
        logger.info("Status written key=%s status=%s records=%d", key, status.value, len(ids))
        self._notify(keys=[key])
        return len(ids)

    def write_status_label(self, key: IdentityKey, label: str) -> int:
        return self._update_fields(key, {"status_label": label.strip()})

    def write_progress(self, key: IdentityKey, percent: int) -> int:
        return self._update_fields(key, {"progress": max(0, min(100, int(percent)))})

    def write_subtask_status(self, key: IdentityKey, status: TaskStatus | None) -> int:
        return self._update_fields(key, {"subtask_status": status.value if status else None})

    def write_legacy_subtasks(self, key: IdentityKey, text: str | None) -> int:
        return self._update_fields(key, {"subtask": text or None})

    def add_comment(self, key: IdentityKey, user: str, message: str) -> int:
        msg = (message or "").strip()
        if not msg:
            raise TaskValidationError("comment is empty")
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            for task_id in ids:
                row = conn.execute("SELECT comments FROM tasks WHERE id = ?", (task_id,)).fetchone()
                comments = self._str_to_comments(row["comments"])
                comments.append(Comment(user=user, message=msg, timestamp=datetime.now()))
                conn.execute(
                    "UPDATE tasks SET comments = ?, updated_at = ? WHERE id = ?",
                    (self._comments_to_str(comments), time.time(), task_id),
                )
                self._add_activity(conn, task_id, user=user, action="commented", message=msg, type_="comment")
        if ids:
            self._notify(keys=[key])
        return len(ids)

    def archive_record(self, key: IdentityKey) -> int:
        if key.partition == Partition.ARCHIVED:
            return 0
        n = self._move(key, Partition.ARCHIVED, archived_from=key.partition)
        logger.info("Archived key=%s records=%d", key, n)
        return n

    def unarchive_record(self, key: IdentityKey) -> int:
        """Move back to the partition the record was archived from (admin/shared by default)."""
        archived_key = IdentityKey(title=key.title, due_day=key.due_day, partition=Partition.ARCHIVED)
        where, params = self._key_where(archived_key)
        with self._connection() as conn:
            rows = conn.execute(f"SELECT id, archived_from FROM tasks WHERE {where}", params).fetchall()
            targets: set[Partition] = set()
            for r in rows:
                target = Partition(r["archived_from"]) if r["archived_from"] else Partition.ADMIN
                targets.add(target)
                conn.execute(
                    "UPDATE tasks SET partition = ?, archived_from = NULL, updated_at = ? WHERE id = ?",
                    (target.value, time.time(), int(r["id"])),
                )
        if rows:
            logger.info("Unarchived key=%s records=%d", key, len(rows))
            self._notify(partitions=[Partition.ARCHIVED, *targets], keys=[archived_key])
        return len(rows)

    def _move(self, key: IdentityKey, target: Partition, *, archived_from: Partition | None) -> int:
        where, params = self._key_where(key)
        with self._connection() as conn:
            cur = conn.execute(
                f"UPDATE tasks SET partition = ?, archived_from = ?, updated_at = ? WHERE {where}",
                (target.value, archived_from.value if archived_from else None, time.time(), *params),
            )
            n = cur.rowcount
        if n:
            self._notify(partitions=[key.partition, target], keys=[key])
        return n

    def delete_record(self, key: IdentityKey) -> int:
        """Delete by key; if nothing matches in an active partition, try the archived one."""
        n = self._delete_where_key(key)
        if n == 0 and key.partition != Partition.ARCHIVED:
            archived_key = IdentityKey(title=key.title, due_day=key.due_day, partition=Partition.ARCHIVED)
            n = self._delete_where_key(archived_key)
        return n

    def _delete_where_key(self, key: IdentityKey) -> int:
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            self._delete_ids(conn, ids)
        if ids:
            logger.info("Deleted key=%s records=%d", key, len(ids))
            self._notify(keys=[key])
        return len(ids)

    @staticmethod
    def _delete_ids(conn: sqlite3.Connection, ids: list[int]) -> None:
        for task_id in ids:
            conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM activity WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    def delete_records_by_title(self, titles: list[str], owner: OwnerFilter) -> int:
        """
        Bulk hygiene sweep over the active partitions.

        Titles are compared trimmed and case-insensitively; only records owned by
        `owner` are deleted. An empty owner filter deletes nothing.
        """
        wanted = {title_key(t) for t in titles if title_key(t)}
        if not wanted or owner.is_empty:
            return 0
        placeholders = ",".join("?" for _ in wanted)
        touched: set[Partition] = set()
        deleted = 0
        with self._connection() as conn:
            for partition in _ACTIVE_PARTITIONS:
                rows = conn.execute(
                    f"SELECT * FROM tasks WHERE partition = ? AND title_key IN ({placeholders})",
                    (partition.value, *wanted),
                ).fetchall()
                ids = [int(r["id"]) for r in rows if owner.matches(self._row_to_task(r))]
                if ids:
                    self._delete_ids(conn, ids)
                    touched.add(partition)
                    deleted += len(ids)
        if touched:
            self._notify(partitions=touched)
        return deleted

    # ---- writes: structured subtasks ----

    def add_subtask(self, key: IdentityKey, subtask: SubtaskRecord) -> int:
        if not subtask.title or not subtask.title.strip():
            raise TaskValidationError("subtask title is required")
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            if not ids:
                return 0
            (pos,) = conn.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 FROM subtasks WHERE task_id = ?", (ids[0],)
            ).fetchone()
            conn.execute(
                """
                INSERT INTO subtasks(id, task_id, position, title, status, priority, due_day, assigned_to)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    subtask.id or str(uuid.uuid4()),
                    ids[0],
                    int(pos),
                    subtask.title.strip(),
                    subtask.status.value,
                    subtask.priority.value,
                    subtask.due_date.isoformat() if subtask.due_date else None,
                    subtask.assigned_to,
                ),
            )
        self._notify(keys=[key])
        return 1

    def update_subtask_status(self, key: IdentityKey, subtask_id: str, status: TaskStatus) -> int:
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            if not ids:
                return 0
            cur = conn.execute(
                "UPDATE subtasks SET status = ? WHERE id = ? AND task_id = ?",
                (status.value, subtask_id, ids[0]),
            )
            n = cur.rowcount
        if n:
            self._notify(keys=[key])
        return n

    def delete_subtask(self, key: IdentityKey, subtask_id: str) -> int:
        with self._connection() as conn:
            ids = self._task_ids(conn, key)
            if not ids:
                return 0
            cur = conn.execute("DELETE FROM subtasks WHERE id = ? AND task_id = ?", (subtask_id, ids[0]))
            n = cur.rowcount
        if n:
            self._notify(keys=[key])
        return n

    # ---- writes: status catalog ----

    def add_status_option(self, name: str, color: str | None = None) -> None:
        label = (name or "").strip()
        if not label:
            raise TaskValidationError("status name is required")
        with self._connection() as conn:
            (pos,) = conn.execute("SELECT COALESCE(MAX(position), -1) + 1 FROM status_options").fetchone()
            conn.execute(
                """
                INSERT INTO status_options(name, color, position) VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET color = excluded.color
                """,
                (label, color, int(pos)),
            )
        self._notify(catalog=True)

    def remove_status_option(self, name: str) -> int:
        with self._connection() as conn:
            n = conn.execute("DELETE FROM status_options WHERE name = ?", ((name or "").strip(),)).rowcount
        if n:
            self._notify(catalog=True)
        return n

    def rename_status_option(self, old_name: str, new_name: str, color: str | None = None) -> int:
        old = (old_name or "").strip()
        new = (new_name or "").strip()
        if not old or not new:
            raise TaskValidationError("status names must not be empty")
        with self._connection() as conn:
            n = conn.execute(
                "UPDATE status_options SET name = ?, color = COALESCE(?, color) WHERE name = ?",
                (new, color, old),
            ).rowcount
        if n:
            self._notify(catalog=True)
        return n
