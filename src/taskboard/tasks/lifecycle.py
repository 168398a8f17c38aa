# src/taskboard/tasks/lifecycle.py

"""
Lifecycle engine.

Flat state machine over TaskStatus: every status is reachable from every other by
direct assignment. The single guard is that entering Completed is two-phase
(request -> comment -> confirm) and the comment lands in the activity log.

Writes are fire-and-forget: the in-memory record is updated optimistically, the
store write runs, and the outcome is returned as a WriteResult (also handed to
`on_done`). Store failures never roll the optimistic state back.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import date
from typing import Any

from ..core.errors import CompletionCommentRequired, StoreError, TaskValidationError, WriteResult
from ..core.ports import PartitionStore, Subscription
from .status_catalog import is_reserved_label, normalize
from .subtasks import combine_subtasks, format_legacy_subtasks, parse_legacy_subtasks
from .task_models import (
    ActivityEntry,
    IdentityKey,
    Priority,
    SubtaskRecord,
    TaskRecord,
    TaskStatus,
)

logger = logging.getLogger(__name__)

DoneCallback = Callable[[WriteResult], None]


def clamp_progress(value: int) -> int:
    return max(0, min(100, int(value)))


def parse_progress(raw: Any) -> int | None:
    """
    Turn user input into a 0..100 percentage.

    Numbers are clamped. Strings are parsed as integers; failing that, their digits
    are used ("45%" -> 45). Input without any digit, and NaN or infinity, yield None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float) and not math.isfinite(raw):
        return None
    if isinstance(raw, (int, float)):
        return clamp_progress(int(raw))

    s = str(raw).strip()
    try:
        return clamp_progress(int(s))
    except ValueError:
        digits = "".join(ch for ch in s if ch.isdigit())
        if not digits:
            return None
        return clamp_progress(int(digits))


class LifecycleEngine:
    def __init__(
        self,
        store: PartitionStore,
        *,
        actor: str = "System",
        comment_max_chars: int = 300,
        legacy_due_days: int = 7,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._actor = actor
        self._comment_max_chars = int(comment_max_chars)
        self._legacy_due_days = int(legacy_due_days)
        self._clock = clock
        self._pending_completion: dict[tuple[str, date], TaskStatus] = {}

    # ---- write plumbing ----

    def _write(
        self,
        op: str,
        key: IdentityKey,
        fn: Callable[[], int],
        on_done: DoneCallback | None,
    ) -> WriteResult:
        try:
            n = fn()
        except StoreError as e:
            logger.exception("%s failed key=%s", op, key)
            result = WriteResult.failure(e)
        else:
            if n == 0:
                logger.warning("%s matched no record key=%s", op, key)
            else:
                logger.info("%s ok key=%s records=%d", op, key, n)
            result = WriteResult.success(n)

        if on_done is not None:
            try:
                on_done(result)
            except Exception:
                logger.exception("on_done callback crashed op=%s", op)
        return result

    # ---- status ----

    def transition(
        self,
        task: TaskRecord,
        status: TaskStatus,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        """Direct transition to any status except Completed (see request_completion)."""
        if status == TaskStatus.COMPLETED:
            raise CompletionCommentRequired("Completing a task requires a comment.")
        self._pending_completion.pop(task.key.natural, None)
        return self._apply_status(task, status, None, on_done)

    def _apply_status(
        self,
        task: TaskRecord,
        status: TaskStatus,
        comment: str | None,
        on_done: DoneCallback | None,
    ) -> WriteResult:
        key = task.key
        task.status = status
        task.status_label = status.value
        return self._write(
            "write_status",
            key,
            lambda: self._store.write_status(key, status, comment=comment, actor=self._actor),
            on_done,
        )

    def request_completion(self, task: TaskRecord) -> None:
        """Phase one: remember the request; status does not change yet."""
        self._pending_completion[task.key.natural] = task.status
        logger.debug("Completion requested key=%s", task.key)

    def is_completion_pending(self, task: TaskRecord) -> bool:
        return task.key.natural in self._pending_completion

    def cancel_completion(self, task: TaskRecord) -> None:
        if self._pending_completion.pop(task.key.natural, None) is not None:
            logger.debug("Completion cancelled key=%s", task.key)

    def confirm_completion(
        self,
        task: TaskRecord,
        comment: str,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        """Phase two: with a non-empty comment the task becomes Completed."""
        if task.key.natural not in self._pending_completion:
            raise TaskValidationError("No completion was requested for this task.")
        note = (comment or "").strip()
        if not note:
            raise CompletionCommentRequired("Completion comment must not be empty.")
        if len(note) > self._comment_max_chars:
            raise TaskValidationError(
                f"Completion comment is too long ({len(note)} > {self._comment_max_chars} characters)."
            )
        self._pending_completion.pop(task.key.natural, None)
        return self._apply_status(task, TaskStatus.COMPLETED, note, on_done)

    def set_status_label(
        self,
        task: TaskRecord,
        label: str,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        """
        Store a free-form label verbatim.

        `status` follows only when the label normalizes to a known status;
        unknown labels leave it untouched.
        """
        lbl = (label or "").strip()
        if not lbl:
            raise TaskValidationError("Status label must not be empty.")
        if is_reserved_label(lbl):
            raise TaskValidationError(f"{lbl!r} is a filter, not a status.")

        status = normalize(lbl)
        if status == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
            raise CompletionCommentRequired("Completing a task requires a comment.")

        key = task.key
        write_status = status is not None and status != task.status
        if status is not None:
            task.status = status
        task.status_label = lbl

        def run() -> int:
            n = 0
            if write_status:
                assert status is not None
                n = self._store.write_status(key, status, actor=self._actor)
            return max(n, self._store.write_status_label(key, lbl))

        return self._write("write_status_label", key, run, on_done)

    # ---- progress ----

    def update_progress(
        self,
        task: TaskRecord,
        raw: Any,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult | None:
        """
        Write progress for an In Progress task.

        Returns None (and writes nothing) when the input carries no number.
        """
        if task.status != TaskStatus.IN_PROGRESS:
            raise TaskValidationError("Progress can only be changed while the task is In Progress.")
        value = parse_progress(raw)
        if value is None:
            logger.debug("Ignoring progress input %r key=%s", raw, task.key)
            return None

        key = task.key
        task.progress = value
        return self._write("write_progress", key, lambda: self._store.write_progress(key, value), on_done)

    def observe_progress(self, key: IdentityKey, on_change: Callable[[int], None]) -> Subscription:
        def deliver(value: int) -> None:
            on_change(clamp_progress(value))

        return self._store.subscribe_progress(
            key,
            deliver,
            on_error=lambda e: logger.warning("Progress subscription failed key=%s: %s", key, e),
        )

    # ---- subtasks ----

    def set_subtask_status(
        self,
        task: TaskRecord,
        status: TaskStatus | None,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        """Aggregate subtask status; independent of the child items."""
        key = task.key
        task.subtask_status = status
        return self._write(
            "write_subtask_status", key, lambda: self._store.write_subtask_status(key, status), on_done
        )

    def subtasks_of(self, task: TaskRecord, structured: list[SubtaskRecord]) -> list[SubtaskRecord]:
        return combine_subtasks(
            structured, task.subtask, today=self._clock(), default_due_days=self._legacy_due_days
        )

    def observe_subtasks(
        self,
        task: TaskRecord,
        on_change: Callable[[list[SubtaskRecord]], None],
    ) -> Subscription:
        """Structured and legacy items as one list; legacy text is re-read on every delivery."""
        key = task.key

        def deliver(items: list[SubtaskRecord]) -> None:
            try:
                current = self._store.get_record(key)
            except StoreError as e:
                logger.warning("Subtask parent lookup failed key=%s: %s", key, e)
                current = None
            legacy = current.subtask if current is not None else task.subtask
            on_change(
                combine_subtasks(
                    items, legacy, today=self._clock(), default_due_days=self._legacy_due_days
                )
            )

        def failed(e: Exception) -> None:
            logger.warning("Subtask subscription failed key=%s: %s", key, e)
            on_change([])

        return self._store.subscribe_subtasks(key, deliver, on_error=failed)

    def add_subtask(
        self,
        task: TaskRecord,
        title: str,
        *,
        priority: Priority = Priority.P2,
        due: date | None = None,
        assignee: str | None = None,
        legacy: bool = False,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        t = (title or "").strip()
        if not t:
            raise TaskValidationError("Subtask title must not be empty.")
        key = task.key

        if legacy:
            items = self._legacy_items(task)
            items.append(
                SubtaskRecord(
                    id=f"legacy-{len(items)}",
                    title=t,
                    priority=priority,
                    due_date=due,
                    assigned_to=assignee,
                    legacy=True,
                )
            )
            return self._rewrite_legacy(task, items, on_done)

        item = SubtaskRecord(id="", title=t, priority=priority, due_date=due, assigned_to=assignee)
        return self._write("add_subtask", key, lambda: self._store.add_subtask(key, item), on_done)

    def set_subtask_item_status(
        self,
        task: TaskRecord,
        item: SubtaskRecord,
        status: TaskStatus,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        if item.legacy:
            raise TaskValidationError("Legacy subtasks are edited by rewriting the subtask text.")
        key = task.key
        item.status = status
        return self._write(
            "update_subtask_status",
            key,
            lambda: self._store.update_subtask_status(key, item.id, status),
            on_done,
        )

    def delete_subtask(
        self,
        task: TaskRecord,
        item: SubtaskRecord,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        key = task.key
        if not item.legacy:
            return self._write(
                "delete_subtask", key, lambda: self._store.delete_subtask(key, item.id), on_done
            )

        items = self._legacy_items(task)
        remaining = [i for i in items if i.id != item.id]
        if len(remaining) == len(items):
            raise TaskValidationError(f"Unknown legacy subtask {item.id!r}.")
        return self._rewrite_legacy(task, remaining, on_done)

    def rewrite_legacy_subtasks(
        self,
        task: TaskRecord,
        text: str | None,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        key = task.key
        blob = (text or "").strip() or None
        task.subtask = blob
        return self._write(
            "write_legacy_subtasks", key, lambda: self._store.write_legacy_subtasks(key, blob), on_done
        )

    def _legacy_items(self, task: TaskRecord) -> list[SubtaskRecord]:
        # as stored: display-only due defaults must not be written back
        return parse_legacy_subtasks(task.subtask)

    def _rewrite_legacy(
        self, task: TaskRecord, items: list[SubtaskRecord], on_done: DoneCallback | None
    ) -> WriteResult:
        return self.rewrite_legacy_subtasks(task, format_legacy_subtasks(items), on_done=on_done)

    # ---- comments / activity ----

    def add_comment(
        self,
        task: TaskRecord,
        message: str,
        *,
        on_done: DoneCallback | None = None,
    ) -> WriteResult:
        msg = (message or "").strip()
        if not msg:
            raise TaskValidationError("Comment must not be empty.")
        key = task.key
        return self._write(
            "add_comment", key, lambda: self._store.add_comment(key, self._actor, msg), on_done
        )

    def observe_activity(
        self, key: IdentityKey, on_change: Callable[[list[ActivityEntry]], None]
    ) -> Subscription:
        def failed(e: Exception) -> None:
            logger.warning("Activity subscription failed key=%s: %s", key, e)
            on_change([])

        return self._store.subscribe_activity(key, on_change, on_error=failed)

    # ---- archive ----

    def archive(self, task: TaskRecord, *, on_done: DoneCallback | None = None) -> WriteResult:
        key = task.key
        return self._write("archive_record", key, lambda: self._store.archive_record(key), on_done)

    def unarchive(self, task: TaskRecord, *, on_done: DoneCallback | None = None) -> WriteResult:
        key = task.key
        return self._write("unarchive_record", key, lambda: self._store.unarchive_record(key), on_done)
