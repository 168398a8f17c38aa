# src/taskboard/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from ..core.errors import StoreError, TaskValidationError, WriteResult
from ..core.ports import PartitionStore
from .status_catalog import DEFAULT_STATUS_COLORS
from .task_models import STATUS_DISPLAY_ORDER, OwnerFilter, Partition, TaskOrigin, TaskRecord
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def create_task(store: PartitionStore, record: TaskRecord) -> WriteResult:
    """
    Validate and create a task in the partition owned by its origin.

    A custom status label is stored verbatim next to the normalized status.
    """
    if not record.title or not record.title.strip():
        raise TaskValidationError("Task title must not be empty.")

    partition = Partition.for_origin(record.origin)
    record.partition = partition
    record.archived = False
    try:
        n = store.create_record(partition, record)
    except StoreError as e:
        logger.exception("create_record failed title=%r partition=%s", record.title, partition.value)
        return WriteResult.failure(e)
    logger.info("Task created title=%r partition=%s", record.title, partition.value)
    return WriteResult.success(n)


def delete_task(store: PartitionStore, task: TaskRecord) -> WriteResult:
    try:
        n = store.delete_record(task.key)
    except StoreError as e:
        logger.exception("delete_record failed key=%s", task.key)
        return WriteResult.failure(e)
    return WriteResult.success(n)


def reassign_origin(store: PartitionStore, task: TaskRecord, origin: TaskOrigin) -> WriteResult:
    """
    Move a task to another origin by deleting it and creating it again.

    Ownership is re-established, not migrated: structured subtasks and the activity
    log of the old record are not carried over.
    """
    if origin == task.origin:
        return WriteResult.success(0)

    old_key = task.key
    moved = replace(task, origin=origin, partition=None, archived=False)
    try:
        store.delete_record(old_key)
    except StoreError as e:
        logger.exception("reassign_origin: delete failed key=%s", old_key)
        return WriteResult.failure(e)

    logger.warning("reassign_origin: activity history of %s is not carried over", old_key)
    result = create_task(store, moved)
    if not result.ok:
        logger.error("reassign_origin: recreate failed after delete key=%s", old_key)
    return result


def run_hygiene_sweep(store: PartitionStore, owner: OwnerFilter, titles: Iterable[str]) -> int:
    """Delete the owner's junk/test tasks. Store failures are logged and count as zero."""
    wanted = sorted({t for t in titles if (t or "").strip()})
    if not wanted or owner.is_empty:
        return 0
    try:
        n = store.delete_records_by_title(wanted, owner)
    except StoreError:
        logger.exception("Hygiene sweep failed")
        return 0
    if n:
        logger.info("Hygiene sweep removed %d record(s)", n)
    return n


def ensure_default_status_options(store: TaskStore) -> int:
    """Seed the status catalog with the built-in statuses when it is empty."""
    if store.get_status_catalog()["labels"]:
        return 0
    for status in STATUS_DISPLAY_ORDER:
        store.add_status_option(status.value, DEFAULT_STATUS_COLORS[status])
    logger.info("Seeded %d default status options", len(STATUS_DISPLAY_ORDER))
    return len(STATUS_DISPLAY_ORDER)
