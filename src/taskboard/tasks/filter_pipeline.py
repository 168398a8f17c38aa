# src/taskboard/tasks/filter_pipeline.py

"""
Filter pipeline: (all tasks, filters) -> ordered visible tasks.

Stages run in a fixed order:
 1. origin gate            6. assignee
 2. de-duplication         7. priority
 3. search text            8. recurrence window
 4. status / label         9. due today
 5. project               10. denylist

Result order: tasks due today first, then by status display order; inside a
bucket the arrival order is kept (stable sort, no title/date tie-breaks).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date
from enum import StrEnum

from .dedup import DEFAULT_DENYLIST, dedupe, drop_denylisted
from .recurrence import task_is_due_today, task_is_overdue, task_window_visible
from .status_catalog import (
    RESERVED_ALL,
    RESERVED_RECURRING,
    RESERVED_TODAY,
    StatusCatalog,
    canon_label,
    normalize,
    reserved_label,
)
from .task_models import STATUS_DISPLAY_ORDER, Priority, TaskOrigin, TaskRecord, TaskStatus

logger = logging.getLogger(__name__)


class SourceScope(StrEnum):
    SELF = "self"  # Self only
    ASSIGNED = "assigned"  # AdminShared + ClientAssigned
    ALL = "all"
    RESOURCES = "resources"  # Self + AdminShared
    CLIENTS = "clients"  # ClientAssigned only

    def admits(self, origin: TaskOrigin) -> bool:
        return origin in _SCOPE_ORIGINS[self]


_SCOPE_ORIGINS: dict[SourceScope, frozenset[TaskOrigin]] = {
    SourceScope.SELF: frozenset({TaskOrigin.SELF}),
    SourceScope.ASSIGNED: frozenset({TaskOrigin.ADMIN_SHARED, TaskOrigin.CLIENT_ASSIGNED}),
    SourceScope.ALL: frozenset(TaskOrigin),
    SourceScope.RESOURCES: frozenset({TaskOrigin.SELF, TaskOrigin.ADMIN_SHARED}),
    SourceScope.CLIENTS: frozenset({TaskOrigin.CLIENT_ASSIGNED}),
}


@dataclass(frozen=True, slots=True)
class TaskFilters:
    """Filter state of one screen. Empty strings / None mean "no filter"."""

    scope: SourceScope = SourceScope.ALL
    search: str = ""
    status: TaskStatus | None = None
    status_label: str | None = None
    project: str | None = None
    assignee: str | None = None
    priority: str | None = None
    only_due_today: bool = False
    recurring_only: bool = False
    only_overdue: bool = False


def resolve_status_choice(filters: TaskFilters, choice: str | None) -> TaskFilters:
    """
    Apply a status-menu choice.

    Reserved labels toggle their predicate (All clears every status-ish filter);
    anything else becomes a verbatim label filter.
    """
    base = replace(filters, status=None, status_label=None, only_due_today=False, recurring_only=False)
    reserved = reserved_label(choice)
    if reserved == RESERVED_ALL or not (choice or "").strip():
        return base
    if reserved == RESERVED_TODAY:
        return replace(base, only_due_today=True)
    if reserved == RESERVED_RECURRING:
        return replace(base, recurring_only=True)
    return replace(base, status_label=(choice or "").strip())


# ---- predicates ----


def _matches_search(task: TaskRecord, needle: str) -> bool:
    n = needle.strip().lower()
    if not n:
        return True
    return n in task.title.lower() or n in task.description.lower()


def _matches_status(task: TaskRecord, filters: TaskFilters, catalog: StatusCatalog | None) -> bool:
    if filters.status is not None and task.status != filters.status:
        return False
    wanted = (filters.status_label or "").strip()
    if not wanted:
        return True
    if task.display_label == wanted:
        return True
    if canon_label(task.display_label) == canon_label(wanted):
        return True
    # A configured label that names a known status also matches records whose stored
    # label is the canonical one (e.g. legacy rows written before labels existed).
    status = catalog.normalize(wanted) if catalog is not None else normalize(wanted)
    return status is not None and normalize(task.display_label) == status


def _matches_project(task: TaskRecord, wanted: str | None) -> bool:
    if not (wanted or "").strip():
        return True
    return task.project is not None and task.project.matches(wanted or "")


def _matches_assignee(task: TaskRecord, wanted: str | None) -> bool:
    w = (wanted or "").strip().lower()
    if not w:
        return True
    return task.assigned_to.strip().lower() == w


def _matches_priority(task: TaskRecord, wanted: str | None) -> bool:
    """Raw enum name, short code and human label all match."""
    w = (wanted or "").strip().lower()
    if not w:
        return True
    p = task.priority
    return w in {p.name.lower(), p.value.lower(), p.label.lower()}


# ---- pipeline ----


def run_pipeline(
    tasks: Iterable[TaskRecord],
    filters: TaskFilters,
    *,
    today: date,
    catalog: StatusCatalog | None = None,
    denylist: frozenset[str] = DEFAULT_DENYLIST,
) -> list[TaskRecord]:
    out = [t for t in tasks if filters.scope.admits(t.origin)]
    out = dedupe(out, denylist=denylist)
    out = [t for t in out if _matches_search(t, filters.search)]
    out = [t for t in out if _matches_status(t, filters, catalog)]
    if filters.recurring_only:
        out = [t for t in out if t.is_recurring]
    out = [t for t in out if _matches_project(t, filters.project)]
    out = [t for t in out if _matches_assignee(t, filters.assignee)]
    out = [t for t in out if _matches_priority(t, filters.priority)]
    out = [t for t in out if task_window_visible(t, today)]
    if filters.only_due_today:
        out = [t for t in out if task_is_due_today(t, today)]
    if filters.only_overdue:
        out = [t for t in out if task_is_overdue(t, today)]
    out = drop_denylisted(out, denylist)
    return order_tasks(out, today=today)


def order_tasks(tasks: list[TaskRecord], *, today: date) -> list[TaskRecord]:
    def sort_key(t: TaskRecord) -> tuple[int, int]:
        bucket = 0 if task_is_due_today(t, today) else 1
        return (bucket, STATUS_DISPLAY_ORDER.index(t.status))

    return sorted(tasks, key=sort_key)


def expired_recurring(
    tasks: Iterable[TaskRecord],
    *,
    today: date,
    denylist: frozenset[str] = DEFAULT_DENYLIST,
) -> list[TaskRecord]:
    """Recurring tasks whose window has elapsed (the complement of stage 8)."""
    return [t for t in dedupe(tasks, denylist=denylist) if t.is_recurring and not task_window_visible(t, today)]


# ---- stats / menus ----


@dataclass(frozen=True, slots=True)
class TaskCounts:
    total: int
    todo: int
    in_progress: int
    completed: int
    overdue: int

    @property
    def completion_ratio(self) -> float:
        return self.completed / self.total if self.total else 0.0


def summarize_counts(tasks: Iterable[TaskRecord], *, today: date) -> TaskCounts:
    items = list(tasks)
    return TaskCounts(
        total=len(items),
        todo=sum(1 for t in items if t.status in (TaskStatus.NOT_STARTED, TaskStatus.WAITING_FOR)),
        in_progress=sum(1 for t in items if t.status == TaskStatus.IN_PROGRESS),
        completed=sum(1 for t in items if t.status == TaskStatus.COMPLETED),
        overdue=sum(1 for t in items if task_is_overdue(t, today)),
    )


def priority_menu_labels(configured: Iterable[str] = ()) -> list[str]:
    """
    High/Medium/Low, from configured labels mentioning P1/P2/P3 when given,
    else all three.
    """
    seen: list[Priority] = []
    for raw in configured:
        s = (raw or "").upper()
        for p in Priority:
            if p.value in s and p not in seen:
                seen.append(p)
    if not seen:
        seen = list(Priority)
    return [p.label for p in sorted(seen, key=lambda p: p.value)]
