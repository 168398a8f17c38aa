# src/taskboard/tasks/recurrence.py

"""
Recurrence window.

Pure calendar-day functions; `today` is always an argument so callers (and tests)
decide what "today" means. Time-of-day is discarded on every input.
"""

from __future__ import annotations

from datetime import date, datetime

from .task_models import TaskRecord, TaskStatus, calendar_day

DateLike = datetime | date


def is_active(start: DateLike, end: DateLike | None, today: DateLike) -> bool:
    """
    With an end date: start <= today <= end (inclusive, calendar days).
    Without an end date: always active.
    """
    if end is None:
        return True
    t = calendar_day(today)
    return calendar_day(start) <= t <= calendar_day(end)


def has_elapsed(end: DateLike | None, today: DateLike) -> bool:
    """True once the whole window is in the past; open-ended windows never elapse."""
    if end is None:
        return False
    return calendar_day(today) > calendar_day(end)


def is_due_today(start: DateLike, end: DateLike | None, today: DateLike) -> bool:
    """
    "Due today" check for a recurring task.

    With an end date this is the same window check as `is_active`. Without one,
    only the start day itself counts as due.
    """
    if end is None:
        return calendar_day(start) == calendar_day(today)
    return is_active(start, end, today)


def task_is_due_today(task: TaskRecord, today: DateLike) -> bool:
    if task.is_recurring:
        return is_due_today(task.start_date, task.recurring_end_date, today)
    return task.due_day == calendar_day(today)


def task_window_visible(task: TaskRecord, today: DateLike) -> bool:
    """Non-recurring tasks are always visible; recurring ones until their window elapses."""
    if not task.is_recurring:
        return True
    return not has_elapsed(task.recurring_end_date, today)


def task_is_overdue(task: TaskRecord, today: DateLike) -> bool:
    return task.due_day < calendar_day(today) and task.status != TaskStatus.COMPLETED
