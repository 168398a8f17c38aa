# tests/test_recurrence.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from taskboard.tasks.recurrence import has_elapsed, is_active, is_due_today, task_is_due_today, task_is_overdue
from taskboard.tasks.task_models import TaskStatus

from .fakes import make_task

START = date(2024, 5, 1)
END = date(2024, 5, 10)


@pytest.mark.parametrize("offset", [-400, -1, 0, 1, 30, 10_000])
def test_open_ended_window_is_always_active(offset: int) -> None:
    assert is_active(START, None, START + timedelta(days=offset))


@pytest.mark.parametrize(
    ("today", "expected"),
    [
        (date(2024, 4, 30), False),
        (date(2024, 5, 1), True),
        (date(2024, 5, 5), True),
        (date(2024, 5, 10), True),
        (date(2024, 5, 11), False),
    ],
)
def test_bounded_window_is_inclusive(today: date, expected: bool) -> None:
    assert is_active(START, END, today) is expected


def test_time_of_day_is_ignored() -> None:
    late_start = datetime(2024, 5, 1, 23, 59)
    early_end = datetime(2024, 5, 10, 0, 1)
    assert is_active(late_start, early_end, datetime(2024, 5, 10, 23, 0))
    assert is_active(late_start, early_end, datetime(2024, 5, 1, 0, 0))


def test_aware_datetimes_use_the_local_calendar() -> None:
    end = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
    local_end_day = end.astimezone().date()
    assert is_active(START, end, local_end_day)
    assert not is_active(START, end, local_end_day + timedelta(days=1))


def test_has_elapsed() -> None:
    assert not has_elapsed(None, date(2099, 1, 1))
    assert not has_elapsed(END, END)
    assert has_elapsed(END, END + timedelta(days=1))


def test_due_today_without_end_means_start_day_only() -> None:
    assert is_due_today(START, None, START)
    assert not is_due_today(START, None, START + timedelta(days=1))
    assert is_due_today(START, END, date(2024, 5, 7))


def test_task_due_today_for_recurring_and_plain_tasks() -> None:
    recurring = make_task("Standup", date(2024, 5, 10), start=START, is_recurring=True)
    recurring.recurring_end_date = datetime(2024, 5, 10, 9, 0)
    assert task_is_due_today(recurring, date(2024, 5, 6))

    plain = make_task("Report", date(2024, 5, 6))
    assert task_is_due_today(plain, date(2024, 5, 6))
    assert not task_is_due_today(plain, date(2024, 5, 7))


def test_overdue_ignores_completed_tasks() -> None:
    late = make_task("Late", date(2024, 5, 1))
    done = make_task("Done late", date(2024, 5, 1), status=TaskStatus.COMPLETED)
    assert task_is_overdue(late, date(2024, 5, 2))
    assert not task_is_overdue(done, date(2024, 5, 2))
    assert not task_is_overdue(late, date(2024, 5, 1))
