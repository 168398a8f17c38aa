# src/taskboard/reports/summary.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from ..core.ports import LLMClient
from ..tasks.filter_pipeline import summarize_counts
from ..tasks.recurrence import task_is_due_today, task_is_overdue
from ..tasks.task_models import TaskRecord

logger = logging.getLogger(__name__)

NO_SUMMARY = "No summary."

SUMMARY_SYSTEM_PROMPT = """
You are a task summary module that writes short status reports for a project team.

Input: a list of tasks, one per line:
  title | status label | priority | due day | assignee | progress

Task:
- Summarize overall progress in 2-5 sentences.
- Mention overdue work and anything blocked (Stuck, Need Help, Waiting For, Hold by Client).

Rules:
- Plain text, no markdown, no emojis.
- Do not invent tasks that are not in the input.
- If there is nothing to report, reply exactly:
  No summary.
""".strip()


def _task_line(task: TaskRecord) -> str:
    return " | ".join(
        [
            task.title,
            task.display_label,
            task.priority.label,
            task.due_day.isoformat(),
            task.assigned_to or "-",
            f"{task.progress}%",
        ]
    )


def build_fallback_summary(tasks: Iterable[TaskRecord], *, today: date) -> str:
    """Deterministic summary used when the LLM is unavailable or returns nothing."""
    items = list(tasks)
    if not items:
        return "No tasks to report."

    c = summarize_counts(items, today=today)
    lines = [
        f"{c.total} task(s): {c.todo} to do, {c.in_progress} in progress, "
        f"{c.completed} done ({c.completion_ratio:.0%} complete), {c.overdue} overdue."
    ]

    due_today = [t.title for t in items if task_is_due_today(t, today)]
    if due_today:
        lines.append("Due today: " + ", ".join(due_today) + ".")

    overdue = [t.title for t in items if task_is_overdue(t, today)]
    if overdue:
        lines.append("Overdue: " + ", ".join(overdue) + ".")
    return "\n".join(lines)


def generate_task_summary(
    llm: LLMClient | None,
    tasks: Iterable[TaskRecord],
    *,
    today: date,
    max_chars: int = 1200,
) -> str:
    """
    Ask the LLM for a short status report of `tasks`.

    Any LLM failure (or an empty / sentinel answer) falls back to
    build_fallback_summary().
    """
    items = list(tasks)
    fallback = build_fallback_summary(items, today=today)
    if llm is None or not items:
        return fallback

    prompt = f"Today is {today.isoformat()}.\n" + "\n".join(_task_line(t) for t in items)
    raw = ""
    try:
        for piece in llm.stream_chat([{"role": "user", "content": prompt}], SUMMARY_SYSTEM_PROMPT):
            raw += piece
    except Exception:
        logger.exception("Task summary failed; using fallback text.")
        return fallback

    summary = raw.strip()
    if not summary or summary == NO_SUMMARY:
        return fallback
    if len(summary) > max_chars:
        summary = summary[:max_chars] + "…"
    logger.debug("Task summary produced len=%d", len(summary))
    return summary
