# src/taskboard/tasks/subtasks.py

"""
Subtasks come in two shapes:

- Legacy: a free-text blob on the parent, one item per line, with optional inline
  tags `[Due: yyyy-MM-dd]`, `[Assignee: name]`, `[P: label]`.
- Structured: SubtaskRecord rows owned by the parent, edited by id.

Both are presented as one SubtaskRecord list. Legacy items are read-only by id;
they are edited by rewriting the whole blob.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from .task_models import Priority, SubtaskRecord

_DUE_RE = re.compile(r"\[Due:\s*(.*?)\]")
_ASSIGNEE_RE = re.compile(r"\[Assignee:\s*(.*?)\]")
_PRIORITY_RE = re.compile(r"\[P(?:riority)?:\s*(.*?)\]")


@dataclass(slots=True, frozen=True)
class LegacySubtasks:
    raw_text: str


@dataclass(slots=True, frozen=True)
class StructuredSubtasks:
    items: tuple[SubtaskRecord, ...]


SubtaskSource = LegacySubtasks | StructuredSubtasks


def _parse_day(raw: str) -> date | None:
    try:
        return datetime.strptime(raw.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_legacy_subtasks(text: str | None) -> list[SubtaskRecord]:
    """
    Parse the legacy blob as written; blank lines are skipped, ids are positional
    (`legacy-<n>`). Lines without a readable `[Due: ]` tag keep `due_date=None`, and an
    unreadable tag stays in the title so a rewrite never loses it.
    """
    out: list[SubtaskRecord] = []
    if not text:
        return out

    for line in text.splitlines():
        title = line.strip()
        if not title:
            continue

        due: date | None = None
        assignee: str | None = None
        priority = Priority.P2

        m = _DUE_RE.search(title)
        if m:
            due = _parse_day(m.group(1))
            if due is not None:
                title = title[: m.start()] + title[m.end():]

        m = _ASSIGNEE_RE.search(title)
        if m:
            assignee = m.group(1).strip() or None
            title = title[: m.start()] + title[m.end():]

        m = _PRIORITY_RE.search(title)
        if m:
            priority = Priority.from_label(m.group(1))
            title = title[: m.start()] + title[m.end():]

        title = " ".join(title.split())
        out.append(
            SubtaskRecord(
                id=f"legacy-{len(out)}",
                title=title,
                priority=priority,
                due_date=due,
                assigned_to=assignee,
                legacy=True,
            )
        )
    return out


def with_default_due(items: list[SubtaskRecord], *, today: date, default_due_days: int = 7) -> list[SubtaskRecord]:
    """Display copy: undated items get `today + default_due_days`. Never written back."""
    default_due = today + timedelta(days=default_due_days)
    return [i if i.due_date is not None else replace(i, due_date=default_due) for i in items]


def format_legacy_subtask(item: SubtaskRecord) -> str:
    """`Title [Due: yyyy-MM-dd] [Assignee: Name] [P: Label]`; P2 carries no tag."""
    parts = [item.title.strip()]
    if item.due_date is not None:
        parts.append(f"[Due: {item.due_date.isoformat()}]")
    if item.assigned_to:
        parts.append(f"[Assignee: {item.assigned_to}]")
    if item.priority != Priority.P2:
        parts.append(f"[P: {item.priority.label}]")
    return " ".join(parts)


def format_legacy_subtasks(items: list[SubtaskRecord]) -> str | None:
    lines = [format_legacy_subtask(i) for i in items if i.title.strip()]
    return "\n".join(lines) if lines else None


def normalize_source(
    source: SubtaskSource,
    *,
    today: date,
    default_due_days: int = 7,
) -> list[SubtaskRecord]:
    if isinstance(source, LegacySubtasks):
        return with_default_due(
            parse_legacy_subtasks(source.raw_text), today=today, default_due_days=default_due_days
        )
    return list(source.items)


def combine_subtasks(
    structured: list[SubtaskRecord],
    legacy_text: str | None,
    *,
    today: date,
    default_due_days: int = 7,
) -> list[SubtaskRecord]:
    """Structured items first (by store order), then the legacy lines with display defaults."""
    sources: list[SubtaskSource] = [
        StructuredSubtasks(items=tuple(structured)),
        LegacySubtasks(raw_text=legacy_text or ""),
    ]
    out: list[SubtaskRecord] = []
    for source in sources:
        out.extend(normalize_source(source, today=today, default_due_days=default_due_days))
    return out
