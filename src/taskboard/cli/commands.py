# src/taskboard/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, time, timedelta

from ..core.errors import TaskValidationError, WriteResult
from ..core.state import AppState
from ..reports.summary import generate_task_summary
from ..tasks.filter_pipeline import SourceScope, TaskFilters, resolve_status_choice
from ..tasks.recurrence import task_is_overdue
from ..tasks.status_catalog import normalize
from ..tasks.task_api import create_task, run_hygiene_sweep
from ..tasks.task_models import Priority, TaskOrigin, TaskRecord, TaskStatus

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Arguments are shell-quoted: /label 2 "Blocked by Vendor".
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except TaskValidationError as e:
            return f"Rejected: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _pick(state: AppState, raw: str) -> TaskRecord:
    """Task by its number in the last /list output."""
    try:
        idx = int(raw)
    except ValueError:
        raise TaskValidationError(f"Expected a task number from /list, got {raw!r}.") from None
    if not 1 <= idx <= len(state.last_listing):
        raise TaskValidationError(f"No task #{idx} in the last listing. Run /list first.")
    return state.last_listing[idx - 1]


def _result_text(result: WriteResult | None, ok_text: str) -> str:
    if result is None:
        return "Nothing to write."
    if not result.ok:
        return f"Failed: {result.error}"
    if result.updated == 0:
        return "No matching task found (it may have been changed elsewhere)."
    return ok_text


def _format_task(i: int, task: TaskRecord, today: date) -> str:
    parts = [f"{i}. {task.title}", f"[{task.display_label}]", task.priority.label, f"due {task.due_day.isoformat()}"]
    if task.assigned_to:
        parts.append(f"@{task.assigned_to}")
    if task.status == TaskStatus.IN_PROGRESS:
        parts.append(f"{task.progress}%")
    if task.is_recurring:
        parts.append("(recurring)")
    if task_is_overdue(task, today):
        parts.append("OVERDUE")
    return " ".join(parts)


def _listing(state: AppState, tasks: list[TaskRecord], title: str) -> str:
    state.last_listing = list(tasks)
    if not tasks:
        return f"{title}: no tasks."
    today = state.board.today()
    lines = [f"{title} ({len(tasks)}):"]
    lines += [_format_task(i, t, today) for i, t in enumerate(tasks, start=1)]
    return "\n".join(lines)


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                 -> current filters
    /list self|assigned|all|resources|clients
    /list archived        -> archived tasks
    /list expired         -> recurring tasks whose window has passed
    """
    board = state.board
    if args:
        sub = args[0].lower()
        if sub == "archived":
            return _listing(state, board.archived_tasks(), "Archived")
        if sub == "expired":
            return _listing(state, board.expired_tasks(), "Expired recurring")
        try:
            board.filters = replace(board.filters, scope=SourceScope(sub))
        except ValueError:
            return "Usage: /list [self|assigned|all|resources|clients|archived|expired]"
    return _listing(state, board.view(), "Tasks")


def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter                       -> show filters
    /filter clear                 -> reset
    /filter key=value ...         -> search, status, project, assignee, priority, overdue=on|off
    """
    board = state.board
    if args and args[0].lower() == "clear":
        board.filters = TaskFilters(scope=board.filters.scope)
        return "Filters cleared."

    f = board.filters
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            return f"Expected key=value, got {arg!r}."
        key = key.strip().lower()
        value = value.strip()
        if key == "search":
            f = replace(f, search=value)
        elif key == "status":
            f = resolve_status_choice(f, value)
        elif key == "project":
            f = replace(f, project=value or None)
        elif key == "assignee":
            f = replace(f, assignee=value or None)
        elif key == "priority":
            f = replace(f, priority=value or None)
        elif key == "overdue":
            f = replace(f, only_overdue=value.lower() in ("1", "on", "yes", "true"))
        else:
            return f"Unknown filter {key!r}."
    board.filters = f
    return f"Filters: {f}"


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add "Title" [due=YYYY-MM-DD] [origin=self|admin|client] [priority=P1|High] [label=...] [assignee=...]"""
    if not args:
        return 'Usage: /add "Title" [due=YYYY-MM-DD] [origin=self|admin|client] [priority=..] [label=..]'

    title = args[0]
    opts = dict(a.partition("=")[::2] for a in args[1:])
    today = state.board.today()
    try:
        due_day = date.fromisoformat(opts["due"]) if opts.get("due") else today + timedelta(days=1)
    except ValueError:
        return f"Bad due date: {opts.get('due')!r} (expected YYYY-MM-DD)."

    label = (opts.get("label") or "").strip()
    status = normalize(label) if label else None
    settings = state.settings
    record = TaskRecord(
        title=title,
        due_date=datetime.combine(due_day, time(9, 0)),
        start_date=datetime.combine(today, time(9, 0)),
        origin=TaskOrigin.from_db(opts.get("origin"), TaskOrigin.SELF),
        priority=Priority.from_label(opts.get("priority")),
        status=status or TaskStatus.NOT_STARTED,
        status_label=label,
        assigned_to=opts.get("assignee") or (settings.owner_email or ""),
        owner_uid=settings.owner_uid,
        created_by=settings.owner_email or settings.owner_uid,
    )
    return _result_text(create_task(state.task_store, record), f"Created {title!r}.")


def cmd_status(state: AppState, args: list[str]) -> str:
    """/status N <status>  (Done goes through /complete)"""
    if len(args) < 2:
        return "Usage: /status N <status>"
    task = _pick(state, args[0])
    status = normalize(" ".join(args[1:]))
    if status is None:
        return f"Unknown status {' '.join(args[1:])!r}. Use /label for a custom label."
    if status == TaskStatus.COMPLETED:
        return "Completing needs a comment: /complete N <comment>"
    result = state.board.engine.transition(task, status)
    return _result_text(result, f"{task.title!r} -> {status.value}.")


def cmd_label(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /label N <label>"
    task = _pick(state, args[0])
    label = " ".join(args[1:])
    result = state.board.engine.set_status_label(task, label)
    return _result_text(result, f"{task.title!r} labelled {label!r} (status {task.status.value}).")


def cmd_progress(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /progress N <0-100>"
    task = _pick(state, args[0])
    result = state.board.engine.update_progress(task, args[1])
    if result is None:
        return f"Ignored progress input {args[1]!r}."
    return _result_text(result, f"{task.title!r} at {task.progress}%.")


def cmd_complete(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /complete N <comment>"
    task = _pick(state, args[0])
    engine = state.board.engine
    engine.request_completion(task)
    try:
        result = engine.confirm_completion(task, " ".join(args[1:]))
    except TaskValidationError:
        engine.cancel_completion(task)
        raise
    return _result_text(result, f"{task.title!r} completed.")


def cmd_archive(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /archive N"
    task = _pick(state, args[0])
    return _result_text(state.board.engine.archive(task), f"{task.title!r} archived.")


def cmd_unarchive(state: AppState, args: list[str]) -> str:
    """/unarchive N  (numbers from /list archived)"""
    if len(args) != 1:
        return "Usage: /unarchive N (after /list archived)"
    task = _pick(state, args[0])
    return _result_text(state.board.engine.unarchive(task), f"{task.title!r} restored.")


def cmd_sweep(state: AppState, args: list[str]) -> str:
    board = state.board
    n = run_hygiene_sweep(board.store, board.owner, board.denylist)
    return f"Hygiene sweep removed {n} task(s)."


def cmd_stats(state: AppState, args: list[str]) -> str:
    c = state.board.counts()
    return (
        "Stats:\n"
        f"  Total: {c.total}\n"
        f"  To do: {c.todo}\n"
        f"  In progress: {c.in_progress}\n"
        f"  Completed: {c.completed} ({c.completion_ratio:.0%})\n"
        f"  Overdue: {c.overdue}"
    )


def cmd_summary(state: AppState, args: list[str]) -> str:
    return generate_task_summary(state.llm, state.board.view(), today=state.board.today())


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List tasks: /list [self|assigned|all|resources|clients|archived|expired].", aliases=["ls"])
registry.register("filter", cmd_filter, help_text="Set filters: /filter key=value ... | /filter clear.")
registry.register("add", cmd_add, help_text='Create a task: /add "Title" [due=..] [origin=..] [priority=..] [label=..].')
registry.register("status", cmd_status, help_text="Change status: /status N <status>.")
registry.register("label", cmd_label, help_text="Set a free-form status label: /label N <label>.")
registry.register("progress", cmd_progress, help_text="Set progress of an In Progress task: /progress N <0-100>.")
registry.register("complete", cmd_complete, help_text="Complete with a comment: /complete N <comment>.", aliases=["done"])
registry.register("archive", cmd_archive, help_text="Archive a task: /archive N.")
registry.register("unarchive", cmd_unarchive, help_text="Restore an archived task: /unarchive N.")
registry.register("sweep", cmd_sweep, help_text="Delete known junk/test tasks.")
registry.register("stats", cmd_stats, help_text="Show counts for the current view.")
registry.register("summary", cmd_summary, help_text="Summarize the current view (LLM, with offline fallback).")
