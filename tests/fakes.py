# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time
from typing import Any

from taskboard.core.errors import StoreError
from taskboard.core.ports import ChatMessage
from taskboard.tasks.task_models import TaskOrigin, TaskRecord

OWNER_UID = "u-1"
OWNER_EMAIL = "me@example.com"


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Yields a predefined text as a single chunk
    """

    def __init__(self, next_text: str = "ok") -> None:
        self.next_text = next_text
        self.calls: list[tuple[list[ChatMessage], str]] = []

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        self.calls.append((messages, system_prompt))
        yield self.next_text


class FailingLLMClient:
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        raise RuntimeError("All LLM models failed.")
        yield ""  # pragma: no cover


class FailingStore:
    """
    Wraps a real store; the named methods raise StoreError instead of writing.
    Everything else (reads, subscriptions) goes to the wrapped store.
    """

    def __init__(self, inner: Any, *fail_on: str) -> None:
        self._inner = inner
        self._fail_on = set(fail_on)
        self.attempts: list[str] = []

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._inner, name)
        if name not in self._fail_on:
            return attr

        def boom(*args: Any, **kwargs: Any) -> int:
            self.attempts.append(name)
            raise StoreError("database is locked")

        return boom


def make_task(
    title: str,
    due: date,
    *,
    origin: TaskOrigin = TaskOrigin.SELF,
    start: date | None = None,
    **kwargs: Any,
) -> TaskRecord:
    """TaskRecord owned by the test user, due at 09:00 local time."""
    kwargs.setdefault("owner_uid", OWNER_UID)
    kwargs.setdefault("assigned_to", OWNER_EMAIL)
    kwargs.setdefault("created_by", OWNER_EMAIL)
    return TaskRecord(
        title=title,
        due_date=datetime.combine(due, time(9, 0)),
        start_date=datetime.combine(start or due, time(9, 0)),
        origin=origin,
        **kwargs,
    )
