# src/taskboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task core.

The core depends on Protocols instead of concrete implementations.
The storage backend and the LLM provider stay swappable, and tests can use fakes.
"""

from collections.abc import Callable, Iterable
from typing import Any, Protocol

from ..tasks.task_models import (
    ActivityEntry,
    IdentityKey,
    OwnerFilter,
    Partition,
    SubtaskRecord,
    TaskRecord,
    TaskStatus,
)

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.

StatusCatalogSnapshot = dict[str, Any]
# {"labels": [str, ...], "colors": {label: "#RRGGBB"}}

ErrorHandler = Callable[[Exception], None]


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class Subscription(Protocol):
    """Handle returned by every subscribe_* call; cancel() stops deliveries."""
    def cancel(self) -> None: ...


class PartitionStore(Protocol):
    """
    Persistent, queryable, listenable task storage partitioned by origin.

    Every record is addressed by IdentityKey, never by a backend id.
    Subscriptions deliver a full snapshot on registration and after every change.
    Write methods return the number of records touched and raise StoreError on failure.
    """

    # ---- live queries ----
    def subscribe(
            self,
            partition: Partition,
            owner: OwnerFilter,
            on_change: Callable[[list[TaskRecord]], None],
            on_error: ErrorHandler | None = None,
    ) -> Subscription: ...

    def subscribe_progress(
            self,
            key: IdentityKey,
            on_change: Callable[[int], None],
            on_error: ErrorHandler | None = None,
    ) -> Subscription: ...

    def subscribe_subtasks(
            self,
            key: IdentityKey,
            on_change: Callable[[list[SubtaskRecord]], None],
            on_error: ErrorHandler | None = None,
    ) -> Subscription: ...

    def subscribe_activity(
            self,
            key: IdentityKey,
            on_change: Callable[[list[ActivityEntry]], None],
            on_error: ErrorHandler | None = None,
    ) -> Subscription: ...

    def subscribe_status_catalog(
            self,
            on_change: Callable[[StatusCatalogSnapshot], None],
            on_error: ErrorHandler | None = None,
    ) -> Subscription: ...

    # ---- one-shot queries ----
    def fetch_assigned(self, owner: OwnerFilter) -> list[TaskRecord]: ...
    def get_record(self, key: IdentityKey) -> TaskRecord | None: ...

    # ---- writes ----
    def create_record(self, partition: Partition, record: TaskRecord) -> int: ...
    def write_status(
            self,
            key: IdentityKey,
            status: TaskStatus,
            comment: str | None = None,
            actor: str | None = None,
    ) -> int: ...
    def write_status_label(self, key: IdentityKey, label: str) -> int: ...
    def write_progress(self, key: IdentityKey, percent: int) -> int: ...
    def write_subtask_status(self, key: IdentityKey, status: TaskStatus | None) -> int: ...
    def write_legacy_subtasks(self, key: IdentityKey, text: str | None) -> int: ...
    def add_subtask(self, key: IdentityKey, subtask: SubtaskRecord) -> int: ...
    def update_subtask_status(self, key: IdentityKey, subtask_id: str, status: TaskStatus) -> int: ...
    def delete_subtask(self, key: IdentityKey, subtask_id: str) -> int: ...
    def add_comment(self, key: IdentityKey, user: str, message: str) -> int: ...
    def archive_record(self, key: IdentityKey) -> int: ...
    def unarchive_record(self, key: IdentityKey) -> int: ...
    def delete_record(self, key: IdentityKey) -> int: ...
    def delete_records_by_title(self, titles: list[str], owner: OwnerFilter) -> int: ...
