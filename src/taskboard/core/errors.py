# src/taskboard/core/errors.py

from __future__ import annotations

from dataclasses import dataclass


class TaskboardError(RuntimeError):
    """Base class for errors raised by the task core."""


class TaskValidationError(TaskboardError, ValueError):
    """Input rejected before any write was attempted."""


class CompletionCommentRequired(TaskValidationError):
    """A transition into Completed needs a non-empty comment."""


class StoreError(TaskboardError):
    """The persistence backend failed to read or write."""


@dataclass(slots=True, frozen=True)
class WriteResult:
    """
    Outcome of a fire-and-forget write.

    Optimistic in-memory state is never rolled back on failure; the next
    subscription delivery corrects it.
    """

    ok: bool
    updated: int = 0
    error: str | None = None

    @classmethod
    def success(cls, updated: int) -> WriteResult:
        return cls(ok=True, updated=updated)

    @classmethod
    def failure(cls, err: Exception | str) -> WriteResult:
        msg = err if isinstance(err, str) else friendly_write_error_message(err)
        return cls(ok=False, updated=0, error=msg)


def friendly_write_error_message(err: Exception) -> str:
    msg = str(err).strip()
    if isinstance(err, TaskValidationError):
        return msg or "Invalid input."
    if isinstance(err, StoreError):
        if "locked" in msg.lower():
            return "The task database is busy. Try again in a moment."
        return f"Could not save the change: {msg}" if msg else "Could not save the change."
    return msg or "Unexpected error while saving."
