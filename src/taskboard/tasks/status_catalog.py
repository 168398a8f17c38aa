# src/taskboard/tasks/status_catalog.py

"""
Status catalog.

Holds the configurable status labels (+ colors) and the mapping from a free-form label
to the normalized TaskStatus. The label list is refreshed from a live subscription;
when no configuration is available a minimal built-in set is used so pickers are never empty.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .task_models import TaskStatus

logger = logging.getLogger(__name__)

RESERVED_ALL = "All"
RESERVED_TODAY = "Today's Task"
RESERVED_RECURRING = "Recurring Task"
RESERVED_LABELS: tuple[str, ...] = (RESERVED_ALL, RESERVED_TODAY, RESERVED_RECURRING)

FALLBACK_LABELS: tuple[str, ...] = (
    TaskStatus.NOT_STARTED.value,
    TaskStatus.IN_PROGRESS.value,
    TaskStatus.COMPLETED.value,
)

# Menu order; anything else is appended alphabetically.
MENU_ORDER: tuple[str, ...] = (
    RESERVED_TODAY,
    "TODO",
    "In Progress",
    "Stuck",
    "Waiting For",
    "Hold by Client",
    "Need Help",
    "Done",
    RESERVED_RECURRING,
    "Canceled",
)

DEFAULT_STATUS_COLORS: dict[TaskStatus, str] = {
    TaskStatus.COMPLETED: "#34C759",
    TaskStatus.IN_PROGRESS: "#007AFF",
    TaskStatus.NOT_STARTED: "#8E8E93",
    TaskStatus.STUCK: "#FF9500",
    TaskStatus.WAITING_FOR: "#AF52DE",
    TaskStatus.ON_HOLD_BY_CLIENT: "#FF9500",
    TaskStatus.NEED_HELP: "#FF3B30",
    TaskStatus.CANCELED: "#8E8E93",
}

_CANON_RE = re.compile(r"[\s\-_.'’:/]+")


def canon_label(label: str | None) -> str:
    """Case/whitespace/punctuation-insensitive form of a label."""
    return _CANON_RE.sub("", (label or "").strip().lower())


_SYNONYMS: dict[str, TaskStatus] = {}


def _register(status: TaskStatus, *labels: str) -> None:
    for lbl in labels:
        _SYNONYMS[canon_label(lbl)] = status


_register(TaskStatus.NOT_STARTED, "TODO", "to do", "to-do", "not started")
_register(TaskStatus.IN_PROGRESS, "in progress", "in-progress", "inprogress")
_register(TaskStatus.STUCK, "stuck")
_register(TaskStatus.WAITING_FOR, "waiting for", "waiting for client", "waiting")
_register(
    TaskStatus.ON_HOLD_BY_CLIENT,
    "hold by client",
    "on hold by client",
    "hold",
    "hold client",
)
_register(TaskStatus.NEED_HELP, "need help")
_register(TaskStatus.COMPLETED, "done", "completed", "complete")
_register(TaskStatus.CANCELED, "canceled", "cancelled")

_RESERVED_CANON: dict[str, str] = {
    canon_label(RESERVED_ALL): RESERVED_ALL,
    canon_label("All Statuses"): RESERVED_ALL,
    canon_label(RESERVED_TODAY): RESERVED_TODAY,
    canon_label("today"): RESERVED_TODAY,
    canon_label(RESERVED_RECURRING): RESERVED_RECURRING,
}


def normalize(label: str | None) -> TaskStatus | None:
    """Map a free-form label onto TaskStatus; unknown labels -> None."""
    return _SYNONYMS.get(canon_label(label))


def reserved_label(label: str | None) -> str | None:
    """Canonical reserved meta-label for `label`, or None if it's a real status."""
    return _RESERVED_CANON.get(canon_label(label))


def is_reserved_label(label: str | None) -> bool:
    return reserved_label(label) is not None


def _menu_sort_key(label: str) -> tuple[int, str]:
    try:
        return (MENU_ORDER.index(label), label)
    except ValueError:
        return (len(MENU_ORDER), label)


class StatusCatalog:
    """
    Ordered unique status labels plus a label -> color map.

    Call `apply_snapshot()` from the store subscription; `mark_unavailable()` on
    subscription error.
    """

    def __init__(self, *, theme_default_color: str = "#8E8E93") -> None:
        self._labels: list[str] = list(FALLBACK_LABELS)
        self._colors: dict[str, str] = {}
        self._theme_default = theme_default_color
        self._available = False

    @property
    def available(self) -> bool:
        return self._available

    # ---- refresh ----

    def apply_snapshot(self, snapshot: Mapping[str, Any] | None) -> None:
        labels_raw: Iterable[Any] = (snapshot or {}).get("labels") or []
        colors_raw: Mapping[str, Any] = (snapshot or {}).get("colors") or {}

        seen: set[str] = set()
        labels: list[str] = []
        for item in labels_raw:
            lbl = str(item or "").strip()
            if not lbl or lbl in seen:
                continue
            seen.add(lbl)
            labels.append(lbl)

        if not labels:
            logger.info("Status catalog empty; using fallback labels")
            self.mark_unavailable()
            return

        labels.sort(key=_menu_sort_key)
        self._labels = labels
        self._colors = {
            str(k).strip(): str(v).strip()
            for k, v in colors_raw.items()
            if str(k).strip() and str(v or "").strip()
        }
        self._available = True
        logger.debug("Status catalog updated labels=%s", labels)

    def mark_unavailable(self, err: Exception | None = None) -> None:
        if err is not None:
            logger.warning("Status catalog unavailable (%s); using fallback labels", err)
        self._labels = list(FALLBACK_LABELS)
        self._colors = {}
        self._available = False

    # ---- queries ----

    def normalize(self, label: str | None) -> TaskStatus | None:
        return normalize(label)

    def is_reserved_label(self, label: str | None) -> bool:
        return is_reserved_label(label)

    def picker_labels(self) -> list[str]:
        """Labels for editable status pickers (reserved meta-labels excluded)."""
        out = [lbl for lbl in self._labels if not is_reserved_label(lbl)]
        return out or list(FALLBACK_LABELS)

    def filter_menu_labels(self) -> list[str]:
        """`All` first, then meta-labels and real labels in menu order."""
        labels = self.picker_labels() + [RESERVED_TODAY, RESERVED_RECURRING]
        labels.sort(key=_menu_sort_key)
        return [RESERVED_ALL, *labels]

    def match_configured(self, label: str | None) -> str | None:
        """Configured label equal to `label` up to case/punctuation, if any."""
        c = canon_label(label)
        for lbl in self._labels:
            if canon_label(lbl) == c:
                return lbl
        return None

    def color_for(self, label: str | None) -> str:
        lbl = (label or "").strip()
        if lbl in self._colors:
            return self._colors[lbl]
        configured = self.match_configured(lbl)
        if configured and configured in self._colors:
            return self._colors[configured]
        status = normalize(lbl)
        if status is not None:
            return DEFAULT_STATUS_COLORS[status]
        return self._theme_default
