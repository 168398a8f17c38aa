# src/taskboard/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Normalized task status.

    Values are the canonical display labels persisted in the store.
    """

    NOT_STARTED = "TODO"
    IN_PROGRESS = "In Progress"
    STUCK = "Stuck"
    WAITING_FOR = "Waiting For"
    ON_HOLD_BY_CLIENT = "Hold by Client"
    NEED_HELP = "Need Help"
    COMPLETED = "Done"
    CANCELED = "Canceled"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        try:
            return cls(raw)
        except ValueError:
            return cls.NOT_STARTED


# Fixed display order used for status buckets and menus.
STATUS_DISPLAY_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.NOT_STARTED,
    TaskStatus.IN_PROGRESS,
    TaskStatus.STUCK,
    TaskStatus.WAITING_FOR,
    TaskStatus.ON_HOLD_BY_CLIENT,
    TaskStatus.NEED_HELP,
    TaskStatus.COMPLETED,
    TaskStatus.CANCELED,
)


class Priority(StrEnum):
    """
    Three fixed priority levels.

    Canonical display mapping: P1 -> High, P2 -> Medium, P3 -> Low.
    """

    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def label(self) -> str:
        return _PRIORITY_LABELS[self]

    @classmethod
    def from_label(cls, raw: str | None) -> Priority:
        """Accept P1/P2/P3 or High/Medium/Low (any case); unknown -> P2."""
        s = (raw or "").strip().upper()
        if s in ("P1", "HIGH", "URGENT"):
            return cls.P1
        if s in ("P3", "LOW"):
            return cls.P3
        return cls.P2


_PRIORITY_LABELS = {Priority.P1: "High", Priority.P2: "Medium", Priority.P3: "Low"}


class TaskOrigin(StrEnum):
    SELF = "Self"
    ADMIN_SHARED = "Admin"
    CLIENT_ASSIGNED = "Client Assigned"

    @classmethod
    def from_db(cls, raw: str | None, default: TaskOrigin | None = None) -> TaskOrigin:
        s = (raw or "").strip().lower().replace("-", "").replace(" ", "")
        if s in ("self", "selftask"):
            return cls.SELF
        if s in ("admin", "admintask"):
            return cls.ADMIN_SHARED
        if s in ("client", "clientassigned"):
            return cls.CLIENT_ASSIGNED
        return default or cls.ADMIN_SHARED


class Partition(StrEnum):
    """Storage buckets. Client-assigned tasks live in the admin/shared partition."""

    ADMIN = "tasks"
    SELF = "selfTasks"
    ARCHIVED = "archivedTasks"

    @classmethod
    def for_origin(cls, origin: TaskOrigin) -> Partition:
        return cls.SELF if origin == TaskOrigin.SELF else cls.ADMIN


class RecurringPattern(StrEnum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    BIWEEKLY = "Bi-weekly"
    MONTHLY = "Monthly"
    CUSTOM = "Custom"

    @classmethod
    def from_db(cls, raw: str | None) -> RecurringPattern | None:
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


def calendar_day(value: datetime | date) -> date:
    """Calendar day in the local reference time zone (time-of-day discarded)."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def title_key(title: str) -> str:
    return (title or "").strip().lower()


@dataclass(slots=True, frozen=True)
class IdentityKey:
    """
    Natural key of a task: (normalized title, due calendar day, partition).

    There is no stable id shared across partitions; two distinct tasks with the same
    title and due day collapse into one. Callers should only build keys through
    `IdentityKey.of(...)` so the key can later be swapped for a real id.
    """

    title: str
    due_day: date
    partition: Partition

    @classmethod
    def of(cls, title: str, due: datetime | date, partition: Partition) -> IdentityKey:
        return cls(title=title_key(title), due_day=calendar_day(due), partition=partition)

    @property
    def natural(self) -> tuple[str, date]:
        """Partition-independent part used for de-duplication."""
        return (self.title, self.due_day)

    def __str__(self) -> str:
        return f"{self.title}|{self.due_day.isoformat()}|{self.partition.value}"


@dataclass(slots=True, frozen=True)
class OwnerFilter:
    """
    Session identity used to scope queries (uid and/or email).

    An empty filter matches nothing.
    """

    uid: str | None = None
    email: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.uid or "").strip() and not (self.email or "").strip()

    def matches(self, record: TaskRecord) -> bool:
        uid = (self.uid or "").strip()
        email = (self.email or "").strip().lower()
        if uid and uid in (record.owner_uid, record.created_by):
            return True
        if email:
            candidates = (record.assigned_to, record.created_by or "")
            if any(c.strip().lower() == email for c in candidates):
                return True
        return False


@dataclass(slots=True, frozen=True)
class ProjectRef:
    id: str | None
    name: str

    def matches(self, wanted: str) -> bool:
        w = (wanted or "").strip()
        if not w:
            return False
        if self.id and self.id == w:
            return True
        return self.name.strip().lower() == w.lower()


@dataclass(slots=True, frozen=True)
class Comment:
    user: str
    message: str
    timestamp: datetime


@dataclass(slots=True, frozen=True)
class ActivityEntry:
    id: str
    user: str
    action: str  # e.g. "changed status to", "commented", "created this task"
    message: str | None
    timestamp: datetime
    type: str = "history"  # "comment", "history", "creation", "status"


@dataclass(slots=True)
class SubtaskRecord:
    id: str
    title: str
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: Priority = Priority.P2
    due_date: date | None = None
    assigned_to: str | None = None
    legacy: bool = False  # parsed from the free-text blob; not editable by id


@dataclass(slots=True)
class TaskRecord:
    title: str
    due_date: datetime
    start_date: datetime
    origin: TaskOrigin = TaskOrigin.SELF
    description: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED
    status_label: str = ""
    priority: Priority = Priority.P2
    assigned_to: str = ""
    project: ProjectRef | None = None

    is_recurring: bool = False
    recurring_pattern: RecurringPattern | None = None
    recurring_days: int | None = None
    recurring_end_date: datetime | None = None

    subtask: str | None = None
    subtask_status: TaskStatus | None = None
    progress: int = 0
    comments: list[Comment] = field(default_factory=list)
    archived: bool = False

    # Ownership (used to scope queries; never part of identity)
    owner_uid: str | None = None
    created_by: str | None = None
    partition: Partition | None = None

    def __post_init__(self) -> None:
        if not self.status_label:
            self.status_label = self.status.value
        if self.partition is None:
            self.partition = Partition.ARCHIVED if self.archived else Partition.for_origin(self.origin)

    @property
    def key(self) -> IdentityKey:
        assert self.partition is not None
        return IdentityKey.of(self.title, self.due_date, self.partition)

    @property
    def due_day(self) -> date:
        return calendar_day(self.due_date)

    @property
    def display_label(self) -> str:
        """Verbatim stored label, falling back to the enum label."""
        return self.status_label.strip() or self.status.value
