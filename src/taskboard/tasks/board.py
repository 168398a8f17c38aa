# src/taskboard/tasks/board.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import date

from ..core.errors import StoreError
from ..core.ports import PartitionStore, Subscription
from .dedup import DEFAULT_DENYLIST, dedupe, merge_with_fallback
from .filter_pipeline import TaskCounts, TaskFilters, expired_recurring, run_pipeline, summarize_counts
from .lifecycle import LifecycleEngine
from .status_catalog import StatusCatalog
from .task_api import run_hygiene_sweep
from .task_models import OwnerFilter, Partition, TaskRecord

logger = logging.getLogger(__name__)


class TaskBoard:
    """
    Per-screen controller: owns the in-memory task set of one view.

    Each partition subscription replaces that partition's snapshot on delivery
    (last write wins for the same record); the visible list is recomputed from
    the snapshots on demand. A failed subscription leaves an empty snapshot.
    Nothing here is shared between boards.
    """

    def __init__(
        self,
        store: PartitionStore,
        engine: LifecycleEngine,
        catalog: StatusCatalog,
        owner: OwnerFilter,
        *,
        denylist: frozenset[str] = DEFAULT_DENYLIST,
        clock: Callable[[], date] = date.today,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.catalog = catalog
        self.owner = owner
        self.denylist = denylist
        self._clock = clock
        self._on_change = on_change

        self._lock = threading.Lock()
        self._snapshots: dict[Partition, list[TaskRecord]] = {p: [] for p in Partition}
        self._fallback: list[TaskRecord] = []
        self._subs: list[Subscription] = []
        self.filters = TaskFilters()

    # ---- lifecycle ----

    def start(self, *, sweep: bool = True) -> None:
        if self._subs:
            return
        if sweep:
            run_hygiene_sweep(self.store, self.owner, self.denylist)
        self._refresh_fallback()
        for partition in Partition:
            self._subs.append(
                self.store.subscribe(
                    partition,
                    self.owner,
                    lambda records, p=partition: self._on_partition(p, records),
                    on_error=lambda err, p=partition: self._on_partition_error(p, err),
                )
            )
        self._subs.append(
            self.store.subscribe_status_catalog(self._on_catalog, on_error=self._on_catalog_error)
        )
        logger.info("TaskBoard started owner=%s", self.owner.email or self.owner.uid)

    def stop(self) -> None:
        subs, self._subs = self._subs, []
        for sub in subs:
            sub.cancel()
        logger.debug("TaskBoard stopped (%d subscriptions)", len(subs))

    # ---- deliveries ----

    def _on_partition(self, partition: Partition, records: list[TaskRecord]) -> None:
        with self._lock:
            self._snapshots[partition] = list(records)
        if partition == Partition.ADMIN and not records:
            self._refresh_fallback()
        self._changed()

    def _on_partition_error(self, partition: Partition, err: Exception) -> None:
        logger.warning("Partition %s unavailable: %s", partition.value, err)
        with self._lock:
            self._snapshots[partition] = []
        self._changed()

    def _on_catalog(self, snapshot: dict) -> None:
        self.catalog.apply_snapshot(snapshot)
        self._changed()

    def _on_catalog_error(self, err: Exception) -> None:
        self.catalog.mark_unavailable(err)
        self._changed()

    def _refresh_fallback(self) -> None:
        try:
            records = self.store.fetch_assigned(self.owner)
        except StoreError as e:
            logger.warning("Assigned-to-me query failed: %s", e)
            records = []
        with self._lock:
            self._fallback = records

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            logger.exception("TaskBoard on_change callback crashed")

    # ---- views ----

    def today(self) -> date:
        return self._clock()

    def all_tasks(self) -> list[TaskRecord]:
        """Active tasks, admin/shared first, de-duplicated."""
        with self._lock:
            admin = list(self._snapshots[Partition.ADMIN])
            own = list(self._snapshots[Partition.SELF])
            fallback = list(self._fallback)
        return merge_with_fallback(admin, own, fallback, denylist=self.denylist)

    def view(self, filters: TaskFilters | None = None) -> list[TaskRecord]:
        return run_pipeline(
            self.all_tasks(),
            filters or self.filters,
            today=self._clock(),
            catalog=self.catalog,
            denylist=self.denylist,
        )

    def counts(self, filters: TaskFilters | None = None) -> TaskCounts:
        return summarize_counts(self.view(filters), today=self._clock())

    def archived_tasks(self) -> list[TaskRecord]:
        with self._lock:
            archived = list(self._snapshots[Partition.ARCHIVED])
        return dedupe(archived, denylist=self.denylist)

    def expired_tasks(self) -> list[TaskRecord]:
        return expired_recurring(self.all_tasks(), today=self._clock(), denylist=self.denylist)

    def find(self, title: str, *, archived: bool = False) -> TaskRecord | None:
        """First visible record with this title (case-insensitive)."""
        wanted = (title or "").strip().lower()
        pool = self.archived_tasks() if archived else self.all_tasks()
        for task in pool:
            if task.title.strip().lower() == wanted:
                return task
        return None
