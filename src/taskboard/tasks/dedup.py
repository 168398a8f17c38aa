# src/taskboard/tasks/dedup.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from .task_models import TaskRecord, title_key

logger = logging.getLogger(__name__)

# Known test/junk titles hidden from every list and removed by the hygiene sweep.
DEFAULT_DENYLIST: frozenset[str] = frozenset({"m", "mmm", "f", "cccccc", "ccccccc"})


def build_denylist(titles: Iterable[str] | None) -> frozenset[str]:
    if titles is None:
        return DEFAULT_DENYLIST
    return frozenset(title_key(t) for t in titles if title_key(t))


def is_denylisted(record: TaskRecord, denylist: frozenset[str] = DEFAULT_DENYLIST) -> bool:
    return title_key(record.title) in denylist


def drop_denylisted(
    records: Iterable[TaskRecord], denylist: frozenset[str] = DEFAULT_DENYLIST
) -> list[TaskRecord]:
    return [r for r in records if not is_denylisted(r, denylist)]


def dedupe(
    *streams: Iterable[TaskRecord],
    denylist: frozenset[str] = DEFAULT_DENYLIST,
) -> list[TaskRecord]:
    """
    Collapse records representing the same logical task.

    Streams are consumed in precedence order; the first record seen for a
    (title, due day) key wins and later ones are discarded. Output keeps arrival order.
    """
    seen: set[tuple[str, date]] = set()
    out: list[TaskRecord] = []
    dropped = 0
    for stream in streams:
        for rec in stream:
            if is_denylisted(rec, denylist):
                continue
            nk = rec.key.natural
            if nk in seen:
                dropped += 1
                continue
            seen.add(nk)
            out.append(rec)
    if dropped:
        logger.debug("dedupe: dropped %d duplicate record(s)", dropped)
    return out


def merge_with_fallback(
    primary: list[TaskRecord],
    secondary: list[TaskRecord],
    fallback: list[TaskRecord],
    *,
    denylist: frozenset[str] = DEFAULT_DENYLIST,
) -> list[TaskRecord]:
    """
    Primary before secondary; the fallback stream is only consulted when the
    primary stream is empty, and even then never overrides an earlier record.
    """
    streams: list[Iterable[TaskRecord]] = [primary, secondary]
    if not primary:
        streams.append(fallback)
    return dedupe(*streams, denylist=denylist)
