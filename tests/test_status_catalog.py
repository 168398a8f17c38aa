# tests/test_status_catalog.py

from __future__ import annotations

import pytest

from taskboard.tasks.status_catalog import (
    DEFAULT_STATUS_COLORS,
    FALLBACK_LABELS,
    StatusCatalog,
    is_reserved_label,
    normalize,
)
from taskboard.tasks.task_models import TaskStatus


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("to do", TaskStatus.NOT_STARTED),
        ("To-Do", TaskStatus.NOT_STARTED),
        ("  TODO ", TaskStatus.NOT_STARTED),
        ("hold by client", TaskStatus.ON_HOLD_BY_CLIENT),
        ("On Hold by Client", TaskStatus.ON_HOLD_BY_CLIENT),
        ("in-progress", TaskStatus.IN_PROGRESS),
        ("Done", TaskStatus.COMPLETED),
        ("cancelled", TaskStatus.CANCELED),
        ("Blocked by Vendor", None),
        ("", None),
    ],
)
def test_normalize_synonyms(label: str, expected: TaskStatus | None) -> None:
    assert normalize(label) is expected


def test_reserved_labels_are_recognized() -> None:
    for label in ("All", "Today's Task", "today's task", "Recurring Task", "All Statuses"):
        assert is_reserved_label(label)
    assert not is_reserved_label("In Progress")


def test_unavailable_catalog_falls_back_to_minimal_set() -> None:
    cat = StatusCatalog()
    assert cat.picker_labels() == list(FALLBACK_LABELS)

    cat.apply_snapshot({"labels": ["Stuck"], "colors": {}})
    assert cat.available
    cat.mark_unavailable(RuntimeError("offline"))
    assert not cat.available
    assert cat.picker_labels() == ["TODO", "In Progress", "Done"]


def test_empty_snapshot_counts_as_unavailable() -> None:
    cat = StatusCatalog()
    cat.apply_snapshot({"labels": [], "colors": {}})
    assert not cat.available
    assert cat.picker_labels() == list(FALLBACK_LABELS)


def test_snapshot_dedups_orders_and_hides_reserved_from_picker() -> None:
    cat = StatusCatalog()
    cat.apply_snapshot(
        {
            "labels": ["Done", "Zeta Review", "TODO", "Today's Task", "Done", "Alpha QA", "In Progress"],
            "colors": {},
        }
    )
    assert cat.picker_labels() == ["TODO", "In Progress", "Done", "Alpha QA", "Zeta Review"]

    menu = cat.filter_menu_labels()
    assert menu[0] == "All"
    assert menu[1] == "Today's Task"
    assert menu.index("Recurring Task") > menu.index("Done")
    assert menu.count("Today's Task") == 1


def test_color_lookup_order() -> None:
    cat = StatusCatalog(theme_default_color="#000000")
    cat.apply_snapshot({"labels": ["Stuck", "Blocked by Vendor"], "colors": {"Blocked by Vendor": "#123456"}})

    assert cat.color_for("Blocked by Vendor") == "#123456"
    assert cat.color_for("blocked by vendor") == "#123456"
    assert cat.color_for("Stuck") == DEFAULT_STATUS_COLORS[TaskStatus.STUCK]
    assert cat.color_for("Something Else") == "#000000"
