# tests/test_summary.py

from __future__ import annotations

from datetime import date

from taskboard.llm.offline import OfflineLLMClient
from taskboard.reports.summary import NO_SUMMARY, SUMMARY_SYSTEM_PROMPT, build_fallback_summary, generate_task_summary
from taskboard.tasks.task_models import TaskStatus

from .fakes import FailingLLMClient, FakeLLMClient, make_task

TODAY = date(2024, 5, 6)


def _tasks():
    return [
        make_task("Pay invoices", TODAY),
        make_task("Audit", date(2024, 5, 1), status=TaskStatus.IN_PROGRESS, progress=40),
        make_task("Archive mail", date(2024, 5, 2), status=TaskStatus.COMPLETED),
    ]


def test_fallback_summary_is_deterministic() -> None:
    text = build_fallback_summary(_tasks(), today=TODAY)
    assert text.splitlines() == [
        "3 task(s): 1 to do, 1 in progress, 1 done (33% complete), 1 overdue.",
        "Due today: Pay invoices.",
        "Overdue: Audit.",
    ]
    assert build_fallback_summary([], today=TODAY) == "No tasks to report."


def test_llm_summary_is_used_when_available() -> None:
    llm = FakeLLMClient("  Two tasks are moving; Audit is late.  ")
    out = generate_task_summary(llm, _tasks(), today=TODAY)

    assert out == "Two tasks are moving; Audit is late."
    [(messages, system_prompt)] = llm.calls
    assert system_prompt == SUMMARY_SYSTEM_PROMPT
    assert "Audit | In Progress | Medium | 2024-05-01" in messages[0]["content"]


def test_llm_failure_falls_back() -> None:
    out = generate_task_summary(FailingLLMClient(), _tasks(), today=TODAY)
    assert out == build_fallback_summary(_tasks(), today=TODAY)


def test_offline_client_triggers_fallback() -> None:
    out = generate_task_summary(OfflineLLMClient(), _tasks(), today=TODAY)
    assert out.startswith("3 task(s)")


def test_offline_client_only_answers_with_the_sentinel() -> None:
    chunks = list(OfflineLLMClient().stream_chat([{"role": "user", "content": "hello"}], "any prompt"))
    assert chunks == [NO_SUMMARY]


def test_long_answers_are_truncated() -> None:
    out = generate_task_summary(FakeLLMClient("x" * 50), _tasks(), today=TODAY, max_chars=10)
    assert out == "x" * 10 + "…"
