# src/taskboard/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage
from ..reports.summary import NO_SUMMARY


class OfflineLLMClient:
    """
    Deterministic client used when no LLM API key is configured.

    Every prompt gets the "No summary." sentinel, so the task summary falls back
    to its locally built text.
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        yield NO_SUMMARY
