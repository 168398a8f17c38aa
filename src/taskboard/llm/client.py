# src/taskboard/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "LLM is not configured (missing API key). Set TASKBOARD_LLM_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "LLM is not configured (no models). Set TASKBOARD_LLM_MODELS in .env."
    return msg


class OpenAICompatibleLLMClient:
    """
    Streaming chat client for any OpenAI-compatible endpoint (OpenRouter by default).

    Behavior:
    - Tries models in the configured order.
    - No first content token within the first-token timeout -> next model.
    - 404 (model not available) -> model parked for an hour, next model.
    - Rate limit / network issues -> next model.
    - Auth issues -> fail fast.
    """

    def __init__(self, settings: Any) -> None:
        self._settings = settings
        self._client: OpenAI | None = None
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    def _timeout(self) -> httpx.Timeout:
        connect = float(getattr(self._settings, "llm_connect_timeout_s", 5.0))
        read = float(getattr(self._settings, "llm_read_timeout_s", 25.0))
        return httpx.Timeout(connect=connect, read=read, write=10.0, pool=connect)

    def _get_client(self) -> OpenAI:
        """Lazily create the SDK client; automatic retries are off so fallback stays fast."""
        if self._client is not None:
            return self._client

        api_key = getattr(self._settings, "llm_api_key", None)
        base_url = getattr(self._settings, "llm_base_url", "") or ""
        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set TASKBOARD_LLM_API_KEY in your .env.")

        self._client = OpenAI(
            base_url=str(base_url),
            api_key=str(api_key),
            timeout=self._timeout(),
            max_retries=0,
        )
        return self._client

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        models = [m.strip() for m in (getattr(self._settings, "llm_models", []) or []) if m.strip()]
        headers = dict(getattr(self._settings, "extra_headers", {}) or {})
        if not models:
            raise RuntimeError("LLM model list is empty. Set TASKBOARD_LLM_MODELS in your .env.")

        client = self._get_client()
        first_token_timeout = float(getattr(self._settings, "llm_first_token_timeout_s", 20.0))
        last_error: Exception | None = None
        now = time.monotonic()

        for model in models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s (first_token_timeout=%.1fs)", model, first_token_timeout)
            t0 = time.monotonic()
            deadline = t0 + first_token_timeout
            used_any = False
            stream = None

            try:
                stream = client.chat.completions.create(
                    model=model,
                    stream=True,
                    extra_headers=headers or None,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    timeout=self._timeout(),
                )
                for chunk in stream:
                    if not used_any and time.monotonic() > deadline:
                        last_error = TimeoutError(f"First token timeout on model: {model}")
                        logger.info("LLM: first token timeout on model=%s -> trying next", model)
                        break

                    content = chunk.choices[0].delta.content if chunk.choices else None
                    if content:
                        if not used_any:
                            logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    return
                if last_error is None:
                    last_error = RuntimeError(f"Model returned no content: {model}")

            except openai.OpenAIError as e:
                last_error = e
                if _is_auth_error(e):
                    raise RuntimeError("LLM authentication failed. Check TASKBOARD_LLM_API_KEY.") from e
                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + 3600.0
                    logger.info("LLM: model not available (404): %s", model)
                elif _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                elif _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                else:
                    logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)

            finally:
                if stream is not None:
                    stream.close()

        if last_error is not None and _is_rate_limit_error(last_error):
            raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
        raise RuntimeError("All LLM models failed.") from last_error
