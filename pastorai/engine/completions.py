"""Chat completion client for the hosted model API (single attempt, no retry)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import (
    CHAT_MAX_TOKENS,
    CHAT_MODEL,
    CHAT_TEMPERATURE,
    OPENAI_API_KEY,
    OPENAI_API_URL,
    OPENAI_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    ok: bool
    model: str
    content: Optional[str]
    usage: Optional[dict[str, Any]]
    latency_ms: Optional[int]
    status_code: Optional[int]
    error_text: Optional[str]


_CLIENT: httpx.AsyncClient | None = None


def set_client(client: httpx.AsyncClient | None) -> None:
    global _CLIENT
    _CLIENT = client


def _get_client(timeout_seconds: float) -> httpx.AsyncClient:
    global _CLIENT
    if _CLIENT is not None:
        return _CLIENT
    logger.warning("Completion httpx client not set via lifespan; creating a fallback client.")
    _CLIENT = httpx.AsyncClient(timeout=timeout_seconds)
    return _CLIENT


def _failure(model: str, latency_ms: int | None, status_code: int | None, error_text: str) -> CompletionResult:
    return CompletionResult(
        ok=False,
        model=model,
        content=None,
        usage=None,
        latency_ms=latency_ms,
        status_code=status_code,
        error_text=error_text,
    )


def _first_message(data: Any) -> Optional[dict[str, Any]]:
    """Return choices[0].message, `{}` when there are no choices, or None when the shape is wrong."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices") or [{}]
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message") or {}
    if not isinstance(message, dict):
        return None
    if not isinstance(message.get("content"), (str, type(None))):
        return None
    return message


async def request_completion(
    messages: List[Dict[str, str]],
    *,
    model: str = CHAT_MODEL,
    temperature: Optional[float] = CHAT_TEMPERATURE,
    max_tokens: Optional[int] = CHAT_MAX_TOKENS,
    timeout_seconds: Optional[float] = None,
) -> CompletionResult:
    headers = {
        "Authorization": f"Bearer {OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }

    payload: dict[str, Any] = {"model": model, "messages": messages}
    if temperature is not None:
        payload["temperature"] = temperature
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    timeout = timeout_seconds if timeout_seconds is not None else OPENAI_TIMEOUT_SECONDS
    client = _get_client(timeout)

    start = time.monotonic()
    try:
        resp = await client.post(
            OPENAI_API_URL,
            headers=headers,
            json=payload,
            timeout=timeout,
        )
    except Exception as e:
        latency_ms = int((time.monotonic() - start) * 1000)
        return _failure(model, latency_ms, None, f"Error querying model {model}: {e}")

    latency_ms = int((time.monotonic() - start) * 1000)
    status_code = resp.status_code
    if status_code >= 400:
        return _failure(model, latency_ms, status_code, f"Completion API HTTP {status_code}: {resp.text[:500]}")

    try:
        data = resp.json()
    except Exception as e:
        return _failure(model, latency_ms, status_code, f"Completion API returned invalid JSON: {e}")
    message = _first_message(data)
    if message is None:
        return _failure(model, latency_ms, status_code, "Completion API returned an unexpected payload")

    usage = data.get("usage") if isinstance(data.get("usage"), dict) else None

    return CompletionResult(
        ok=True,
        model=model,
        content=message.get("content"),
        usage=usage,
        latency_ms=latency_ms,
        status_code=status_code,
        error_text=None,
    )
