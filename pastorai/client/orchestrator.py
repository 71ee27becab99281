"""Client side of the /api/chat exchange."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import httpx

from .state import Message
from .. import config
from ..app.schemas.chat import ChatMessage
from ..engine.prompts import FALLBACK_REPLY

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"


class ResponseOrchestrator:
    """
    Sends a conversation history to the proxy endpoint and returns the reply.

    Exactly one attempt is made per call. Any failure yields FALLBACK_REPLY.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or config.PASTORAI_API_URL).rstrip("/")
        self._owns_client = client is None
        if client is None:
            if timeout is None:
                timeout = config.client_timeout_seconds()
            client = httpx.AsyncClient(timeout=timeout)
        self._client = client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResponseOrchestrator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @staticmethod
    def build_payload(messages: Iterable[Message]) -> dict:
        return {
            "messages": [
                ChatMessage(id=m.id, sender=m.sender, text=m.text).model_dump(exclude_none=True)
                for m in messages
            ]
        }

    async def get_ai_response(self, messages: Iterable[Message]) -> str:
        payload = self.build_payload(messages)
        try:
            resp = await self._client.post(f"{self.base_url}{CHAT_PATH}", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            logger.error("Error getting AI response: %s", e)
            return FALLBACK_REPLY

        reply: Optional[object] = data.get("message") if isinstance(data, dict) else None
        if not isinstance(reply, str):
            logger.error("Error getting AI response: malformed body %r", data)
            return FALLBACK_REPLY
        return reply
