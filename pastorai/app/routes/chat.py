import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..schemas.chat import ChatError, ChatRequest, ChatResponse
from ... import config
from ...engine import completions
from ...engine.prompts import build_completion_messages
from ...utils.redact import redact_secrets


logger = logging.getLogger(__name__)

router = APIRouter()

CHAT_ERROR_TEXT = "Failed to get response from AI"


class UpstreamError(Exception):
    pass


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={500: {"model": ChatError}},
)
async def chat(request: Request):
    """
    Forward the conversation to the completion API under the PastorAI persona.
    Returns the single reply text, or a generic error for any failure.
    """
    try:
        body = json.loads(await request.body())
        chat_request = ChatRequest.model_validate(body)
        messages = build_completion_messages(chat_request.messages)

        result = await completions.request_completion(
            messages,
            model=config.CHAT_MODEL,
            temperature=config.CHAT_TEMPERATURE,
            max_tokens=config.CHAT_MAX_TOKENS,
        )
        if not result.ok:
            raise UpstreamError(result.error_text or "Unknown completion error")

        logger.info(
            "Completion ok model=%s latency_ms=%s usage=%s",
            result.model,
            result.latency_ms,
            result.usage,
        )
        return ChatResponse(message=result.content or "")

    except Exception as e:
        logger.error("Completion API error: %s", redact_secrets(f"{type(e).__name__}: {e}"))
        return JSONResponse(status_code=500, content=ChatError(error=CHAT_ERROR_TEXT).model_dump())
