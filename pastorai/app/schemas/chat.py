from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ChatMessage(BaseModel):
    """One conversation turn as the client sends it."""

    model_config = ConfigDict(extra="allow")

    sender: str
    text: Optional[str] = None


class ChatRequest(BaseModel):
    """Request body for POST /api/chat.

    Entries are kept as plain objects; only the outer shape is checked.
    """

    messages: List[Dict[str, Any]]


class ChatResponse(BaseModel):
    message: str


class ChatError(BaseModel):
    error: str
