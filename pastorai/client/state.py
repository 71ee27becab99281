"""In-memory conversation state with explicit transition functions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, PrivateAttr

from ..engine.prompts import GREETING

MediaType = Literal["image", "audio", "video", "file"]
Sender = Literal["user", "ai"]

DEFAULT_TITLE = "Spiritual Guidance"
NEW_CONVERSATION_TITLE = "New Spiritual Discussion"
MEDIA_PREVIEW = "Media message"
LOADING_TEXT = "..."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatStateError(LookupError):
    pass


class ConversationNotFound(ChatStateError):
    pass


class MessageNotFound(ChatStateError):
    pass


class MediaReference(BaseModel):
    type: MediaType
    url: str
    file_name: Optional[str] = None


class Message(BaseModel):
    id: int
    sender: Sender
    text: Optional[str] = None
    media: Optional[MediaReference] = None
    is_loading: bool = False


class Conversation(BaseModel):
    id: int
    title: str
    last_message: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_utcnow)
    topic: Optional[str] = None

    _last_message_id: int = PrivateAttr(default=0)

    def next_message_id(self) -> int:
        self._last_message_id += 1
        return self._last_message_id

    def find(self, message_id: int) -> int:
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                return index
        raise MessageNotFound(f"Message {message_id} not found in conversation {self.id}")

    def touch(self) -> None:
        last = self.messages[-1] if self.messages else None
        self.last_message = (last.text or MEDIA_PREVIEW) if last else None
        self.timestamp = _utcnow()


class ConversationSummary(BaseModel):
    """Conversation row for list views."""

    id: int
    title: str
    last_message: Optional[str]
    timestamp: datetime
    is_active: bool


class ChatState:
    """
    All conversations of one session plus the active selection.

    Exactly one conversation is active at any time. Transitions only touch the
    conversation they name.
    """

    def __init__(self) -> None:
        self._conversations: list[Conversation] = []
        self._active_id: int | None = None
        self._last_conversation_id = 0

    @classmethod
    def initial(cls) -> "ChatState":
        state = cls()
        state.create_conversation(DEFAULT_TITLE)
        return state

    @property
    def conversations(self) -> List[Conversation]:
        return list(self._conversations)

    @property
    def active_id(self) -> int:
        if self._active_id is None:
            raise ConversationNotFound("No active conversation")
        return self._active_id

    @property
    def active(self) -> Conversation:
        return self.get(self.active_id)

    def get(self, conversation_id: int) -> Conversation:
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        raise ConversationNotFound(f"Conversation {conversation_id} not found")

    def create_conversation(self, title: str = NEW_CONVERSATION_TITLE, *, topic: str | None = None) -> Conversation:
        self._last_conversation_id += 1
        conversation = Conversation(id=self._last_conversation_id, title=title, topic=topic)
        self._conversations.append(conversation)
        self.append_message(conversation.id, sender="ai", text=GREETING)
        self._active_id = conversation.id
        return conversation

    def set_active(self, conversation_id: int) -> Conversation:
        conversation = self.get(conversation_id)
        self._active_id = conversation.id
        return conversation

    def append_message(
        self,
        conversation_id: int,
        *,
        sender: Sender,
        text: str | None = None,
        media: MediaReference | None = None,
        is_loading: bool = False,
    ) -> Message:
        conversation = self.get(conversation_id)
        message = Message(
            id=conversation.next_message_id(),
            sender=sender,
            text=text,
            media=media,
            is_loading=is_loading,
        )
        conversation.messages.append(message)
        conversation.touch()
        return message

    def replace_message(self, conversation_id: int, message_id: int, *, text: str) -> Message:
        """Swap a placeholder for the finished assistant reply, keeping its id and slot."""
        conversation = self.get(conversation_id)
        index = conversation.find(message_id)
        message = Message(id=message_id, sender="ai", text=text)
        conversation.messages[index] = message
        conversation.touch()
        return message

    def history(self, conversation_id: int, *, include_loading: bool = False) -> List[Message]:
        messages = self.get(conversation_id).messages
        if include_loading:
            return list(messages)
        return [m for m in messages if not m.is_loading]

    def summaries(self) -> List[ConversationSummary]:
        return [
            ConversationSummary(
                id=c.id,
                title=c.title,
                last_message=c.last_message,
                timestamp=c.timestamp,
                is_active=c.id == self._active_id,
            )
            for c in self._conversations
        ]
