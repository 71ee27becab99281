"""Conversation manager: user input, attachments, recording, and AI replies."""

from __future__ import annotations

import logging
from typing import List, Optional

from ..engine.prompts import FALLBACK_REPLY
from .media import MediaHandle, MediaRegistry, MediaSource, load_source
from .orchestrator import ResponseOrchestrator
from .recorder import AUDIO_CONTENT_TYPE, AudioCapture, RecordingError
from .state import (
    LOADING_TEXT,
    ChatState,
    Conversation,
    ConversationSummary,
    MediaReference,
    MediaType,
    Message,
)

logger = logging.getLogger(__name__)


class ConversationManager:
    """
    Drives one chat session on top of ChatState.

    While a reply is in flight for a conversation, further submissions and
    attachments to that conversation are ignored. Replies always land in the
    conversation they were submitted from.
    """

    def __init__(
        self,
        orchestrator: ResponseOrchestrator,
        *,
        media: MediaRegistry | None = None,
        recorder: AudioCapture | None = None,
        state: ChatState | None = None,
    ):
        self.orchestrator = orchestrator
        self.media = media if media is not None else MediaRegistry()
        self.recorder = recorder
        self.state = state if state is not None else ChatState.initial()
        self._responding: set[int] = set()
        self._recording_into: Optional[int] = None

    # Views

    @property
    def active_conversation(self) -> Conversation:
        return self.state.active

    @property
    def messages(self) -> List[Message]:
        return list(self.state.active.messages)

    @property
    def conversations(self) -> List[ConversationSummary]:
        return self.state.summaries()

    @property
    def is_responding(self) -> bool:
        return self.state.active_id in self._responding

    @property
    def is_recording(self) -> bool:
        return self._recording_into is not None

    def can_submit(self, text: str) -> bool:
        if self.is_responding:
            return False
        return bool(text.strip()) or self.is_recording

    def media_for(self, message: Message) -> Optional[MediaHandle]:
        """Handle (size, content type, name) behind a message's attachment, for playback or download."""
        if message.media is None:
            return None
        return self.media.handle(message.media.url)

    # Transitions

    def create_conversation(self) -> Conversation:
        conversation = self.state.create_conversation()
        logger.debug("Created conversation %s", conversation.id)
        return conversation

    def select_conversation(self, conversation_id: int) -> Conversation:
        return self.state.set_active(conversation_id)

    async def submit_user_message(self, text: str) -> Optional[Message]:
        """Append the user's text, wait for the assistant, and return its reply message."""
        if not text.strip():
            return None
        conversation_id = self.state.active_id
        if conversation_id in self._responding:
            logger.debug("Reply already in flight for conversation %s; ignoring submit", conversation_id)
            return None

        self.state.append_message(conversation_id, sender="user", text=text)
        history = self.state.history(conversation_id)
        placeholder = self.state.append_message(
            conversation_id, sender="ai", text=LOADING_TEXT, is_loading=True
        )
        self._responding.add(conversation_id)
        try:
            reply = await self.orchestrator.get_ai_response(history)
        except BaseException:
            # Includes cancellation; the placeholder must not outlive the exchange.
            self.state.replace_message(conversation_id, placeholder.id, text=FALLBACK_REPLY)
            raise
        finally:
            self._responding.discard(conversation_id)
        return self.state.replace_message(conversation_id, placeholder.id, text=reply)

    def attach_media(
        self,
        source: MediaSource,
        media_type: MediaType,
        *,
        file_name: str | None = None,
        content_type: str | None = None,
    ) -> Optional[Message]:
        if self.is_responding:
            return None
        data, source_name = load_source(source)
        file_name = file_name or source_name
        handle = self.media.acquire(data, content_type=content_type, file_name=file_name)
        reference = MediaReference(
            type=media_type,
            url=handle.locator,
            file_name=file_name if media_type == "file" else None,
        )
        return self.state.append_message(self.state.active_id, sender="user", media=reference)

    def start_recording(self) -> bool:
        if self.recorder is None or self.is_recording or self.is_responding:
            return False
        try:
            self.recorder.start()
        except RecordingError as e:
            logger.error("Error accessing microphone: %s", e)
            return False
        self._recording_into = self.state.active_id
        return True

    def stop_recording(self) -> Optional[Message]:
        if self.recorder is None or self._recording_into is None:
            return None
        conversation_id, self._recording_into = self._recording_into, None
        try:
            audio = self.recorder.stop()
        except RecordingError as e:
            logger.error("Error finishing recording: %s", e)
            return None
        handle = self.media.acquire(audio, content_type=AUDIO_CONTENT_TYPE)
        reference = MediaReference(type="audio", url=handle.locator)
        return self.state.append_message(conversation_id, sender="user", media=reference)

    # Lifetime

    def close(self) -> None:
        if self.is_recording:
            self.stop_recording()
        self.media.release_all()

    def __enter__(self) -> "ConversationManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
