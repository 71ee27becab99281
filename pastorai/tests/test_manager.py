import asyncio

import pytest

from pastorai.client.manager import ConversationManager
from pastorai.client.recorder import RecordingError
from pastorai.engine.prompts import FALLBACK_REPLY, GREETING


class _Orchestrator:
    def __init__(self, reply="Amen."):
        self.reply = reply
        self.histories = []
        self.gate: asyncio.Event | None = None

    async def get_ai_response(self, messages):
        self.histories.append(list(messages))
        if self.gate is not None:
            await self.gate.wait()
        return self.reply


class _Capture:
    def __init__(self, fail_on_start=False):
        self.fail_on_start = fail_on_start
        self.started = 0
        self.stopped = 0

    def start(self):
        if self.fail_on_start:
            raise RecordingError("Permission denied")
        self.started += 1

    def stop(self):
        self.stopped += 1
        return b"RIFF....WAVE"


@pytest.mark.asyncio
async def test_submit_grows_list_by_two_without_placeholder():
    orch = _Orchestrator()
    manager = ConversationManager(orch)  # type: ignore[arg-type]

    reply = await manager.submit_user_message("Why do we suffer?")

    messages = manager.messages
    assert len(messages) == 3
    assert [(m.sender, m.text) for m in messages[1:]] == [("user", "Why do we suffer?"), ("ai", "Amen.")]
    assert reply == messages[-1]
    assert not any(m.is_loading for m in messages)
    assert [m.id for m in messages] == [1, 2, 3]
    # History sent to the proxy excludes the placeholder.
    assert [m.text for m in orch.histories[0]] == [GREETING, "Why do we suffer?"]
    assert manager.active_conversation.last_message == "Amen."


@pytest.mark.asyncio
async def test_blank_submit_is_a_no_op():
    orch = _Orchestrator()
    manager = ConversationManager(orch)  # type: ignore[arg-type]
    before = manager.messages

    assert await manager.submit_user_message("   ") is None
    assert manager.messages == before
    assert orch.histories == []


@pytest.mark.asyncio
async def test_placeholder_shown_and_submission_blocked_while_in_flight():
    orch = _Orchestrator()
    orch.gate = asyncio.Event()
    manager = ConversationManager(orch)  # type: ignore[arg-type]

    task = asyncio.create_task(manager.submit_user_message("first"))
    await asyncio.sleep(0)
    while not orch.histories:
        await asyncio.sleep(0)

    assert manager.is_responding
    assert manager.messages[-1].is_loading
    assert manager.messages[-1].text == "..."
    assert manager.can_submit("second") is False
    assert await manager.submit_user_message("second") is None
    assert manager.attach_media(b"img", "image") is None

    orch.gate.set()
    await task
    assert not manager.is_responding
    assert [m.text for m in manager.messages] == [GREETING, "first", "Amen."]


@pytest.mark.asyncio
async def test_reply_lands_in_originating_conversation():
    orch = _Orchestrator()
    orch.gate = asyncio.Event()
    manager = ConversationManager(orch)  # type: ignore[arg-type]
    origin = manager.active_conversation.id

    task = asyncio.create_task(manager.submit_user_message("hello"))
    while not orch.histories:
        await asyncio.sleep(0)

    other = manager.create_conversation()
    assert manager.can_submit("x") is True
    orch.gate.set()
    await task

    assert manager.active_conversation.id == other.id
    assert [m.text for m in manager.messages] == [GREETING]
    assert [m.text for m in manager.state.get(origin).messages] == [GREETING, "hello", "Amen."]


@pytest.mark.asyncio
async def test_end_to_end_against_proxy(orchestrator, upstream):
    manager = ConversationManager(orchestrator)
    await manager.submit_user_message("Pray for me")
    assert manager.messages[-1].text == "Peace be with you."
    assert len(manager.messages) == 3


@pytest.mark.asyncio
async def test_end_to_end_failure_substitutes_fallback(orchestrator, upstream):
    upstream.fail()
    manager = ConversationManager(orchestrator)
    await manager.submit_user_message("Pray for me")
    assert manager.messages[-1].text == FALLBACK_REPLY
    assert manager.messages[-1].sender == "ai"
    assert not manager.is_responding


def test_new_conversation_has_single_greeting():
    manager = ConversationManager(_Orchestrator())  # type: ignore[arg-type]
    convo = manager.create_conversation()
    assert [(m.sender, m.text) for m in convo.messages] == [("ai", GREETING)]
    assert len(manager.conversations) == 2
    assert manager.conversations[-1].is_active


def test_attach_media_keeps_file_name_only_for_files(tmp_path):
    manager = ConversationManager(_Orchestrator())  # type: ignore[arg-type]
    doc = tmp_path / "sermon.txt"
    doc.write_text("In the beginning")

    file_msg = manager.attach_media(doc, "file")
    image_msg = manager.attach_media(b"\x89PNG", "image", file_name="cross.png")

    assert file_msg.media.type == "file"
    assert file_msg.media.file_name == "sermon.txt"
    assert manager.media.read(file_msg.media.url) == b"In the beginning"
    assert image_msg.media.file_name is None
    assert image_msg.text is None
    assert manager.active_conversation.last_message == "Media message"


def test_recording_produces_one_audio_message():
    capture = _Capture()
    manager = ConversationManager(_Orchestrator(), recorder=capture)  # type: ignore[arg-type]

    assert manager.start_recording() is True
    assert manager.is_recording
    assert manager.can_submit("") is True
    msg = manager.stop_recording()

    assert not manager.is_recording
    assert msg.media.type == "audio"
    assert manager.media.read(msg.media.url) == b"RIFF....WAVE"
    assert manager.messages[-1] == msg
    assert capture.stopped == 1


def test_recording_failure_leaves_state_unchanged(caplog):
    manager = ConversationManager(_Orchestrator(), recorder=_Capture(fail_on_start=True))  # type: ignore[arg-type]
    before = manager.messages

    assert manager.start_recording() is False
    assert not manager.is_recording
    assert manager.stop_recording() is None
    assert manager.messages == before
    assert "Permission denied" in caplog.text


def test_close_releases_all_media():
    with ConversationManager(_Orchestrator(), recorder=_Capture()) as manager:  # type: ignore[arg-type]
        manager.attach_media(b"a", "image")
        manager.attach_media(b"b", "video")
        manager.start_recording()
        assert len(manager.media) == 2
    assert len(manager.media) == 0
    assert not manager.is_recording


@pytest.mark.asyncio
async def test_cancelled_submit_does_not_leave_placeholder():
    orch = _Orchestrator()
    orch.gate = asyncio.Event()
    manager = ConversationManager(orch)  # type: ignore[arg-type]

    task = asyncio.create_task(manager.submit_user_message("hello"))
    while not orch.histories:
        await asyncio.sleep(0)
    assert manager.messages[-1].is_loading

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    messages = manager.messages
    assert not any(m.is_loading for m in messages)
    assert [(m.sender, m.text) for m in messages[1:]] == [("user", "hello"), ("ai", FALLBACK_REPLY)]
    assert not manager.is_responding


@pytest.mark.asyncio
async def test_orchestrator_error_replaces_placeholder_and_propagates():
    class _Exploding:
        async def get_ai_response(self, messages):
            raise RuntimeError("boom")

    manager = ConversationManager(_Exploding())  # type: ignore[arg-type]
    with pytest.raises(RuntimeError):
        await manager.submit_user_message("hello")

    assert manager.messages[-1].text == FALLBACK_REPLY
    assert not manager.messages[-1].is_loading
    assert manager.can_submit("again") is True


def test_media_for_exposes_attachment_handle():
    capture = _Capture()
    manager = ConversationManager(_Orchestrator(), recorder=capture)  # type: ignore[arg-type]

    image = manager.attach_media(b"\x89PNG", "image", file_name="cross.png")
    manager.start_recording()
    audio = manager.stop_recording()

    image_handle = manager.media_for(image)
    assert image_handle.content_type == "image/png"
    assert image_handle.size == 4
    assert image_handle.file_name == "cross.png"
    assert manager.media_for(audio).content_type == "audio/wav"
    assert manager.media_for(manager.messages[0]) is None
