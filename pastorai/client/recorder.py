"""Microphone capture sessions that package a take as WAV bytes."""

from __future__ import annotations

import io
import logging
import wave
from typing import Any, List, Optional, Protocol

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE = "audio/wav"


class RecordingError(RuntimeError):
    pass


class AudioCapture(Protocol):
    def start(self) -> None: ...

    def stop(self) -> bytes: ...


def frames_to_wav(frames: List[Any], sample_rate: int, channels: int) -> bytes:
    """Convert float32 frames in [-1, 1] to 16-bit PCM WAV bytes."""
    import numpy as np

    if frames:
        audio = np.concatenate(frames, axis=0)
    else:
        audio = np.zeros((0, channels), dtype=np.float32)
    pcm = (np.clip(audio, -1.0, 1.0) * 32767).astype(np.int16)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


class SoundDeviceCapture:
    """Records from the default input device until stopped."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1):
        self.sample_rate = sample_rate
        self.channels = channels
        self._frames: List[Any] = []
        self._stream: Optional[Any] = None

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning("Audio input status: %s", status)
        self._frames.append(indata.copy())

    def start(self) -> None:
        if self._stream is not None:
            raise RecordingError("Recording already in progress")
        self._frames = []
        # sounddevice loads PortAudio at import time
        try:
            import sounddevice as sd

            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            raise RecordingError(f"Error accessing microphone: {e}") from e
        self._stream = stream
        logger.info("Recording started: %sHz, %sch", self.sample_rate, self.channels)

    def stop(self) -> bytes:
        if self._stream is None:
            raise RecordingError("No recording in progress")
        stream, self._stream = self._stream, None
        try:
            stream.stop()
        finally:
            stream.close()
        frames, self._frames = self._frames, []
        logger.info("Recording stopped: %d chunks", len(frames))
        return frames_to_wav(frames, self.sample_rate, self.channels)
