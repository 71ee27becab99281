"""Scoped ownership of in-memory media bytes referenced by messages."""

from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)

MediaSource = Union[str, Path, bytes, bytearray]

LOCATOR_PREFIX = "blob:pastorai/"


class MediaNotFound(KeyError):
    pass


@dataclass(frozen=True)
class MediaHandle:
    locator: str
    size: int
    content_type: Optional[str] = None
    file_name: Optional[str] = None


def load_source(source: MediaSource) -> tuple[bytes, Optional[str]]:
    """Return the bytes of `source` and the file name it came from, if any."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), None
    path = Path(source)
    return path.read_bytes(), path.name


class MediaRegistry:
    """
    Holds attachment bytes keyed by a locator string.

    A handle is acquired when a message is attached and released when the
    session ends; released locators no longer resolve.
    """

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}
        self._handles: Dict[str, MediaHandle] = {}

    def __len__(self) -> int:
        return len(self._blobs)

    def __contains__(self, locator: object) -> bool:
        return locator in self._blobs

    def acquire(
        self,
        data: bytes,
        *,
        content_type: str | None = None,
        file_name: str | None = None,
    ) -> MediaHandle:
        if content_type is None and file_name:
            content_type = mimetypes.guess_type(file_name)[0]
        locator = f"{LOCATOR_PREFIX}{uuid.uuid4()}"
        handle = MediaHandle(locator=locator, size=len(data), content_type=content_type, file_name=file_name)
        self._blobs[locator] = data
        self._handles[locator] = handle
        logger.debug("Acquired media %s (%d bytes)", locator, handle.size)
        return handle

    def handle(self, locator: str) -> MediaHandle:
        try:
            return self._handles[locator]
        except KeyError:
            raise MediaNotFound(locator) from None

    def read(self, locator: str) -> bytes:
        try:
            return self._blobs[locator]
        except KeyError:
            raise MediaNotFound(locator) from None

    def release(self, locator: str) -> None:
        if self._blobs.pop(locator, None) is not None:
            self._handles.pop(locator, None)
            logger.debug("Released media %s", locator)

    def release_all(self) -> None:
        for locator in list(self._blobs):
            self.release(locator)
