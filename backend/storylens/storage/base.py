"""Asset store interface. Pipeline code depends only on this."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

IMAGE_PREFIX = "images/"
AUDIO_PREFIX = "audio/"


class AssetStore(ABC):
    """Binary blobs under randomly generated keys (``images/<uuid>.jpg``, ``audio/<uuid>.mp3``)."""

    name = "abstract"

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> None: ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Raise AssetNotFound for unknown keys, StorageError for other failures."""

    @abstractmethod
    def delete(self, key: str) -> None: ...

    def save_image(self, data: bytes) -> str:
        key = f"{IMAGE_PREFIX}{uuid.uuid4()}.jpg"
        self.put(key, data, "image/jpeg")
        return key

    def save_audio(self, data: bytes) -> str:
        key = f"{AUDIO_PREFIX}{uuid.uuid4()}.mp3"
        self.put(key, data, "audio/mpeg")
        return key
