"""Local filesystem backend."""

from __future__ import annotations

import logging
from pathlib import Path

from storylens.errors import AssetNotFound, StorageError
from storylens.storage.base import AUDIO_PREFIX, IMAGE_PREFIX, AssetStore

logger = logging.getLogger(__name__)


class LocalAssetStore(AssetStore):
    name = "local"

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        for prefix in (IMAGE_PREFIX, AUDIO_PREFIX):
            (self.root / prefix).mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root) or path == self.root:
            raise StorageError(f"Storage key escapes the storage root: {key!r}")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error("Error saving file %s locally: %s", key, e)
            raise StorageError(f"Failed to save file locally: {key}") from e

    def read(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            logger.error("Local file %s not found", path)
            raise AssetNotFound(f"Could not retrieve file: {key} (Not Found)") from e
        except OSError as e:
            logger.error("Error retrieving local file %s: %s", key, e)
            raise StorageError(f"Could not retrieve local file: {key}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Error deleting local file %s: %s", key, e)
            raise StorageError(f"Could not delete local file: {key}") from e
