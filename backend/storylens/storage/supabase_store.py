"""Supabase Storage (object storage) backend."""

from __future__ import annotations

import logging
from typing import Any

from storylens.errors import AssetNotFound, StorageError
from storylens.storage.base import AssetStore

logger = logging.getLogger(__name__)


class SupabaseAssetStore(AssetStore):
    name = "supabase"

    def __init__(self, url: str = "", service_key: str = "", bucket: str = "storylens", client: Any = None) -> None:
        if client is None:
            if not url or not service_key:
                raise StorageError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the supabase backend")
            from supabase import create_client

            client = create_client(url, service_key)
        self.client = client
        self.bucket = bucket

    @property
    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._bucket.upload(path=key, file=data, file_options={"content-type": content_type})
        except Exception as e:
            logger.error("Error uploading %s to Supabase: %s", key, e)
            raise StorageError(f"Failed to save file to object storage: {key}") from e

    def read(self, key: str) -> bytes:
        try:
            data = self._bucket.download(key)
        except Exception as e:
            if "not found" in str(e).lower():
                logger.error("Object %s not found in bucket %s", key, self.bucket)
                raise AssetNotFound(f"Could not retrieve file: {key} (Not Found)") from e
            logger.error("Error retrieving %s from Supabase: %s", key, e)
            raise StorageError(f"Could not retrieve file from object storage: {key}") from e
        if not data:
            raise AssetNotFound(f"Object storage returned an empty body for {key}")
        return data

    def delete(self, key: str) -> None:
        try:
            # remove() takes a list of paths
            self._bucket.remove([key])
        except Exception as e:
            logger.error("Error deleting %s from Supabase: %s", key, e)
            raise StorageError(f"Could not delete file from object storage: {key}") from e
