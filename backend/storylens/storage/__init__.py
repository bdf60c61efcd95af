"""Asset storage backends, selected by configuration."""

from __future__ import annotations

from storylens.config import Settings
from storylens.storage.base import AssetStore


def build_asset_store(settings: Settings) -> AssetStore:
    backend = settings.storage_backend.lower()
    if backend == "supabase":
        from storylens.storage.supabase_store import SupabaseAssetStore

        return SupabaseAssetStore(
            url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.supabase_bucket,
        )
    if backend == "local":
        from storylens.storage.local import LocalAssetStore

        return LocalAssetStore(settings.local_storage_dir)
    raise ValueError(f"Unknown storage backend {settings.storage_backend!r}; expected 'local' or 'supabase'")
