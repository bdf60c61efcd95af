"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    storylens_env: str = "development"
    storylens_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Model routing
    model_caption: str = "claude-sonnet-4-5-20250929"
    model_bbox: str = "claude-sonnet-4-5-20250929"
    llm_max_tokens: int = 1024

    # Speech
    tts_base_url: str = ""
    tts_api_key: str = ""
    tts_model: str = "kokoro"
    tts_voice: str = "af_heart"
    tts_timeout_seconds: float = 60.0

    # Asset storage
    storage_backend: str = "local"  # local | supabase
    local_storage_dir: str = "uploads"
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_bucket: str = "storylens"

    database_url: str = "sqlite:///./storylens.db"

    # Captioning
    canonical_long_side: int = 1024
    default_complexity_tier: int = 2
    stats_timezone: str = "+08:00"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
