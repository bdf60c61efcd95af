"""FastAPI dependency injection."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from storylens.accounts import ROLE_ADULT, AccountDirectory, CurrentUser, InMemoryAccountDirectory
from storylens.config import Settings, settings
from storylens.database import get_db
from storylens.errors import AuthenticationRequired
from storylens.llm.client import AnthropicVisionModel, VisionModel
from storylens.pipeline.orchestrator import CaptionPipeline
from storylens.pipeline.records import RecordService
from storylens.speech.synthesizer import SpeechSynthesizer
from storylens.storage import build_asset_store
from storylens.storage.base import AssetStore

_accounts = InMemoryAccountDirectory()


def get_settings() -> Settings:
    return settings


@lru_cache
def get_vision_model() -> VisionModel:
    return AnthropicVisionModel(settings)


@lru_cache
def get_speech_synthesizer() -> SpeechSynthesizer:
    return SpeechSynthesizer(settings)


@lru_cache
def get_asset_store() -> AssetStore:
    return build_asset_store(settings)


def get_account_directory() -> AccountDirectory:
    return _accounts


def get_current_user(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
) -> CurrentUser:
    """Identity is established upstream (session/JWT layer) and forwarded in headers."""
    if not x_user_id:
        raise AuthenticationRequired()
    return CurrentUser(id=x_user_id, role=(x_user_role or ROLE_ADULT).lower())


def get_caption_pipeline(
    db: Session = Depends(get_db),
    model: VisionModel = Depends(get_vision_model),
    speech: SpeechSynthesizer = Depends(get_speech_synthesizer),
    store: AssetStore = Depends(get_asset_store),
    accounts: AccountDirectory = Depends(get_account_directory),
    config: Settings = Depends(get_settings),
) -> CaptionPipeline:
    return CaptionPipeline(model=model, speech=speech, store=store, db=db, accounts=accounts, settings=config)


def get_record_service(
    db: Session = Depends(get_db),
    store: AssetStore = Depends(get_asset_store),
    accounts: AccountDirectory = Depends(get_account_directory),
    config: Settings = Depends(get_settings),
) -> RecordService:
    return RecordService(store=store, db=db, accounts=accounts, settings=config)
