"""Health check + meta endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from storylens import __version__
from storylens.config import Settings
from storylens.dependencies import get_settings
from storylens.llm.prompts import get_all_templates
from storylens.models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(config: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(status="ok", version=__version__, storage_backend=config.storage_backend)


@router.get("/prompts")
async def prompts() -> dict[str, str]:
    return get_all_templates()
