"""API request models."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class UploadRequest(BaseModel):
    image: str = Field("", description="Base64 image bytes, optionally as a data URL")


class ExplainRequest(BaseModel):
    caption: str = Field("", description="Full caption text the selection comes from")
    selected_text: str = Field("", description="Word, phrase or sentence to explain")


class StatsRequest(BaseModel):
    date_start: date
    date_end: date


class OverlayBox(BaseModel):
    id: int
    box: tuple[float, float, float, float] = Field(..., description="[ymin, xmin, ymax, xmax] in canonical space")
    text: str = ""


class OverlayRequest(BaseModel):
    boxes: list[OverlayBox] = Field(default_factory=list)
    natural_width: float = Field(..., gt=0)
    natural_height: float = Field(..., gt=0)
    display_width: float = Field(..., ge=0)
    display_height: float = Field(..., ge=0)
    pointer: tuple[float, float] | None = Field(None, description="Optional (x, y) to hit-test")
