"""API response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from storylens.models.caption import FormattedObject


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    storage_backend: str = "local"


class ObjectAudio(BaseModel):
    object_id: int | None = None
    label: str
    audio: str  # base64 mp3


class CaptionSegment(BaseModel):
    text: str
    object_id: int | None = None


class CaptionResponse(BaseModel):
    record_id: str
    narrative_caption: str
    segments: list[CaptionSegment] = Field(default_factory=list)
    objects: list[FormattedObject] = Field(default_factory=list)
    complexity_tier: int = 2
    image: str = ""  # base64 jpeg
    main_audio: str = ""  # base64 mp3
    object_audio: list[ObjectAudio] = Field(default_factory=list)


class RecordSummary(BaseModel):
    record_id: str
    image: str
    narrative_caption: str
    uploaded_at: datetime
    is_bookmarked: bool = False
    challenge_completed: bool = False


class RecordListResponse(BaseModel):
    records: list[RecordSummary] = Field(default_factory=list)


class ChallengeResponse(BaseModel):
    record_id: str
    image: str
    whole_image_label: str = ""
    objects: list[FormattedObject] = Field(default_factory=list)
    correct_answer_label: str
    challenge_completed: bool = False


class CanUploadResponse(BaseModel):
    can_upload: bool = True


class BookmarkResponse(BaseModel):
    record_id: str
    is_bookmarked: bool


class StatusResponse(BaseModel):
    status: str = "ok"
    message: str = ""


class ExplainResponse(BaseModel):
    explanation: str


class OverlayRect(BaseModel):
    id: int
    text: str = ""
    left: float
    top: float
    width: float
    height: float


class OverlayResponse(BaseModel):
    rects: list[OverlayRect] = Field(default_factory=list)
    hovered_ids: list[int] = Field(default_factory=list)
    active_id: int | None = None
