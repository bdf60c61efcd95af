"""Upload captioning and record access under /api/images."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from storylens.accounts import AccountDirectory, CurrentUser
from storylens.dependencies import (
    get_account_directory,
    get_caption_pipeline,
    get_current_user,
    get_record_service,
    get_vision_model,
)
from storylens.errors import InputError
from storylens.llm.client import VisionModel
from storylens.models.requests import ExplainRequest, UploadRequest
from storylens.models.responses import (
    BookmarkResponse,
    CanUploadResponse,
    CaptionResponse,
    ChallengeResponse,
    ExplainResponse,
    RecordListResponse,
    StatusResponse,
)
from storylens.pipeline.explain import explain_selection
from storylens.pipeline.orchestrator import CaptionPipeline, ensure_can_upload
from storylens.pipeline.records import RecordService

router = APIRouter(prefix="/images", tags=["Images"])


@router.post("/completions", response_model=CaptionResponse)
async def create_caption(
    req: UploadRequest,
    user: CurrentUser = Depends(get_current_user),
    pipeline: CaptionPipeline = Depends(get_caption_pipeline),
) -> CaptionResponse:
    if not req.image:
        raise InputError("No image provided.")
    return await pipeline.process_upload(req.image, user.id, user.role)


@router.post("/check-upload", response_model=CanUploadResponse)
def check_can_upload(
    user: CurrentUser = Depends(get_current_user),
    accounts: AccountDirectory = Depends(get_account_directory),
) -> CanUploadResponse:
    ensure_can_upload(accounts, user.id)
    return CanUploadResponse(can_upload=True)


@router.post("/explain", response_model=ExplainResponse)
async def explain(
    req: ExplainRequest,
    user: CurrentUser = Depends(get_current_user),
    model: VisionModel = Depends(get_vision_model),
) -> ExplainResponse:
    explanation = await explain_selection(model, req.caption, req.selected_text)
    return ExplainResponse(explanation=explanation)


@router.get("", response_model=RecordListResponse)
def list_records(
    owner_id: str | None = Query(None, description="Account whose uploads to list; defaults to the caller"),
    user: CurrentUser = Depends(get_current_user),
    service: RecordService = Depends(get_record_service),
) -> RecordListResponse:
    return RecordListResponse(records=service.list_records(owner_id or user.id, requester_id=user.id))


@router.get("/{record_id}", response_model=CaptionResponse)
def get_record(
    record_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: RecordService = Depends(get_record_service),
) -> CaptionResponse:
    return service.get_record(record_id, user.id)


@router.get("/{record_id}/challenge", response_model=ChallengeResponse)
def get_challenge(
    record_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: RecordService = Depends(get_record_service),
) -> ChallengeResponse:
    return service.get_challenge(record_id, user.id)


@router.post("/{record_id}/bookmark", response_model=BookmarkResponse)
def toggle_bookmark(
    record_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: RecordService = Depends(get_record_service),
) -> BookmarkResponse:
    return BookmarkResponse(record_id=record_id, is_bookmarked=service.toggle_bookmark(record_id, user.id))


@router.post("/{record_id}/challenge-complete", response_model=StatusResponse)
def complete_challenge(
    record_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: RecordService = Depends(get_record_service),
) -> StatusResponse:
    service.mark_challenge_complete(record_id, user.id)
    return StatusResponse(message="Challenge completed")


@router.delete("/{record_id}", response_model=StatusResponse)
def delete_record(
    record_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: RecordService = Depends(get_record_service),
) -> StatusResponse:
    service.soft_delete(record_id, user.id)
    return StatusResponse(message="Record deleted")
