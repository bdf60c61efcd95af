"""POST /api/stats/{user_id} — daily upload counts for a date range."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from storylens.accounts import CurrentUser
from storylens.dependencies import get_current_user, get_record_service
from storylens.models.requests import StatsRequest
from storylens.pipeline.records import RecordService

router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.post("/{user_id}", response_model=dict[str, int])
def daily_upload_counts(
    user_id: str,
    req: StatsRequest,
    user: CurrentUser = Depends(get_current_user),
    service: RecordService = Depends(get_record_service),
) -> dict[str, int]:
    return service.daily_upload_counts(user_id, req.date_start, req.date_end, requester_id=user.id)
