"""POST /api/overlay — on-screen box layout and pointer hit-testing."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from storylens.config import Settings
from storylens.dependencies import get_settings
from storylens.errors import InputError
from storylens.geometry.overlay import DisplayTransform, HoverTracker, layout_boxes
from storylens.models.requests import OverlayRequest
from storylens.models.responses import OverlayRect, OverlayResponse

router = APIRouter()


@router.post("/overlay", response_model=OverlayResponse)
async def overlay(req: OverlayRequest, config: Settings = Depends(get_settings)) -> OverlayResponse:
    try:
        transform = DisplayTransform.fit(
            req.natural_width,
            req.natural_height,
            req.display_width,
            req.display_height,
            long_side=config.canonical_long_side,
        )
    except ValueError as e:
        raise InputError(str(e)) from e

    placed = layout_boxes(((b.id, b.box, b.text) for b in req.boxes), transform)
    response = OverlayResponse(
        rects=[
            OverlayRect(
                id=p.id,
                text=p.text,
                left=p.rect.left,
                top=p.rect.top,
                width=p.rect.width,
                height=p.rect.height,
            )
            for p in placed
        ]
    )
    if req.pointer is not None:
        tracker = HoverTracker(placed)
        tracker.move(*req.pointer)
        response.hovered_ids = sorted(tracker.hovered)
        response.active_id = tracker.active
    return response
