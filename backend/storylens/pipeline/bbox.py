"""Bounding-box stage — locate each analysed object and mint its id."""

from __future__ import annotations

import logging

from pydantic import TypeAdapter

from storylens.llm.client import VisionModel
from storylens.llm.extractor import extract_structured
from storylens.llm.prompts import build_bbox_prompt
from storylens.media.normalizer import encode_base64
from storylens.models.caption import DetectedObject, NormalizedImage
from storylens.models.replies import BBoxItem

logger = logging.getLogger(__name__)

BBOX_REPLY = TypeAdapter(list[BBoxItem])


def assign_ids(objects: list[DetectedObject]) -> list[DetectedObject]:
    """ids are the 1-based list position. Called exactly once per record."""
    return [obj.model_copy(update={"id": index}) for index, obj in enumerate(objects, start=1)]


async def locate_objects(
    model: VisionModel,
    image: NormalizedImage,
    objects: list[DetectedObject],
) -> list[DetectedObject]:
    """Return objects with ``box`` (ymin, xmin, ymax, xmax) and ``id`` set.

    If the response is unusable the input objects are returned with ids but no
    boxes, so narrative markers and audio can still reference them.
    """
    if not objects:
        return []

    prompt = build_bbox_prompt(image.width, image.height, [obj.prompt_item() for obj in objects])
    text = await model.complete(
        "bbox",
        prompt.system,
        prompt.user,
        image_b64=encode_base64(image.data),
    )

    items = extract_structured(text, "output", BBOX_REPLY)
    if not items:
        logger.warning("Bounding-box stage produced nothing usable; keeping %d objects unboxed", len(objects))
        return assign_ids(objects)

    located = [item.to_object() for item in items]
    if len(located) != len(objects):
        logger.warning("Bounding-box stage returned %d objects for %d requested", len(located), len(objects))
    return assign_ids(located)
