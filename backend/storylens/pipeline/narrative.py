"""Tiered narrative caption stage."""

from __future__ import annotations

import logging

from storylens.errors import UpstreamGenerationError
from storylens.llm.client import VisionModel
from storylens.llm.extractor import extract_tagged
from storylens.llm.prompts import build_caption_prompt
from storylens.media.normalizer import encode_base64
from storylens.models.caption import DetectedObject, NormalizedImage
from storylens.pipeline.markers import find_marker_ids, sanitize_markers, strip_markup

logger = logging.getLogger(__name__)


async def generate_narrative(
    model: VisionModel,
    image: NormalizedImage,
    objects: list[DetectedObject],
    tier: int,
) -> str:
    """Narrative caption with ``<mark id="N">`` markers for known ids only.

    A missing ``<output>`` delimiter, or one holding no readable text, is fatal
    for the request.
    """
    prompt = build_caption_prompt([obj.prompt_item(include_id=True) for obj in objects], tier)
    text = await model.complete(
        "caption",
        prompt.system,
        prompt.user,
        image_b64=encode_base64(image.data),
    )

    caption = extract_tagged(text, "output")
    if caption is None or not strip_markup(caption):
        raise UpstreamGenerationError("Narrative caption response has no <output> content")

    valid_ids = {obj.id for obj in objects if obj.id is not None}
    unknown = [i for i in find_marker_ids(caption) if i not in valid_ids]
    if unknown:
        logger.warning("Dropping markers with unknown object ids %s", unknown)
    return sanitize_markers(caption.strip(), valid_ids)
