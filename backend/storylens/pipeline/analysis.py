"""Caption analysis stage: salient objects plus a whole-image label."""

from __future__ import annotations

import logging

from pydantic import TypeAdapter

from storylens.llm.client import VisionModel
from storylens.llm.extractor import extract_structured
from storylens.llm.prompts import build_analysis_prompt
from storylens.media.normalizer import encode_base64
from storylens.models.caption import ImageAnalysis, NormalizedImage
from storylens.models.replies import AnalysisReply

logger = logging.getLogger(__name__)

ANALYSIS_REPLY = TypeAdapter(AnalysisReply)


async def analyze_image(model: VisionModel, image: NormalizedImage) -> ImageAnalysis:
    """An unusable response yields an empty analysis, not an error."""
    prompt = build_analysis_prompt()
    text = await model.complete(
        "analyze",
        prompt.system,
        prompt.user,
        image_b64=encode_base64(image.data),
    )

    reply = extract_structured(text, "output", ANALYSIS_REPLY)
    if reply is None:
        logger.warning("Analysis stage produced nothing usable; continuing with no objects")
        return ImageAnalysis()

    logger.info("Analysis stage found %d objects", len(reply.objects))
    return ImageAnalysis(
        objects=[item.to_object() for item in reply.objects],
        whole_image_label=reply.general_label or "",
    )
