"""Short explanation of a selection from a caption (text-only generation call)."""

from __future__ import annotations

from storylens.errors import InputError
from storylens.llm.client import VisionModel
from storylens.llm.prompts import build_explanation_prompt
from storylens.pipeline.markers import strip_markup


async def explain_selection(model: VisionModel, caption: str, selected_text: str) -> str:
    if not caption or not selected_text:
        raise InputError("Caption and selected text are required")
    prompt = build_explanation_prompt(strip_markup(caption), selected_text)
    text = await model.complete("explain", prompt.system, prompt.user)
    return text.strip()
