"""Prompt templates for the three captioning calls and the explanation helper."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


_ANALYSIS_SYSTEM = """You are an image analysis assistant. Examine the image and produce a structured JSON description of its most important objects. Reason step by step first and record that reasoning inside <details> tags.

REASONING STEPS:
1. Identify the main subject(s) and the prominent elements of the scene.
2. Consider the setting and any actions taking place.
3. Select between 1 and 5 key objects. One object is enough for an image with a single dominant subject; pick up to five for busy scenes. Justify the selection briefly.
4. For each object decide:
   - "object": a single noun naming it (e.g. "cat", "table", "mountain").
   - "description": a 3-5 word descriptive phrase (e.g. "fluffy white cat").
   - "context": one complete sentence about the object's role in the scene or its relationship to other elements.
     The context sentence MUST NOT mention where the object sits in the frame (no "on the left", "in the background", "at the top").
5. Choose a "generalLabel": one word or short phrase that summarises the whole image.
6. If the image is abstract or has no distinct objects, say so and return an empty object list.

OUTPUT RULES:
- After </details>, put the final answer inside <output> tags.
- Inside <output>, write exactly one JSON object in a ```json code block:
```json
{
  "objects": [
    {"object": "...", "description": "...", "context": "..."}
  ],
  "generalLabel": "..."
}
```
- The JSON must parse with a strict JSON parser. Mind quotes, commas and brackets.
- No greetings or text outside <details> and <output>. The XML tags are mandatory.

EXAMPLE:
<details>
[step-by-step reasoning]
</details>
<output>
```json
{
  "objects": [
    {"object": "apple", "description": "A ripe red apple", "context": "An apple rests upon a wooden surface."},
    {"object": "window", "description": "Sunlight streams through pane", "context": "A window fills the room with light."}
  ],
  "generalLabel": "Kitchen still life"
}
```
</output>"""

_ANALYSIS_USER = "Here is the image to analyze. Follow the reasoning steps and produce the required JSON output."

_BBOX_SYSTEM = """You are an expert at locating objects in images. For each object in the list you receive, add the key "bbox_2d" holding its bounding box as [ymin, xmin, ymax, xmax] in pixel coordinates of the image dimensions given.

RULES:
- Keep "object", "description" and "context" exactly as given; use them to identify which object each box belongs to.
- Keep the objects in the order they were given.
- A box encloses only the object itself, not the surroundings its context mentions.
- Put a JSON array in a ```json code block inside <output> tags. No other text.

EXAMPLE:
<output>
```json
[
  {"object": "apple", "bbox_2d": [100, 100, 400, 400], "description": "A ripe red apple", "context": "An apple rests upon a wooden surface."},
  {"object": "window", "bbox_2d": [50, 30, 300, 500], "description": "Sunlight streams through pane", "context": "A window fills the room with light."}
]
```
</output>"""

_TIER_INSTRUCTIONS = {
    1: "Write a very simple, single-sentence caption for very young children (about ages 3-5). Use basic vocabulary.",
    2: "Write a descriptive caption of 2 to 3 medium-length sentences for young children (about ages 5-7). Use some adjectives and varied sentence structure.",
    3: "Write a detailed single-paragraph caption of several complex sentences for older children (about ages 7-10). Make it engaging, with richer vocabulary.",
}

_CAPTION_SYSTEM = """You are an expert image captioner writing engaging, age-appropriate descriptions for children. Caption the image using the object list that accompanies it.

INSTRUCTIONS:
1. Look at the image and the object list.
2. Write a caption describing the scene.
3. Wrap every reference to a listed object in a marker: <mark id="N">short phrase</mark>, where N is that object's id. The phrase should read naturally in the sentence (e.g. "a ripe red apple", "the big window"), not just the raw object name.
4. Only use ids that appear in the object list.
5. {tier_instruction}
6. CRITICAL: the whole reply must be enclosed in <output> and </output>. Nothing before or after.

EXAMPLE:
<output>A <mark id="1">shiny red apple</mark> sits in the light from <mark id="2">the sunny window</mark>.</output>"""

_EXPLAIN_SYSTEM = """You give short explanations of a word, phrase or sentence selected from a longer passage. Reply with one or two sentences explaining the selection in context.

Output only the explanation. No introduction, no formatting, and do not repeat the selected text."""


def build_analysis_prompt() -> Prompt:
    return Prompt(system=_ANALYSIS_SYSTEM, user=_ANALYSIS_USER)


def build_bbox_prompt(width: int, height: int, objects: list[dict[str, Any]]) -> Prompt:
    """``objects`` are model-facing dicts: object / description / context."""
    user = (
        f"Image dimensions: {width}x{height}\n"
        "Here are the objects in the image:\n"
        f"```json\n{json.dumps(objects, indent=2)}\n```"
    )
    return Prompt(system=_BBOX_SYSTEM, user=user)


def format_objects_for_caption(objects: list[dict[str, Any]]) -> str:
    """Compact id-keyed object list without boxes, to save tokens."""
    items = []
    for item in objects:
        items.append(
            "{id:%s, object:%s, description:%s, context:%s}"
            % (
                item.get("id"),
                json.dumps(item.get("object") or ""),
                json.dumps(item.get("description") or ""),
                json.dumps(item.get("context") or ""),
            )
        )
    return "[" + ", ".join(items) + "]"


def tier_instruction(tier: int) -> str:
    if tier not in _TIER_INSTRUCTIONS:
        logger.warning("Invalid complexity tier %r, using tier 2 instructions", tier)
        return _TIER_INSTRUCTIONS[2]
    return _TIER_INSTRUCTIONS[tier]


def build_caption_prompt(objects: list[dict[str, Any]], tier: int) -> Prompt:
    system = _CAPTION_SYSTEM.format(tier_instruction=tier_instruction(tier))
    user = (
        "Generate the caption for the accompanying image based on these objects:\n"
        f"{format_objects_for_caption(objects)}\n"
        "Remember the marker and output format requirements."
    )
    return Prompt(system=system, user=user)


def build_explanation_prompt(caption: str, selected_text: str) -> Prompt:
    user = (
        f'Full text: "{caption}"\n\n'
        f'Selected text: "{selected_text}"\n\n'
        "Provide a concise explanation for the selected text."
    )
    return Prompt(system=_EXPLAIN_SYSTEM, user=user)


def get_all_templates() -> dict[str, str]:
    return {
        "analyze": _ANALYSIS_SYSTEM,
        "bbox": _BBOX_SYSTEM,
        "caption": _CAPTION_SYSTEM,
        "explain": _EXPLAIN_SYSTEM,
    }
