"""Task → model selection. The bounding-box call may use a grounding-specialised model."""

from __future__ import annotations

from storylens.config import Settings, settings

_TASK_MODEL_MAP = {
    "analyze": "caption",
    "caption": "caption",
    "explain": "caption",
    "bbox": "bbox",
}


def get_model_for_task(task: str, config: Settings | None = None) -> str:
    config = config or settings
    role = _TASK_MODEL_MAP.get(task, "caption")
    if role == "bbox":
        return config.model_bbox
    return config.model_caption
