"""Objects, analysis results and their tiered projections."""

from __future__ import annotations

from pydantic import BaseModel, Field

Box = tuple[float, float, float, float]  # (ymin, xmin, ymax, xmax), canonical space


class DetectedObject(BaseModel):
    label: str  # one word
    descriptor: str  # short phrase
    context: str  # one sentence, no spatial position
    id: int | None = None  # 1-based, minted by the bounding-box stage
    box: Box | None = None

    def prompt_item(self, include_id: bool = False) -> dict[str, object]:
        """Model-facing dict (the vocabulary the prompts use); never includes the box."""
        item: dict[str, object] = {
            "object": self.label,
            "description": self.descriptor,
            "context": self.context,
        }
        if include_id:
            item = {"id": self.id, **item}
        return item


class ImageAnalysis(BaseModel):
    objects: list[DetectedObject] = Field(default_factory=list)
    whole_image_label: str = ""


class FormattedObject(BaseModel):
    """One object as surfaced to a UI at a given complexity tier."""

    id: int | None = None
    text: str
    box: Box | None = None


class NormalizedImage(BaseModel):
    data: bytes
    width: int
    height: int
    media_type: str = "image/jpeg"
