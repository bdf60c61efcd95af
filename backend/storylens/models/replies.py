"""Structured replies expected from the generation stages.

Field names follow the model-facing vocabulary (``object``, ``description``)
through aliases; attributes use the domain names.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from storylens.models.caption import DetectedObject

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _Reply(BaseModel):
    model_config = ConfigDict(strict=True, allow_inf_nan=False, populate_by_name=True)


class AnalysisItem(_Reply):
    label: NonBlank = Field(..., alias="object")
    descriptor: NonBlank = Field(..., alias="description")
    context: NonBlank

    def to_object(self) -> DetectedObject:
        return DetectedObject(label=self.label, descriptor=self.descriptor, context=self.context)


class AnalysisReply(_Reply):
    objects: list[AnalysisItem]
    general_label: str | None = Field(None, alias="generalLabel")


class BBoxItem(AnalysisItem):
    bbox_2d: tuple[float, float, float, float] = Field(..., description="[ymin, xmin, ymax, xmax]")

    def to_object(self) -> DetectedObject:
        return DetectedObject(
            label=self.label,
            descriptor=self.descriptor,
            context=self.context,
            box=self.bbox_2d,
        )
