"""Caption formatter — project stored objects onto one text field per complexity tier.

Pure: no I/O, same input → same output. Run at write time and again on every
read, always from the stored raw object list.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from storylens.models.caption import DetectedObject, FormattedObject

TIER_FIELDS = {
    1: "label",
    2: "descriptor",
    3: "context",
}


def load_objects(raw: Iterable[DetectedObject | dict[str, Any]] | None) -> list[DetectedObject]:
    """Accept model instances or stored dicts."""
    return [
        item if isinstance(item, DetectedObject) else DetectedObject.model_validate(item)
        for item in raw or []
    ]


def format_caption(
    objects: Iterable[DetectedObject | dict[str, Any]] | None,
    tier: int,
) -> list[FormattedObject]:
    if tier not in TIER_FIELDS:
        raise ValueError(f"Invalid complexity tier {tier!r}; expected 1, 2 or 3")
    field_name = TIER_FIELDS[tier]
    return [
        FormattedObject(id=obj.id, text=getattr(obj, field_name), box=obj.box)
        for obj in load_objects(objects)
    ]
