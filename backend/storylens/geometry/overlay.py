"""Display-side geometry for bounding-box overlays.

Boxes are stored as ``(ymin, xmin, ymax, xmax)`` in the canonical space whose
long side is 1024. To draw them over an image rendered at an arbitrary size:

1. ``scale_factor = long_side / max(natural_w, natural_h)``
2. backend size = natural size × scale_factor
3. ``display_scale = min(display_w / backend_w, display_h / backend_h)``
4. letterbox offsets centre the scaled image in the display area
5. each coordinate is multiplied by ``scale_factor × display_scale`` and offset

Hit-testing is inclusive on all four edges. Boxes with non-positive width or
height are never placed.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

CANONICAL_LONG_SIDE = 1024


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def visible(self) -> bool:
        return self.width > 0 and self.height > 0

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.left + self.width and self.top <= y <= self.top + self.height


@dataclass(frozen=True)
class DisplayTransform:
    scale_factor: float
    display_scale: float
    offset_x: float
    offset_y: float

    @classmethod
    def fit(
        cls,
        natural_width: float,
        natural_height: float,
        display_width: float,
        display_height: float,
        long_side: float = CANONICAL_LONG_SIDE,
    ) -> DisplayTransform:
        if natural_width <= 0 or natural_height <= 0:
            raise ValueError("Natural image dimensions must be positive")
        scale_factor = long_side / max(natural_width, natural_height)
        backend_width = natural_width * scale_factor
        backend_height = natural_height * scale_factor
        display_scale = min(display_width / backend_width, display_height / backend_height)
        return cls(
            scale_factor=scale_factor,
            display_scale=display_scale,
            offset_x=(display_width - backend_width * display_scale) / 2,
            offset_y=(display_height - backend_height * display_scale) / 2,
        )

    def project(self, box: tuple[float, float, float, float]) -> Rect:
        ymin, xmin, ymax, xmax = box
        k = self.scale_factor * self.display_scale
        return Rect(
            left=xmin * k + self.offset_x,
            top=ymin * k + self.offset_y,
            width=(xmax - xmin) * k,
            height=(ymax - ymin) * k,
        )


@dataclass(frozen=True)
class PlacedBox:
    id: int
    rect: Rect
    text: str = ""


def layout_boxes(
    boxes: Iterable[tuple[int, tuple[float, float, float, float] | None, str]],
    transform: DisplayTransform,
) -> list[PlacedBox]:
    """Place ``(id, box, text)`` triples; unboxed and degenerate entries are dropped."""
    placed = []
    for box_id, box, text in boxes:
        if box_id is None or box is None:
            continue
        rect = transform.project(box)
        if rect.visible:
            placed.append(PlacedBox(id=box_id, rect=rect, text=text))
    return placed


def hit_test(placed: Iterable[PlacedBox], x: float, y: float) -> list[int]:
    return [p.id for p in placed if p.rect.contains(x, y)]


@dataclass
class HoverUpdate:
    entered: list[int] = field(default_factory=list)
    left: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.entered or self.left)


class HoverTracker:
    """Tracks the set of boxes under the pointer across moves.

    The active box (the one whose label is shown) is the most recently entered
    box still under the pointer.
    """

    def __init__(self, placed: Iterable[PlacedBox]) -> None:
        self.placed = list(placed)
        self._hovered: list[int] = []  # entry order

    @property
    def hovered(self) -> set[int]:
        return set(self._hovered)

    @property
    def active(self) -> int | None:
        return self._hovered[-1] if self._hovered else None

    def move(self, x: float, y: float) -> HoverUpdate:
        current = hit_test(self.placed, x, y)
        current_set = set(current)
        update = HoverUpdate(
            entered=[i for i in current if i not in self._hovered],
            left=[i for i in self._hovered if i not in current_set],
        )
        self._hovered = [i for i in self._hovered if i in current_set] + update.entered
        return update

    def leave(self) -> HoverUpdate:
        update = HoverUpdate(left=list(self._hovered))
        self._hovered = []
        return update
