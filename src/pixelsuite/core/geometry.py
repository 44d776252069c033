from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in float pixel coordinates (x, y = top-left)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def aspect(self) -> float:
        return self.width / self.height

    @property
    def is_empty(self) -> bool:
        return not (self.width > 0 and self.height > 0)

    def as_box(self) -> Tuple[float, float, float, float]:
        """(left, top, right, bottom) in float coordinates, as Pillow's ``box`` arguments expect."""
        return (self.x, self.y, self.right, self.bottom)

    def pixel_box(self) -> Tuple[int, int, int, int]:
        """Integer (left, top, right, bottom); each edge is rounded independently so neighbours never gap."""
        return (
            round_half_up(self.x),
            round_half_up(self.y),
            round_half_up(self.right),
            round_half_up(self.bottom),
        )

    def contains(self, other: "Rect", eps: float = 1e-9) -> bool:
        return (
            other.x >= self.x - eps
            and other.y >= self.y - eps
            and other.right <= self.right + eps
            and other.bottom <= self.bottom + eps
        )

    def overlaps(self, other: "Rect") -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )


def cover_crop(source_width: float, source_height: float, target_aspect: float) -> Rect:
    """
    Largest centred crop of a source_width x source_height image with width/height == target_aspect.

    A source wider than the target loses columns on both sides; otherwise rows are trimmed
    from top and bottom. The crop always lies inside the source bounds.
    """
    if source_width <= 0 or source_height <= 0 or target_aspect <= 0:
        return Rect(0.0, 0.0, 0.0, 0.0)

    source_aspect = source_width / source_height
    if source_aspect > target_aspect:
        h = float(source_height)
        w = min(h * target_aspect, float(source_width))
        return Rect((source_width - w) / 2.0, 0.0, w, h)

    w = float(source_width)
    h = min(w / target_aspect, float(source_height))
    return Rect(0.0, (source_height - h) / 2.0, w, h)
