from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Tuple

from pixelsuite.core.errors import ConfigError
from pixelsuite.core.geometry import Rect


# (low, high, default); high is None for unbounded fields.
FILTER_RANGES: dict[str, Tuple[float, float | None, float]] = {
    "brightness": (0.0, 200.0, 100.0),
    "contrast": (0.0, 200.0, 100.0),
    "saturation": (0.0, 200.0, 100.0),
    "sepia": (0.0, 100.0, 0.0),
    "grayscale": (0.0, 100.0, 0.0),
    "blur": (0.0, None, 0.0),
    "sharpness": (0.0, 100.0, 0.0),
    "vignette": (0.0, 100.0, 0.0),
}


def clamp_filter_value(name: str, value: Any) -> float:
    """Clamp *value* into the declared range of filter *name*; non-finite values become the default."""
    low, high, default = FILTER_RANGES[name]
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(v):
        return default
    if v < low:
        return low
    if high is not None and v > high:
        return high
    return v


@dataclass(frozen=True)
class FilterModel:
    """
    Non-destructive adjustment set applied to the current photo.

    brightness / contrast / saturation:
        Percent multipliers in [0, 200]; 100 leaves the image unchanged.
    sepia / grayscale:
        Percent blend in [0, 100] toward the sepia tone matrix / luminance.
    blur:
        Gaussian blur radius in pixels, >= 0.
    sharpness:
        Unsharp strength in [0, 100]; drives the 3x3 sharpen kernel.
    vignette:
        Radial darkening strength in [0, 100]; only applied by the separate vignette pass.

    Values outside their range are clamped on construction, never rejected.
    """
    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    sepia: float = 0.0
    grayscale: float = 0.0
    blur: float = 0.0
    sharpness: float = 0.0
    vignette: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, clamp_filter_value(f.name, getattr(self, f.name)))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "FilterModel":
        known = {k: v for k, v in values.items() if k in FILTER_RANGES}
        return cls(**known)

    def with_value(self, name: str, value: Any) -> "FilterModel":
        if name not in FILTER_RANGES:
            raise KeyError(f"Unknown filter: {name}")
        return replace(self, **{name: value})

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def is_identity(self) -> bool:
        """True when every colour/blur/sharpen field sits at its default (vignette excluded)."""
        return all(
            getattr(self, name) == FILTER_RANGES[name][2]
            for name in FILTER_RANGES
            if name != "vignette"
        )


# ---------- Passport sheet ----------

SHEET_WIDTH_IN = 4
SHEET_HEIGHT_IN = 6
SHEET_DPI = 300
SHEET_WIDTH_PX = SHEET_WIDTH_IN * SHEET_DPI
SHEET_HEIGHT_PX = SHEET_HEIGHT_IN * SHEET_DPI

PASSPORT_ASPECT = 3.5 / 4.5
MAX_CELL_FILL = 0.9
BORDER_WIDTH_PX = 4

VALID_PHOTO_COUNTS = (3, 6, 9)


@dataclass(frozen=True)
class GridConfig:
    cols: int
    rows: int
    photo_count: int

    @staticmethod
    def for_count(photo_count: int) -> "GridConfig":
        """3 and 6 photos use a 2x3 grid, 9 photos a 3x3 grid."""
        if isinstance(photo_count, bool) or photo_count not in VALID_PHOTO_COUNTS:
            raise ConfigError(f"photo_count must be one of {VALID_PHOTO_COUNTS}, got {photo_count!r}")
        cols = 3 if photo_count == 9 else 2
        return GridConfig(cols=cols, rows=3, photo_count=photo_count)

    @property
    def cell_width(self) -> float:
        return SHEET_WIDTH_PX / self.cols

    @property
    def cell_height(self) -> float:
        return SHEET_HEIGHT_PX / self.rows

    def cell_rect(self, row: int, col: int) -> Rect:
        return Rect(col * self.cell_width, row * self.cell_height, self.cell_width, self.cell_height)


@dataclass(frozen=True)
class PhotoRect:
    """
    One placed copy of the photo on the sheet.

    Geometry is kept in float pixels; `box` gives the rounded pixel box used for drawing.
    """
    row: int
    col: int
    cell: Rect
    target_width: float
    target_height: float
    margin_x: float
    margin_y: float
    crop: Rect

    @property
    def target(self) -> Rect:
        return Rect(self.cell.x + self.margin_x, self.cell.y + self.margin_y, self.target_width, self.target_height)

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return self.target.pixel_box()


@dataclass(frozen=True)
class SheetOptions:
    """
    User settings for passport sheet mode.

    photo_height_in:
        Requested printed photo height in inches (capped so each photo fits its cell).
    photo_count:
        Number of copies on the sheet: 3, 6 or 9.
    """
    photo_height_in: float = 1.8
    photo_count: int = 6
    add_border: bool = False
    use_gradient_background: bool = False
