"""
Passport sheet layout: N cover-fit copies of one filtered photo on a 4x6 inch, 300 dpi sheet.

    plan = plan_sheet((src_w, src_h), target_photo_height_in=1.8, photo_count=6)   # geometry only
    sheet = layout_sheet(img, filters, 1.8, add_border=True, photo_count=6)         # pixels too
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from PIL import Image, ImageDraw

from pixelsuite.core.errors import ConfigError, LayoutError
from pixelsuite.core.filters import FilterInput, bake_filters
from pixelsuite.core.geometry import Rect, cover_crop
from pixelsuite.core.imaging import ImageSource
from pixelsuite.core.models import (
    BORDER_WIDTH_PX,
    MAX_CELL_FILL,
    PASSPORT_ASPECT,
    SHEET_DPI,
    SHEET_HEIGHT_PX,
    SHEET_WIDTH_PX,
    GridConfig,
    PhotoRect,
    SheetOptions,
)
from pixelsuite.utils.logging import logger

GRADIENT_TOP = (0x33, 0x33, 0x33)
GRADIENT_BOTTOM = (0x00, 0x00, 0x00)
BORDER_COLOR = (0, 0, 0)


@dataclass(frozen=True)
class SheetPlan:
    """Geometry of a sheet, independent of pixels."""
    grid: GridConfig
    target_width: float
    target_height: float
    crop: Rect
    placements: Tuple[PhotoRect, ...]


@dataclass(frozen=True)
class SheetCanvas:
    """A finished 1200x1800 RGB sheet plus the geometry that produced it."""
    image: Image.Image
    plan: SheetPlan
    add_border: bool
    use_gradient_background: bool

    @property
    def placements(self) -> Tuple[PhotoRect, ...]:
        return self.plan.placements

    @property
    def grid(self) -> GridConfig:
        return self.plan.grid


def _validate_height(target_photo_height_in: float) -> float:
    try:
        inches = float(target_photo_height_in)
    except (TypeError, ValueError):
        raise ConfigError(f"target_photo_height_in must be a number, got {target_photo_height_in!r}") from None
    if not math.isfinite(inches) or inches <= 0:
        raise ConfigError(f"target_photo_height_in must be > 0, got {target_photo_height_in!r}")
    return inches


def target_photo_size(grid: GridConfig, target_photo_height_in: float) -> Tuple[float, float]:
    """
    Printed photo size in pixels for *grid*.

    Nine photos are sized from the cell width. Otherwise the requested height is used, falling
    back to the width cap (0.9 x cell width) and then the height cap (0.9 x cell height)
    so a photo never leaves its cell.
    """
    max_w = grid.cell_width * MAX_CELL_FILL
    max_h = grid.cell_height * MAX_CELL_FILL

    if grid.photo_count == 9:
        w = max_w
        h = w / PASSPORT_ASPECT
    else:
        h = _validate_height(target_photo_height_in) * SHEET_DPI
        w = h * PASSPORT_ASPECT
        if w > max_w:
            w = max_w
            h = w / PASSPORT_ASPECT

    if h > max_h:
        h = max_h
        w = h * PASSPORT_ASPECT
    return w, h


def plan_sheet(
    source_size: Tuple[int, int],
    target_photo_height_in: float = 1.8,
    photo_count: int = 6,
) -> SheetPlan:
    """
    Compute grid, target size, the shared cover-fit crop, and one placement per photo.

    Raises:
        ConfigError: photo_count not in {3, 6, 9}, or a non-positive height
        LayoutError: any computed rectangle is empty
    """
    grid = GridConfig.for_count(photo_count)
    if grid.photo_count != 9:
        _validate_height(target_photo_height_in)

    target_w, target_h = target_photo_size(grid, target_photo_height_in)
    if not (target_w > 0 and target_h > 0):
        raise LayoutError(f"Non-positive target size {target_w:.2f}x{target_h:.2f}")

    src_w, src_h = source_size
    crop = cover_crop(src_w, src_h, PASSPORT_ASPECT)
    if crop.is_empty:
        raise LayoutError(f"Empty source crop for a {src_w}x{src_h} source")

    margin_x = (grid.cell_width - target_w) / 2.0
    margin_y = (grid.cell_height - target_h) / 2.0

    placements: List[PhotoRect] = []
    for r in range(grid.rows):
        for c in range(grid.cols):
            if len(placements) >= grid.photo_count:
                break
            placements.append(
                PhotoRect(
                    row=r,
                    col=c,
                    cell=grid.cell_rect(r, c),
                    target_width=target_w,
                    target_height=target_h,
                    margin_x=margin_x,
                    margin_y=margin_y,
                    crop=crop,
                )
            )

    logger.debug(
        "Sheet plan: %dx%d grid, %d photos of %.1fx%.1f px, crop %s",
        grid.cols, grid.rows, len(placements), target_w, target_h, crop,
    )
    return SheetPlan(
        grid=grid,
        target_width=target_w,
        target_height=target_h,
        crop=crop,
        placements=tuple(placements),
    )


def _background(use_gradient: bool) -> Image.Image:
    if not use_gradient:
        return Image.new("RGB", (SHEET_WIDTH_PX, SHEET_HEIGHT_PX), (255, 255, 255))

    # Linear top -> bottom, sampled at pixel centres.
    t = (np.arange(SHEET_HEIGHT_PX, dtype=np.float64) + 0.5) / SHEET_HEIGHT_PX
    top = np.array(GRADIENT_TOP, dtype=np.float64)
    bottom = np.array(GRADIENT_BOTTOM, dtype=np.float64)
    rows = np.rint(top[None, :] * (1.0 - t[:, None]) + bottom[None, :] * t[:, None]).astype(np.uint8)
    arr = np.repeat(rows[:, None, :], SHEET_WIDTH_PX, axis=1)
    return Image.fromarray(np.ascontiguousarray(arr), "RGB")


def _render_tile(baked: Image.Image, crop: Rect, size: Tuple[int, int]) -> Image.Image:
    return baked.resize(size, Image.LANCZOS, box=crop.as_box())


def layout_sheet(
    source: ImageSource,
    filters: FilterInput = None,
    target_photo_height_in: float = 1.8,
    add_border: bool = False,
    photo_count: int = 6,
    use_gradient_background: bool = False,
) -> SheetCanvas:
    """
    Build the printable passport sheet.

    Filters are baked once and shared by every copy; vignette is never applied here.
    The source is cover-fit cropped to 3.5:4.5 and placed row-major, centred in each cell.

    Raises:
        DecodeError: source cannot be read
        ConfigError: invalid photo_count or height
        LayoutError: geometry invariant violated
    """
    grid = GridConfig.for_count(photo_count)
    if grid.photo_count != 9:
        _validate_height(target_photo_height_in)

    baked = bake_filters(source, filters)
    plan = plan_sheet(baked.size, target_photo_height_in, photo_count)

    # Every copy shares size and crop, so one resampled tile serves them all.
    x0, y0, x1, y1 = plan.placements[0].box
    tile_size = (x1 - x0, y1 - y0)
    if tile_size[0] <= 0 or tile_size[1] <= 0:
        raise LayoutError(f"Placement rounds to an empty pixel box {plan.placements[0].box}")
    tile = _render_tile(baked, plan.crop, tile_size)
    tile_rgb = tile.convert("RGB")
    tile_mask = tile.getchannel("A")

    canvas = _background(use_gradient_background)
    draw = ImageDraw.Draw(canvas) if add_border else None
    half = BORDER_WIDTH_PX // 2

    for placement in plan.placements:
        left, top, right, bottom = placement.box
        if (right - left, bottom - top) != tile_size:
            # Rounding differs per cell only when origins are fractional.
            tile = _render_tile(baked, plan.crop, (right - left, bottom - top))
            canvas.paste(tile.convert("RGB"), (left, top), tile.getchannel("A"))
        else:
            canvas.paste(tile_rgb, (left, top), tile_mask)

        if draw is not None:
            # Stroke centred on the boundary: half outside, half inside.
            draw.rectangle(
                (left - half, top - half, right + half - 1, bottom + half - 1),
                outline=BORDER_COLOR,
                width=BORDER_WIDTH_PX,
            )

    logger.debug("Laid out %d photos (border=%s, gradient=%s)", len(plan.placements), add_border, use_gradient_background)
    return SheetCanvas(
        image=canvas,
        plan=plan,
        add_border=bool(add_border),
        use_gradient_background=bool(use_gradient_background),
    )


def layout_sheet_with_options(source: ImageSource, filters: FilterInput, options: SheetOptions) -> SheetCanvas:
    """`layout_sheet` driven by a SheetOptions value."""
    return layout_sheet(
        source,
        filters,
        target_photo_height_in=options.photo_height_in,
        add_border=options.add_border,
        photo_count=options.photo_count,
        use_gradient_background=options.use_gradient_background,
    )
