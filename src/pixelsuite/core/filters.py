"""
Filter rendering.

Two code paths share the same FilterModel:

- Bake (authoritative): numpy/OpenCV, deterministic, used for every export and passport sheet.
- Preview (approximate): Pillow's native enhancers on an optionally downscaled copy, for display only.

Vignette is never part of either path; `apply_vignette` is a separate, opt-in pass.
"""

from __future__ import annotations

import enum
from typing import Any, Mapping, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from pixelsuite.core.imaging import ImageSource, decode_image, luma, merge_rgba, split_rgba
from pixelsuite.core.models import FilterModel, clamp_filter_value

# Fixed sepia tone matrix (rows produce R, G, B from the input R, G, B).
SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)

# Same matrix in the 12-tuple layout Image.convert() expects.
_SEPIA_MATRIX_PIL = tuple(
    float(v) for row in SEPIA_MATRIX for v in (*row, 0.0)
)

# Fraction of full darkness reached at the corners of a 100% vignette.
VIGNETTE_MAX_DARKNESS = 0.8


class RenderMode(enum.Enum):
    PREVIEW = "preview"
    BAKE = "bake"


FilterInput = Union[FilterModel, Mapping[str, Any], None]


def _as_filters(filters: FilterInput) -> FilterModel:
    if filters is None:
        return FilterModel()
    if isinstance(filters, FilterModel):
        return filters
    return FilterModel.from_mapping(filters)


def sharpen_kernel(sharpness: float) -> np.ndarray:
    """
    3x3 sharpen kernel for *sharpness* in [0, 100].

    Center 1+4s, orthogonal neighbours -s, corners 0, with s = sharpness/100; the taps always
    sum to 1, so flat regions keep their value. sharpness=0 is the identity kernel.
    """
    s = clamp_filter_value("sharpness", sharpness) / 100.0
    return np.array(
        [
            [0.0, -s, 0.0],
            [-s, 1.0 + 4.0 * s, -s],
            [0.0, -s, 0.0],
        ],
        dtype=np.float32,
    )


# ---------- Bake ----------

def _bake_rgb(rgb: np.ndarray, f: FilterModel) -> np.ndarray:
    """Apply every colour/blur/sharpen step in the fixed order; *rgb* is float32 in [0, 1]."""
    if f.brightness != 100.0:
        rgb = np.clip(rgb * np.float32(f.brightness / 100.0), 0.0, 1.0)

    if f.contrast != 100.0:
        c = np.float32(f.contrast / 100.0)
        rgb = np.clip((rgb - np.float32(0.5)) * c + np.float32(0.5), 0.0, 1.0)

    if f.saturation != 100.0:
        s = np.float32(f.saturation / 100.0)
        y = luma(rgb)
        rgb = np.clip(y + (rgb - y) * s, 0.0, 1.0)

    if f.sepia > 0.0:
        amount = np.float32(f.sepia / 100.0)
        toned = np.clip(rgb @ SEPIA_MATRIX.T, 0.0, 1.0)
        rgb = rgb + (toned - rgb) * amount

    if f.grayscale > 0.0:
        amount = np.float32(f.grayscale / 100.0)
        y = luma(rgb)
        rgb = np.clip(rgb + (y - rgb) * amount, 0.0, 1.0)

    rgb = np.ascontiguousarray(rgb, dtype=np.float32)

    if f.blur > 0.0:
        rgb = cv2.GaussianBlur(rgb, (0, 0), sigmaX=f.blur, sigmaY=f.blur, borderType=cv2.BORDER_REPLICATE)
        rgb = np.clip(rgb, 0.0, 1.0)

    if f.sharpness > 0.0:
        rgb = cv2.filter2D(rgb, -1, sharpen_kernel(f.sharpness), borderType=cv2.BORDER_REPLICATE)
        rgb = np.clip(rgb, 0.0, 1.0)

    return rgb


def bake_filters(source: ImageSource, filters: FilterInput = None) -> Image.Image:
    """
    Materialize *filters* into a new RGBA image the same size as *source*.

    Alpha is carried through unchanged. Identical inputs always give byte-identical output.
    """
    img = decode_image(source)
    f = _as_filters(filters)
    if f.is_identity:
        return img

    rgb, alpha = split_rgba(img)
    return merge_rgba(_bake_rgb(rgb, f), alpha)


# ---------- Preview ----------

def _preview(img: Image.Image, f: FilterModel, max_size: Optional[int]) -> Image.Image:
    scale = 1.0
    if max_size and max(img.size) > max_size:
        scale = max_size / float(max(img.size))
        img = img.resize(
            (max(1, round(img.width * scale)), max(1, round(img.height * scale))),
            Image.LANCZOS,
        )

    alpha = img.getchannel("A")
    rgb = img.convert("RGB")

    if f.brightness != 100.0:
        rgb = ImageEnhance.Brightness(rgb).enhance(f.brightness / 100.0)
    if f.contrast != 100.0:
        rgb = ImageEnhance.Contrast(rgb).enhance(f.contrast / 100.0)
    if f.saturation != 100.0:
        rgb = ImageEnhance.Color(rgb).enhance(f.saturation / 100.0)
    if f.sepia > 0.0:
        rgb = Image.blend(rgb, rgb.convert("RGB", _SEPIA_MATRIX_PIL), f.sepia / 100.0)
    if f.grayscale > 0.0:
        rgb = Image.blend(rgb, ImageOps.grayscale(rgb).convert("RGB"), f.grayscale / 100.0)
    if f.blur > 0.0:
        rgb = rgb.filter(ImageFilter.GaussianBlur(f.blur * scale))
    if f.sharpness > 0.0:
        kernel = sharpen_kernel(f.sharpness).flatten().tolist()
        rgb = rgb.filter(ImageFilter.Kernel((3, 3), kernel, scale=1))

    out = rgb.convert("RGBA")
    out.putalpha(alpha)
    return out


def render(
    source: ImageSource,
    filters: FilterInput = None,
    mode: RenderMode = RenderMode.BAKE,
    *,
    max_size: Optional[int] = None,
) -> Image.Image:
    """
    Render *source* with *filters*.

    BAKE is exact and full resolution (max_size is ignored). PREVIEW is a display-only
    approximation and may be downscaled so its longest side is at most max_size.

    Raises:
        DecodeError: if the source cannot be read
    """
    img = decode_image(source)
    f = _as_filters(filters)
    if mode is RenderMode.BAKE:
        return bake_filters(img, f)
    return _preview(img, f, max_size)


# ---------- Vignette ----------

def vignette_mask(width: int, height: int, strength: float) -> np.ndarray:
    """
    (height, width) float32 darkness in [0, 1) for a vignette of *strength* in [0, 100].

    The clear centre shrinks as strength grows; the corners reach
    VIGNETTE_MAX_DARKNESS * strength/100.
    """
    s = clamp_filter_value("vignette", strength) / 100.0
    if s <= 0.0:
        return np.zeros((height, width), dtype=np.float32)

    ys = (np.arange(height, dtype=np.float32) + 0.5) / np.float32(height) * 2.0 - 1.0
    xs = (np.arange(width, dtype=np.float32) + 0.5) / np.float32(width) * 2.0 - 1.0
    r = np.sqrt(xs[None, :] ** 2 + ys[:, None] ** 2) / np.float32(np.sqrt(2.0))

    t = np.clip((r - np.float32(1.0 - s)) / np.float32(s), 0.0, 1.0)
    return (np.float32(VIGNETTE_MAX_DARKNESS * s) * t * t * (3.0 - 2.0 * t)).astype(np.float32)


def vignette_overlay(size: Tuple[int, int], strength: float) -> Image.Image:
    """Black RGBA overlay whose alpha is the vignette darkness, for display-time compositing."""
    w, h = size
    alpha = np.rint(vignette_mask(w, h, strength) * 255.0).astype(np.uint8)
    out = np.zeros((h, w, 4), dtype=np.uint8)
    out[:, :, 3] = alpha
    return Image.fromarray(out, "RGBA")


def apply_vignette(source: ImageSource, strength: float) -> Image.Image:
    """Bake the vignette into a copy of *source*; strength 0 returns it unchanged. Alpha is untouched."""
    img = decode_image(source)
    if clamp_filter_value("vignette", strength) <= 0.0:
        return img

    darkness = vignette_mask(img.width, img.height, strength)
    rgb, alpha = split_rgba(img)
    return merge_rgba(rgb * (1.0 - darkness)[:, :, None], alpha)
