"""Decoding, encoding and pixel-buffer helpers shared by the renderer, compositor and layout engine."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from pixelsuite.core.errors import DecodeError

ImageSource = Union[Image.Image, bytes, bytearray, str, Path]

# Rec.709 luma weights, as used by the CSS filter effects.
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)

JPEG_QUALITY = 95

# Integer modes Pillow would clip rather than scale when converting to 8-bit.
_WIDE_INT_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


def _wide_to_8bit(img: Image.Image) -> Image.Image:
    """Scale 16-bit (or 32-bit int holding 16-bit data) grayscale down to 8-bit L."""
    arr = np.asarray(img).astype(np.float32)
    return Image.fromarray(np.clip(np.rint(arr / np.float32(257.0)), 0, 255).astype(np.uint8), "L")


def decode_image(source: ImageSource) -> Image.Image:
    """
    Load *source* into an RGBA PIL image at its native resolution.

    Accepts an already-open PIL image, encoded bytes, or a filesystem path. EXIF orientation
    is applied so the pixels match what the user sees.

    Raises:
        DecodeError: if the pixels cannot be read
    """
    if isinstance(source, Image.Image):
        img = source
    else:
        try:
            if isinstance(source, (bytes, bytearray)):
                if not source:
                    raise DecodeError("Empty image data")
                img = Image.open(io.BytesIO(bytes(source)))
            else:
                img = Image.open(source)
            img.load()
            img = ImageOps.exif_transpose(img)
        except DecodeError:
            raise
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
            raise DecodeError(f"Could not decode image: {e}") from e

    if img.width <= 0 or img.height <= 0:
        raise DecodeError(f"Image has no pixels ({img.width}x{img.height})")
    try:
        if img.mode in _WIDE_INT_MODES:
            img = _wide_to_8bit(img)
        return img.convert("RGBA") if img.mode != "RGBA" else img.copy()
    except (OSError, ValueError) as e:
        raise DecodeError(f"Could not read image pixels: {e}") from e


def split_rgba(img: Image.Image) -> Tuple[np.ndarray, np.ndarray]:
    """RGBA PIL image -> (H, W, 3) float32 RGB in [0, 1] and the untouched (H, W) uint8 alpha."""
    arr = np.asarray(img.convert("RGBA") if img.mode != "RGBA" else img)
    rgb = arr[:, :, :3].astype(np.float32) / np.float32(255.0)
    alpha = arr[:, :, 3].copy()
    return rgb, alpha


def merge_rgba(rgb: np.ndarray, alpha: np.ndarray) -> Image.Image:
    """Inverse of `split_rgba`: float RGB in [0, 1] plus uint8 alpha -> RGBA PIL image."""
    rgb8 = np.rint(np.clip(rgb, 0.0, 1.0) * np.float32(255.0)).astype(np.uint8)
    out = np.dstack([rgb8, alpha.astype(np.uint8)])
    return Image.fromarray(out, "RGBA")


def luma(rgb: np.ndarray) -> np.ndarray:
    """(H, W, 3) float RGB -> (H, W, 1) luminance, broadcastable against the input."""
    return (rgb @ LUMA_WEIGHTS)[:, :, None]


def encode_png(img: Image.Image) -> bytes:
    """Lossless encode used for normal-mode exports."""
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def encode_jpeg(img: Image.Image, quality: int = JPEG_QUALITY, dpi: int | None = None) -> bytes:
    """JPEG encode; alpha is dropped (callers flatten first when it matters)."""
    if img.mode != "RGB":
        img = img.convert("RGB")
    buf = io.BytesIO()
    kwargs = {"format": "JPEG", "quality": quality, "optimize": True}
    if dpi:
        kwargs["dpi"] = (dpi, dpi)
    img.save(buf, **kwargs)
    return buf.getvalue()
