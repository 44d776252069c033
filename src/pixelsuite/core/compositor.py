from __future__ import annotations

from typing import Tuple

import numpy as np
from PIL import Image

from pixelsuite.core.imaging import ImageSource, decode_image

WHITE: Tuple[int, int, int] = (255, 255, 255)


def _parse_color(color: Tuple[int, int, int] | str) -> Tuple[int, int, int]:
    """Accept an (r, g, b) tuple or a '#rrggbb' / 'rrggbb' hex string."""
    if isinstance(color, str):
        c = color.lstrip("#")
        if len(c) != 6:
            raise ValueError(f"Expected a #rrggbb colour, got {color!r}")
        return (int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16))
    r, g, b = color
    return (int(r), int(g), int(b))


def composite_on_opaque_background(
    image: ImageSource,
    background: Tuple[int, int, int] | str = WHITE,
) -> Image.Image:
    """
    Flatten a possibly transparent image onto a solid *background* colour.

    out = background * (1 - a) + foreground * a, with a = alpha / 255. The result is RGBA with
    alpha 255 everywhere: fully transparent pixels become exactly the background colour,
    fully opaque ones keep exactly their own colour.

    Raises:
        DecodeError: if *image* cannot be decoded
    """
    img = decode_image(image)
    bg = np.array(_parse_color(background), dtype=np.float32)

    arr = np.asarray(img)
    fg = arr[:, :, :3].astype(np.float32)
    a = arr[:, :, 3:4].astype(np.float32) / np.float32(255.0)

    out = bg * (1.0 - a) + fg * a
    rgb = np.clip(np.rint(out), 0, 255).astype(np.uint8)
    opaque = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
    return Image.fromarray(np.concatenate([rgb, opaque], axis=2), "RGBA")
