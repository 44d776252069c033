import io
import unittest

import numpy as np
from PIL import Image

from tests._test_path import SRC  # noqa: F401

from pixelsuite.core.compositor import composite_on_opaque_background
from pixelsuite.core.errors import DecodeError


def _png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class TestCompositor(unittest.TestCase):
    def test_transparent_pixel_becomes_background(self):
        img = Image.new("RGBA", (4, 4), (12, 34, 56, 0))
        out = composite_on_opaque_background(img, (255, 255, 255))
        self.assertEqual(out.getpixel((1, 1)), (255, 255, 255, 255))

    def test_opaque_pixel_keeps_its_colour(self):
        img = Image.new("RGBA", (4, 4), (12, 34, 56, 255))
        out = composite_on_opaque_background(img, "#00ff00")
        self.assertEqual(out.getpixel((2, 3)), (12, 34, 56, 255))

    def test_half_alpha_blends(self):
        img = Image.new("RGBA", (2, 2), (0, 0, 0, 128))
        out = composite_on_opaque_background(img)
        r, g, b, a = out.getpixel((0, 0))
        self.assertEqual(a, 255)
        self.assertEqual((r, g, b), (127, 127, 127))

    def test_output_is_always_opaque(self):
        rng = np.random.default_rng(7)
        arr = rng.integers(0, 256, size=(10, 12, 4), dtype=np.uint8)
        out = np.asarray(composite_on_opaque_background(Image.fromarray(arr, "RGBA"), (10, 20, 30)))
        self.assertTrue((out[:, :, 3] == 255).all())
        self.assertEqual(out.shape, (10, 12, 4))

    def test_accepts_encoded_bytes(self):
        data = _png_bytes(Image.new("RGBA", (3, 3), (0, 0, 0, 0)))
        out = composite_on_opaque_background(data)
        self.assertEqual(out.getpixel((0, 0)), (255, 255, 255, 255))

    def test_undecodable_bytes_raise(self):
        with self.assertRaises(DecodeError):
            composite_on_opaque_background(b"\x89PNG garbage")
        with self.assertRaises(DecodeError):
            composite_on_opaque_background(b"")
