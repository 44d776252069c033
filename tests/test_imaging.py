import io
import unittest

import numpy as np
from PIL import Image

from tests._test_path import SRC  # noqa: F401

from pixelsuite.core.errors import DecodeError
from pixelsuite.core.imaging import decode_image, encode_jpeg


def _png16(value: int) -> bytes:
    img = Image.fromarray(np.full((4, 6), value, dtype=np.uint16))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class TestDecodeImage(unittest.TestCase):
    def test_sixteen_bit_grayscale_is_scaled_not_clipped(self):
        img = decode_image(_png16(32896))
        self.assertEqual(img.mode, "RGBA")
        self.assertEqual(img.size, (6, 4))
        self.assertEqual(img.getpixel((0, 0)), (128, 128, 128, 255))

    def test_sixteen_bit_extremes(self):
        self.assertEqual(decode_image(_png16(0)).getpixel((0, 0)), (0, 0, 0, 255))
        self.assertEqual(decode_image(_png16(65535)).getpixel((0, 0)), (255, 255, 255, 255))

    def test_open_image_is_copied(self):
        src = Image.new("RGBA", (3, 3), (1, 2, 3, 4))
        out = decode_image(src)
        self.assertIsNot(out, src)
        self.assertEqual(out.tobytes(), src.tobytes())

    def test_empty_bytes(self):
        with self.assertRaises(DecodeError):
            decode_image(b"")


class TestEncodeJpeg(unittest.TestCase):
    def test_dpi_and_alpha_dropped(self):
        data = encode_jpeg(Image.new("RGBA", (10, 10), (0, 0, 0, 0)), dpi=300)
        with Image.open(io.BytesIO(data)) as img:
            self.assertEqual(img.mode, "RGB")
            self.assertAlmostEqual(float(img.info["dpi"][0]), 300.0, places=0)
