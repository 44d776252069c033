import unittest

import numpy as np
from PIL import Image

from tests._test_path import SRC  # noqa: F401

from pixelsuite.core.errors import DecodeError
from pixelsuite.core.filters import (
    RenderMode,
    apply_vignette,
    bake_filters,
    render,
    sharpen_kernel,
    vignette_mask,
    vignette_overlay,
)
from pixelsuite.core.models import FilterModel


def _random_rgba(w=32, h=24, seed=0) -> Image.Image:
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(h, w, 4), dtype=np.uint8)
    return Image.fromarray(arr, "RGBA")


def _solid(color, size=(16, 16)) -> Image.Image:
    return Image.new("RGBA", size, color)


class TestBake(unittest.TestCase):
    def test_default_filters_are_pixel_exact_identity(self):
        img = _random_rgba()
        out = render(img, FilterModel(), RenderMode.BAKE)
        self.assertEqual(out.size, img.size)
        self.assertTrue(np.array_equal(np.asarray(out), np.asarray(img)))

    def test_identity_ignores_vignette(self):
        img = _random_rgba(seed=3)
        out = bake_filters(img, FilterModel(vignette=80))
        self.assertTrue(np.array_equal(np.asarray(out), np.asarray(img)))

    def test_out_of_range_filters_match_clamped_filters(self):
        img = _random_rgba(seed=1)
        a = bake_filters(img, {"brightness": 900, "sharpness": -5, "sepia": 400})
        b = bake_filters(img, FilterModel(brightness=200, sharpness=0, sepia=100))
        self.assertEqual(a.tobytes(), b.tobytes())

    def test_bake_is_deterministic(self):
        img = _random_rgba(seed=2)
        f = FilterModel(brightness=120, contrast=80, saturation=150, sepia=30, grayscale=20, blur=1.5, sharpness=40)
        self.assertEqual(bake_filters(img, f).tobytes(), bake_filters(img, f).tobytes())

    def test_alpha_is_preserved(self):
        img = _random_rgba(seed=4)
        f = FilterModel(brightness=150, sepia=70, blur=2, sharpness=80)
        out = bake_filters(img, f)
        self.assertTrue(np.array_equal(np.asarray(out)[:, :, 3], np.asarray(img)[:, :, 3]))

    def test_brightness_scales_channels(self):
        out = bake_filters(_solid((200, 100, 50, 255)), FilterModel(brightness=50))
        self.assertEqual(out.getpixel((3, 3)), (100, 50, 25, 255))

    def test_contrast_zero_collapses_to_mid_gray(self):
        out = bake_filters(_solid((10, 200, 250, 255)), FilterModel(contrast=0))
        r, g, b, _a = out.getpixel((0, 0))
        for v in (r, g, b):
            self.assertIn(v, (127, 128))

    def test_full_grayscale_equalizes_channels(self):
        out = np.asarray(bake_filters(_random_rgba(seed=5), FilterModel(grayscale=100))).astype(int)
        self.assertLessEqual(int(np.abs(out[:, :, 0] - out[:, :, 1]).max()), 1)
        self.assertLessEqual(int(np.abs(out[:, :, 1] - out[:, :, 2]).max()), 1)

    def test_zero_saturation_matches_full_grayscale(self):
        img = _random_rgba(seed=6)
        a = np.asarray(bake_filters(img, FilterModel(saturation=0))).astype(int)
        b = np.asarray(bake_filters(img, FilterModel(grayscale=100))).astype(int)
        self.assertLessEqual(int(np.abs(a - b).max()), 1)

    def test_full_sepia_uses_tone_matrix(self):
        out = bake_filters(_solid((100, 100, 100, 255)), FilterModel(sepia=100))
        r, g, b, _a = out.getpixel((0, 0))
        # Gray 100 through the sepia matrix: row sums 1.351, 1.203, 0.937.
        self.assertAlmostEqual(r, 135, delta=1)
        self.assertAlmostEqual(g, 120, delta=1)
        self.assertAlmostEqual(b, 94, delta=1)

    def test_blur_and_sharpen_leave_flat_regions_alone(self):
        img = _solid((90, 140, 200, 255), size=(20, 20))
        out = np.asarray(bake_filters(img, FilterModel(blur=3, sharpness=100))).astype(int)
        self.assertLessEqual(int(np.abs(out - np.asarray(img).astype(int)).max()), 1)

    def test_blur_softens_an_edge(self):
        arr = np.zeros((10, 20, 4), dtype=np.uint8)
        arr[:, 10:, :3] = 255
        arr[:, :, 3] = 255
        out = np.asarray(bake_filters(Image.fromarray(arr, "RGBA"), FilterModel(blur=2)))
        self.assertTrue(0 < out[5, 9, 0] < 255)
        self.assertTrue(0 < out[5, 10, 0] < 255)

    def test_sharpen_increases_edge_contrast(self):
        arr = np.full((10, 20, 4), 100, dtype=np.uint8)
        arr[:, 10:, :3] = 150
        arr[:, :, 3] = 255
        out = np.asarray(bake_filters(Image.fromarray(arr, "RGBA"), FilterModel(sharpness=50)))
        self.assertLess(out[5, 9, 0], 100)
        self.assertGreater(out[5, 10, 0], 150)

    def test_undecodable_source_raises(self):
        with self.assertRaises(DecodeError):
            bake_filters(b"not an image", FilterModel(brightness=120))


class TestSharpenKernel(unittest.TestCase):
    def test_zero_sharpness_is_identity_kernel(self):
        k = sharpen_kernel(0)
        np.testing.assert_array_equal(k, np.array([[0, 0, 0], [0, 1, 0], [0, 0, 0]], dtype=np.float32))

    def test_full_sharpness_kernel(self):
        k = sharpen_kernel(100)
        np.testing.assert_allclose(k, [[0, -1, 0], [-1, 5, -1], [0, -1, 0]])
        self.assertAlmostEqual(float(k.sum()), 1.0, places=6)

    def test_kernel_clamps_strength(self):
        np.testing.assert_array_equal(sharpen_kernel(250), sharpen_kernel(100))


class TestPreview(unittest.TestCase):
    def test_preview_respects_max_size(self):
        img = _random_rgba(w=200, h=100)
        out = render(img, FilterModel(brightness=120, blur=2), RenderMode.PREVIEW, max_size=50)
        self.assertEqual(out.size, (50, 25))
        self.assertEqual(out.mode, "RGBA")

    def test_preview_identity_keeps_pixels(self):
        img = _random_rgba()
        out = render(img, FilterModel(), RenderMode.PREVIEW)
        self.assertTrue(np.array_equal(np.asarray(out), np.asarray(img)))

    def test_preview_is_close_to_bake_for_brightness(self):
        img = _solid((120, 80, 40, 255))
        f = FilterModel(brightness=150)
        p = np.asarray(render(img, f, RenderMode.PREVIEW)).astype(int)
        b = np.asarray(render(img, f, RenderMode.BAKE)).astype(int)
        self.assertLessEqual(int(np.abs(p - b).max()), 2)


class TestVignette(unittest.TestCase):
    def test_zero_strength_is_noop(self):
        img = _random_rgba()
        self.assertEqual(apply_vignette(img, 0).tobytes(), img.tobytes())
        self.assertEqual(float(vignette_mask(8, 8, 0).max()), 0.0)

    def test_corners_darker_than_center(self):
        img = _solid((200, 200, 200, 255), size=(101, 101))
        out = apply_vignette(img, 100)
        center = out.getpixel((50, 50))[0]
        corner = out.getpixel((0, 0))[0]
        self.assertEqual(center, 200)
        self.assertLess(corner, 100)
        self.assertEqual(out.getpixel((0, 0))[3], 255)

    def test_overlay_matches_mask(self):
        ov = vignette_overlay((40, 30), 50)
        self.assertEqual(ov.size, (40, 30))
        alpha = np.asarray(ov)[:, :, 3]
        self.assertEqual(int(alpha[15, 20]), 0)
        self.assertGreater(int(alpha[0, 0]), 0)
