"""
Unit tests for image decode / encode helpers.
Run from project root: python -m pytest tests/ -v
"""
import io
import tempfile
import unittest
from pathlib import Path

import numpy as np
from PIL import Image

from pixelate_map.errors import EncodeError, ImageDecodeError
from pixelate_map.image_io import (
    constrain_dimensions,
    decode_image,
    encode_png,
    is_image_file,
)


def png_bytes(width, height, colour, mode="RGBA"):
    buf = io.BytesIO()
    Image.new(mode, (width, height), colour).save(buf, format="PNG")
    return buf.getvalue()


class TestConstrainDimensions(unittest.TestCase):
    def test_within_cap_unchanged(self):
        self.assertEqual(constrain_dimensions(4096, 100), (4096, 100))
        self.assertEqual(constrain_dimensions(1, 1), (1, 1))

    def test_scaled_proportionally(self):
        self.assertEqual(constrain_dimensions(8192, 4096), (4096, 2048))
        self.assertEqual(constrain_dimensions(50, 20, 10), (10, 4))

    def test_never_below_one(self):
        self.assertEqual(constrain_dimensions(10000, 1, 100), (100, 1))


class TestDecode(unittest.TestCase):
    def test_decode_bytes_to_rgba(self):
        pixels = decode_image(png_bytes(3, 2, (10, 20, 30, 40)))
        self.assertEqual(pixels.shape, (2, 3, 4))
        self.assertEqual(pixels.dtype, np.uint8)
        self.assertEqual(pixels[0, 0].tolist(), [10, 20, 30, 40])

    def test_rgb_becomes_opaque(self):
        pixels = decode_image(png_bytes(2, 2, (1, 2, 3), mode="RGB"))
        self.assertTrue(np.all(pixels[..., 3] == 255))

    def test_cap_applied(self):
        pixels = decode_image(png_bytes(50, 20, (0, 0, 255, 255)), max_dimension=10)
        self.assertEqual(pixels.shape, (4, 10, 4))

    def test_garbage_bytes(self):
        with self.assertRaises(ImageDecodeError):
            decode_image(b"definitely not an image")

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ImageDecodeError):
                decode_image(Path(tmp) / "nope.png")

    def _lower_pixel_limit(self, limit):
        old = Image.MAX_IMAGE_PIXELS
        Image.MAX_IMAGE_PIXELS = limit
        self.addCleanup(setattr, Image, "MAX_IMAGE_PIXELS", old)

    def test_oversized_source_is_a_decode_error(self):
        self._lower_pixel_limit(10_000)
        with self.assertRaises(ImageDecodeError):
            decode_image(png_bytes(300, 300, (0, 0, 0, 255)))

    def test_oversized_file_still_listed(self):
        self._lower_pixel_limit(10_000)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "huge.png"
            path.write_bytes(png_bytes(300, 300, (0, 0, 0, 255)))
            self.assertTrue(is_image_file(path))
            with self.assertRaises(ImageDecodeError):
                decode_image(path)

    def test_decode_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "in.png"
            path.write_bytes(png_bytes(4, 4, (200, 0, 0, 255)))
            self.assertTrue(is_image_file(path))
            self.assertEqual(decode_image(path).shape, (4, 4, 4))
            junk = Path(tmp) / "junk.png"
            junk.write_bytes(b"\x00" * 16)
            self.assertFalse(is_image_file(junk))


class TestEncode(unittest.TestCase):
    def test_png_preserves_pixels(self):
        rng = np.random.default_rng(0)
        pixels = rng.integers(0, 256, size=(3, 5, 4), dtype=np.uint8)
        data = encode_png(pixels)
        self.assertTrue(data.startswith(b"\x89PNG"))
        np.testing.assert_array_equal(decode_image(data), pixels)

    def test_rejects_non_image(self):
        with self.assertRaises(TypeError):
            encode_png(np.zeros((2, 2), dtype=np.uint8))

    def test_encode_error_type(self):
        self.assertTrue(issubclass(EncodeError, RuntimeError))


if __name__ == "__main__":
    unittest.main()
