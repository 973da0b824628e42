"""
Unit tests for shared helpers.
Run from project root: python -m pytest tests/ -v
"""
import unittest

import numpy as np
from PIL import Image

from pixelate_map.utils import (
    box_mean_2d,
    colour_usage_report,
    format_seconds_compact,
    key_value_pairs_to_string,
    pillow_resample_from_name,
)


class TestBoxMean(unittest.TestCase):
    def test_matches_clamped_window(self):
        rng = np.random.default_rng(1)
        arr = rng.normal(size=(5, 7))
        got = box_mean_2d(arr, 1)
        for y in range(5):
            for x in range(7):
                window = arr[max(0, y - 1) : y + 2, max(0, x - 1) : x + 2]
                self.assertAlmostEqual(got[y, x], window.mean(), places=10)

    def test_radius_zero_is_copy(self):
        arr = np.arange(6, dtype=np.float64).reshape(2, 3)
        out = box_mean_2d(arr, 0)
        np.testing.assert_array_equal(out, arr)
        self.assertIsNot(out, arr)


class TestReports(unittest.TestCase):
    def test_colour_usage_report(self):
        px = np.zeros((2, 3, 4), dtype=np.uint8)
        px[..., 3] = 255
        px[0, 0] = (255, 0, 0, 255)
        px[1, 2] = (9, 9, 9, 0)
        report = colour_usage_report(px, {"#000000": "Black"})
        self.assertEqual(report, [("#000000", "Black", 4), ("#ff0000", "?", 1)])

    def test_all_transparent(self):
        self.assertEqual(colour_usage_report(np.zeros((2, 2, 4), dtype=np.uint8), {}), [])


class TestFormatting(unittest.TestCase):
    def test_seconds(self):
        self.assertEqual(format_seconds_compact(0.0123), "12.3ms")
        self.assertEqual(format_seconds_compact(4.5), "4.500s")
        self.assertEqual(format_seconds_compact(125.0), "2m 5.0s")

    def test_pairs(self):
        text = key_value_pairs_to_string([("Colorize", True), ("Tiles", 1234), ("K", 0.5)])
        self.assertEqual(text, "Colorize: on  Tiles: 1,234  K: 0.5")

    def test_resample_lookup(self):
        self.assertEqual(pillow_resample_from_name("box"), Image.Resampling.BOX)
        self.assertEqual(pillow_resample_from_name("weird"), Image.Resampling.BICUBIC)


if __name__ == "__main__":
    unittest.main()
