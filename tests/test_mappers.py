"""
Unit tests for the classic and perceptual palette mappers.
Run from project root: python -m pytest tests/ -v
"""
import unittest

import numpy as np

from pixelate_map.classic import map_classic, nearest_rgb_indices
from pixelate_map.core_types import PaletteIndex
from pixelate_map.palette_data import build_palette_index, palette_from_flat
from pixelate_map.perceptual import (
    hue_stability_weight,
    map_perceptual,
    refine_shortlist,
    shortlist_indices,
)

PRIMARIES = palette_from_flat(
    [
        255, 0, 0, 255,
        0, 255, 0, 255,
        0, 0, 255, 255,
        0, 0, 0, 255,
        255, 255, 255, 255,
    ]
)


def random_image(seed, height=10, width=10):
    rng = np.random.default_rng(seed)
    img = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    img[..., 3] = 255
    return img


def hand_index(labs):
    """PaletteIndex with Lab values chosen directly, bypassing sRGB."""
    lab = np.array(labs, dtype=np.float64)
    rgba = np.zeros((lab.shape[0], 4), dtype=np.uint8)
    return PaletteIndex(
        rgba=rgba,
        lab=lab,
        chroma=np.hypot(lab[:, 1], lab[:, 2]),
        hue=np.arctan2(lab[:, 2], lab[:, 1]),
    )


class TestClassicMapper(unittest.TestCase):
    def test_matches_brute_force(self):
        img = random_image(1)
        rng = np.random.default_rng(2)
        pal = rng.integers(0, 256, size=(12, 4), dtype=np.uint8)
        pal[:, 3] = 255
        out = map_classic(img, pal, chunk_pixels=7)
        for y in range(img.shape[0]):
            for x in range(img.shape[1]):
                px = img[y, x, :3].astype(int)
                dists = [int(np.sum((px - p[:3].astype(int)) ** 2)) for p in pal]
                best = dists.index(min(dists))
                self.assertEqual(out[y, x].tolist(), pal[best].tolist())

    def test_tie_goes_to_lowest_index(self):
        pal = np.array([[10, 0, 0, 255], [0, 10, 0, 255]], dtype=np.uint8)
        idx = nearest_rgb_indices(np.array([[5, 5, 0]], dtype=np.uint8), pal[:, :3])
        self.assertEqual(int(idx[0]), 0)

    def test_writes_palette_alpha(self):
        pal = np.array([[0, 0, 0, 200], [0, 0, 0, 255]], dtype=np.uint8)
        img = np.zeros((1, 1, 4), dtype=np.uint8)
        img[0, 0] = (3, 3, 3, 255)
        self.assertEqual(map_classic(img, pal)[0, 0].tolist(), [0, 0, 0, 200])

    def test_transparent_pixels_untouched(self):
        img = random_image(4, 3, 3)
        img[1, 1] = (12, 34, 56, 0)
        out = map_classic(img, PRIMARIES)
        self.assertEqual(out[1, 1].tolist(), [12, 34, 56, 0])

    def test_single_black_palette(self):
        out = map_classic(random_image(9, 4, 4), palette_from_flat([0, 0, 0, 255]))
        self.assertTrue(np.all(out == np.array([0, 0, 0, 255], dtype=np.uint8)))

    def test_input_not_modified(self):
        img = random_image(6, 4, 4)
        before = img.copy()
        map_classic(img, PRIMARIES)
        np.testing.assert_array_equal(img, before)

    def test_empty_palette_rejected(self):
        with self.assertRaises(ValueError):
            map_classic(random_image(1, 2, 2), np.zeros((0, 4), dtype=np.uint8))


class TestShortlist(unittest.TestCase):
    def test_k_smallest_in_index_order(self):
        raw = np.array([[9.0, 1.0, 8.0, 2.0, 7.0, 3.0, 6.0, 4.0, 5.0, 0.5]])
        sl = shortlist_indices(raw, 8)
        self.assertEqual(sl.shape, (1, 8))
        self.assertEqual(sl[0].tolist(), [1, 3, 4, 5, 6, 7, 8, 9])

    def test_small_palette_keeps_everything(self):
        raw = np.array([[3.0, 1.0, 2.0], [0.0, 5.0, 4.0]])
        sl = shortlist_indices(raw, 8)
        self.assertEqual(sl.tolist(), [[0, 1, 2], [0, 1, 2]])


class TestRefinement(unittest.TestCase):
    """Adjusted cost on hand-built shortlists."""

    def _pick(self, src, weight, raw, labs):
        index = hand_index(labs)
        raw = np.array([raw], dtype=np.float64)
        shortlist = shortlist_indices(raw, 8)
        chosen = refine_shortlist(
            np.array([src], dtype=np.float64), np.array([weight]), raw, shortlist, index
        )
        return int(chosen[0])

    def test_neutral_pixel_avoids_chromatic_target(self):
        labs = [(50.0, 3.0, 0.0), (50.0, 0.0, 0.0)]
        self.assertEqual(self._pick((50.0, 0.0, 0.0), 1.0, [1.0, 1.3], labs), 1)

    def test_chromatic_pixel_has_no_neutral_bias(self):
        labs = [(50.0, 6.0, 0.0), (50.0, 3.0, 0.0)]
        self.assertEqual(self._pick((50.0, 6.0, 0.0), 0.0, [1.0, 1.3], labs), 0)

    def test_lightness_ramp_penalty(self):
        labs = [(56.0, 0.0, 0.0), (52.0, 0.0, 0.0)]
        self.assertEqual(self._pick((50.0, 0.0, 0.0), 1.0, [1.0, 2.0], labs), 1)

    def test_hue_penalty_scaled_by_stability(self):
        labs = [(50.0, 0.0, 20.0), (50.0, 20.0, 0.0)]
        src = (50.0, 20.0, 0.0)
        self.assertEqual(self._pick(src, 1.0, [1.0, 1.2], labs), 1)
        self.assertEqual(self._pick(src, 0.0, [1.0, 1.2], labs), 0)

    def test_chroma_ramp_penalty(self):
        labs = [(50.0, 20.0, 0.0), (50.0, 9.0, 0.0)]
        self.assertEqual(self._pick((50.0, 9.5, 0.0), 0.0, [1.0, 1.5], labs), 1)

    def test_hue_penalty_applies_from_chroma_three(self):
        labs = [(50.0, 0.0, 3.0), (50.0, 3.0, 0.0)]
        self.assertEqual(self._pick((50.0, 3.0, 0.0), 1.0, [1.0, 1.2], labs), 1)

    def test_no_hue_penalty_below_chroma_three(self):
        labs = [(50.0, 0.0, 2.9), (50.0, 2.9, 0.0)]
        self.assertEqual(self._pick((50.0, 2.9, 0.0), 1.0, [1.0, 1.2], labs), 0)

    def test_neutral_bias_just_below_chroma_six(self):
        labs = [(50.0, 5.9, 0.0), (50.0, 2.9, 0.0)]
        self.assertEqual(self._pick((50.0, 5.9, 0.0), 0.0, [1.0, 1.3], labs), 1)

    def test_adjusted_tie_goes_to_lowest_index(self):
        labs = [(50.0, 0.0, 0.0), (50.0, 0.0, 0.0)]
        self.assertEqual(self._pick((50.0, 0.0, 0.0), 1.0, [1.0, 1.0], labs), 0)


class TestHueStability(unittest.TestCase):
    def test_flat_region_full_weight(self):
        plane = np.full((5, 5), 12.0)
        np.testing.assert_allclose(hue_stability_weight(plane, plane * 0.5), 1.0)

    def test_busy_region_no_weight(self):
        checker = np.indices((6, 6)).sum(axis=0) % 2 * 40.0 - 20.0
        weight = hue_stability_weight(checker, np.zeros_like(checker))
        self.assertTrue(np.all(weight[1:-1, 1:-1] == 0.0))

    def test_single_pixel(self):
        w = hue_stability_weight(np.array([[30.0]]), np.array([[-4.0]]))
        self.assertEqual(w.shape, (1, 1))
        self.assertAlmostEqual(float(w[0, 0]), 1.0)


class TestPerceptualMapper(unittest.TestCase):
    def test_single_black_palette(self):
        index = build_palette_index(palette_from_flat([0, 0, 0, 255]))
        out = map_perceptual(random_image(12, 5, 5), index)
        self.assertTrue(np.all(out == np.array([0, 0, 0, 255], dtype=np.uint8)))

    def test_exact_palette_colours_map_to_themselves(self):
        img = np.zeros((1, 5, 4), dtype=np.uint8)
        img[0] = PRIMARIES
        out = map_perceptual(img, build_palette_index(PRIMARIES))
        np.testing.assert_array_equal(out, img)

    def test_transparent_pixels_untouched(self):
        img = random_image(8, 4, 4)
        img[0, 3] = (200, 100, 50, 0)
        out = map_perceptual(img, build_palette_index(PRIMARIES))
        self.assertEqual(out[0, 3].tolist(), [200, 100, 50, 0])

    def test_output_drawn_from_palette(self):
        rng = np.random.default_rng(21)
        pal = rng.integers(0, 256, size=(20, 4), dtype=np.uint8)
        pal[:, 3] = 255
        out = map_perceptual(random_image(13, 8, 8), build_palette_index(pal), k=4)
        allowed = {tuple(row) for row in pal.tolist()}
        for row in out.reshape(-1, 4).tolist():
            self.assertIn(tuple(row), allowed)

    def test_deterministic_across_chunking(self):
        index = build_palette_index(PRIMARIES)
        img = random_image(14, 9, 7)
        first = map_perceptual(img, index)
        np.testing.assert_array_equal(first, map_perceptual(img, index))
        np.testing.assert_array_equal(first, map_perceptual(img, index, chunk_pixels=5))


if __name__ == "__main__":
    unittest.main()
