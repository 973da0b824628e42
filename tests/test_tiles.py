"""
Unit tests for tile grid reduction.
Run from project root: python -m pytest tests/ -v
"""
import math
import unittest

import numpy as np

from pixelate_map.core_types import as_pixel_buffer, pixel_buffer_from_flat, take_ownership
from pixelate_map.tiles import compute_tile_dimensions, downsample_to_tiles


def solid(height, width, rgba):
    img = np.empty((height, width, 4), dtype=np.uint8)
    img[...] = rgba
    return img


class TestTileDimensions(unittest.TestCase):
    def test_ceil_division_grid(self):
        for width in (1, 2, 15, 16, 17, 33, 100):
            for height in (1, 7, 32, 65):
                for block in (1, 2, 3, 16, 32):
                    with self.subTest(w=width, h=height, b=block):
                        self.assertEqual(
                            compute_tile_dimensions(width, height, block),
                            (
                                max(1, math.ceil(width / block)),
                                max(1, math.ceil(height / block)),
                            ),
                        )

    def test_block_larger_than_image(self):
        self.assertEqual(compute_tile_dimensions(5, 3, 32), (1, 1))

    def test_rejects_non_positive_block(self):
        with self.assertRaises(ValueError):
            compute_tile_dimensions(10, 10, 0)


class TestDownsample(unittest.TestCase):
    def test_solid_red_32_block_16(self):
        """A 32x32 solid red source at block 16 becomes a 2x2 red grid."""
        tiles = downsample_to_tiles(solid(32, 32, (255, 0, 0, 255)), 16)
        self.assertEqual(tiles.shape, (2, 2, 4))
        self.assertTrue(np.all(tiles == np.array([255, 0, 0, 255], dtype=np.uint8)))

    def test_shape_follows_tile_counts(self):
        tiles = downsample_to_tiles(solid(17, 33, (10, 20, 30, 255)), 16)
        self.assertEqual(tiles.shape, (2, 3, 4))

    def test_area_average(self):
        img = solid(2, 2, (0, 0, 0, 255))
        img[0, 0, :3] = 255
        img[1, 1, :3] = 255
        tiles = downsample_to_tiles(img, 2)
        self.assertEqual(tiles.shape, (1, 1, 4))
        for channel in tiles[0, 0, :3]:
            self.assertLessEqual(abs(int(channel) - 128), 1)
        self.assertEqual(int(tiles[0, 0, 3]), 255)

    def test_edge_tile_averages_remaining_pixels(self):
        img = solid(1, 3, (255, 0, 0, 255))
        img[0, 2] = (0, 0, 255, 255)
        tiles = downsample_to_tiles(img, 2)
        self.assertEqual(tiles.shape, (1, 2, 4))
        np.testing.assert_allclose(tiles[0, 0].astype(int), [255, 0, 0, 255], atol=1)
        np.testing.assert_allclose(tiles[0, 1].astype(int), [0, 0, 255, 255], atol=1)

    def test_block_one_is_identity(self):
        rng = np.random.default_rng(5)
        img = rng.integers(0, 256, size=(4, 6, 4), dtype=np.uint8)
        img[..., 3] = 255
        np.testing.assert_array_equal(downsample_to_tiles(img, 1), img)

    def test_transparent_source_stays_transparent(self):
        tiles = downsample_to_tiles(solid(8, 8, (0, 0, 0, 0)), 4)
        self.assertTrue(np.all(tiles[..., 3] == 0))

    def test_rgb_input_is_opaque(self):
        tiles = downsample_to_tiles(np.full((4, 4, 3), 200, dtype=np.uint8), 2)
        self.assertTrue(np.all(tiles[..., 3] == 255))

    def test_read_only_source(self):
        src = take_ownership(solid(4, 4, (1, 2, 3, 255)))
        tiles = downsample_to_tiles(src, 4)
        self.assertEqual(tiles[0, 0].tolist(), [1, 2, 3, 255])


class TestPixelBuffers(unittest.TestCase):
    def test_as_pixel_buffer_validates(self):
        with self.assertRaises(TypeError):
            as_pixel_buffer(np.zeros((2, 2, 4), dtype=np.float32))
        with self.assertRaises(TypeError):
            as_pixel_buffer(np.zeros((2, 2), dtype=np.uint8))
        with self.assertRaises(ValueError):
            as_pixel_buffer(np.zeros((0, 2, 4), dtype=np.uint8))
        with self.assertRaises(TypeError):
            as_pixel_buffer([[[1, 2, 3, 255]]])

    def test_from_flat(self):
        buf = pixel_buffer_from_flat(bytes(range(8)), 2, 1)
        self.assertEqual(buf.shape, (1, 2, 4))
        self.assertEqual(buf[0, 1].tolist(), [4, 5, 6, 7])
        with self.assertRaises(ValueError):
            pixel_buffer_from_flat([0] * 7, 2, 1)

    def test_take_ownership_freezes(self):
        buf = take_ownership(solid(1, 1, (9, 9, 9, 255)))
        self.assertFalse(buf.flags.writeable)


if __name__ == "__main__":
    unittest.main()
