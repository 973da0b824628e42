# pixelate_map/tiles.py
"""
Tile grid reduction.

Collapses every block_size x block_size region of the source into one output
pixel. The output resolution is the tile grid itself; magnifying it back for
display is left to the viewer.
"""
from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from PIL import Image

from .core_types import PixelBuffer, as_pixel_buffer


def compute_tile_dimensions(width: int, height: int, block_size: int) -> Tuple[int, int]:
    """Tile grid size (tiles_x, tiles_y); never smaller than 1x1."""
    if block_size < 1:
        raise ValueError(f"block size must be positive, got {block_size}")
    tiles_x = max(1, math.ceil(width / block_size))
    tiles_y = max(1, math.ceil(height / block_size))
    return tiles_x, tiles_y


def downsample_to_tiles(pixels: PixelBuffer, block_size: int) -> PixelBuffer:
    """
    Area-average each block into one tile.

    Edge tiles average whatever partial region remains. Averaging is alpha
    weighted (Pillow premultiplies RGBA while reducing), so transparent source
    pixels do not bleed their hidden RGB into a tile.

    Args:
      pixels: uint8 [H,W,4] (or [H,W,3], treated as opaque)
      block_size: tile edge in source pixels
    Returns:
      uint8 [tiles_y, tiles_x, 4]
    """
    src = as_pixel_buffer(pixels)
    height, width = src.shape[0], src.shape[1]
    tiles_x, tiles_y = compute_tile_dimensions(width, height, block_size)

    im = Image.fromarray(np.ascontiguousarray(src))
    reduced = im.reduce(block_size) if block_size > 1 else im.copy()
    if reduced.size != (tiles_x, tiles_y):
        reduced = im.resize((tiles_x, tiles_y), resample=Image.Resampling.BOX)
    return np.array(reduced.convert("RGBA"), dtype=np.uint8)


__all__ = ["compute_tile_dimensions", "downsample_to_tiles"]
