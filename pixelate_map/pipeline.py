# pixelate_map/pipeline.py
"""
Render pipeline: source -> tile grid -> optional palette mapping.

Shared by job processing and the export path so both produce the same pixels
for the same inputs.
"""
from __future__ import annotations

import time
from typing import Optional, Tuple

from .classic import map_classic
from .constants import MAPPER_CLASSIC, MAPPER_PERCEPTUAL, MAPPERS
from .core_types import PaletteIndex, PixelBuffer, TileMeta
from .perceptual import map_perceptual
from .tiles import compute_tile_dimensions, downsample_to_tiles
from .utils import debug_log, format_seconds_compact, key_value_pairs_to_string


def tile_meta(width: int, height: int, block_size: int) -> TileMeta:
    """Geometry of the tile grid for a width x height source."""
    tiles_x, tiles_y = compute_tile_dimensions(width, height, block_size)
    return TileMeta(
        out_width=tiles_x,
        out_height=tiles_y,
        tiles_x=tiles_x,
        tiles_y=tiles_y,
        total_pixels=tiles_x * tiles_y,
        block_size=block_size,
    )


def apply_palette(
    tiles: PixelBuffer, palette: PaletteIndex, mapper: str
) -> PixelBuffer:
    """Recolour a tile grid with the requested mapper variant."""
    if mapper == MAPPER_CLASSIC:
        return map_classic(tiles, palette.rgba)
    if mapper == MAPPER_PERCEPTUAL:
        return map_perceptual(tiles, palette)
    raise ValueError(f"mapper must be one of {MAPPERS}, got {mapper!r}")


def render_tiles(
    source: PixelBuffer,
    block_size: int,
    palette: Optional[PaletteIndex],
    colorize: bool,
    mapper: str,
    *,
    debug: bool = False,
) -> Tuple[PixelBuffer, TileMeta]:
    """
    Downsample source to its tile grid, then map colours when colorize is on
    and a palette with at least one entry is present.

    Returns:
      (uint8 [tiles_y, tiles_x, 4], TileMeta)
    """
    if mapper not in MAPPERS:
        raise ValueError(f"mapper must be one of {MAPPERS}, got {mapper!r}")
    height, width = int(source.shape[0]), int(source.shape[1])
    meta = tile_meta(width, height, block_size)

    t0 = time.perf_counter()
    tiles = downsample_to_tiles(source, block_size)
    t1 = time.perf_counter()
    mapped = colorize and palette is not None and len(palette) > 0
    if mapped:
        tiles = apply_palette(tiles, palette, mapper)  # type: ignore[arg-type]
    t2 = time.perf_counter()

    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Source", f"{width}x{height}"),
                    ("Tiles", f"{meta.tiles_x}x{meta.tiles_y}"),
                    ("Mapper", mapper if mapped else "-"),
                    ("Palette", len(palette) if palette is not None else 0),
                    ("Downsample", format_seconds_compact(t1 - t0)),
                    ("Map", format_seconds_compact(t2 - t1)),
                ]
            )
        )
    return tiles, meta


__all__ = ["tile_meta", "apply_palette", "render_tiles"]
