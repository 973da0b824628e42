# pixelate_map/classic.py
"""
Classic mapper: nearest palette entry by squared RGB distance.

Cheap baseline used when perceptual matching is off. Alpha is not part of the
distance. Ties go to the lowest palette index. Fully transparent pixels are
left exactly as they are.
"""
from __future__ import annotations

import numpy as np

from .constants import CLASSIC_CHUNK_PIXELS, RGBA_STRIDE, TRANSPARENT_ALPHA
from .core_types import PaletteRGBA, PixelBuffer


def nearest_rgb_indices(rgb: np.ndarray, palette_rgb: np.ndarray) -> np.ndarray:
    """
    For each RGB row pick the palette row of minimal squared distance.
    np.argmin returns the first minimum, which is the lowest palette index.

    Args:
      rgb: uint8 [N,3]
      palette_rgb: uint8 [P,3]
    Returns:
      intp [N]
    """
    diff = rgb.astype(np.int32)[:, None, :] - palette_rgb.astype(np.int32)[None, :, :]
    dist2 = np.einsum("npc,npc->np", diff, diff)
    return np.argmin(dist2, axis=1)


def map_classic(
    pixels: PixelBuffer,
    palette_rgba: PaletteRGBA,
    *,
    chunk_pixels: int = CLASSIC_CHUNK_PIXELS,
) -> PixelBuffer:
    """
    Replace every visible pixel with its nearest palette entry (full RGBA).

    Args:
      pixels: uint8 [H,W,4]
      palette_rgba: uint8 [P,4], P >= 1
    Returns:
      new uint8 [H,W,4] buffer; the input is not modified
    """
    pal = np.asarray(palette_rgba, dtype=np.uint8).reshape(-1, RGBA_STRIDE)
    if pal.shape[0] == 0:
        raise ValueError("palette is empty")

    out = np.array(pixels, dtype=np.uint8, copy=True)
    visible = out[..., 3] != TRANSPARENT_ALPHA
    if not np.any(visible):
        return out

    src_rgb = out[visible][:, :3]
    chosen = np.empty((src_rgb.shape[0],), dtype=np.intp)
    step = max(1, int(chunk_pixels))
    for start in range(0, src_rgb.shape[0], step):
        end = start + step
        chosen[start:end] = nearest_rgb_indices(src_rgb[start:end], pal[:, :3])

    out[visible] = pal[chosen]
    return out


__all__ = ["nearest_rgb_indices", "map_classic"]
