# pixelate_map/perceptual.py
"""
Perceptual mapper.

Two passes per visible pixel:
  1) shortlist: raw CIEDE2000 against the whole palette, keep the K nearest
  2) refine: add lightness / chroma ramp penalties, a hue penalty gated on
     pixel chroma and scaled by local hue stability, and a bias against
     saturated targets for near-neutral pixels; lowest adjusted cost wins

Lab is computed once for the whole tile grid so neighbourhood lookups reuse
it. Fully transparent pixels are left exactly as they are.
"""
from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .colour_convert import delta_e2000_matrix, hue_difference, lab_to_lch, rgb_to_lab
from .constants import (
    C_NEUTRAL_BIAS,
    C_NEUTRAL_GATE,
    HUE_SIGMA_SCALE,
    KAPPA_NEUTRAL,
    LAMBDA_C,
    LAMBDA_H,
    LAMBDA_L,
    PERCEPTUAL_CHUNK_PIXELS,
    SHORTLIST_K,
    TAU_C,
    TAU_L,
    TRANSPARENT_ALPHA,
)
from .core_types import Lab, PaletteIndex, PixelBuffer, Plane
from .utils import box_mean_2d


def hue_stability_weight(a_plane: Plane, b_plane: Plane) -> Plane:
    """
    Per-pixel weight in [0, 1] from the 3x3 neighbourhood of a*/b*.

    Population variance of a* and b* over the window (clamped at the edges),
    sigma = sqrt(var_a + var_b), weight = 1 - min(1, sigma / 5). Flat areas
    get full hue weighting, busy areas get none.
    """
    mean_a = box_mean_2d(a_plane, 1)
    mean_b = box_mean_2d(b_plane, 1)
    var_a = np.maximum(box_mean_2d(a_plane * a_plane, 1) - mean_a * mean_a, 0.0)
    var_b = np.maximum(box_mean_2d(b_plane * b_plane, 1) - mean_b * mean_b, 0.0)
    sigma = np.sqrt(var_a + var_b)
    return 1.0 - np.minimum(1.0, sigma / HUE_SIGMA_SCALE)


def shortlist_indices(raw: NDArray[np.float64], k: int) -> NDArray[np.intp]:
    """
    Column indices of the k smallest values per row, in ascending palette order.
    Returns every column when the palette is not larger than k.
    """
    n_rows, n_cols = raw.shape
    if n_cols <= k:
        return np.broadcast_to(np.arange(n_cols, dtype=np.intp), (n_rows, n_cols))
    part = np.argpartition(raw, k - 1, axis=1)[:, :k]
    part.sort(axis=1)
    return part


def refine_shortlist(
    src_lab: Lab,
    src_weight: NDArray[np.float64],
    raw: NDArray[np.float64],
    shortlist: NDArray[np.intp],
    index: PaletteIndex,
) -> NDArray[np.intp]:
    """
    Pick one palette index per pixel from its shortlist by adjusted cost.

    Args:
      src_lab: Lab [N,3]
      src_weight: hue stability [N]
      raw: CIEDE2000 [N,P]
      shortlist: palette indices [N,K]
      index: palette attributes
    Returns:
      palette indices [N]
    """
    src_L, src_C, src_h = lab_to_lch(src_lab)
    src_L = src_L[:, None]
    src_C = src_C[:, None]
    src_h = src_h[:, None]

    base = np.take_along_axis(raw, shortlist, axis=1)
    cand_L = index.lab[shortlist, 0]
    cand_C = index.chroma[shortlist]
    cand_h = index.hue[shortlist]

    cost = base.copy()
    cost += LAMBDA_L * np.maximum(0.0, np.abs(src_L - cand_L) - TAU_L)
    cost += LAMBDA_C * np.maximum(0.0, np.abs(src_C - cand_C) - TAU_C)

    hue_pen = LAMBDA_H * src_weight[:, None] * (1.0 - np.cos(hue_difference(src_h, cand_h)))
    cost += np.where(src_C >= C_NEUTRAL_GATE, hue_pen, 0.0)
    cost += np.where(src_C < C_NEUTRAL_BIAS, KAPPA_NEUTRAL * cand_C, 0.0)

    best = np.argmin(cost, axis=1)
    return shortlist[np.arange(shortlist.shape[0]), best]


def choose_palette_indices(
    src_lab: Lab,
    src_weight: NDArray[np.float64],
    index: PaletteIndex,
    *,
    k: int = SHORTLIST_K,
) -> NDArray[np.intp]:
    """Shortlist then refine for a block of pixels. Returns palette indices [N]."""
    raw = delta_e2000_matrix(src_lab, index.lab)
    shortlist = shortlist_indices(raw, max(1, int(k)))
    return refine_shortlist(src_lab, src_weight, raw, shortlist, index)


def map_perceptual(
    pixels: PixelBuffer,
    index: PaletteIndex,
    *,
    k: int = SHORTLIST_K,
    chunk_pixels: int = PERCEPTUAL_CHUNK_PIXELS,
) -> PixelBuffer:
    """
    Recolour every visible pixel to its perceptually best palette entry.

    Args:
      pixels: uint8 [H,W,4]
      index: PaletteIndex from build_palette_index, at least one entry
      k: shortlist size
      chunk_pixels: pixels per distance block, bounds peak memory
    Returns:
      new uint8 [H,W,4] buffer; the input is not modified
    """
    if len(index) == 0:
        raise ValueError("palette is empty")

    out = np.array(pixels, dtype=np.uint8, copy=True)
    visible = out[..., 3] != TRANSPARENT_ALPHA
    if not np.any(visible):
        return out

    lab = rgb_to_lab(out[..., :3])
    weight = hue_stability_weight(lab[..., 1], lab[..., 2])

    vis_lab = lab[visible]
    vis_weight = weight[visible]
    chosen = np.empty((vis_lab.shape[0],), dtype=np.intp)
    step = max(1, int(chunk_pixels))
    for start in range(0, vis_lab.shape[0], step):
        end = start + step
        chosen[start:end] = choose_palette_indices(
            vis_lab[start:end], vis_weight[start:end], index, k=k
        )

    out[visible] = index.rgba[chosen]
    return out


__all__ = [
    "hue_stability_weight",
    "shortlist_indices",
    "refine_shortlist",
    "choose_palette_indices",
    "map_perceptual",
]
