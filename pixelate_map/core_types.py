# pixelate_map/core_types.py
"""
Core type aliases, small value objects, and lightweight helpers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .constants import RGBA_STRIDE

# Basic aliases

RGBATuple = Tuple[int, int, int, int]
HexStr = str

PixelBuffer = NDArray[np.uint8]  # (H, W, 4) RGBA
PaletteRGBA = NDArray[np.uint8]  # (P, 4)
Lab = NDArray[np.float64]  # (..., 3) CIE Lab
Plane = NDArray[np.float64]  # (H, W) single channel

TRANSPARENT_RGBA: RGBATuple = (0, 0, 0, 0)

# Value objects


@dataclass(frozen=True)
class PaletteEntry:
    """Palette entry as loaded from a palette file. The tier flag is UI metadata."""

    key: str
    rgba: RGBATuple
    is_premium: bool = False


@dataclass(frozen=True)
class PaletteIndex:
    """Per-job perceptual attributes for every palette entry, row-aligned."""

    rgba: PaletteRGBA  # (P, 4) uint8, written back on a match
    lab: Lab  # (P, 3)
    chroma: NDArray[np.float64]  # (P,)
    hue: NDArray[np.float64]  # (P,) radians, atan2(b, a)

    def __len__(self) -> int:
        return int(self.rgba.shape[0])


@dataclass(frozen=True)
class TileMeta:
    """Output geometry of one rendered tile grid."""

    out_width: int
    out_height: int
    tiles_x: int
    tiles_y: int
    total_pixels: int
    block_size: int

    def as_dict(self) -> Dict[str, int]:
        """Wire form with the protocol's field names."""
        return {
            "outWidth": self.out_width,
            "outHeight": self.out_height,
            "tilesX": self.tiles_x,
            "tilesY": self.tiles_y,
            "totalPixels": self.total_pixels,
            "blockSize": self.block_size,
        }


# Small helpers


def rgba_to_hex(rgba: Sequence[int]) -> HexStr:
    """RGB(A) sequence to lowercase hex string '#rrggbb'. Alpha is ignored."""
    return f"#{int(rgba[0]):02x}{int(rgba[1]):02x}{int(rgba[2]):02x}"


def as_pixel_buffer(image: np.ndarray) -> PixelBuffer:
    """
    Validate a uint8 (H,W,3) or (H,W,4) image and return it as RGBA.
    RGB input gets an opaque alpha plane.
    """
    if not isinstance(image, np.ndarray):
        raise TypeError(f"expected a numpy image, got {type(image).__name__}")
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] not in (3, 4):
        raise TypeError("expected uint8 (H,W,3/4) image")
    if image.shape[0] < 1 or image.shape[1] < 1:
        raise ValueError("image must be at least 1x1")
    if image.shape[-1] == 4:
        return image  # type: ignore[return-value]
    out = np.empty(image.shape[:2] + (4,), dtype=np.uint8)
    out[..., :3] = image
    out[..., 3] = 255
    return out


def pixel_buffer_from_flat(
    data: Union[bytes, bytearray, Sequence[int], np.ndarray], width: int, height: int
) -> PixelBuffer:
    """Build an (H,W,4) buffer from flat RGBA samples; length must be W*H*4."""
    if width < 1 or height < 1:
        raise ValueError("width and height must be positive")
    if isinstance(data, (bytes, bytearray)):
        flat = np.frombuffer(data, dtype=np.uint8)
    else:
        flat = np.asarray(data)
        if flat.dtype != np.uint8:
            if flat.size and (flat.min() < 0 or flat.max() > 255):
                raise ValueError("samples must be in 0..255")
            flat = flat.astype(np.uint8)
    expected = width * height * RGBA_STRIDE
    if flat.size != expected:
        raise ValueError(f"expected {expected} samples, got {flat.size}")
    return flat.reshape(height, width, RGBA_STRIDE).copy()


def take_ownership(image: np.ndarray) -> PixelBuffer:
    """
    Accept a source buffer handed to a job. The array is frozen so the sender
    cannot keep mutating it after the handoff.
    """
    buf = np.ascontiguousarray(as_pixel_buffer(image))
    buf.flags.writeable = False
    return buf


__all__ = [
    # aliases / types
    "RGBATuple",
    "HexStr",
    "PixelBuffer",
    "PaletteRGBA",
    "Lab",
    "Plane",
    "TRANSPARENT_RGBA",
    # value objects
    "PaletteEntry",
    "PaletteIndex",
    "TileMeta",
    # helpers
    "rgba_to_hex",
    "as_pixel_buffer",
    "pixel_buffer_from_flat",
    "take_ownership",
]
