# pixelate_map/utils.py
"""
Shared utilities for pixelate_map.

Includes time formatting, the Pillow filter table, a clamped-window box mean
used by the perceptual mapper, a colour usage report, and tidy logging.
"""
from __future__ import annotations

import sys
from typing import Any, Dict, Iterable, List, Mapping, Optional, TextIO, Tuple

import numpy as np
from PIL import Image

from .core_types import PixelBuffer, rgba_to_hex


# Time formatting


def format_seconds_compact(seconds: float) -> str:
    """'12.3ms' under a second, '4.567s' under a minute, else '2m 5.0s'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes, rest = divmod(seconds, 60.0)
    return f"{int(minutes)}m {rest:.1f}s"


# Pillow filters

RESAMPLE_FILTERS: Dict[str, Image.Resampling] = {
    "nearest": Image.Resampling.NEAREST,
    "box": Image.Resampling.BOX,
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}


def pillow_resample_from_name(name: str) -> Image.Resampling:
    """Filter enum for a CLI name; unknown names fall back to bicubic."""
    return RESAMPLE_FILTERS.get(name, Image.Resampling.BICUBIC)


# Reports


def colour_usage_report(
    pixels: PixelBuffer, name_of: Mapping[str, str]
) -> List[Tuple[str, str, int]]:
    """
    Count visible (alpha > 0) colours of a tile grid.

    Returns a list of (hex, name, count), most used first. Colours missing
    from name_of are named '?'.
    """
    visible = pixels[pixels[..., 3] > 0]
    if visible.shape[0] == 0:
        return []
    uniques, counts = np.unique(visible[:, :3], axis=0, return_counts=True)
    order = np.argsort(-counts, kind="stable")
    report: List[Tuple[str, str, int]] = []
    for i in order:
        hex_str = rgba_to_hex(uniques[i])
        report.append((hex_str, name_of.get(hex_str, "?"), int(counts[i])))
    return report


# Lightweight image-space ops


def box_mean_2d(arr: np.ndarray, radius: int) -> np.ndarray:
    """
    Mean over a (2r+1)^2 window. The window is clamped to the array bounds,
    so border pixels average fewer samples. Returns float64.
    """
    src = np.asarray(arr, dtype=np.float64)
    if radius <= 0:
        return src.copy()
    height, width = src.shape
    # Summed-area table with a zero row/column in front.
    sat = np.zeros((height + 1, width + 1), dtype=np.float64)
    sat[1:, 1:] = src.cumsum(axis=0).cumsum(axis=1)

    rows = np.arange(height)
    cols = np.arange(width)
    top = np.maximum(rows - radius, 0)[:, None]
    bottom = np.minimum(rows + radius + 1, height)[:, None]
    left = np.maximum(cols - radius, 0)[None, :]
    right = np.minimum(cols + radius + 1, width)[None, :]

    total = sat[bottom, right] - sat[top, right] - sat[bottom, left] + sat[top, left]
    return total / ((bottom - top) * (right - left))


# CLI logging


def enable_line_buffered_stdout() -> None:
    """Line-buffer stdout where the stream supports reconfigure()."""
    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        reconfig(line_buffering=True, write_through=True)


def format_value(value: Any) -> str:
    """'on'/'off' for bools, 1,234 for ints, trimmed 3dp for floats."""
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".")
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """Format (name, value) pairs as 'Name: value' blocks joined by sep."""
    return sep.join(f"{name}{eq}{format_value(value)}" for name, value in pairs)


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single config line, e.g.:
      [run] Block size: 16  Mapper: perceptual  Colorize: on
    Routed through debug_log when debug is set, else log.
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    _emit("", f"\n=== {title} ===")


def _emit(prefix: str, message: str, stream: Optional[TextIO] = None) -> None:
    print(f"{prefix}{message}", file=stream or sys.stdout, flush=True)


def log(message: str) -> None:
    _emit("", message)


def debug_log(message: str) -> None:
    _emit("[debug] ", message)


def warn(message: str) -> None:
    _emit("[warn] ", message)


def error(message: str) -> None:
    """Error line, to stderr."""
    _emit("[error] ", message, sys.stderr)


__all__ = [
    "format_seconds_compact",
    "RESAMPLE_FILTERS",
    "pillow_resample_from_name",
    "colour_usage_report",
    "box_mean_2d",
    "enable_line_buffered_stdout",
    "format_value",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
