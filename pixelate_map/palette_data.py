# pixelate_map/palette_data.py
"""
Palette definitions, parsing, and per-job indexing.

Exports:
  PALETTE: list[tuple[str, str, bool]]  # [(hex, name, is_premium), ...]
  hex_to_rgba(text) -> RGBATuple              (raises ValueError)
  parse_palette_colour(text) -> RGBATuple | None
  load_palette_mapping(mapping) -> list[PaletteEntry]
  load_palette_file(path) -> list[PaletteEntry]
  default_palette_entries(include_transparent=False) -> list[PaletteEntry]
  select_palette(entries, keys=None, tier="all") -> list[PaletteEntry]
  flatten_palette(entries) -> list[int]
  palette_from_flat(values) -> PaletteRGBA | None
  build_palette_index(palette_rgba) -> PaletteIndex
"""
from __future__ import annotations

import json
import string
from pathlib import Path
from typing import Any, Collection, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .colour_convert import lab_to_lch, rgb_to_lab
from .constants import OPAQUE_ALPHA, RGBA_STRIDE
from .core_types import (
    TRANSPARENT_RGBA,
    PaletteEntry,
    PaletteIndex,
    PaletteRGBA,
    RGBATuple,
)

PALETTE: List[Tuple[str, str, bool]] = [
    ("#000000", "Black", False),
    ("#3c3c3c", "Dark Gray", False),
    ("#787878", "Gray", False),
    ("#aaaaaa", "Medium Gray", True),
    ("#d2d2d2", "Light Gray", False),
    ("#ffffff", "White", False),
    ("#600018", "Deep Red", False),
    ("#a50e1e", "Dark Red", True),
    ("#ed1c24", "Red", False),
    ("#fa8072", "Light Red", True),
    ("#e45c1a", "Dark Orange", True),
    ("#ff7f27", "Orange", False),
    ("#f6aa09", "Gold", False),
    ("#f9dd3b", "Yellow", False),
    ("#fffabc", "Light Yellow", False),
    ("#9c8431", "Dark Goldenrod", True),
    ("#c5ad31", "Goldenrod", True),
    ("#e8d45f", "Light Goldenrod", True),
    ("#4a6b3a", "Dark Olive", True),
    ("#5a944a", "Olive", True),
    ("#84c573", "Light Olive", True),
    ("#0eb968", "Dark Green", False),
    ("#13e67b", "Green", False),
    ("#87ff5e", "Light Green", False),
    ("#0c816e", "Dark Teal", False),
    ("#10aea6", "Teal", False),
    ("#13e1be", "Light Teal", False),
    ("#0f799f", "Dark Cyan", True),
    ("#60f7f2", "Cyan", False),
    ("#bbfaf2", "Light Cyan", True),
    ("#28509e", "Dark Blue", False),
    ("#4093e4", "Blue", False),
    ("#7dc7ff", "Light Blue", True),
    ("#4d31b8", "Dark Indigo", True),
    ("#6b50f6", "Indigo", False),
    ("#99b1fb", "Light Indigo", False),
    ("#4a4284", "Dark Slate Blue", True),
    ("#7a71c4", "Slate Blue", True),
    ("#b5aef1", "Light Slate Blue", True),
    ("#780c99", "Dark Purple", False),
    ("#aa38b9", "Purple", False),
    ("#e09ff9", "Light Purple", False),
    ("#cb007a", "Dark Pink", False),
    ("#ec1f80", "Pink", False),
    ("#f38da9", "Light Pink", False),
    ("#9b5249", "Dark Peach", True),
    ("#d18078", "Peach", True),
    ("#fab6a4", "Light Peach", True),
    ("#684634", "Dark Brown", False),
    ("#95682a", "Brown", False),
    ("#dba463", "Light Brown", True),
    ("#7b6352", "Dark Tan", True),
    ("#9c846b", "Tan", True),
    ("#d6b594", "Light Tan", True),
    ("#d18051", "Dark Beige", True),
    ("#f8b277", "Beige", False),
    ("#ffc5a5", "Light Beige", True),
    ("#6d643f", "Dark Stone", True),
    ("#948c6b", "Stone", True),
    ("#cdc59e", "Light Stone", True),
    ("#333941", "Dark Slate", True),
    ("#6d758d", "Slate", True),
    ("#b3b9d1", "Light Slate", True),
    ("transparent", "Transparent", False),
]

TIERS = ("all", "free", "premium")

_HEX_DIGITS = frozenset(string.hexdigits)


# Colour strings


def hex_to_rgba(text: str) -> RGBATuple:
    """
    Parse a palette colour string into RGBA.

    Accepts 'transparent' (any case, no surrounding whitespace), or
    '#rgb' / '#rrggbb' with the '#' optional (case-insensitive, trimmed).
    Hex forms are always fully opaque.
    """
    if text.lower() == "transparent":
        return TRANSPARENT_RGBA
    s = text.strip().lower()
    if s.startswith("#"):
        s = s[1:]
    if not s or not set(s) <= _HEX_DIGITS:
        raise ValueError(f"not a hex colour: {text!r}")
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) != 6:
        raise ValueError("hex must be 'rgb' or 'rrggbb'")
    return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16), OPAQUE_ALPHA)


def parse_palette_colour(text: Any) -> Optional[RGBATuple]:
    """hex_to_rgba for untrusted input: None when the string is unusable."""
    if not isinstance(text, str):
        return None
    try:
        return hex_to_rgba(text)
    except ValueError:
        return None


# Palette sources


def load_palette_mapping(mapping: Mapping[str, Any]) -> List[PaletteEntry]:
    """
    Build entries from {key: {"color": str, "is_premium": bool}}.
    Entries whose colour does not parse are left out.
    """
    entries: List[PaletteEntry] = []
    for key, item in mapping.items():
        if not isinstance(item, Mapping):
            continue
        rgba = parse_palette_colour(item.get("color"))
        if rgba is None:
            continue
        entries.append(
            PaletteEntry(
                key=str(key), rgba=rgba, is_premium=bool(item.get("is_premium", False))
            )
        )
    return entries


def load_palette_file(path: Path) -> List[PaletteEntry]:
    """Read a palette JSON file (see load_palette_mapping for the format)."""
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, Mapping):
        raise ValueError(f"palette file must hold a JSON object: {path}")
    return load_palette_mapping(data)


def default_palette_entries(include_transparent: bool = False) -> List[PaletteEntry]:
    """
    The built-in palette as entries keyed by colour name. The transparent
    entry erases whatever maps to it, so it is only included on request.
    """
    entries = [
        PaletteEntry(key=name, rgba=hex_to_rgba(hx), is_premium=premium)
        for hx, name, premium in PALETTE
    ]
    if include_transparent:
        return entries
    return [e for e in entries if e.rgba[3] != 0]


def select_palette(
    entries: Sequence[PaletteEntry],
    keys: Optional[Collection[str]] = None,
    tier: str = "all",
) -> List[PaletteEntry]:
    """
    Restrict entries to the given keys and/or tier, preserving palette order.

    tier: "all", "free" (is_premium False) or "premium" (is_premium True).
    """
    if tier not in TIERS:
        raise ValueError(f"tier must be one of {TIERS}")
    wanted = set(keys) if keys is not None else None
    out: List[PaletteEntry] = []
    for e in entries:
        if wanted is not None and e.key not in wanted:
            continue
        if tier == "free" and e.is_premium:
            continue
        if tier == "premium" and not e.is_premium:
            continue
        out.append(e)
    return out


# Flat wire form


def flatten_palette(entries: Sequence[PaletteEntry]) -> List[int]:
    """Flatten entries to [r, g, b, a, r, g, b, a, ...]."""
    out: List[int] = []
    for e in entries:
        out.extend(int(v) for v in e.rgba)
    return out[: len(out) - (len(out) % RGBA_STRIDE)]


def palette_from_flat(values: Optional[Sequence[int]]) -> Optional[PaletteRGBA]:
    """
    Flat RGBA ints to a (P,4) uint8 array. A trailing partial quadruple is
    dropped; fewer than one full entry yields None (colour mapping disabled).
    """
    if values is None:
        return None
    arr = np.asarray(values)
    if arr.ndim != 1:
        arr = arr.reshape(-1)
    usable = arr.size - (arr.size % RGBA_STRIDE)
    if usable < RGBA_STRIDE:
        return None
    rows = np.clip(arr[:usable], 0, 255).astype(np.uint8)
    return rows.reshape(-1, RGBA_STRIDE)


# Perceptual index


def build_palette_index(palette_rgba: PaletteRGBA) -> PaletteIndex:
    """
    Precompute Lab, chroma, and hue for every palette row.

    Args:
      palette_rgba: uint8 [P,4]
    Returns:
      PaletteIndex with rows aligned to palette_rgba
    """
    rgba = np.array(palette_rgba, dtype=np.uint8).reshape(-1, RGBA_STRIDE)
    if rgba.shape[0] == 0:
        raise ValueError("palette is empty")
    lab = rgb_to_lab(rgba[:, :3])
    _, chroma, hue = lab_to_lch(lab)
    for arr in (rgba, lab, chroma, hue):
        arr.flags.writeable = False
    return PaletteIndex(rgba=rgba, lab=lab, chroma=chroma, hue=hue)


__all__ = [
    "PALETTE",
    "TIERS",
    "hex_to_rgba",
    "parse_palette_colour",
    "load_palette_mapping",
    "load_palette_file",
    "default_palette_entries",
    "select_palette",
    "flatten_palette",
    "palette_from_flat",
    "build_palette_index",
]
