# pixelate_map/constants.py
"""
Tunables used across the project.

- Buffer layout (RGBA_*)
- Tile grid limits and defaults
- Decode cap
- Colour space constants (D65)
- Perceptual mapper weights and gates
- Work chunking
"""
from __future__ import annotations

from typing import Tuple

# ============
# Buffer layout
# ============
RGBA_STRIDE: int = 4
TRANSPARENT_ALPHA: int = 0
OPAQUE_ALPHA: int = 255

# =========
# Tile grid
# =========
MIN_BLOCK_SIZE: int = 1
MAX_BLOCK_SIZE: int = 32
DEFAULT_BLOCK_SIZE: int = 16

# Sources larger than this on either side are scaled down on load.
MAX_DIMENSION: int = 4096

# ===========
# Colour (D65)
# ===========
SRGB_LINEAR_CUTOFF: float = 0.04045
SRGB_TO_XYZ: Tuple[Tuple[float, float, float], ...] = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)
D65_WHITE: Tuple[float, float, float] = (0.95047, 1.00000, 1.08883)
LAB_DELTA: float = 6.0 / 29.0

# =====================
# Perceptual mapper
# =====================
SHORTLIST_K: int = 8

# Hue stability: sigma of local a*/b* at which hue weighting drops to zero.
HUE_SIGMA_SCALE: float = 5.0

TAU_L: float = 3.0
LAMBDA_L: float = 0.7
TAU_C: float = 3.0
LAMBDA_C: float = 0.7
LAMBDA_H: float = 0.3
C_NEUTRAL_GATE: float = 3.0
C_NEUTRAL_BIAS: float = 6.0
KAPPA_NEUTRAL: float = 0.15

# ========
# Chunking
# ========
# Pixels per distance matrix block (pixels x palette entries).
PERCEPTUAL_CHUNK_PIXELS: int = 4096
CLASSIC_CHUNK_PIXELS: int = 16384

# ======
# Mapper
# ======
MAPPER_CLASSIC: str = "classic"
MAPPER_PERCEPTUAL: str = "perceptual"
MAPPERS: Tuple[str, ...] = (MAPPER_CLASSIC, MAPPER_PERCEPTUAL)
DEFAULT_MAPPER: str = MAPPER_PERCEPTUAL

__all__ = [
    "RGBA_STRIDE",
    "TRANSPARENT_ALPHA",
    "OPAQUE_ALPHA",
    "MIN_BLOCK_SIZE",
    "MAX_BLOCK_SIZE",
    "DEFAULT_BLOCK_SIZE",
    "MAX_DIMENSION",
    "SRGB_LINEAR_CUTOFF",
    "SRGB_TO_XYZ",
    "D65_WHITE",
    "LAB_DELTA",
    "SHORTLIST_K",
    "HUE_SIGMA_SCALE",
    "TAU_L",
    "LAMBDA_L",
    "TAU_C",
    "LAMBDA_C",
    "LAMBDA_H",
    "C_NEUTRAL_GATE",
    "C_NEUTRAL_BIAS",
    "KAPPA_NEUTRAL",
    "PERCEPTUAL_CHUNK_PIXELS",
    "CLASSIC_CHUNK_PIXELS",
    "MAPPER_CLASSIC",
    "MAPPER_PERCEPTUAL",
    "MAPPERS",
    "DEFAULT_MAPPER",
]
