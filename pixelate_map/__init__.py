# pixelate_map/__init__.py
"""
pixelate_map package.

Purpose:
  Turn images into pixel-art tile grids and optionally recolour them to a
  palette. See pixelate.py for the CLI.

Public API:
  render_tiles   : downsample to the tile grid, then optional palette mapping.
  map_classic    : nearest palette entry by RGB distance.
  map_perceptual : CIEDE2000 shortlist with perceptual penalties.
  JobController  : job sequencing with last-submitted-wins semantics.
  PixelateWorker : background worker speaking the message protocol.
  colour_convert : colour space transforms (rgb_to_lab, delta_e2000_*, etc.).
  palette_data   : palette parsing, flattening, and indexing.
  messages       : request / result message types.

Quick start:
  from pixelate_map import PixelateWorker, ProcessRequest
  from pixelate_map.image_io import decode_image
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import messages
from . import palette_data
from . import utils

from .classic import map_classic  # noqa: E402,F401
from .jobs import JobController, JobState  # noqa: E402,F401
from .messages import (  # noqa: E402,F401
    CancelRequest,
    ErrorMessage,
    ExportFileMessage,
    ExportRequest,
    ProcessRequest,
    ResultMessage,
)
from .perceptual import map_perceptual  # noqa: E402,F401
from .pipeline import render_tiles  # noqa: E402,F401
from .worker import PixelateWorker  # noqa: E402,F401

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "messages",
    "palette_data",
    "utils",
    "map_classic",
    "map_perceptual",
    "render_tiles",
    "JobController",
    "JobState",
    "PixelateWorker",
    "ProcessRequest",
    "CancelRequest",
    "ExportRequest",
    "ResultMessage",
    "ExportFileMessage",
    "ErrorMessage",
]
