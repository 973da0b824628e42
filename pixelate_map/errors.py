# pixelate_map/errors.py
"""Exception types raised by the pipeline, the worker, and image I/O."""
from __future__ import annotations


class ImageDecodeError(ValueError):
    """Source image is missing or cannot be decoded."""


class UnknownMessageError(TypeError):
    """A message of an unrecognised kind reached the worker."""


class EncodeError(RuntimeError):
    """A rendered tile grid could not be encoded into an image file."""


__all__ = ["ImageDecodeError", "UnknownMessageError", "EncodeError"]
