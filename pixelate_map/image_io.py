# pixelate_map/image_io.py
"""
Image I/O helpers: decode to an sRGB RGBA buffer with a size cap, and encode a
tile grid to PNG bytes.
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image, ImageCms, ImageOps, UnidentifiedImageError

from .constants import MAX_DIMENSION
from .core_types import PixelBuffer, as_pixel_buffer
from .errors import EncodeError, ImageDecodeError
from .utils import pillow_resample_from_name

ImageSource = Union[str, Path, bytes, bytearray]


def constrain_dimensions(
    width: int, height: int, max_dimension: int = MAX_DIMENSION
) -> Tuple[int, int]:
    """Scale (width, height) down proportionally so neither side exceeds the cap."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    scale = min(max_dimension / width, max_dimension / height)
    return max(1, int(width * scale)), max(1, int(height * scale))


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im,
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGBA",
            )
            if im2 is not None:
                return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            # Unusable embedded profile: treat pixels as sRGB already.
            pass

    return im.convert("RGBA")


def decode_image(
    source: ImageSource,
    max_dimension: int = MAX_DIMENSION,
    resample: str = "bicubic",
) -> PixelBuffer:
    """
    Decode a file path or encoded bytes to uint8 [H,W,4] sRGB RGBA.

    Images larger than max_dimension on either side are scaled down with the
    named Pillow filter. Raises ImageDecodeError when nothing can be decoded.
    """
    try:
        fp = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        with Image.open(fp) as im0:
            im = _convert_to_srgb_rgba(im0)
    except FileNotFoundError as exc:
        raise ImageDecodeError(f"not found: {source}") from exc
    except Image.DecompressionBombError as exc:
        raise ImageDecodeError(f"image too large to decode: {exc}") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError(f"cannot decode image: {exc}") from exc

    width, height = constrain_dimensions(im.width, im.height, max_dimension)
    if (width, height) != im.size:
        im = im.resize((width, height), resample=pillow_resample_from_name(resample))
    return np.array(im, dtype=np.uint8)


def encode_png(pixels: PixelBuffer) -> bytes:
    """Encode uint8 [H,W,4] as PNG bytes."""
    buf = io.BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(as_pixel_buffer(pixels))).save(
            buf, format="PNG"
        )
    except (OSError, ValueError) as exc:
        raise EncodeError(f"PNG encoding failed: {exc}") from exc
    return buf.getvalue()


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except Image.DecompressionBombError:
        # Oversized but recognised; decode_image reports it.
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "constrain_dimensions",
    "decode_image",
    "encode_png",
    "is_image_file",
]
