# pixelate_map/messages.py
"""
Messages exchanged with the pixelate worker.

Incoming: ProcessRequest, CancelRequest, ExportRequest
Outgoing: ResultMessage, ExportFileMessage, ErrorMessage

Pixel buffers inside messages change owner on send: the sender must not read
or mutate a buffer once it has been posted.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .constants import DEFAULT_MAPPER
from .core_types import PixelBuffer, TileMeta


@dataclass(frozen=True)
class ProcessRequest:
    """
    Render a tile grid.

    source may be omitted to reuse the most recently submitted image.
    colorize defaults to on. palette is flat RGBA ints.
    """

    job_id: int
    block_size: int
    source: Optional[PixelBuffer] = None
    colorize: Optional[bool] = None
    palette: Optional[Sequence[int]] = None
    mapper: str = DEFAULT_MAPPER


@dataclass(frozen=True)
class CancelRequest:
    """Suppress the pending result of job_id if it is still the active job."""

    job_id: int


@dataclass(frozen=True)
class ExportRequest:
    """Encode the last emitted job as a PNG file."""

    job_id: int


@dataclass(frozen=True)
class ResultMessage:
    job_id: int
    pixels: PixelBuffer
    meta: TileMeta


@dataclass(frozen=True)
class ExportFileMessage:
    job_id: int
    data: bytes
    media_type: str = "image/png"

    @property
    def suggested_name(self) -> str:
        return f"pixel-art-{self.job_id}.png"


@dataclass(frozen=True)
class ErrorMessage:
    """A request could not be handled. job_id is None for malformed messages."""

    job_id: Optional[int]
    reason: str


IncomingMessage = Union[ProcessRequest, CancelRequest, ExportRequest]
OutgoingMessage = Union[ResultMessage, ExportFileMessage, ErrorMessage]

__all__ = [
    "ProcessRequest",
    "CancelRequest",
    "ExportRequest",
    "ResultMessage",
    "ExportFileMessage",
    "ErrorMessage",
    "IncomingMessage",
    "OutgoingMessage",
]
