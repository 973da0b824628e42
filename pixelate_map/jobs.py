# pixelate_map/jobs.py
"""
Job control for the pixelate worker.

A job moves SUBMITTED -> RUNNING -> EMITTED | DISCARDED | CANCELLED.

  - Submitting a job makes it the active one at once. Any other job that
    finishes afterwards is discarded: the last submitted job wins, not the
    first one to finish.
  - Cancelling the active job clears the active marker; when that job
    finishes it is dropped as cancelled.
  - Session state (last source, block size, palette, flags, emitted id) is
    committed only when a job emits its result. The export path reads it.

Stale results and no-op exports are normal outcomes, not failures.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Sequence, Set, Tuple

from .constants import DEFAULT_MAPPER, MAPPERS
from .core_types import PaletteIndex, PixelBuffer, TileMeta, take_ownership
from .errors import UnknownMessageError
from .image_io import encode_png
from .messages import (
    CancelRequest,
    ExportFileMessage,
    ExportRequest,
    IncomingMessage,
    OutgoingMessage,
    ProcessRequest,
    ResultMessage,
)
from .palette_data import build_palette_index, palette_from_flat
from .pipeline import render_tiles
from .utils import debug_log


class JobState(enum.Enum):
    SUBMITTED = "submitted"
    RUNNING = "running"
    EMITTED = "emitted"
    DISCARDED = "discarded"
    CANCELLED = "cancelled"


@dataclass
class Job:
    """One submitted request with its inputs resolved at submit time."""

    job_id: int
    block_size: int
    source: PixelBuffer
    colorize: bool
    palette: Optional[PaletteIndex]
    mapper: str
    state: JobState = JobState.SUBMITTED


@dataclass
class SessionState:
    """Inputs of the last emitted job. Lives for the life of the worker."""

    source: Optional[PixelBuffer] = None
    block_size: Optional[int] = None
    palette: Optional[PaletteIndex] = None
    colorize: bool = True
    mapper: str = DEFAULT_MAPPER
    last_emitted_job_id: Optional[int] = None


class JobController:
    """
    Owns session state and sequences downsample -> map -> emit.

    Not thread safe: one worker drives it from a single thread.
    """

    def __init__(self, *, debug: bool = False) -> None:
        self.debug = debug
        self.session = SessionState()
        self.active_job_id: Optional[int] = None
        # Most recent source seen on any request; a request without a source
        # renders this one even before a job using it has emitted.
        self._latest_source: Optional[PixelBuffer] = None
        self._cancelled: Set[int] = set()
        self._palette_cache: Optional[Tuple[bytes, PaletteIndex]] = None

    # Submission

    def submit(self, request: ProcessRequest) -> Optional[Job]:
        """
        Make request the active job and resolve its inputs.

        Returns None when no source image has been supplied yet.
        """
        if request.mapper not in MAPPERS:
            raise ValueError(f"mapper must be one of {MAPPERS}, got {request.mapper!r}")
        if request.block_size < 1:
            raise ValueError(f"block size must be positive, got {request.block_size}")

        self.active_job_id = request.job_id
        self._cancelled.discard(request.job_id)
        if request.source is not None:
            self._latest_source = take_ownership(request.source)
        source = self._latest_source
        if source is None:
            if self.debug:
                debug_log(f"job {request.job_id}: no source image yet")
            return None

        return Job(
            job_id=request.job_id,
            block_size=int(request.block_size),
            source=source,
            colorize=True if request.colorize is None else bool(request.colorize),
            palette=self._palette_index(request.palette),
            mapper=request.mapper,
        )

    def cancel(self, job_id: int) -> None:
        """Clear the active marker if job_id holds it."""
        if self.active_job_id == job_id:
            self.active_job_id = None
            self._cancelled.add(job_id)
            if self.debug:
                debug_log(f"job {job_id}: cancelled")

    def is_active(self, job: Job) -> bool:
        return self.active_job_id == job.job_id

    def _palette_index(self, flat: Optional[Sequence[int]]) -> Optional[PaletteIndex]:
        """Palette rows -> PaletteIndex, reused while the palette is unchanged."""
        rows = palette_from_flat(flat)
        if rows is None:
            return None
        key = rows.tobytes()
        if self._palette_cache is not None and self._palette_cache[0] == key:
            return self._palette_cache[1]
        index = build_palette_index(rows)
        self._palette_cache = (key, index)
        return index

    # Execution

    def execute(self, job: Job) -> Tuple[PixelBuffer, TileMeta]:
        """Run the pipeline for job. Pure with respect to session state."""
        job.state = JobState.RUNNING
        return render_tiles(
            job.source,
            job.block_size,
            job.palette,
            job.colorize,
            job.mapper,
            debug=self.debug,
        )

    def drop(self, job: Job) -> None:
        """Terminate a job that will not emit, as cancelled or as stale."""
        if job.job_id in self._cancelled:
            self._cancelled.discard(job.job_id)
            job.state = JobState.CANCELLED
        else:
            job.state = JobState.DISCARDED
        if self.debug:
            debug_log(f"job {job.job_id}: {job.state.value}, result dropped")

    def complete(
        self, job: Job, pixels: PixelBuffer, meta: TileMeta
    ) -> Optional[ResultMessage]:
        """
        Emit job's result if it is still the active job, committing its
        inputs as the session state. Otherwise drop it without side effects.
        """
        if not self.is_active(job):
            self.drop(job)
            return None

        self.session.source = job.source
        self.session.block_size = job.block_size
        self.session.palette = job.palette
        self.session.colorize = job.colorize
        self.session.mapper = job.mapper
        self.session.last_emitted_job_id = job.job_id
        job.state = JobState.EMITTED
        return ResultMessage(job_id=job.job_id, pixels=pixels, meta=meta)

    def process(self, request: ProcessRequest) -> Optional[ResultMessage]:
        """submit -> execute -> complete, synchronously."""
        job = self.submit(request)
        if job is None:
            return None
        if not self.is_active(job):
            self.drop(job)
            return None
        pixels, meta = self.execute(job)
        return self.complete(job, pixels, meta)

    # Export

    def generate_export(self, request: ExportRequest) -> Optional[ExportFileMessage]:
        """
        Re-render the last emitted job from session state and encode it as PNG.

        A no-op (None) unless request.job_id is the last emitted job and the
        session holds a source and block size.
        """
        session = self.session
        if (
            session.last_emitted_job_id != request.job_id
            or session.source is None
            or session.block_size is None
        ):
            if self.debug:
                debug_log(f"export {request.job_id}: nothing to export")
            return None
        pixels, _meta = render_tiles(
            session.source,
            session.block_size,
            session.palette,
            session.colorize,
            session.mapper,
            debug=self.debug,
        )
        return ExportFileMessage(job_id=request.job_id, data=encode_png(pixels))

    # Dispatch

    def handle(self, message: IncomingMessage) -> Optional[OutgoingMessage]:
        """Handle one incoming message synchronously."""
        if isinstance(message, ProcessRequest):
            return self.process(message)
        if isinstance(message, CancelRequest):
            self.cancel(message.job_id)
            return None
        if isinstance(message, ExportRequest):
            return self.generate_export(message)
        raise UnknownMessageError(f"unknown message kind: {type(message).__name__}")


__all__ = ["JobState", "Job", "SessionState", "JobController"]
