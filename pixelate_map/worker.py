# pixelate_map/worker.py
"""
Background pixelate worker.

One thread owns a JobController and talks to the caller only through queues:
post() is fire-and-forget, results come back through get() (or a callback).
Within the worker a job's compute runs to completion without interleaving.

Before and after each compute the worker takes whatever is already queued
without blocking. Cancels apply at once and new process requests are
submitted at once (so they become the active job) with their compute
deferred in arrival order. A superseded or cancelled job therefore emits
nothing, and each job emits at most one result.

An exception raised while handling a message is reported as an ErrorMessage
for that job and the loop keeps running.
"""
from __future__ import annotations

import queue
import threading
from collections import deque
from typing import Any, Callable, Deque, Optional, Tuple, Union

from .jobs import Job, JobController
from .messages import (
    CancelRequest,
    ErrorMessage,
    IncomingMessage,
    OutgoingMessage,
    ProcessRequest,
)
from .utils import error

_STOP = object()

# Deferred work: either a submitted job awaiting compute or a message to handle.
_Pending = Tuple[str, Union[Job, Any]]


class PixelateWorker:
    """
    Single background worker driving a JobController.

    Usage:
      with PixelateWorker() as worker:
          worker.post(ProcessRequest(job_id=1, block_size=16, source=img))
          result = worker.get(timeout=10)
    """

    def __init__(
        self,
        *,
        debug: bool = False,
        on_message: Optional[Callable[[OutgoingMessage], None]] = None,
    ) -> None:
        self._controller = JobController(debug=debug)
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._outbox: "queue.Queue[OutgoingMessage]" = queue.Queue()
        self._on_message = on_message
        self._pending: Deque[_Pending] = deque()
        self._stopping = False
        self._thread = threading.Thread(
            target=self._run, name="pixelate-worker", daemon=True
        )
        self._started = False

    # Caller side

    def start(self) -> "PixelateWorker":
        if not self._started:
            self._started = True
            self._thread.start()
        return self

    def post(self, message: IncomingMessage) -> None:
        """Send a request. Ownership of any pixel buffer passes to the worker."""
        self._inbox.put(message)

    def get(self, timeout: Optional[float] = None) -> OutgoingMessage:
        """Next outgoing message; raises queue.Empty on timeout."""
        return self._outbox.get(timeout=timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop after the messages already posted have been handled."""
        self._inbox.put(_STOP)
        if self._started:
            self._thread.join(timeout)

    def __enter__(self) -> "PixelateWorker":
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # Worker side

    def _emit(self, message: OutgoingMessage) -> None:
        if self._on_message is not None:
            self._on_message(message)
        else:
            self._outbox.put(message)

    def _run(self) -> None:
        while True:
            if not self._pending:
                if self._stopping:
                    return
                self._accept(self._inbox.get())
                continue
            kind, item = self._pending.popleft()
            if kind == "job":
                self._run_job(item)
            else:
                self._handle(item)

    def _accept(self, message: Any) -> None:
        """Take one message off the inbox. Cheap: no pixel work happens here."""
        if message is _STOP:
            self._stopping = True
            return
        if isinstance(message, ProcessRequest):
            try:
                job = self._controller.submit(message)
            except Exception as exc:
                self._report(message.job_id, exc)
                return
            if job is not None:
                self._pending.append(("job", job))
            return
        if isinstance(message, CancelRequest):
            self._controller.cancel(message.job_id)
            return
        self._pending.append(("message", message))

    def _absorb(self) -> None:
        """Accept everything already queued, without waiting."""
        while True:
            try:
                message = self._inbox.get_nowait()
            except queue.Empty:
                return
            self._accept(message)

    def _run_job(self, job: Job) -> None:
        self._absorb()
        if not self._controller.is_active(job):
            self._controller.drop(job)
            return
        try:
            pixels, meta = self._controller.execute(job)
        except Exception as exc:
            self._report(job.job_id, exc)
            return
        self._absorb()
        result = self._controller.complete(job, pixels, meta)
        if result is not None:
            self._emit(result)

    def _handle(self, message: Any) -> None:
        try:
            reply = self._controller.handle(message)
        except Exception as exc:
            self._report(getattr(message, "job_id", None), exc)
            return
        if reply is not None:
            self._emit(reply)

    def _report(self, job_id: Optional[int], exc: Exception) -> None:
        reason = f"{type(exc).__name__}: {exc}"
        error(f"job {job_id}: {reason}")
        self._emit(ErrorMessage(job_id=job_id, reason=reason))


__all__ = ["PixelateWorker"]
