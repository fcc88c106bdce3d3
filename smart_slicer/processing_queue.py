"""Single-flight scheduler that (re)processes every slice on config changes.

Each slice moves through ``idle -> pending -> processing -> done``.  At most
one slice is ``processing`` at any time and it is always the lowest-index
``pending`` slice.  State only changes by handling event objects, in order,
under one lock:

* :class:`ConfigChanged` - a new :class:`ProcessConfig` snapshot
* :class:`OriginalReplaced` - the editor swapped one slice's original buffer
* :class:`SlicesReplaced` - geometry or source changed; a whole new slice list
* :class:`SliceFinished` / :class:`SliceFailed` - the in-flight job completed

A running transform is never interrupted.  When the config or the slice it
works on changes underneath it, its result is simply discarded on arrival
and the slice goes back to ``pending``.

Jobs run through a *dispatcher*: a callable that receives a zero-argument
job and runs it somewhere (an executor, a Qt thread pool).  Without one the
owner drives the queue with :meth:`SliceProcessingQueue.run_next`.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Sequence, Tuple

from PIL import Image

from .errors import RenderContextError
from .models import ProcessConfig, Slice, SliceStatus
from .processor import SliceProcessor

logger = logging.getLogger(__name__)

Processor = Callable[[Image.Image, ProcessConfig], Image.Image]
Dispatcher = Callable[[Callable[[], None]], None]
Listener = Callable[[Tuple[Slice, ...]], None]


@dataclass(frozen=True)
class ConfigChanged:
    config: ProcessConfig


@dataclass(frozen=True, eq=False)
class OriginalReplaced:
    index: int
    buffer: Image.Image


@dataclass(frozen=True, eq=False)
class SlicesReplaced:
    slices: Tuple[Slice, ...]


@dataclass(frozen=True, eq=False)
class _Job:
    index: int
    epoch: int
    slice_id: str
    buffer: Image.Image
    config: ProcessConfig


@dataclass(frozen=True, eq=False)
class SliceFinished:
    job: _Job
    result: Image.Image


@dataclass(frozen=True, eq=False)
class SliceFailed:
    job: _Job
    error: BaseException


class SliceProcessingQueue:
    """Owns the slice list and schedules processing one slice at a time."""

    def __init__(
        self,
        slices: Sequence[Slice] = (),
        config: Optional[ProcessConfig] = None,
        *,
        processor: Optional[Processor] = None,
        dispatcher: Optional[Dispatcher] = None,
        listener: Optional[Listener] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._settled = threading.Condition(self._lock)
        self._events: Deque[object] = deque()
        self._draining = False
        self._processor: Processor = processor or SliceProcessor()
        self._dispatcher = dispatcher
        self._listeners: List[Listener] = [listener] if listener else []

        self._config = config or ProcessConfig()
        self._slices: Tuple[Slice, ...] = ()
        self._epoch = 0
        self._in_flight: Optional[_Job] = None
        self._in_flight_stale = False
        self._in_flight_config_changed = False
        self._fatal: Optional[RenderContextError] = None

        self._post(SlicesReplaced(tuple(slices)))

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def slices(self) -> Tuple[Slice, ...]:
        """Current ordered slice list.  Each call returns the latest snapshot."""
        return self._slices

    @property
    def config(self) -> ProcessConfig:
        return self._config

    @property
    def epoch(self) -> int:
        """Counter bumped by every config change and slice list replacement."""
        return self._epoch

    @property
    def in_flight_index(self) -> Optional[int]:
        job = self._in_flight
        return job.index if job is not None else None

    @property
    def fatal_error(self) -> Optional[RenderContextError]:
        return self._fatal

    @property
    def total(self) -> int:
        return len(self._slices)

    @property
    def pending_count(self) -> int:
        return sum(1 for s in self._slices if s.status is SliceStatus.PENDING)

    @property
    def done_count(self) -> int:
        return sum(1 for s in self._slices if s.status is SliceStatus.DONE)

    @property
    def is_busy(self) -> bool:
        return self._in_flight is not None or (self._fatal is None and self.pending_count > 0)

    def statuses(self) -> List[SliceStatus]:
        return [s.status for s in self._slices]

    def add_listener(self, listener: Listener) -> None:
        """Call ``listener`` with the new slice tuple after every state change."""
        with self._lock:
            self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Events from the outside
    # ------------------------------------------------------------------
    def enqueue_config_change(self, config: ProcessConfig) -> None:
        self._post(ConfigChanged(config))

    def replace_slice_original(self, index: int, buffer: Image.Image) -> None:
        """Swap in an edited original for slice ``index`` and requeue it."""
        with self._lock:
            if not 0 <= index < len(self._slices):
                raise IndexError(f"Slice index out of range: {index}")
        self._post(OriginalReplaced(index, buffer.convert("RGBA")))

    def replace_slices(self, slices: Sequence[Slice]) -> None:
        """Replace the whole slice list after a geometry or source change."""
        self._post(SlicesReplaced(tuple(slices)))

    # ------------------------------------------------------------------
    # Driving the queue without a dispatcher
    # ------------------------------------------------------------------
    def run_next(self) -> Optional[int]:
        """Process the lowest pending slice on the calling thread.

        Returns the processed index, or ``None`` when nothing was claimed
        (no pending slice, inactive config, or the slot is taken).

        Raises:
            RenderContextError: If a drawing surface could not be created
        """
        with self._lock:
            if self._fatal is not None:
                raise self._fatal
            job = self._claim_next()
        if job is None:
            return None
        self._publish()
        self._run_job(job)
        if self._fatal is not None:
            raise self._fatal
        return job.index

    def run_until_idle(self) -> int:
        """Call :meth:`run_next` until no work is left; return the number of jobs run."""
        count = 0
        while self.run_next() is not None:
            count += 1
        return count

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no slice is pending or processing (dispatcher mode)."""
        with self._settled:
            return self._settled.wait_for(lambda: not self.is_busy, timeout)

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------
    def _post(self, event: object) -> None:
        with self._lock:
            self._events.append(event)
            if self._draining:
                return
            self._draining = True
            try:
                while self._events:
                    self._handle(self._events.popleft())
                    if not self._events:
                        self._schedule()
            finally:
                self._draining = False
                self._settled.notify_all()
        self._publish()

    def _handle(self, event: object) -> None:
        if isinstance(event, ConfigChanged):
            self._on_config_changed(event.config)
        elif isinstance(event, OriginalReplaced):
            self._on_original_replaced(event.index, event.buffer)
        elif isinstance(event, SlicesReplaced):
            self._on_slices_replaced(event.slices)
        elif isinstance(event, SliceFinished):
            self._on_finished(event.job, event.result)
        elif isinstance(event, SliceFailed):
            self._on_failed(event.job, event.error)
        else:
            raise TypeError(f"Unknown queue event: {event!r}")

    def _requeue_status(self) -> SliceStatus:
        return SliceStatus.PENDING if self._config.is_active else SliceStatus.IDLE

    def _on_config_changed(self, config: ProcessConfig) -> None:
        if config == self._config:
            return
        self._config = config
        self._epoch += 1
        self._in_flight_stale = True
        self._in_flight_config_changed = True
        status = self._requeue_status()
        logger.debug("Config epoch %d: %s -> all slices %s", self._epoch, config, status.value)
        self._slices = tuple(
            s if self._is_in_flight(i, s) else s.evolve(status=status, processed=None, error=None)
            for i, s in enumerate(self._slices)
        )

    def _on_original_replaced(self, index: int, buffer: Image.Image) -> None:
        if not 0 <= index < len(self._slices):
            logger.warning("Dropping edit for slice %d; slice list changed", index)
            return
        current = self._slices[index]
        if self._is_in_flight(index, current):
            self._in_flight_stale = True
            updated = current.evolve(original=buffer)
        else:
            processed = current.processed if self._config.is_active else None
            updated = current.evolve(
                original=buffer, processed=processed, status=self._requeue_status(), error=None
            )
        self._replace_at(index, updated)

    def _on_slices_replaced(self, slices: Tuple[Slice, ...]) -> None:
        self._epoch += 1
        self._in_flight_stale = True
        self._fatal = None
        status = self._requeue_status()
        self._slices = tuple(s.evolve(status=status, processed=None, error=None) for s in slices)
        logger.debug("Slice list replaced (%d slices, epoch %d)", len(slices), self._epoch)

    def _on_finished(self, job: _Job, result: Image.Image) -> None:
        current = self._release(job)
        if current is None:
            return
        if self._in_flight_stale:
            logger.debug("Discarding stale result for slice %d", job.index)
            self._replace_at(job.index, self._requeued(current))
        else:
            self._replace_at(job.index, current.evolve(status=SliceStatus.DONE, processed=result))

    def _on_failed(self, job: _Job, error: BaseException) -> None:
        current = self._release(job)
        if isinstance(error, RenderContextError):
            logger.critical("Drawing surface unavailable, halting queue: %s", error)
            self._fatal = error
        if current is None:
            return
        if self._in_flight_stale and self._fatal is None:
            self._replace_at(job.index, self._requeued(current))
        else:
            processed = None if self._in_flight_config_changed else current.processed
            self._replace_at(
                job.index,
                current.evolve(status=SliceStatus.IDLE, processed=processed, error=str(error)),
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _is_in_flight(self, index: int, slice_: Slice) -> bool:
        job = self._in_flight
        return job is not None and job.index == index and job.slice_id == slice_.id

    def _release(self, job: _Job) -> Optional[Slice]:
        """Free the slot; return the slice the job belonged to if it still exists."""
        if self._in_flight is not job:
            logger.warning("Ignoring completion for unknown job on slice %d", job.index)
            return None
        self._in_flight = None
        if job.index < len(self._slices) and self._slices[job.index].id == job.slice_id:
            return self._slices[job.index]
        return None

    def _requeued(self, current: Slice) -> Slice:
        """Requeue a slice whose in-flight result went stale.

        A config change mid-run also drops the result from the previous config;
        an edited original keeps it visible until the new one lands.
        """
        if self._in_flight_config_changed:
            return current.evolve(status=self._requeue_status(), processed=None, error=None)
        return current.evolve(status=self._requeue_status())

    def _replace_at(self, index: int, slice_: Slice) -> None:
        slices = list(self._slices)
        slices[index] = slice_
        self._slices = tuple(slices)

    def _claim_next(self) -> Optional[_Job]:
        if self._in_flight is not None or self._fatal is not None or not self._config.is_active:
            return None
        index = next(
            (i for i, s in enumerate(self._slices) if s.status is SliceStatus.PENDING), None
        )
        if index is None:
            return None
        current = self._slices[index]
        self._replace_at(index, current.evolve(status=SliceStatus.PROCESSING))
        job = _Job(index, self._epoch, current.id, current.original, self._config)
        self._in_flight = job
        self._in_flight_stale = False
        self._in_flight_config_changed = False
        return job

    def _schedule(self) -> None:
        if self._dispatcher is None:
            return
        job = self._claim_next()
        if job is not None:
            self._dispatcher(lambda: self._run_job(job))

    def _run_job(self, job: _Job) -> None:
        try:
            result = self._processor(job.buffer, job.config)
        except Exception as exc:
            logger.error("Slice %d (%s) failed", job.index, job.slice_id, exc_info=True)
            self._post(SliceFailed(job, exc))
        else:
            self._post(SliceFinished(job, result))

    def _publish(self) -> None:
        with self._lock:
            snapshot = self._slices
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)


__all__ = [
    "ConfigChanged",
    "OriginalReplaced",
    "SlicesReplaced",
    "SliceFinished",
    "SliceFailed",
    "SliceProcessingQueue",
]
