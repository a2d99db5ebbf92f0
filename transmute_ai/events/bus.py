"""Per-job progress event fan-out.

``ProgressEventBus.publish`` is synchronous and never blocks: each subscriber
owns a bounded ``asyncio.Queue`` and an event that does not fit is dropped for
that subscriber, which is then flagged ``needs_resync``. A subscriber that
missed events should call ``get_current_status`` to reconcile.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict, defaultdict
from typing import AsyncIterator, Dict, Optional, Protocol, Set

from ..schemas.domain import Job, JobStatus, ProgressEvent, Stage, StageLogStatus

logger = logging.getLogger(__name__)

_CLOSED = object()


class JobStatusReader(Protocol):
    async def get(self, job_id: str) -> Optional[Job]: ...


class Subscription:
    """A bounded stream of progress events for one job.

    Iterate with ``async for``; iteration ends after the job's terminal event
    or when the subscription is closed.
    """

    def __init__(self, bus: "ProgressEventBus", job_id: str, maxsize: int) -> None:
        self.job_id = job_id
        self._bus = bus
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self.needs_resync = False
        self.missed = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: ProgressEvent) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.needs_resync = True
            self.missed += 1
            logger.debug("Subscription[%s]: queue full, dropped event seq=%s", self.job_id, event.sequence)
            if event.is_terminal:
                # The stream still has to end; make room for the end marker.
                self._queue.get_nowait()
                self._end()
            return
        if event.is_terminal:
            self._end()

    def _end(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self.needs_resync = True
            self.missed += 1
            self._queue.put_nowait(_CLOSED)

    def acknowledge_resync(self) -> None:
        self.needs_resync = False
        self.missed = 0

    async def get(self) -> Optional[ProgressEvent]:
        """Return the next event, or None once the stream has ended."""
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            return None
        assert isinstance(item, ProgressEvent)
        return item

    def close(self) -> None:
        self._bus._unsubscribe(self)
        self._end()

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()


class ProgressEventBus:
    """Publishes stage transition events with a monotonic per-job sequence.

    Usage guidelines:
    - The pipeline is the single writer for a job; ``publish`` assigns the
      sequence number, starting at 1.
    - ``status_reader`` (normally the job repository) backs
      ``get_current_status`` for reconnect and resync.
    - Sequence and latest-event state of the last ``retain_finished`` finished
      jobs is kept for late subscribers; older finished jobs are forgotten and
      a later publish for one of them starts again at sequence 1.
    """

    def __init__(
        self,
        status_reader: Optional[JobStatusReader] = None,
        *,
        queue_size: int = 256,
        retain_finished: int = 1024,
    ) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if retain_finished < 0:
            raise ValueError("retain_finished must be >= 0")
        self._status_reader = status_reader
        self._queue_size = queue_size
        self._sequences: Dict[str, int] = defaultdict(int)
        self._latest: Dict[str, ProgressEvent] = {}
        self._subscribers: Dict[str, Set[Subscription]] = defaultdict(set)
        self._retain_finished = retain_finished
        # Finished job ids, oldest first.
        self._finished: "OrderedDict[str, None]" = OrderedDict()

    def publish(
        self,
        job_id: str,
        *,
        job_status: JobStatus,
        stage: Optional[Stage] = None,
        status: Optional[StageLogStatus] = None,
        message: str = "",
    ) -> ProgressEvent:
        self._sequences[job_id] += 1
        event = ProgressEvent(
            job_id=job_id,
            stage=stage,
            status=status,
            job_status=job_status,
            message=message,
            sequence=self._sequences[job_id],
        )
        self._latest[job_id] = event
        for sub in list(self._subscribers.get(job_id, ())):
            sub._offer(event)
        if event.is_terminal:
            self._subscribers.pop(job_id, None)
            self._mark_finished(job_id)
        else:
            self._finished.pop(job_id, None)
        return event

    def _mark_finished(self, job_id: str) -> None:
        self._finished[job_id] = None
        self._finished.move_to_end(job_id)
        while len(self._finished) > self._retain_finished:
            evicted, _ = self._finished.popitem(last=False)
            self._latest.pop(evicted, None)
            self._sequences.pop(evicted, None)
            logger.debug("ProgressEventBus: forgot finished job %s", evicted)

    def subscribe(self, job_id: str, maxsize: Optional[int] = None) -> Subscription:
        sub = Subscription(self, job_id, maxsize or self._queue_size)
        latest = self._latest.get(job_id)
        if latest is not None and latest.is_terminal:
            # Late subscriber to a finished job: deliver the final event and end.
            sub._offer(latest)
            return sub
        self._subscribers[job_id].add(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.job_id)
        if subs is not None:
            subs.discard(sub)
            if not subs:
                self._subscribers.pop(sub.job_id, None)

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, ()))

    def latest(self, job_id: str) -> Optional[ProgressEvent]:
        return self._latest.get(job_id)

    async def get_current_status(self, job_id: str) -> Optional[Job]:
        if self._status_reader is None:
            return None
        return await self._status_reader.get(job_id)

