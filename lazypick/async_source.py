"""Asynchronous item production with latest-request-wins semantics.

Producers run on a process-wide worker pool and stream raw items back
through a queue. The picker thread drains that queue in ``poll()``; events
from any request other than the newest one are discarded there, so a late
result can never overwrite fresher data.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from queue import Empty, Queue
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_PRODUCERS = 10
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_CHUNK_SIZE = 256

Producer = Callable[[str, Callable[[], bool]], "Iterable[object] | Future | None"]


class TaskPool(Protocol):
    def submit(self, fn: Callable[[], object]) -> object: ...


@dataclass(frozen=True)
class PoolStats:
    running: int
    queued: int
    completed: int
    failed: int

    @property
    def pending(self) -> int:
        return self.running + self.queued


class ProducerPool:
    """Bounded executor shared by every picker in the process.

    At most ``max_workers`` producer calls run at once; further submissions
    wait in the executor queue.
    """

    def __init__(self, max_workers: int = DEFAULT_MAX_CONCURRENT_PRODUCERS) -> None:
        self.max_workers = max(1, int(max_workers))
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()
        self._running = 0
        self._queued = 0
        self._completed = 0
        self._failed = 0

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="lazypick-producer",
            )
        return self._executor

    def _run_task(self, fn: Callable[[], object]) -> None:
        with self._lock:
            self._queued -= 1
            self._running += 1
        failed = False
        try:
            fn()
        except Exception:
            failed = True
            logger.debug("producer task failed", exc_info=True)
        finally:
            with self._lock:
                self._running -= 1
                if failed:
                    self._failed += 1
                else:
                    self._completed += 1

    def _on_done(self, future: Future) -> None:
        # Cancelled while queued: _run_task never ran to claim the slot.
        if future.cancelled():
            with self._lock:
                self._queued -= 1

    def submit(self, fn: Callable[[], object]) -> Future:
        with self._lock:
            executor = self._ensure_executor()
            self._queued += 1
        future = executor.submit(self._run_task, fn)
        future.add_done_callback(self._on_done)
        return future

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                running=self._running,
                queued=self._queued,
                completed=self._completed,
                failed=self._failed,
            )

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=True)


_SHARED_POOL: ProducerPool | None = None
_SHARED_POOL_LOCK = threading.Lock()


def shared_producer_pool(max_workers: int | None = None) -> ProducerPool:
    """Return the process-wide pool, resizing it only while it is idle."""
    global _SHARED_POOL
    with _SHARED_POOL_LOCK:
        if _SHARED_POOL is None:
            _SHARED_POOL = ProducerPool(max_workers or DEFAULT_MAX_CONCURRENT_PRODUCERS)
        elif max_workers is not None and max_workers != _SHARED_POOL.max_workers:
            if _SHARED_POOL.stats().pending == 0:
                _SHARED_POOL.shutdown(wait=False)
                _SHARED_POOL = ProducerPool(max_workers)
            else:
                logger.debug("shared producer pool busy; keeping %d workers", _SHARED_POOL.max_workers)
        return _SHARED_POOL


@dataclass(frozen=True)
class SourceSignal:
    """Informational, non-fatal notice about a production request.

    ``kind`` is one of ``"timeout"``, ``"error"``, ``"empty"`` or
    ``"invalid_item"``.
    """

    kind: str
    query: str
    message: str = ""
    request_id: int | None = None


@dataclass(frozen=True)
class SourceUpdate:
    """Items accepted from the newest request.

    ``reset`` marks the first delivery for a request: the consumer replaces
    its previous async items before appending ``items``.
    """

    request_id: int
    query: str
    items: tuple[object, ...] = ()
    reset: bool = False
    done: bool = False


@dataclass
class _Request:
    request_id: int
    query: str
    cancel_event: threading.Event = field(default_factory=threading.Event)
    due_at: float = 0.0
    deadline: float | None = None
    applied: bool = False
    future: Future | None = None


class AsyncSourceAdapter:
    """Debounced, cancellable, time-bounded wrapper around one producer."""

    def __init__(
        self,
        producer: Producer,
        *,
        pool: TaskPool | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        debounce_seconds: float = 0.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.producer = producer
        self.pool = pool if pool is not None else shared_producer_pool()
        self.timeout_seconds = max(0.0, float(timeout_seconds))
        self.debounce_seconds = max(0.0, float(debounce_seconds))
        self.chunk_size = max(1, int(chunk_size))
        self._clock = clock
        self._events: Queue[tuple[object, ...]] = Queue()
        self._next_request_id = 0
        self._active: _Request | None = None
        self._pending: _Request | None = None
        self._closed = False

    @property
    def loading(self) -> bool:
        return self._active is not None or self._pending is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def _cancel(self, request: _Request | None) -> None:
        if request is None:
            return
        request.cancel_event.set()
        if request.future is not None:
            request.future.cancel()

    def request(self, query: str) -> int | None:
        """Supersede any earlier request and ask for items for ``query``."""
        if self._closed:
            return None
        self._cancel(self._active)
        self._cancel(self._pending)
        self._active = None
        self._pending = None

        self._next_request_id += 1
        request = _Request(
            request_id=self._next_request_id,
            query=query,
            due_at=self._clock() + self.debounce_seconds,
        )
        if self.debounce_seconds > 0:
            self._pending = request
        else:
            self._launch(request)
        return request.request_id

    def _launch(self, request: _Request) -> None:
        request.deadline = self._clock() + self.timeout_seconds if self.timeout_seconds > 0 else None
        self._active = request
        self.pool.submit(partial(self._run, request))

    def _run(self, request: _Request) -> None:
        # Worker thread: touches only the request and the event queue.
        request_id = request.request_id
        if request.cancel_event.is_set():
            return
        try:
            produced = self.producer(request.query, request.cancel_event.is_set)
            if isinstance(produced, Future):
                request.future = produced
                if request.cancel_event.is_set():
                    produced.cancel()
                    return
                produced = produced.result()
            chunk: list[object] = []
            for raw in produced or ():
                if request.cancel_event.is_set():
                    return
                chunk.append(raw)
                if len(chunk) >= self.chunk_size:
                    self._events.put(("batch", request_id, tuple(chunk)))
                    chunk = []
            if request.cancel_event.is_set():
                return
            if chunk:
                self._events.put(("batch", request_id, tuple(chunk)))
            self._events.put(("done", request_id))
        except Exception as exc:
            if not request.cancel_event.is_set():
                self._events.put(("error", request_id, exc))
            raise

    def _empty_result(self, request: _Request, kind: str, message: str) -> list[SourceUpdate | SourceSignal]:
        return [
            SourceUpdate(request_id=request.request_id, query=request.query, reset=True, done=True),
            SourceSignal(kind=kind, query=request.query, message=message, request_id=request.request_id),
        ]

    def _consume(self, event: tuple[object, ...]) -> list[SourceUpdate | SourceSignal]:
        request = self._active
        kind = event[0]
        request_id = event[1]
        if request is None or request_id != request.request_id:
            logger.debug("dropping %s event from superseded request %s", kind, request_id)
            return []

        if kind == "batch":
            items = event[2]
            reset = not request.applied
            request.applied = True
            return [SourceUpdate(request_id=request.request_id, query=request.query, items=items, reset=reset)]

        self._active = None
        if kind == "done":
            if request.applied:
                return [SourceUpdate(request_id=request.request_id, query=request.query, done=True)]
            return self._empty_result(request, "empty", "no results")

        error = event[2]
        logger.warning("producer failed for query %r: %s", request.query, error)
        return self._empty_result(request, "error", str(error) or type(error).__name__)

    def poll(self, timeout_seconds: float = 0.0) -> list[SourceUpdate | SourceSignal]:
        """Launch due requests, drain worker events, and expire overdue requests.

        ``timeout_seconds`` bounds how long to block waiting for the first
        event; zero never blocks.
        """
        out: list[SourceUpdate | SourceSignal] = []
        if self._closed:
            return out

        now = self._clock()
        if self._pending is not None and now >= self._pending.due_at:
            request = self._pending
            self._pending = None
            self._launch(request)

        if timeout_seconds > 0 and self._active is not None:
            try:
                first_event = self._events.get(timeout=timeout_seconds)
            except Empty:
                first_event = None
            if first_event is not None:
                out.extend(self._consume(first_event))

        while True:
            try:
                event = self._events.get_nowait()
            except Empty:
                break
            out.extend(self._consume(event))

        request = self._active
        if request is not None and request.deadline is not None and self._clock() >= request.deadline:
            self._cancel(request)
            self._active = None
            logger.warning("producer timed out after %.2fs for query %r", self.timeout_seconds, request.query)
            out.extend(self._empty_result(request, "timeout", f"timed out after {self.timeout_seconds:g}s"))
        return out

    def next_deadline(self) -> float | None:
        """Earliest clock time at which ``poll`` has time-driven work to do."""
        candidates = []
        if self._pending is not None:
            candidates.append(self._pending.due_at)
        if self._active is not None and self._active.deadline is not None:
            candidates.append(self._active.deadline)
        return min(candidates) if candidates else None

    def close(self) -> None:
        """Cancel outstanding work; later results are ignored."""
        self._cancel(self._active)
        self._cancel(self._pending)
        self._active = None
        self._pending = None
        self._closed = True
