"""Fire-and-forget task launchers.

A spawner runs a callable without the caller waiting on it. The caller
never sees the return value or the exception of a spawned call; failures
go to the spawner's error sink instead, which logs them by default.
"""
from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Protocol

from heartbeat.config import LoopConfig

logger = logging.getLogger(__name__)

# Error sink signature: (exception, spawned callable) -> None.
ErrorSink = Callable[[Exception, Callable[..., Any]], None]


def log_error(exc: Exception, fn: Callable[..., Any]) -> None:
    """Default error sink: log the failure with its traceback."""
    name = getattr(fn, "__qualname__", repr(fn))
    logger.error("spawned task %s failed: %s", name, exc, exc_info=exc)


class Spawner(Protocol):
    """Anything that can launch ``fn(*args)`` fire-and-forget."""

    def spawn(self, fn: Callable[..., Any], *args: Any) -> None: ...


class _SinkMixin:
    _on_error: ErrorSink

    def _call(self, fn: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            fn(*args)
        except Exception as exc:
            self._report(exc, fn)

    def _report(self, exc: Exception, fn: Callable[..., Any]) -> None:
        try:
            self._on_error(exc, fn)
        except Exception:
            logger.exception("error sink failed while reporting %r", exc)


class InlineSpawner(_SinkMixin):
    """Runs the call immediately on the caller's stack.

    Suited to single-threaded cooperative hosts: the call runs to
    completion before ``spawn`` returns, but its result and failures are
    still hidden from the caller.
    """

    def __init__(self, on_error: ErrorSink | None = None) -> None:
        self._on_error = on_error if on_error is not None else log_error

    def spawn(self, fn: Callable[..., Any], *args: Any) -> None:
        self._call(fn, args)


class DeferredSpawner(_SinkMixin):
    """Queues calls until ``flush``.

    Calls spawned while a flush is running are kept for the next flush.
    """

    def __init__(self, on_error: ErrorSink | None = None) -> None:
        self._on_error = on_error if on_error is not None else log_error
        self._queue: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def spawn(self, fn: Callable[..., Any], *args: Any) -> None:
        self._queue.append((fn, args))

    def flush(self) -> int:
        """Run every queued call in FIFO order. Returns how many ran."""
        snapshot = self._queue
        self._queue = deque()
        for fn, args in snapshot:
            self._call(fn, args)
        return len(snapshot)

    def clear(self) -> None:
        self._queue.clear()


class ThreadSpawner(_SinkMixin):
    """Runs calls on a ThreadPoolExecutor.

    Hooks launched this way really do run concurrently with the frame
    loop; any state they share must be guarded by the host.
    """

    def __init__(
        self,
        config: LoopConfig | None = None,
        on_error: ErrorSink | None = None,
    ) -> None:
        cfg = config if config is not None else LoopConfig()
        self._on_error = on_error if on_error is not None else log_error
        self._executor = ThreadPoolExecutor(
            max_workers=cfg.thread_pool_size,
            thread_name_prefix="heartbeat-spawn",
        )
        self._shutdown = False

    def spawn(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._shutdown:
            raise RuntimeError("Cannot spawn on a shut down ThreadSpawner")
        self._executor.submit(self._call, fn, args)

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work and cancel calls that have not started."""
        self._shutdown = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
