"""Engine - frame loop, pacing, and lifecycle hooks."""

from __future__ import annotations

import logging
import time
from typing import Callable

from heartbeat_signal import Signal

from heartbeat.clock import Clock
from heartbeat.config import LoopConfig
from heartbeat.tasks import DeferredSpawner

logger = logging.getLogger(__name__)

EngineHook = Callable[["Engine"], None]


class Engine:
    """Periodic frame source.

    Every frame advances the clock and fires ``heartbeat`` with the frame's
    delta time. If a ``DeferredSpawner`` is supplied, it is flushed after
    the heartbeat subscribers have run, so work deferred during a frame
    completes within that frame.
    """

    def __init__(
        self,
        config: LoopConfig | None = None,
        deferred: DeferredSpawner | None = None,
    ) -> None:
        self._config = config if config is not None else LoopConfig()
        self._clock = Clock(self._config.fps)
        self._heartbeat: Signal[[float]] = Signal()
        self._deferred = deferred
        self._start_hooks: list[EngineHook] = []
        self._stop_hooks: list[EngineHook] = []
        self._stop_requested: bool = False

    @property
    def config(self) -> LoopConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def heartbeat(self) -> Signal[[float]]:
        """Fires ``(delta_time,)`` once per frame."""
        return self._heartbeat

    def on_start(self, hook: EngineHook) -> None:
        self._start_hooks.append(hook)

    def on_stop(self, hook: EngineHook) -> None:
        self._stop_hooks.append(hook)

    def stop(self) -> None:
        """Request the running loop to end after the current frame."""
        self._stop_requested = True

    def _frame(self, dt: float | None) -> None:
        if dt is None:
            dt = self._clock.dt
        elif dt > self._config.max_delta:
            dt = self._config.max_delta
        self._clock.advance(dt)
        self._heartbeat.fire(dt)
        if self._deferred is not None:
            self._deferred.flush()

    def step(self, dt: float | None = None) -> None:
        self._stop_requested = False
        self._frame(dt)

    def run(self, n: int) -> None:
        self._stop_requested = False
        for hook in self._start_hooks:
            hook(self)

        for _ in range(n):
            self._frame(None)
            if self._stop_requested:
                break

        for hook in self._stop_hooks:
            hook(self)

    def run_forever(self) -> None:
        self._stop_requested = False
        for hook in self._start_hooks:
            hook(self)
        logger.debug("frame loop started at %d fps", self._clock.fps)

        target = self._clock.dt
        last = time.monotonic()
        dt: float | None = None
        while not self._stop_requested:
            start = time.monotonic()
            self._frame(dt)
            if self._stop_requested:
                break
            elapsed = time.monotonic() - start
            sleep_time = target - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)
            now = time.monotonic()
            dt = now - last
            last = now

        logger.debug("frame loop stopped after %d frames", self._clock.frame_number)
        for hook in self._stop_hooks:
            hook(self)


_default_engine: Engine | None = None


def default_engine() -> Engine:
    """Process-wide engine used when no frame source is given explicitly."""
    global _default_engine
    if _default_engine is None:
        _default_engine = Engine()
    return _default_engine


def set_default_engine(engine: Engine | None) -> None:
    """Replace the process-wide engine. ``None`` resets it to lazy creation."""
    global _default_engine
    _default_engine = engine
