"""heartbeat - Frame loop and fire-and-forget task launchers."""

from heartbeat.clock import Clock
from heartbeat.config import LoopConfig
from heartbeat.engine import Engine, default_engine, set_default_engine
from heartbeat.tasks import (
    DeferredSpawner,
    ErrorSink,
    InlineSpawner,
    Spawner,
    ThreadSpawner,
    log_error,
)

__all__ = [
    "Engine",
    "Clock",
    "LoopConfig",
    "Spawner",
    "InlineSpawner",
    "DeferredSpawner",
    "ThreadSpawner",
    "ErrorSink",
    "log_error",
    "default_engine",
    "set_default_engine",
]
