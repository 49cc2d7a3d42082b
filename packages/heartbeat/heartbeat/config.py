"""Loop configuration dataclass."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LoopConfig:
    """Immutable configuration for the frame loop and its task launchers.

    Attributes:
        fps: Frames per second of the engine's fixed timestep.
        max_delta: Upper clamp, in seconds, for a measured or supplied
            frame delta. Keeps a stalled host from handing subscribers
            one huge step.
        thread_pool_size: ThreadSpawner max workers.
    """

    fps: int = 60
    max_delta: float = 0.25
    thread_pool_size: int = 4

    def __post_init__(self) -> None:
        if self.fps <= 0:
            raise ValueError("fps must be positive")
        if self.max_delta <= 0:
            raise ValueError("max_delta must be positive")
        if self.thread_pool_size <= 0:
            raise ValueError("thread_pool_size must be positive")
