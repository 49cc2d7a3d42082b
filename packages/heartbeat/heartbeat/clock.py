"""Clock for the frame loop."""

from __future__ import annotations


class Clock:
    def __init__(self, fps: int) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self._fps = fps
        self._dt = 1.0 / fps
        self._frame_number = 0
        self._elapsed = 0.0

    @property
    def fps(self) -> int:
        return self._fps

    @property
    def dt(self) -> float:
        return self._dt

    @property
    def frame_number(self) -> int:
        return self._frame_number

    @property
    def elapsed(self) -> float:
        """Sum of every delta passed to ``advance``."""
        return self._elapsed

    def advance(self, dt: float | None = None) -> int:
        self._frame_number += 1
        self._elapsed += self._dt if dt is None else dt
        return self._frame_number

    def reset(self, frame_number: int = 0) -> None:
        self._frame_number = frame_number
        self._elapsed = frame_number * self._dt
