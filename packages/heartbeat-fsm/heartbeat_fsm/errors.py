"""Exceptions raised by the state machine runtime."""
from __future__ import annotations

from typing import Any


class FSMError(Exception):
    """Base class for state machine errors."""


class InvalidStateReference(FSMError, LookupError):
    """Raised when a state identifier does not name a registered state.

    ``attempted`` is the identifier that failed to resolve; ``current`` is
    the name of the machine's current state, or ``None`` during
    construction.
    """

    def __init__(
        self, attempted: Any, current: str | None = None, message: str | None = None,
    ) -> None:
        self.attempted = attempted
        self.current = current
        if message is None:
            if current is None:
                message = f"State {attempted!r} isn't valid"
            else:
                message = (
                    f"Tried to change state from {current!r} to {attempted!r}, "
                    f"but it isn't valid"
                )
        super().__init__(message)


class MachineDestroyedError(FSMError, RuntimeError):
    """Raised when ticking or changing a machine after ``destroy()``."""
