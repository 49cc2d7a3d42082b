"""In-process signal with synchronous fire and explicit teardown."""
from __future__ import annotations

from typing import Any, Callable, Generic, ParamSpec

P = ParamSpec("P")


class SignalDestroyedError(RuntimeError):
    """Raised when connecting to or firing a destroyed signal."""


class _Slot(Generic[P]):
    """One connected handler. Connecting the same handler twice makes two slots."""

    __slots__ = ("handler", "active")

    def __init__(self, handler: Callable[P, Any]) -> None:
        self.handler = handler
        self.active = True


class Connection(Generic[P]):
    """Handle returned by ``Signal.connect``."""

    __slots__ = ("_signal", "_slot")

    def __init__(self, signal: Signal[P], slot: _Slot[P]) -> None:
        self._signal: Signal[P] | None = signal
        self._slot = slot

    @property
    def connected(self) -> bool:
        return self._slot.active

    def disconnect(self) -> None:
        """Detach this connection's handler only. Safe to call more than once."""
        if self._signal is None:
            return
        self._signal._remove(self._slot)
        self._signal = None


class Signal(Generic[P]):
    """Fires every connected handler, in connection order, on ``fire``.

    ``Signal[[float]]`` is a signal whose handlers take one float.
    Handlers run on the caller's stack and their exceptions propagate.
    Handlers connected while a fire is in progress are called from the
    next fire on; handlers disconnected mid-fire are skipped if they have
    not run yet.
    """

    def __init__(self) -> None:
        self._slots: list[_Slot[P]] = []
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def handler_count(self) -> int:
        return len(self._slots)

    def connect(self, handler: Callable[P, Any]) -> Connection[P]:
        if self._destroyed:
            raise SignalDestroyedError("Cannot connect to a destroyed signal")
        slot: _Slot[P] = _Slot(handler)
        self._slots.append(slot)
        return Connection(self, slot)

    def disconnect(self, handler: Callable[P, Any]) -> None:
        """Remove the earliest connection of ``handler``. Unknown handlers are ignored."""
        for slot in self._slots:
            if slot.handler == handler:
                self._remove(slot)
                return

    def fire(self, *args: P.args, **kwargs: P.kwargs) -> None:
        if self._destroyed:
            raise SignalDestroyedError("Cannot fire a destroyed signal")
        for slot in list(self._slots):
            if slot.active:
                slot.handler(*args, **kwargs)

    def destroy(self) -> None:
        """Drop every handler. Idempotent."""
        for slot in self._slots:
            slot.active = False
        self._slots.clear()
        self._destroyed = True

    def _remove(self, slot: _Slot[P]) -> None:
        slot.active = False
        self._slots = [s for s in self._slots if s is not slot]
