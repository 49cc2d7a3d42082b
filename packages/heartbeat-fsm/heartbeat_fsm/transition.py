"""Transition base class."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

if TYPE_CHECKING:
    from heartbeat_fsm.state import State, StateRef

T = TypeVar("T")


class Transition(Generic[T]):
    """A guarded edge out of the State that lists it.

    ``on_heartbeat`` runs synchronously every frame while the owning state
    is current; returning True switches the machine to ``target_state``.
    ``target_state`` is resolved against the machine only when the switch
    is requested, so it may name a state declared later in the list.
    """

    target_state: ClassVar[StateRef]

    def __init__(self, state: State[T]) -> None:
        self.state = state
        self.data: T = state.data

    def __repr__(self) -> str:
        target = getattr(type(self), "target_state", None)
        return f"<{type(self).__name__} of {self.state.name!r} -> {target!r}>"

    def change_state(self, target: StateRef) -> bool:
        return self.state.change_state(target)

    def get_current_state(self) -> State[T]:
        return self.state.get_current_state()

    def get_previous_state(self) -> State[T]:
        return self.state.get_previous_state()

    # -- Hooks --

    def on_init(self, data: T) -> None:
        """Called synchronously when the machine is constructed."""

    def on_enter(self, data: T) -> None:
        """Called each time the owning state is entered."""

    def on_leave(self, data: T) -> None:
        """Called each time the owning state is left."""

    def on_heartbeat(self, data: T, delta_time: float) -> bool:
        """Return True to switch the machine to ``target_state``."""
        return False

    def on_destroy(self, data: T) -> None:
        """Called once when the machine is destroyed."""
