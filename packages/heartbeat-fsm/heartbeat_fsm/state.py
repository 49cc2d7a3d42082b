"""State base class."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Generic, Sequence, TypeVar, Union

if TYPE_CHECKING:
    from heartbeat_fsm.machine import StateMachine
    from heartbeat_fsm.transition import Transition

T = TypeVar("T")

# Anything change_state accepts: a state name, a State subclass, or the
# registered State instance itself.
StateRef = Union[str, "State[Any]", "type[State[Any]]"]


class State(Generic[T]):
    """A named unit of behavior owned by one StateMachine.

    Subclasses override the hooks they need and list their outgoing
    transitions in ``transitions``. ``name`` is the state's identifier
    inside a machine; it defaults to the class name and can be set
    explicitly on the subclass.

    Every hook except ``can_change_state`` is launched fire-and-forget
    through the machine's spawner, so return values are ignored and
    failures go to the spawner's error sink.
    """

    name: ClassVar[str] = "State"
    transitions: ClassVar[Sequence[type[Transition[Any]]]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "name" not in cls.__dict__:
            cls.name = cls.__name__

    def __init__(self, machine: StateMachine[T]) -> None:
        self.machine = machine
        self.data: T = machine.data
        self.active_transitions: list[Transition[T]] = []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def change_state(self, target: StateRef) -> bool:
        """Ask the owning machine to switch to ``target``."""
        return self.machine.change_state(target)

    def get_current_state(self) -> State[T]:
        return self.machine.get_current_state()

    def get_previous_state(self) -> State[T]:
        return self.machine.get_previous_state()

    # -- Hooks --

    def can_change_state(self, target: State[T]) -> bool:
        """Whether the machine may switch off this state to ``target``.

        Called synchronously on every change request; must not block.
        """
        return True

    def on_init(self, data: T) -> None:
        """Called once after the machine constructs this state."""

    def on_enter(self, data: T) -> None:
        """Called each time the machine switches to this state."""

    def on_leave(self, data: T) -> None:
        """Called each time the machine switches off this state."""

    def on_heartbeat(self, data: T, delta_time: float) -> None:
        """Called every frame while this state is current."""

    def on_destroy(self, data: T) -> None:
        """Called once when the machine is destroyed."""
