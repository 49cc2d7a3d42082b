"""StateMachine - state registry, state switching, and per-frame evaluation."""
from __future__ import annotations

import logging
from typing import Any, Generic, Sequence, TypeVar, cast

from heartbeat import Spawner
from heartbeat_signal import Signal

from heartbeat_fsm.errors import InvalidStateReference, MachineDestroyedError
from heartbeat_fsm.registry import MachineRegistry, default_registry
from heartbeat_fsm.state import State, StateRef

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _name_of(ref: Any) -> str | None:
    if isinstance(ref, str):
        return ref
    if isinstance(ref, State):
        return ref.name
    if isinstance(ref, type) and issubclass(ref, State):
        return ref.name
    return None


class StateMachine(Generic[T]):
    """Owns one instance of every supplied State and tracks which is current.

    Args:
        initial_state: Name or class of the state entered on construction.
        states: Every State class the machine can switch to. Each is
            instantiated exactly once, along with its transitions.
        manual_heartbeat: If True, the machine is not ticked by the shared
            frame subscription; the host calls ``execute_heartbeat_event``
            (or ``execute_heartbeat_events(dt, only_manual=True)``) itself.
        data: Payload shared by every state and transition. Defaults to a
            new empty dict.
        registry: Registry to join. Defaults to ``default_registry()``.
        spawner: Launcher for fire-and-forget hooks. Defaults to the
            registry's spawner.

    ``state_changed`` fires ``(new_state, old_state)`` after every
    successful switch. Construction switches from the initial state to
    itself, so the initial state sees its guard, ``on_leave`` and
    ``on_enter`` like any other switch.
    """

    def __init__(
        self,
        initial_state: StateRef,
        states: Sequence[type[State[T]]],
        manual_heartbeat: bool = False,
        data: T | None = None,
        *,
        registry: MachineRegistry | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self._registry = registry if registry is not None else default_registry()
        self._spawner = spawner if spawner is not None else self._registry.spawner
        self._manual = manual_heartbeat
        self._data: T = data if data is not None else cast(T, {})
        self._state_map: dict[str, State[T]] = {}
        self._states: list[State[T]] = []
        self._destroyed = False
        self.state_changed: Signal[[State[T], State[T]]] = Signal()

        names = [cls.name for cls in states]
        if isinstance(initial_state, str):
            initial_name: str | None = initial_state if initial_state in names else None
        elif isinstance(initial_state, type) and initial_state in states:
            initial_name = initial_state.name
        else:
            initial_name = None
        if initial_name is None:
            raise InvalidStateReference(
                initial_state,
                message=f"Initial state {initial_state!r} isn't one of {names}",
            )
        for name in names:
            if names.count(name) > 1:
                raise InvalidStateReference(
                    name, message=f"State name {name!r} is supplied more than once",
                )

        for cls in states:
            state = cls(self)
            self._spawner.spawn(state.on_init, state.data)
            for tcls in cls.transitions:
                if getattr(tcls, "target_state", None) is None:
                    raise TypeError(
                        f"Transition {tcls.__name__} of state {cls.name!r} "
                        f"does not define target_state"
                    )
                transition = tcls(state)
                transition.on_init(transition.data)
                state.active_transitions.append(transition)
            self._state_map[cls.name] = state
            self._states.append(state)

        initial = self._state_map[initial_name]
        self._current: State[T] = initial
        self._previous: State[T] = initial
        if not self._destroyed:
            self.change_state(initial)
        if not self._destroyed:
            self._registry.attach(self)

    def __repr__(self) -> str:
        return f"<StateMachine current={self._current.name!r} manual={self._manual}>"

    # -- Accessors --

    @property
    def data(self) -> T:
        return self._data

    @property
    def manual_heartbeat(self) -> bool:
        return self._manual

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def registry(self) -> MachineRegistry:
        return self._registry

    @property
    def current_state(self) -> State[T]:
        return self._current

    @property
    def previous_state(self) -> State[T]:
        return self._previous

    def get_current_state(self) -> State[T]:
        return self._current

    def get_previous_state(self) -> State[T]:
        return self._previous

    def get_states(self) -> list[State[T]]:
        """Every state of this machine, in the order they were supplied."""
        return list(self._states)

    def get_state(self, ref: StateRef) -> State[T]:
        """Look up a registered state. Raises InvalidStateReference."""
        return self._resolve(ref)

    # -- Switching --

    def change_state(self, target: StateRef) -> bool:
        """Switch to ``target`` unless the current state's guard refuses.

        Returns True if the switch happened. Raises InvalidStateReference
        if ``target`` is not registered on this machine.
        """
        self._check_alive()
        new = self._resolve(target)
        old = self._current
        if not old.can_change_state(new):
            logger.debug("%s refused change to %s", old.name, new.name)
            return False
        self._switch(new, old)
        return True

    def _resolve(self, ref: StateRef) -> State[T]:
        name = _name_of(ref)
        state = self._state_map.get(name) if name is not None else None
        if state is not None:
            if isinstance(ref, State) and ref is not state:
                state = None
            elif isinstance(ref, type) and type(state) is not ref:
                state = None
        if state is None:
            raise InvalidStateReference(ref, current=self._current_name())
        return state

    def _current_name(self) -> str | None:
        current = getattr(self, "_current", None)
        return current.name if current is not None else None

    def _switch(self, new: State[T], old: State[T]) -> None:
        self._current = new
        self._previous = old

        # Inline hooks may destroy the machine; stop dispatching once they do.
        spawn = self._spawner.spawn
        spawn(old.on_leave, old.data)
        for transition in list(old.active_transitions):
            spawn(transition.on_leave, transition.data)
        if self._destroyed:
            return
        spawn(new.on_enter, new.data)
        for transition in list(new.active_transitions):
            spawn(transition.on_enter, transition.data)
        if self._destroyed:
            return

        logger.debug("state changed %s -> %s", old.name, new.name)
        self.state_changed.fire(new, old)

    # -- Heartbeat --

    def execute_heartbeat_event(self, delta_time: float) -> None:
        """Run one frame: the current state's heartbeat, then its transitions.

        Transitions are checked in declaration order. Once one of them
        switches the machine, the rest are not checked this frame. A
        transition whose switch is refused by the guard lets the next one
        be checked.
        """
        self._check_alive()
        current = self._current
        self._spawner.spawn(current.on_heartbeat, current.data, delta_time)

        for transition in list(current.active_transitions):
            if self._destroyed or self._current is not current:
                break
            if transition.on_heartbeat(transition.data, delta_time):
                if self.change_state(transition.target_state):
                    break

    @staticmethod
    def execute_heartbeat_events(
        delta_time: float,
        only_manual: bool = False,
        *,
        registry: MachineRegistry | None = None,
    ) -> None:
        """Tick every machine in ``registry`` (the default one if omitted).

        With ``only_manual`` set, only machines created with
        ``manual_heartbeat=True`` are ticked.
        """
        reg = registry if registry is not None else default_registry()
        reg.tick(delta_time, only_manual)

    # -- Teardown --

    def destroy(self) -> None:
        """Detach from the registry and run every destroy hook.

        Hooks already in flight are not cancelled. Safe to call twice.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self._registry.detach(self)

        spawn = self._spawner.spawn
        for state in self._states:
            spawn(state.on_destroy, state.data)
            for transition in state.active_transitions:
                spawn(transition.on_destroy, transition.data)
            state.active_transitions.clear()

        self._states.clear()
        self._state_map.clear()
        self.state_changed.destroy()
        logger.debug("destroyed %r", self)

    def _check_alive(self) -> None:
        if self._destroyed:
            raise MachineDestroyedError("State machine has been destroyed")
