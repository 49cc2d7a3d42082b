"""heartbeat-fsm - Frame-driven finite state machines."""
from __future__ import annotations

from heartbeat_fsm.errors import FSMError, InvalidStateReference, MachineDestroyedError
from heartbeat_fsm.machine import StateMachine
from heartbeat_fsm.registry import (
    FrameSource,
    MachineRegistry,
    default_registry,
    set_default_registry,
)
from heartbeat_fsm.state import State, StateRef
from heartbeat_fsm.transition import Transition

__all__ = [
    "FSMError",
    "FrameSource",
    "InvalidStateReference",
    "MachineDestroyedError",
    "MachineRegistry",
    "State",
    "StateMachine",
    "StateRef",
    "Transition",
    "default_registry",
    "set_default_registry",
]
