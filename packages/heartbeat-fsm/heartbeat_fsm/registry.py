"""MachineRegistry - the set of live machines and their shared frame subscription."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterator, Protocol

from heartbeat import InlineSpawner, Spawner, default_engine
from heartbeat_signal import Connection

if TYPE_CHECKING:
    from heartbeat_fsm.machine import StateMachine

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Anything that calls its subscribers once per frame with a delta time."""

    def connect(self, handler: Callable[..., Any]) -> Connection: ...


class MachineRegistry:
    """Ordered collection of live machines sharing one frame subscription.

    Machines attach themselves on construction and detach on ``destroy``.
    While at least one automatic (non-manual) machine is attached the
    registry holds exactly one connection to its frame source; the
    connection is dropped as soon as the last automatic machine detaches
    and made again when a new one attaches.

    Access is single-threaded: attach, detach and ticking must all happen
    on the thread that drives the frame source.
    """

    def __init__(
        self,
        source: FrameSource | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self._source = source
        self._spawner: Spawner = spawner if spawner is not None else InlineSpawner()
        self._machines: list[StateMachine[Any]] = []
        self._connection: Connection | None = None

    @property
    def spawner(self) -> Spawner:
        """Default spawner for machines created against this registry."""
        return self._spawner

    @property
    def connected(self) -> bool:
        """True while the shared frame subscription exists."""
        return self._connection is not None

    def __len__(self) -> int:
        return len(self._machines)

    def __contains__(self, machine: object) -> bool:
        return machine in self._machines

    def __iter__(self) -> Iterator[StateMachine[Any]]:
        return iter(list(self._machines))

    def machines(self) -> list[StateMachine[Any]]:
        return list(self._machines)

    def attach(self, machine: StateMachine[Any]) -> None:
        if machine in self._machines:
            return
        self._machines.append(machine)
        logger.debug("attached %r (%d live)", machine, len(self._machines))
        if not machine.manual_heartbeat and self._connection is None:
            source = self._source if self._source is not None else default_engine().heartbeat
            self._connection = source.connect(self._on_frame)
            logger.debug("connected to frame source %r", source)

    def detach(self, machine: StateMachine[Any]) -> None:
        try:
            self._machines.remove(machine)
        except ValueError:
            return
        logger.debug("detached %r (%d live)", machine, len(self._machines))
        if self._connection is not None and all(
            m.manual_heartbeat for m in self._machines
        ):
            self._connection.disconnect()
            self._connection = None
            logger.debug("disconnected from frame source")

    def tick(self, delta_time: float, only_manual: bool = False) -> None:
        """Run one heartbeat on every attached machine.

        With ``only_manual`` set, automatic machines are skipped; hosts use
        this to drive the machines that opted out of the shared frame.
        """
        self._run(delta_time, manual=True if only_manual else None)

    def close(self) -> None:
        """Destroy every attached machine. The subscription goes with them."""
        for machine in list(self._machines):
            machine.destroy()

    def _on_frame(self, delta_time: float) -> None:
        self._run(delta_time, manual=False)

    def _run(self, delta_time: float, manual: bool | None) -> None:
        # Machines created during this pass start on the next one; machines
        # destroyed before their turn are skipped.
        for machine in list(self._machines):
            if machine not in self._machines:
                continue
            if manual is not None and machine.manual_heartbeat != manual:
                continue
            machine.execute_heartbeat_event(delta_time)


_default_registry: MachineRegistry | None = None


def default_registry() -> MachineRegistry:
    """Process-wide registry, bound to ``heartbeat.default_engine()``."""
    global _default_registry
    if _default_registry is None:
        _default_registry = MachineRegistry()
    return _default_registry


def set_default_registry(registry: MachineRegistry | None) -> None:
    """Replace the process-wide registry. ``None`` resets it to lazy creation."""
    global _default_registry
    _default_registry = registry
