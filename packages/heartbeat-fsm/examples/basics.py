"""Traffic light -- the smallest useful heartbeat-fsm program.

Demonstrates:
- Declaring states and their transitions as classes
- Sharing one payload between every state and transition
- Letting the engine's heartbeat drive the machine
- Watching switches through ``state_changed``

Run: python packages/heartbeat-fsm/examples/basics.py
"""

from heartbeat import Engine, LoopConfig
from heartbeat_fsm import MachineRegistry, State, StateMachine, Transition


class Timer(Transition):
    """Fires after the owning light has been lit for ``duration`` seconds."""

    duration = 1.0

    def on_enter(self, data):
        data["lit"] = 0.0

    def on_heartbeat(self, data, delta_time):
        data["lit"] += delta_time
        return data["lit"] >= self.duration


class RedTimer(Timer):
    target_state = "Green"
    duration = 3.0


class GreenTimer(Timer):
    target_state = "Amber"
    duration = 2.0


class AmberTimer(Timer):
    target_state = "Red"


class Red(State):
    transitions = [RedTimer]


class Green(State):
    transitions = [GreenTimer]


class Amber(State):
    transitions = [AmberTimer]


def main() -> None:
    print("=== Traffic Light ===\n")

    # One frame per second keeps the output readable.
    engine = Engine(LoopConfig(fps=1))
    registry = MachineRegistry(source=engine.heartbeat)

    light = StateMachine(Red, [Red, Green, Amber], registry=registry)
    light.state_changed.connect(
        lambda new, old: print(
            f"  frame {engine.clock.frame_number:2d}  |  {old.name:>5} -> {new.name}"
        )
    )

    engine.run(12)

    light.destroy()
    print(f"\nDone. Light was {light.current_state.name} at frame {engine.clock.frame_number}.")


if __name__ == "__main__":
    main()
