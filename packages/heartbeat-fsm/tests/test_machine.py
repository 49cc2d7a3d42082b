"""Tests for StateMachine construction, switching, heartbeat and teardown."""
from __future__ import annotations

import pytest

from heartbeat import DeferredSpawner, Engine, InlineSpawner
from heartbeat_fsm import (
    InvalidStateReference,
    MachineDestroyedError,
    MachineRegistry,
    State,
    StateMachine,
    Transition,
)


class Recording(State):
    """Appends every hook call to data["log"]."""

    def on_init(self, data):
        data.setdefault("log", []).append(("init", self.name))

    def on_enter(self, data):
        data.setdefault("log", []).append(("enter", self.name))

    def on_leave(self, data):
        data.setdefault("log", []).append(("leave", self.name))

    def on_heartbeat(self, data, delta_time):
        data.setdefault("log", []).append(("heartbeat", self.name, delta_time))

    def on_destroy(self, data):
        data.setdefault("log", []).append(("destroy", self.name))


class Idle(Recording):
    pass


class Walking(Recording):
    pass


class Locked(Recording):
    """Refuses to be left while data["locked"] is set."""

    def can_change_state(self, target):
        return not self.data.get("locked", False)


def events(machine, kind):
    return [entry for entry in machine.data.get("log", []) if entry[0] == kind]


@pytest.fixture
def registry():
    return MachineRegistry(source=Engine().heartbeat)


class TestConstruction:

    def test_initial_state_by_name(self, registry):
        machine = StateMachine("Idle", [Idle, Walking], registry=registry)
        assert isinstance(machine.get_current_state(), Idle)

    def test_initial_state_by_class(self, registry):
        machine = StateMachine(Walking, [Idle, Walking], registry=registry)
        assert isinstance(machine.current_state, Walking)

    def test_current_and_previous_are_initial(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        assert machine.get_current_state() is machine.get_previous_state()

    def test_initial_entry_is_a_guarded_switch(self, registry):
        """Construction checks the guard, then leaves and re-enters the initial state."""
        calls = []

        class Sticky(State):
            def can_change_state(self, target):
                calls.append(("guard", target.name))
                return True

            def on_leave(self, data):
                calls.append(("leave", self.name))

            def on_enter(self, data):
                calls.append(("enter", self.name))

        machine = StateMachine(Sticky, [Sticky], registry=registry)

        assert calls == [("guard", "Sticky"), ("leave", "Sticky"), ("enter", "Sticky")]
        assert machine.current_state is machine.previous_state

    def test_initial_entry_notifies_with_initial_twice(self, registry):
        seen = []

        class Announcing(State):
            def on_enter(self, data):
                self.machine.state_changed.connect(
                    lambda new, old: seen.append((new.name, old.name))
                )

        StateMachine(Announcing, [Announcing], registry=registry)

        assert seen == [("Announcing", "Announcing")]

    def test_initial_guard_refusal_suppresses_entry(self, registry):
        fired = []

        class Closed(Recording):
            def on_init(self, data):
                super().on_init(data)
                self.machine.state_changed.connect(lambda new, old: fired.append(new))

            def can_change_state(self, target):
                return False

        machine = StateMachine(Closed, [Closed, Walking], registry=registry)

        assert machine.current_state.name == "Closed"
        assert events(machine, "enter") == []
        assert events(machine, "leave") == []
        assert machine in registry
        assert fired == []

    def test_every_state_initialized_once(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        assert events(machine, "init") == [("init", "Idle"), ("init", "Walking")]

    def test_invalid_initial_state(self, registry):
        with pytest.raises(InvalidStateReference):
            StateMachine("Running", [Idle, Walking], registry=registry)
        assert len(registry) == 0

    def test_invalid_initial_state_class(self, registry):
        with pytest.raises(InvalidStateReference):
            StateMachine(Locked, [Idle, Walking], registry=registry)

    def test_duplicate_state_names_rejected(self, registry):
        class Other(State):
            name = "Idle"

        with pytest.raises(InvalidStateReference, match="more than once"):
            StateMachine(Idle, [Idle, Other], registry=registry)

    def test_default_data_is_empty_dict(self, registry):
        class Quiet(State):
            pass

        machine = StateMachine(Quiet, [Quiet], registry=registry)
        assert machine.data == {}

    def test_data_shared_by_identity(self, registry):
        payload = {"score": 0}
        machine = StateMachine(Idle, [Idle, Walking], data=payload, registry=registry)

        assert machine.data is payload
        for state in machine.get_states():
            assert state.data is payload

    def test_get_states_in_declaration_order(self, registry):
        machine = StateMachine(Walking, [Idle, Walking, Locked], registry=registry)
        assert [s.name for s in machine.get_states()] == ["Idle", "Walking", "Locked"]

    def test_joins_registry(self, registry):
        machine = StateMachine(Idle, [Idle], registry=registry)
        assert machine in registry
        assert machine.registry is registry

    def test_uses_registry_spawner_by_default(self):
        deferred = DeferredSpawner()
        registry = MachineRegistry(source=Engine().heartbeat, spawner=deferred)

        machine = StateMachine(Idle, [Idle], registry=registry)

        assert "log" not in machine.data
        deferred.flush()
        assert machine.data["log"] == [("init", "Idle"), ("leave", "Idle"), ("enter", "Idle")]


class TestChangeState:

    def test_change_by_name(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        assert machine.change_state("Walking") is True
        assert isinstance(machine.get_current_state(), Walking)
        assert isinstance(machine.get_previous_state(), Idle)

    def test_change_by_class(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        machine.change_state(Walking)
        assert machine.current_state.name == "Walking"

    def test_change_by_instance(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        walking = machine.get_state("Walking")
        machine.change_state(walking)
        assert machine.current_state is walking

    def test_leave_then_enter_hooks(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        machine.data["log"].clear()

        machine.change_state(Walking)

        assert machine.data["log"] == [("leave", "Idle"), ("enter", "Walking")]

    def test_state_changed_fires_once_with_new_and_old(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        fired = []
        machine.state_changed.connect(lambda new, old: fired.append((new.name, old.name)))

        machine.change_state(Walking)

        assert fired == [("Walking", "Idle")]

    def test_same_object_reused_on_reentry(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        idle = machine.current_state

        machine.change_state(Walking)
        machine.change_state(Idle)

        assert machine.current_state is idle
        assert events(machine, "enter") == [
            ("enter", "Idle"), ("enter", "Walking"), ("enter", "Idle"),
        ]
        assert len(events(machine, "init")) == 2

    def test_self_transition_reenters(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        machine.data["log"].clear()

        assert machine.change_state(Idle) is True
        assert machine.data["log"] == [("leave", "Idle"), ("enter", "Idle")]

    @pytest.mark.parametrize("target", ["Running", Locked, 42, None])
    def test_unknown_target_raises(self, registry, target):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        current = machine.current_state
        previous = machine.previous_state

        with pytest.raises(InvalidStateReference) as exc_info:
            machine.change_state(target)

        assert exc_info.value.attempted == target
        assert exc_info.value.current == "Idle"
        assert machine.current_state is current
        assert machine.previous_state is previous

    def test_instance_from_other_machine_rejected(self, registry):
        first = StateMachine(Idle, [Idle, Walking], registry=registry)
        second = StateMachine(Idle, [Idle, Walking], registry=registry)

        with pytest.raises(InvalidStateReference):
            first.change_state(second.get_state("Walking"))
        assert first.current_state.name == "Idle"

    def test_error_message_names_both_states(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        with pytest.raises(InvalidStateReference, match="'Idle' to 'Running'"):
            machine.change_state("Running")

    def test_guard_refusal_is_noop(self, registry):
        machine = StateMachine(Locked, [Locked, Walking], registry=registry)
        machine.data["locked"] = True
        machine.data["log"].clear()
        fired = []
        machine.state_changed.connect(lambda new, old: fired.append(new))

        assert machine.change_state(Walking) is False

        assert machine.current_state.name == "Locked"
        assert machine.previous_state.name == "Locked"
        assert fired == []
        assert machine.data["log"] == []

    def test_guard_receives_resolved_target(self, registry):
        seen = []

        class Watchful(State):
            def can_change_state(self, target):
                seen.append(target)
                return True

        machine = StateMachine(Watchful, [Watchful, Walking], registry=registry)
        machine.change_state("Walking")

        assert seen == [machine.get_state("Watchful"), machine.get_state("Walking")]

    def test_state_can_request_change(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        assert machine.current_state.change_state("Walking") is True
        assert machine.current_state.get_current_state().name == "Walking"
        assert machine.current_state.get_previous_state().name == "Idle"

    def test_hook_failure_does_not_break_switch(self, registry):
        errors = []

        class Fragile(State):
            def on_leave(self, data):
                raise RuntimeError("leave failed")

        machine = StateMachine(
            Fragile, [Fragile, Walking], registry=registry,
            spawner=InlineSpawner(on_error=lambda exc, fn: errors.append(exc)),
        )
        assert machine.change_state(Walking) is True
        assert machine.current_state.name == "Walking"
        assert [str(e) for e in errors] == ["leave failed", "leave failed"]


class CountUp(Transition):
    """Switches to Walking once data["count"] reaches 3."""

    target_state = "Walking"

    def on_heartbeat(self, data, delta_time):
        data["count"] = data.get("count", 0) + delta_time
        return data["count"] >= 3


class Waiting(Recording):
    transitions = [CountUp]


class TestHeartbeat:

    def test_state_heartbeat_receives_delta(self, registry):
        machine = StateMachine(Idle, [Idle], manual_heartbeat=True, registry=registry)
        machine.execute_heartbeat_event(0.5)
        assert events(machine, "heartbeat") == [("heartbeat", "Idle", 0.5)]

    def test_only_current_state_heartbeats(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], manual_heartbeat=True, registry=registry)
        machine.execute_heartbeat_event(1)
        machine.change_state(Walking)
        machine.execute_heartbeat_event(1)
        assert [e[1] for e in events(machine, "heartbeat")] == ["Idle", "Walking"]

    def test_counter_scenario(self, registry):
        machine = StateMachine(
            Waiting, [Waiting, Walking], manual_heartbeat=True, registry=registry,
        )

        machine.execute_heartbeat_event(1)
        assert machine.current_state.name == "Waiting"
        machine.execute_heartbeat_event(1)
        assert machine.current_state.name == "Waiting"
        machine.execute_heartbeat_event(1)
        assert machine.current_state.name == "Walking"
        assert machine.previous_state.name == "Waiting"

    def test_transition_heartbeat_after_state_heartbeat(self, registry):
        order = []

        class Probe(Transition):
            target_state = "Walking"

            def on_heartbeat(self, data, delta_time):
                order.append("transition")
                return False

        class Probed(State):
            transitions = [Probe]

            def on_heartbeat(self, data, delta_time):
                order.append("state")

        machine = StateMachine(Probed, [Probed, Walking], manual_heartbeat=True, registry=registry)
        machine.execute_heartbeat_event(1)

        assert order == ["state", "transition"]

    def test_stops_after_first_successful_switch(self, registry):
        checked = []

        class ToWalking(Transition):
            target_state = "Walking"

            def on_heartbeat(self, data, delta_time):
                checked.append("walking")
                return True

        class ToIdle(Transition):
            target_state = "Idle"

            def on_heartbeat(self, data, delta_time):
                checked.append("idle")
                return True

        class Start(State):
            transitions = [ToWalking, ToIdle]

        machine = StateMachine(Start, [Start, Idle, Walking], manual_heartbeat=True, registry=registry)
        machine.execute_heartbeat_event(1)

        assert checked == ["walking"]
        assert machine.current_state.name == "Walking"

    def test_refused_switch_checks_next_transition(self, registry):
        class ToWalking(Transition):
            target_state = "Walking"

            def on_heartbeat(self, data, delta_time):
                return True

        class ToIdle(Transition):
            target_state = Idle

            def on_heartbeat(self, data, delta_time):
                return True

        class Picky(State):
            transitions = [ToWalking, ToIdle]

            def can_change_state(self, target):
                return target.name != "Walking"

        machine = StateMachine(Picky, [Picky, Idle, Walking], manual_heartbeat=True, registry=registry)
        machine.execute_heartbeat_event(1)

        assert machine.current_state.name == "Idle"

    def test_state_heartbeat_switch_skips_stale_transitions(self, registry):
        """A switch made by the state's own heartbeat ends the frame."""
        checked = []

        class Never(Transition):
            target_state = "Idle"

            def on_heartbeat(self, data, delta_time):
                checked.append(True)
                return False

        class Eager(State):
            transitions = [Never]

            def on_heartbeat(self, data, delta_time):
                self.change_state("Walking")

        machine = StateMachine(Eager, [Eager, Idle, Walking], manual_heartbeat=True, registry=registry)
        machine.execute_heartbeat_event(1)

        assert machine.current_state.name == "Walking"
        assert checked == []

    def test_unknown_transition_target_raises(self, registry):
        class Broken(Transition):
            target_state = "Nowhere"

            def on_heartbeat(self, data, delta_time):
                return True

        class Start(State):
            transitions = [Broken]

        machine = StateMachine(Start, [Start], manual_heartbeat=True, registry=registry)
        with pytest.raises(InvalidStateReference):
            machine.execute_heartbeat_event(1)
        assert machine.current_state.name == "Start"


class TestDestroy:

    def test_destroy_hooks_for_every_state(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        machine.destroy()
        assert events(machine, "destroy") == [("destroy", "Idle"), ("destroy", "Walking")]

    def test_destroy_clears_states_and_registry(self, registry):
        machine = StateMachine(Waiting, [Waiting, Walking], registry=registry)
        waiting = machine.current_state

        machine.destroy()

        assert machine.destroyed
        assert machine.get_states() == []
        assert waiting.active_transitions == []
        assert machine not in registry
        assert machine.state_changed.destroyed

    def test_destroy_twice(self, registry):
        machine = StateMachine(Idle, [Idle], registry=registry)
        machine.destroy()
        machine.destroy()
        assert len(events(machine, "destroy")) == 1

    def test_use_after_destroy_raises(self, registry):
        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        machine.destroy()
        with pytest.raises(MachineDestroyedError):
            machine.change_state(Walking)
        with pytest.raises(MachineDestroyedError):
            machine.execute_heartbeat_event(1)


class Dead(State):
    """Destroys its machine as soon as it is entered."""

    def on_enter(self, data):
        self.machine.destroy()


class DeadOnArrival(Transition):
    target_state = Dead

    def on_heartbeat(self, data, delta_time):
        return True


class Doomed(State):
    transitions = [DeadOnArrival]


class TestDestroyFromHook:

    def test_change_into_self_destroying_state(self, registry):
        machine = StateMachine(Idle, [Idle, Dead], registry=registry)
        fired = []
        machine.state_changed.connect(lambda new, old: fired.append(new))

        assert machine.change_state(Dead) is True

        assert machine.destroyed
        assert machine not in registry
        assert fired == []

    def test_destroy_during_frame_spares_other_machines(self):
        engine = Engine()
        registry = MachineRegistry(source=engine.heartbeat)
        doomed = StateMachine(Doomed, [Doomed, Dead], registry=registry)
        survivor = StateMachine(Idle, [Idle], registry=registry)

        engine.step()
        engine.step()

        assert doomed.destroyed
        assert events(survivor, "heartbeat") == [
            ("heartbeat", "Idle", engine.clock.dt), ("heartbeat", "Idle", engine.clock.dt),
        ]

    def test_destroyed_during_construction_never_registers(self, registry):
        machine = StateMachine(Dead, [Dead, Idle], registry=registry)

        assert machine.destroyed
        assert machine not in registry
        assert not registry.connected


class TestInitialStateIdentity:

    def test_same_named_foreign_class_rejected(self, registry):
        class Impostor(State):
            name = "Idle"

        with pytest.raises(InvalidStateReference):
            StateMachine(Impostor, [Idle, Walking], registry=registry)
        assert len(registry) == 0

    def test_same_named_foreign_class_rejected_by_change_state(self, registry):
        class Impostor(State):
            name = "Walking"

        machine = StateMachine(Idle, [Idle, Walking], registry=registry)
        with pytest.raises(InvalidStateReference):
            machine.change_state(Impostor)
