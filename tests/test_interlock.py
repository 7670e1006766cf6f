from helpers import FixedRng, make_sim, record, types

from tankline.plant.controller import InterlockController
from tankline.plant.events import EventBus


def modes(sim):
    return {t.tank_id: t.mode for t in sim.tanks}


def test_stopping_one_controllable_tank_runs_the_other():
    sim = make_sim()
    assert sim.set_desired_state("A", "STOPPED") is True
    assert modes(sim) == {"A": "STOPPED", "B": "RUNNING", "C": "RUNNING"}

    assert sim.set_desired_state("B", "STOPPED") is True
    assert modes(sim) == {"A": "RUNNING", "B": "STOPPED", "C": "RUNNING"}


def test_auto_start_emits_interlock_start_only_on_real_change():
    sim = make_sim()
    events = record(sim)

    sim.set_desired_state("A", "STOPPED")
    assert "interlock_start" not in types(events)  # B was already running

    sim.set_desired_state("B", "STOPPED")
    assert types(events, "A") == ["interlock_start"]
    assert events[-1].data["trigger"] == "B"


def test_operator_cannot_set_error():
    sim = make_sim()
    assert sim.set_desired_state("A", "ERROR") is False
    assert sim.get_snapshot("A").mode == "RUNNING"
    assert sim.get_snapshot("A").can_control is True


def test_autonomous_tank_ignores_operator():
    sim = make_sim()
    assert sim.set_desired_state("C", "STOPPED") is False
    assert sim.get_snapshot("C").mode == "RUNNING"


def test_same_state_command_does_not_trigger_rule():
    sim = make_sim()
    sim.set_desired_state("A", "STOPPED")
    sim.set_desired_state("B", "STOPPED")  # A -> RUNNING
    assert sim.set_desired_state("B", "STOPPED") is False
    assert modes(sim)["A"] == "RUNNING"


def test_error_tank_is_not_auto_started():
    sim = make_sim(b={"initial_mode": "ERROR", "initial_meter": 100.0})
    assert sim.set_desired_state("A", "STOPPED") is True
    assert modes(sim)["B"] == "ERROR"


def test_error_tank_ignores_commands():
    sim = make_sim(a={"initial_mode": "ERROR"})
    assert sim.set_desired_state("A", "RUNNING") is False
    assert sim.set_desired_state("A", "STOPPED") is False
    assert modes(sim)["A"] == "ERROR"


def test_automatic_overflow_does_not_auto_start_sibling():
    sim = make_sim(b={"initial_meter": 95.0, "fill_amount": 10.0})
    sim.set_desired_state("A", "STOPPED")
    sim.step(1.0)

    assert modes(sim) == {"A": "STOPPED", "B": "ERROR", "C": "RUNNING"}
    # and it does not fire later on either
    sim.step(5.0)
    assert modes(sim)["A"] == "STOPPED"


def test_autonomous_failure_stops_controllable_tanks():
    sim = make_sim(a={"initial_meter": 99.0, "fill_amount": 5.0}, failure_probability=0.01, rng=FixedRng(0.0))
    events = record(sim)
    sim.step(1.0)

    assert modes(sim) == {"A": "STOPPED", "B": "STOPPED", "C": "ERROR"}
    # stopped before filling: no overflow, no increments in the failure tick
    assert sim.tanks.get("A").meter == 99.0
    assert sim.tanks.get("B").meter == 0.0
    assert sim.get_snapshot("C").can_control is False
    assert types(events) == ["autonomous_failure", "interlock_stop", "interlock_stop"]


def test_stopped_tank_cannot_be_started_while_autonomous_in_error():
    sim = make_sim(c={"initial_mode": "ERROR"})
    assert modes(sim) == {"A": "STOPPED", "B": "STOPPED", "C": "ERROR"}

    assert sim.set_desired_state("A", "RUNNING") is False
    assert modes(sim)["A"] == "STOPPED"

    sim.step(3.0)
    assert modes(sim) == {"A": "STOPPED", "B": "STOPPED", "C": "ERROR"}


def test_autonomous_error_dominates_auto_start():
    sim = make_sim()
    reg = sim.tanks
    ctl = InterlockController(EventBus())

    # B is stopped by the operator in the same pass where C has failed
    reg.get("C").mode = "ERROR"
    reg.get("A").mode = "STOPPED"
    reg.get("B").mode = "STOPPED"
    ctl.on_operator_change(reg, reg.get("B"), "RUNNING")
    assert reg.get("A").mode == "STOPPED"

    ctl.evaluate(reg)
    assert [t.mode for t in reg] == ["STOPPED", "STOPPED", "ERROR"]


def test_mutual_standby_can_be_disabled():
    sim = make_sim(mutual_standby=False)
    sim.set_desired_state("A", "STOPPED")
    sim.set_desired_state("B", "STOPPED")
    assert modes(sim) == {"A": "STOPPED", "B": "STOPPED", "C": "RUNNING"}


def test_controllable_error_in_autonomous_fault_stays_error():
    sim = make_sim(a={"initial_mode": "ERROR"}, c={"initial_mode": "ERROR"})
    assert modes(sim) == {"A": "ERROR", "B": "STOPPED", "C": "ERROR"}
