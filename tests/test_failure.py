from helpers import FixedRng, make_sim, record, types

from tankline.plant.events import EventBus
from tankline.plant.process.failure import FailureProcess
from tankline.plant.state import Tank, TankRegistry


def test_failure_draw_below_probability_fails_autonomous_tank():
    sim = make_sim(failure_probability=0.001, rng=FixedRng(0.0005))
    events = record(sim)
    sim.step(0.1)

    assert sim.get_snapshot("C").mode == "ERROR"
    assert types(events, "C") == ["autonomous_failure"]


def test_failure_draw_above_probability_keeps_running():
    rng = FixedRng(0.5)
    sim = make_sim(failure_probability=0.001, rng=rng)
    for _ in range(100):
        sim.step(0.1)

    assert sim.get_snapshot("C").mode == "RUNNING"
    # one draw per tick for the single running autonomous tank
    assert rng.calls == 100


def test_failure_is_independent_of_meter():
    sim = make_sim(c={"initial_meter": 0.0, "fill_amount": 0.0}, failure_probability=0.001, rng=FixedRng(0.0))
    sim.step(0.01)
    assert sim.get_snapshot("C").mode == "ERROR"


def test_no_draw_for_non_running_tank():
    rng = FixedRng(0.0)
    sim = make_sim(failure_probability=0.5, rng=rng)
    sim.step(1.0)
    assert rng.calls == 1

    # C is now in ERROR: no further draws, no repeated events
    events = record(sim)
    sim.step(1.0)
    assert rng.calls == 1
    assert "autonomous_failure" not in types(events)


def test_controllable_tanks_never_fail_randomly():
    bus = EventBus()
    a = Tank("A", controllable=True)
    reg = TankRegistry([a])
    FailureProcess(bus, probability=1.0, rng=FixedRng(0.0)).step(reg, 1.0)
    assert a.mode == "RUNNING"


def test_zero_probability_disables_failure():
    rng = FixedRng(0.0)
    sim = make_sim(failure_probability=0.0, rng=rng)
    sim.step(1.0)
    assert rng.calls == 0
    assert sim.get_snapshot("C").mode == "RUNNING"


def test_seeded_runs_are_reproducible():
    def run():
        sim = make_sim(failure_probability=0.05)
        for _ in range(200):
            sim.step(0.5)
        return [(s.mode, s.meter) for s in sim.snapshots()]

    assert run() == run()
