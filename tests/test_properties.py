"""Invariants checked over long randomized command interleavings."""

import random

import pytest

from helpers import make_sim, record

from tankline.plant.state import TANK_MODES


def random_run(seed: int, steps: int = 1500, with_resets: bool = True):
    sim = make_sim(
        a={"fill_amount": 7.0, "repair_duration": 3.0},
        b={"fill_amount": 9.0, "repair_duration": 4.0},
        c={"fill_amount": 6.0, "repair_duration": 5.0},
        failure_probability=0.02,
        rng=random.Random(seed),
    )
    events = record(sim)
    rng = random.Random(seed + 1)
    ids = sim.tanks.ids()

    for _ in range(steps):
        roll = rng.random()
        tid = rng.choice(ids)
        if roll < 0.2:
            sim.set_desired_state(tid, rng.choice(TANK_MODES))
        elif roll < 0.35:
            sim.start_repair(tid)
        elif roll < 0.38:
            sim.cancel_repair(tid)
        elif roll < 0.45 and with_resets:
            sim.reset_meter(tid)
        else:
            before = {t.tank_id: t.meter for t in sim.tanks}
            n_events = len(events)
            sim.step(rng.choice([0.25, 0.5, 1.0, 2.5]))
            yield sim, before, events[n_events:]
            continue
        yield sim, None, None


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_at_most_one_tank_repairing(seed):
    for sim, _, _ in random_run(seed):
        repairing = [t.tank_id for t in sim.tanks if t.is_repairing]
        assert len(repairing) <= 1
        if repairing:
            assert sim.repair.holder == repairing[0]
        else:
            assert sim.repair.holder is None


@pytest.mark.parametrize("seed", [5, 6, 7, 8])
def test_autonomous_error_implies_no_running_controllable(seed):
    seen_fault = False
    for sim, _, _ in random_run(seed):
        if sim.get_snapshot("C").mode == "ERROR":
            seen_fault = True
            assert sim.get_snapshot("A").mode in ("ERROR", "STOPPED")
            assert sim.get_snapshot("B").mode in ("ERROR", "STOPPED")
    assert seen_fault


@pytest.mark.parametrize("seed", [9, 10, 11])
def test_error_means_no_control(seed):
    for sim, _, _ in random_run(seed):
        for t in sim.tanks:
            if t.mode == "ERROR":
                assert t.can_control is False


@pytest.mark.parametrize("seed", [12, 13, 14])
def test_meter_only_drops_on_autonomous_reset(seed):
    for sim, before, tick_events in random_run(seed, with_resets=False):
        if before is None:
            continue
        reset_ids = set()
        for ev in tick_events:
            if ev.type == "overflow_all_reset":
                reset_ids.update(ev.data["reset"])
        for t in sim.tanks:
            if t.meter < before[t.tank_id]:
                assert t.tank_id in reset_ids


def test_reset_is_idempotent_on_healthy_tank():
    sim = make_sim(a={"initial_meter": 42.0})
    assert sim.reset_meter("A") is True
    assert sim.tanks.get("A").meter == 0.0
    assert sim.reset_meter("A") is True
    assert sim.tanks.get("A").meter == 0.0


def test_reset_never_changes_error_tank():
    sim = make_sim(a={"initial_mode": "ERROR", "initial_meter": 101.0})
    assert sim.reset_meter("A") is False
    assert sim.reset_meter("A") is False
    assert sim.tanks.get("A").meter == pytest.approx(101.0)


def test_reset_works_on_stopped_and_autonomous_tanks():
    sim = make_sim(a={"initial_meter": 30.0}, c={"initial_meter": 60.0})
    sim.set_desired_state("A", "STOPPED")
    assert sim.reset_meter("A") is True
    assert sim.reset_meter("C") is True
    assert sim.tanks.get("A").meter == 0.0
    assert sim.tanks.get("C").meter == 0.0
