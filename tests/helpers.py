"""Shared builders for the simulator tests"""

from typing import List, Optional

from tankline.plant.config import SimulatorConfig, TankConfig
from tankline.plant.controller import ControllerConfig
from tankline.plant.events import Event
from tankline.plant.process import ProcessConfig
from tankline.plant.simulation import TankSimulator


class FixedRng:
    """random.Random stand-in returning the same draw every time."""

    def __init__(self, value: float):
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


def make_sim(
    a: Optional[dict] = None,
    b: Optional[dict] = None,
    c: Optional[dict] = None,
    failure_probability: float = 0.0,
    mutual_standby: bool = True,
    rng=None,
) -> TankSimulator:
    tanks = [
        TankConfig("A", controllable=True, **(a or {})),
        TankConfig("B", controllable=True, **(b or {})),
        TankConfig("C", controllable=False, **(c or {})),
    ]
    cfg = SimulatorConfig(
        tanks=tanks,
        process=ProcessConfig(failure_probability=failure_probability),
        controller=ControllerConfig(mutual_standby=mutual_standby),
    )
    return TankSimulator(cfg, rng=rng)


def record(sim: TankSimulator) -> List[Event]:
    events: List[Event] = []
    sim.bus.subscribe(events.append)
    return events


def types(events: List[Event], source: Optional[str] = None) -> List[str]:
    return [e.type for e in events if source is None or e.source == source]
