from __future__ import annotations

import random
from typing import Optional

from ..events import AUTONOMOUS_FAILURE, EventBus
from ..state import TankRegistry


class FailureProcess:
    """Random failure of RUNNING autonomous tanks, fixed probability per tick."""

    def __init__(self, bus: EventBus, probability: float = 0.001, seed: int = 42,
                 rng: Optional[random.Random] = None):
        self.bus = bus
        self.probability = float(probability)
        self._rng = rng or random.Random(seed)

    def step(self, reg: TankRegistry, dt: float, sim_time: float = 0.0) -> bool:
        """Returns True if any tank failed in this step."""
        if dt <= 0 or self.probability <= 0.0:
            return False

        failed = False
        for t in reg.autonomous():
            if t.mode != "RUNNING":
                continue
            if self._rng.random() < self.probability:
                t.mode = "ERROR"
                t.can_control = False
                failed = True
                self.bus.emit(AUTONOMOUS_FAILURE, t.tank_id, sim_time, meter=float(t.meter))
        return failed
