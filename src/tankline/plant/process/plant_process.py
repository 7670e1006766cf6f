from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..events import EventBus
from ..state import TankRegistry
from .failure import FailureProcess
from .tank import FillProcess


@dataclass
class ProcessConfig:
    # random failure of the autonomous tank, per tick
    failure_probability: float = 0.001

    # meter thresholds (%)
    warning_pct: float = 70.0
    overflow_pct: float = 100.0


class PlantProcess:
    def __init__(self, bus: EventBus, cfg: ProcessConfig | None = None, seed: int = 42,
                 rng: Optional[random.Random] = None):
        self.cfg = cfg or ProcessConfig()
        self.failure = FailureProcess(bus, self.cfg.failure_probability, seed=seed, rng=rng)
        self.fill = FillProcess(bus, self.cfg.warning_pct, self.cfg.overflow_pct)

    def step(
        self,
        reg: TankRegistry,
        dt: float,
        sim_time: float = 0.0,
        interlock: Optional[Callable[[TankRegistry, float], None]] = None,
        run_time: Optional[Dict[str, float]] = None,
    ) -> None:
        """
        failure -> interlock -> fill.

        `interlock` runs between failure and fill, so tanks stopped by a
        failure in this tick do not fill during it. `run_time` caps the
        fill time of individual tanks (e.g. resumed partway through the tick).
        """
        if dt <= 0:
            return

        if self.failure.step(reg, dt, sim_time) and interlock is not None:
            interlock(reg, sim_time)
        self.fill.step(reg, dt, sim_time, run_time=run_time)
