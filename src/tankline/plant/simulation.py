from __future__ import annotations

import logging
import random
from typing import List, Optional

from .config import SimulatorConfig
from .controller import InterlockController
from .events import EventBus
from .process import PlantProcess
from .repair import RepairScheduler
from .state import TankRegistry, TankSnapshot, check_mode

logger = logging.getLogger(__name__)


class TankSimulator:
    """
    Core of the tank triad.

    One tick = repair timer -> process (random failure, interlock, fill/overflow)
    -> interlock. Operator commands apply immediately and are followed by an
    interlock pass, so state read back is always consistent. Inapplicable
    commands return False and change nothing.
    """

    def __init__(self, cfg: SimulatorConfig | None = None, rng: Optional[random.Random] = None):
        self.cfg = cfg or SimulatorConfig()
        self.bus = EventBus(max_history=self.cfg.max_history)
        self.tanks = TankRegistry([t.build() for t in self.cfg.tanks])

        self.process = PlantProcess(self.bus, self.cfg.process, seed=self.cfg.seed, rng=rng)
        self.controller = InterlockController(self.bus, self.cfg.controller)
        self.repair = RepairScheduler(self.bus)

        self.sim_time_s: float = 0.0
        self.tick_n: int = 0

        self.controller.evaluate(self.tanks, self.sim_time_s)

    # ======================================================
    # CLOCK
    # ======================================================
    def step(self, dt: float) -> None:
        if dt <= 0:
            return

        self.sim_time_s += float(dt)
        self.tick_n += 1

        # 1) repair deadline; a tank resumed mid-tick only runs for the rest of it
        holder = self.repair.holder
        leftover = self.repair.advance(self.tanks, dt, self.sim_time_s)
        run_time = {holder: leftover} if holder is not None and leftover is not None else None

        # 2) random failure (+ rule 1 before anything fills), fill accumulation / overflow
        self.process.step(self.tanks, dt, self.sim_time_s,
                          interlock=self.controller.evaluate, run_time=run_time)

        # 3) interlock before anyone reads state
        self.controller.evaluate(self.tanks, self.sim_time_s)

    # ======================================================
    # OPERATOR COMMANDS
    # ======================================================
    def set_desired_state(self, tank_id: str, mode: str) -> bool:
        mode = check_mode(mode)
        tank = self.tanks.get(tank_id)

        if not tank.controllable or not tank.can_control:
            logger.debug("set %s=%s ignored: tank not controllable now", tank_id, mode)
            return False
        if mode == "ERROR":
            # ERROR comes only from overflow or failure
            logger.debug("set %s=ERROR ignored: not an operator state", tank_id)
            return False
        if mode == tank.mode:
            return False

        previous = tank.mode
        tank.mode = mode

        self.controller.on_operator_change(self.tanks, tank, previous, self.sim_time_s)
        self.controller.evaluate(self.tanks, self.sim_time_s)
        if tank.mode != mode:
            logger.debug("set %s=%s overridden by interlock (now %s)", tank_id, mode, tank.mode)
            return False
        return True

    def reset_meter(self, tank_id: str) -> bool:
        tank = self.tanks.get(tank_id)
        if tank.mode == "ERROR":
            logger.debug("reset of %s ignored: tank in ERROR", tank_id)
            return False
        tank.reset_meter()
        return True

    def start_repair(self, tank_id: str) -> bool:
        tank = self.tanks.get(tank_id)
        ok = self.repair.start_repair(tank, self.sim_time_s)
        self.controller.evaluate(self.tanks, self.sim_time_s)
        return ok

    def cancel_repair(self, tank_id: str) -> bool:
        tank = self.tanks.get(tank_id)
        return self.repair.cancel_repair(tank, self.sim_time_s)

    def can_start_repair(self, tank_id: str) -> bool:
        return self.repair.can_start(self.tanks.get(tank_id))

    # ======================================================
    # READ-BACK
    # ======================================================
    def get_snapshot(self, tank_id: str) -> TankSnapshot:
        return TankSnapshot.of(self.tanks.get(tank_id))

    def snapshots(self) -> List[TankSnapshot]:
        return [TankSnapshot.of(t) for t in self.tanks]
