from __future__ import annotations

import logging
from dataclasses import dataclass

from .events import EventBus, INTERLOCK_START, INTERLOCK_STOP
from .state import Tank, TankMode, TankRegistry

logger = logging.getLogger(__name__)


@dataclass
class ControllerConfig:
    # operator STOP on one controllable tank starts the other one(s)
    mutual_standby: bool = True


class InterlockController:
    """
    Interlock rules (priority order):
    1. autonomous tank in ERROR -> every controllable tank not in ERROR is STOPPED.
       Continuous: runs after every tick and every operator command.
    2. operator moves a controllable tank into STOPPED/ERROR -> the other
       controllable tanks not in ERROR go RUNNING. Edge only, and suppressed
       while rule 1 holds.
    """

    def __init__(self, bus: EventBus, cfg: ControllerConfig | None = None):
        self.bus = bus
        self.cfg = cfg or ControllerConfig()

    @staticmethod
    def autonomous_fault(reg: TankRegistry) -> bool:
        return any(t.mode == "ERROR" for t in reg.autonomous())

    # ======================================================
    # Rule 1 (continuous)
    # ======================================================
    def evaluate(self, reg: TankRegistry, sim_time: float = 0.0) -> None:
        if not self.autonomous_fault(reg):
            return

        for t in reg.controllable():
            if t.mode == "RUNNING":
                t.mode = "STOPPED"
                self.bus.emit(INTERLOCK_STOP, t.tank_id, sim_time, reason="autonomous_failure")

    # ======================================================
    # Rule 2 (operator edge)
    # ======================================================
    def on_operator_change(self, reg: TankRegistry, tank: Tank, previous: TankMode,
                           sim_time: float = 0.0) -> None:
        if not self.cfg.mutual_standby or not tank.controllable:
            return
        if tank.mode == previous or tank.mode not in ("STOPPED", "ERROR"):
            return
        if self.autonomous_fault(reg):
            logger.debug("auto-start after %s stop suppressed: autonomous tank in ERROR", tank.tank_id)
            return

        for other in reg.controllable():
            if other is tank or other.mode == "ERROR":
                continue
            if other.mode != "RUNNING":
                other.mode = "RUNNING"
                self.bus.emit(INTERLOCK_START, other.tank_id, sim_time, trigger=tank.tank_id)
