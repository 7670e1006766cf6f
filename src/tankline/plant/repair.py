from __future__ import annotations

import logging
from typing import Optional

from .events import EventBus, REPAIR_CANCELLED, REPAIR_COMPLETED, REPAIR_STARTED
from .state import Tank, TankRegistry

logger = logging.getLogger(__name__)


class RepairScheduler:
    """
    Single shared repair slot.

    start_repair takes the token only when it is free and the tank is in ERROR.
    The repair is a deadline checked on every advance(), the rest of the
    plant keeps running meanwhile.
    """

    def __init__(self, bus: EventBus):
        self.bus = bus
        self.holder: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.holder is not None

    def can_start(self, tank: Tank) -> bool:
        return self.holder is None and tank.mode == "ERROR"

    def start_repair(self, tank: Tank, sim_time: float = 0.0) -> bool:
        if not self.can_start(tank):
            logger.debug(
                "repair of %s rejected (mode=%s, holder=%s)", tank.tank_id, tank.mode, self.holder
            )
            return False

        self.holder = tank.tank_id
        tank.is_repairing = True
        tank.repair_elapsed = 0.0
        tank.can_control = False
        self.bus.emit(REPAIR_STARTED, tank.tank_id, sim_time, duration_s=float(tank.repair_duration))
        return True

    def cancel_repair(self, tank: Tank, sim_time: float = 0.0) -> bool:
        if self.holder != tank.tank_id:
            return False

        # tank stays in ERROR with its meter as-is
        self.holder = None
        tank.is_repairing = False
        tank.repair_elapsed = 0.0
        self.bus.emit(REPAIR_CANCELLED, tank.tank_id, sim_time)
        return True

    def advance(self, reg: TankRegistry, dt: float, sim_time: float = 0.0) -> Optional[float]:
        """
        Runs the repair clock. When the repair completes, returns the part of
        dt left after the deadline (None otherwise).
        """
        if dt <= 0 or self.holder is None:
            return None

        tank = reg.get(self.holder)
        tank.repair_elapsed = float(tank.repair_elapsed) + dt
        if tank.repair_elapsed < tank.repair_duration:
            return None

        leftover = min(dt, tank.repair_elapsed - float(tank.repair_duration))
        self._complete(tank, sim_time)
        return leftover

    def _complete(self, tank: Tank, sim_time: float) -> None:
        self.holder = None
        tank.is_repairing = False
        tank.repair_elapsed = 0.0
        tank.can_control = True
        tank.mode = tank.resume_mode
        self.bus.emit(REPAIR_COMPLETED, tank.tank_id, sim_time, mode=tank.mode)
