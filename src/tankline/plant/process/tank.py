from __future__ import annotations

from typing import Dict, Optional

from ..events import EventBus, OVERFLOW_ALL_RESET, OVERFLOW_ERROR, WARNING_70
from ..state import Tank, TankRegistry


class FillProcess:
    """
    Meter accumulation for RUNNING tanks.

    Controllable tanks are advanced first and autonomous tanks last, so an
    overflow reset by the autonomous tank sees sibling ERRORs raised in the
    same tick.

    The 70% warning is checked after each increment only. A tank that starts
    with its meter already in the warning band reports it on its first
    increment, not at construction.
    """

    def __init__(self, bus: EventBus, warning_pct: float = 70.0, overflow_pct: float = 100.0):
        self.bus = bus
        self.warning_pct = float(warning_pct)
        self.overflow_pct = float(overflow_pct)

    def step(self, reg: TankRegistry, dt: float, sim_time: float = 0.0,
             run_time: Optional[Dict[str, float]] = None) -> None:
        if dt <= 0:
            return

        run_time = run_time or {}
        for tank in reg.controllable() + reg.autonomous():
            self._step_tank(reg, tank, min(dt, run_time.get(tank.tank_id, dt)), sim_time)

    def _step_tank(self, reg: TankRegistry, t: Tank, dt: float, sim_time: float) -> None:
        if t.mode != "RUNNING" or dt <= 0:
            return

        t.accumulated_time = float(t.accumulated_time) + dt

        # one increment at a time so no warning/overflow is skipped on large dt
        while t.accumulated_time >= t.fill_interval:
            t.accumulated_time -= t.fill_interval
            t.meter = float(t.meter) + float(t.fill_amount)

            self._check_warning(t, sim_time)

            if t.meter >= self.overflow_pct:
                if t.controllable:
                    self._overflow_error(t, sim_time)
                    return
                self._overflow_reset(reg, t, sim_time)

    def _check_warning(self, t: Tank, sim_time: float) -> None:
        if t.warned:
            return
        if self.warning_pct <= t.meter < self.overflow_pct:
            t.warned = True
            self.bus.emit(WARNING_70, t.tank_id, sim_time, meter=float(t.meter))

    def _overflow_error(self, t: Tank, sim_time: float) -> None:
        t.mode = "ERROR"
        t.can_control = False
        # partial interval is abandoned with the fill cycle
        t.accumulated_time = 0.0
        self.bus.emit(OVERFLOW_ERROR, t.tank_id, sim_time, meter=float(t.meter))

    def _overflow_reset(self, reg: TankRegistry, t: Tank, sim_time: float) -> None:
        reset_ids = [t.tank_id]
        t.reset_meter()
        for other in reg.siblings(t):
            if other.mode != "ERROR":
                other.reset_meter()
                reset_ids.append(other.tank_id)
        self.bus.emit(OVERFLOW_ALL_RESET, t.tank_id, sim_time, reset=reset_ids)
