from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Literal

from ..utils import clamp


TankMode = Literal["RUNNING", "STOPPED", "ERROR"]
TANK_MODES = ("RUNNING", "STOPPED", "ERROR")

METER_DISPLAY_MAX = 100.0


def check_mode(mode: str) -> TankMode:
    if mode not in TANK_MODES:
        raise ValueError(f"unknown tank mode {mode!r}, expected one of {TANK_MODES}")
    return mode  # type: ignore[return-value]


@dataclass
class Tank:
    # static parameters (fixed for the process lifetime)
    tank_id: str
    fill_interval: float = 1.0
    fill_amount: float = 1.0
    repair_duration: float = 10.0
    controllable: bool = True
    resume_mode: TankMode = "STOPPED"

    # runtime
    mode: TankMode = "RUNNING"
    meter: float = 0.0
    accumulated_time: float = 0.0
    can_control: bool = True
    is_repairing: bool = False
    repair_elapsed: float = 0.0
    warned: bool = False  # 70% warning already emitted since last reset

    @property
    def display_meter(self) -> float:
        return clamp(float(self.meter), 0.0, METER_DISPLAY_MAX)

    @property
    def repair_remaining(self) -> float:
        if not self.is_repairing:
            return 0.0
        return max(0.0, float(self.repair_duration) - float(self.repair_elapsed))

    def reset_meter(self) -> None:
        self.meter = 0.0
        self.warned = False


@dataclass(frozen=True)
class TankSnapshot:
    tank_id: str
    mode: TankMode
    meter: float
    can_control: bool
    is_repairing: bool
    controllable: bool
    repair_remaining_s: float

    @classmethod
    def of(cls, tank: Tank) -> "TankSnapshot":
        return cls(
            tank_id=tank.tank_id,
            mode=tank.mode,
            meter=tank.display_meter,
            can_control=tank.can_control,
            is_repairing=tank.is_repairing,
            controllable=tank.controllable,
            repair_remaining_s=tank.repair_remaining,
        )


class TankRegistry:
    """Fixed, ordered set of tanks with lookup by id."""

    def __init__(self, tanks: List[Tank]):
        self._tanks: List[Tank] = list(tanks)
        self._by_id: Dict[str, Tank] = {}
        for t in self._tanks:
            if t.tank_id in self._by_id:
                raise ValueError(f"duplicate tank id {t.tank_id!r}")
            self._by_id[t.tank_id] = t

    def __iter__(self) -> Iterator[Tank]:
        return iter(self._tanks)

    def __len__(self) -> int:
        return len(self._tanks)

    def __contains__(self, tank_id: object) -> bool:
        return tank_id in self._by_id

    def get(self, tank_id: str) -> Tank:
        try:
            return self._by_id[tank_id]
        except KeyError:
            raise KeyError(f"unknown tank {tank_id!r}") from None

    def ids(self) -> List[str]:
        return [t.tank_id for t in self._tanks]

    def controllable(self) -> List[Tank]:
        return [t for t in self._tanks if t.controllable]

    def autonomous(self) -> List[Tank]:
        return [t for t in self._tanks if not t.controllable]

    def siblings(self, tank: Tank) -> List[Tank]:
        return [t for t in self._tanks if t is not tank]
