from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from .controller import ControllerConfig
from .process.plant_process import ProcessConfig
from .state import Tank, TankMode, check_mode


@dataclass
class TankConfig:
    tank_id: str
    controllable: bool = True
    fill_interval: float = 1.0      # seconds between increments
    fill_amount: float = 1.0        # meter % per increment
    repair_duration: float = 10.0   # seconds
    initial_mode: TankMode = "RUNNING"
    initial_meter: float = 0.0
    resume_mode: Optional[TankMode] = None  # None -> RUNNING if autonomous, else STOPPED

    def __post_init__(self) -> None:
        if not self.tank_id:
            raise ValueError("tank_id must be a non-empty string")
        if float(self.fill_interval) <= 0:
            raise ValueError(f"{self.tank_id}: fill_interval must be > 0")
        if float(self.fill_amount) < 0:
            raise ValueError(f"{self.tank_id}: fill_amount must be >= 0")
        if float(self.repair_duration) <= 0:
            raise ValueError(f"{self.tank_id}: repair_duration must be > 0")
        if float(self.initial_meter) < 0:
            raise ValueError(f"{self.tank_id}: initial_meter must be >= 0")
        check_mode(self.initial_mode)
        if self.resume_mode is None:
            self.resume_mode = "STOPPED" if self.controllable else "RUNNING"
        check_mode(self.resume_mode)

    def build(self) -> Tank:
        return Tank(
            tank_id=self.tank_id,
            fill_interval=float(self.fill_interval),
            fill_amount=float(self.fill_amount),
            repair_duration=float(self.repair_duration),
            controllable=bool(self.controllable),
            resume_mode=self.resume_mode,  # type: ignore[arg-type]
            mode=self.initial_mode,
            meter=float(self.initial_meter),
            # a tank that starts in ERROR waits for repair like any other
            can_control=self.initial_mode != "ERROR",
        )


def default_tanks() -> List[TankConfig]:
    return [
        TankConfig("A", controllable=True),
        TankConfig("B", controllable=True),
        TankConfig("C", controllable=False),
    ]


@dataclass
class SimulatorConfig:
    tanks: List[TankConfig] = field(default_factory=default_tanks)
    process: ProcessConfig = field(default_factory=ProcessConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    seed: int = 42
    max_history: int = 500

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SimulatorConfig":
        d = dict(d or {})
        known = {"tanks", "process", "controller", "seed", "max_history"}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"unknown config keys: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {}
        if "tanks" in d:
            tanks = d["tanks"]
            if not isinstance(tanks, list) or not tanks:
                raise ValueError("'tanks' must be a non-empty list")
            kwargs["tanks"] = [_build(TankConfig, t, "tank") for t in tanks]
        if "process" in d:
            kwargs["process"] = _build(ProcessConfig, d["process"], "process")
        if "controller" in d:
            kwargs["controller"] = _build(ControllerConfig, d["controller"], "controller")
        if "seed" in d:
            kwargs["seed"] = int(d["seed"])
        if "max_history" in d:
            kwargs["max_history"] = int(d["max_history"])
        return cls(**kwargs)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build(cls, data: Any, what: str):
    if not isinstance(data, dict):
        raise ValueError(f"{what} config must be an object, got {type(data).__name__}")
    allowed = {f.name for f in fields(cls)}
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"unknown {what} config keys: {sorted(unknown)}")
    try:
        return cls(**data)
    except TypeError as e:
        raise ValueError(f"invalid {what} config: {e}") from e


def load_config(path: str) -> SimulatorConfig:
    with open(path, "r", encoding="utf-8") as f:
        return SimulatorConfig.from_dict(json.load(f))
