from .config import SimulatorConfig, TankConfig, default_tanks, load_config
from .controller import ControllerConfig, InterlockController
from .events import Event, EventBus
from .process import PlantProcess, ProcessConfig
from .repair import RepairScheduler
from .simulation import TankSimulator
from .state import TANK_MODES, Tank, TankMode, TankRegistry, TankSnapshot

__all__ = [
    "ControllerConfig",
    "Event",
    "EventBus",
    "InterlockController",
    "PlantProcess",
    "ProcessConfig",
    "RepairScheduler",
    "SimulatorConfig",
    "TANK_MODES",
    "Tank",
    "TankConfig",
    "TankMode",
    "TankRegistry",
    "TankSimulator",
    "TankSnapshot",
    "default_tanks",
    "load_config",
]
