from .plant import (
    SimulatorConfig,
    TankConfig,
    TankMode,
    TankSimulator,
    TankSnapshot,
    load_config,
)

__version__ = "0.1.0"

__all__ = [
    "SimulatorConfig",
    "TankConfig",
    "TankMode",
    "TankSimulator",
    "TankSnapshot",
    "load_config",
]
