from .failure import FailureProcess
from .plant_process import PlantProcess, ProcessConfig
from .tank import FillProcess

__all__ = ["FailureProcess", "FillProcess", "PlantProcess", "ProcessConfig"]
