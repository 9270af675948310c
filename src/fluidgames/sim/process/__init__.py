from .entity_process import EntityProcess
from .reservoir import ReservoirProcess
from .thermal import ThermalProcess

__all__ = ["EntityProcess", "ReservoirProcess", "ThermalProcess"]
