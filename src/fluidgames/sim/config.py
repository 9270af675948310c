# fluidgames/sim/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple

from .failure import ConditionSpec, SaveRule
from .forcing import ForcingConfig
from .scoring import ScoringPolicy
from .state import EntityKind, GateConfiguration, clamp


ThermalMode = Literal["conduction", "convection", "radiation"]


@dataclass(frozen=True)
class GateMaterial:
    id: str
    name: str
    description: str = ""
    suggested_limit_kn: float = 0.0


@dataclass(frozen=True)
class LevelConfig:
    id: int
    name: str
    description: str = ""
    reservoir_area: float = 25.0                 # m2
    reservoir_height_max: float = 4.0            # m
    max_flows: Tuple[float, ...] = (3.0, 2.0, 1.0)  # m3/s per valve
    target_time: float = 40.0                    # s
    drain_rate: float = 8.0                      # m3/s after rupture


@dataclass(frozen=True)
class ThermalNodeConfig:
    mode: ThermalMode = "convection"

    # control 0..100 maps linearly onto this actuator range:
    # conduction -> left end temperature (C), convection -> h (W/m2K),
    # radiation -> absorbed solar power (W)
    control_span: Tuple[float, float] = (0.0, 100.0)

    initial_temperature: float = 20.0   # C

    # conduction bar
    k: float = 205.0                    # W/mK
    rho: float = 2700.0                 # kg/m3
    cp: float = 897.0                   # J/kgK
    length: float = 0.5                 # m
    points: int = 80
    t_right: float = 20.0               # C

    # lumped node
    area: float = 0.3                   # m2
    mass: float = 2.0                   # kg
    t_ambient: float = 25.0             # C (fluid for convection, surroundings for radiation)
    emissivity: float = 0.85

    def actuator(self, control_input: float) -> float:
        lo, hi = self.control_span
        return lo + (hi - lo) * clamp(float(control_input), 0.0, 100.0) / 100.0


@dataclass(frozen=True)
class EntitySpec:
    id: int
    name: str
    kind: EntityKind = "reservoir"

    # reservoir geometry
    area: float = 15.0                  # m2
    max_level: float = 5.0              # m
    overflow_factor: float = 1.3

    # inflow: either a fixed base (m3/s) or a bank of randomly drifting valves
    base_inflow: float = 0.0
    valve_max_flows: Tuple[float, ...] = ()
    initial_valves: Tuple[float, ...] = ()

    initial_stock: float = 0.0
    initial_control: float = 0.0

    thermal: Optional[ThermalNodeConfig] = None


@dataclass(frozen=True)
class OutflowConfig:
    # relief orifice: Cd * (gate area * area_fraction) * sqrt(2 g h) * opening
    discharge_coefficient: float = 0.62
    area_fraction: float = 0.25


@dataclass(frozen=True)
class EmergencyConfig:
    # spillway removes spill_fraction of the design volume (area * max level)
    spill_fraction: float = 0.25
    min_level: float = 0.2              # m, below this the spillway does nothing


@dataclass
class Scenario:
    name: str
    title: str = ""
    level: int = 1

    dt: float = 0.25                    # s of simulated time per tick
    target_time: Optional[float] = None # s to survive; None = free play

    entities: Tuple[EntitySpec, ...] = ()
    gate: GateConfiguration = field(default_factory=GateConfiguration)
    materials: Tuple[GateMaterial, ...] = ()

    forcing: ForcingConfig = field(default_factory=ForcingConfig)
    outflow: Optional[OutflowConfig] = None
    emergency: Optional[EmergencyConfig] = None

    conditions: Tuple[ConditionSpec, ...] = ()
    save_rule: Optional[SaveRule] = None
    scoring: ScoringPolicy = field(default_factory=ScoringPolicy)

    drain_rate: float = 0.0             # m3/s through a ruptured gate
    # False: the rupture tick does not advance the clock (reservoir game)
    clock_runs_on_failure: bool = True

    def spec(self, entity_id: int) -> Optional[EntitySpec]:
        for s in self.entities:
            if s.id == entity_id:
                return s
        return None

    def material(self, material_id: str) -> Optional[GateMaterial]:
        for m in self.materials:
            if m.id == material_id:
                return m
        return None
