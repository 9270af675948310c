from .config import EntitySpec, GateMaterial, LevelConfig, Scenario, ThermalNodeConfig
from .history import RunHistory
from .scenarios import (
    LEVELS,
    SCENARIOS,
    THERMAL_MATERIALS,
    build_scenario,
    heat_playground_scenario,
    multi_tank_scenario,
    reservoir_gate_scenario,
)
from .simulation import SimulationRunner, initial_state, step_simulation
from .state import Event, GateConfiguration, SimulatedEntity, SimulationState, TickResult

__all__ = [
    "EntitySpec",
    "Event",
    "GateConfiguration",
    "GateMaterial",
    "LEVELS",
    "LevelConfig",
    "RunHistory",
    "SCENARIOS",
    "THERMAL_MATERIALS",
    "Scenario",
    "SimulatedEntity",
    "SimulationRunner",
    "SimulationState",
    "ThermalNodeConfig",
    "TickResult",
    "build_scenario",
    "heat_playground_scenario",
    "initial_state",
    "multi_tank_scenario",
    "reservoir_gate_scenario",
    "step_simulation",
]
