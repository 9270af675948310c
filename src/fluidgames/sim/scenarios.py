# fluidgames/sim/scenarios.py
from __future__ import annotations

from typing import Tuple

from .config import (
    EmergencyConfig,
    EntitySpec,
    GateMaterial,
    LevelConfig,
    OutflowConfig,
    Scenario,
    ThermalNodeConfig,
)
from .failure import ConditionSpec, SaveRule
from .forcing import EventTemplate, ForcingConfig
from .scoring import BandReward, ScoringPolicy
from .state import GateConfiguration


# =========================
# Difficulty levels
# =========================
LEVELS: Tuple[LevelConfig, ...] = (
    LevelConfig(
        id=1,
        name="Level 1 - Introduction",
        description="Shallow reservoir, fast filling.",
        reservoir_area=25.0,
        reservoir_height_max=4.0,
        max_flows=(3.0, 2.0, 1.0),
        target_time=40.0,
        drain_rate=8.0,
    ),
    LevelConfig(
        id=2,
        name="Level 2 - Moderate inflow",
        description="Larger reservoir, very dynamic filling.",
        reservoir_area=40.0,
        reservoir_height_max=5.0,
        max_flows=(4.0, 3.0, 2.0),
        target_time=60.0,
        drain_rate=12.0,
    ),
    LevelConfig(
        id=3,
        name="Level 3 - Challenge",
        description="High inflow, deep reservoir and fast responses.",
        reservoir_area=60.0,
        reservoir_height_max=7.0,
        max_flows=(5.0, 4.0, 3.0),
        target_time=80.0,
        drain_rate=15.0,
    ),
)


def level_config(level: int) -> LevelConfig:
    for lvl in LEVELS:
        if lvl.id == level:
            return lvl
    raise ValueError(f"unknown level: {level!r}")


# =========================
# Gate materials
# =========================
RESERVOIR_MATERIALS: Tuple[GateMaterial, ...] = (
    GateMaterial("steel", "Steel", "High strength, suited to deep water.", 400.0),
    GateMaterial("concrete", "Reinforced concrete", "Intermediate strength at a fair cost.", 280.0),
    GateMaterial("wood", "Wood", "Low strength, for introductory levels.", 120.0),
)

TANK_MATERIALS: Tuple[GateMaterial, ...] = (
    GateMaterial("steel", "Steel", "High strength, suited to high pressure.", 60.0),
    GateMaterial("concrete", "Reinforced concrete", "Intermediate strength and cost.", 45.0),
    GateMaterial("wood", "Wood", "Low strength, classroom use only.", 25.0),
)

# heat playground materials: k (W/mK), rho (kg/m3), cp (J/kgK)
THERMAL_MATERIALS = {
    "copper": (401.0, 8960.0, 385.0),
    "aluminium": (205.0, 2700.0, 897.0),
    "steel": (50.0, 7850.0, 470.0),
    "wood": (0.12, 500.0, 1600.0),
    "insulation": (0.03, 30.0, 1400.0),
}


# =========================
# Event catalogs
# =========================
def reservoir_events(level: int) -> Tuple[EventTemplate, ...]:
    duration = 6.0 + 2.0 * level  # 8, 10, 12 s
    span = (duration, duration)
    return (
        EventTemplate(
            kind="extreme_rain",
            title="Extreme rain upstream",
            description="Inflows rise sharply for a few seconds.",
            flow_multiplier=1.5 + 0.1 * level,
            duration_range=span,
        ),
        EventTemplate(
            kind="microcracks",
            title="Micro-cracks in the gate",
            description="The gate is temporarily weaker, watch the hydrostatic force!",
            limit_multiplier=0.7,
            duration_range=span,
        ),
        EventTemplate(
            kind="upstream_control",
            title="Upstream control",
            description="An operator throttles the upstream flow, a chance to relieve pressure.",
            flow_multiplier=0.7,
            duration_range=span,
        ),
    )


TANK_EVENTS: Tuple[EventTemplate, ...] = (
    EventTemplate(
        kind="inflow_spike",
        title="Sudden inflow spike",
        description="Inflow increased drastically.",
        flow_multiplier=2.3,
    ),
    EventTemplate(
        kind="relief_failure",
        title="Temporary relief failure",
        description="The gate does not relieve for a few seconds.",
        blocks_outflow=True,
    ),
    EventTemplate(
        kind="turbulent_inflow",
        title="Strong inflow oscillations",
        description="Inflow is more unstable and unpredictable.",
        flow_multiplier=1.6,
    ),
)


# =========================
# Reservoir gate game
# =========================
def reservoir_gate_scenario(level: int = 1) -> Scenario:
    lvl = level_config(level)

    reservoir = EntitySpec(
        id=0,
        name="Reservoir",
        area=lvl.reservoir_area,
        max_level=lvl.reservoir_height_max,
        overflow_factor=1.2,
        valve_max_flows=lvl.max_flows,
        initial_valves=(40.0, 20.0, 10.0),
    )

    return Scenario(
        name="reservoir_gate",
        title=lvl.name,
        level=lvl.id,
        dt=0.2,
        target_time=lvl.target_time,
        entities=(reservoir,),
        gate=GateConfiguration(
            material_id="steel", height=3.0, width=3.0, thickness=0.20, limit_force_kn=300.0
        ),
        materials=RESERVOIR_MATERIALS,
        forcing=ForcingConfig(
            valve_period_s=0.8,
            valve_band_pct=20.0,
            valve_jump_probability=0.2,
            event_catalog=reservoir_events(lvl.id),
            event_scope="global",
            event_period_s=1.0,
            event_probability=0.15 + 0.05 * (lvl.id - 1),
            stress_ramp=0.5,
        ),
        emergency=EmergencyConfig(spill_fraction=0.25, min_level=0.2),
        conditions=(
            ConditionSpec(
                id="overpressure",
                quantity="utilization",
                comparator="above",
                threshold=1.0,
                grace_period_s=0.0,
                reason="OVERPRESSURE",
            ),
        ),
        scoring=ScoringPolicy(),
        drain_rate=lvl.drain_rate,
        clock_runs_on_failure=False,
    )


# =========================
# Multi-tank pressure game
# =========================
NUM_TANKS = 10
TANK_TARGET_TIME = 90.0
DRY_LEVEL_THRESHOLD = 0.05     # m
DRY_TIME_LIMIT = 5.0           # s
OVERPRESSURE_TIME_LIMIT = 5.0  # s


def multi_tank_scenario(level: int = 1, num_tanks: int = NUM_TANKS) -> Scenario:
    lvl = level_config(level)
    k = lvl.id - 1
    flow_scale = 1.0 + 0.1 * k

    tanks = tuple(
        EntitySpec(
            id=i,
            name=f"Tank {i + 1}",
            area=15.0,
            max_level=5.0,
            overflow_factor=1.3,
            base_inflow=(0.9 + 0.05 * i) * flow_scale,
        )
        for i in range(max(1, int(num_tanks)))
    )

    return Scenario(
        name="multi_tank",
        title=f"Tanks under pressure - level {lvl.id}",
        level=lvl.id,
        dt=0.25,
        target_time=TANK_TARGET_TIME + 15.0 * k,
        entities=tanks,
        gate=GateConfiguration(
            material_id="steel", height=3.0, width=2.0, thickness=0.25, limit_force_kn=60.0
        ),
        materials=TANK_MATERIALS,
        forcing=ForcingConfig(
            inflow_noise_band=0.3,
            event_catalog=TANK_EVENTS,
            event_scope="entity",
            event_period_s=0.0,
            event_probability=0.03 + 0.01 * k,
            stress_ramp=0.5,
        ),
        outflow=OutflowConfig(discharge_coefficient=0.62, area_fraction=0.25),
        conditions=(
            ConditionSpec(
                id="dry",
                quantity="level",
                comparator="below",
                threshold=DRY_LEVEL_THRESHOLD,
                grace_period_s=DRY_TIME_LIMIT,
                reason="DRY",
            ),
            ConditionSpec(
                id="overpressure",
                quantity="utilization",
                comparator="above",
                threshold=1.0,
                grace_period_s=OVERPRESSURE_TIME_LIMIT,
                reason="OVERPRESSURE",
            ),
        ),
        save_rule=SaveRule(armed_utilization=0.9, released_utilization=0.7),
        scoring=ScoringPolicy(),
        drain_rate=lvl.drain_rate,
    )


# =========================
# Heat playground
# =========================
HEAT_MODES = ("conduction", "convection", "radiation")


def heat_playground_scenario(mode: str = "conduction", material: str = "aluminium") -> Scenario:
    if mode not in HEAT_MODES:
        raise ValueError(f"unknown heat mode: {mode!r}")
    if material not in THERMAL_MATERIALS:
        raise ValueError(f"unknown material: {material!r}")

    if mode == "conduction":
        k, rho, cp = THERMAL_MATERIALS[material]
        node = ThermalNodeConfig(
            mode="conduction",
            control_span=(0.0, 100.0),          # left end temperature, C
            initial_temperature=20.0,
            k=k, rho=rho, cp=cp,
            length=0.5,
            points=80,
            t_right=20.0,
        )
        initial_control = 90.0
        target = 45.0
        reward = BandReward(low=target - 0.5, high=target + 0.5, points=1.0)
        name = "Conduction bar"
    elif mode == "convection":
        node = ThermalNodeConfig(
            mode="convection",
            control_span=(0.0, 100.0),          # h, W/m2K
            initial_temperature=80.0,
            cp=900.0,
            area=0.3,
            mass=2.0,
            t_ambient=25.0,
        )
        initial_control = 15.0
        reward = BandReward(low=-273.15, high=40.0, points=2.0)
        name = "Cooling plate"
    else:
        node = ThermalNodeConfig(
            mode="radiation",
            control_span=(0.0, 1000.0),         # absorbed solar power, W
            initial_temperature=20.0,
            cp=900.0,
            area=0.8,
            mass=5.0,
            t_ambient=-270.0,
            emissivity=0.85,
        )
        initial_control = 100.0
        reward = BandReward(low=15.0, high=25.0, points=3.0)
        name = "Satellite"

    return Scenario(
        name=f"heat_{mode}",
        title=f"Heat playground - {mode}",
        level=1,
        dt=0.1,
        target_time=None,
        entities=(
            EntitySpec(
                id=0,
                name=name,
                kind="thermal",
                initial_control=initial_control,
                thermal=node,
            ),
        ),
        scoring=ScoringPolicy(band_reward=reward),
    )


SCENARIOS = ("reservoir_gate", "multi_tank") + tuple(f"heat_{m}" for m in HEAT_MODES)


def build_scenario(name: str, level: int = 1, material: str = "aluminium") -> Scenario:
    if name == "reservoir_gate":
        return reservoir_gate_scenario(level)
    if name == "multi_tank":
        return multi_tank_scenario(level)
    if name.startswith("heat_"):
        return heat_playground_scenario(name[len("heat_"):], material)
    raise ValueError(f"unknown scenario: {name!r}")
