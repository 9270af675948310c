# fluidgames/sim/state.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Literal, Mapping, Optional, Tuple


EntityKind = Literal["reservoir", "thermal"]
FailureReason = Literal["NONE", "OVERPRESSURE", "DRY"]
GameResult = Literal["NONE", "SUCCESS", "FAIL"]


# default clamp function
def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def frozen_map(values: Mapping[str, float] | None = None) -> Mapping[str, float]:
    # fresh dict behind a read-only view: snapshots never share a writable map
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class Event:
    kind: str
    title: str
    description: str = ""
    flow_multiplier: float = 1.0
    limit_multiplier: float = 1.0
    blocks_outflow: bool = False
    remaining_time: float = 0.0


@dataclass(frozen=True)
class GateConfiguration:
    material_id: str = "steel"
    height: float = 3.0            # m
    width: float = 3.0             # m
    thickness: float = 0.20        # m
    limit_force_kn: float = 300.0  # kN

    @property
    def area(self) -> float:
        return self.height * self.width


@dataclass(frozen=True)
class SimulatedEntity:
    id: int
    name: str
    kind: EntityKind = "reservoir"

    # stock: m3 for reservoirs, degC for thermal nodes
    stock: float = 0.0
    derived_level: float = 0.0

    # actuator position 0..100 (gate switch / fan / heater)
    control_input: float = 0.0
    # inflow valve openings 0..100 (drift randomly, read-only for the player)
    valves: Tuple[float, ...] = ()
    # temperature grid for conduction nodes
    profile: Tuple[float, ...] = ()

    active_event: Optional[Event] = None

    failed: bool = False
    failure_reason: FailureReason = "NONE"
    debounce_timers: Mapping[str, float] = field(default_factory=frozen_map)

    # derived per tick
    inflow: float = 0.0
    outflow: float = 0.0
    force_kn: float = 0.0
    effective_limit_kn: float = 0.0
    utilization: float = 0.0
    previous_utilization: float = 0.0
    peak_force_kn: float = 0.0


@dataclass(frozen=True)
class TickResult:
    """What happened during one tick, for one-time notifications.

    At most one failure and one save are reported even when several entities
    change state in the same tick; the lowest entity index wins.
    """

    first_failure: Optional[Tuple[int, FailureReason]] = None
    first_save: Optional[int] = None
    event_started: Optional[str] = None
    event_ended: Optional[str] = None


@dataclass(frozen=True)
class SimulationState:
    clock_time: float = 0.0
    tick: int = 0

    running: bool = False
    has_started: bool = False
    game_over: bool = False
    result: GameResult = "NONE"
    result_finalized: bool = False

    score: float = 0.0
    emergency_uses: int = 0
    near_failure_time: float = 0.0

    entities: Tuple[SimulatedEntity, ...] = ()
    gate: GateConfiguration = field(default_factory=GateConfiguration)
    global_event: Optional[Event] = None

    last_tick: TickResult = field(default_factory=TickResult)
    message: str = ""

    def entity(self, entity_id: int) -> Optional[SimulatedEntity]:
        for e in self.entities:
            if e.id == entity_id:
                return e
        return None

    @property
    def any_failed(self) -> bool:
        return any(e.failed for e in self.entities)


def replace_entity(state: SimulationState, updated: SimulatedEntity) -> SimulationState:
    return replace(
        state,
        entities=tuple(updated if e.id == updated.id else e for e in state.entities),
    )
