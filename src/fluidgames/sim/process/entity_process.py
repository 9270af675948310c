# fluidgames/sim/process/entity_process.py
from __future__ import annotations

import random
from typing import Optional

from ..config import Scenario
from ..state import Event, GateConfiguration, SimulatedEntity
from .reservoir import ReservoirProcess
from .thermal import ThermalProcess


class EntityProcess:
    def __init__(self, scenario: Scenario):
        self.scenario = scenario
        self.reservoir = ReservoirProcess(scenario.forcing, scenario.outflow)
        self.thermal = ThermalProcess()

    def step(
        self,
        e: SimulatedEntity,
        gate: GateConfiguration,
        event: Optional[Event],
        stress: float,
        dt: float,
        rng: random.Random,
        valves_fire: bool = False,
    ) -> SimulatedEntity:
        if dt <= 0 or e.failed:
            return e

        spec = self.scenario.spec(e.id)
        if spec is None:
            return e

        if e.kind == "thermal" and spec.thermal is not None:
            return self.thermal.step(e, spec.thermal, dt)

        return self.reservoir.step(e, spec, gate, event, stress, dt, rng, valves_fire=valves_fire)
