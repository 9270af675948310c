"""
Shared pytest fixtures for the simulation core.

- scripted_rng: a random source whose draws are queued by the test
- tank_scenario: one closed tank already holding water above a 60 kN gate
"""

import random
from dataclasses import replace

import pytest

from fluidgames.sim.config import EntitySpec, Scenario
from fluidgames.sim.failure import ConditionSpec
from fluidgames.sim.forcing import ForcingConfig
from fluidgames.sim.state import GateConfiguration


class ScriptedRng(random.Random):
    """random() and uniform() replay queued values, then fall back to neutral draws.

    Queued uniform values are fractions of the requested interval.
    With empty queues random() returns 0.99 (no trigger, no jump) and
    uniform() returns the interval midpoint (zero noise).
    """

    def __init__(self, randoms=(), uniforms=()):
        super().__init__(0)
        self.randoms = list(randoms)
        self.uniforms = list(uniforms)

    def random(self):
        if self.randoms:
            return self.randoms.pop(0)
        return 0.99

    def uniform(self, a, b):
        if self.uniforms:
            return a + (b - a) * self.uniforms.pop(0)
        return (a + b) / 2.0


@pytest.fixture
def scripted_rng():
    return ScriptedRng


@pytest.fixture
def tank_scenario():
    # 45 m3 over 15 m2 -> 3 m of water, gate 3 m x 2 m -> 88.29 kN against 60 kN
    return Scenario(
        name="test_tank",
        level=1,
        dt=0.25,
        target_time=90.0,
        entities=(EntitySpec(id=0, name="Tank 1", area=15.0, max_level=5.0, overflow_factor=1.3, initial_stock=45.0),),
        gate=GateConfiguration(material_id="steel", height=3.0, width=2.0, thickness=0.25, limit_force_kn=60.0),
        forcing=ForcingConfig(valve_period_s=1000.0, stress_ramp=0.0),
        conditions=(
            ConditionSpec(
                id="overpressure",
                quantity="utilization",
                comparator="above",
                threshold=1.0,
                grace_period_s=5.0,
                reason="OVERPRESSURE",
            ),
        ),
    )


@pytest.fixture
def with_gate():
    def _apply(scenario, **fields):
        return replace(scenario, gate=replace(scenario.gate, **fields))

    return _apply
