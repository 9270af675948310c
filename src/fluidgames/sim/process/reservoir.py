# fluidgames/sim/process/reservoir.py
from __future__ import annotations

import random
from dataclasses import replace
from typing import Optional

from .. import physics
from ..config import EntitySpec, OutflowConfig
from ..forcing import ForcingConfig, noisy_inflow, perturb_valve
from ..state import Event, GateConfiguration, SimulatedEntity


class ReservoirProcess:
    """
    Stock-and-flow step of one reservoir/tank.
    - Inflow from drifting valves or a noisy base flow, scaled by stress and event.
    - Outflow through the relief gate orifice, driven by last tick's height.
    - Volume, height and the hydrostatic load on the gate.
    """

    def __init__(self, forcing: ForcingConfig, outflow: Optional[OutflowConfig] = None):
        self.forcing = forcing
        self.outflow = outflow

    def step(
        self,
        e: SimulatedEntity,
        spec: EntitySpec,
        gate: GateConfiguration,
        event: Optional[Event],
        stress: float,
        dt: float,
        rng: random.Random,
        valves_fire: bool = False,
    ) -> SimulatedEntity:
        if dt <= 0:
            return e

        valves = self._update_valves(e, valves_fire, rng)
        q_in = self._inflow(spec, valves, event, stress, rng)
        q_out = self._outflow(e, gate, event)

        stock = physics.integrate_stock(e.stock, q_in, q_out, dt)
        level = physics.level_from_stock(stock, spec.area, spec.max_level, spec.overflow_factor)

        force_kn = physics.to_kilo(physics.hydrostatic_force(level, gate.height, gate.width))
        limit_mult = event.limit_multiplier if event is not None else 1.0
        effective_limit = max(0.0, float(gate.limit_force_kn) * limit_mult)

        return replace(
            e,
            stock=stock,
            derived_level=level,
            valves=valves,
            inflow=q_in,
            outflow=q_out,
            force_kn=force_kn,
            effective_limit_kn=effective_limit,
            previous_utilization=e.utilization,
            utilization=physics.utilization(force_kn, effective_limit),
            peak_force_kn=max(e.peak_force_kn, force_kn),
        )

    # ======================================================
    # Inflow
    # ======================================================
    def _update_valves(self, e: SimulatedEntity, fire: bool, rng: random.Random):
        if not fire or not e.valves:
            return e.valves
        cfg = self.forcing
        return tuple(
            perturb_valve(v, rng, band=cfg.valve_band_pct, jump_probability=cfg.valve_jump_probability)
            for v in e.valves
        )

    def _inflow(self, spec: EntitySpec, valves, event: Optional[Event], stress: float, rng: random.Random) -> float:
        if spec.valve_max_flows:
            base = sum(
                q_max * (float(valves[i]) / 100.0 if i < len(valves) else 0.0)
                for i, q_max in enumerate(spec.valve_max_flows)
            )
        else:
            base = float(spec.base_inflow)

        q = noisy_inflow(base * stress, self.forcing.inflow_noise_band, rng)
        flow_mult = event.flow_multiplier if event is not None else 1.0
        return max(0.0, q * flow_mult)

    # ======================================================
    # Outflow (relief gate)
    # ======================================================
    def _outflow(self, e: SimulatedEntity, gate: GateConfiguration, event: Optional[Event]) -> float:
        cfg = self.outflow
        if cfg is None or e.control_input <= 0.0:
            return 0.0
        if event is not None and event.blocks_outflow:
            return 0.0

        return physics.orifice_outflow(
            opening_fraction=e.control_input / 100.0,
            effective_area=gate.area * cfg.area_fraction,
            height=e.derived_level,
            discharge_coefficient=cfg.discharge_coefficient,
        )
