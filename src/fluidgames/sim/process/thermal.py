# fluidgames/sim/process/thermal.py
from __future__ import annotations

from dataclasses import replace

from .. import physics
from ..config import ThermalNodeConfig
from ..state import SimulatedEntity


class ThermalProcess:
    """Heat playground node: stock and level are both the tracked temperature (C)."""

    def step(self, e: SimulatedEntity, node: ThermalNodeConfig, dt: float) -> SimulatedEntity:
        if dt <= 0:
            return e

        actuator = node.actuator(e.control_input)

        if node.mode == "conduction":
            alpha = physics.diffusivity(node.k, node.rho, node.cp)
            profile = physics.conduction_step(
                e.profile, alpha, node.length, actuator, node.t_right, dt
            )
            t = physics.centre_value(profile)
            return replace(e, profile=profile, stock=t, derived_level=t)

        if node.mode == "convection":
            t = physics.convection_step(
                e.stock, actuator, node.area, node.mass, node.cp, node.t_ambient, dt
            )
        else:
            t = physics.radiation_step(
                e.stock, node.emissivity, node.area, node.mass, node.cp, node.t_ambient, actuator, dt
            )

        return replace(e, stock=t, derived_level=t)
