# fluidgames/sim/physics.py
"""
Physics kernel.
- Pure functions only: hydrostatics, orifice outflow, explicit Euler stock
  updates and the thermal node steps used by the heat playground.
- SI units inside (Pa, N, m3/s, K for radiation); kN/kPa only for display.
- Every input coming from a text field goes through finite_or_zero first,
  so NaN never reaches a stock.
"""
from __future__ import annotations

import math
from typing import Sequence, Tuple

from .state import clamp


RHO_WATER = 1000.0          # kg/m3
G = 9.81                    # m/s2
SIGMA = 5.670374419e-8      # W/m2K4, Stefan-Boltzmann
KELVIN_OFFSET = 273.15


# ======================================================
# Numeric hygiene
# ======================================================
def finite_or_zero(x: object) -> float:
    try:
        v = float(x)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return v if math.isfinite(v) else 0.0


def parse_number(text: object, default: float = 0.0) -> float:
    """Lenient parse of a user text field ("3,5" and " 2 " are accepted)."""
    if isinstance(text, str):
        text = text.strip().replace(",", ".")
        if not text:
            return default
    v = finite_or_zero(text)
    if v == 0.0 and default != 0.0:
        return default
    return v


def to_kilo(x: float) -> float:
    return finite_or_zero(x) / 1000.0


# ======================================================
# Hydrostatics
# ======================================================
def hydrostatic_pressure(height: float, fluid_density: float = RHO_WATER, gravity: float = G) -> float:
    h = max(0.0, finite_or_zero(height))
    return finite_or_zero(fluid_density) * finite_or_zero(gravity) * h


def effective_height(height: float, gate_height: float) -> float:
    h = max(0.0, finite_or_zero(height))
    return min(h, max(0.0, finite_or_zero(gate_height)))


def hydrostatic_force(
    height: float,
    gate_height: float,
    width: float,
    fluid_density: float = RHO_WATER,
    gravity: float = G,
) -> float:
    # resultant on a vertical rectangular gate, grows with h_eff^2
    h_eff = effective_height(height, gate_height)
    w = max(0.0, finite_or_zero(width))
    return 0.5 * finite_or_zero(fluid_density) * finite_or_zero(gravity) * h_eff * h_eff * w


def utilization(force_kn: float, limit_kn: float) -> float:
    limit = finite_or_zero(limit_kn)
    if limit <= 0.0:
        return 0.0
    return max(0.0, finite_or_zero(force_kn)) / limit


# ======================================================
# Flows and stocks
# ======================================================
def orifice_outflow(
    opening_fraction: float,
    effective_area: float,
    height: float,
    discharge_coefficient: float = 0.62,
    gravity: float = G,
) -> float:
    frac = clamp(finite_or_zero(opening_fraction), 0.0, 1.0)
    h = finite_or_zero(height)
    area = max(0.0, finite_or_zero(effective_area))
    if frac <= 0.0 or h <= 0.0 or area <= 0.0:
        return 0.0
    return finite_or_zero(discharge_coefficient) * area * math.sqrt(2.0 * finite_or_zero(gravity) * h) * frac


def integrate_stock(stock: float, inflow: float, outflow: float, dt: float) -> float:
    s = finite_or_zero(stock) + (finite_or_zero(inflow) - finite_or_zero(outflow)) * finite_or_zero(dt)
    return max(0.0, s)


def level_from_stock(stock: float, area: float, max_level: float, overflow_factor: float = 1.0) -> float:
    a = finite_or_zero(area)
    if a <= 0.0:
        return 0.0
    cap = max(0.0, finite_or_zero(max_level) * finite_or_zero(overflow_factor))
    return clamp(max(0.0, finite_or_zero(stock)) / a, 0.0, cap)


def drain_volume(stock: float, drain_rate: float, dt: float) -> float:
    # emptying through a ruptured gate; below 1e-4 m3 counts as empty
    s = integrate_stock(stock, 0.0, drain_rate, dt)
    return 0.0 if s <= 1e-4 else s


# ======================================================
# Thermal nodes (heat playground)
# ======================================================
def to_kelvin(tc: float) -> float:
    return finite_or_zero(tc) + KELVIN_OFFSET


def diffusivity(k: float, rho: float, cp: float) -> float:
    denom = finite_or_zero(rho) * finite_or_zero(cp)
    return finite_or_zero(k) / denom if denom > 0.0 else 0.0


def convection_step(
    temperature: float,
    h: float,
    area: float,
    mass: float,
    cp: float,
    t_inf: float,
    dt: float,
) -> float:
    heat_capacity = finite_or_zero(mass) * finite_or_zero(cp)  # J/K
    t = finite_or_zero(temperature)
    if heat_capacity <= 0.0:
        return t
    ua = finite_or_zero(h) * finite_or_zero(area)
    dtdt = -(ua / heat_capacity) * (t - finite_or_zero(t_inf))
    return t + dtdt * finite_or_zero(dt)


def radiation_step(
    temperature: float,
    emissivity: float,
    area: float,
    mass: float,
    cp: float,
    t_surroundings: float,
    q_in: float,
    dt: float,
) -> float:
    heat_capacity = finite_or_zero(mass) * finite_or_zero(cp)
    t = finite_or_zero(temperature)
    if heat_capacity <= 0.0:
        return t
    tk = to_kelvin(t)
    tsk = to_kelvin(t_surroundings)
    q_out = finite_or_zero(emissivity) * SIGMA * finite_or_zero(area) * (tk ** 4 - tsk ** 4)
    dtdt = (finite_or_zero(q_in) - q_out) / heat_capacity
    return t + dtdt * finite_or_zero(dt)


def stable_conduction_dt(dx: float, alpha: float) -> float:
    if alpha <= 0.0:
        return math.inf
    return 0.9 * 0.5 * dx * dx / alpha


def conduction_step(
    profile: Sequence[float],
    alpha: float,
    length: float,
    t_left: float,
    t_right: float,
    dt: float,
) -> Tuple[float, ...]:
    """Explicit FTCS step of a 1D bar with fixed end temperatures.

    The step is split into equal sub-steps so each one respects the
    explicit stability limit r <= 0.45.
    """
    temps = [finite_or_zero(t) for t in profile]
    n = len(temps)
    if n < 3:
        return tuple(temps)

    temps[0] = finite_or_zero(t_left)
    temps[-1] = finite_or_zero(t_right)

    dt = max(0.0, finite_or_zero(dt))
    a = max(0.0, finite_or_zero(alpha))
    dx = finite_or_zero(length) / (n - 1)
    if dt <= 0.0 or a <= 0.0 or dx <= 0.0:
        return tuple(temps)

    substeps = max(1, math.ceil(dt / stable_conduction_dt(dx, a)))
    r = a * (dt / substeps) / (dx * dx)

    for _ in range(substeps):
        prev = temps[:]
        for i in range(1, n - 1):
            temps[i] = prev[i] + r * (prev[i + 1] - 2.0 * prev[i] + prev[i - 1])

    return tuple(temps)


def centre_value(profile: Sequence[float]) -> float:
    if not profile:
        return 0.0
    return float(profile[len(profile) // 2])
