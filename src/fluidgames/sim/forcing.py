# fluidgames/sim/forcing.py
from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Literal, Optional, Sequence, Tuple

from .state import Event, clamp


EventScope = Literal["entity", "global"]


@dataclass(frozen=True)
class EventTemplate:
    kind: str
    title: str
    description: str = ""
    flow_multiplier: float = 1.0
    limit_multiplier: float = 1.0
    blocks_outflow: bool = False
    duration_range: Tuple[float, float] = (6.0, 12.0)  # s

    def instantiate(self, rng: random.Random) -> Event:
        lo, hi = self.duration_range
        duration = lo if hi <= lo else rng.uniform(lo, hi)
        return Event(
            kind=self.kind,
            title=self.title,
            description=self.description,
            flow_multiplier=self.flow_multiplier,
            limit_multiplier=self.limit_multiplier,
            blocks_outflow=self.blocks_outflow,
            remaining_time=duration,
        )


@dataclass
class ForcingConfig:
    # valve drift (reservoir game): +-band percentage points every valve_period
    valve_period_s: float = 0.8
    valve_band_pct: float = 20.0
    valve_jump_probability: float = 0.2

    # multiplicative inflow noise (multi-tank game): base * (1 + U(-b, b))
    inflow_noise_band: float = 0.0

    # events
    event_catalog: Tuple[EventTemplate, ...] = ()
    event_scope: EventScope = "entity"
    event_period_s: float = 0.0         # 0 -> evaluated every tick
    event_probability: float = 0.0      # per evaluation

    # progressive difficulty: flows scale by 1 + stress_ramp * min(1, t/target)
    stress_ramp: float = 0.5


# ======================================================
# Per-tick perturbations
# ======================================================
def perturb_valve(
    current_opening: float,
    rng: random.Random,
    band: float = 20.0,
    jump_probability: float = 0.2,
) -> float:
    new_open = float(current_opening) + rng.uniform(-band, band)

    # sometimes a large sudden change
    if rng.random() < jump_probability:
        new_open = rng.uniform(0.0, 100.0)

    return clamp(new_open, 0.0, 100.0)


def noisy_inflow(base_inflow: float, noise_band: float, rng: random.Random) -> float:
    if noise_band <= 0.0:
        return max(0.0, float(base_inflow))
    noise = rng.uniform(-noise_band, noise_band)
    return max(0.0, float(base_inflow) * (1.0 + noise))


def stress_factor(clock_time: float, target_time: Optional[float], ramp: float) -> float:
    if not target_time or target_time <= 0.0:
        return 1.0
    return 1.0 + ramp * min(1.0, max(0.0, clock_time) / target_time)


# ======================================================
# Events
# ======================================================
def maybe_trigger_event(
    catalog: Sequence[EventTemplate],
    trigger_probability: float,
    rng: random.Random,
) -> Optional[Event]:
    if not catalog or trigger_probability <= 0.0:
        return None
    if rng.random() >= trigger_probability:
        return None
    template = catalog[int(rng.random() * len(catalog)) % len(catalog)]
    return template.instantiate(rng)


def decay_event(event: Optional[Event], elapsed: float) -> Optional[Event]:
    """Count an event down; None means it just ended (caller notifies once)."""
    if event is None:
        return None
    remaining = float(event.remaining_time) - float(elapsed)
    if remaining <= 0.0:
        return None
    return replace(event, remaining_time=remaining)


def advance_event(
    event: Optional[Event],
    cfg: ForcingConfig,
    elapsed: float,
    rng: random.Random,
) -> Tuple[Optional[Event], Optional[str], Optional[str]]:
    """Decay an active event or, when none is active, maybe draw a new one.

    Returns (event, started_notice, ended_title).
    """
    if event is not None:
        decayed = decay_event(event, elapsed)
        if decayed is None:
            return None, None, event.title
        return decayed, None, None

    fresh = maybe_trigger_event(cfg.event_catalog, cfg.event_probability, rng)
    if fresh is not None:
        started = f"{fresh.title}: {fresh.description}" if fresh.description else fresh.title
        return fresh, started, None
    return None, None, None


# ======================================================
# Cadence
# ======================================================
def channel_fires(tick: int, dt: float, period_s: float) -> bool:
    """True when the tick ending at (tick + 1) * dt crosses a period boundary."""
    if period_s <= 0.0 or period_s <= dt:
        return True
    # small epsilon so 0.2 * 4 == 0.8 lands on the boundary
    before = int(tick * dt / period_s + 1e-9)
    after = int((tick + 1) * dt / period_s + 1e-9)
    return after > before
