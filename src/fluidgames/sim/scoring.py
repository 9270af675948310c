# fluidgames/sim/scoring.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .state import SimulationState


@dataclass(frozen=True)
class BandReward:
    # per-tick points while the first entity's level stays in [low, high]
    low: float
    high: float
    points: float


@dataclass
class ScoringPolicy:
    band_reward: Optional[BandReward] = None

    # dwell near failure: force above near_failure_ratio * effective limit
    near_failure_ratio: float = 0.9
    near_failure_fraction: float = 0.3     # of target time
    near_failure_penalty: float = 15.0

    emergency_penalty: float = 10.0

    fail_penalty: float = 50.0
    success_base: float = 100.0

    # sizing efficiency from peak utilization
    well_sized_range: Tuple[float, float] = (0.6, 0.95)
    well_sized_bonus: float = 30.0
    oversized_below: float = 0.3
    oversized_penalty: float = 20.0
    risky_above: float = 0.95
    risky_penalty: float = 10.0
    no_emergency_bonus: float = 10.0
    per_emergency_penalty: float = 5.0


# ======================================================
# Per-tick rules
# ======================================================
def band_points(state: SimulationState, policy: ScoringPolicy) -> float:
    rule = policy.band_reward
    if rule is None or not state.entities:
        return 0.0
    value = state.entities[0].derived_level
    return rule.points if rule.low <= value <= rule.high else 0.0


def near_failure(state: SimulationState, policy: ScoringPolicy) -> bool:
    for e in state.entities:
        if e.effective_limit_kn > 0.0 and e.force_kn > policy.near_failure_ratio * e.effective_limit_kn:
            return True
    return False


def apply_tick_scoring(state: SimulationState, policy: ScoringPolicy, dt: float) -> SimulationState:
    score = state.score + band_points(state, policy)
    dwell = state.near_failure_time + (dt if near_failure(state, policy) else 0.0)
    return replace(state, score=score, near_failure_time=dwell)


# ======================================================
# One-shot rules
# ======================================================
def emergency_penalty(state: SimulationState, policy: ScoringPolicy, level: int) -> SimulationState:
    return replace(
        state,
        score=state.score - policy.emergency_penalty * level,
        emergency_uses=state.emergency_uses + 1,
    )


def peak_utilization(state: SimulationState) -> float:
    peak = 0.0
    for e in state.entities:
        ref = e.effective_limit_kn
        if ref > 0.0:
            peak = max(peak, e.peak_force_kn / ref)
    return peak


def success_delta(
    state: SimulationState,
    policy: ScoringPolicy,
    level: int,
    target_time: float,
) -> float:
    gained = policy.success_base * level

    u = peak_utilization(state)
    lo, hi = policy.well_sized_range
    if lo < u <= hi:
        gained += policy.well_sized_bonus * level
    elif u < policy.oversized_below:
        gained -= policy.oversized_penalty * level
    elif u > policy.risky_above:
        gained -= policy.risky_penalty * level

    if state.emergency_uses == 0:
        gained += policy.no_emergency_bonus * level
    else:
        gained -= policy.per_emergency_penalty * level * state.emergency_uses

    if state.near_failure_time > target_time * policy.near_failure_fraction:
        gained -= policy.near_failure_penalty * level

    return gained


def finalize(
    state: SimulationState,
    policy: ScoringPolicy,
    level: int,
    target_time: float,
) -> SimulationState:
    """Apply terminal adjustments exactly once."""
    if state.result_finalized or state.result == "NONE":
        return state

    if state.result == "FAIL":
        delta = -policy.fail_penalty * level
    else:
        delta = success_delta(state, policy, level, target_time)

    return replace(state, score=state.score + delta, result_finalized=True)
