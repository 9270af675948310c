# fluidgames/sim/failure.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Literal, Optional, Sequence, Tuple

from .state import FailureReason, SimulatedEntity, TickResult, frozen_map


Quantity = Literal["utilization", "level"]
Comparator = Literal["above", "below"]

# same tolerance as the cadence channels
GRACE_EPS = 1e-9


@dataclass(frozen=True)
class ConditionSpec:
    """One debounced failure condition.

    Safe -> Breaching(elapsed) -> Failed. Every breaching tick adds dt
    (the first one included); a single clear tick resets the timer.
    The entity fails once elapsed > grace_period_s, so grace 0 fails on
    the first breaching tick.
    """

    id: str
    quantity: Quantity
    comparator: Comparator
    threshold: float
    grace_period_s: float
    reason: FailureReason

    def breaching(self, entity: SimulatedEntity) -> bool:
        value = entity.utilization if self.quantity == "utilization" else entity.derived_level
        if self.comparator == "above":
            return value > self.threshold
        return value < self.threshold


@dataclass(frozen=True)
class SaveRule:
    # "relieved in time": utilization was >= armed, now <= released
    armed_utilization: float = 0.9
    released_utilization: float = 0.7


def evaluate_entity(
    entity: SimulatedEntity,
    conditions: Sequence[ConditionSpec],
    dt: float,
) -> Tuple[SimulatedEntity, Optional[FailureReason]]:
    """Update debounce timers; returns (entity', reason if it failed this tick)."""
    if entity.failed:
        return entity, None

    timers: Dict[str, float] = dict(entity.debounce_timers)
    failed_reason: Optional[FailureReason] = None

    for cond in conditions:
        if cond.breaching(entity):
            # elapsed = breaching ticks * dt, recounted so repeated sums never drift
            ticks = round(float(timers.get(cond.id, 0.0)) / dt) if dt > 0 else 0
            timers[cond.id] = (ticks + 1) * dt
        else:
            timers[cond.id] = 0.0

        # first writer wins inside a tick
        if failed_reason is None and timers[cond.id] > cond.grace_period_s + GRACE_EPS:
            failed_reason = cond.reason

    updated = replace(entity, debounce_timers=frozen_map(timers))
    if failed_reason is not None:
        updated = replace(updated, failed=True, failure_reason=failed_reason)
    return updated, failed_reason


def is_saved(entity: SimulatedEntity, rule: Optional[SaveRule]) -> bool:
    if rule is None or entity.failed:
        return False
    return (
        entity.previous_utilization >= rule.armed_utilization
        and entity.utilization <= rule.released_utilization
    )


def evaluate_all(
    entities: Sequence[SimulatedEntity],
    conditions: Sequence[ConditionSpec],
    save_rule: Optional[SaveRule],
    dt: float,
    active_ids: Sequence[int],
) -> Tuple[Tuple[SimulatedEntity, ...], TickResult]:
    """Evaluate every entity that integrated this tick.

    The tick aggregate keeps the lowest entity index for both the first
    failure and the first save; a save is not reported in a tick that
    also has a failure.
    """
    active = set(active_ids)
    out = []
    failures = []
    saves = []

    for idx, entity in enumerate(entities):
        if entity.id not in active:
            out.append(entity)
            continue

        updated, reason = evaluate_entity(entity, conditions, dt)
        if reason is not None:
            failures.append((idx, updated.id, reason))
        elif is_saved(updated, save_rule):
            saves.append((idx, updated.id))
        out.append(updated)

    first_failure = None
    first_save = None
    if failures:
        _, eid, reason = min(failures, key=lambda f: f[0])
        first_failure = (eid, reason)
    elif saves:
        first_save = min(saves, key=lambda s: s[0])[1]

    return tuple(out), TickResult(first_failure=first_failure, first_save=first_save)
