# fluidgames/sim/simulation.py
from __future__ import annotations

import asyncio
import random
from dataclasses import replace
from typing import Callable, List, Optional

from ..log import log
from . import physics
from .config import Scenario
from .failure import evaluate_all
from .forcing import advance_event, channel_fires, stress_factor
from .process import EntityProcess
from .scoring import apply_tick_scoring, emergency_penalty, finalize
from .state import (
    GateConfiguration,
    SimulatedEntity,
    SimulationState,
    clamp,
    frozen_map,
    replace_entity,
)


Subscriber = Callable[[SimulationState], None]

GATE_NUMERIC_FIELDS = ("height", "width", "thickness", "limit_force_kn")


# ======================================================
# State construction
# ======================================================
def initial_entities(scenario: Scenario) -> tuple:
    out = []
    for spec in scenario.entities:
        if spec.kind == "thermal" and spec.thermal is not None:
            node = spec.thermal
            t0 = float(node.initial_temperature)
            profile = (t0,) * max(3, int(node.points)) if node.mode == "conduction" else ()
            out.append(
                SimulatedEntity(
                    id=spec.id,
                    name=spec.name,
                    kind="thermal",
                    stock=t0,
                    derived_level=t0,
                    control_input=clamp(spec.initial_control, 0.0, 100.0),
                    profile=profile,
                )
            )
            continue

        stock = max(0.0, physics.finite_or_zero(spec.initial_stock))
        out.append(
            SimulatedEntity(
                id=spec.id,
                name=spec.name,
                kind="reservoir",
                stock=stock,
                derived_level=physics.level_from_stock(stock, spec.area, spec.max_level, spec.overflow_factor),
                control_input=clamp(spec.initial_control, 0.0, 100.0),
                valves=tuple(clamp(v, 0.0, 100.0) for v in spec.initial_valves),
                debounce_timers=frozen_map({c.id: 0.0 for c in scenario.conditions}),
            )
        )
    return tuple(out)


def initial_state(scenario: Scenario, gate: Optional[GateConfiguration] = None) -> SimulationState:
    return SimulationState(
        entities=initial_entities(scenario),
        gate=gate or scenario.gate,
        message="Size the gate, then start the simulation.",
    )


# ======================================================
# One tick (pure apart from the random source)
# ======================================================
def step_simulation(state: SimulationState, scenario: Scenario, rng: random.Random) -> SimulationState:
    """Advance the whole run by one fixed step of scenario.dt.

    Order: forcing -> physics -> failure -> scoring -> success check.
    A paused or finished run is returned unchanged.
    """
    if not state.running or state.game_over:
        return state

    dt = float(scenario.dt)
    if dt <= 0:
        return state

    cfg = scenario.forcing
    stress = stress_factor(state.clock_time, scenario.target_time, cfg.stress_ramp)
    valves_fire = channel_fires(state.tick, dt, cfg.valve_period_s)
    events_fire = channel_fires(state.tick, dt, cfg.event_period_s)
    event_elapsed = max(dt, cfg.event_period_s)

    started: Optional[str] = None
    ended: Optional[str] = None

    # 1) stochastic forcing, shared event
    global_event = state.global_event
    if cfg.event_scope == "global" and events_fire and not state.any_failed:
        global_event, started, ended = advance_event(global_event, cfg, event_elapsed, rng)

    # 2) physics per entity
    process = EntityProcess(scenario)
    entities: List[SimulatedEntity] = []
    active_ids: List[int] = []

    for e in state.entities:
        if e.failed:
            entities.append(e)
            continue

        if cfg.event_scope == "entity":
            event = e.active_event
            if events_fire:
                event, s, en = advance_event(event, cfg, event_elapsed, rng)
                if s and started is None:
                    started = f"{e.name}: {s}"
                if en and ended is None:
                    ended = f"{e.name}: {en}"
        else:
            event = global_event

        e = replace(e, active_event=event)
        entities.append(process.step(e, state.gate, event, stress, dt, rng, valves_fire=valves_fire))
        active_ids.append(e.id)

    # 3) failure debounce
    evaluated, tick_result = evaluate_all(entities, scenario.conditions, scenario.save_rule, dt, active_ids)
    tick_result = replace(tick_result, event_started=started, event_ended=ended)

    clock_time = (state.tick + 1) * dt
    if tick_result.first_failure is not None and not scenario.clock_runs_on_failure:
        clock_time = state.clock_time

    nxt = replace(
        state,
        entities=evaluated,
        global_event=global_event,
        tick=state.tick + 1,
        clock_time=clock_time,
        last_tick=tick_result,
    )

    # 4) scoring
    nxt = apply_tick_scoring(nxt, scenario.scoring, dt)

    # 5) terminal checks
    if tick_result.first_failure is not None:
        nxt = replace(nxt, game_over=True, running=False, result="FAIL")
    elif scenario.target_time is not None and nxt.clock_time >= scenario.target_time - 1e-9:
        nxt = replace(nxt, game_over=True, running=False, result="SUCCESS")

    if nxt.game_over:
        nxt = finalize(nxt, scenario.scoring, scenario.level, scenario.target_time or 0.0)

    return replace(nxt, message=compose_message(nxt, scenario, state.score) or state.message)


def compose_message(state: SimulationState, scenario: Scenario, score_before: float) -> str:
    tr = state.last_tick

    if tr.first_failure is not None:
        eid, reason = tr.first_failure
        e = state.entity(eid)
        name = e.name if e is not None else f"#{eid}"
        if reason == "DRY":
            grace = _grace(scenario, "DRY")
            return f"{name} ran dry for more than {grace:g} s. Hydraulic control lost."
        grace = _grace(scenario, "OVERPRESSURE")
        if grace > 0:
            return f"{name} burst: gate force stayed above the limit for more than {grace:g} s!"
        return f"FAILURE: {name} gate could not hold the hydrostatic force and ruptured."

    if state.result == "SUCCESS":
        gained = state.score - score_before
        return (
            f"SUCCESS! Everything held for {scenario.target_time:g} s. "
            f"Round score: {'+' if gained >= 0 else ''}{gained:g} pts."
        )

    if tr.first_save is not None:
        e = state.entity(tr.first_save)
        return f"{e.name if e else tr.first_save}: pressure relieved in time!"

    if tr.event_started:
        return tr.event_started
    if tr.event_ended:
        return f"Event over: {tr.event_ended}."
    return ""


def _grace(scenario: Scenario, reason: str) -> float:
    for c in scenario.conditions:
        if c.reason == reason:
            return c.grace_period_s
    return 0.0


# ======================================================
# Tick driver
# ======================================================
class SimulationRunner:
    """
    Owns the only mutable reference to the run state.
    - Control operations never raise; invalid input is clamped or ignored.
    - Each tick swaps in a new frozen SimulationState and publishes it.
    - With an asyncio loop running, start() schedules a recurring task;
      pause() and reset() cancel it. Without a loop the host calls
      tick() or advance(real_elapsed).
    """

    def __init__(
        self,
        scenario: Scenario,
        rng: random.Random | None = None,
        seed: int | None = None,
        speed: float = 1.0,
        max_catchup_ticks: int = 50,
    ):
        self.scenario = scenario
        self.rng = rng or random.Random(seed)
        self.speed = max(0.01, float(speed))
        self.max_catchup_ticks = max(1, int(max_catchup_ticks))

        self._state = initial_state(scenario)
        self._subscribers: List[Subscriber] = []
        self._task: Optional[asyncio.Task] = None
        self._generation: int = 0
        self._accum_s: float = 0.0

    @property
    def state(self) -> SimulationState:
        return self._state

    # ======================================================
    # Observers
    # ======================================================
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _publish(self) -> None:
        snapshot = self._state
        for cb in list(self._subscribers):
            try:
                cb(snapshot)
            except Exception as e:
                # a broken view must not stop the run or the control call
                log(f"[SIM] subscriber error: {type(e).__name__}: {e}")

    # ======================================================
    # Control surface
    # ======================================================
    def start(self) -> None:
        s = self._state
        if s.game_over:
            return
        if not s.running:
            self._state = replace(s, running=True, has_started=True, message="Simulation running.")
            log(f"[SIM] start {self.scenario.name} t={s.clock_time:.2f}s")
            self._publish()
        self._ensure_task()

    def pause(self) -> None:
        self._cancel_task()
        s = self._state
        if s.running:
            self._state = replace(s, running=False, message="Simulation paused.")
            log(f"[SIM] pause t={s.clock_time:.2f}s")
            self._publish()

    def reset(self) -> None:
        self._cancel_task()
        self._accum_s = 0.0
        self._state = initial_state(self.scenario, gate=self._state.gate)
        log(f"[SIM] reset {self.scenario.name}")
        self._publish()

    def set_control(self, entity_id: int, value: object) -> None:
        s = self._state
        if s.game_over:
            return
        e = s.entity(entity_id)
        if e is None or e.failed:
            return
        pct = clamp(physics.finite_or_zero(value), 0.0, 100.0)
        if pct == e.control_input:
            return
        self._state = replace_entity(s, replace(e, control_input=pct))
        self._publish()

    def set_gate_config(self, field: str, value: object) -> None:
        s = self._state
        if s.has_started:
            return
        if field == "material_id":
            self.set_gate_material(str(value))
            return
        if field not in GATE_NUMERIC_FIELDS:
            return

        # width 0 would zero the force; the panel treats an empty width as 1 m
        default = 1.0 if field == "width" else 0.0
        v = max(0.0, physics.parse_number(value, default=default))
        self._state = replace(s, gate=replace(s.gate, **{field: v}))
        self._publish()

    def set_gate_material(self, material_id: str) -> None:
        s = self._state
        if s.has_started:
            return
        material = self.scenario.material(material_id)
        if material is None:
            return
        limit = s.gate.limit_force_kn if s.gate.limit_force_kn > 0 else material.suggested_limit_kn
        self._state = replace(s, gate=replace(s.gate, material_id=material.id, limit_force_kn=limit))
        self._publish()

    def emergency_relief(self, entity_id: int = 0) -> None:
        s = self._state
        cfg = self.scenario.emergency
        if cfg is None or s.game_over:
            return
        e = s.entity(entity_id)
        spec = self.scenario.spec(entity_id)
        if e is None or spec is None or e.failed:
            return
        if e.derived_level <= cfg.min_level:
            self._state = replace(s, message="The reservoir is almost empty, the spillway would have no effect.")
            self._publish()
            return

        spill = cfg.spill_fraction * spec.area * spec.max_level
        stock = max(0.0, e.stock - spill)
        level = physics.level_from_stock(stock, spec.area, spec.max_level, spec.overflow_factor)

        nxt = replace_entity(s, replace(e, stock=stock, derived_level=level))
        nxt = emergency_penalty(nxt, self.scenario.scoring, self.scenario.level)
        self._state = replace(nxt, message="Emergency spillway opened: the level dropped, at a cost in points.")
        log(f"[SIM] emergency spillway #{nxt.emergency_uses} on {e.name}, score={nxt.score:g}")
        self._publish()

    # ======================================================
    # Stepping
    # ======================================================
    def tick(self) -> SimulationState:
        prev = self._state
        nxt = step_simulation(prev, self.scenario, self.rng)
        if nxt is prev:
            return prev
        self._state = nxt
        self._log_tick(nxt)
        self._publish()
        return nxt

    def advance(self, real_elapsed_s: float) -> int:
        """Render-loop driver: turn elapsed wall time into whole ticks."""
        if not self._state.running:
            self._accum_s = 0.0
            return 0

        self._accum_s += max(0.0, physics.finite_or_zero(real_elapsed_s)) * self.speed
        dt = self.scenario.dt
        done = 0
        while self._accum_s >= dt and self._state.running and done < self.max_catchup_ticks:
            self.tick()
            self._accum_s -= dt
            done += 1

        # drop backlog we refused to catch up on
        if done >= self.max_catchup_ticks:
            self._accum_s = 0.0
        return done

    def _log_tick(self, s: SimulationState) -> None:
        tr = s.last_tick
        if tr.event_started:
            log(f"[EVT] started: {tr.event_started}")
        if tr.event_ended:
            log(f"[EVT] ended: {tr.event_ended}")
        if tr.first_failure is not None:
            eid, reason = tr.first_failure
            log(f"[SIM] entity {eid} failed ({reason}) at t={s.clock_time:.2f}s")
        elif tr.first_save is not None:
            log(f"[SIM] entity {tr.first_save} relieved in time")
        if s.game_over:
            log(f"[SIM] game over: {s.result} score={s.score:g}")

    # ======================================================
    # Scheduling (asyncio)
    # ======================================================
    def _ensure_task(self) -> None:
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop: host drives tick()/advance()
            return
        self._task = loop.create_task(self._run(self._generation))

    def _cancel_task(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, generation: int) -> None:
        period = self.scenario.dt / self.speed
        while generation == self._generation and self._state.running:
            await asyncio.sleep(period)
            if generation != self._generation:
                break
            self.tick()

    async def wait(self) -> None:
        """Wait for the scheduled loop to finish (game over or pause)."""
        task = self._task
        if task is None:
            return
        await asyncio.gather(task, return_exceptions=True)
