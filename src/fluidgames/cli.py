# fluidgames/cli.py
# Headless run of one scenario, e.g.
#   fluidgames --scenario multi_tank --level 2 --control 100 --speed 20 --out out/run.csv
from __future__ import annotations

import argparse
import asyncio
import os
import signal
from typing import List, Optional

from .log import log
from .sim import SCENARIOS, THERMAL_MATERIALS, RunHistory, SimulationRunner, SimulationState, build_scenario


# ============================================================
# Helpers
# ============================================================
def ensure_dir_for_file(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # not available on this platform/thread; Ctrl+C still raises KeyboardInterrupt
            log(f"[MAIN] no handler for {sig.name}")


# ============================================================
# Args
# ============================================================
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fluid & heat minigames, headless run")
    p.add_argument("--scenario", choices=SCENARIOS, default="reservoir_gate")
    p.add_argument("--level", type=int, default=1)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--speed", type=float, default=10.0, help="simulated seconds per wall second")
    p.add_argument("--duration", type=float, default=None, help="stop after this much simulated time (s)")

    p.add_argument("--material", default=None)
    p.add_argument("--heat-material", choices=tuple(THERMAL_MATERIALS), default="aluminium", help="bar material (heat_conduction)")
    p.add_argument("--gate-height", default=None)
    p.add_argument("--gate-width", default=None)
    p.add_argument("--gate-thickness", default=None)
    p.add_argument("--gate-limit", default=None, help="force limit (kN)")
    p.add_argument("--control", type=float, default=None, help="actuator 0..100 applied to every entity")

    p.add_argument("--max-history", type=int, default=2000)
    p.add_argument("--out", default=None, help="write the run history as CSV")
    return p.parse_args(argv)


# ============================================================
# Run
# ============================================================
async def run(args: argparse.Namespace) -> SimulationState:
    scenario = build_scenario(args.scenario, args.level, args.heat_material)
    runner = SimulationRunner(scenario, seed=args.seed, speed=args.speed)

    history = RunHistory(max_history=args.max_history)
    runner.subscribe(history.append)

    if args.material:
        runner.set_gate_material(args.material)
    for field, value in (
        ("height", args.gate_height),
        ("width", args.gate_width),
        ("thickness", args.gate_thickness),
        ("limit_force_kn", args.gate_limit),
    ):
        if value is not None:
            runner.set_gate_config(field, value)
    if args.control is not None:
        for e in runner.state.entities:
            runner.set_control(e.id, args.control)

    gate = runner.state.gate
    log(f"[MAIN] scenario={scenario.name} level={scenario.level} speed={runner.speed:g}x")
    if scenario.materials:
        log(f"[MAIN] gate {gate.material_id} {gate.height:g}x{gate.width:g} m, limit {gate.limit_force_kn:g} kN")

    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)

    runner.start()
    while not stop_event.is_set() and runner.state.running:
        if args.duration is not None and runner.state.clock_time >= args.duration:
            break
        await asyncio.sleep(0.2)

    runner.pause()
    await runner.wait()

    s = runner.state
    log(f"[MAIN] t={s.clock_time:.2f}s result={s.result} score={s.score:g}")
    if s.message:
        log(f"[MAIN] {s.message}")

    if args.out:
        ensure_dir_for_file(args.out)
        history.to_frame().to_csv(args.out)
        log(f"[MAIN] history ({len(history)} rows) -> {os.path.abspath(args.out)}")

    return s


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        s = asyncio.run(run(args))
    except KeyboardInterrupt:
        log("[MAIN] interrupted")
        return 130
    return 1 if s.result == "FAIL" else 0


if __name__ == "__main__":
    raise SystemExit(main())
