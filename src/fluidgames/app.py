# app.py (Streamlit) - control panel for the fluid/heat minigames
# Run: streamlit run src/fluidgames/app.py
from __future__ import annotations

import time

import pandas as pd
import streamlit as st

from fluidgames.log import log
from fluidgames.sim import LEVELS, SCENARIOS, THERMAL_MATERIALS, RunHistory, SimulationRunner, build_scenario
from fluidgames.sim import physics
from fluidgames.sim.state import SimulationState


# ======================================================
# INIT
# ======================================================
st.set_page_config(page_title="Fluid & Heat Minigames", layout="wide")


def new_runner(name: str, level: int, material: str = "aluminium") -> None:
    runner = SimulationRunner(build_scenario(name, level, material))
    history = RunHistory(max_history=2000)
    runner.subscribe(history.append)
    history.append(runner.state)

    st.session_state.runner = runner
    st.session_state.history = history
    st.session_state.scenario_key = (name, level, material)
    st.session_state.last_wall = time.monotonic()
    log(f"[APP] scenario {name} level {level}" + (f" material {material}" if name == "heat_conduction" else ""))


if "runner" not in st.session_state:
    st.session_state.tick_s = 0.25
    new_runner("reservoir_gate", 1)


# ======================================================
# SIDEBAR CONTROLS
# ======================================================
st.sidebar.title("Controls")

name = st.sidebar.selectbox("Scenario", SCENARIOS, index=SCENARIOS.index(st.session_state.scenario_key[0]))
level = st.sidebar.selectbox(
    "Level",
    [lvl.id for lvl in LEVELS],
    index=[lvl.id for lvl in LEVELS].index(st.session_state.scenario_key[1]),
    format_func=lambda i: next(lvl.name for lvl in LEVELS if lvl.id == i),
    disabled=name.startswith("heat_"),
)
materials = list(THERMAL_MATERIALS)
material = st.sidebar.selectbox(
    "Bar material",
    materials,
    index=materials.index(st.session_state.scenario_key[2]),
    disabled=name != "heat_conduction",
)
if (name, level, material) != st.session_state.scenario_key:
    new_runner(name, level, material)
    st.rerun()

runner: SimulationRunner = st.session_state.runner
history: RunHistory = st.session_state.history
scenario = runner.scenario

st.session_state.tick_s = st.sidebar.slider("UI refresh (seconds)", 0.05, 2.0, float(st.session_state.tick_s), 0.05)

c1, c2, c3 = st.sidebar.columns(3)
if c1.button("Start"):
    runner.start()
    st.session_state.last_wall = time.monotonic()
if c2.button("Pause"):
    runner.pause()
if c3.button("Reset"):
    runner.reset()
    st.rerun()

if scenario.emergency is not None:
    if st.sidebar.button("Emergency spillway", disabled=runner.state.game_over):
        runner.emergency_relief(0)

st.sidebar.divider()

# gate (locked once the run has started)
if scenario.materials:
    st.sidebar.subheader("Gate")
    locked = runner.state.has_started
    gate = runner.state.gate
    ids = [m.id for m in scenario.materials]
    mat = st.sidebar.selectbox(
        "Material",
        ids,
        index=ids.index(gate.material_id) if gate.material_id in ids else 0,
        format_func=lambda i: scenario.material(i).name,
        disabled=locked,
    )
    if mat != gate.material_id:
        runner.set_gate_material(mat)

    for field, label in (
        ("height", "Height (m)"),
        ("width", "Width (m)"),
        ("thickness", "Thickness (m)"),
        ("limit_force_kn", "Force limit (kN)"),
    ):
        text = st.sidebar.text_input(label, value=f"{getattr(gate, field):g}", disabled=locked)
        if physics.parse_number(text) != getattr(gate, field):
            runner.set_gate_config(field, text)


# ======================================================
# MAIN UI
# ======================================================
s: SimulationState = runner.state

st.title(scenario.title or scenario.name)

a, b, c, d = st.columns(4)
a.metric("time_s", f"{s.clock_time:.1f}" + (f" / {scenario.target_time:g}" if scenario.target_time else ""))
b.metric("score", f"{s.score:g}")
c.metric("result", s.result if s.game_over else ("RUNNING" if s.running else "PAUSED"))
d.metric("event", s.global_event.title if s.global_event else "-")

if s.message:
    if s.result == "FAIL":
        st.error(s.message)
    elif s.result == "SUCCESS":
        st.success(s.message)
    else:
        st.info(s.message)

st.divider()

cols = st.columns(min(5, max(1, len(s.entities))))
for i, e in enumerate(s.entities):
    with cols[i % len(cols)]:
        st.subheader(e.name)
        if e.kind == "thermal":
            st.metric("temperature_c", f"{e.derived_level:.2f}")
            value = st.slider("actuator %", 0.0, 100.0, float(e.control_input), 1.0, key=f"ctl_{e.id}")
            if value != e.control_input:
                runner.set_control(e.id, value)
            continue

        st.metric("level_m", f"{e.derived_level:.2f}")
        st.metric("bottom_pressure_kPa", f"{physics.to_kilo(physics.hydrostatic_pressure(e.derived_level)):.1f}")
        st.metric("force_kN", f"{e.force_kn:.1f}", f"{100.0 * e.utilization:.0f}% of limit")
        st.progress(min(1.0, e.utilization))
        if e.active_event is not None and scenario.forcing.event_scope == "entity":
            st.warning(f"{e.active_event.title} ({e.active_event.remaining_time:.1f}s)")
        if e.failed:
            st.error(e.failure_reason)
            if scenario.drain_rate > 0 and e.failure_reason == "OVERPRESSURE":
                # the run is frozen; only the panel animates the gate breach emptying
                key = f"drain_{e.id}_{s.tick}"
                left = st.session_state.get(key, e.stock)
                st.session_state[key] = physics.drain_volume(left, scenario.drain_rate, st.session_state.tick_s)
                spec = scenario.spec(e.id)
                st.metric("draining level_m", f"{physics.level_from_stock(left, spec.area, spec.max_level):.2f}")
                if left > 0:
                    time.sleep(st.session_state.tick_s)
                    st.rerun()
        elif scenario.outflow is not None:
            on = st.toggle("relief gate", value=e.control_input > 0, key=f"gate_{e.id}", disabled=s.game_over)
            if on != (e.control_input > 0):
                runner.set_control(e.id, 100.0 if on else 0.0)

st.divider()

# History
df: pd.DataFrame = history.to_frame()
if len(df) > 5:
    st.subheader("History")
    level_cols = [col for col in df.columns if col.endswith("_level")]
    st.line_chart(df[level_cols])
    util_cols = [col for col in df.columns if col.endswith("_util")]
    if util_cols and scenario.materials:
        st.line_chart(df[util_cols])
    st.dataframe(df.tail(30), use_container_width=True)


# ======================================================
# LOOP
# ======================================================
if s.running:
    time.sleep(st.session_state.tick_s)
    now = time.monotonic()
    runner.advance(now - st.session_state.last_wall)
    st.session_state.last_wall = now
    st.rerun()
