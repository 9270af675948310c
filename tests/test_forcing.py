"""
test_forcing.py - Valve drift, inflow noise, events and channel cadence
"""

import pytest

from fluidgames.sim.forcing import (
    EventTemplate,
    ForcingConfig,
    advance_event,
    channel_fires,
    decay_event,
    maybe_trigger_event,
    noisy_inflow,
    perturb_valve,
    stress_factor,
)
from fluidgames.sim.scenarios import TANK_EVENTS
from fluidgames.sim.state import Event


def test_valve_drift_is_clamped(scripted_rng):
    assert perturb_valve(95.0, scripted_rng(uniforms=[1.0])) == 100.0
    assert perturb_valve(5.0, scripted_rng(uniforms=[0.0])) == 0.0
    assert perturb_valve(50.0, scripted_rng(uniforms=[0.75])) == pytest.approx(60.0)


def test_valve_sudden_jump(scripted_rng):
    rng = scripted_rng(randoms=[0.1], uniforms=[0.5, 0.25])
    assert perturb_valve(80.0, rng, band=20.0, jump_probability=0.2) == pytest.approx(25.0)


def test_noisy_inflow(scripted_rng):
    assert noisy_inflow(1.0, 0.3, scripted_rng(uniforms=[0.0])) == pytest.approx(0.7)
    assert noisy_inflow(1.0, 0.3, scripted_rng(uniforms=[1.0])) == pytest.approx(1.3)
    assert noisy_inflow(-2.0, 0.3, scripted_rng()) == 0.0


def test_noisy_inflow_without_band_draws_nothing(scripted_rng):
    rng = scripted_rng(uniforms=[0.0])
    assert noisy_inflow(1.2, 0.0, rng) == pytest.approx(1.2)
    assert rng.uniforms == [0.0]


def test_stress_factor():
    assert stress_factor(0.0, 90.0, 0.5) == 1.0
    assert stress_factor(45.0, 90.0, 0.5) == pytest.approx(1.25)
    assert stress_factor(500.0, 90.0, 0.5) == pytest.approx(1.5)
    assert stress_factor(45.0, None, 0.5) == 1.0


def test_no_event_with_zero_probability(scripted_rng):
    rng = scripted_rng(randoms=[0.0])
    assert maybe_trigger_event(TANK_EVENTS, 0.0, rng) is None
    assert rng.randoms == [0.0]


def test_event_always_with_probability_one(scripted_rng):
    event = maybe_trigger_event(TANK_EVENTS, 1.0, scripted_rng(randoms=[0.5, 0.5], uniforms=[0.0]))
    assert event is not None
    assert event.kind == "relief_failure"
    assert event.blocks_outflow
    assert event.remaining_time == pytest.approx(6.0)


def test_fixed_duration_template_draws_nothing(scripted_rng):
    rng = scripted_rng(uniforms=[0.9])
    event = EventTemplate("x", "X", duration_range=(8.0, 8.0)).instantiate(rng)
    assert event.remaining_time == 8.0
    assert rng.uniforms == [0.9]


def test_event_decays_then_ends():
    event = Event(kind="inflow_spike", title="Spike", remaining_time=6.0)
    left = decay_event(event, 1.0)
    assert left.remaining_time == pytest.approx(5.0)
    assert event.remaining_time == 6.0
    assert decay_event(left, 5.0) is None
    assert decay_event(None, 1.0) is None


def test_advance_event_reports_start_and_end(scripted_rng):
    cfg = ForcingConfig(event_catalog=TANK_EVENTS, event_probability=1.0)

    event, started, ended = advance_event(None, cfg, 0.25, scripted_rng(randoms=[0.0, 0.0], uniforms=[0.0]))
    assert event.kind == "inflow_spike"
    assert started == "Sudden inflow spike: Inflow increased drastically."
    assert ended is None

    # the tick an event ends draws no replacement
    rng = scripted_rng(randoms=[0.0, 0.0])
    gone, started, ended = advance_event(Event("inflow_spike", "Sudden inflow spike", remaining_time=0.1), cfg, 0.25, rng)
    assert gone is None
    assert started is None
    assert ended == "Sudden inflow spike"
    assert rng.randoms == [0.0, 0.0]


@pytest.mark.parametrize(
    "period,fires_at",
    [
        (0.8, {3, 7, 11}),
        (1.0, {4, 9, 14}),
        (0.0, set(range(15))),
        (0.1, set(range(15))),
    ],
)
def test_channel_cadence(period, fires_at):
    fired = {tick for tick in range(15) if channel_fires(tick, 0.2, period)}
    assert fired == fires_at
