"""
test_physics.py - Tests for the physics kernel (hydrostatics, flows, thermal nodes)
"""

import math

import pytest

from fluidgames.sim import physics


# =============================================================================
# HYDROSTATICS
# =============================================================================

def test_pressure_at_depth():
    assert physics.hydrostatic_pressure(2.0) == pytest.approx(19620.0)
    assert physics.to_kilo(physics.hydrostatic_pressure(2.0)) == pytest.approx(19.62)


def test_bottom_pressure_in_kpa():
    # 45 m3 over 15 m2 -> 3 m of water
    level = physics.level_from_stock(45.0, 15.0, 5.0, 1.3)
    assert physics.to_kilo(physics.hydrostatic_pressure(level)) == pytest.approx(29.43)


def test_force_on_full_gate_is_88_kn():
    # gate 3 m x 2 m, water 3 m -> 0.5 * 1000 * 9.81 * 9 * 2
    f = physics.hydrostatic_force(3.0, gate_height=3.0, width=2.0)
    assert f == pytest.approx(88290.0)
    assert physics.to_kilo(f) == pytest.approx(88.29)


def test_force_capped_at_gate_height():
    assert physics.hydrostatic_force(6.0, 3.0, 2.0) == pytest.approx(physics.hydrostatic_force(3.0, 3.0, 2.0))


@pytest.mark.parametrize("h", [0.1, 0.5, 1.0, 1.5])
def test_force_is_quadratic_in_height(h):
    single = physics.hydrostatic_force(h, gate_height=3.0, width=2.5)
    double = physics.hydrostatic_force(2 * h, gate_height=3.0, width=2.5)
    assert double == pytest.approx(4.0 * single, rel=1e-12)


def test_utilization_with_no_limit_is_zero():
    assert physics.utilization(88.29, 0.0) == 0.0
    assert physics.utilization(88.29, -5.0) == 0.0
    assert physics.utilization(90.0, 60.0) == pytest.approx(1.5)


# =============================================================================
# FLOWS AND STOCKS
# =============================================================================

def test_outflow_shut_when_closed_or_empty():
    assert physics.orifice_outflow(0.0, 1.5, 3.0) == 0.0
    assert physics.orifice_outflow(1.0, 1.5, 0.0) == 0.0
    assert physics.orifice_outflow(1.0, 1.5, -2.0) == 0.0


def test_outflow_formula():
    q = physics.orifice_outflow(0.5, 1.5, 2.0, discharge_coefficient=0.62)
    assert q == pytest.approx(0.62 * 1.5 * math.sqrt(2 * 9.81 * 2.0) * 0.5)


def test_forty_quarter_second_steps_fill_ten_cubic_metres():
    stock = 0.0
    for _ in range(40):
        stock = physics.integrate_stock(stock, 1.0, 0.0, 0.25)
    assert stock == pytest.approx(10.0)
    assert physics.level_from_stock(stock, area=15.0, max_level=5.0, overflow_factor=1.3) == pytest.approx(0.6667, abs=1e-4)


def test_stock_never_negative():
    stock = 1.0
    for inflow, outflow in [(0.0, 5.0), (2.0, 30.0), (-3.0, 0.0), (0.0, 0.0)]:
        stock = physics.integrate_stock(stock, inflow, outflow, 0.25)
        assert stock >= 0.0
        assert physics.level_from_stock(stock, 15.0, 5.0) >= 0.0


def test_level_capped_by_overflow_factor():
    assert physics.level_from_stock(1000.0, area=15.0, max_level=5.0, overflow_factor=1.3) == pytest.approx(6.5)


def test_level_with_zero_area_is_zero():
    assert physics.level_from_stock(10.0, area=0.0, max_level=5.0) == 0.0


def test_nan_never_reaches_stock():
    stock = physics.integrate_stock(2.0, float("nan"), 0.0, 0.25)
    assert stock == pytest.approx(2.0)
    assert physics.integrate_stock(float("inf"), 1.0, 0.0, 0.25) == pytest.approx(0.25)


def test_drain_empties_to_exact_zero():
    assert physics.drain_volume(10.0, 8.0, 0.2) == pytest.approx(8.4)
    assert physics.drain_volume(0.00005, 0.0, 0.2) == 0.0
    assert physics.drain_volume(1.0, 8.0, 0.2) == 0.0


# =============================================================================
# TEXT INPUT
# =============================================================================

@pytest.mark.parametrize(
    "text,expected",
    [("3.0", 3.0), (" 2,5 ", 2.5), ("abc", 0.0), ("", 0.0), ("nan", 0.0), ("inf", 0.0), (None, 0.0), (7, 7.0)],
)
def test_parse_number(text, expected):
    assert physics.parse_number(text) == expected


def test_parse_number_default_applies_to_zero_and_garbage():
    assert physics.parse_number("", default=1.0) == 1.0
    assert physics.parse_number("0", default=1.0) == 1.0
    assert physics.parse_number("x", default=1.0) == 1.0
    assert physics.parse_number("2", default=1.0) == 2.0


# =============================================================================
# THERMAL NODES
# =============================================================================

def test_convection_relaxes_toward_ambient():
    t = 80.0
    for _ in range(100):
        nxt = physics.convection_step(t, h=15.0, area=0.3, mass=2.0, cp=900.0, t_inf=25.0, dt=1.0)
        assert 25.0 < nxt < t
        t = nxt


def test_convection_without_heat_capacity_holds():
    assert physics.convection_step(80.0, 15.0, 0.3, 0.0, 900.0, 25.0, 1.0) == 80.0


def test_radiation_sun_heats_cold_body():
    t = physics.radiation_step(20.0, 0.85, 0.8, 5.0, 900.0, -270.0, 1000.0, 0.1)
    assert t > 20.0


def test_radiation_in_shade_cools():
    t = physics.radiation_step(20.0, 0.85, 0.8, 5.0, 900.0, -270.0, 0.0, 0.1)
    assert t < 20.0


def test_conduction_keeps_ends_and_stays_bounded():
    profile = (20.0,) * 20
    alpha = physics.diffusivity(205.0, 2700.0, 897.0)
    for _ in range(50):
        profile = physics.conduction_step(profile, alpha, 0.5, 90.0, 20.0, dt=5.0)
    assert profile[0] == 90.0
    assert profile[-1] == 20.0
    assert all(20.0 <= t <= 90.0 for t in profile)
    # heat enters from the left: temperatures fall along the bar
    assert all(a >= b - 1e-9 for a, b in zip(profile, profile[1:]))


def test_conduction_large_step_is_substepped():
    alpha = physics.diffusivity(401.0, 8960.0, 385.0)
    dx = 0.5 / 9
    big = 20.0 * physics.stable_conduction_dt(dx, alpha)
    profile = physics.conduction_step((20.0,) * 10, alpha, 0.5, 100.0, 20.0, dt=big)
    assert all(math.isfinite(t) and 20.0 <= t <= 100.0 for t in profile)


def test_conduction_short_profile_untouched():
    assert physics.conduction_step((1.0, 2.0), 1e-4, 0.5, 90.0, 20.0, 1.0) == (1.0, 2.0)
