"""
test_history.py - RunHistory rows and the pandas frame
"""

from dataclasses import replace

from fluidgames.sim.history import RunHistory
from fluidgames.sim.state import SimulatedEntity, SimulationState


def snapshot(tick, level=1.0):
    e = SimulatedEntity(id=0, name="Tank 1", derived_level=level, stock=15.0 * level)
    return SimulationState(tick=tick, clock_time=tick * 0.25, entities=(e,))


def test_one_row_per_tick():
    h = RunHistory()
    h.append(snapshot(0))
    h.append(replace(snapshot(0), message="control change"))
    h.append(snapshot(1, 1.1))
    assert len(h) == 2


def test_reset_starts_over():
    h = RunHistory()
    for t in range(5):
        h.append(snapshot(t))
    h.append(snapshot(0))
    assert len(h) == 1


def test_bounded():
    h = RunHistory(max_history=10)
    for t in range(25):
        h.append(snapshot(t))
    assert len(h) == 10
    assert h.rows[0]["t"] == 15 * 0.25


def test_frame_columns():
    h = RunHistory()
    assert h.to_frame().empty
    h.append(snapshot(0))
    h.append(snapshot(1, 2.0))
    df = h.to_frame()
    assert df.index.name == "t"
    assert list(df["e0_level"]) == [1.0, 2.0]
    assert "e0_force_kn" in df.columns
