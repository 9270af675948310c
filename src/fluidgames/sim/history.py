# fluidgames/sim/history.py
from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from .state import SimulationState


class RunHistory:
    """Bounded in-memory trace of published snapshots (one row per tick)."""

    def __init__(self, max_history: int = 2000):
        self.max_history = max(1, int(max_history))
        self.rows: List[Dict[str, Any]] = []
        self._last_tick: int = -1

    def __len__(self) -> int:
        return len(self.rows)

    def clear(self) -> None:
        self.rows = []
        self._last_tick = -1

    def append(self, s: SimulationState) -> None:
        # control-only publishes (same tick) replace nothing; a reset starts over
        if s.tick < self._last_tick:
            self.clear()
        if s.tick == self._last_tick:
            return
        self._last_tick = s.tick

        row: Dict[str, Any] = {
            "t": s.clock_time,
            "score": s.score,
            "result": s.result,
        }
        for e in s.entities:
            key = f"e{e.id}"
            row[f"{key}_level"] = e.derived_level
            row[f"{key}_stock"] = e.stock
            row[f"{key}_force_kn"] = e.force_kn
            row[f"{key}_util"] = e.utilization
            row[f"{key}_in"] = e.inflow
            row[f"{key}_out"] = e.outflow
            row[f"{key}_failed"] = e.failed
        self.rows.append(row)

        if len(self.rows) > self.max_history:
            self.rows = self.rows[-self.max_history:]

    def to_frame(self) -> pd.DataFrame:
        if not self.rows:
            return pd.DataFrame(columns=["t", "score", "result"]).set_index("t")
        return pd.DataFrame(self.rows).set_index("t")
