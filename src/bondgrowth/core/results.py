"""
Results and output structures for BondGrowth.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from .events import YearEvent
from .kinds import ScenarioKind

__all__ = ["ScenarioRun", "SimulationResults", "NumpyEncoder", "export_results_json"]


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars/arrays and pandas objects."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, pd.DataFrame):
            return obj.to_dict("records")
        if isinstance(obj, pd.Series):
            return obj.to_dict()
        return super().default(obj)


@dataclass
class ScenarioRun:
    """
    Outcome of one scenario run.

    Attributes:
        scenario_id: Scenario identifier
        label: Display label
        kind: Scenario kind
        years: Year axis; may extend past the portfolio horizon for
            replacement scenarios
        values: Portfolio value per year (``values[0]`` is the start year)
        year_events: One event per year after the start year
        series: Values intended for charting; equal to ``values`` except for
            replacement scenarios, which mirror the baseline before the first
            source maturity (NaN where undefined)
        scale: Factor already applied to every monetary field
    """

    scenario_id: str
    label: str
    kind: ScenarioKind
    years: list[int]
    values: np.ndarray
    year_events: list[YearEvent]
    series: np.ndarray | None = None
    scale: float = 1.0

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=float)
        if self.series is None:
            self.series = self.values.copy()

    def __len__(self) -> int:
        return len(self.years)

    def value_at(self, year: int) -> float:
        return float(self.values[self.years.index(year)])

    def event(self, year: int) -> YearEvent:
        for ev in self.year_events:
            if ev.year == year:
                return ev
        raise KeyError(f"Year {year} not simulated in scenario '{self.scenario_id}'")

    def scaled(self, factor: float) -> ScenarioRun:
        """Copy with every monetary value multiplied by ``factor``."""
        values = np.where(np.isfinite(self.values), self.values * factor, 0.0)
        return ScenarioRun(
            scenario_id=self.scenario_id,
            label=self.label,
            kind=self.kind,
            years=list(self.years),
            values=values,
            year_events=[ev.scaled(factor) for ev in self.year_events],
            series=self.series * factor if self.series is not None else None,
            scale=self.scale * factor,
        )

    def points(self) -> list[dict[str, float]]:
        """``{year, portfolio_value}`` pairs for charting."""
        return [
            {"year": int(yr), "portfolio_value": float(val)}
            for yr, val in zip(self.years, self.series)
            if np.isfinite(val)
        ]

    def to_frame(self) -> pd.DataFrame:
        """
        Year-indexed cash-flow table.

        The start year carries only its portfolio value; ``delta`` is the
        change versus the previous year.
        """
        events = {ev.year: ev for ev in self.year_events}
        rows = []
        for yr, val in zip(self.years, self.values):
            ev = events.get(yr)
            rows.append(
                {
                    "year": yr,
                    "portfolio_value": val,
                    "coupons": ev.coupons if ev else 0.0,
                    "accrued_coupons": ev.accrued_coupons if ev else 0.0,
                    "replacement_coupons": ev.replacement_coupons if ev else 0.0,
                    "redemptions": ev.redemptions if ev else 0.0,
                    "cash_in": ev.cash_in if ev else 0.0,
                    "reinvested": ev.reinvested if ev else 0.0,
                    "switched": ev.switched if ev else 0.0,
                    "injected": ev.injected if ev else 0.0,
                    "idle_cash": ev.idle_cash if ev else 0.0,
                    "replacement_activated": ev.replacement_activated if ev else False,
                }
            )
        df = pd.DataFrame(rows).set_index("year")
        df["delta"] = df["portfolio_value"].diff().fillna(0.0)
        return df

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.scenario_id,
            "label": self.label,
            "kind": self.kind.value,
            "scale": self.scale,
            "years": list(self.years),
            "values": self.values,
            "points": self.points(),
            "year_events": [ev.to_dict() for ev in self.year_events],
        }


@dataclass
class SimulationResults:
    """
    All scenario runs of one simulation request.

    Attributes:
        years: Portfolio year axis (start year .. last holding maturity)
        runs: Scenario runs keyed by scenario id, in execution order
        scale: ``start_capital / model_basis`` applied to every run
        model_basis: Σ units × price of the initial slots
        weighted_say: Portfolio weighted simple annual yield (percent)
    """

    years: list[int]
    runs: dict[str, ScenarioRun] = field(default_factory=dict)
    scale: float = 1.0
    model_basis: float = 0.0
    weighted_say: float = 0.0

    def __getitem__(self, scenario_id: str) -> ScenarioRun:
        return self.runs[scenario_id]

    def __contains__(self, scenario_id: str) -> bool:
        return scenario_id in self.runs

    def __iter__(self) -> Iterator[ScenarioRun]:
        return iter(self.runs.values())

    def __len__(self) -> int:
        return len(self.runs)

    def values_frame(self) -> pd.DataFrame:
        """Chart series of every scenario, one column each, on the union year axis."""
        columns = {
            run.scenario_id: pd.Series(run.series, index=run.years, dtype=float)
            for run in self
        }
        frame = pd.DataFrame(columns)
        frame.index.name = "year"
        return frame.sort_index()

    def summary(self) -> pd.DataFrame:
        """Final value, CAGR, income totals and drawdown per scenario."""
        from bondgrowth.kpi import scenario_summary

        return pd.DataFrame([scenario_summary(run) for run in self]).set_index("scenario")

    def to_dict(self) -> dict[str, Any]:
        return {
            "years": list(self.years),
            "scale": self.scale,
            "model_basis": self.model_basis,
            "weighted_say": self.weighted_say,
            "scenarios": [run.to_dict() for run in self],
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, cls=NumpyEncoder)


def export_results_json(results: SimulationResults, path: str | Path) -> None:
    """Write simulation results as JSON to ``path``."""
    Path(path).write_text(results.to_json(), encoding="utf-8")
