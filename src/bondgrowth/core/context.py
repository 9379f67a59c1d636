"""
Context and settings objects shared by the simulation engines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from .injection import InjectionSchedule

if TYPE_CHECKING:
    from bondgrowth.fx import FxMultiplierCache


@dataclass(frozen=True)
class SimulationSettings:
    """
    Tunables of the growth simulator.

    Attributes:
        synthetic_tail_years: Same-instrument continuations mature this many
            years after the horizon, i.e. effectively never inside a run
        min_price_factor: Floor for every ``1 + shift/100`` price factor
        default_reinvest_yield_pct: Reinvestment yield when the portfolio SAY
            cannot be computed
        fx_cache_ttl_seconds: Lifetime of cached FX multipliers
        include_baseline: Always run the no-reinvestment baseline first
    """

    synthetic_tail_years: int = 30
    min_price_factor: float = 0.01
    default_reinvest_yield_pct: float = 3.0
    fx_cache_ttl_seconds: float = 3600.0
    include_baseline: bool = True

    def price_factor(self, shift_pct: float | None) -> float:
        """``1 + shift/100`` clamped to ``min_price_factor``."""
        return max(self.min_price_factor, 1.0 + (shift_pct or 0.0) / 100.0)


@dataclass
class SimulationContext:
    """
    Read-only inputs every engine run receives besides its slots.

    Attributes:
        years: Simulation years; the first entry is the start (valuation) year
        settings: Simulator settings
        injection_by_year: Injection schedule (empty when disabled)
        reinvest_yield_pct: Default yield for market-average lots
        today: Valuation date, resolved once per request
        fx: Prefetched FX multiplier cache (read-only during runs)
    """

    years: list[int]
    settings: SimulationSettings = field(default_factory=SimulationSettings)
    injection_by_year: InjectionSchedule = field(default_factory=dict)
    reinvest_yield_pct: float = 3.0
    today: date | None = None
    fx: FxMultiplierCache | None = None

    @property
    def start_year(self) -> int:
        return self.years[0]

    @property
    def end_year(self) -> int:
        return self.years[-1]
