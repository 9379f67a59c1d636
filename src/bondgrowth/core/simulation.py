"""
Simulation orchestrator: one request in, one SimulationResults out.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

import numpy as np

from .context import SimulationContext, SimulationSettings
from .errors import ConfigError
from .holdings import Holding
from .injection import InjectionConfig, build_injection_schedule
from .kinds import ScenarioKind
from .results import ScenarioRun, SimulationResults
from .scenarios import (
    CouponReinvestmentScenario,
    MaturityReplacementScenario,
    Scenario,
    no_reinvest_baseline,
)
from .slots import build_slots, model_basis

logger = logging.getLogger(__name__)

__all__ = ["SimulationRequest", "simulate", "year_axis", "compute_scale"]


@dataclass(frozen=True)
class SimulationRequest:
    """
    Immutable input of one simulation.

    Attributes:
        holdings: Portfolio holdings
        scenarios: User scenarios, run after the built-in baseline
        injection: Annual injection configuration
        start_capital: EUR amount the outputs are normalized to (0 keeps the
            portfolio's own market value)
        today: Valuation date; resolved to ``date.today()`` once when omitted
        report_currency: Currency of all outputs
        settings: Simulator settings
    """

    holdings: tuple[Holding, ...]
    scenarios: tuple[Scenario, ...] = ()
    injection: InjectionConfig = field(default_factory=InjectionConfig)
    start_capital: float = 0.0
    today: date | None = None
    report_currency: str = "EUR"
    settings: SimulationSettings = field(default_factory=SimulationSettings)

    def __post_init__(self):
        object.__setattr__(self, "holdings", tuple(self.holdings))
        object.__setattr__(self, "scenarios", tuple(self.scenarios))
        object.__setattr__(self, "report_currency", self.report_currency.upper())

        seen: set[str] = set()
        if self.settings.include_baseline:
            seen.add(ScenarioKind.NO_REINVEST.value)
        for scenario in self.scenarios:
            if scenario.id in seen:
                raise ConfigError(f"Duplicate scenario id '{scenario.id}'")
            seen.add(scenario.id)


def year_axis(holdings: Sequence[Holding], today: date) -> list[int]:
    """Start year .. last maturity year, always at least two years."""
    start = today.year
    maturities = [h.maturity.year for h in holdings if h.maturity is not None]
    end = max([start + 1, *maturities])
    return list(range(start, end + 1))


def compute_scale(start_capital: float, basis: float) -> float:
    """``start_capital / basis`` when both are positive, else 1."""
    if basis > 0 and start_capital > 0:
        return start_capital / basis
    return 1.0


def _pad_with_baseline(run: ScenarioRun, baseline: ScenarioRun, from_year: int) -> None:
    """Mirror the baseline series before ``from_year`` (NaN where it has no value)."""
    baseline_by_year = dict(zip(baseline.years, baseline.values))
    run.series = np.array(
        [
            baseline_by_year.get(yr, np.nan) if yr < from_year else val
            for yr, val in zip(run.years, run.values)
        ],
        dtype=float,
    )


def simulate(request: SimulationRequest, fx_cache=None) -> SimulationResults:
    """
    Run the baseline and every requested scenario.

    The FX cache is prefetched for the portfolio before any engine runs; the
    weighted portfolio SAY becomes the default reinvestment yield. Every run
    is rescaled from the model basis (Σ units × price) to ``start_capital``.

    Args:
        request: Simulation request
        fx_cache: Optional ``FxMultiplierCache``; a provider-less cache (spot
            or neutral multipliers) is used when omitted

    Returns:
        SimulationResults with the ``no_reinvest`` baseline first

    Raises:
        ConfigError: If a scenario has an unsupported type
    """
    from bondgrowth.engines import CouponReinvestmentEngine, MaturityReplacementEngine
    from bondgrowth.fx import FxMultiplierCache
    from bondgrowth.kpi import weighted_say

    settings = request.settings
    today = request.today or date.today()
    holdings = list(request.holdings)

    if not holdings:
        logger.warning("Simulation requested for an empty portfolio")
        return SimulationResults(years=[])

    if fx_cache is None:
        fx_cache = FxMultiplierCache(
            report_currency=request.report_currency,
            ttl_seconds=settings.fx_cache_ttl_seconds,
        )
    fx_cache.prefetch(holdings, today, request.report_currency)

    years = year_axis(holdings, today)
    slots = build_slots(holdings)
    basis = model_basis(slots)
    scale = compute_scale(request.start_capital, basis)
    say = (
        weighted_say(
            holdings,
            fx_cache,
            today,
            request.report_currency,
            default=settings.default_reinvest_yield_pct,
        )
        if basis > 0
        else settings.default_reinvest_yield_pct
    )

    ctx = SimulationContext(
        years=years,
        settings=settings,
        injection_by_year=build_injection_schedule(holdings, request.injection, years),
        reinvest_yield_pct=say,
        today=today,
        fx=fx_cache,
    )
    logger.info(
        "Simulating %d holding(s) over %d-%d: basis=%.2f scale=%.6f SAY=%.3f%%",
        len(slots),
        years[0],
        years[-1],
        basis,
        scale,
        say,
    )

    coupon_engine = CouponReinvestmentEngine()
    replacement_engine = MaturityReplacementEngine()
    maturity_by_isin = {h.isin: h.maturity.year for h in holdings if h.maturity is not None}

    baseline = coupon_engine.run(slots, no_reinvest_baseline(say), ctx).scaled(scale)
    results = SimulationResults(years=years, scale=scale, model_basis=basis, weighted_say=say)
    if settings.include_baseline:
        results.runs[baseline.scenario_id] = baseline

    for scenario in request.scenarios:
        match scenario:
            case CouponReinvestmentScenario():
                run = coupon_engine.run(slots, scenario, ctx).scaled(scale)
            case MaturityReplacementScenario():
                run = replacement_engine.run(slots, scenario, ctx).scaled(scale)
                source_years = [
                    maturity_by_isin[isin]
                    for isin in scenario.source_isins
                    if isin in maturity_by_isin
                ]
                if source_years:
                    _pad_with_baseline(run, baseline, min(source_years))
            case _:
                raise ConfigError(f"Unsupported scenario type: {type(scenario).__name__}")
        results.runs[run.scenario_id] = run

    return results
