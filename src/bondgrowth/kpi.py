"""
KPI calculation utilities for bond portfolio projections.

Yield figures follow the simple-annual-yield (SAY) convention: the total
return of a 1,000 investment held to maturity (net coupons plus redemption,
all converted with the expected FX multipliers) spread linearly over the
remaining years, in percent per year.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from bondgrowth.core.holdings import Holding, years_to_maturity
from bondgrowth.fx import NEUTRAL, FxMultipliers

if TYPE_CHECKING:
    from bondgrowth.core.results import ScenarioRun
    from bondgrowth.fx import FxMultiplierCache

DEFAULT_SAY_PCT = 3.0


def _multipliers(
    holding: Holding, years: float, fx: FxMultiplierCache | None, report_currency: str
) -> FxMultipliers:
    if fx is None:
        return NEUTRAL
    horizon = max(1, int(math.floor(years + 0.5)))
    return fx.multipliers(holding.currency, horizon, report_currency)


def simple_annual_yield(
    holding: Holding,
    fx: FxMultiplierCache | None = None,
    today: date | None = None,
    report_currency: str = "EUR",
) -> float:
    """
    Net simple annual yield of one holding, in percent.

    SAY = (capital coupons + capital gain - 1000) / (10 × years), where
    1000 buys ``1000 / (fx_buy × price)`` bonds, coupons are net of
    withholding tax and counted for every started year, and each bond
    redeems 100 at the expected maturity FX rate.

    Args:
        holding: Holding to evaluate
        fx: Prefetched multiplier cache; neutral multipliers when ``None``
        today: Valuation date (defaults to today)
        report_currency: Currency the yield is expressed in

    Returns:
        Yield in percent, 0.0 when the holding has no usable price or maturity
    """
    if holding.maturity is None:
        return 0.0
    price = holding.price or holding.price_eur
    if not price or not holding.price_eur:
        return 0.0

    today = today or date.today()
    years = max(0.01, years_to_maturity(holding, today))
    mult = _multipliers(holding, years, fx, report_currency)
    if mult.fx_buy <= 0:
        return 0.0

    coupon_net = holding.coupon_pct * (1.0 - holding.tax_rate_pct / 100.0)
    bond_count = 1000.0 / (mult.fx_buy * price)
    cap_coupons = bond_count * coupon_net * math.ceil(years) * mult.fx_coupon
    cap_gain = 100.0 * bond_count * mult.fx_future
    return (cap_coupons + cap_gain - 1000.0) / (10.0 * years)


def weighted_say(
    holdings: Iterable[Holding],
    fx: FxMultiplierCache | None = None,
    today: date | None = None,
    report_currency: str = "EUR",
    default: float = DEFAULT_SAY_PCT,
) -> float:
    """
    Portfolio SAY weighted by EUR market value (``price_eur × quantity``).

    Returns ``default`` when the portfolio carries no market value.
    """
    total_weight = 0.0
    total = 0.0
    for holding in holdings:
        if holding.maturity is None:
            continue
        weight = max(0.0, holding.price_eur) * holding.quantity
        if weight <= 0:
            continue
        total += simple_annual_yield(holding, fx, today, report_currency) * weight
        total_weight += weight
    return total / total_weight if total_weight > 0 else default


def effective_say(
    holdings: Iterable[Holding],
    price_shift_pct: float = 0.0,
    fx: FxMultiplierCache | None = None,
    today: date | None = None,
    report_currency: str = "EUR",
    min_price_factor: float = 0.01,
) -> float:
    """
    Portfolio SAY if every holding were bought at a shifted price.

    Both native and EUR prices are multiplied by ``max(0.01, 1 + shift/100)``
    and the result is weighted by the shifted EUR market value.

    Returns:
        Yield in percent, 0.0 for an empty or valueless portfolio
    """
    factor = max(min_price_factor, 1.0 + price_shift_pct / 100.0)
    total_weight = 0.0
    total = 0.0
    for holding in holdings:
        shifted = replace(
            holding,
            price=holding.price * factor,
            price_eur=holding.price_eur * factor,
        )
        weight = shifted.price_eur * holding.quantity
        total += simple_annual_yield(shifted, fx, today, report_currency) * weight
        total_weight += weight
    return total / total_weight if total_weight > 0 else 0.0


def cagr(values: Sequence[float], years: Sequence[int] | None = None) -> float:
    """
    Compound annual growth rate between the first and last finite value.

    Args:
        values: Value series
        years: Year axis matching ``values``; consecutive years when omitted

    Returns:
        CAGR as a fraction (0.05 = 5%), NaN when undefined
    """
    arr = np.asarray(values, dtype=float)
    finite = np.flatnonzero(np.isfinite(arr))
    if len(finite) < 2:
        return float("nan")
    first, last = finite[0], finite[-1]
    start, end = arr[first], arr[last]
    periods = (years[last] - years[first]) if years is not None else (last - first)
    if start <= 0 or end < 0 or periods <= 0:
        return float("nan")
    return float((end / start) ** (1.0 / periods) - 1.0)


def max_drawdown(values: Sequence[float] | pd.Series) -> float:
    """
    Largest peak-to-trough decline of a value series.

    Returns:
        Drawdown as a non-positive fraction (-0.1 = 10% below peak)
    """
    series = pd.Series(values, dtype=float).dropna()
    if series.empty:
        return 0.0
    running_max = series.expanding().max()
    drawdown = np.where(running_max > 0, (series - running_max) / running_max, 0.0)
    return float(drawdown.min())


def scenario_summary(run: ScenarioRun) -> dict[str, Any]:
    """Headline figures of one scenario run."""
    events = run.year_events
    return {
        "scenario": run.scenario_id,
        "label": run.label,
        "kind": run.kind.value,
        "start_value": float(run.values[0]) if len(run.values) else 0.0,
        "final_value": float(run.values[-1]) if len(run.values) else 0.0,
        "final_year": run.years[-1] if run.years else None,
        "cagr": cagr(run.values, run.years),
        "max_drawdown": max_drawdown(run.values),
        "total_coupons": sum(ev.coupons + ev.accrued_coupons for ev in events),
        "total_replacement_coupons": sum(ev.replacement_coupons for ev in events),
        "total_redemptions": sum(ev.redemptions for ev in events),
        "total_injected": sum(ev.injected for ev in events),
        "final_idle_cash": events[-1].idle_cash if events else 0.0,
    }


__all__ = [
    "DEFAULT_SAY_PCT",
    "simple_annual_yield",
    "weighted_say",
    "effective_say",
    "cagr",
    "max_drawdown",
    "scenario_summary",
]
