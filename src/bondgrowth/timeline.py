"""
Per-holding hold-to-maturity value series.

Unlike the scenario engines, the timeline does not reinvest anything: each
holding is worth its cost plus the net coupons collected so far, plus the
capital gain in its maturity year, and nothing afterwards. Maturity
replacement scenarios add one virtual column per replacement, starting from
the source holding's maturity-year value.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date

import numpy as np
import pandas as pd

from bondgrowth.core.holdings import Holding
from bondgrowth.core.scenarios import MaturityReplacementScenario, Scenario

__all__ = ["build_holding_timeline", "holding_labels", "replacement_column"]


def replacement_column(scenario_id: str, source_isin: str) -> str:
    return f"_repl_{scenario_id}_{source_isin}"


def holding_labels(holdings: Sequence[Holding]) -> dict[str, str]:
    """Display label per ISIN; the ISIN is added when an issuer appears twice."""
    per_issuer = Counter(h.issuer for h in holdings)
    labels = {}
    for h in holdings:
        year = h.maturity.year if h.maturity else "?"
        if per_issuer[h.issuer] > 1:
            labels[h.isin] = f"{h.issuer} {h.isin} ({year})"
        else:
            labels[h.isin] = f"{h.issuer} ({year})"
    return labels


def _holding_series(holding: Holding, years: Sequence[int], current_year: int) -> list[float]:
    fx_rate = (
        holding.price_eur / holding.price
        if holding.currency != "EUR" and holding.price > 0
        else 1.0
    )
    nominal_eur = (holding.nominal or 100.0) * fx_rate
    cost = holding.invested_eur or (holding.price_eur or nominal_eur) * holding.quantity
    face = nominal_eur * holding.quantity
    annual_net = (
        holding.coupon_pct / 100.0 * nominal_eur * holding.quantity
        * (1.0 - holding.tax_rate_pct / 100.0)
    )
    maturity_year = holding.maturity.year

    values = []
    for idx, year in enumerate(years):
        if idx == 0:
            values.append(cost)
            continue
        if year > maturity_year:
            values.append(0.0)
            continue
        held = max(0, min(year - current_year, maturity_year - current_year))
        gain = max(0.0, face - cost) if year == maturity_year else 0.0
        values.append(cost + annual_net * held + gain)
    return values


def _replacement_series(
    start_value: float,
    source_year: int,
    maturity_year: int,
    net_coupon_pct: float,
    price_factor: float,
    reinvest_coupons: bool,
    years: Sequence[int],
) -> list[float]:
    units = start_value / price_factor
    coupon_per_unit = net_coupon_pct / 100.0
    values = []
    for year in years:
        if year < source_year or year > maturity_year:
            values.append(np.nan)
        elif year == source_year:
            values.append(start_value)
        elif reinvest_coupons:
            compounded = units
            for _ in range(year - source_year):
                compounded += compounded * coupon_per_unit / price_factor
            values.append(compounded * price_factor)
        else:
            values.append(units * price_factor + units * coupon_per_unit * (year - source_year))
    return values


def build_holding_timeline(
    holdings: Iterable[Holding],
    years: Sequence[int],
    scenarios: Iterable[Scenario] = (),
    today: date | None = None,
    min_price_factor: float = 0.01,
) -> pd.DataFrame:
    """
    Build the hold-to-maturity value of every holding, indexed by year.

    Args:
        holdings: Portfolio holdings; holdings without a maturity are skipped
        years: Year axis (first entry is the valuation year)
        scenarios: Scenarios; maturity replacements add virtual columns and
            may extend the year axis up to their maturity
        today: Valuation date (defaults to today)

    Returns:
        DataFrame with one column per ISIN plus ``_repl_<scenario>_<isin>``
        columns; ``attrs["labels"]`` maps columns to display labels
    """
    holdings = [h for h in holdings if h.maturity is not None]
    current_year = (today or date.today()).year
    years = list(years)
    replacements = [
        (scenario, spec)
        for scenario in scenarios
        if isinstance(scenario, MaturityReplacementScenario)
        for spec in scenario.replacements
    ]
    last_year = max([years[-1], *(spec.maturity_year for _, spec in replacements)]) if years else 0
    all_years = years + list(range(years[-1] + 1, last_year + 1)) if years else []

    labels = holding_labels(holdings)
    columns: dict[str, list[float]] = {}
    for holding in holdings:
        series = _holding_series(holding, years, current_year)
        columns[holding.isin] = series + [0.0] * (len(all_years) - len(years))

    by_isin = {h.isin: h for h in holdings}
    for scenario, spec in replacements:
        source = by_isin.get(spec.source_isin)
        if source is None:
            continue
        source_year = source.maturity.year
        if spec.maturity_year <= source_year:
            continue
        start_value = (
            columns[source.isin][years.index(source_year)] if source_year in years else 0.0
        )
        column = replacement_column(scenario.id, source.isin)
        columns[column] = _replacement_series(
            start_value,
            source_year,
            spec.maturity_year,
            spec.net_coupon_pct,
            max(min_price_factor, 1.0 + spec.price_shift_pct / 100.0),
            spec.reinvest_coupons,
            all_years,
        )
        labels[column] = f"{scenario.name}: {source.issuer} → new bond ({spec.maturity_year})"

    frame = pd.DataFrame(columns, index=pd.Index(all_years, name="year"), dtype=float)
    frame.attrs["labels"] = labels
    return frame
