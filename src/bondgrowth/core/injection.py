"""
Annual cash injection: configuration and per-year allocation schedule.
"""

from __future__ import annotations

import warnings
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from .holdings import Holding

__all__ = ["InjectionConfig", "InjectionSchedule", "build_injection_schedule"]

# year -> {isin: EUR amount}
InjectionSchedule = dict[int, dict[str, float]]


@dataclass(frozen=True)
class InjectionConfig:
    """
    External contribution added to the portfolio every simulated year.

    Attributes:
        enabled: Master switch
        amount_eur: EUR contributed per year, on the model basis. Like every
            other flow it is multiplied by the start-capital scale, so
            ``YearEvent.injected`` reports ``amount_eur × scale``
        pct: Sparse allocation map ISIN -> percent; holdings without an entry
            receive an equal share of the active set
    """

    enabled: bool = False
    amount_eur: float = 0.0
    pct: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self, "pct", MappingProxyType({k: float(v) for k, v in self.pct.items()})
        )

    @property
    def is_active(self) -> bool:
        return self.enabled and self.amount_eur > 0

    @classmethod
    def equal_split(
        cls, holdings: Sequence[Holding], amount_eur: float
    ) -> InjectionConfig:
        """Enabled config with every holding set to the same percentage."""
        if not holdings:
            return cls(enabled=True, amount_eur=amount_eur)
        share = 100.0 / len(holdings)
        return cls(
            enabled=True,
            amount_eur=amount_eur,
            pct={h.isin: share for h in holdings},
        )


def build_injection_schedule(
    holdings: Iterable[Holding],
    config: InjectionConfig | None,
    years: Sequence[int],
) -> InjectionSchedule:
    """
    Distribute the annual injection across holdings alive in each year.

    For every year after the first, only holdings maturing in or after that
    year take part. Their configured percentages (equal split when missing)
    are renormalized to 100% over that active subset, so the share of a
    matured holding is redistributed instead of lost.

    Args:
        holdings: Portfolio holdings
        config: Injection configuration, ``None`` for no injection
        years: Simulation years, first entry is the start year

    Returns:
        Mapping year -> {isin: EUR amount}; years with nothing to allocate
        are omitted
    """
    if config is None or not config.is_active:
        return {}

    holdings = [h for h in holdings if h.maturity is not None]

    known_total = sum(config.pct[h.isin] for h in holdings if h.isin in config.pct)
    covers_all = all(h.isin in config.pct for h in holdings)
    if holdings and covers_all and abs(known_total - 100.0) > 0.01:
        warnings.warn(
            f"Injection percentages sum to {known_total:.2f}%; they will be renormalized to 100%",
            stacklevel=2,
        )

    schedule: InjectionSchedule = {}
    for year in list(years)[1:]:
        active = [h for h in holdings if h.is_active_in(year)]
        if not active:
            continue

        default_pct = 100.0 / len(active)
        raw = [(h.isin, config.pct.get(h.isin, default_pct)) for h in active]
        total_raw = sum(max(0.0, pct) for _, pct in raw)
        if total_raw <= 0:
            continue

        year_map: dict[str, float] = {}
        for isin, pct in raw:
            amount = config.amount_eur * (max(0.0, pct) / total_raw)
            if amount > 0:
                year_map[isin] = year_map.get(isin, 0.0) + amount
        if year_map:
            schedule[year] = year_map
    return schedule
