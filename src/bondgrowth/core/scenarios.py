"""
Scenario definitions (tagged union over the supported scenario kinds).

Each scenario variant carries only the fields its engine needs:

- ``CouponReinvestmentScenario``: coupons and redemptions are reallocated
  proportionally under a reinvestment mode, optionally overridden per holding.
  The built-in "no reinvestment" baseline is this variant with
  ``mode=ReinvestMode.NONE``.
- ``MaturityReplacementScenario``: one or more source holdings are replaced
  at maturity by synthetic bonds receiving 100% of their proceeds.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Union

from .errors import ConfigError
from .kinds import ReinvestMode, ScenarioKind

__all__ = [
    "HoldingOverride",
    "CouponReinvestmentScenario",
    "ReplacementSpec",
    "MaturityReplacementScenario",
    "Scenario",
    "no_reinvest_baseline",
]


@dataclass(frozen=True, slots=True)
class HoldingOverride:
    """Per-holding reinvestment settings; ``None`` falls back to the scenario value."""

    mode: ReinvestMode | None = None
    price_shift_pct: float | None = None
    reinvest_yield_pct: float | None = None

    def __post_init__(self):
        if self.mode is not None:
            object.__setattr__(self, "mode", ReinvestMode.parse(self.mode))


@dataclass(frozen=True)
class CouponReinvestmentScenario:
    """
    Proportional reinvestment of coupons and redemptions.

    Attributes:
        id: Scenario identifier
        name: Display label
        mode: Default reinvestment mode for every holding
        price_shift_pct: Price shift applied to reinvestment purchases
        reinvest_yield_pct: Yield of market-average lots; ``None`` uses the
            portfolio's weighted SAY
        overrides: Per-ISIN overrides of mode / price shift / yield
    """

    id: str
    name: str = ""
    mode: ReinvestMode = ReinvestMode.SAME_INSTRUMENT
    price_shift_pct: float = 0.0
    reinvest_yield_pct: float | None = None
    overrides: Mapping[str, HoldingOverride] = field(default_factory=dict)

    kind = ScenarioKind.COUPON_REINVESTMENT

    def __post_init__(self):
        object.__setattr__(self, "mode", ReinvestMode.parse(self.mode))
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))
        if not self.name:
            object.__setattr__(self, "name", self.id)

    def override_for(self, key: str) -> HoldingOverride | None:
        return self.overrides.get(key)


@dataclass(frozen=True, slots=True)
class ReplacementSpec:
    """
    Terms of the synthetic bond that replaces ``source_isin`` at maturity.

    Attributes:
        source_isin: Holding whose maturity proceeds fund the replacement
        net_coupon_pct: Net annual coupon, percent of face
        price_shift_pct: Purchase price relative to par (-20 buys at 80)
        maturity_year: Maturity of the replacement, may exceed the horizon
        reinvest_coupons: Compound coupons into units instead of paying cash
    """

    source_isin: str
    net_coupon_pct: float
    price_shift_pct: float = 0.0
    maturity_year: int = 0
    reinvest_coupons: bool = False

    @property
    def take_coupon_as_cash(self) -> bool:
        return not self.reinvest_coupons


@dataclass(frozen=True)
class MaturityReplacementScenario:
    """
    Replace designated holdings at maturity, reinvest everything else.

    Attributes:
        id: Scenario identifier
        name: Display label
        replacements: Independent replacement terms, one per source holding
        baseline_mode: Reinvestment mode for all non-source holdings
    """

    id: str
    replacements: tuple[ReplacementSpec, ...] = ()
    name: str = ""
    baseline_mode: ReinvestMode = ReinvestMode.SAME_INSTRUMENT

    kind = ScenarioKind.MATURITY_REPLACEMENT

    def __post_init__(self):
        object.__setattr__(self, "replacements", tuple(self.replacements))
        object.__setattr__(self, "baseline_mode", ReinvestMode.parse(self.baseline_mode))
        if not self.name:
            object.__setattr__(self, "name", self.id)
        if not self.replacements:
            raise ConfigError(f"Scenario '{self.id}': at least one replacement is required")
        if self.baseline_mode is ReinvestMode.MARKET_AVERAGE:
            raise ConfigError(
                f"Scenario '{self.id}': baseline_mode must be 'none' or 'same_instrument'"
            )
        seen: set[str] = set()
        for spec in self.replacements:
            if spec.source_isin in seen:
                raise ConfigError(
                    f"Scenario '{self.id}': duplicate replacement for source '{spec.source_isin}'"
                )
            if spec.maturity_year <= 0:
                raise ConfigError(
                    f"Scenario '{self.id}': replacement of '{spec.source_isin}' needs a maturity_year"
                )
            seen.add(spec.source_isin)

    @classmethod
    def single(
        cls,
        id: str,
        source_isin: str,
        net_coupon_pct: float,
        maturity_year: int,
        price_shift_pct: float = 0.0,
        reinvest_coupons: bool = False,
        name: str = "",
    ) -> MaturityReplacementScenario:
        """Scenario with exactly one replacement."""
        return cls(
            id=id,
            name=name,
            replacements=(
                ReplacementSpec(
                    source_isin=source_isin,
                    net_coupon_pct=net_coupon_pct,
                    price_shift_pct=price_shift_pct,
                    maturity_year=maturity_year,
                    reinvest_coupons=reinvest_coupons,
                ),
            ),
        )

    @property
    def source_isins(self) -> tuple[str, ...]:
        return tuple(spec.source_isin for spec in self.replacements)

    @property
    def last_maturity_year(self) -> int:
        return max(spec.maturity_year for spec in self.replacements)


Scenario = Union[CouponReinvestmentScenario, MaturityReplacementScenario]


def no_reinvest_baseline(reinvest_yield_pct: float | None = None) -> CouponReinvestmentScenario:
    """The built-in baseline: every coupon and redemption stays as idle cash."""
    return CouponReinvestmentScenario(
        id=ScenarioKind.NO_REINVEST.value,
        name="No reinvestment (cash)",
        mode=ReinvestMode.NONE,
        reinvest_yield_pct=reinvest_yield_pct,
    )
