"""
Coupon reinvestment engine (no-reinvest, same-instrument, market-average).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from bondgrowth.core.context import SimulationContext, SimulationSettings
from bondgrowth.core.injection import InjectionSchedule
from bondgrowth.core.interfaces import IScenarioEngine
from bondgrowth.core.kinds import ReinvestMode, ScenarioKind
from bondgrowth.core.results import ScenarioRun
from bondgrowth.core.scenarios import CouponReinvestmentScenario, HoldingOverride
from bondgrowth.core.slots import Slot

from ._base import Allocation, YearLoop

__all__ = ["CouponReinvestmentEngine", "run_scenario"]


class _CouponReinvestmentLoop(YearLoop):
    kind = ScenarioKind.COUPON_REINVESTMENT
    continuation_tag = "reinv"

    def __init__(
        self,
        slots: Sequence[Slot],
        years: Sequence[int],
        mode: ReinvestMode,
        price_shift_pct: float,
        reinvest_yield_pct: float,
        overrides: Mapping[str, HoldingOverride] | None,
        settings: SimulationSettings | None,
        injection_by_year: InjectionSchedule | None,
    ):
        super().__init__(
            slots,
            years,
            settings=settings,
            injection_by_year=injection_by_year,
        )
        self.mode = ReinvestMode.parse(mode)
        self.price_shift_pct = price_shift_pct
        self.reinvest_yield_pct = reinvest_yield_pct
        self.overrides = overrides or {}
        if self.mode is ReinvestMode.NONE and not self.overrides:
            self.kind = ScenarioKind.NO_REINVEST

    def allocation_for(self, slot: Slot) -> Allocation:
        cfg = self.overrides.get(slot.key)
        if cfg is None:
            return Allocation(self.mode, self.price_shift_pct, self.reinvest_yield_pct)
        return Allocation(
            mode=cfg.mode if cfg.mode is not None else self.mode,
            price_shift_pct=(
                cfg.price_shift_pct if cfg.price_shift_pct is not None else self.price_shift_pct
            ),
            reinvest_yield_pct=(
                cfg.reinvest_yield_pct
                if cfg.reinvest_yield_pct is not None
                else self.reinvest_yield_pct
            ),
        )


def run_scenario(
    slots: Sequence[Slot],
    years: Sequence[int],
    mode: ReinvestMode | str,
    price_shift_pct: float = 0.0,
    reinvest_yield_pct: float = 3.0,
    overrides: Mapping[str, HoldingOverride] | None = None,
    injection_by_year: InjectionSchedule | None = None,
    settings: SimulationSettings | None = None,
    scenario_id: str = "scenario",
    label: str = "",
) -> ScenarioRun:
    """
    Project the portfolio year by year under one reinvestment policy.

    Every year, coupons and redemptions (``cash_in``) are split across the
    alive holdings in proportion to their face value (or across the holdings
    that just matured, when none is left alive) and handled according to the
    holding's effective mode (override first, then ``mode``):

    - ``none``: kept as idle cash
    - ``same_instrument``: more units of the same bond at the shifted price;
      a matured bond continues as a synthetic slot with the same terms
    - ``market_average``: pooled into one synthetic lot per year that yields
      ``reinvest_yield_pct`` and compounds internally until the horizon

    Args:
        slots: Initial slots (left untouched)
        years: Year axis, first entry is the valuation year
        mode: Default reinvestment mode
        price_shift_pct: Default price shift of reinvestment purchases
        reinvest_yield_pct: Default yield of market-average lots, percent
        overrides: Per-ISIN overrides
        injection_by_year: Annual injection schedule
        settings: Simulator settings

    Returns:
        ScenarioRun on the model basis (unscaled)
    """
    loop = _CouponReinvestmentLoop(
        slots,
        years,
        ReinvestMode.parse(mode),
        price_shift_pct,
        reinvest_yield_pct,
        overrides,
        settings,
        injection_by_year,
    )
    return loop.run(scenario_id, label or scenario_id)


class CouponReinvestmentEngine(IScenarioEngine):
    """Engine for ``CouponReinvestmentScenario`` (and the no-reinvest baseline)."""

    def run(
        self,
        slots: Sequence[Slot],
        scenario: CouponReinvestmentScenario,
        ctx: SimulationContext,
    ) -> ScenarioRun:
        reinvest_yield = (
            scenario.reinvest_yield_pct
            if scenario.reinvest_yield_pct is not None
            else ctx.reinvest_yield_pct
        )
        return run_scenario(
            slots,
            ctx.years,
            scenario.mode,
            price_shift_pct=scenario.price_shift_pct,
            reinvest_yield_pct=reinvest_yield,
            overrides=scenario.overrides,
            injection_by_year=ctx.injection_by_year,
            settings=ctx.settings,
            scenario_id=scenario.id,
            label=scenario.name,
        )
