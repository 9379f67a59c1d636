"""
Maturity replacement engine.

When a designated source holding matures, its full proceeds (redemption plus
that year's coupon) buy one synthetic replacement bond with its own coupon,
price and maturity. Several replacements can be configured in one scenario;
each tracks its own state keyed by the source ISIN:

    PENDING --(source matures)--> ACTIVE --(replacement matures)--> REDEEMED

Every other holding keeps reinvesting its proportional share of coupons and
redemptions under the baseline mode, independently of the replacements.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from bondgrowth.core.context import SimulationContext, SimulationSettings
from bondgrowth.core.injection import InjectionSchedule
from bondgrowth.core.interfaces import IScenarioEngine
from bondgrowth.core.kinds import ReplacementState, ScenarioKind, SlotKind
from bondgrowth.core.results import ScenarioRun
from bondgrowth.core.scenarios import MaturityReplacementScenario, ReplacementSpec
from bondgrowth.core.slots import Slot

from ._base import Allocation, YearBook, YearLoop

logger = logging.getLogger(__name__)

__all__ = ["MaturityReplacementEngine", "run_maturity_replacement", "extend_years"]


def extend_years(years: Sequence[int], last_year: int) -> list[int]:
    """Year axis extended so that it covers ``last_year``."""
    extended = list(years)
    for year in range(extended[-1] + 1, last_year + 1):
        extended.append(year)
    return extended


class _MaturityReplacementLoop(YearLoop):
    kind = ScenarioKind.MATURITY_REPLACEMENT
    continuation_tag = "cont"

    def __init__(
        self,
        slots: Sequence[Slot],
        years: Sequence[int],
        scenario: MaturityReplacementScenario,
        settings: SimulationSettings | None,
        injection_by_year: InjectionSchedule | None,
    ):
        super().__init__(
            slots,
            extend_years(years, scenario.last_maturity_year),
            horizon_year=years[-1],
            settings=settings,
            injection_by_year=injection_by_year,
        )
        self.scenario = scenario
        self.specs: dict[str, ReplacementSpec] = {
            spec.source_isin: spec for spec in scenario.replacements
        }
        self.states: dict[str, ReplacementState] = {
            isin: ReplacementState.PENDING for isin in self.specs
        }
        present = {slot.key for slot in self.pool}
        for isin in self.specs:
            if isin not in present:
                logger.warning(
                    "Scenario '%s': replacement source %s is not in the portfolio; it will never activate",
                    scenario.id,
                    isin,
                )

    def allocation_for(self, slot: Slot) -> Allocation:
        return Allocation(self.scenario.baseline_mode)

    def excluded_from_reference(self, book: YearBook, idx: int) -> bool:
        slot = self.pool[idx]
        return slot.is_replacement or (slot.kind is SlotKind.REAL and slot.key in book.diverted_keys)

    def after_redemptions(self, book: YearBook) -> None:
        for idx in book.matured:
            slot = self.pool[idx]
            if slot.is_replacement and slot.source_isin in self.states:
                self.states[slot.source_isin] = ReplacementState.REDEEMED

        lots: dict[str, list[int]] = {}
        for idx in book.matured:
            slot = self.pool[idx]
            if slot.kind is not SlotKind.REAL:
                continue
            if self.states.get(slot.key) is not ReplacementState.PENDING:
                continue
            lots.setdefault(slot.key, []).append(idx)
        # Every lot of a source matures into the same replacement
        for isin, indices in lots.items():
            self._activate(book, indices, self.specs[isin])

    def _activate(self, book: YearBook, indices: list[int], spec: ReplacementSpec) -> None:
        source = self.pool[indices[0]]
        rows = [book.rows[idx] for idx in indices]
        proceeds = sum(row.coupon + row.redemption for row in rows)
        book.diverted += proceeds
        book.diverted_keys.add(source.key)

        if spec.maturity_year <= book.year:
            logger.warning(
                "Scenario '%s': replacement of %s matures in %d, not after %d; proceeds kept as cash",
                self.scenario.id,
                spec.source_isin,
                spec.maturity_year,
                book.year,
            )
            self.cash += proceeds
            self.states[spec.source_isin] = ReplacementState.REDEEMED
            return

        price = self.settings.price_factor(spec.price_shift_pct)
        self.pool.add(
            Slot(
                key=f"{source.key}_repl_{book.year}",
                issuer=f"{source.issuer} → replacement" if source.issuer else "Replacement bond",
                units_held=proceeds / price,
                face_per_unit=1.0,
                coupon_per_unit=spec.net_coupon_pct / 100.0,
                price_per_unit=price,
                maturity_year=spec.maturity_year,
                kind=SlotKind.REPLACEMENT,
                take_coupon_as_cash=spec.take_coupon_as_cash,
                source_isin=spec.source_isin,
            )
        )
        self.states[spec.source_isin] = ReplacementState.ACTIVE
        book.switched += proceeds
        for row in rows:
            row.reinvested += row.coupon + row.redemption
        book.activated.append(spec.source_isin)


def run_maturity_replacement(
    slots: Sequence[Slot],
    years: Sequence[int],
    scenario: MaturityReplacementScenario,
    injection_by_year: InjectionSchedule | None = None,
    settings: SimulationSettings | None = None,
) -> ScenarioRun:
    """
    Project the portfolio with one or more maturity replacements.

    The year axis is extended when a replacement matures after the last
    holding. The source's proceeds never enter the proportional ``cash_in``
    of the year it matures, and replacement coupons are either paid to idle
    cash or compounded into the replacement's own units.

    Returns:
        ScenarioRun on the model basis (unscaled), over the extended years
    """
    loop = _MaturityReplacementLoop(slots, years, scenario, settings, injection_by_year)
    return loop.run(scenario.id, scenario.name)


class MaturityReplacementEngine(IScenarioEngine):
    """Engine for ``MaturityReplacementScenario``."""

    def run(
        self,
        slots: Sequence[Slot],
        scenario: MaturityReplacementScenario,
        ctx: SimulationContext,
    ) -> ScenarioRun:
        return run_maturity_replacement(
            slots,
            ctx.years,
            scenario,
            injection_by_year=ctx.injection_by_year,
            settings=ctx.settings,
        )
