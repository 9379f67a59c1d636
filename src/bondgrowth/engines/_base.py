"""
Year loop shared by the coupon-reinvestment and maturity-replacement engines.

Processing order inside one simulated year:
    1. Coupons (cash, internal accrual, or replacement compounding)
    2. Redemptions of slots maturing this year
    3. Engine hook (replacement activation)
    4. Annual injection
    5. Proportional allocation of cash_in over the reference pool
    6. Year event + portfolio value
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from bondgrowth.core.context import SimulationSettings
from bondgrowth.core.events import SlotFlow, YearEvent
from bondgrowth.core.injection import InjectionSchedule
from bondgrowth.core.kinds import ReinvestMode, ScenarioKind, SlotKind
from bondgrowth.core.results import ScenarioRun
from bondgrowth.core.slots import Slot, SlotPool


@dataclass
class _SlotRow:
    coupon: float = 0.0
    replacement_coupon: float = 0.0
    redemption: float = 0.0
    reinvested: float = 0.0


@dataclass
class YearBook:
    """Mutable accumulator for one simulated year."""

    year: int
    coupons: float = 0.0
    accrued: float = 0.0
    replacement_coupons: float = 0.0
    redemptions: float = 0.0
    diverted: float = 0.0
    reinvested: float = 0.0
    switched: float = 0.0
    injected: float = 0.0
    opened: list[int] = field(default_factory=list)
    matured: list[int] = field(default_factory=list)
    rows: dict[int, _SlotRow] = field(default_factory=dict)
    activated: list[str] = field(default_factory=list)
    diverted_keys: set[str] = field(default_factory=set)

    @property
    def cash_in(self) -> float:
        """Coupons and redemptions available for proportional allocation."""
        return max(0.0, self.coupons + self.redemptions - self.diverted)


@dataclass(frozen=True)
class Allocation:
    """Reinvestment terms resolved for one reference slot."""

    mode: ReinvestMode
    price_shift_pct: float = 0.0
    reinvest_yield_pct: float = 0.0


class YearLoop:
    """
    One engine run: a private slot pool, idle cash and the year axis.

    Subclasses decide how each reference slot's share is reinvested
    (``allocation_for``) and may act on matured slots before allocation
    (``after_redemptions``).
    """

    kind: ScenarioKind = ScenarioKind.COUPON_REINVESTMENT
    continuation_tag = "reinv"

    def __init__(
        self,
        slots: Sequence[Slot],
        years: Sequence[int],
        horizon_year: int | None = None,
        settings: SimulationSettings | None = None,
        injection_by_year: InjectionSchedule | None = None,
    ):
        self.pool = SlotPool(slots)
        self.years = list(years)
        self.horizon_year = horizon_year if horizon_year is not None else self.years[-1]
        self.settings = settings or SimulationSettings()
        self.injection_by_year = injection_by_year or {}
        self.cash = 0.0
        self.values: list[float] = [self.portfolio_value()]
        self.events: list[YearEvent] = []

    # --- hooks ----------------------------------------------------------------
    def allocation_for(self, slot: Slot) -> Allocation:
        raise NotImplementedError

    def after_redemptions(self, book: YearBook) -> None:
        """Called once the year's coupons and redemptions are booked."""

    def excluded_from_reference(self, book: YearBook, idx: int) -> bool:
        return self.pool[idx].is_replacement

    # --- loop -----------------------------------------------------------------
    def portfolio_value(self) -> float:
        return self.pool.market_value() + self.cash

    def run(self, scenario_id: str, label: str) -> ScenarioRun:
        for year in self.years[1:]:
            book = YearBook(year=year)
            self._coupons_and_redemptions(book)
            self.after_redemptions(book)
            self._apply_injection(book)
            self._allocate(book)
            self._close_year(book)
        return ScenarioRun(
            scenario_id=scenario_id,
            label=label,
            kind=self.kind,
            years=list(self.years),
            values=self.values,
            year_events=self.events,
        )

    def _coupons_and_redemptions(self, book: YearBook) -> None:
        keep: list[int] = []
        for idx in self.pool.alive_indices():
            slot = self.pool[idx]
            row = _SlotRow()
            book.rows[idx] = row
            book.opened.append(idx)
            coupon = slot.coupon_cash()

            if slot.is_replacement:
                if slot.take_coupon_as_cash:
                    self.cash += coupon
                elif slot.price_per_unit > 0:
                    slot.units_held += coupon / slot.price_per_unit
                book.replacement_coupons += coupon
                row.replacement_coupon = coupon
            elif slot.accrues_internally:
                slot.accrued_per_unit += slot.coupon_per_unit
                book.accrued += coupon
                row.coupon = coupon
            else:
                book.coupons += coupon
                row.coupon = coupon

            # A slot already past maturity (start-year maturities) redeems now
            if slot.maturity_year <= book.year:
                row.redemption = slot.redemption_value()
                book.redemptions += row.redemption
                book.matured.append(idx)
            else:
                keep.append(idx)
        self.pool.retain(keep)

    def _apply_injection(self, book: YearBook) -> None:
        for isin, amount in self.injection_by_year.get(book.year, {}).items():
            slot = self.pool.find(isin)
            if slot is not None and slot.kind is SlotKind.REAL and slot.price_per_unit > 0:
                slot.units_held += amount / slot.price_per_unit
            else:
                # Holding already redeemed: keep the contribution as cash
                self.cash += amount
            book.injected += amount

    def _reference_pool(self, book: YearBook) -> list[int]:
        alive = [
            i for i in self.pool.alive_indices() if not self.excluded_from_reference(book, i)
        ]
        if alive:
            return alive
        return [i for i in book.matured if not self.excluded_from_reference(book, i)]

    def _allocate(self, book: YearBook) -> None:
        cash_in = book.cash_in
        if cash_in <= 0:
            return

        ref = self._reference_pool(book)
        total_face = sum(max(0.0, self.pool[i].face_value()) for i in ref)
        if total_face <= 0:
            self.cash += cash_in
            return

        alive = set(self.pool.alive_indices())
        mkt_total = mkt_cost = mkt_yield = 0.0
        mkt_count = 0

        for idx in ref:
            slot = self.pool[idx]
            share = max(0.0, slot.face_value()) / total_face
            my_share = cash_in * share
            if my_share <= 0:
                continue
            alloc = self.allocation_for(slot)
            factor = self.settings.price_factor(alloc.price_shift_pct)
            row = book.rows.get(idx)

            if alloc.mode is ReinvestMode.NONE:
                self.cash += my_share
                continue

            if alloc.mode is ReinvestMode.SAME_INSTRUMENT:
                cost = slot.price_per_unit * factor
                if cost <= 0:
                    self.cash += my_share
                    continue
                if idx in alive:
                    slot.units_held += my_share / cost
                else:
                    self.pool.add(
                        Slot(
                            key=f"{slot.key}_{self.continuation_tag}_{book.year}",
                            issuer=slot.issuer,
                            units_held=my_share / cost,
                            face_per_unit=slot.face_per_unit,
                            coupon_per_unit=slot.coupon_per_unit,
                            price_per_unit=cost,
                            maturity_year=self.horizon_year + self.settings.synthetic_tail_years,
                            kind=SlotKind.SAME_INSTRUMENT,
                        )
                    )
                book.reinvested += my_share
                if row is not None:
                    row.reinvested += my_share
                continue

            # Market average: pooled into one lot per year
            if self.horizon_year - book.year > 0:
                mkt_total += my_share
                mkt_cost += factor
                mkt_yield += (alloc.reinvest_yield_pct / 100.0) * factor
                mkt_count += 1
                book.reinvested += my_share
                if row is not None:
                    row.reinvested += my_share
            else:
                self.cash += my_share

        if mkt_total > 0 and mkt_count > 0:
            # Averaged cost/yield across contributors: an approximation of
            # modelling each contribution as its own lot.
            avg_cost = mkt_cost / mkt_count
            avg_yield = mkt_yield / mkt_count
            self.pool.add(
                Slot(
                    key=f"_mkt_{book.year}",
                    issuer="Reinvested",
                    units_held=mkt_total / max(self.settings.min_price_factor, avg_cost),
                    face_per_unit=avg_cost,
                    coupon_per_unit=avg_yield,
                    price_per_unit=avg_cost,
                    maturity_year=self.horizon_year,
                    kind=SlotKind.MARKET_AVERAGE,
                )
            )

    def _close_year(self, book: YearBook) -> None:
        flows: list[SlotFlow] = []
        matured = set(book.matured)
        for idx in book.opened:
            slot = self.pool[idx]
            row = book.rows[idx]
            flows.append(
                SlotFlow(
                    key=slot.key,
                    issuer=slot.issuer,
                    kind=slot.kind,
                    maturity_year=slot.maturity_year,
                    coupon=row.coupon,
                    replacement_coupon=row.replacement_coupon,
                    redemption=row.redemption,
                    market_value=row.redemption if idx in matured else slot.market_value(),
                    reinvested=row.reinvested,
                )
            )

        value = self.portfolio_value()
        self.events.append(
            YearEvent(
                year=book.year,
                coupons=book.coupons,
                accrued_coupons=book.accrued,
                replacement_coupons=book.replacement_coupons,
                redemptions=book.redemptions,
                cash_in=book.cash_in,
                reinvested=book.reinvested,
                switched=book.switched,
                injected=book.injected,
                idle_cash=self.cash,
                portfolio_value=value,
                replacement_activated=bool(book.activated),
                activated_sources=tuple(book.activated),
                slots=tuple(flows),
            )
        )
        self.values.append(value)
