"""
Year event records produced by the simulation engines.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from .kinds import SlotKind


class SlotFlow(NamedTuple):
    """
    Per-slot cash-flow breakdown for one simulated year.

    Attributes:
        key: Slot key (ISIN, or derived key for synthetic slots)
        issuer: Issuer label
        kind: Slot variant
        maturity_year: Year the slot redeems
        coupon: Coupon earned by a non-replacement slot
        replacement_coupon: Coupon earned by a replacement slot
        redemption: Redemption paid this year (0 unless maturing)
        market_value: Value at year end; the redemption value in the maturity year
        reinvested: Cash this slot's share put to work (incl. replacement switch)
    """

    key: str
    issuer: str
    kind: SlotKind
    maturity_year: int
    coupon: float = 0.0
    replacement_coupon: float = 0.0
    redemption: float = 0.0
    market_value: float = 0.0
    reinvested: float = 0.0

    @property
    def is_replacement(self) -> bool:
        return self.kind is SlotKind.REPLACEMENT

    def scaled(self, factor: float) -> SlotFlow:
        return self._replace(
            coupon=self.coupon * factor,
            replacement_coupon=self.replacement_coupon * factor,
            redemption=self.redemption * factor,
            market_value=self.market_value * factor,
            reinvested=self.reinvested * factor,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self._asdict()
        data["kind"] = self.kind.value
        data["is_replacement"] = self.is_replacement
        return data


class YearEvent(NamedTuple):
    """
    Cash-flow log entry for one simulated year of one scenario.

    Attributes:
        year: Calendar year
        coupons: Cash coupons of non-replacement slots
        accrued_coupons: Coupons compounded inside market-average lots
        replacement_coupons: Coupons paid by replacement bonds
        redemptions: Redemptions of all slots maturing this year
        cash_in: Coupons + redemptions entering proportional allocation
        reinvested: Cash put back into bonds (excl. replacement switches)
        switched: Capital moved into replacement bonds this year
        injected: External contribution applied this year
        idle_cash: Idle cash balance at year end
        portfolio_value: Σ slot market value + idle cash at year end
        replacement_activated: True if any replacement activated this year
        activated_sources: Source ISINs whose replacement activated this year
        slots: Per-slot breakdown for slots alive at the start of the year
    """

    year: int
    coupons: float = 0.0
    accrued_coupons: float = 0.0
    replacement_coupons: float = 0.0
    redemptions: float = 0.0
    cash_in: float = 0.0
    reinvested: float = 0.0
    switched: float = 0.0
    injected: float = 0.0
    idle_cash: float = 0.0
    portfolio_value: float = 0.0
    replacement_activated: bool = False
    activated_sources: tuple[str, ...] = ()
    slots: tuple[SlotFlow, ...] = ()

    def slot(self, key_prefix: str) -> SlotFlow | None:
        """First breakdown row whose key starts with ``key_prefix``."""
        for row in self.slots:
            if row.key.startswith(key_prefix):
                return row
        return None

    def replacement_slots(self) -> list[SlotFlow]:
        return [row for row in self.slots if row.is_replacement]

    @property
    def bonds_value(self) -> float:
        """Portfolio value without idle cash."""
        return self.portfolio_value - self.idle_cash

    def scaled(self, factor: float) -> YearEvent:
        return self._replace(
            coupons=self.coupons * factor,
            accrued_coupons=self.accrued_coupons * factor,
            replacement_coupons=self.replacement_coupons * factor,
            redemptions=self.redemptions * factor,
            cash_in=self.cash_in * factor,
            reinvested=self.reinvested * factor,
            switched=self.switched * factor,
            injected=self.injected * factor,
            idle_cash=self.idle_cash * factor,
            portfolio_value=self.portfolio_value * factor,
            slots=tuple(row.scaled(factor) for row in self.slots),
        )

    def to_dict(self) -> dict[str, Any]:
        data = self._asdict()
        data["activated_sources"] = list(self.activated_sources)
        data["slots"] = [row.to_dict() for row in self.slots]
        data["bonds_value"] = self.bonds_value
        return data
