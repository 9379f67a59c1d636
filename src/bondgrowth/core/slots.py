"""
Simulation slots and the run-local slot pool.

A slot is the unit the engines advance year by year: units held, face,
net coupon and market price per unit, all expressed in EUR.

    Portfolio value = Σ slot market value + idle cash

Real holdings, same-instrument continuations and replacement bonds are
valued at ``units × price``. Market-average lots are valued at
``units × (face + accrued)`` so that their internally compounded coupons show
up in the portfolio value.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

from .holdings import Holding
from .kinds import SlotKind

logger = logging.getLogger(__name__)

__all__ = ["Slot", "SlotPool", "build_slots", "model_basis"]


@dataclass(slots=True)
class Slot:
    """
    Mutable simulation state of one position.

    Attributes:
        key: ISIN for real holdings, a derived key for synthetic slots
        issuer: Issuer label carried over for breakdowns
        units_held: Units currently held (never negative)
        face_per_unit: EUR nominal redeemed per unit at maturity
        coupon_per_unit: Net annual coupon per unit in EUR (tax applied)
        price_per_unit: EUR market price, used as reinvestment cost
        maturity_year: Year in which the slot redeems and leaves the pool
        kind: Slot variant
        accrued_per_unit: Compounded income (market-average lots only)
        take_coupon_as_cash: Replacement coupons paid out instead of compounded
        source_isin: Source holding of a replacement slot
    """

    key: str
    issuer: str
    units_held: float
    face_per_unit: float
    coupon_per_unit: float
    price_per_unit: float
    maturity_year: int
    kind: SlotKind = SlotKind.REAL
    accrued_per_unit: float = 0.0
    take_coupon_as_cash: bool = False
    source_isin: str | None = None

    @property
    def is_replacement(self) -> bool:
        return self.kind is SlotKind.REPLACEMENT

    @property
    def is_synthetic(self) -> bool:
        return self.kind is not SlotKind.REAL

    @property
    def accrues_internally(self) -> bool:
        """Market-average lots fold their coupon into accrued_per_unit."""
        return self.kind is SlotKind.MARKET_AVERAGE

    def coupon_cash(self) -> float:
        return self.units_held * self.coupon_per_unit

    def face_value(self) -> float:
        return self.units_held * self.face_per_unit

    def market_value(self) -> float:
        if self.kind is SlotKind.MARKET_AVERAGE:
            return self.units_held * (self.face_per_unit + self.accrued_per_unit)
        return self.units_held * self.price_per_unit

    def redemption_value(self) -> float:
        return self.units_held * (self.face_per_unit + self.accrued_per_unit)

    def copy(self) -> Slot:
        return replace(self)


def _build_slot(holding: Holding) -> Slot | None:
    if holding.maturity is None:
        logger.warning(
            "Holding %s has no usable maturity; excluded from the projection",
            holding.isin,
        )
        return None

    fx_rate = (
        holding.price_eur / holding.price
        if holding.currency != "EUR" and holding.price > 0
        else 1.0
    )
    face_eur = max(0.0, holding.nominal * fx_rate)
    price_eur = holding.price_eur if holding.price_eur > 0 else face_eur
    coupon_eur = (
        (holding.coupon_pct / 100.0)
        * face_eur
        * (1.0 - holding.tax_rate_pct / 100.0)
    )

    return Slot(
        key=holding.isin,
        issuer=holding.issuer,
        units_held=max(0.0, holding.quantity),
        face_per_unit=face_eur,
        coupon_per_unit=max(0.0, coupon_eur),
        price_per_unit=price_eur,
        maturity_year=holding.maturity.year,
    )


def build_slots(holdings: Iterable[Holding]) -> list[Slot]:
    """
    Convert holdings into simulation-ready slots.

    Non-EUR holdings derive their EUR conversion factor from
    ``price_eur / price``. A holding that cannot be converted is logged and
    skipped so that it contributes nothing instead of breaking the batch.
    """
    slots: list[Slot] = []
    for holding in holdings:
        try:
            slot = _build_slot(holding)
        except (TypeError, ValueError, ArithmeticError) as exc:
            logger.warning("Holding %s skipped while building slots: %s", holding.isin, exc)
            continue
        if slot is not None:
            slots.append(slot)
    return slots


def model_basis(slots: Iterable[Slot]) -> float:
    """Σ units × price at build time; the engines compute on this basis."""
    return sum(sl.units_held * sl.price_per_unit for sl in slots)


class SlotPool:
    """
    Arena of slots owned by a single engine run.

    Slots are appended to an arena and addressed by a stable index; the set
    of alive indices is the active pool. Redeemed slots stay in the arena so
    per-slot breakdowns can still reference them, but they never come back
    into the active pool.
    """

    def __init__(self, slots: Iterable[Slot]):
        self._arena: list[Slot] = []
        self._alive: list[int] = []
        for slot in slots:
            self.add(slot.copy())

    def add(self, slot: Slot) -> int:
        idx = len(self._arena)
        self._arena.append(slot)
        self._alive.append(idx)
        return idx

    def __getitem__(self, idx: int) -> Slot:
        return self._arena[idx]

    def __len__(self) -> int:
        return len(self._alive)

    def __iter__(self) -> Iterator[Slot]:
        return (self._arena[i] for i in self._alive)

    def alive_indices(self) -> list[int]:
        return list(self._alive)

    def retain(self, keep: Iterable[int]) -> None:
        """Replace the active pool with ``keep`` (order preserved)."""
        self._alive = list(keep)

    def find(self, key: str) -> Slot | None:
        """First alive slot with ``key``."""
        for i in self._alive:
            if self._arena[i].key == key:
                return self._arena[i]
        return None

    def market_value(self) -> float:
        return sum(self._arena[i].market_value() for i in self._alive)
