"""
Shared fixtures: a fixed valuation date and reference portfolios.
"""

from __future__ import annotations

import sys
from datetime import date

import pytest

sys.path.insert(0, "src")

from bondgrowth.core.holdings import Holding  # noqa: E402

TODAY = date(2026, 3, 15)

# Nine EUR bonds, 3,224.9 units of 100 face = 322,490 face in total.
NINE_BONDS = (
    Holding("IT0001278511", "Italy", "EUR", 50, 104.2, 104.2, 5.25, 12.5, date(2029, 11, 1)),
    Holding("IT0003934657", "Italy", "EUR", 400, 101.5, 101.5, 4.0, 12.5, date(2037, 2, 1)),
    Holding("DE0001102580", "Germany", "EUR", 600, 96.8, 96.8, 2.1, 26.375, date(2031, 2, 15)),
    Holding("FR0013508470", "France", "EUR", 300, 88.4, 88.4, 0.75, 26.375, date(2033, 5, 25)),
    Holding("ES0000012K61", "Spain", "EUR", 500, 99.1, 99.1, 3.15, 26.375, date(2035, 4, 30)),
    Holding("AT0000A1XML2", "Austria", "EUR", 250, 97.6, 97.6, 1.5, 26.375, date(2030, 2, 20)),
    Holding("NL0015031501", "Netherlands", "EUR", 450, 93.9, 93.9, 2.5, 26.375, date(2034, 1, 15)),
    Holding("BE0000346552", "Belgium", "EUR", 374.9, 95.2, 95.2, 2.75, 26.375, date(2032, 4, 22)),
    Holding("FI4000550249", "Finland", "EUR", 300, 98.3, 98.3, 3.0, 26.375, date(2036, 9, 15)),
)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def nine_bonds() -> tuple[Holding, ...]:
    return NINE_BONDS


@pytest.fixture
def simple_bond() -> Holding:
    """10 units at par, 5% coupon, no tax, maturing 2028."""
    return Holding(
        isin="XS0000000001",
        issuer="Simple",
        currency="EUR",
        quantity=10,
        price=100.0,
        price_eur=100.0,
        coupon_pct=5.0,
        tax_rate_pct=0.0,
        maturity=date(2028, 6, 30),
    )


@pytest.fixture
def below_par_bonds() -> tuple[Holding, ...]:
    """Two bonds priced below par, so injected units never lose value at redemption."""
    return (
        Holding("XS0000000011", "Alpha", "EUR", 100, 98.0, 98.0, 3.0, 0.0, date(2029, 6, 1)),
        Holding("XS0000000022", "Beta", "EUR", 200, 99.0, 99.0, 2.0, 0.0, date(2032, 6, 1)),
    )
