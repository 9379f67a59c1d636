"""
Bond holding records and tolerant parsing from portfolio mappings.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

logger = logging.getLogger(__name__)

__all__ = ["Holding", "parse_holding", "parse_holdings", "years_to_maturity"]

# Portfolio exports use camelCase; request files may use snake_case.
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "isin": ("isin",),
    "issuer": ("issuer",),
    "currency": ("currency",),
    "quantity": ("quantity",),
    "price": ("price",),
    "price_eur": ("price_eur", "priceEur"),
    "coupon_pct": ("coupon_pct", "coupon"),
    "tax_rate_pct": ("tax_rate_pct", "taxRate", "tax_rate"),
    "maturity": ("maturity",),
    "nominal": ("nominal",),
    "invested_eur": ("invested_eur", "investedEur", "totalEur"),
}


@dataclass(frozen=True, slots=True)
class Holding:
    """
    One bond position as held in the portfolio.

    Attributes:
        isin: Instrument identifier, also the key of the holding's slot
        issuer: Issuer name (display only)
        currency: Native currency of the bond
        quantity: Units held
        price: Market price per unit in native currency
        price_eur: Market price per unit converted to EUR
        coupon_pct: Annual gross coupon in percent of nominal
        tax_rate_pct: Withholding tax on coupons in percent
        maturity: Maturity date, ``None`` when the source value was unusable
        nominal: Face value redeemed per unit at maturity (native currency)
        invested_eur: Optional cost basis of the position in EUR
    """

    isin: str
    issuer: str = ""
    currency: str = "EUR"
    quantity: float = 0.0
    price: float = 0.0
    price_eur: float = 0.0
    coupon_pct: float = 0.0
    tax_rate_pct: float = 0.0
    maturity: date | None = None
    nominal: float = 100.0
    invested_eur: float | None = None

    @property
    def maturity_year(self) -> int | None:
        return self.maturity.year if self.maturity is not None else None

    def is_active_in(self, year: int) -> bool:
        """True while the holding has not matured before ``year``."""
        return self.maturity is not None and self.maturity.year >= year


def years_to_maturity(holding: Holding, today: date) -> float:
    """Fractional years between ``today`` and maturity (0 when unknown)."""
    if holding.maturity is None:
        return 0.0
    return (holding.maturity - today).days / 365.25


def _pick(data: Mapping[str, Any], field_name: str) -> Any:
    for alias in _FIELD_ALIASES[field_name]:
        if alias in data and data[alias] is not None:
            return data[alias]
    return None


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _to_date(value: Any, isin: str) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    logger.warning("Holding %s has an unusable maturity %r; it will be ignored", isin, value)
    return None


def parse_holding(data: Mapping[str, Any]) -> Holding:
    """
    Build a Holding from a portfolio mapping.

    Numeric fields that cannot be parsed fall back to neutral values and a
    malformed maturity becomes ``None`` so one bad row never aborts a batch.
    Only a missing ISIN is rejected, since the ISIN keys every downstream map.

    Raises:
        ValueError: If the mapping carries no ISIN
    """
    isin = _pick(data, "isin")
    if not isin:
        raise ValueError("holding requires an 'isin'")
    isin = str(isin).strip()

    nominal = _to_float(_pick(data, "nominal"), 100.0)
    invested = _pick(data, "invested_eur")

    return Holding(
        isin=isin,
        issuer=str(_pick(data, "issuer") or ""),
        currency=str(_pick(data, "currency") or "EUR").upper(),
        quantity=max(0.0, _to_float(_pick(data, "quantity"))),
        price=_to_float(_pick(data, "price")),
        price_eur=_to_float(_pick(data, "price_eur")),
        coupon_pct=_to_float(_pick(data, "coupon_pct")),
        tax_rate_pct=_to_float(_pick(data, "tax_rate_pct")),
        maturity=_to_date(_pick(data, "maturity"), isin),
        nominal=nominal if nominal else 100.0,
        invested_eur=_to_float(invested) if invested is not None else None,
    )


def parse_holdings(rows: Iterable[Mapping[str, Any] | Holding]) -> list[Holding]:
    """Parse many rows, dropping (and logging) rows without an ISIN."""
    holdings: list[Holding] = []
    for idx, row in enumerate(rows):
        if isinstance(row, Holding):
            holdings.append(row)
            continue
        try:
            holdings.append(parse_holding(row))
        except ValueError as exc:
            logger.warning("Skipping holding #%d: %s", idx, exc)
    return holdings
