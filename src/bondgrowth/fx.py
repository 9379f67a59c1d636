"""
Foreign Exchange (FX) multiplier lookup for the growth simulator.

The FX haircut model itself lives outside this package. It is consumed
through the ``FxMultiplierProvider`` protocol, which returns the expected
conversion multiplier for one cash-flow phase at a given horizon.

Simulation code never calls the provider directly: every multiplier a run
needs is fetched into an ``FxMultiplierCache`` first (``prefetch``), and the
engines only perform synchronous dict lookups against that cache. Missing
entries and provider failures resolve to neutral multipliers.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Iterable
from datetime import date
from typing import NamedTuple, Protocol, runtime_checkable

from bondgrowth.core.holdings import Holding, years_to_maturity
from bondgrowth.core.kinds import FxPhase

logger = logging.getLogger(__name__)

__all__ = [
    "FxMultipliers",
    "NEUTRAL",
    "FxMultiplierProvider",
    "StaticFxProvider",
    "FxMultiplierCache",
    "horizon_years",
]


class FxMultipliers(NamedTuple):
    """Expected multipliers for purchase, coupon and redemption cash flows."""

    fx_buy: float = 1.0
    fx_coupon: float = 1.0
    fx_future: float = 1.0

    @classmethod
    def flat(cls, rate: float) -> FxMultipliers:
        return cls(rate, rate, rate)


NEUTRAL = FxMultipliers()


@runtime_checkable
class FxMultiplierProvider(Protocol):
    """Contract for the external FX pricing collaborator."""

    def expected_multiplier(
        self,
        currency: str,
        report_currency: str,
        phase: FxPhase,
        horizon_years: int,
    ) -> float:
        """Expected value of one unit of ``currency`` in ``report_currency``."""
        ...


def horizon_years(holding: Holding, today: date) -> int:
    """Whole years to maturity used as FX horizon (at least 1, half rounds up)."""
    yrs = years_to_maturity(holding, today)
    return max(1, int(math.floor(yrs + 0.5)))


class StaticFxProvider:
    """
    Spot-rate provider without any haircut model.

    Every phase returns the spot rate. Rates are looked up directly, then as
    the inverse pair, then triangulated through ``base_currency``.

    Attributes:
        base_currency: Pivot currency for triangulation
        rates: Mapping (from_currency, to_currency) -> rate
    """

    def __init__(
        self,
        base_currency: str = "EUR",
        rates: dict[tuple[str, str], float] | None = None,
    ):
        self.base_currency = base_currency.upper()
        self.rates = {(a.upper(), b.upper()): r for (a, b), r in (rates or {}).items()}

    def get_rate(self, from_currency: str, to_currency: str) -> float | None:
        """Exchange rate or ``None`` if not available."""
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        if from_currency == to_currency:
            return 1.0

        direct_key = (from_currency, to_currency)
        if direct_key in self.rates:
            return self.rates[direct_key]

        inverse_key = (to_currency, from_currency)
        if inverse_key in self.rates and self.rates[inverse_key]:
            return 1.0 / self.rates[inverse_key]

        if self.base_currency not in (from_currency, to_currency):
            to_base = self.get_rate(from_currency, self.base_currency)
            from_base = self.get_rate(self.base_currency, to_currency)
            if to_base is not None and from_base is not None:
                return to_base * from_base

        return None

    def add_rate(self, from_currency: str, to_currency: str, rate: float) -> None:
        self.rates[(from_currency.upper(), to_currency.upper())] = rate

    def expected_multiplier(
        self,
        currency: str,
        report_currency: str,
        phase: FxPhase,
        horizon_years: int,
    ) -> float:
        rate = self.get_rate(currency, report_currency)
        if rate is None:
            raise LookupError(f"No exchange rate available for {currency} -> {report_currency}")
        return rate


class FxMultiplierCache:
    """
    Read-through cache of FX multipliers keyed by (currency, report, horizon).

    ``prefetch`` is the only method that talks to the provider in bulk;
    ``multipliers`` is a pure lookup safe to use from inside a simulation.

    Attributes:
        provider: External multiplier provider (optional)
        report_currency: Default report currency
        ttl_seconds: Entry lifetime; 0 keeps entries forever
        spot_rates: Known spot rates (currency -> report rate) used as a
            fallback when the provider fails
    """

    def __init__(
        self,
        provider: FxMultiplierProvider | None = None,
        report_currency: str = "EUR",
        ttl_seconds: float = 3600.0,
        spot_rates: dict[str, float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.report_currency = report_currency.upper()
        self.ttl_seconds = ttl_seconds
        self.spot_rates = {k.upper(): v for k, v in (spot_rates or {}).items()}
        self._clock = clock
        self._entries: dict[tuple[str, str, int], tuple[FxMultipliers, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _key(self, currency: str, horizon: int, report_currency: str | None) -> tuple[str, str, int]:
        report = (report_currency or self.report_currency).upper()
        return currency.upper(), report, max(1, int(horizon))

    def _expired(self, stored_at: float) -> bool:
        if not self.ttl_seconds:
            return False
        return self._clock() - stored_at > self.ttl_seconds

    def _fallback(self, currency: str) -> FxMultipliers:
        spot = self.spot_rates.get(currency.upper())
        return FxMultipliers.flat(spot) if spot else NEUTRAL

    def fetch(
        self, currency: str, horizon: int, report_currency: str | None = None
    ) -> FxMultipliers:
        """Fetch (or reuse) the multipliers for one pair and horizon."""
        if not currency or currency.upper() == (report_currency or self.report_currency).upper():
            return NEUTRAL

        key = self._key(currency, horizon, report_currency)
        cached = self._entries.get(key)
        if cached is not None and not self._expired(cached[1]):
            return cached[0]

        if self.provider is None:
            return self._fallback(currency)

        ccy, report, yrs = key
        try:
            value = FxMultipliers(
                fx_buy=self.provider.expected_multiplier(ccy, report, FxPhase.BUY, yrs),
                fx_coupon=self.provider.expected_multiplier(ccy, report, FxPhase.COUPON, yrs),
                fx_future=self.provider.expected_multiplier(ccy, report, FxPhase.MATURITY, yrs),
            )
        except Exception as exc:
            logger.warning(
                "FX provider failed for %s->%s at %dy (%s); using fallback multipliers",
                ccy,
                report,
                yrs,
                exc,
            )
            return self._fallback(currency)

        self._entries[key] = (value, self._clock())
        return value

    def prefetch(
        self,
        holdings: Iterable[Holding],
        today: date,
        report_currency: str | None = None,
    ) -> int:
        """
        Resolve every multiplier the portfolio needs before a simulation.

        Returns:
            Number of distinct (currency, horizon) pairs requested
        """
        report = (report_currency or self.report_currency).upper()
        needed: set[tuple[str, int]] = set()
        for holding in holdings:
            if holding.currency and holding.currency.upper() != report and holding.maturity:
                needed.add((holding.currency.upper(), horizon_years(holding, today)))

        for currency, horizon in sorted(needed):
            self.fetch(currency, horizon, report)
        logger.debug("Prefetched FX multipliers for %d pair(s)", len(needed))
        return len(needed)

    def multipliers(
        self, currency: str, horizon: int, report_currency: str | None = None
    ) -> FxMultipliers:
        """Synchronous lookup; neutral (or spot) when the entry is absent."""
        if not currency or currency.upper() == (report_currency or self.report_currency).upper():
            return NEUTRAL
        cached = self._entries.get(self._key(currency, horizon, report_currency))
        if cached is None:
            return self._fallback(currency)
        return cached[0]

    def lookup(
        self,
        currency: str,
        report_currency: str,
        phase: FxPhase,
        horizon_years: int,
    ) -> float:
        """Multiplier for a single phase, from the cache only."""
        fx = self.multipliers(currency, horizon_years, report_currency)
        if phase is FxPhase.BUY:
            return fx.fx_buy
        if phase is FxPhase.COUPON:
            return fx.fx_coupon
        return fx.fx_future

    def refresh(self) -> None:
        """Evict all cached entries (e.g. after a spot-rate refresh)."""
        self._entries.clear()
