"""
BondGrowth kind discriminators (slots, reinvestment policies, scenarios).
"""

from __future__ import annotations

from enum import Enum


class SlotKind(str, Enum):
    """What a slot in the simulation pool represents."""

    REAL = "real"  # Holding present in the input portfolio
    SAME_INSTRUMENT = "same_instrument"  # Continuation of a matured holding
    MARKET_AVERAGE = "market_average"  # Aggregated generic reinvestment lot
    REPLACEMENT = "replacement"  # Synthetic bond bought with a source's proceeds


class ReinvestMode(str, Enum):
    """Where coupon and redemption cash is redirected."""

    NONE = "none"  # Idle cash
    SAME_INSTRUMENT = "same_instrument"  # Buy more of the same bond
    MARKET_AVERAGE = "market_average"  # Generic instrument at the reinvestment yield

    @classmethod
    def parse(cls, value: ReinvestMode | str) -> ReinvestMode:
        """Accept enum members, values, and the legacy 'same_bond'/'market_avg' tags."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"{value!r} is not a valid {cls.__name__}")
        normalized = value.strip().lower()
        aliases = {"same_bond": "same_instrument", "market_avg": "market_average"}
        return cls(aliases.get(normalized, normalized))


class ScenarioKind(str, Enum):
    """Scenario variants understood by the orchestrator."""

    NO_REINVEST = "no_reinvest"
    COUPON_REINVESTMENT = "coupon_reinvest"
    MATURITY_REPLACEMENT = "maturity_replacement"

    @classmethod
    def all_kinds(cls) -> list[str]:
        """Enumerate all known scenario kinds (for validation and docs)."""
        return [kind.value for kind in cls]


class ReplacementState(str, Enum):
    """Lifecycle of one replacement inside a maturity-replacement run."""

    PENDING = "pending"  # Source holding not matured yet
    ACTIVE = "active"  # Replacement slot alive
    REDEEMED = "redeemed"  # Replacement matured and left the pool


class FxPhase(str, Enum):
    """Cash-flow phase an FX multiplier applies to."""

    BUY = "buy"
    COUPON = "coupon"
    MATURITY = "maturity"
