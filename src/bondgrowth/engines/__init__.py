"""
Scenario engines.

Each engine advances its own copy of the slots year by year:

- CouponReinvestmentEngine: no-reinvest, same-instrument and market-average
- MaturityReplacementEngine: source proceeds switched into replacement bonds
"""

from .coupon_reinvestment import CouponReinvestmentEngine, run_scenario
from .maturity_replacement import MaturityReplacementEngine, extend_years, run_maturity_replacement

__all__ = [
    "CouponReinvestmentEngine",
    "MaturityReplacementEngine",
    "run_scenario",
    "run_maturity_replacement",
    "extend_years",
]
