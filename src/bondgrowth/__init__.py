"""
BondGrowth - Multi-year growth simulation for bond portfolios

BondGrowth projects a portfolio of bond holdings year by year under one or
more reinvestment policies and reports, per scenario, the portfolio value
series and a per-year cash-flow log.

Key Features:
- **Coupon reinvestment**: cash, same instrument, or a market-average lot
- **Maturity replacement**: switch a holding's full proceeds into a new bond
- **Annual injection**: external contributions spread over live holdings
- **FX aware yields**: SAY computed with prefetched FX multipliers
- **Scale normalization**: outputs expressed for any start capital

Quick Start:
    ```python
    from datetime import date
    from bondgrowth import (
        Holding, MaturityReplacementScenario, SimulationRequest, simulate,
    )

    holdings = (
        Holding(isin="IT0001278511", issuer="Italy", quantity=50, price=104.0,
                price_eur=104.0, coupon_pct=5.25, tax_rate_pct=12.5,
                maturity=date(2029, 11, 1)),
    )
    scenario = MaturityReplacementScenario.single(
        "sc_1", source_isin="IT0001278511", net_coupon_pct=3.5, maturity_year=2039,
    )
    results = simulate(SimulationRequest(holdings=holdings, scenarios=(scenario,),
                                         start_capital=10_000, today=date(2026, 1, 15)))
    print(results.values_frame())
    ```
"""

# Version information
__version__ = "0.1.0"
__description__ = "Multi-year growth simulation for bond portfolios"

from .core import (
    ConfigError,
    CouponReinvestmentScenario,
    Holding,
    HoldingOverride,
    InjectionConfig,
    MaturityReplacementScenario,
    ReinvestMode,
    ReplacementSpec,
    ScenarioKind,
    ScenarioRun,
    SimulationRequest,
    SimulationResults,
    SimulationSettings,
    SlotKind,
    YearEvent,
    build_injection_schedule,
    build_slots,
    export_results_json,
    parse_holdings,
    simulate,
)
from .core.config_loader import load_request
from .engines import run_maturity_replacement, run_scenario
from .fx import FxMultiplierCache, FxMultipliers, StaticFxProvider
from .kpi import cagr, effective_say, max_drawdown, simple_annual_yield, weighted_say
from .timeline import build_holding_timeline

__all__ = [
    # Data model
    "Holding",
    "parse_holdings",
    "SlotKind",
    "ReinvestMode",
    "ScenarioKind",
    # Scenarios
    "CouponReinvestmentScenario",
    "HoldingOverride",
    "MaturityReplacementScenario",
    "ReplacementSpec",
    "InjectionConfig",
    # Simulation
    "SimulationRequest",
    "SimulationSettings",
    "SimulationResults",
    "ScenarioRun",
    "YearEvent",
    "ConfigError",
    "simulate",
    "load_request",
    "build_slots",
    "build_injection_schedule",
    "run_scenario",
    "run_maturity_replacement",
    "export_results_json",
    # FX
    "FxMultiplierCache",
    "FxMultipliers",
    "StaticFxProvider",
    # KPI utilities
    "simple_annual_yield",
    "weighted_say",
    "effective_say",
    "cagr",
    "max_drawdown",
    # Timeline
    "build_holding_timeline",
]
