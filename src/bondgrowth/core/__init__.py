"""
Core module for BondGrowth.

This module contains the data model (holdings, slots, scenarios, events),
the injection allocator and the simulation orchestrator.
"""

from .context import SimulationContext, SimulationSettings
from .errors import ConfigError
from .events import SlotFlow, YearEvent
from .holdings import Holding, parse_holding, parse_holdings, years_to_maturity
from .injection import InjectionConfig, InjectionSchedule, build_injection_schedule
from .interfaces import IScenarioEngine
from .kinds import FxPhase, ReinvestMode, ReplacementState, ScenarioKind, SlotKind
from .results import NumpyEncoder, ScenarioRun, SimulationResults, export_results_json
from .scenarios import (
    CouponReinvestmentScenario,
    HoldingOverride,
    MaturityReplacementScenario,
    ReplacementSpec,
    Scenario,
    no_reinvest_baseline,
)
from .simulation import SimulationRequest, compute_scale, simulate, year_axis
from .slots import Slot, SlotPool, build_slots, model_basis

__all__ = [
    # Errors
    "ConfigError",
    # Kinds
    "SlotKind",
    "ReinvestMode",
    "ScenarioKind",
    "ReplacementState",
    "FxPhase",
    # Holdings and slots
    "Holding",
    "parse_holding",
    "parse_holdings",
    "years_to_maturity",
    "Slot",
    "SlotPool",
    "build_slots",
    "model_basis",
    # Scenarios
    "Scenario",
    "CouponReinvestmentScenario",
    "HoldingOverride",
    "MaturityReplacementScenario",
    "ReplacementSpec",
    "no_reinvest_baseline",
    # Injection
    "InjectionConfig",
    "InjectionSchedule",
    "build_injection_schedule",
    # Events and Results
    "SlotFlow",
    "YearEvent",
    "ScenarioRun",
    "SimulationResults",
    "NumpyEncoder",
    "export_results_json",
    # Context and orchestration
    "SimulationContext",
    "SimulationSettings",
    "SimulationRequest",
    "IScenarioEngine",
    "simulate",
    "year_axis",
    "compute_scale",
]
