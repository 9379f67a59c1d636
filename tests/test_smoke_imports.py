"""
Smoke tests to verify basic imports and functionality.
"""

from datetime import date

import pytest


def test_import_bondgrowth():
    """Test that we can import the main package."""
    import bondgrowth

    assert hasattr(bondgrowth, "__version__")
    assert bondgrowth.__version__ == "0.1.0"


def test_import_core_components():
    """Test that core components can be imported."""
    from bondgrowth import (
        CouponReinvestmentScenario,
        Holding,
        MaturityReplacementScenario,
        SimulationRequest,
        simulate,
    )

    assert Holding is not None
    assert SimulationRequest is not None
    assert CouponReinvestmentScenario is not None
    assert MaturityReplacementScenario is not None
    assert simulate is not None


def test_import_engines():
    """Test that the scenario engines can be imported."""
    from bondgrowth import engines
    from bondgrowth.core.interfaces import IScenarioEngine

    assert isinstance(engines.CouponReinvestmentEngine(), IScenarioEngine)
    assert isinstance(engines.MaturityReplacementEngine(), IScenarioEngine)


def test_basic_simulation():
    """Test that we can run a basic simulation."""
    from bondgrowth import CouponReinvestmentScenario, Holding, SimulationRequest, simulate

    bond = Holding(
        isin="XS0000000001",
        issuer="Test",
        quantity=10,
        price=100.0,
        price_eur=100.0,
        coupon_pct=5.0,
        maturity=date(2028, 6, 30),
    )
    request = SimulationRequest(
        holdings=[bond],
        scenarios=[CouponReinvestmentScenario(id="same", mode="same_instrument")],
        today=date(2026, 1, 1),
    )

    results = simulate(request)

    assert list(results.runs) == ["no_reinvest", "same"]
    assert results["no_reinvest"].values.tolist() == pytest.approx([1000.0, 1050.0, 1100.0])
