"""
Tests for the maturity replacement engine.

Reference portfolio: nine EUR bonds, 322,490 face. IT0001278511 (50 units,
5.25% coupon, 12.5% withholding, maturing 2029) is the replacement source.
Under the same-instrument baseline the source buys extra units from its share
of cash_in before it matures, so its proceeds are read from the booked flows.
With a cash baseline they stay at 50 × 100 redemption + 50 × 5.25 × 0.875.
"""

import logging
from datetime import date

import pytest

from bondgrowth.core.context import SimulationContext
from bondgrowth.core.holdings import Holding
from bondgrowth.core.kinds import SlotKind
from bondgrowth.core.scenarios import MaturityReplacementScenario, ReplacementSpec
from bondgrowth.core.slots import build_slots
from bondgrowth.engines import (
    MaturityReplacementEngine,
    extend_years,
    run_maturity_replacement,
    run_scenario,
)

YEARS = list(range(2026, 2038))
SOURCE = "IT0001278511"
SECOND_SOURCE = "IT0003934657"
PLAIN_PROCEEDS = 50 * 100.0 + 50 * 5.25 * 0.875  # 5229.6875


def _proceeds(run, year=2029, source=SOURCE):
    """Coupon plus redemption the source booked in its maturity year."""
    row = run.event(year).slot(source)
    return row.coupon + row.redemption


def _single(**kwargs):
    params = dict(source_isin=SOURCE, net_coupon_pct=3.5, maturity_year=2039)
    params.update(kwargs)
    return MaturityReplacementScenario.single("sc_2", **params)


@pytest.fixture
def slots(nine_bonds):
    return build_slots(nine_bonds)


class TestExtendYears:
    def test_extends_to_last_year(self):
        assert extend_years([2026, 2027], 2030) == [2026, 2027, 2028, 2029, 2030]

    def test_never_shrinks(self):
        assert extend_years([2026, 2027, 2028], 2027) == [2026, 2027, 2028]


class TestFullProceeds:
    """The replacement receives 100% of the source's redemption and coupon."""

    def test_activation_year_switches_full_proceeds(self, slots):
        run = run_maturity_replacement(slots, YEARS, _single())
        proceeds = _proceeds(run)
        ev = run.event(2029)
        assert ev.replacement_activated
        assert ev.activated_sources == (SOURCE,)
        assert ev.switched == pytest.approx(proceeds)
        assert ev.slot(SOURCE).reinvested == pytest.approx(proceeds)

    def test_source_proceeds_stay_out_of_cash_in(self, slots):
        run = run_maturity_replacement(slots, YEARS, _single())
        proceeds = _proceeds(run)
        ev = run.event(2029)
        assert ev.cash_in == pytest.approx(ev.coupons + ev.redemptions - proceeds)

    def test_replacement_value_first_year(self, slots):
        """Not the proportional fraction of total cash_in, the whole proceeds."""
        run = run_maturity_replacement(slots, YEARS, _single())
        proceeds = _proceeds(run)
        repl = run.event(2030).slot(f"{SOURCE}_repl")
        assert repl is not None
        assert repl.is_replacement
        assert repl.kind is SlotKind.REPLACEMENT
        assert repl.market_value == pytest.approx(proceeds)
        assert repl.replacement_coupon == pytest.approx(proceeds * 0.035)
        assert repl.coupon == 0.0

    def test_not_activated_before_source_maturity(self, slots):
        run = run_maturity_replacement(slots, YEARS, _single())
        for year in (2027, 2028):
            ev = run.event(year)
            assert not ev.replacement_activated
            assert ev.replacement_slots() == []
        assert [ev.year for ev in run.year_events if ev.replacement_activated] == [2029]

    def test_value_stable_with_cash_coupons(self, slots):
        run = run_maturity_replacement(slots, YEARS, _single())
        proceeds = _proceeds(run)
        values = [run.event(y).slot(f"{SOURCE}_repl").market_value for y in (2030, 2035, 2038)]
        assert values == pytest.approx([proceeds] * 3)

    def test_redeems_at_its_maturity(self, slots):
        run = run_maturity_replacement(slots, YEARS, _single())
        proceeds = _proceeds(run)
        assert run.years[-1] == 2039
        repl = run.event(2039).slot(f"{SOURCE}_repl")
        assert repl.redemption == pytest.approx(proceeds)
        assert repl.redemption == pytest.approx(repl.market_value)

    def test_source_grows_before_maturity(self, slots):
        """Same-instrument reinvestment adds units to the live source first."""
        run = run_maturity_replacement(slots, YEARS, _single())
        assert _proceeds(run) > PLAIN_PROCEEDS
        assert run.event(2029).slot(SOURCE).redemption > 50 * 100.0

    def test_compounded_coupons_grow_units(self, slots):
        run = run_maturity_replacement(slots, YEARS, _single(reinvest_coupons=True))
        proceeds = _proceeds(run)
        v30, v31, v35 = (run.event(y).slot(f"{SOURCE}_repl").market_value for y in (2030, 2031, 2035))
        assert v30 == pytest.approx(proceeds * 1.035)
        assert v30 < v31 < v35
        assert run.event(2030).replacement_coupons == pytest.approx(proceeds * 0.035)

    def test_discounted_purchase_buys_more_units(self, slots):
        run = run_maturity_replacement(slots, YEARS, _single(price_shift_pct=-10))
        proceeds = _proceeds(run)
        units = proceeds / 0.9
        repl = run.event(2030).slot(f"{SOURCE}_repl")
        assert repl.market_value == pytest.approx(units * 0.9)
        assert repl.replacement_coupon == pytest.approx(units * 0.035)
        assert run.event(2039).slot(f"{SOURCE}_repl").redemption == pytest.approx(units)

    def test_bonds_value_exceeds_no_reinvest(self, slots):
        none = run_scenario(slots, YEARS, "none")
        repl = run_maturity_replacement(slots, YEARS, _single())
        assert repl.event(2030).bonds_value - none.event(2030).bonds_value >= 4000


class TestMultipleReplacements:
    """Several replacements live side by side, each with its own state."""

    @pytest.fixture
    def scenario(self):
        return MaturityReplacementScenario(
            id="sc_2",
            replacements=(
                ReplacementSpec(SOURCE, 3.5, 0.0, 2039, reinvest_coupons=True),
                ReplacementSpec(SECOND_SOURCE, 4.0, 0.0, 2047),
            ),
        )

    def test_both_activate(self, slots, scenario):
        run = run_maturity_replacement(slots, YEARS, scenario)
        assert run.event(2029).activated_sources == (SOURCE,)
        assert run.event(2037).activated_sources == (SECOND_SOURCE,)
        assert run.years[-1] == 2047

    def test_coexist(self, slots, scenario):
        run = run_maturity_replacement(slots, YEARS, scenario)
        assert len(run.event(2031).replacement_slots()) == 1
        keys = {row.key for row in run.event(2038).replacement_slots()}
        assert keys == {f"{SOURCE}_repl_2029", f"{SECOND_SOURCE}_repl_2037"}

    def test_first_redeems_second_survives(self, slots, scenario):
        run = run_maturity_replacement(slots, YEARS, scenario)
        assert [r.key for r in run.event(2040).replacement_slots()] == [f"{SECOND_SOURCE}_repl_2037"]
        last = run.event(2047).slot(f"{SECOND_SOURCE}_repl")
        assert last.redemption == pytest.approx(last.market_value)


class TestReplacementEdgeCases:
    def test_replacement_not_after_activation_goes_to_cash(self, slots, caplog):
        with caplog.at_level(logging.WARNING, logger="bondgrowth.engines.maturity_replacement"):
            run = run_maturity_replacement(slots, YEARS, _single(maturity_year=2029))
        assert "proceeds kept as cash" in caplog.text
        assert all(ev.replacement_slots() == [] for ev in run.year_events)
        assert run.event(2029).idle_cash >= PLAIN_PROCEEDS
        assert not run.event(2029).replacement_activated

    def test_missing_source_never_activates(self, slots, caplog):
        scenario = MaturityReplacementScenario.single(
            "ghost", source_isin="XX0000000000", net_coupon_pct=3.0, maturity_year=2035
        )
        with caplog.at_level(logging.WARNING):
            run = run_maturity_replacement(slots, YEARS, scenario)
        assert "never activate" in caplog.text
        assert not any(ev.replacement_activated for ev in run.year_events)
        same = run_scenario(slots, YEARS, "same_instrument")
        assert run.values.tolist() == pytest.approx(same.values.tolist())

    def test_non_negative_and_deterministic(self, slots):
        first = run_maturity_replacement(slots, YEARS, _single(reinvest_coupons=True))
        second = run_maturity_replacement(slots, YEARS, _single(reinvest_coupons=True))
        assert (first.values >= 0).all()
        assert first.values.tolist() == second.values.tolist()
        for ev in first.year_events:
            assert ev.cash_in >= 0

    def test_cash_baseline(self, slots):
        scenario = MaturityReplacementScenario(
            id="cash",
            replacements=(ReplacementSpec(SOURCE, 3.5, 0.0, 2039),),
            baseline_mode="none",
        )
        run = run_maturity_replacement(slots, YEARS, scenario)
        assert run.event(2030).reinvested == 0.0
        assert run.event(2029).switched == pytest.approx(PLAIN_PROCEEDS)

    def test_engine_wrapper(self, slots):
        ctx = SimulationContext(years=YEARS)
        run = MaturityReplacementEngine().run(slots, _single(), ctx)
        assert run.scenario_id == "sc_2"
        assert run.years[-1] == 2039


class TestSourceHeldInLots:
    """A source held in several lots switches every lot into one replacement."""

    @pytest.fixture
    def lots(self):
        return build_slots(
            [
                Holding("SRC", "Lot", "EUR", 50, 100.0, 100.0, 0.0, 0.0, date(2028, 6, 30)),
                Holding("SRC", "Lot", "EUR", 50, 100.0, 100.0, 0.0, 0.0, date(2028, 6, 30)),
                Holding("OTHER", "Other", "EUR", 10, 100.0, 100.0, 5.0, 0.0, date(2030, 6, 30)),
            ]
        )

    @pytest.fixture
    def scenario(self):
        return MaturityReplacementScenario(
            id="lots",
            replacements=(ReplacementSpec("SRC", 4.0, 0.0, 2031),),
            baseline_mode="none",
        )

    def test_all_lots_switched(self, lots, scenario):
        run = run_maturity_replacement(lots, [2026, 2027, 2028, 2029, 2030], scenario)
        ev = run.event(2028)
        assert ev.activated_sources == ("SRC",)
        assert ev.switched == pytest.approx(10_000.0)
        assert ev.cash_in == pytest.approx(50.0)
        assert [row.reinvested for row in ev.slots if row.key == "SRC"] == [5_000.0, 5_000.0]

    def test_single_replacement_slot(self, lots, scenario):
        run = run_maturity_replacement(lots, [2026, 2027, 2028, 2029, 2030], scenario)
        repl = run.event(2029).replacement_slots()
        assert [row.key for row in repl] == ["SRC_repl_2028"]
        assert repl[0].market_value == pytest.approx(10_000.0)
