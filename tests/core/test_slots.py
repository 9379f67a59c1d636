"""
Tests for the slot builder and the run-local slot pool.
"""

import logging
from datetime import date

import pytest

from bondgrowth.core.holdings import Holding
from bondgrowth.core.kinds import SlotKind
from bondgrowth.core.slots import Slot, SlotPool, build_slots, model_basis


class TestBuildSlots:
    """Holding -> Slot conversion."""

    def test_eur_holding(self, simple_bond):
        (slot,) = build_slots([simple_bond])
        assert slot.key == simple_bond.isin
        assert slot.units_held == 10
        assert slot.face_per_unit == 100.0
        assert slot.price_per_unit == 100.0
        assert slot.coupon_per_unit == pytest.approx(5.0)
        assert slot.maturity_year == 2028
        assert slot.kind is SlotKind.REAL
        assert slot.accrued_per_unit == 0.0

    def test_tax_reduces_coupon(self):
        h = Holding("IT1", "Italy", "EUR", 50, 104.2, 104.2, 5.25, 12.5, date(2029, 11, 1))
        (slot,) = build_slots([h])
        assert slot.coupon_per_unit == pytest.approx(5.25 * 0.875)
        assert slot.price_per_unit == 104.2

    def test_foreign_currency_uses_price_ratio(self):
        """Face and coupon are converted with price_eur / price."""
        h = Holding("US1", "UST", "USD", 10, 110.0, 100.0, 4.0, 0.0, date(2030, 1, 1))
        (slot,) = build_slots([h])
        factor = 100.0 / 110.0
        assert slot.face_per_unit == pytest.approx(100.0 * factor)
        assert slot.coupon_per_unit == pytest.approx(4.0 * factor)
        assert slot.price_per_unit == 100.0

    def test_foreign_currency_without_price_keeps_nominal(self):
        h = Holding("US2", "UST", "USD", 10, 0.0, 90.0, 4.0, 0.0, date(2030, 1, 1))
        (slot,) = build_slots([h])
        assert slot.face_per_unit == 100.0

    def test_missing_eur_price_falls_back_to_face(self):
        h = Holding("X", "X", "EUR", 5, 0.0, 0.0, 2.0, 0.0, date(2030, 1, 1), nominal=1000)
        (slot,) = build_slots([h])
        assert slot.price_per_unit == 1000.0

    def test_holding_without_maturity_is_skipped(self, simple_bond, caplog):
        broken = Holding("BROKEN", quantity=10, price=100, price_eur=100)
        with caplog.at_level(logging.WARNING, logger="bondgrowth.core.slots"):
            slots = build_slots([broken, simple_bond])
        assert [s.key for s in slots] == [simple_bond.isin]
        assert "BROKEN" in caplog.text

    def test_model_basis(self, nine_bonds):
        slots = build_slots(nine_bonds)
        expected = sum(h.quantity * h.price_eur for h in nine_bonds)
        assert model_basis(slots) == pytest.approx(expected)
        assert sum(s.face_value() for s in slots) == pytest.approx(322_490.0)


class TestSlotValues:
    def test_market_average_includes_accrual(self):
        slot = Slot("_mkt_2027", "Reinvested", 50, 1.0, 0.03, 1.0, 2030, SlotKind.MARKET_AVERAGE)
        slot.accrued_per_unit = 0.06
        assert slot.market_value() == pytest.approx(53.0)
        assert slot.redemption_value() == pytest.approx(53.0)
        assert slot.accrues_internally

    def test_real_slot_valued_at_price(self):
        slot = Slot("A", "A", 10, 100.0, 5.0, 96.0, 2030)
        assert slot.market_value() == pytest.approx(960.0)
        assert slot.redemption_value() == pytest.approx(1000.0)
        assert not slot.is_synthetic

    def test_replacement_flags(self):
        slot = Slot("A_repl_2029", "A", 10, 1.0, 0.035, 1.0, 2039, SlotKind.REPLACEMENT,
                    take_coupon_as_cash=True, source_isin="A")
        assert slot.is_replacement
        assert slot.is_synthetic
        assert slot.coupon_cash() == pytest.approx(0.35)


class TestSlotPool:
    def test_pool_copies_input_slots(self, simple_bond):
        original = build_slots([simple_bond])
        pool = SlotPool(original)
        pool[0].units_held = 99
        assert original[0].units_held == 10

    def test_retain_and_find(self):
        pool = SlotPool([Slot("A", "", 1, 100, 1, 100, 2027), Slot("B", "", 1, 100, 1, 100, 2030)])
        idx = pool.add(Slot("C", "", 1, 100, 1, 100, 2031))
        assert idx == 2
        pool.retain([1, 2])
        assert len(pool) == 2
        assert pool.find("A") is None
        assert pool.find("C") is pool[2]
        # Retired slots stay addressable
        assert pool[0].key == "A"
        assert pool.market_value() == pytest.approx(200.0)
