from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from bondgrowth.core.config_loader import load_request, parse_scenario
from bondgrowth.core.errors import ConfigError
from bondgrowth.core.kinds import ReinvestMode
from bondgrowth.core.scenarios import CouponReinvestmentScenario, MaturityReplacementScenario

REQUEST_YAML = """
start_capital: 100000
today: 2026-03-15
report_currency: eur
settings:
  synthetic_tail_years: 20
holdings:
  - isin: IT0001278511
    issuer: Italy
    quantity: 50
    price: 104.2
    priceEur: 104.2
    coupon: 5.25
    taxRate: 12.5
    maturity: "2029-11-01"
  - isin: IT0003934657
    issuer: Italy
    quantity: 400
    price: 101.5
    priceEur: 101.5
    coupon: 4.0
    taxRate: 12.5
    maturity: "2037-02-01"
injection:
  enabled: true
  amount_eur: 5000
  pct:
    IT0001278511: 40
    IT0003934657: 60
scenarios:
  - type: coupon_reinvest
    id: sc_1
    name: Reinvest at -5%
    mode: same_bond
    price_shift_pct: -5
    overrides:
      IT0001278511: {mode: none}
  - type: maturity_replacement
    id: sc_2
    replacements:
      - source_isin: IT0001278511
        net_coupon_pct: 3.5
        maturity_year: 2039
      - source_isin: IT0003934657
        net_coupon_pct: 4.0
        price_shift_pct: -2
        maturity_year: 2047
        reinvest_coupons: true
"""


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_yaml_request(tmp_path: Path) -> None:
    request = load_request(_write(tmp_path, "request.yaml", REQUEST_YAML))

    assert request.start_capital == 100000
    assert request.today == date(2026, 3, 15)
    assert request.report_currency == "EUR"
    assert request.settings.synthetic_tail_years == 20
    assert [h.isin for h in request.holdings] == ["IT0001278511", "IT0003934657"]
    assert request.injection.is_active
    assert request.injection.pct["IT0003934657"] == 60

    sc1, sc2 = request.scenarios
    assert isinstance(sc1, CouponReinvestmentScenario)
    assert sc1.mode is ReinvestMode.SAME_INSTRUMENT
    assert sc1.price_shift_pct == -5
    assert sc1.override_for("IT0001278511").mode is ReinvestMode.NONE
    assert isinstance(sc2, MaturityReplacementScenario)
    assert sc2.source_isins == ("IT0001278511", "IT0003934657")
    assert sc2.replacements[1].reinvest_coupons is True
    assert sc2.replacements[1].price_shift_pct == -2


def test_load_json_request(tmp_path: Path) -> None:
    payload = {
        "holdings": [{"isin": "A", "quantity": 1, "price": 99, "maturity": "2030-01-01"}],
        "scenarios": [{"type": "coupon_reinvest", "id": "mkt", "mode": "market_avg"}],
    }
    request = load_request(_write(tmp_path, "request.json", json.dumps(payload)))
    assert request.scenarios[0].mode is ReinvestMode.MARKET_AVERAGE
    assert request.today is None
    assert not request.injection.is_active


def test_load_from_mapping_does_not_mutate_input() -> None:
    payload = {"holdings": [{"isin": "A", "maturity": "2030-01-01"}]}
    request = load_request(payload)
    assert len(request.holdings) == 1
    assert payload == {"holdings": [{"isin": "A", "maturity": "2030-01-01"}]}


def test_single_replacement_shorthand() -> None:
    scenario = parse_scenario(
        {
            "type": "maturity_replacement",
            "id": "sc_2",
            "source_isin": "IT0001278511",
            "net_coupon_pct": 3.5,
            "maturity_year": 2039,
        }
    )
    assert scenario.source_isins == ("IT0001278511",)


def test_bad_maturity_is_tolerated() -> None:
    request = load_request({"holdings": [{"isin": "A", "maturity": "soon"}]})
    assert request.holdings[0].maturity is None


@pytest.mark.parametrize(
    "payload,match",
    [
        ({"holdings": []}, "at least one holding"),
        ({"holdings": "A"}, "expected list"),
        ({"holdings": [{"isin": "A"}], "scenarios": [{"id": "x"}]}, "'type' is required"),
        ({"holdings": [{"isin": "A"}], "scenarios": [{"type": "magic", "id": "x"}]}, "unknown scenario type"),
        ({"holdings": [{"isin": "A"}], "scenarios": [{"type": "coupon_reinvest"}]}, "'id' is required"),
        (
            {"holdings": [{"isin": "A"}], "scenarios": [{"type": "coupon_reinvest", "id": "x", "mode": "gold"}]},
            "unknown reinvestment mode",
        ),
        (
            {"holdings": [{"isin": "A"}], "scenarios": [{"type": "coupon_reinvest", "id": "x", "mode": None}]},
            "unknown reinvestment mode",
        ),
        (
            {
                "holdings": [{"isin": "A"}],
                "scenarios": [
                    {
                        "type": "maturity_replacement",
                        "id": "x",
                        "replacements": [
                            {"source_isin": "A", "net_coupon_pct": 3, "maturity_year": 2039},
                            {"source_isin": "A", "net_coupon_pct": 4, "maturity_year": 2040},
                        ],
                    }
                ],
            },
            "duplicate",
        ),
        (
            {"holdings": [{"isin": "A"}], "scenarios": [{"type": "maturity_replacement", "id": "x", "source_isin": "A"}]},
            "maturity_year",
        ),
        ({"holdings": [{"isin": "A"}], "settings": {"warp_speed": 9}}, "unknown setting"),
        ({"holdings": [{"isin": "A"}], "start_capital": "lots"}, "expected a number"),
        ({"holdings": [{"isin": "A"}], "today": "yesterday"}, "invalid ISO date"),
    ],
)
def test_invalid_requests_raise(payload, match) -> None:
    with pytest.raises(ConfigError, match=match):
        load_request(payload)


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="mapping"):
        load_request(_write(tmp_path, "list.yaml", "- 1\n- 2\n"))


def test_unsupported_format_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Unsupported request format"):
        load_request(_write(tmp_path, "request.toml", "x = 1"))


def test_unparseable_yaml_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Could not parse"):
        load_request(_write(tmp_path, "bad.yaml", "holdings: [unclosed"))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_request(tmp_path / "missing.yaml")
