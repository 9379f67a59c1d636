"""Utilities for loading simulation requests from YAML/JSON sources."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import fields
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .context import SimulationSettings
from .errors import ConfigError
from .holdings import parse_holdings
from .injection import InjectionConfig
from .kinds import ReinvestMode, ScenarioKind
from .scenarios import (
    CouponReinvestmentScenario,
    HoldingOverride,
    MaturityReplacementScenario,
    ReplacementSpec,
    Scenario,
)
from .simulation import SimulationRequest

__all__ = ["load_request", "parse_scenario", "parse_injection", "parse_settings"]


def load_request(
    source: str | Path | dict[str, Any], *, format: str | None = None
) -> SimulationRequest:
    """
    Parse a simulation request from YAML/JSON/dict.

    Expected layout::

        start_capital: 100000
        today: 2026-01-15
        holdings: [{isin: ..., price: ..., maturity: ...}, ...]
        injection: {enabled: true, amount_eur: 5000, pct: {ISIN: 40}}
        scenarios:
          - {type: coupon_reinvest, id: sc_1, mode: same_instrument}
          - type: maturity_replacement
            id: sc_2
            replacements: [{source_isin: ..., net_coupon_pct: 3.5, maturity_year: 2039}]

    Raises:
        FileNotFoundError: If ``source`` is a path that does not exist
        ConfigError: If the request is structurally invalid
    """
    mapping, label = _read_source(source, format=format)

    holdings_raw = _ensure_list(mapping.get("holdings"), f"{label}::holdings")
    if not holdings_raw:
        raise ConfigError(f"{label}: request must list at least one holding")
    rows = [_ensure_dict(row, f"{label}::holdings[{idx}]") for idx, row in enumerate(holdings_raw)]
    holdings = parse_holdings(rows)

    scenarios = [
        parse_scenario(_ensure_dict(entry, f"{label}::scenarios[{idx}]"), f"{label}::scenarios[{idx}]")
        for idx, entry in enumerate(
            _ensure_list(mapping.get("scenarios"), f"{label}::scenarios", allow_none=True) or []
        )
    ]

    return SimulationRequest(
        holdings=tuple(holdings),
        scenarios=tuple(scenarios),
        injection=parse_injection(mapping.get("injection"), f"{label}::injection"),
        start_capital=_coerce_float(mapping.get("start_capital"), f"{label}::start_capital", 0.0),
        today=_coerce_date(mapping.get("today"), f"{label}::today"),
        report_currency=str(mapping.get("report_currency") or "EUR"),
        settings=parse_settings(mapping.get("settings"), f"{label}::settings"),
    )


def _read_source(
    source: str | Path | dict[str, Any], *, format: str | None
) -> tuple[dict[str, Any], str]:
    if isinstance(source, dict):
        return deepcopy(source), "<mapping>"

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    try:
        if fmt in {"yaml", "yml", ""}:
            data = yaml.safe_load(text)
        elif fmt == "json":
            data = json.loads(text)
        else:
            raise ConfigError(f"Unsupported request format '{fmt}' for {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Request root must be a mapping (source={path})")
    return data, str(path)


def parse_scenario(data: dict[str, Any], ctx: str = "<scenario>") -> Scenario:
    """Build one scenario from its mapping; ``type`` selects the variant."""
    kind = data.get("type", data.get("_type"))
    if not isinstance(kind, str) or not kind.strip():
        raise ConfigError(f"{ctx}: 'type' is required ({', '.join(ScenarioKind.all_kinds())})")
    scenario_id = data.get("id")
    if not isinstance(scenario_id, str) or not scenario_id.strip():
        raise ConfigError(f"{ctx}: 'id' is required")
    name = data.get("name") or scenario_id

    if kind == ScenarioKind.COUPON_REINVESTMENT.value:
        overrides = {
            isin: _parse_override(_ensure_dict(raw, f"{ctx}.overrides.{isin}"), f"{ctx}.overrides.{isin}")
            for isin, raw in _ensure_dict(data.get("overrides"), f"{ctx}.overrides").items()
        }
        return CouponReinvestmentScenario(
            id=scenario_id,
            name=name,
            mode=_coerce_mode(data.get("mode", "same_instrument"), f"{ctx}.mode"),
            price_shift_pct=_coerce_float(data.get("price_shift_pct"), f"{ctx}.price_shift_pct", 0.0),
            reinvest_yield_pct=_coerce_optional_float(
                data.get("reinvest_yield_pct"), f"{ctx}.reinvest_yield_pct"
            ),
            overrides=overrides,
        )

    if kind == ScenarioKind.MATURITY_REPLACEMENT.value:
        raw_specs = _ensure_list(data.get("replacements"), f"{ctx}.replacements", allow_none=True)
        if raw_specs is None:
            # Single-replacement shorthand: terms inline on the scenario
            raw_specs = [data]
        specs = tuple(
            _parse_replacement(_ensure_dict(raw, f"{ctx}.replacements[{idx}]"), f"{ctx}.replacements[{idx}]")
            for idx, raw in enumerate(raw_specs)
        )
        return MaturityReplacementScenario(
            id=scenario_id,
            name=name,
            replacements=specs,
            baseline_mode=_coerce_mode(
                data.get("baseline_mode", "same_instrument"), f"{ctx}.baseline_mode"
            ),
        )

    raise ConfigError(
        f"{ctx}: unknown scenario type '{kind}' (expected one of "
        f"{ScenarioKind.COUPON_REINVESTMENT.value}, {ScenarioKind.MATURITY_REPLACEMENT.value})"
    )


def _parse_override(data: dict[str, Any], ctx: str) -> HoldingOverride:
    mode = data.get("mode")
    return HoldingOverride(
        mode=_coerce_mode(mode, f"{ctx}.mode") if mode is not None else None,
        price_shift_pct=_coerce_optional_float(data.get("price_shift_pct"), f"{ctx}.price_shift_pct"),
        reinvest_yield_pct=_coerce_optional_float(
            data.get("reinvest_yield_pct"), f"{ctx}.reinvest_yield_pct"
        ),
    )


def _parse_replacement(data: dict[str, Any], ctx: str) -> ReplacementSpec:
    source = data.get("source_isin")
    if not isinstance(source, str) or not source.strip():
        raise ConfigError(f"{ctx}: 'source_isin' is required")
    maturity_year = data.get("maturity_year")
    if isinstance(maturity_year, bool) or not isinstance(maturity_year, int):
        raise ConfigError(f"{ctx}: 'maturity_year' must be an integer year")
    reinvest = data.get("reinvest_coupons", False)
    if not isinstance(reinvest, bool):
        raise ConfigError(f"{ctx}.reinvest_coupons must be boolean")
    return ReplacementSpec(
        source_isin=source.strip(),
        net_coupon_pct=_coerce_float(data.get("net_coupon_pct"), f"{ctx}.net_coupon_pct", 0.0),
        price_shift_pct=_coerce_float(data.get("price_shift_pct"), f"{ctx}.price_shift_pct", 0.0),
        maturity_year=maturity_year,
        reinvest_coupons=reinvest,
    )


def parse_injection(raw: Any, ctx: str = "<injection>") -> InjectionConfig:
    """Injection block; a missing block disables injection."""
    if raw is None:
        return InjectionConfig()
    data = _ensure_dict(raw, ctx)
    pct = {
        str(isin): _coerce_float(value, f"{ctx}.pct.{isin}", 0.0)
        for isin, value in _ensure_dict(data.get("pct"), f"{ctx}.pct").items()
    }
    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"{ctx}.enabled must be boolean")
    return InjectionConfig(
        enabled=enabled,
        amount_eur=_coerce_float(data.get("amount_eur"), f"{ctx}.amount_eur", 0.0),
        pct=pct,
    )


def parse_settings(raw: Any, ctx: str = "<settings>") -> SimulationSettings:
    """Settings block; unknown keys are rejected."""
    if raw is None:
        return SimulationSettings()
    data = _ensure_dict(raw, ctx)
    known = {f.name for f in fields(SimulationSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"{ctx}: unknown setting(s) {', '.join(unknown)}")
    return SimulationSettings(**data)


def _coerce_mode(value: Any, ctx: str) -> ReinvestMode:
    try:
        return ReinvestMode.parse(value)
    except ValueError as exc:
        raise ConfigError(f"{ctx}: unknown reinvestment mode '{value}'") from exc


def _coerce_float(value: Any, ctx: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx}: expected a number")
    return float(value)


def _coerce_optional_float(value: Any, ctx: str) -> float | None:
    if value is None:
        return None
    return _coerce_float(value, ctx, 0.0)


def _coerce_date(value: Any, ctx: str) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise ConfigError(f"{ctx}: invalid ISO date '{value}'") from exc
    raise ConfigError(f"{ctx}: expected ISO date string")


def _ensure_dict(value: Any, ctx: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx}: expected mapping")
    return value


def _ensure_list(value: Any, ctx: str, *, allow_none: bool = False) -> list[Any] | None:
    if value is None:
        return None if allow_none else []
    if not isinstance(value, list):
        raise ConfigError(f"{ctx}: expected list")
    return value
