"""
Command-line interface for BondGrowth.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import date

from bondgrowth import __version__
from bondgrowth.core.config_loader import load_request
from bondgrowth.core.errors import ConfigError
from bondgrowth.core.injection import build_injection_schedule
from bondgrowth.core.results import NumpyEncoder
from bondgrowth.core.simulation import simulate, year_axis
from bondgrowth.kpi import weighted_say


def _save_json(path: str, data: dict) -> None:
    """Save data as JSON to file path."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, cls=NumpyEncoder)


def _print_run_summary(results) -> None:
    """Print one line per scenario to stdout."""
    print(
        f"Years {results.years[0]}-{results.years[-1]}, scale {results.scale:.6f}, "
        f"weighted SAY {results.weighted_say:.2f}%"
    )
    for row in results.summary().reset_index().to_dict("records"):
        cagr = row["cagr"]
        cagr_txt = f"{cagr * 100:.2f}%" if cagr == cagr else "n/a"
        print(
            f"  {row['scenario']:<24} final {row['final_value']:>14,.2f} "
            f"({row['final_year']})  CAGR {cagr_txt}"
        )


def cmd_simulate(args) -> int:
    """Run a request file and export JSON results."""
    try:
        request = load_request(args.input)
        if args.start_capital is not None or args.today:
            request = replace(
                request,
                start_capital=(
                    args.start_capital
                    if args.start_capital is not None
                    else request.start_capital
                ),
                today=date.fromisoformat(args.today) if args.today else request.today,
            )

        results = simulate(request)
        if not results.years:
            print("Nothing to simulate: the portfolio is empty", file=sys.stderr)
            return 1

        _print_run_summary(results)
        if args.output:
            _save_json(args.output, results.to_dict())
            print(f"Results saved to {args.output}")
        return 0

    except (ConfigError, FileNotFoundError, ValueError) as e:
        print(f"Error running simulation: {e}", file=sys.stderr)
        return 1


def cmd_validate(args) -> int:
    """Validate a request file without running it."""
    try:
        request = load_request(args.input)
    except (ConfigError, FileNotFoundError, ValueError) as e:
        if args.format == "json":
            json.dump({"is_valid": False, "error": str(e)}, sys.stdout, indent=2)
            sys.stdout.write("\n")
        else:
            print(f"Validation failed: {e}", file=sys.stderr)
        return 1

    skipped = [h.isin for h in request.holdings if h.maturity is None]
    report = {
        "is_valid": True,
        "holdings": len(request.holdings),
        "skipped_holdings": skipped,
        "scenarios": [s.id for s in request.scenarios],
        "injection": request.injection.is_active,
    }
    if args.format == "json":
        json.dump(report, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print(f"OK: {report['holdings']} holding(s), {len(report['scenarios'])} scenario(s)")
        for isin in skipped:
            print(f"  warning: {isin} has no usable maturity and will be ignored")
    return 0


def cmd_injection(args) -> int:
    """Print the per-year injection schedule of a request."""
    try:
        request = load_request(args.input)
    except (ConfigError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    today = request.today or date.today()
    years = year_axis(request.holdings, today)
    schedule = build_injection_schedule(request.holdings, request.injection, years)
    if args.json:
        json.dump({str(yr): amounts for yr, amounts in schedule.items()}, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    if not schedule:
        print("Injection disabled or nothing to allocate")
        return 0
    for yr, amounts in schedule.items():
        parts = ", ".join(f"{isin}={amt:,.2f}" for isin, amt in amounts.items())
        print(f"{yr}: {parts}")
    print(f"Weighted SAY: {weighted_say(request.holdings, today=today):.2f}%")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="bondgrowth", description="BondGrowth - Bond portfolio growth simulator"
    )

    parser.add_argument("--version", action="version", version=f"BondGrowth {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(
        dest="cmd", required=True, help="Available commands"
    )

    # Simulate command
    sim_parser = subparsers.add_parser(
        "simulate", help="Run a request file and export JSON results"
    )
    sim_parser.add_argument(
        "-i", "--input", required=True, help="Request file (YAML or JSON)"
    )
    sim_parser.add_argument("-o", "--output", help="Output results JSON file")
    sim_parser.add_argument(
        "--start-capital", type=float, help="Override the request's start capital (EUR)"
    )
    sim_parser.add_argument("--today", help="Override the valuation date (YYYY-MM-DD)")
    sim_parser.set_defaults(func=cmd_simulate)

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a request file")
    validate_parser.add_argument(
        "-i", "--input", required=True, help="Request file (YAML or JSON)"
    )
    validate_parser.add_argument(
        "--format", choices=["human", "json"], default="human", help="Output format"
    )
    validate_parser.set_defaults(func=cmd_validate)

    # Injection command
    inj_parser = subparsers.add_parser(
        "injection", help="Show the per-year injection schedule of a request"
    )
    inj_parser.add_argument(
        "-i", "--input", required=True, help="Request file (YAML or JSON)"
    )
    inj_parser.add_argument(
        "--json", action="store_true", help="Output in JSON format"
    )
    inj_parser.set_defaults(func=cmd_injection)

    # Parse arguments and execute
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
