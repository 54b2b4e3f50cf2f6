from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from phonesim.balance.harness import (
    HarnessConfig,
    HarnessOutput,
    assignments_for,
    output_summary,
    run_harness,
)
from phonesim.balance.run_outputs import (
    generate_run_id,
    prepare_run_directory,
    write_simulation_table,
    write_summary,
)
from phonesim.balance.strategies import get_available_strategies
from phonesim.errors import PhonesimError
from phonesim.runtime.telemetry import Metrics

EXIT_PASS = 0
EXIT_IMBALANCE = 1
EXIT_INVALID = 2

_DEFAULTS = HarnessConfig()


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Monte Carlo balance harness")
    parser.add_argument(
        "--strategies",
        default="volume,premium,brand,balanced",
        help=f"Comma-separated archetypes ({', '.join(get_available_strategies())})",
    )
    parser.add_argument("--simulations", type=int, default=_DEFAULTS.simulations)
    parser.add_argument("--rounds", type=int, default=_DEFAULTS.rounds)
    parser.add_argument("--teams", type=int, help="Team count; archetypes are cycled across teams")
    parser.add_argument("--seed", default=_DEFAULTS.base_seed, help="Base seed; empty for a time-derived seed")
    parser.add_argument("--no-rubber-banding", action="store_true", help="Disable catch-up mechanics")
    parser.add_argument("--volatility", type=float, default=_DEFAULTS.market_volatility)
    parser.add_argument("--workers", type=int, default=_DEFAULTS.max_workers)
    parser.add_argument("--json", action="store_true", help="Print the machine-readable summary")
    parser.add_argument("--output-dir", type=Path, help="Write config.json and summary.json under this directory")
    parser.add_argument("--notes", help="Optional notes to emit alongside config")
    parser.add_argument("--quiet", action="store_true", help="Only print the final verdict")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> HarnessConfig:
    if args.simulations < 1:
        raise ValueError("--simulations must be at least 1")
    if args.rounds < 1:
        raise ValueError("--rounds must be at least 1")
    if args.workers < 1:
        raise ValueError("--workers must be at least 1")
    if args.volatility < 0:
        raise ValueError("--volatility must be non-negative")
    cfg = HarnessConfig(
        simulations=args.simulations,
        rounds=args.rounds,
        base_seed=args.seed or None,
        rubber_banding=not args.no_rubber_banding,
        market_volatility=args.volatility,
        max_workers=args.workers,
    )
    if args.teams is not None:
        if args.teams < 1:
            raise ValueError("--teams must be at least 1")
        cfg = replace(cfg, team_count=args.teams)
    return cfg


def _archetypes(raw: str) -> list[str]:
    names = [name.strip() for name in raw.split(",") if name.strip()]
    if not names:
        raise ValueError("--strategies must name at least one archetype")
    return names


def _print_summary(output: HarnessOutput, *, quiet: bool = False) -> None:
    summary = output.summary
    if not quiet:
        print(output.report())
        print(f"simulations: {summary.total_simulations} rounds: {summary.total_rounds}")
        if summary.degraded_rounds:
            print(f"degraded team-rounds: {summary.degraded_rounds}")
        print(f"{'archetype':<14}{'wins':>6}{'win %':>9}{'bankrupt %':>12}{'avg revenue':>16}")
        for archetype, wins in summary.wins_by_archetype.items():
            print(
                f"{archetype:<14}{wins:>6}"
                f"{summary.win_rate_by_archetype.get(archetype, 0.0) * 100:>8.1f}%"
                f"{summary.bankruptcy_rate_by_archetype.get(archetype, 0.0) * 100:>11.1f}%"
                f"{summary.average_revenue_by_archetype.get(archetype, 0.0) / 1_000_000:>15.1f}M"
            )
        for warning in output.warnings:
            print(f"WARNING: {warning}")
    print("PASS" if output.passed else "FAIL: balance issues detected")


def _write_outputs(
    output_dir: Path,
    cfg: HarnessConfig,
    label: str,
    summary: dict[str, Any],
    output: HarnessOutput,
    notes: str | None,
) -> Path:
    run_id = generate_run_id(label, cfg.base_seed, timestamp=datetime.now(tz=timezone.utc))
    run_dir = prepare_run_directory(output_dir, run_id, config=cfg, notes=notes)
    write_summary(run_dir, summary, report=output.report())
    write_simulation_table(run_dir, output.runs)
    return run_dir


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        cfg = _build_config(args)
        archetypes = _archetypes(args.strategies)
        assignments = assignments_for(archetypes, cfg.team_count if args.teams is not None else None)
        metrics = Metrics()
        output = run_harness(assignments, cfg, metrics=metrics)
    except (PhonesimError, ValueError, KeyError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INVALID

    summary = output_summary(output)
    summary["telemetry"] = metrics.snapshot()
    if args.output_dir:
        run_dir = _write_outputs(args.output_dir, cfg, "balance", summary, output, args.notes)
        if not args.json:
            print(f"run_dir: {run_dir}")

    if args.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        _print_summary(output, quiet=args.quiet)

    return EXIT_PASS if output.passed else EXIT_IMBALANCE


if __name__ == "__main__":
    raise SystemExit(main())
