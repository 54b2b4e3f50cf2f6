"""Run directories for balance harness output.

A run lives under ``{base_dir}/{label}__seed-{seed}__{YYYYMMDD-HHMMSS}`` and
holds ``config.json``, optional ``notes.md``, ``summary.json``,
``report.txt`` and a per-simulation ``simulations.csv``.
"""

from __future__ import annotations

import csv
import json
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

from phonesim.balance.runs import SimulationRun

SIMULATION_FIELDS = (
    "index",
    "seed",
    "winner_id",
    "winner_archetype",
    "winner_revenue",
    "bankrupt_teams",
    "degraded",
)


def generate_run_id(label: str, seed: str | None, *, timestamp: datetime | None = None) -> str:
    stamp = (timestamp or datetime.now(tz=timezone.utc)).strftime("%Y%m%d-%H%M%S")
    return f"{label}__seed-{seed or 'random'}__{stamp}"


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _plain(asdict(value))
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _write_json(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(_plain(payload), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return path


def prepare_run_directory(base_dir: Path, run_id: str, *, config: Any, notes: str | None = None) -> Path:
    run_dir = Path(base_dir) / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    _write_json(run_dir / "config.json", config if config is not None else {})
    if notes:
        (run_dir / "notes.md").write_text(notes.strip() + "\n", encoding="utf-8")
    return run_dir


def write_summary(run_dir: Path, summary: Mapping[str, Any], *, report: str | None = None) -> Path:
    path = _write_json(run_dir / "summary.json", summary)
    if report:
        (run_dir / "report.txt").write_text(report, encoding="utf-8")
    return path


def write_simulation_table(run_dir: Path, runs: Sequence[SimulationRun]) -> Path:
    """One CSV row per simulation, in simulation order."""

    path = run_dir / "simulations.csv"
    with open(path, "w", encoding="utf-8", newline="") as fp:
        writer = csv.DictWriter(fp, fieldnames=SIMULATION_FIELDS)
        writer.writeheader()
        for index, run in enumerate(runs):
            winner = next(t for t in run.team_results if t.team_id == run.winner_id)
            writer.writerow(
                {
                    "index": index,
                    "seed": run.seed,
                    "winner_id": run.winner_id,
                    "winner_archetype": run.winner_archetype,
                    "winner_revenue": round(winner.metrics.total_revenue, 2),
                    "bankrupt_teams": sum(1 for t in run.team_results if t.metrics.went_bankrupt),
                    "degraded": run.degraded_rounds,
                }
            )
    return path


__all__ = [
    "SIMULATION_FIELDS",
    "generate_run_id",
    "prepare_run_directory",
    "write_simulation_table",
    "write_summary",
]
