"""Monte Carlo balance harness.

Runs many seeded simulations with scripted archetypes and aggregates the
outcomes into balance metrics, a diversity index and warnings. With a base
seed, simulation ``i`` uses ``{base_seed}-sim-{i}`` so reruns are identical.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from phonesim.balance.metrics import (
    BALANCE_THRESHOLDS,
    BalanceMetrics,
    BalanceThresholds,
    DiversityIndex,
    StrategicHealth,
    compute_balance_metrics,
    compute_diversity,
    compute_strategic_health,
    passes_balance_check,
)
from phonesim.balance.report import generate_report
from phonesim.balance.runs import SimulationRun, StrategyAssignment, run_simulation
from phonesim.balance.strategies import STRATEGIES, Strategy
from phonesim.errors import UnknownArchetypeError
from phonesim.runtime.market import MarketConfig
from phonesim.runtime.orchestrator import OrchestratorConfig
from phonesim.runtime.telemetry import Metrics, record_event

BANKRUPTCY_WARNING_RATE = 0.1
LOW_DIVERSITY_WARNING = 0.5


@dataclass(slots=True)
class HarnessConfig:
    simulations: int = 500
    rounds: int = 8
    team_count: int = 4
    base_seed: str | None = "balance-test"
    rubber_banding: bool = True
    market_volatility: float = 0.5
    verbose: bool = False
    max_workers: int = 1
    thresholds: BalanceThresholds = field(default_factory=BalanceThresholds)


@dataclass(frozen=True, slots=True)
class HarnessSummary:
    total_simulations: int
    total_rounds: int
    wins_by_archetype: Mapping[str, int]
    win_rate_by_archetype: Mapping[str, float]
    average_revenue_by_archetype: Mapping[str, float]
    bankruptcy_rate_by_archetype: Mapping[str, float]
    degraded_rounds: int = 0


@dataclass(frozen=True, slots=True)
class HarnessOutput:
    config: HarnessConfig
    runs: Tuple[SimulationRun, ...]
    metrics: BalanceMetrics
    diversity: DiversityIndex
    strategic: StrategicHealth
    summary: HarnessSummary
    warnings: Tuple[str, ...]
    failures: Tuple[str, ...]

    @property
    def passed(self) -> bool:
        return not self.warnings and not self.failures

    def report(self) -> str:
        return generate_report(self.metrics, self.diversity, self.strategic, self.config.thresholds)


def assignments_for(archetypes: Sequence[str], team_count: int | None = None) -> List[StrategyAssignment]:
    """One team per archetype, or ``team_count`` teams cycling through them."""

    if not archetypes:
        raise ValueError("At least one archetype is required")
    count = len(archetypes) if team_count is None else team_count
    return [StrategyAssignment(team_id=f"team-{i}", archetype=archetypes[i % len(archetypes)]) for i in range(count)]


def resolve_strategies(
    assignments: Sequence[StrategyAssignment], registry: Mapping[str, Strategy] = STRATEGIES
) -> Dict[str, Strategy]:
    """Check the assignments up front; nothing is simulated if this raises."""

    if not assignments:
        raise ValueError("At least one team assignment is required")
    team_ids = [a.team_id for a in assignments]
    if len(set(team_ids)) != len(team_ids):
        raise ValueError("Team ids must be unique")
    resolved: Dict[str, Strategy] = {}
    for assignment in assignments:
        strategy = registry.get(assignment.archetype)
        if strategy is None:
            raise UnknownArchetypeError(assignment.archetype)
        resolved[assignment.archetype] = strategy
    return resolved


def simulation_seeds(config: HarnessConfig) -> List[str]:
    if config.base_seed:
        return [f"{config.base_seed}-sim-{i}" for i in range(config.simulations)]
    stamp = time.time_ns()
    return [f"random-{stamp}-{i}" for i in range(config.simulations)]


def summarize_runs(
    runs: Sequence[SimulationRun], assignments: Sequence[StrategyAssignment], rounds: int
) -> HarnessSummary:
    archetypes = list(dict.fromkeys(a.archetype for a in assignments))
    wins = {a: 0 for a in archetypes}
    revenue = {a: 0.0 for a in archetypes}
    bankrupt = {a: 0 for a in archetypes}
    count = {a: 0 for a in archetypes}
    for run in runs:
        wins[run.winner_archetype] = wins.get(run.winner_archetype, 0) + 1
        for team in run.team_results:
            revenue[team.archetype] += team.metrics.total_revenue
            count[team.archetype] += 1
            if team.metrics.went_bankrupt:
                bankrupt[team.archetype] += 1
    total = len(runs)
    return HarnessSummary(
        total_simulations=total,
        total_rounds=total * rounds,
        wins_by_archetype=wins,
        win_rate_by_archetype={a: (wins[a] / total if total else 0.0) for a in archetypes},
        average_revenue_by_archetype={a: (revenue[a] / count[a] if count[a] else 0.0) for a in archetypes},
        bankruptcy_rate_by_archetype={a: (bankrupt[a] / count[a] if count[a] else 0.0) for a in archetypes},
        degraded_rounds=sum(run.degraded_rounds for run in runs),
    )


def collect_warnings(
    summary: HarnessSummary, diversity: DiversityIndex, thresholds: BalanceThresholds = BALANCE_THRESHOLDS
) -> List[str]:
    warnings: List[str] = []
    if diversity.has_dominant_strategy:
        warnings.append(
            f"DOMINANT STRATEGY DETECTED: {diversity.dominant_strategy} "
            f"wins >{thresholds.max_win_rate * 100:.0f}% of games"
        )
    for archetype, rate in summary.win_rate_by_archetype.items():
        if rate == 0:
            warnings.append(f"NON-VIABLE STRATEGY: {archetype} never wins")
    for archetype, rate in summary.bankruptcy_rate_by_archetype.items():
        if rate > BANKRUPTCY_WARNING_RATE:
            warnings.append(f"HIGH BANKRUPTCY RATE: {archetype} goes bankrupt {rate * 100:.1f}% of the time")
    if diversity.diversity_score < LOW_DIVERSITY_WARNING:
        warnings.append(
            f"LOW DIVERSITY: Only {diversity.unique_winners} archetypes winning "
            f"(score: {diversity.diversity_score:.2f})"
        )
    return warnings


def _orchestrator_config(config: HarnessConfig) -> OrchestratorConfig:
    return OrchestratorConfig(
        rubber_banding=config.rubber_banding,
        market=MarketConfig(volatility=config.market_volatility),
    )


def run_harness(
    assignments: Sequence[StrategyAssignment],
    config: HarnessConfig | None = None,
    *,
    registry: Mapping[str, Strategy] = STRATEGIES,
    metrics: Metrics | None = None,
) -> HarnessOutput:
    cfg = config or HarnessConfig()
    assignments = tuple(assignments)
    strategies = resolve_strategies(assignments, registry)
    if cfg.simulations < 0 or cfg.rounds < 1:
        raise ValueError("simulations must be >= 0 and rounds >= 1")
    seeds = simulation_seeds(cfg)

    def _one(seed: str) -> SimulationRun:
        # Each run builds its own orchestrator config; nothing mutable is shared.
        return run_simulation(
            seed, assignments, strategies, rounds=cfg.rounds, orchestrator_cfg=_orchestrator_config(cfg)
        )

    if cfg.max_workers > 1 and len(seeds) > 1:
        with ThreadPoolExecutor(max_workers=cfg.max_workers) as executor:
            futures = [executor.submit(_one, seed) for seed in seeds]
            runs = [future.result() for future in futures]
    else:
        runs = [_one(seed) for seed in seeds]

    if metrics is not None:
        for index, run in enumerate(runs):
            metrics.inc("harness.simulations")
            metrics.inc("harness.rounds", len(run.rounds))
            metrics.inc("harness.degraded_rounds", run.degraded_rounds)
            metrics.inc("harness.bankruptcies", sum(1 for t in run.team_results if t.metrics.went_bankrupt))
            winner = next(t for t in run.team_results if t.team_id == run.winner_id)
            metrics.topk_add(
                "harness.top_winning_revenue",
                run.seed,
                winner.metrics.total_revenue,
                payload={"archetype": run.winner_archetype},
            )
            if cfg.verbose and index % 100 == 0:
                record_event(metrics, {"type": "HARNESS_PROGRESS", "completed": index + 1, "total": len(runs)})

    balance = compute_balance_metrics(runs, cfg.thresholds)
    diversity = compute_diversity(
        [run.winner_archetype for run in runs],
        [a.archetype for a in assignments],
        cfg.thresholds,
    )
    strategic = compute_strategic_health(runs, diversity, cfg.thresholds)
    summary = summarize_runs(runs, assignments, cfg.rounds)
    warnings = collect_warnings(summary, diversity, cfg.thresholds)
    _, failures = passes_balance_check(balance, diversity, cfg.thresholds)

    if metrics is not None:
        metrics.set_gauge("harness.diversity_score", diversity.diversity_score)
        metrics.set_gauge("harness.revenue_spread", balance.revenue_spread)

    return HarnessOutput(
        config=cfg,
        runs=tuple(runs),
        metrics=balance,
        diversity=diversity,
        strategic=strategic,
        summary=summary,
        warnings=tuple(warnings),
        failures=tuple(failures),
    )


def quick_balance_check(
    archetypes: Sequence[str] | None = None,
    simulations: int = 100,
    *,
    config: HarnessConfig | None = None,
) -> Tuple[bool, List[str]]:
    """Run every archetype against each other once per simulation."""

    names = list(archetypes) if archetypes is not None else list(STRATEGIES)
    base = config or HarnessConfig()
    cfg = HarnessConfig(
        simulations=simulations,
        rounds=base.rounds,
        team_count=len(names),
        base_seed=base.base_seed,
        rubber_banding=base.rubber_banding,
        market_volatility=base.market_volatility,
        verbose=False,
        max_workers=base.max_workers,
        thresholds=base.thresholds,
    )
    output = run_harness(assignments_for(names), cfg)
    return not output.warnings, list(output.warnings)


def output_summary(output: HarnessOutput) -> Dict[str, Any]:
    """Machine-readable summary without per-round history."""

    return {
        "config": asdict(output.config),
        "passed": output.passed,
        "metrics": asdict(output.metrics),
        "diversity": {
            "unique_winners": output.diversity.unique_winners,
            "win_distribution": dict(output.diversity.win_distribution),
            "win_counts": dict(output.diversity.win_counts),
            "has_dominant_strategy": output.diversity.has_dominant_strategy,
            "dominant_strategy": output.diversity.dominant_strategy,
            "diversity_score": output.diversity.diversity_score,
        },
        "strategic": asdict(output.strategic),
        "summary": {
            "total_simulations": output.summary.total_simulations,
            "total_rounds": output.summary.total_rounds,
            "degraded_rounds": output.summary.degraded_rounds,
            "wins_by_archetype": dict(output.summary.wins_by_archetype),
            "win_rate_by_archetype": dict(output.summary.win_rate_by_archetype),
            "average_revenue_by_archetype": dict(output.summary.average_revenue_by_archetype),
            "bankruptcy_rate_by_archetype": dict(output.summary.bankruptcy_rate_by_archetype),
        },
        "warnings": list(output.warnings),
        "failures": list(output.failures),
        "winners": [run.winner_archetype for run in output.runs],
    }


__all__ = [
    "HarnessConfig",
    "HarnessOutput",
    "HarnessSummary",
    "assignments_for",
    "collect_warnings",
    "output_summary",
    "quick_balance_check",
    "resolve_strategies",
    "run_harness",
    "simulation_seeds",
    "summarize_runs",
]
