"""Balance metrics over a set of simulation runs.

``BalanceMetrics`` summarises outcomes (revenue, spread, bankruptcy,
closeness), ``DiversityIndex`` measures how evenly wins spread across
archetypes, and ``StrategicHealth`` looks at how runs unfold over time.
``passes_balance_check`` turns the first two into human-readable failures.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from phonesim.balance.runs import SimulationRun


@dataclass(frozen=True, slots=True)
class BalanceThresholds:
    max_win_rate: float = 0.6
    min_viable_strategies: int = 3
    max_bankruptcy_rate: float = 0.05
    revenue_spread_min: float = 1.5
    revenue_spread_max: float = 3.0
    min_diversity_score: float = 0.7
    min_competitiveness: float = 0.3
    max_snowball_risk: float = 0.4
    close_game_margin: float = 1.2


BALANCE_THRESHOLDS = BalanceThresholds()


@dataclass(frozen=True, slots=True)
class BalanceMetrics:
    average_revenue: float
    revenue_spread: float
    bankruptcy_rate: float
    competitiveness: float


@dataclass(frozen=True, slots=True)
class DiversityIndex:
    unique_winners: int
    win_distribution: Mapping[str, float] = field(default_factory=dict)
    win_counts: Mapping[str, int] = field(default_factory=dict)
    has_dominant_strategy: bool = False
    dominant_strategy: str | None = None
    diversity_score: float = 0.0


@dataclass(frozen=True, slots=True)
class StrategicHealth:
    has_strategy_variety: bool
    snowball_risk: float
    comeback_potential: float
    decision_impact: float


def _team_revenues(run: SimulationRun) -> List[float]:
    return [team.metrics.total_revenue for team in run.team_results]


def is_close_game(revenues: Sequence[float], margin: float = BALANCE_THRESHOLDS.close_game_margin) -> bool:
    if len(revenues) < 2:
        return False
    ordered = sorted(revenues, reverse=True)
    return ordered[0] < ordered[1] * margin


def compute_balance_metrics(
    runs: Sequence[SimulationRun], thresholds: BalanceThresholds = BALANCE_THRESHOLDS
) -> BalanceMetrics:
    revenues = [value for run in runs for value in _team_revenues(run)]
    if not runs or not revenues:
        return BalanceMetrics(average_revenue=0.0, revenue_spread=0.0, bankruptcy_rate=0.0, competitiveness=0.0)
    bankrupt_runs = sum(1 for run in runs if run.has_bankruptcy)
    close = sum(1 for run in runs if is_close_game(_team_revenues(run), thresholds.close_game_margin))
    return BalanceMetrics(
        average_revenue=sum(revenues) / len(revenues),
        revenue_spread=max(revenues) / max(1.0, min(revenues)),
        bankruptcy_rate=bankrupt_runs / len(runs),
        competitiveness=close / len(runs),
    )


def diversity_score(wins: Mapping[str, int]) -> float:
    """Shannon entropy of the win distribution over its maximum, in [0, 1].

    Zero wins, or a single archetype, scores 0.
    """

    total = sum(wins.values())
    if total <= 0:
        return 0.0
    entropy = 0.0
    for count in wins.values():
        if count > 0:
            p = count / total
            entropy -= p * math.log2(p)
    max_entropy = math.log2(len(wins)) if len(wins) > 1 else 0.0
    if max_entropy <= 0:
        return 0.0
    return max(0.0, min(1.0, entropy / max_entropy))


def _unique(items: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)


def compute_diversity(
    winners: Sequence[str],
    archetypes: Sequence[str],
    thresholds: BalanceThresholds = BALANCE_THRESHOLDS,
) -> DiversityIndex:
    names = _unique(list(archetypes) + list(winners))
    wins = {name: 0 for name in names}
    for winner in winners:
        wins[winner] += 1
    total = sum(wins.values())
    distribution = {name: (wins[name] / total if total else 0.0) for name in names}
    dominant = next(
        (name for name in names if total and wins[name] / total > thresholds.max_win_rate),
        None,
    )
    return DiversityIndex(
        unique_winners=sum(1 for name in names if wins[name] > 0),
        win_distribution=distribution,
        win_counts=wins,
        has_dominant_strategy=dominant is not None,
        dominant_strategy=dominant,
        diversity_score=diversity_score(wins),
    )


def _leader_after(run: SimulationRun, last_round: int) -> List[str]:
    """Team ids ordered by cumulative revenue through ``last_round``."""

    totals: Dict[str, float] = {team.team_id: 0.0 for team in run.team_results}
    for record in run.rounds:
        if record.round_number > last_round:
            break
        for team_id, state in record.team_states.items():
            totals[team_id] = totals.get(team_id, 0.0) + state.revenue
    order = [team.team_id for team in run.team_results]
    return sorted(order, key=lambda tid: -totals[tid])


def revenue_variance_share(groups: Mapping[str, Sequence[float]]) -> float:
    values = [v for bucket in groups.values() for v in bucket]
    if len(values) < 2:
        return 0.0
    mean = sum(values) / len(values)
    total = sum((v - mean) ** 2 for v in values)
    if total <= 0:
        return 0.0
    between = sum(len(bucket) * ((sum(bucket) / len(bucket)) - mean) ** 2 for bucket in groups.values() if bucket)
    return max(0.0, min(1.0, between / total))


def compute_strategic_health(
    runs: Sequence[SimulationRun],
    diversity: DiversityIndex,
    thresholds: BalanceThresholds = BALANCE_THRESHOLDS,
) -> StrategicHealth:
    snowball = 0
    comeback = 0
    counted = 0
    groups: Dict[str, List[float]] = {}
    for run in runs:
        for team in run.team_results:
            groups.setdefault(team.archetype, []).append(team.metrics.total_revenue)
        if not run.rounds or len(run.team_results) < 2:
            continue
        counted += 1
        if _leader_after(run, run.rounds[0].round_number)[0] == run.winner_id:
            snowball += 1
        midpoint = run.rounds[(len(run.rounds) - 1) // 2].round_number
        standing = _leader_after(run, midpoint)
        if standing.index(run.winner_id) >= len(standing) / 2:
            comeback += 1
    return StrategicHealth(
        has_strategy_variety=diversity.unique_winners >= thresholds.min_viable_strategies,
        snowball_risk=snowball / counted if counted else 0.0,
        comeback_potential=comeback / counted if counted else 0.0,
        decision_impact=revenue_variance_share(groups),
    )


def passes_balance_check(
    metrics: BalanceMetrics,
    diversity: DiversityIndex,
    thresholds: BalanceThresholds = BALANCE_THRESHOLDS,
) -> Tuple[bool, List[str]]:
    failures: List[str] = []
    if diversity.has_dominant_strategy:
        failures.append(
            f"Dominant strategy detected: {diversity.dominant_strategy} "
            f"(>{thresholds.max_win_rate * 100:.0f}% win rate)"
        )
    if diversity.unique_winners < thresholds.min_viable_strategies:
        failures.append(
            f"Insufficient strategy variety: only {diversity.unique_winners} viable strategies "
            f"(min: {thresholds.min_viable_strategies})"
        )
    if metrics.bankruptcy_rate > thresholds.max_bankruptcy_rate:
        failures.append(
            f"Bankruptcy rate too high: {metrics.bankruptcy_rate * 100:.1f}% "
            f"(max: {thresholds.max_bankruptcy_rate * 100:.0f}%)"
        )
    if metrics.revenue_spread < thresholds.revenue_spread_min:
        failures.append(f"Revenue spread too low: {metrics.revenue_spread:.2f}x (strategies may be too similar)")
    if metrics.revenue_spread > thresholds.revenue_spread_max:
        failures.append(f"Revenue spread too high: {metrics.revenue_spread:.2f}x (imbalanced outcomes)")
    if diversity.diversity_score < thresholds.min_diversity_score:
        failures.append(
            f"Diversity score too low: {diversity.diversity_score:.2f} (min: {thresholds.min_diversity_score})"
        )
    if metrics.competitiveness < thresholds.min_competitiveness:
        failures.append(
            f"Competitiveness too low: {metrics.competitiveness * 100:.1f}% close games "
            f"(min: {thresholds.min_competitiveness * 100:.0f}%)"
        )
    return not failures, failures


__all__ = [
    "BALANCE_THRESHOLDS",
    "BalanceMetrics",
    "BalanceThresholds",
    "DiversityIndex",
    "StrategicHealth",
    "compute_balance_metrics",
    "compute_diversity",
    "compute_strategic_health",
    "diversity_score",
    "is_close_game",
    "passes_balance_check",
    "revenue_variance_share",
]
