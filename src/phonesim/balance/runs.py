"""A single seeded playthrough driven by scripted archetypes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

from phonesim.balance.strategies import Strategy
from phonesim.runtime.orchestrator import OrchestratorConfig, RoundInput, TeamInput, process_round
from phonesim.runtime.state import MarketState, TeamState, create_initial_market_state, create_initial_team_state


@dataclass(frozen=True, slots=True)
class StrategyAssignment:
    team_id: str
    archetype: str


@dataclass(frozen=True, slots=True)
class TeamRunMetrics:
    total_revenue: float
    total_net_income: float
    average_market_share: float
    peak_cash: float
    min_cash: float
    went_bankrupt: bool
    bankruptcy_round: int | None = None


@dataclass(frozen=True, slots=True)
class TeamRunResult:
    team_id: str
    archetype: str
    final_state: TeamState
    final_rank: int
    metrics: TeamRunMetrics


@dataclass(frozen=True, slots=True)
class RoundRecord:
    round_number: int
    team_states: Mapping[str, TeamState]
    market_state: MarketState
    degraded_teams: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SimulationRun:
    seed: str
    team_results: Tuple[TeamRunResult, ...]
    winner_id: str
    winner_archetype: str
    rounds: Tuple[RoundRecord, ...]
    rankings: Tuple[Tuple[str, int, str], ...]

    @property
    def degraded_rounds(self) -> int:
        return sum(len(record.degraded_teams) for record in self.rounds)

    @property
    def has_bankruptcy(self) -> bool:
        return any(result.metrics.went_bankrupt for result in self.team_results)


def team_run_metrics(team_id: str, rounds: Sequence[RoundRecord]) -> TeamRunMetrics:
    total_revenue = 0.0
    total_net_income = 0.0
    total_share = 0.0
    peak_cash = -math.inf
    min_cash = math.inf
    bankruptcy_round: int | None = None
    seen = 0
    for record in rounds:
        state = record.team_states.get(team_id)
        if state is None:
            continue
        seen += 1
        total_revenue += state.revenue
        total_net_income += state.net_income
        shares = list(state.market_share.values())
        total_share += sum(shares) / max(1, len(shares))
        peak_cash = max(peak_cash, state.cash)
        min_cash = min(min_cash, state.cash)
        if state.cash < 0 and bankruptcy_round is None:
            bankruptcy_round = record.round_number
    return TeamRunMetrics(
        total_revenue=total_revenue,
        total_net_income=total_net_income,
        average_market_share=total_share / seen if seen else 0.0,
        peak_cash=peak_cash if seen else 0.0,
        min_cash=min_cash if seen else 0.0,
        went_bankrupt=bankruptcy_round is not None,
        bankruptcy_round=bankruptcy_round,
    )


def run_simulation(
    seed: str,
    assignments: Sequence[StrategyAssignment],
    strategies: Mapping[str, Strategy],
    *,
    rounds: int,
    orchestrator_cfg: OrchestratorConfig | None = None,
) -> SimulationRun:
    """Play ``rounds`` rounds from the default starting state.

    Each round's engine seed is ``{seed}-round-{n}``. The winner is the team
    with the highest total revenue; exact ties go to the team listed first.
    """

    cfg = orchestrator_cfg or OrchestratorConfig()
    states: Dict[str, TeamState] = {a.team_id: create_initial_team_state() for a in assignments}
    market = create_initial_market_state()
    history: List[RoundRecord] = []

    for number in range(1, rounds + 1):
        teams = tuple(
            TeamInput(
                team_id=a.team_id,
                state=states[a.team_id],
                decisions=strategies[a.archetype](states[a.team_id], market, number),
            )
            for a in assignments
        )
        output = process_round(
            RoundInput(round_number=number, teams=teams, market_state=market, seed=f"{seed}-round-{number}"),
            cfg,
        )
        states = output.new_states
        history.append(
            RoundRecord(
                round_number=number,
                team_states=dict(states),
                market_state=output.market_state,
                degraded_teams=tuple(r.team_id for r in output.results if r.degraded),
            )
        )
        market = output.market_state

    metrics = {a.team_id: team_run_metrics(a.team_id, history) for a in assignments}
    # sorted() is stable, so equal revenue keeps input order.
    ordered = sorted(assignments, key=lambda a: -metrics[a.team_id].total_revenue)
    rank = {a.team_id: i + 1 for i, a in enumerate(ordered)}
    results = tuple(
        TeamRunResult(
            team_id=a.team_id,
            archetype=a.archetype,
            final_state=states[a.team_id],
            final_rank=rank[a.team_id],
            metrics=metrics[a.team_id],
        )
        for a in assignments
    )
    winner = ordered[0]
    return SimulationRun(
        seed=seed,
        team_results=results,
        winner_id=winner.team_id,
        winner_archetype=winner.archetype,
        rounds=tuple(history),
        rankings=tuple((a.team_id, rank[a.team_id], a.archetype) for a in ordered),
    )


__all__ = [
    "RoundRecord",
    "SimulationRun",
    "StrategyAssignment",
    "TeamRunMetrics",
    "TeamRunResult",
    "run_simulation",
    "team_run_metrics",
]
