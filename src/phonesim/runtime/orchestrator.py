"""Round orchestration.

``process_round`` runs every team's department pipeline, allocates the
market jointly, folds sales back into each team's books and advances the
market. It is pure: all randomness comes from contexts derived from the
round's seed, and inputs are never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Sequence, Tuple

from phonesim.runtime import constants as C
from phonesim.runtime.decisions import EMPTY_DECISIONS, DecisionBundle
from phonesim.runtime.market import AllocationResult, MarketConfig, TeamRanking, allocate_market, rank_teams
from phonesim.runtime.market_drift import MARKET_EVENT_TYPES, MarketEvent, next_market_state
from phonesim.runtime.modules import DEFAULT_PIPELINE, ModuleProcessor
from phonesim.runtime.rng_context import RNGConfig, RNGContext, market_context
from phonesim.runtime.state import MarketState, TeamState, state_hash
from phonesim.runtime.telemetry import Metrics, record_event


@dataclass(slots=True)
class OrchestratorConfig:
    rubber_banding: bool = True
    market: MarketConfig = field(default_factory=MarketConfig)
    rng: RNGConfig = field(default_factory=RNGConfig)
    pipeline: Tuple[Tuple[str, ModuleProcessor], ...] = DEFAULT_PIPELINE


@dataclass(frozen=True, slots=True)
class TeamInput:
    team_id: str
    state: TeamState
    decisions: DecisionBundle = EMPTY_DECISIONS


@dataclass(frozen=True, slots=True)
class RoundInput:
    round_number: int
    teams: Tuple[TeamInput, ...]
    market_state: MarketState
    seed: str
    events: Tuple[MarketEvent, ...] = ()


@dataclass(frozen=True, slots=True)
class TeamRoundResult:
    team_id: str
    state: TeamState
    revenue: float
    costs: float
    net_income: float
    units_sold: Mapping[str, int]
    market_share: Mapping[str, float]
    rank: int = 0
    degraded: bool = False
    errors: Tuple[str, ...] = ()
    messages: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RoundAudit:
    seed: str
    round_number: int
    seed_bundles: Mapping[str, Mapping[str, int]]
    state_hashes: Mapping[str, str]
    market_draws: Tuple[Tuple[str, int], ...] = ()
    market_rng_signature: str = ""
    engine_version: str = C.ENGINE_VERSION
    schema_version: str = C.SCHEMA_VERSION


@dataclass(frozen=True, slots=True)
class RoundOutput:
    round_number: int
    results: Tuple[TeamRoundResult, ...]
    market_state: MarketState
    rankings: Tuple[TeamRanking, ...]
    messages: Tuple[str, ...]
    audit: RoundAudit
    allocation: AllocationResult | None = None

    def result_for(self, team_id: str) -> TeamRoundResult:
        for result in self.results:
            if result.team_id == team_id:
                return result
        raise KeyError(team_id)

    @property
    def new_states(self) -> Dict[str, TeamState]:
        return {result.team_id: result.state for result in self.results}


@dataclass(slots=True)
class _Processed:
    team_id: str
    state: TeamState
    costs: float
    messages: List[str]
    errors: List[str]
    ctx: RNGContext

    @property
    def degraded(self) -> bool:
        return bool(self.errors)


def run_pipeline(
    team: TeamInput,
    market: MarketState,
    ctx: RNGContext,
    pipeline: Sequence[Tuple[str, ModuleProcessor]] = DEFAULT_PIPELINE,
) -> _Processed:
    """Thread one team's state through every department in order.

    A hard failure in any department discards the whole round's department
    effects for this team and records the error.
    """

    state = team.state
    costs = 0.0
    messages: List[str] = []
    for name, processor in pipeline:
        try:
            result = processor(state, team.decisions, market, ctx.round_number, ctx.stream(name))
        except Exception as exc:
            error = f"{name} failed: {type(exc).__name__}: {exc}"
            return _Processed(
                team_id=team.team_id,
                state=team.state,
                costs=0.0,
                messages=messages + [f"Round degraded: {error}"],
                errors=[error],
                ctx=ctx,
            )
        state = result.state
        costs += result.costs
        messages.extend(f"[{name}] {msg}" for msg in result.messages)
    return _Processed(team_id=team.team_id, state=state, costs=costs, messages=messages, errors=[], ctx=ctx)


def market_cap_for(state: TeamState) -> float:
    if state.eps > 0:
        cap = state.eps * state.shares_issued * C.TARGET_PE_RATIO
    else:
        cap = state.revenue * C.PRICE_TO_SALES_RATIO
    book = state.total_assets - state.total_liabilities
    return max(book * 0.5, state.total_assets * 0.3, cap)


def fold_sales(
    state: TeamState, team_id: str, allocation: AllocationResult, module_costs: float
) -> Tuple[TeamState, float]:
    """Apply this round's sales to a processed state; returns (state, total costs)."""

    units = dict(allocation.units.get(team_id, {}))
    shares = dict(allocation.shares.get(team_id, {}))
    revenue = allocation.revenue.get(team_id, 0.0)
    cogs = 0.0
    for segment, sold in units.items():
        product = state.product_for_segment(segment)
        if product is not None:
            cogs += sold * product.unit_cost
    total_costs = module_costs + cogs
    net_income = revenue - total_costs
    cash = state.cash + revenue - cogs
    eps = net_income / state.shares_issued if state.shares_issued > 0 else 0.0
    total_assets = cash + len(state.factories) * C.NEW_FACTORY_COST
    folded = replace(
        state,
        cash=cash,
        revenue=revenue,
        cogs=cogs,
        net_income=net_income,
        eps=eps,
        market_share=shares,
        units_sold=units,
        total_assets=total_assets,
        shareholders_equity=total_assets - state.total_liabilities,
    )
    market_cap = market_cap_for(folded)
    share_price = market_cap / folded.shares_issued if folded.shares_issued > 0 else 0.0
    return replace(folded, market_cap=market_cap, share_price=share_price), total_costs


def _check_events(events: Sequence[MarketEvent]) -> None:
    for event in events:
        if event.type not in MARKET_EVENT_TYPES:
            raise ValueError(f"Unknown market event '{event.type}'")


def process_round(
    round_input: RoundInput,
    config: OrchestratorConfig | None = None,
    *,
    metrics: Metrics | None = None,
) -> RoundOutput:
    cfg = config or OrchestratorConfig()
    _check_events(round_input.events)
    number = round_input.round_number
    market = round_input.market_state
    summary: List[str] = [f"Round {number} (seed {round_input.seed})"]

    processed: List[_Processed] = []
    for team in round_input.teams:
        ctx = RNGContext(seed=round_input.seed, round_number=number, team_id=team.team_id, config=cfg.rng)
        outcome = run_pipeline(team, market, ctx, cfg.pipeline)
        if outcome.degraded:
            summary.append(f"{team.team_id}: degraded ({'; '.join(outcome.errors)})")
            if metrics is not None:
                metrics.inc("engine.degraded_rounds")
                record_event(metrics, {"type": "ROUND_DEGRADED", "round": number, "team": team.team_id})
        processed.append(outcome)

    # All teams must be processed before the joint allocation.
    market_ctx = market_context(round_input.seed, number, cfg.rng)
    allocation = allocate_market(
        [(p.team_id, p.state) for p in processed],
        market,
        market_ctx,
        round_number=number,
        rubber_banding=cfg.rubber_banding,
        config=cfg.market,
    )
    if allocation.rubber_banding_applied:
        summary.append("Rubber-banding adjustments applied")

    finals: List[Tuple[_Processed, TeamState, float]] = []
    for p in processed:
        final_state, total_costs = fold_sales(p.state, p.team_id, allocation, p.costs)
        finals.append((p, final_state, total_costs))

    rankings = rank_teams([(p.team_id, state) for p, state, _ in finals], allocation)
    rank_of = {r.team_id: r.rank for r in rankings}

    results = tuple(
        TeamRoundResult(
            team_id=p.team_id,
            state=state,
            revenue=state.revenue,
            costs=total_costs,
            net_income=state.net_income,
            units_sold=state.units_sold,
            market_share=state.market_share,
            rank=rank_of[p.team_id],
            degraded=p.degraded,
            errors=tuple(p.errors),
            messages=tuple(p.messages),
        )
        for p, state, total_costs in finals
    )

    new_market = next_market_state(
        market,
        market_ctx,
        volatility=cfg.market.volatility,
        events=round_input.events,
    )
    if rankings:
        summary.append(f"Round {number} complete, leader {rankings[0].team_id}")

    audit = RoundAudit(
        seed=round_input.seed,
        round_number=number,
        seed_bundles={p.team_id: p.ctx.seed_bundle() for p in processed},
        state_hashes={r.team_id: state_hash(r.state) for r in results},
        market_draws=tuple(market_ctx.audit_summary()),
        market_rng_signature=market_ctx.signature(),
    )
    if metrics is not None:
        metrics.inc("engine.rounds")
        metrics.inc("engine.team_rounds", len(results))
    return RoundOutput(
        round_number=number,
        results=results,
        market_state=new_market,
        rankings=tuple(rankings),
        messages=tuple(summary),
        audit=audit,
        allocation=allocation,
    )


__all__ = [
    "OrchestratorConfig",
    "RoundAudit",
    "RoundInput",
    "RoundOutput",
    "TeamInput",
    "TeamRoundResult",
    "fold_sales",
    "market_cap_for",
    "process_round",
    "run_pipeline",
]
