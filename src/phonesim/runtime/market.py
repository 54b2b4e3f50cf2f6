"""Competitive market allocation.

Every team is scored per segment on price, quality, brand, ESG and features
using that segment's weight profile. Scores become shares through a softmax
with a fixed temperature; from a configured round onward a catch-up
correction nudges trailing teams up and leading teams down. Units and
revenue follow from segment demand and the share.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

from phonesim.runtime import constants as C
from phonesim.runtime.rng_context import RNGContext
from phonesim.runtime.state import MarketState, Product, SegmentDemand, TeamState


@dataclass(slots=True)
class MarketConfig:
    softmax_temperature: float = 10.0
    rubber_band_start_round: int = 3
    rubber_band_trailing_boost: float = 1.15
    rubber_band_leading_penalty: float = 0.92
    price_floor_penalty_threshold: float = 0.15
    price_floor_penalty_max: float = 0.30
    quality_cap: float = 1.3
    feature_cap: float = 1.3
    esg_ceiling: float = 1000.0
    esg_penalty_threshold: float = 300.0
    confidence_baseline: float = 75.0
    inflation_damping: float = 0.5
    noise_low: float = 0.95
    noise_span: float = 0.10
    volatility: float = 0.5


@dataclass(frozen=True, slots=True)
class SegmentScore:
    price: float = 0.0
    quality: float = 0.0
    brand: float = 0.0
    esg: float = 0.0
    features: float = 0.0
    total: float = 0.0
    eligible: bool = False


@dataclass(slots=True)
class AllocationResult:
    demand: Dict[str, int] = field(default_factory=dict)
    scores: Dict[str, Dict[str, SegmentScore]] = field(default_factory=dict)
    shares: Dict[str, Dict[str, float]] = field(default_factory=dict)
    units: Dict[str, Dict[str, int]] = field(default_factory=dict)
    revenue_by_segment: Dict[str, Dict[str, float]] = field(default_factory=dict)
    revenue: Dict[str, float] = field(default_factory=dict)
    esg_penalty: Dict[str, float] = field(default_factory=dict)
    rubber_band: Dict[str, float] = field(default_factory=dict)
    rubber_banding_applied: bool = False


@dataclass(frozen=True, slots=True)
class TeamRanking:
    team_id: str
    rank: int
    eps_rank: int
    share_rank: int
    revenue: float
    total_share: float


def segment_demand(
    segment: str, demand: SegmentDemand, market: MarketState, noise_draw: float, config: MarketConfig
) -> int:
    factor = (
        (1.0 + market.gdp_growth / 100.0)
        * (market.consumer_confidence / config.confidence_baseline)
        * (1.0 - market.inflation / 100.0 * config.inflation_damping)
        * (1.0 + demand.growth_rate)
        * (config.noise_low + noise_draw * config.noise_span)
    )
    return max(0, int(math.floor(demand.total_demand * factor)))


def calculate_demand(market: MarketState, rng: RNGContext, config: MarketConfig | None = None) -> Dict[str, int]:
    cfg = config or MarketConfig()
    result: Dict[str, int] = {}
    for segment in C.SEGMENTS:
        demand = market.demand_by_segment.get(segment)
        if demand is None:
            result[segment] = 0
            continue
        result[segment] = segment_demand(segment, demand, market, rng.rand("market"), cfg)
    return result


def _diminishing(ratio: float, cap: float) -> float:
    if ratio <= 1.0:
        return max(0.0, ratio)
    return min(cap, 1.0 + math.sqrt(ratio - 1.0) * 0.5)


def price_score(price: float, quality: float, demand: SegmentDemand, weight: float, config: MarketConfig) -> float:
    adjusted_max = demand.price_max * (1.0 + quality * 0.002)
    width = adjusted_max - demand.price_min
    if width <= 0:
        position = 0.5
    else:
        position = max(0.0, (adjusted_max - price) / width)
    multiplier = 1.0
    threshold = demand.price_min * config.price_floor_penalty_threshold
    below = demand.price_min - price
    if price < demand.price_min and below > threshold and threshold > 0:
        scale = min(1.0, (below - threshold) / threshold)
        multiplier = 1.0 - scale * config.price_floor_penalty_max
    return min(1.0, position) * weight * multiplier


def quality_score(quality: float, expectation: float, weight: float, cap: float) -> float:
    if expectation <= 0:
        return 0.0
    return _diminishing(quality / expectation, cap) * weight


def feature_score(features: float, weight: float, cap: float) -> float:
    # features are rated against the absolute 0-100 scale, not the segment
    return _diminishing(features / 100.0, cap) * weight


def score_product(
    product: Product | None,
    state: TeamState,
    segment: str,
    market: MarketState,
    config: MarketConfig | None = None,
) -> SegmentScore:
    cfg = config or MarketConfig()
    demand = market.demand_by_segment.get(segment)
    if product is None or demand is None or product.price <= 0:
        return SegmentScore()
    w_price, w_quality, w_brand, w_esg, w_features = C.SEGMENT_WEIGHTS[segment]
    expectation = C.QUALITY_EXPECTATIONS[segment]
    price = price_score(product.price, product.quality, demand, w_price, cfg)
    quality = quality_score(product.quality, expectation, w_quality, cfg.quality_cap)
    brand = math.sqrt(max(0.0, state.brand_value)) * w_brand
    esg = (max(0.0, state.esg_score) / cfg.esg_ceiling) * market.pressures.sustainability_premium * w_esg
    features = feature_score(product.features, w_features, cfg.feature_cap)
    total = price + quality + brand + esg + features + product.quality * 0.001
    return SegmentScore(
        price=price,
        quality=quality,
        brand=brand,
        esg=esg,
        features=features,
        total=total,
        eligible=True,
    )


def softmax_shares(scores: Sequence[float | None], temperature: float) -> List[float]:
    """Shares for one segment; ``None`` or non-positive scores get nothing.

    With no eligible entry every share is zero.
    """

    eligible = [s for s in scores if s is not None and s > 0]
    if not eligible:
        return [0.0 for _ in scores]
    top = max(eligible)
    weights = [
        math.exp((s - top) / temperature) if s is not None and s > 0 else 0.0
        for s in scores
    ]
    total = sum(weights)
    if total <= 0:
        return [0.0 for _ in scores]
    return [w / total for w in weights]


def rubber_band(
    shares: Mapping[str, Mapping[str, float]], config: MarketConfig | None = None
) -> Tuple[Dict[str, Dict[str, float]], Dict[str, float]]:
    """Boost teams well below the average share and trim those far above it.

    Each segment is scaled back down afterwards if the corrected shares would
    exceed one in total.
    """

    cfg = config or MarketConfig()
    team_share: Dict[str, float] = {}
    for team_id, by_segment in shares.items():
        values = list(by_segment.values())
        team_share[team_id] = sum(values) / len(values) if values else 0.0
    average = sum(team_share.values()) / len(team_share) if team_share else 0.0

    multipliers: Dict[str, float] = {}
    adjusted: Dict[str, Dict[str, float]] = {}
    for team_id, by_segment in shares.items():
        multiplier = 1.0
        if average > 0:
            if team_share[team_id] < average * 0.5:
                multiplier = cfg.rubber_band_trailing_boost
            elif team_share[team_id] > average * 2.0:
                multiplier = cfg.rubber_band_leading_penalty
        multipliers[team_id] = multiplier
        adjusted[team_id] = {segment: share * multiplier for segment, share in by_segment.items()}

    for segment in C.SEGMENTS:
        total = sum(adjusted[team_id].get(segment, 0.0) for team_id in adjusted)
        if total > 1.0:
            for team_id in adjusted:
                if segment in adjusted[team_id]:
                    adjusted[team_id][segment] /= total
    return adjusted, multipliers


def esg_penalty_rate(esg_score: float, config: MarketConfig | None = None) -> float:
    cfg = config or MarketConfig()
    if esg_score >= cfg.esg_penalty_threshold:
        return 0.0
    return 0.08 - (max(0.0, esg_score) / cfg.esg_penalty_threshold) * 0.07


def allocate_market(
    teams: Sequence[Tuple[str, TeamState]],
    market: MarketState,
    rng: RNGContext,
    *,
    round_number: int,
    rubber_banding: bool = True,
    config: MarketConfig | None = None,
) -> AllocationResult:
    cfg = config or MarketConfig()
    result = AllocationResult()
    result.demand = calculate_demand(market, rng, cfg)
    team_ids = [team_id for team_id, _ in teams]

    for team_id, state in teams:
        result.scores[team_id] = {
            segment: score_product(state.product_for_segment(segment), state, segment, market, cfg)
            for segment in C.SEGMENTS
        }
        result.shares[team_id] = {}

    for segment in C.SEGMENTS:
        raw = [
            result.scores[team_id][segment].total if result.scores[team_id][segment].eligible else None
            for team_id in team_ids
        ]
        for team_id, share in zip(team_ids, softmax_shares(raw, cfg.softmax_temperature)):
            result.shares[team_id][segment] = share

    if rubber_banding and round_number >= cfg.rubber_band_start_round and len(teams) > 1:
        result.shares, result.rubber_band = rubber_band(result.shares, cfg)
        result.rubber_banding_applied = any(m != 1.0 for m in result.rubber_band.values())
    else:
        result.rubber_band = {team_id: 1.0 for team_id in team_ids}

    for team_id, state in teams:
        units: Dict[str, int] = {}
        revenue: Dict[str, float] = {}
        for segment in C.SEGMENTS:
            product = state.product_for_segment(segment)
            share = result.shares[team_id][segment]
            sold = int(math.floor(result.demand[segment] * share)) if product is not None else 0
            units[segment] = sold
            revenue[segment] = sold * product.price if product is not None else 0.0
        gross = sum(revenue.values())
        penalty = gross * esg_penalty_rate(state.esg_score, cfg)
        result.units[team_id] = units
        result.revenue_by_segment[team_id] = revenue
        result.esg_penalty[team_id] = penalty
        result.revenue[team_id] = gross - penalty
    return result


def rank_teams(
    teams: Sequence[Tuple[str, TeamState]], allocation: AllocationResult
) -> List[TeamRanking]:
    """Rank by revenue, EPS and total share; ties keep input order."""

    order = [team_id for team_id, _ in teams]
    eps = {team_id: state.eps for team_id, state in teams}
    total_share = {team_id: sum(allocation.shares.get(team_id, {}).values()) for team_id in order}
    revenue = {team_id: allocation.revenue.get(team_id, 0.0) for team_id in order}

    def _ranks(values: Mapping[str, float]) -> Dict[str, int]:
        ranked = sorted(order, key=lambda tid: -values[tid])
        return {team_id: i + 1 for i, team_id in enumerate(ranked)}

    by_revenue = _ranks(revenue)
    by_eps = _ranks(eps)
    by_share = _ranks(total_share)
    rankings = [
        TeamRanking(
            team_id=team_id,
            rank=by_revenue[team_id],
            eps_rank=by_eps[team_id],
            share_rank=by_share[team_id],
            revenue=revenue[team_id],
            total_share=total_share[team_id],
        )
        for team_id in order
    ]
    return sorted(rankings, key=lambda r: r.rank)


__all__ = [
    "AllocationResult",
    "MarketConfig",
    "SegmentScore",
    "TeamRanking",
    "allocate_market",
    "calculate_demand",
    "esg_penalty_rate",
    "feature_score",
    "price_score",
    "quality_score",
    "rank_teams",
    "rubber_band",
    "score_product",
    "segment_demand",
    "softmax_shares",
]
