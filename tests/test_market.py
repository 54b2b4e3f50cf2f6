from __future__ import annotations

from dataclasses import replace

import pytest

from phonesim.runtime import constants as C
from phonesim.runtime.market import (
    MarketConfig,
    allocate_market,
    esg_penalty_rate,
    feature_score,
    price_score,
    quality_score,
    rank_teams,
    rubber_band,
    score_product,
    softmax_shares,
)
from phonesim.runtime.rng_context import market_context
from phonesim.runtime.state import MarketPressures, TeamState, create_initial_market_state, create_initial_team_state


def _with_price(state: TeamState, segment: str, price: float) -> TeamState:
    products = tuple(
        replace(p, price=price, list_price=price) if p.segment == segment else p for p in state.products
    )
    return replace(state, products=products)


def _allocate(teams, round_number: int = 1, rubber_banding: bool = True):
    market = create_initial_market_state()
    return allocate_market(
        teams,
        market,
        market_context("alloc-seed", round_number),
        round_number=round_number,
        rubber_banding=rubber_banding,
    )


def test_softmax_shares_sum_to_one_and_follow_score() -> None:
    shares = softmax_shares([10.0, 20.0, None], 10.0)

    assert sum(shares) == pytest.approx(1.0)
    assert shares[1] > shares[0]
    assert shares[2] == 0.0


def test_softmax_with_no_eligible_entry_is_all_zero() -> None:
    assert softmax_shares([None, None], 10.0) == [0.0, 0.0]
    assert softmax_shares([], 10.0) == []


def test_price_below_floor_is_penalized() -> None:
    demand = create_initial_market_state().demand_by_segment[C.BUDGET]
    cfg = MarketConfig()

    at_floor = price_score(100.0, 50.0, demand, 65.0, cfg)
    dumped = price_score(50.0, 50.0, demand, 65.0, cfg)

    assert at_floor == pytest.approx(65.0)
    assert dumped == pytest.approx(65.0 * 0.7)


def test_identical_teams_split_evenly() -> None:
    state = create_initial_team_state()
    result = _allocate([("a", state), ("b", state)])

    for segment in C.SEGMENTS:
        assert result.shares["a"][segment] == pytest.approx(0.5)
        assert result.shares["b"][segment] == pytest.approx(0.5)
    assert result.revenue["a"] == pytest.approx(result.revenue["b"])


def test_shares_never_exceed_one_per_segment() -> None:
    base = create_initial_team_state()
    teams = [
        ("a", base),
        ("b", _with_price(base, C.BUDGET, 280.0)),
        ("c", replace(base, brand_value=0.05)),
        ("d", replace(base, brand_value=0.95, esg_score=800.0)),
    ]
    for round_number in (1, 3, 5):
        result = _allocate(teams, round_number=round_number)
        for segment in C.SEGMENTS:
            total = sum(result.shares[team_id][segment] for team_id, _ in teams)
            assert total <= 1.0 + 1e-9
            units = sum(result.units[team_id][segment] for team_id, _ in teams)
            assert units <= result.demand[segment]


def test_cheaper_product_wins_more_budget_share() -> None:
    base = create_initial_team_state()
    result = _allocate([("cheap", base), ("pricey", _with_price(base, C.BUDGET, 280.0))])

    assert result.shares["cheap"][C.BUDGET] > result.shares["pricey"][C.BUDGET]
    assert result.shares["cheap"][C.GENERAL] == pytest.approx(result.shares["pricey"][C.GENERAL])


def test_segment_without_products_sells_nothing() -> None:
    base = create_initial_team_state()
    retired = replace(
        base,
        products=tuple(replace(p, status="discontinued") if p.segment == C.PROFESSIONAL else p for p in base.products),
    )
    result = _allocate([("a", retired), ("b", retired)])

    assert result.shares["a"][C.PROFESSIONAL] == 0.0
    assert result.units["b"][C.PROFESSIONAL] == 0
    assert result.revenue_by_segment["a"][C.PROFESSIONAL] == 0.0
    assert result.revenue["a"] > 0


def test_rubber_band_adjusts_outliers() -> None:
    shares = {
        "leader": {s: 0.8 for s in C.SEGMENTS},
        "b": {s: 0.1 for s in C.SEGMENTS},
        "c": {s: 0.1 for s in C.SEGMENTS},
    }
    adjusted, multipliers = rubber_band(shares)

    assert multipliers == {"leader": 0.92, "b": 1.15, "c": 1.15}
    assert adjusted["leader"][C.BUDGET] == pytest.approx(0.736)
    assert adjusted["b"][C.BUDGET] == pytest.approx(0.115)


def test_rubber_band_rescales_over_allocated_segments() -> None:
    shares = {
        "small": {s: 0.05 for s in C.SEGMENTS},
        "big": {s: 0.95 for s in C.SEGMENTS},
    }
    adjusted, multipliers = rubber_band(shares)

    assert multipliers["small"] == 1.15
    assert multipliers["big"] == 1.0
    for segment in C.SEGMENTS:
        assert adjusted["small"][segment] + adjusted["big"][segment] == pytest.approx(1.0)


def test_rubber_banding_waits_for_start_round() -> None:
    base = create_initial_team_state()
    weak = replace(
        base,
        brand_value=0.0,
        products=tuple(replace(p, quality=5.0, features=5.0) for p in base.products),
    )
    teams = [("a", base), ("b", base), ("c", base), ("weak", weak)]

    early = _allocate(teams, round_number=2)
    late = _allocate(teams, round_number=3)
    disabled = _allocate(teams, round_number=3, rubber_banding=False)

    assert not early.rubber_banding_applied
    assert set(early.rubber_band.values()) == {1.0}
    assert late.rubber_band["weak"] == 1.15
    assert late.rubber_banding_applied
    assert not disabled.rubber_banding_applied


def test_esg_penalty_rate() -> None:
    assert esg_penalty_rate(100.0) == pytest.approx(0.08 - 100 / 300 * 0.07)
    assert esg_penalty_rate(0.0) == pytest.approx(0.08)
    assert esg_penalty_rate(300.0) == 0.0


def test_rank_teams_keeps_input_order_on_ties() -> None:
    state = create_initial_team_state()
    teams = [("first", state), ("second", state)]
    rankings = rank_teams(teams, _allocate(teams))

    assert [r.team_id for r in rankings] == ["first", "second"]
    assert [r.rank for r in rankings] == [1, 2]


def test_raising_a_score_never_lowers_its_share() -> None:
    previous = 0.0
    for boost in (0.0, 1.0, 5.0, 20.0, 60.0):
        share = softmax_shares([10.0 + boost, 12.0, 15.0], 10.0)[0]
        assert share >= previous
        previous = share


def test_better_product_gains_share() -> None:
    base = create_initial_team_state()
    improved = replace(
        base,
        products=tuple(replace(p, quality=70.0) if p.segment == C.BUDGET else p for p in base.products),
    )
    plain = _allocate([("a", base), ("b", base)])
    lifted = _allocate([("a", improved), ("b", base)])

    assert lifted.shares["a"][C.BUDGET] > plain.shares["a"][C.BUDGET]
    assert lifted.shares["b"][C.BUDGET] < plain.shares["b"][C.BUDGET]


def test_quality_bonus_diminishes_and_caps() -> None:
    assert quality_score(25.0, 50.0, 10.0, 1.3) == pytest.approx(5.0)
    assert quality_score(50.0, 50.0, 10.0, 1.3) == pytest.approx(10.0)
    # 20% above expectation earns only sqrt(0.2) / 2 extra
    assert quality_score(60.0, 50.0, 10.0, 1.3) == pytest.approx(10.0 * (1.0 + 0.2 ** 0.5 * 0.5))
    assert quality_score(100.0, 50.0, 10.0, 1.3) == pytest.approx(13.0)
    assert quality_score(50.0, 0.0, 10.0, 1.3) == 0.0


def test_features_rated_on_absolute_scale() -> None:
    assert feature_score(50.0, 10.0, 1.3) == pytest.approx(5.0)
    assert feature_score(100.0, 10.0, 1.3) == pytest.approx(10.0)
    assert feature_score(150.0, 10.0, 1.3) == pytest.approx(13.0)


def test_brand_and_esg_scoring() -> None:
    market = create_initial_market_state()
    state = create_initial_team_state()
    product = state.product_for_segment(C.BUDGET)

    score = score_product(product, state, C.BUDGET, market)
    assert score.eligible
    assert score.brand == pytest.approx(0.5 ** 0.5 * 5.0)
    assert score.esg == pytest.approx(100.0 / 1000.0 * 0.3 * 5.0)
    assert score.features == pytest.approx(0.3 * 10.0)
    parts = score.price + score.quality + score.brand + score.esg + score.features
    assert score.total == pytest.approx(parts + product.quality * 0.001)

    weak = score_product(product, replace(state, brand_value=0.25), C.BUDGET, market)
    strong = score_product(product, replace(state, brand_value=1.0), C.BUDGET, market)
    assert strong.brand == pytest.approx(2 * weak.brand)

    green = replace(market, pressures=MarketPressures(sustainability_premium=0.6))
    assert score_product(product, state, C.BUDGET, green).esg == pytest.approx(2 * score.esg)
