from __future__ import annotations

from dataclasses import FrozenInstanceError, replace

import pytest

from phonesim.runtime import constants as C
from phonesim.runtime.state import (
    create_initial_market_state,
    create_initial_team_state,
    state_hash,
    to_jsonable,
)


def test_initial_team_state_defaults() -> None:
    state = create_initial_team_state()

    assert state.cash == C.STARTING_CASH
    assert state.shares_issued == C.STARTING_SHARES
    assert len(state.factories) == 1
    assert state.factories[0].id == "factory-1"
    assert state.workforce.headcount == 63
    assert {p.segment for p in state.products} == set(C.SEGMENTS)
    assert all(p.price == p.list_price for p in state.products)
    assert not state.is_bankrupt


def test_product_for_segment_skips_unlaunched() -> None:
    state = create_initial_team_state()
    budget = state.product_for_segment(C.BUDGET)
    assert budget is not None and budget.id == "budget-product"

    retired = replace(
        state,
        products=tuple(replace(p, status="discontinued") if p.segment == C.BUDGET else p for p in state.products),
    )
    assert retired.product_for_segment(C.BUDGET) is None
    assert retired.factory("factory-1") is not None
    assert retired.factory("missing") is None


def test_states_are_frozen() -> None:
    state = create_initial_team_state()

    with pytest.raises(FrozenInstanceError):
        state.cash = 1.0  # type: ignore[misc]


def test_initial_market_state() -> None:
    market = create_initial_market_state()

    assert market.round_number == 1
    assert set(market.demand_by_segment) == set(C.SEGMENTS)
    assert market.demand_by_segment[C.BUDGET].total_demand == 500_000
    assert market.interest_rates.federal_rate == 5.0


def test_state_hash_stable_and_sensitive() -> None:
    a = create_initial_team_state()
    b = create_initial_team_state()

    assert state_hash(a) == state_hash(b)
    assert state_hash(replace(a, cash=a.cash - 1)) != state_hash(a)


def test_to_jsonable_rounds_floats() -> None:
    payload = to_jsonable({"b": 1.0000001234, "a": (1, 2)})

    assert payload == {"a": [1, 2], "b": 1.0}
