from __future__ import annotations

import random
from dataclasses import replace

from phonesim.runtime import constants as C
from phonesim.runtime.decisions import DecisionBundle
from phonesim.runtime.modules.base import ModuleResult, fmt_millions
from phonesim.runtime.state import MarketState, TeamState


def improvement_cost(quality_increase: float, features_increase: float) -> float:
    return quality_increase * C.RD_QUALITY_POINT_COST + features_increase * C.RD_FEATURE_POINT_COST


def process_rd(
    state: TeamState,
    decisions: DecisionBundle,
    market: MarketState,
    round_number: int,
    rng: random.Random,
) -> ModuleResult:
    messages: list[str] = []
    cash = state.cash
    costs = 0.0
    plan = decisions.rd

    budget = max(0.0, plan.rd_budget) if plan is not None else 0.0
    if budget > cash:
        messages.append(f"Insufficient cash for R&D budget {fmt_millions(budget)}")
        budget = 0.0
    research_yield = 0.9 + 0.2 * rng.random()
    gained = budget / 100_000 * C.RD_PROGRESS_PER_100K * research_yield
    progress = state.rd_progress + gained
    cash -= budget
    costs += budget

    patents = state.patents
    earned = int(progress // C.RD_PATENT_THRESHOLD) - int(state.rd_progress // C.RD_PATENT_THRESHOLD)
    if earned > 0:
        patents += earned
        messages.append(f"Filed {earned} patent(s)")

    products = list(state.products)
    if plan is not None:
        for improvement in plan.product_improvements:
            pos = next((i for i, p in enumerate(products) if p.id == improvement.product_id), None)
            if pos is None:
                messages.append(f"Unknown product '{improvement.product_id}'")
                continue
            required = improvement.quality_increase * C.RD_PROGRESS_PER_QUALITY_POINT
            if progress < required:
                messages.append(f"Not enough R&D progress to improve {products[pos].name}")
                continue
            cost = improvement_cost(improvement.quality_increase, improvement.features_increase)
            if cost > cash:
                messages.append(f"Insufficient cash to improve {products[pos].name}")
                continue
            product = products[pos]
            products[pos] = replace(
                product,
                quality=min(C.MAX_PRODUCT_RATING, product.quality + improvement.quality_increase),
                features=min(C.MAX_PRODUCT_RATING, product.features + improvement.features_increase),
            )
            cash -= cost
            costs += cost
            messages.append(
                f"Improved {product.name}: quality {products[pos].quality:.0f}, features {products[pos].features:.0f}"
            )

    new_state = replace(
        state,
        cash=cash,
        rd_budget=budget,
        rd_progress=progress,
        patents=patents,
        products=tuple(products),
    )
    return ModuleResult(state=new_state, costs=costs, messages=messages)


__all__ = ["improvement_cost", "process_rd"]
