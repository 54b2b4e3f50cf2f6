"""Marketing department: advertising, branding, promotions and sponsorships.

Brand growth from all sources is summed, capped per round and then decays
proportionally, so heavy spend keeps brand up but cannot run away.
"""

from __future__ import annotations

import math
import random
from dataclasses import replace

from phonesim.runtime import constants as C
from phonesim.runtime.decisions import DecisionBundle
from phonesim.runtime.modules.base import ModuleResult, fmt_millions
from phonesim.runtime.state import MarketState, TeamState


def advertising_impact(budget: float, segment: str) -> float:
    multiplier = C.ADVERTISING_SEGMENT_MULTIPLIER.get(segment, 1.0)
    remaining = budget / 1_000_000
    effectiveness = 1.0
    impact = 0.0
    while remaining > 0:
        chunk = min(remaining, C.ADVERTISING_CHUNK_MILLIONS)
        impact += chunk * C.ADVERTISING_IMPACT_PER_MILLION * effectiveness * multiplier
        remaining -= chunk
        effectiveness *= C.ADVERTISING_CHUNK_DECAY
    return impact


def branding_impact(investment: float) -> float:
    millions = investment / 1_000_000
    if millions <= C.BRANDING_LINEAR_MILLIONS:
        return millions * C.BRANDING_IMPACT_PER_MILLION
    base = C.BRANDING_LINEAR_MILLIONS * C.BRANDING_IMPACT_PER_MILLION
    extra = millions - C.BRANDING_LINEAR_MILLIONS
    return base + C.BRANDING_IMPACT_PER_MILLION * 2.5 * math.log2(1 + extra / C.BRANDING_LINEAR_MILLIONS)


def process_marketing(
    state: TeamState,
    decisions: DecisionBundle,
    market: MarketState,
    round_number: int,
    rng: random.Random,
) -> ModuleResult:
    messages: list[str] = []
    cash = state.cash
    costs = 0.0
    growth = 0.0
    # Promotions last one round; start from list prices.
    products = [replace(p, price=p.list_price) for p in state.products]

    plan = decisions.marketing
    if plan is not None:
        for segment, budget in plan.advertising_budget.items():
            if budget <= 0:
                continue
            impact = advertising_impact(budget, segment)
            growth += impact
            cash -= budget
            costs += budget
            messages.append(f"{segment} advertising: {fmt_millions(budget)} -> +{impact * 100:.2f}% brand")

        if plan.branding_investment > 0:
            impact = branding_impact(plan.branding_investment)
            growth += impact
            cash -= plan.branding_investment
            costs += plan.branding_investment

        for promo in plan.promotions:
            pos = next(
                (i for i, p in enumerate(products) if p.segment == promo.segment and p.launched),
                None,
            )
            if pos is None or promo.discount_percent <= 0:
                continue
            product = products[pos]
            price = float(round(product.list_price * (1 - promo.discount_percent / 100.0)))
            products[pos] = replace(product, price=price)
            messages.append(f"{promo.segment} promotion: {promo.discount_percent:g}% off ({product.list_price:g} -> {price:g})")

        for sponsorship in plan.sponsorships:
            if cash >= sponsorship.cost:
                growth += sponsorship.brand_impact
                cash -= sponsorship.cost
                costs += sponsorship.cost
                messages.append(f"Sponsorship: {sponsorship.name}")
            else:
                messages.append(f"Insufficient funds for {sponsorship.name} sponsorship")

    if growth > C.BRAND_MAX_GROWTH_PER_ROUND:
        messages.append(f"Brand growth capped at {C.BRAND_MAX_GROWTH_PER_ROUND * 100:.1f}%")
    brand = min(1.0, state.brand_value + min(growth, C.BRAND_MAX_GROWTH_PER_ROUND))
    brand = max(0.0, brand - brand * C.BRAND_DECAY_RATE)

    new_state = replace(state, cash=cash, brand_value=brand, products=tuple(products))
    return ModuleResult(state=new_state, costs=costs, messages=messages)


__all__ = ["advertising_impact", "branding_impact", "process_marketing"]
