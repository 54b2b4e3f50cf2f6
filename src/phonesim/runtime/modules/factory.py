"""Factory department: efficiency, green investment, upgrades and ESG."""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Mapping, Tuple

from phonesim.runtime import constants as C
from phonesim.runtime.decisions import DecisionBundle, EfficiencyInvestment
from phonesim.runtime.modules.base import ModuleResult, fmt_millions
from phonesim.runtime.state import Factory, MarketState, Product, TeamState


def _gain_for(previous: float, amount: float, rate: float) -> float:
    threshold = C.EFFICIENCY_DIMINISH_THRESHOLD
    if previous >= threshold:
        return amount / 1_000_000 * rate * 0.5
    total = previous + amount
    if total > threshold:
        before = threshold - previous
        after = total - threshold
        return before / 1_000_000 * rate + after / 1_000_000 * rate * 0.5
    return amount / 1_000_000 * rate


def apply_efficiency_investment(factory: Factory, investment: EfficiencyInvestment) -> Tuple[Factory, float]:
    """Return the updated factory and the efficiency gained.

    Each investment type halves its return once its cumulative spend passes
    the diminishing threshold.
    """

    ledger = dict(factory.efficiency_investment)
    gain = 0.0
    for kind, rate in C.EFFICIENCY_PER_MILLION.items():
        amount = float(getattr(investment, kind))
        if amount <= 0:
            continue
        previous = ledger.get(kind, 0.0)
        gain += _gain_for(previous, amount, rate)
        ledger[kind] = previous + amount
    efficiency = min(C.MAX_EFFICIENCY, factory.efficiency + gain)
    return replace(factory, efficiency=efficiency, efficiency_investment=ledger), efficiency - factory.efficiency


def donation_esg(donation: float, net_income: float) -> float:
    if donation <= 0:
        return 0.0
    if net_income > 0:
        return donation / net_income * 100.0 * C.ESG_DONATION_MULTIPLIER
    return donation / 1_000_000


def allocate_production(
    products: Tuple[Product, ...],
    allocation: Mapping[str, float] | None,
) -> Tuple[Tuple[Product, ...], list[str]]:
    """Idle every product line whose segment gets no share of production.

    Lines idled in an earlier round come back when the allocation covers
    their segment again or no allocation is given.
    """

    updated = []
    messages: list[str] = []
    for product in products:
        if product.status not in ("launched", "idle"):
            updated.append(product)
            continue
        producing = allocation is None or allocation.get(product.segment, 0.0) > 0
        status = "launched" if producing else "idle"
        if status != product.status:
            messages.append(f"{product.name}: production {'resumed' if producing else 'halted'}")
        updated.append(replace(product, status=status))
    return tuple(updated), messages


def process_factory(
    state: TeamState,
    decisions: DecisionBundle,
    market: MarketState,
    round_number: int,
    rng: random.Random,
) -> ModuleResult:
    messages: list[str] = []
    factories = list(state.factories)
    index = {factory.id: i for i, factory in enumerate(factories)}
    cash = state.cash
    costs = 0.0
    brand = state.brand_value
    esg = state.esg_score
    co2 = state.co2_emissions

    plan = decisions.factory
    if plan is not None:
        for factory_id, investment in plan.efficiency_investments.items():
            spend = investment.total()
            if spend <= 0:
                continue
            pos = index.get(factory_id)
            if pos is None:
                messages.append(f"Unknown factory '{factory_id}', efficiency investment skipped")
                continue
            if spend > cash:
                messages.append(f"Insufficient cash for {fmt_millions(spend)} efficiency investment")
                continue
            factories[pos], gain = apply_efficiency_investment(factories[pos], investment)
            cash -= spend
            costs += spend
            messages.append(f"{factories[pos].name}: {fmt_millions(spend)} efficiency investment (+{gain * 100:.1f}%)")

        for factory_id, amount in plan.green_investments.items():
            if amount <= 0:
                continue
            pos = index.get(factory_id)
            if pos is None or amount > cash:
                messages.append(f"Green investment for '{factory_id}' skipped")
                continue
            reduction = amount / 100_000 * C.CO2_REDUCTION_PER_100K
            factory = factories[pos]
            factories[pos] = replace(
                factory,
                co2_emissions=max(0.0, factory.co2_emissions - reduction),
                green_investment=factory.green_investment + amount,
            )
            co2 = max(0.0, co2 - reduction)
            brand = min(1.0, brand + amount / 100_000_000)
            cash -= amount
            costs += amount

        for factory_id, upgrade in plan.upgrade_purchases:
            pos = index.get(factory_id)
            cost = C.UPGRADE_COSTS.get(upgrade)
            if pos is None or cost is None:
                messages.append(f"Upgrade '{upgrade}' for '{factory_id}' is not available")
                continue
            factory = factories[pos]
            if upgrade in factory.upgrades:
                messages.append(f"{factory.name} already has {upgrade}")
                continue
            if cost > cash:
                messages.append(f"Insufficient cash for {upgrade} ({fmt_millions(cost)})")
                continue
            efficiency = factory.efficiency
            emissions = factory.co2_emissions
            if upgrade == "lean_manufacturing":
                efficiency = min(C.MAX_EFFICIENCY, efficiency + C.LEAN_EFFICIENCY_GAIN)
            elif upgrade == "solar_panels":
                esg = min(C.MAX_ESG, esg + C.SOLAR_ESG_GAIN)
                cut = emissions * C.SOLAR_CO2_REDUCTION
                emissions -= cut
                co2 = max(0.0, co2 - cut)
            factories[pos] = replace(
                factory,
                upgrades=factory.upgrades + (upgrade,),
                efficiency=efficiency,
                co2_emissions=emissions,
            )
            cash -= cost
            costs += cost
            messages.append(f"{factory.name}: purchased {upgrade} for {fmt_millions(cost)}")

        donation = plan.charitable_donation
        if donation > 0 and donation <= cash:
            gain = donation_esg(donation, state.net_income)
            esg = min(C.MAX_ESG, esg + gain)
            cash -= donation
            costs += donation
            messages.append(f"Charitable donation {fmt_millions(donation)} (+{gain:.1f} ESG)")

    allocation = plan.production_allocation if plan is not None else None
    products, production_messages = allocate_production(state.products, allocation)
    messages.extend(production_messages)

    for pos, factory in enumerate(factories):
        if rng.random() < C.BREAKDOWN_PROBABILITY:
            factories[pos] = replace(
                factory, efficiency=max(0.1, factory.efficiency - C.BREAKDOWN_EFFICIENCY_LOSS)
            )
            messages.append(f"{factory.name}: equipment breakdown")

    new_state = replace(
        state,
        cash=cash,
        factories=tuple(factories),
        products=products,
        brand_value=brand,
        esg_score=esg,
        co2_emissions=co2,
    )
    return ModuleResult(state=new_state, costs=costs, messages=messages)


__all__ = ["allocate_production", "apply_efficiency_investment", "donation_esg", "process_factory"]
