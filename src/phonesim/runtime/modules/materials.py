"""Per-unit production cost, recomputed at the start of every round."""

from __future__ import annotations

import random
from dataclasses import replace

from phonesim.errors import ModuleProcessingError
from phonesim.runtime import constants as C
from phonesim.runtime.decisions import DecisionBundle
from phonesim.runtime.modules.base import ModuleResult
from phonesim.runtime.state import MarketState, TeamState


def _conversion_cost(state: TeamState) -> float:
    automated = any("automation" in factory.upgrades for factory in state.factories)
    labor = C.LABOR_COST_PER_UNIT * (1.0 - C.AUTOMATION_LABOR_SAVING if automated else 1.0)
    if state.factories:
        efficiency = sum(f.efficiency for f in state.factories) / len(state.factories)
    else:
        efficiency = 0.0
    return (labor + C.OVERHEAD_COST_PER_UNIT) / (0.5 + efficiency * 0.5)


def process_materials(
    state: TeamState,
    decisions: DecisionBundle,
    market: MarketState,
    round_number: int,
    rng: random.Random,
) -> ModuleResult:
    conversion = _conversion_cost(state)
    products = []
    for product in state.products:
        try:
            base = C.RAW_MATERIAL_COST[product.segment]
        except KeyError as exc:
            raise ModuleProcessingError("materials", f"no material cost for segment '{product.segment}'") from exc
        jitter = 1.0 + (rng.random() * 2.0 - 1.0) * C.MATERIAL_PRICE_JITTER
        unit_cost = round(base * jitter + conversion, 2)
        products.append(replace(product, unit_cost=unit_cost))
    return ModuleResult(state=replace(state, products=tuple(products)))


__all__ = ["process_materials"]
