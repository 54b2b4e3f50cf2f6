"""Scripted strategy archetypes used to drive teams during balance runs.

Each archetype is a pure function of ``(state, market, round)``; the same
inputs always give the same bundle, so simulations can run concurrently.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, List, Mapping

from phonesim.errors import UnknownArchetypeError
from phonesim.runtime.constants import ACTIVE_LIFESTYLE, BUDGET, ENTHUSIAST, GENERAL, PROFESSIONAL
from phonesim.runtime.decisions import (
    DecisionBundle,
    EfficiencyInvestment,
    FactoryDecisions,
    MarketingDecisions,
    ProductImprovement,
    Promotion,
    RDDecisions,
    Sponsorship,
)
from phonesim.runtime.state import MarketState, TeamState

Strategy = Callable[[TeamState, MarketState, int], DecisionBundle]


def _spend(cap: float, cash: float, fraction: float) -> float:
    return max(0.0, min(cap, cash * fraction))


def _factory_id(state: TeamState) -> str:
    return state.factories[0].id if state.factories else "factory-1"


def _ads(cash: float, **plan: tuple[float, float]) -> dict[str, float]:
    names = {
        "budget": BUDGET,
        "general": GENERAL,
        "enthusiast": ENTHUSIAST,
        "professional": PROFESSIONAL,
        "active": ACTIVE_LIFESTYLE,
    }
    return {names[key]: _spend(cap, cash, fraction) for key, (cap, fraction) in plan.items()}


def volume_strategy(state: TeamState, market: MarketState, round_number: int) -> DecisionBundle:
    """Cheap, high-volume play on the Budget and General segments."""

    cash = state.cash
    factory = None
    if cash > 5_000_000:
        factory = FactoryDecisions(
            efficiency_investments={
                _factory_id(state): EfficiencyInvestment(
                    workers=_spend(2_000_000, cash, 0.10),
                    machinery=_spend(1_000_000, cash, 0.05),
                )
            }
        )
    marketing = MarketingDecisions(
        advertising_budget=_ads(cash, budget=(3_000_000, 0.05), general=(2_000_000, 0.04)),
        branding_investment=_spend(1_000_000, cash, 0.02),
        promotions=(Promotion(segment=BUDGET, discount_percent=10),),
    )
    rd = RDDecisions(rd_budget=_spend(2_000_000, cash, 0.03))
    return DecisionBundle(factory=factory, marketing=marketing, rd=rd)


def premium_strategy(state: TeamState, market: MarketState, round_number: int) -> DecisionBundle:
    """Quality and features for the Enthusiast and Professional segments."""

    cash = state.cash
    factory = None
    if cash > 5_000_000:
        factory = FactoryDecisions(
            efficiency_investments={
                _factory_id(state): EfficiencyInvestment(
                    machinery=_spend(3_000_000, cash, 0.10),
                    supervisors=_spend(1_000_000, cash, 0.03),
                    engineers=_spend(2_000_000, cash, 0.07),
                )
            }
        )
    marketing = MarketingDecisions(
        advertising_budget=_ads(
            cash,
            general=(1_000_000, 0.02),
            enthusiast=(3_000_000, 0.05),
            professional=(4_000_000, 0.06),
        ),
        branding_investment=_spend(3_000_000, cash, 0.05),
    )
    rd = RDDecisions(
        rd_budget=_spend(8_000_000, cash, 0.12),
        product_improvements=(
            ProductImprovement("professional-product", quality_increase=5, features_increase=3),
            ProductImprovement("enthusiast-product", quality_increase=3, features_increase=2),
        ),
    )
    return DecisionBundle(factory=factory, marketing=marketing, rd=rd)


def brand_strategy(state: TeamState, market: MarketState, round_number: int) -> DecisionBundle:
    cash = state.cash
    factory = FactoryDecisions(
        efficiency_investments={
            _factory_id(state): EfficiencyInvestment(
                workers=_spend(500_000, cash, 0.02),
                machinery=_spend(500_000, cash, 0.02),
            )
        }
    )
    sponsorship_cost = _spend(2_000_000, cash, 0.04)
    marketing = MarketingDecisions(
        advertising_budget=_ads(
            cash,
            budget=(4_000_000, 0.08),
            general=(5_000_000, 0.10),
            enthusiast=(3_000_000, 0.06),
            professional=(2_000_000, 0.04),
            active=(2_000_000, 0.04),
        ),
        branding_investment=_spend(8_000_000, cash, 0.15),
        promotions=(Promotion(segment=GENERAL, discount_percent=5),),
        sponsorships=(
            (Sponsorship(name="Major Sports Event", cost=sponsorship_cost, brand_impact=0.02),)
            if sponsorship_cost > 0
            else ()
        ),
    )
    rd = RDDecisions(rd_budget=_spend(3_000_000, cash, 0.05))
    return DecisionBundle(factory=factory, marketing=marketing, rd=rd)


def automation_strategy(state: TeamState, market: MarketState, round_number: int) -> DecisionBundle:
    """Buy the automation upgrade early, then pour cash into machinery."""

    cash = state.cash
    factory_id = _factory_id(state)
    current = state.factory(factory_id)
    automated = current is not None and "automation" in current.upgrades
    if not automated and cash > 80_000_000 and round_number <= 3:
        factory = FactoryDecisions(upgrade_purchases=((factory_id, "automation"),))
    else:
        factory = FactoryDecisions(
            efficiency_investments={
                factory_id: EfficiencyInvestment(
                    machinery=_spend(5_000_000, cash, 0.10),
                    factory=_spend(2_000_000, cash, 0.04),
                )
            }
        )
    marketing = MarketingDecisions(
        advertising_budget=_ads(
            cash,
            budget=(1_500_000, 0.03),
            general=(2_000_000, 0.04),
            enthusiast=(1_000_000, 0.02),
        ),
        branding_investment=_spend(1_000_000, cash, 0.02),
    )
    rd = RDDecisions(rd_budget=_spend(3_000_000, cash, 0.05))
    return DecisionBundle(factory=factory, marketing=marketing, rd=rd)


def balanced_strategy(state: TeamState, market: MarketState, round_number: int) -> DecisionBundle:
    cash = state.cash
    factory_id = _factory_id(state)
    factory = FactoryDecisions(
        efficiency_investments={
            factory_id: EfficiencyInvestment(
                workers=_spend(1_000_000, cash, 0.03),
                machinery=_spend(1_500_000, cash, 0.04),
                supervisors=_spend(500_000, cash, 0.015),
                engineers=_spend(1_000_000, cash, 0.03),
                factory=_spend(500_000, cash, 0.015),
            )
        },
        green_investments={factory_id: _spend(500_000, cash, 0.01)},
        charitable_donation=_spend(200_000, cash, 0.005),
    )
    marketing = MarketingDecisions(
        advertising_budget=_ads(
            cash,
            budget=(1_500_000, 0.03),
            general=(2_000_000, 0.04),
            enthusiast=(1_500_000, 0.03),
            professional=(1_000_000, 0.02),
            active=(1_000_000, 0.02),
        ),
        branding_investment=_spend(2_000_000, cash, 0.04),
    )
    rd = RDDecisions(
        rd_budget=_spend(4_000_000, cash, 0.07),
        product_improvements=(ProductImprovement("initial-product", quality_increase=2, features_increase=2),),
    )
    return DecisionBundle(factory=factory, marketing=marketing, rd=rd)


def rd_focused_strategy(state: TeamState, market: MarketState, round_number: int) -> DecisionBundle:
    cash = state.cash
    factory = FactoryDecisions(
        efficiency_investments={
            _factory_id(state): EfficiencyInvestment(
                machinery=_spend(1_000_000, cash, 0.02),
                engineers=_spend(3_000_000, cash, 0.06),
            )
        }
    )
    marketing = MarketingDecisions(
        advertising_budget=_ads(
            cash,
            budget=(1_000_000, 0.02),
            general=(2_000_000, 0.04),
            enthusiast=(2_000_000, 0.04),
            professional=(1_500_000, 0.03),
        ),
        branding_investment=_spend(1_500_000, cash, 0.03),
    )
    rd = RDDecisions(
        rd_budget=_spend(15_000_000, cash, 0.25),
        product_improvements=(
            ProductImprovement("initial-product", quality_increase=5, features_increase=5),
            ProductImprovement("professional-product", quality_increase=3, features_increase=3),
            ProductImprovement("enthusiast-product", quality_increase=3, features_increase=3),
        ),
    )
    return DecisionBundle(factory=factory, marketing=marketing, rd=rd)


def cost_cutter_strategy(state: TeamState, market: MarketState, round_number: int) -> DecisionBundle:
    cash = state.cash
    factory = FactoryDecisions(
        efficiency_investments={
            _factory_id(state): EfficiencyInvestment(
                workers=_spend(500_000, cash, 0.01),
                machinery=_spend(500_000, cash, 0.01),
            )
        }
    )
    marketing = MarketingDecisions(
        advertising_budget=_ads(cash, budget=(500_000, 0.01), general=(500_000, 0.01)),
        promotions=(
            Promotion(segment=BUDGET, discount_percent=15),
            Promotion(segment=GENERAL, discount_percent=10),
        ),
    )
    rd = RDDecisions(rd_budget=_spend(1_000_000, cash, 0.02))
    return DecisionBundle(factory=factory, marketing=marketing, rd=rd)


STRATEGIES: Mapping[str, Strategy] = MappingProxyType(
    {
        "volume": volume_strategy,
        "premium": premium_strategy,
        "brand": brand_strategy,
        "automation": automation_strategy,
        "balanced": balanced_strategy,
        "rd-focused": rd_focused_strategy,
        "cost-cutter": cost_cutter_strategy,
    }
)


def get_available_strategies() -> List[str]:
    return list(STRATEGIES)


def get_strategy(name: str) -> Strategy:
    try:
        return STRATEGIES[name]
    except KeyError as exc:
        raise UnknownArchetypeError(name) from exc


__all__ = [
    "STRATEGIES",
    "Strategy",
    "automation_strategy",
    "balanced_strategy",
    "brand_strategy",
    "cost_cutter_strategy",
    "get_available_strategies",
    "get_strategy",
    "premium_strategy",
    "rd_focused_strategy",
    "volume_strategy",
]
