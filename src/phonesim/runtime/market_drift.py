"""Round-to-round evolution of the shared market state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Sequence

from phonesim.runtime.constants import ACTIVE_LIFESTYLE, BUDGET, ENTHUSIAST, PROFESSIONAL
from phonesim.runtime.rng_context import RNGContext
from phonesim.runtime.state import InterestRates, MarketPressures, MarketState, SegmentDemand

MARKET_EVENT_TYPES = (
    "recession",
    "boom",
    "inflation_spike",
    "tech_breakthrough",
    "sustainability_regulation",
    "price_war",
    "supply_chain_crisis",
    "currency_crisis",
    "custom",
)

_CUSTOM_TARGETS = ("gdp_growth", "inflation", "consumer_confidence", "unemployment")


@dataclass(frozen=True, slots=True)
class MarketEvent:
    type: str
    title: str = ""
    effects: Mapping[str, float] = field(default_factory=dict)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _scale_demand(
    demand: Mapping[str, SegmentDemand], factor: float, segments: Sequence[str] | None = None
) -> Dict[str, SegmentDemand]:
    out = dict(demand)
    for segment, entry in demand.items():
        if segments is None or segment in segments:
            out[segment] = replace(entry, total_demand=entry.total_demand * factor)
    return out


def next_market_state(
    market: MarketState,
    rng: RNGContext,
    *,
    volatility: float = 0.5,
    events: Sequence[MarketEvent] = (),
) -> MarketState:
    """Advance one round: bounded random walks plus fixed pressure drift.

    ``volatility`` scales walk amplitudes; 0.5 gives the default
    amplitudes and 0 freezes the random component.
    """

    amp = max(0.0, volatility) / 0.5

    def walk(width: float) -> float:
        return (rng.rand("market") - 0.5) * width * amp

    gdp = _clamp(market.gdp_growth + walk(1.0), -5.0, 10.0)
    inflation = _clamp(market.inflation + walk(0.5), 0.0, 15.0)
    confidence = _clamp(market.consumer_confidence + walk(5.0), 20.0, 100.0)
    unemployment = _clamp(market.unemployment + walk(0.3), 2.0, 15.0)

    fx_volatility = 0.15 + rng.rand("market") * 0.10
    fx_rates = {
        pair: rate * (1.0 + (rng.rand("market") - 0.5) * fx_volatility * amp)
        for pair, rate in sorted(market.fx_rates.items())
    }

    federal = market.interest_rates.federal_rate
    if inflation > 3.0:
        federal += 0.25
    elif inflation < 1.5:
        federal -= 0.25
    federal = _clamp(federal, 0.0, 10.0)
    rates = InterestRates(federal_rate=federal, ten_year_bond=federal - 0.5, corporate_bond=federal + 1.0)

    demand = {
        segment: replace(entry, total_demand=entry.total_demand * (1.0 + entry.growth_rate))
        for segment, entry in market.demand_by_segment.items()
    }

    p = market.pressures
    pressures = MarketPressures(
        price_competition=_clamp(p.price_competition + walk(0.1), 0.2, 0.9),
        quality_expectations=_clamp(p.quality_expectations + 0.02, 0.3, 0.95),
        sustainability_premium=_clamp(p.sustainability_premium + 0.01, 0.1, 0.6),
    )

    nxt = MarketState(
        round_number=market.round_number + 1,
        gdp_growth=gdp,
        inflation=inflation,
        consumer_confidence=confidence,
        unemployment=unemployment,
        fx_rates=fx_rates,
        fx_volatility=fx_volatility,
        interest_rates=rates,
        demand_by_segment=demand,
        pressures=pressures,
    )
    for event in events:
        nxt = apply_market_event(nxt, event, rng)
    return nxt


def apply_market_event(market: MarketState, event: MarketEvent, rng: RNGContext) -> MarketState:
    gdp = market.gdp_growth
    inflation = market.inflation
    confidence = market.consumer_confidence
    unemployment = market.unemployment
    demand: Mapping[str, SegmentDemand] = market.demand_by_segment
    pressures = market.pressures
    rates = market.interest_rates
    fx_rates = dict(market.fx_rates)
    fx_volatility = market.fx_volatility

    kind = event.type
    if kind == "recession":
        gdp -= 2.0
        confidence -= 15.0
        unemployment += 1.5
        demand = _scale_demand(demand, 0.85)
    elif kind == "boom":
        gdp += 2.0
        confidence += 10.0
        unemployment -= 0.5
        demand = _scale_demand(demand, 1.15)
    elif kind == "inflation_spike":
        inflation += 3.0
        confidence -= 8.0
        rates = replace(rates, federal_rate=rates.federal_rate + 0.75)
    elif kind == "tech_breakthrough":
        demand = _scale_demand(demand, 1.25, (ENTHUSIAST,))
        demand = _scale_demand(demand, 1.20, (PROFESSIONAL,))
        pressures = replace(pressures, quality_expectations=pressures.quality_expectations + 0.05)
    elif kind == "sustainability_regulation":
        pressures = replace(pressures, sustainability_premium=pressures.sustainability_premium + 0.15)
        demand = _scale_demand(demand, 1.05, (ACTIVE_LIFESTYLE,))
    elif kind == "price_war":
        pressures = replace(pressures, price_competition=pressures.price_competition + 0.2)
        demand = _scale_demand(demand, 1.15, (BUDGET,))
    elif kind == "supply_chain_crisis":
        demand = _scale_demand(demand, 0.9)
    elif kind == "currency_crisis":
        fx_volatility = 0.35
        fx_rates = {pair: rate * (0.85 + rng.rand("market") * 0.3) for pair, rate in sorted(fx_rates.items())}
    elif kind == "custom":
        for target in event.effects:
            if target not in _CUSTOM_TARGETS:
                raise ValueError(f"Unknown market effect target '{target}'")
        gdp += event.effects.get("gdp_growth", 0.0)
        inflation += event.effects.get("inflation", 0.0)
        confidence += event.effects.get("consumer_confidence", 0.0)
        unemployment += event.effects.get("unemployment", 0.0)
    else:
        raise ValueError(f"Unknown market event '{kind}'")

    pressures = MarketPressures(
        price_competition=_clamp(pressures.price_competition, 0.1, 1.0),
        quality_expectations=_clamp(pressures.quality_expectations, 0.2, 1.0),
        sustainability_premium=_clamp(pressures.sustainability_premium, 0.0, 0.8),
    )
    return replace(
        market,
        gdp_growth=_clamp(gdp, -10.0, 15.0),
        inflation=_clamp(inflation, 0.0, 20.0),
        consumer_confidence=_clamp(confidence, 10.0, 100.0),
        unemployment=_clamp(unemployment, 1.0, 20.0),
        demand_by_segment=dict(demand),
        pressures=pressures,
        interest_rates=rates,
        fx_rates=fx_rates,
        fx_volatility=fx_volatility,
    )


__all__ = ["MARKET_EVENT_TYPES", "MarketEvent", "apply_market_event", "next_market_state"]
