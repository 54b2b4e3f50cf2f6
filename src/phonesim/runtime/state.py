"""Value types for team and market state.

States are frozen; every processing step builds a new value with
``dataclasses.replace`` so references kept for history stay valid.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, is_dataclass
from hashlib import sha256
from typing import Any, Mapping, Tuple

from phonesim.runtime import constants as C


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    segment: str
    price: float
    list_price: float
    quality: float
    features: float
    unit_cost: float
    status: str = "launched"

    @property
    def launched(self) -> bool:
        return self.status == "launched"


@dataclass(frozen=True, slots=True)
class Factory:
    id: str
    name: str
    region: str
    efficiency: float
    upgrades: Tuple[str, ...] = ()
    efficiency_investment: Mapping[str, float] = field(default_factory=dict)
    co2_emissions: float = 0.0
    green_investment: float = 0.0


@dataclass(frozen=True, slots=True)
class Workforce:
    workers: int
    engineers: int
    supervisors: int
    average_morale: float = 70.0
    turnover_rate: float = C.BASE_TURNOVER_RATE
    labor_cost: float = C.STARTING_LABOR_COST
    salary_multiplier: float = 1.0

    @property
    def headcount(self) -> int:
        return self.workers + self.engineers + self.supervisors


@dataclass(frozen=True, slots=True)
class TeamState:
    cash: float
    total_assets: float
    shareholders_equity: float
    market_cap: float
    shares_issued: float
    share_price: float
    brand_value: float
    esg_score: float
    co2_emissions: float
    factories: Tuple[Factory, ...]
    products: Tuple[Product, ...]
    workforce: Workforce
    revenue: float = 0.0
    net_income: float = 0.0
    total_liabilities: float = 0.0
    eps: float = 0.0
    market_share: Mapping[str, float] = field(default_factory=dict)
    units_sold: Mapping[str, int] = field(default_factory=dict)
    cogs: float = 0.0
    rd_budget: float = 0.0
    rd_progress: float = 0.0
    patents: int = 0
    debt: float = 0.0
    version: str = C.ENGINE_VERSION

    def product_for_segment(self, segment: str) -> Product | None:
        for product in self.products:
            if product.segment == segment and product.launched:
                return product
        return None

    def factory(self, factory_id: str) -> Factory | None:
        for factory in self.factories:
            if factory.id == factory_id:
                return factory
        return None

    @property
    def is_bankrupt(self) -> bool:
        return self.cash < 0


@dataclass(frozen=True, slots=True)
class SegmentDemand:
    total_demand: float
    price_min: float
    price_max: float
    growth_rate: float


@dataclass(frozen=True, slots=True)
class MarketPressures:
    price_competition: float = 0.5
    quality_expectations: float = 0.6
    sustainability_premium: float = 0.3


@dataclass(frozen=True, slots=True)
class InterestRates:
    federal_rate: float = 5.0
    ten_year_bond: float = 4.5
    corporate_bond: float = 6.0


@dataclass(frozen=True, slots=True)
class MarketState:
    round_number: int
    gdp_growth: float
    inflation: float
    consumer_confidence: float
    unemployment: float
    fx_rates: Mapping[str, float]
    fx_volatility: float
    interest_rates: InterestRates
    demand_by_segment: Mapping[str, SegmentDemand]
    pressures: MarketPressures


def _starter_product(
    product_id: str, name: str, segment: str, price: float, quality: float, features: float
) -> Product:
    return Product(
        id=product_id,
        name=name,
        segment=segment,
        price=price,
        list_price=price,
        quality=quality,
        features=features,
        unit_cost=C.RAW_MATERIAL_COST[segment] + C.LABOR_COST_PER_UNIT + C.OVERHEAD_COST_PER_UNIT,
    )


def create_initial_team_state() -> TeamState:
    factory = Factory(
        id="factory-1",
        name="Main Factory",
        region="North America",
        efficiency=0.7,
        co2_emissions=C.STARTING_CO2,
    )
    products = tuple(_starter_product(*row) for row in C.STARTER_PRODUCTS)
    total_assets = C.STARTING_CASH + C.NEW_FACTORY_COST
    return TeamState(
        cash=C.STARTING_CASH,
        total_assets=total_assets,
        shareholders_equity=total_assets,
        market_cap=C.STARTING_MARKET_CAP,
        shares_issued=C.STARTING_SHARES,
        share_price=C.STARTING_SHARE_PRICE,
        brand_value=C.STARTING_BRAND,
        esg_score=C.STARTING_ESG,
        co2_emissions=C.STARTING_CO2,
        factories=(factory,),
        products=products,
        workforce=Workforce(workers=50, engineers=8, supervisors=5),
        market_share={segment: 0.0 for segment in C.SEGMENTS},
        units_sold={segment: 0 for segment in C.SEGMENTS},
    )


def create_initial_market_state() -> MarketState:
    demand = {
        segment: SegmentDemand(
            total_demand=float(total),
            price_min=low,
            price_max=high,
            growth_rate=growth,
        )
        for segment, (total, low, high, growth) in C.BASE_SEGMENT_DEMAND.items()
    }
    return MarketState(
        round_number=1,
        gdp_growth=2.5,
        inflation=2.0,
        consumer_confidence=75.0,
        unemployment=4.5,
        fx_rates=dict(C.STARTING_FX_RATES),
        fx_volatility=0.15,
        interest_rates=InterestRates(),
        demand_by_segment=demand,
        pressures=MarketPressures(),
    )


def to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {k: to_jsonable(v) for k, v in asdict(value).items()}
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in sorted(value.items(), key=lambda itm: str(itm[0]))}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, float):
        return round(value, 6)
    return value


def state_hash(value: Any) -> str:
    payload = json.dumps(to_jsonable(value), sort_keys=True, separators=(",", ":"))
    return sha256(payload.encode("utf-8")).hexdigest()[:16]


__all__ = [
    "Factory",
    "InterestRates",
    "MarketPressures",
    "MarketState",
    "Product",
    "SegmentDemand",
    "TeamState",
    "Workforce",
    "create_initial_market_state",
    "create_initial_team_state",
    "state_hash",
    "to_jsonable",
]
