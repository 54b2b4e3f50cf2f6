"""Game constants for the round engine.

Segment tables, cost tables and starting values shared by the state model,
the module processors and market allocation.
"""

from __future__ import annotations

from typing import Mapping, Tuple

ENGINE_VERSION: str = "1.4.0"
SCHEMA_VERSION: str = "1"

BUDGET = "Budget"
GENERAL = "General"
ENTHUSIAST = "Enthusiast"
PROFESSIONAL = "Professional"
ACTIVE_LIFESTYLE = "Active Lifestyle"

SEGMENTS: Tuple[str, ...] = (BUDGET, GENERAL, ENTHUSIAST, PROFESSIONAL, ACTIVE_LIFESTYLE)

# (price, quality, brand, esg, features); each row sums to 100.
SEGMENT_WEIGHTS: Mapping[str, Tuple[float, float, float, float, float]] = {
    BUDGET: (65.0, 15.0, 5.0, 5.0, 10.0),
    GENERAL: (30.0, 25.0, 15.0, 10.0, 20.0),
    ENTHUSIAST: (12.0, 30.0, 8.0, 5.0, 45.0),
    PROFESSIONAL: (8.0, 50.0, 5.0, 20.0, 17.0),
    ACTIVE_LIFESTYLE: (20.0, 30.0, 10.0, 10.0, 30.0),
}

QUALITY_EXPECTATIONS: Mapping[str, float] = {
    BUDGET: 50.0,
    GENERAL: 65.0,
    ENTHUSIAST: 80.0,
    PROFESSIONAL: 90.0,
    ACTIVE_LIFESTYLE: 70.0,
}

# total demand, price floor, price ceiling, growth per round
BASE_SEGMENT_DEMAND: Mapping[str, Tuple[int, float, float, float]] = {
    BUDGET: (500_000, 100.0, 300.0, 0.02),
    GENERAL: (400_000, 300.0, 600.0, 0.03),
    ENTHUSIAST: (200_000, 600.0, 1000.0, 0.04),
    PROFESSIONAL: (100_000, 1000.0, 1500.0, 0.02),
    ACTIVE_LIFESTYLE: (150_000, 400.0, 800.0, 0.05),
}

RAW_MATERIAL_COST: Mapping[str, float] = {
    BUDGET: 50.0,
    GENERAL: 100.0,
    ENTHUSIAST: 200.0,
    PROFESSIONAL: 350.0,
    ACTIVE_LIFESTYLE: 150.0,
}
LABOR_COST_PER_UNIT: float = 20.0
OVERHEAD_COST_PER_UNIT: float = 15.0
MATERIAL_PRICE_JITTER: float = 0.03

ADVERTISING_SEGMENT_MULTIPLIER: Mapping[str, float] = {
    BUDGET: 1.1,
    GENERAL: 1.0,
    ENTHUSIAST: 0.75,
    PROFESSIONAL: 0.5,
    ACTIVE_LIFESTYLE: 0.85,
}
ADVERTISING_IMPACT_PER_MILLION: float = 0.0015
ADVERTISING_CHUNK_MILLIONS: float = 3.0
ADVERTISING_CHUNK_DECAY: float = 0.4
BRANDING_IMPACT_PER_MILLION: float = 0.0025
BRANDING_LINEAR_MILLIONS: float = 5.0
BRAND_MAX_GROWTH_PER_ROUND: float = 0.02
BRAND_DECAY_RATE: float = 0.025

EFFICIENCY_PER_MILLION: Mapping[str, float] = {
    "workers": 0.01,
    "supervisors": 0.015,
    "engineers": 0.02,
    "machinery": 0.012,
    "factory": 0.008,
}
EFFICIENCY_DIMINISH_THRESHOLD: float = 10_000_000.0
MAX_EFFICIENCY: float = 1.0
AUTOMATION_UPGRADE_COST: float = 75_000_000.0
AUTOMATION_LABOR_SAVING: float = 0.35
UPGRADE_COSTS: Mapping[str, float] = {
    "automation": AUTOMATION_UPGRADE_COST,
    "lean_manufacturing": 25_000_000.0,
    "solar_panels": 15_000_000.0,
}
LEAN_EFFICIENCY_GAIN: float = 0.15
SOLAR_ESG_GAIN: float = 100.0
SOLAR_CO2_REDUCTION: float = 0.4
BREAKDOWN_PROBABILITY: float = 0.05
BREAKDOWN_EFFICIENCY_LOSS: float = 0.02
NEW_FACTORY_COST: float = 50_000_000.0
CO2_REDUCTION_PER_100K: float = 10.0
ESG_DONATION_MULTIPLIER: float = 6.28
MAX_ESG: float = 1000.0

HIRE_COST: Mapping[str, float] = {"workers": 10_000.0, "engineers": 30_000.0, "supervisors": 20_000.0}
ANNUAL_SALARY: Mapping[str, float] = {"workers": 60_000.0, "engineers": 120_000.0, "supervisors": 90_000.0}
ROUNDS_PER_YEAR: int = 4
LAYOFF_COST: float = 5_000.0
BASE_TURNOVER_RATE: float = 0.12
LOW_MORALE_TURNOVER: float = 0.15
MORALE_PER_100K_TRAINING: float = 1.0

RD_PROGRESS_PER_100K: float = 1.0
RD_PATENT_THRESHOLD: float = 500.0
RD_QUALITY_POINT_COST: float = 1_000_000.0
RD_FEATURE_POINT_COST: float = 500_000.0
RD_PROGRESS_PER_QUALITY_POINT: float = 10.0
MAX_PRODUCT_RATING: float = 100.0

TARGET_PE_RATIO: float = 15.0
PRICE_TO_SALES_RATIO: float = 2.0
MIN_SHARES_OUTSTANDING: float = 1_000_000.0

STARTING_CASH: float = 200_000_000.0
STARTING_MARKET_CAP: float = 500_000_000.0
STARTING_SHARES: float = 10_000_000.0
STARTING_SHARE_PRICE: float = 50.0
STARTING_BRAND: float = 0.5
STARTING_ESG: float = 100.0
STARTING_CO2: float = 1000.0
STARTING_LABOR_COST: float = 5_000_000.0

# id, name, segment, price, quality, features
STARTER_PRODUCTS: Tuple[Tuple[str, str, str, float, float, float], ...] = (
    ("initial-product", "Standard Phone", GENERAL, 450.0, 65.0, 50.0),
    ("budget-product", "Budget Phone", BUDGET, 200.0, 50.0, 30.0),
    ("enthusiast-product", "Enthusiast Phone", ENTHUSIAST, 800.0, 80.0, 70.0),
    ("professional-product", "Pro Phone", PROFESSIONAL, 1250.0, 90.0, 85.0),
    ("active-product", "Active Phone", ACTIVE_LIFESTYLE, 600.0, 70.0, 60.0),
)

STARTING_FX_RATES: Mapping[str, float] = {
    "EUR/USD": 1.10,
    "GBP/USD": 1.27,
    "JPY/USD": 0.0067,
    "CNY/USD": 0.14,
}
