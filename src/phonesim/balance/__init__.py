"""Monte Carlo balance testing on top of the round engine."""

from phonesim.balance.harness import (
    HarnessConfig,
    HarnessOutput,
    HarnessSummary,
    assignments_for,
    quick_balance_check,
    run_harness,
)
from phonesim.balance.metrics import (
    BALANCE_THRESHOLDS,
    BalanceMetrics,
    BalanceThresholds,
    DiversityIndex,
    StrategicHealth,
    compute_balance_metrics,
    compute_diversity,
    compute_strategic_health,
    passes_balance_check,
)
from phonesim.balance.report import generate_report
from phonesim.balance.runs import SimulationRun, StrategyAssignment, run_simulation
from phonesim.balance.strategies import STRATEGIES, Strategy, get_available_strategies, get_strategy

__all__ = [
    "BALANCE_THRESHOLDS",
    "BalanceMetrics",
    "BalanceThresholds",
    "DiversityIndex",
    "HarnessConfig",
    "HarnessOutput",
    "HarnessSummary",
    "STRATEGIES",
    "SimulationRun",
    "StrategicHealth",
    "Strategy",
    "StrategyAssignment",
    "assignments_for",
    "compute_balance_metrics",
    "compute_diversity",
    "compute_strategic_health",
    "generate_report",
    "get_available_strategies",
    "get_strategy",
    "passes_balance_check",
    "quick_balance_check",
    "run_harness",
    "run_simulation",
]
