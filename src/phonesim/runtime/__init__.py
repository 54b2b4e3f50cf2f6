"""Deterministic round engine: state, departments, market and orchestration."""

from phonesim.runtime.decisions import (
    EMPTY_DECISIONS,
    DecisionBundle,
    EfficiencyInvestment,
    FactoryDecisions,
    FinanceDecisions,
    MarketingDecisions,
    ProductImprovement,
    Promotion,
    RDDecisions,
    Sponsorship,
    WorkforceDecisions,
    validate_decisions,
)
from phonesim.runtime.market import (
    AllocationResult,
    MarketConfig,
    SegmentScore,
    TeamRanking,
    allocate_market,
    softmax_shares,
)
from phonesim.runtime.market_drift import MarketEvent, apply_market_event, next_market_state
from phonesim.runtime.modules import DEFAULT_PIPELINE, ModuleProcessor, ModuleResult
from phonesim.runtime.orchestrator import (
    OrchestratorConfig,
    RoundAudit,
    RoundInput,
    RoundOutput,
    TeamInput,
    TeamRoundResult,
    process_round,
)
from phonesim.runtime.rng_context import RNGConfig, RNGContext, market_context
from phonesim.runtime.state import (
    Factory,
    MarketState,
    Product,
    TeamState,
    Workforce,
    create_initial_market_state,
    create_initial_team_state,
    state_hash,
)
from phonesim.runtime.telemetry import Metrics, record_event

__all__ = [
    "AllocationResult",
    "DEFAULT_PIPELINE",
    "DecisionBundle",
    "EMPTY_DECISIONS",
    "EfficiencyInvestment",
    "Factory",
    "FactoryDecisions",
    "FinanceDecisions",
    "MarketConfig",
    "MarketEvent",
    "MarketState",
    "MarketingDecisions",
    "Metrics",
    "ModuleProcessor",
    "ModuleResult",
    "OrchestratorConfig",
    "Product",
    "ProductImprovement",
    "Promotion",
    "RDDecisions",
    "RNGConfig",
    "RNGContext",
    "RoundAudit",
    "RoundInput",
    "RoundOutput",
    "SegmentScore",
    "Sponsorship",
    "TeamInput",
    "TeamRanking",
    "TeamRoundResult",
    "TeamState",
    "Workforce",
    "WorkforceDecisions",
    "allocate_market",
    "apply_market_event",
    "create_initial_market_state",
    "create_initial_team_state",
    "market_context",
    "next_market_state",
    "process_round",
    "record_event",
    "softmax_shares",
    "state_hash",
    "validate_decisions",
]
