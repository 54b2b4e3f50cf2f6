from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Mapping, Tuple

from phonesim.errors import DecisionValidationError
from phonesim.runtime.constants import SEGMENTS


@dataclass(frozen=True, slots=True)
class EfficiencyInvestment:
    workers: float = 0.0
    supervisors: float = 0.0
    engineers: float = 0.0
    machinery: float = 0.0
    factory: float = 0.0

    def total(self) -> float:
        return self.workers + self.supervisors + self.engineers + self.machinery + self.factory


@dataclass(frozen=True, slots=True)
class FactoryDecisions:
    efficiency_investments: Mapping[str, EfficiencyInvestment] = field(default_factory=dict)
    green_investments: Mapping[str, float] = field(default_factory=dict)
    upgrade_purchases: Tuple[Tuple[str, str], ...] = ()
    charitable_donation: float = 0.0
    production_allocation: Mapping[str, float] | None = None


@dataclass(frozen=True, slots=True)
class WorkforceDecisions:
    hire_workers: int = 0
    hire_engineers: int = 0
    hire_supervisors: int = 0
    layoffs: int = 0
    salary_adjustment_percent: float = 0.0
    training_budget: float = 0.0


@dataclass(frozen=True, slots=True)
class ProductImprovement:
    product_id: str
    quality_increase: float = 0.0
    features_increase: float = 0.0


@dataclass(frozen=True, slots=True)
class RDDecisions:
    rd_budget: float = 0.0
    product_improvements: Tuple[ProductImprovement, ...] = ()


@dataclass(frozen=True, slots=True)
class Promotion:
    segment: str
    discount_percent: float


@dataclass(frozen=True, slots=True)
class Sponsorship:
    name: str
    cost: float
    brand_impact: float


@dataclass(frozen=True, slots=True)
class MarketingDecisions:
    advertising_budget: Mapping[str, float] = field(default_factory=dict)
    branding_investment: float = 0.0
    promotions: Tuple[Promotion, ...] = ()
    sponsorships: Tuple[Sponsorship, ...] = ()


@dataclass(frozen=True, slots=True)
class FinanceDecisions:
    treasury_bills: float = 0.0
    corporate_bonds: float = 0.0
    loan_amount: float = 0.0
    loan_term_months: int = 12
    dividend_per_share: float = 0.0
    share_buyback: float = 0.0


@dataclass(frozen=True, slots=True)
class DecisionBundle:
    """One team's instructions for a round; every department is optional."""

    factory: FactoryDecisions | None = None
    workforce: WorkforceDecisions | None = None
    rd: RDDecisions | None = None
    marketing: MarketingDecisions | None = None
    finance: FinanceDecisions | None = None


EMPTY_DECISIONS = DecisionBundle()


def _check_non_negative(label: str, value: float, issues: list[str]) -> None:
    if value < 0:
        issues.append(f"{label} must be non-negative (got {value})")


def _numeric_fields(label: str, obj: object, issues: list[str]) -> None:
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            _check_non_negative(f"{label}.{f.name}", float(value), issues)


def validate_decisions(bundle: DecisionBundle) -> None:
    """Raise ``DecisionValidationError`` listing every broken business rule.

    Callers run this before handing bundles to the orchestrator, which
    assumes valid input.
    """

    issues: list[str] = []
    if bundle.factory is not None:
        for factory_id, investment in bundle.factory.efficiency_investments.items():
            _numeric_fields(f"factory.efficiency[{factory_id}]", investment, issues)
        for factory_id, amount in bundle.factory.green_investments.items():
            _check_non_negative(f"factory.green[{factory_id}]", amount, issues)
        _check_non_negative("factory.charitable_donation", bundle.factory.charitable_donation, issues)
        allocation = bundle.factory.production_allocation
        if allocation is not None:
            unknown = sorted(set(allocation) - set(SEGMENTS))
            if unknown:
                issues.append(f"production allocation names unknown segments: {', '.join(unknown)}")
            total = sum(allocation.values())
            if abs(total - 100.0) > 1e-6:
                issues.append(f"production allocation must sum to 100 (got {total:g})")
    if bundle.workforce is not None:
        _numeric_fields("workforce", bundle.workforce, issues)
    if bundle.rd is not None:
        _check_non_negative("rd.rd_budget", bundle.rd.rd_budget, issues)
        for improvement in bundle.rd.product_improvements:
            _numeric_fields(f"rd.improvement[{improvement.product_id}]", improvement, issues)
    if bundle.marketing is not None:
        for segment, amount in bundle.marketing.advertising_budget.items():
            if segment not in SEGMENTS:
                issues.append(f"advertising names unknown segment '{segment}'")
            _check_non_negative(f"marketing.advertising[{segment}]", amount, issues)
        _check_non_negative("marketing.branding_investment", bundle.marketing.branding_investment, issues)
        for promo in bundle.marketing.promotions:
            if not 0 <= promo.discount_percent <= 100:
                issues.append(f"promotion discount for {promo.segment} must be within 0-100")
    if bundle.finance is not None:
        _numeric_fields("finance", bundle.finance, issues)
        if bundle.finance.loan_amount > 0 and bundle.finance.loan_term_months < 1:
            issues.append("finance.loan_term_months must be at least 1 for a loan")
    if issues:
        raise DecisionValidationError("; ".join(issues))


__all__ = [
    "DecisionBundle",
    "EMPTY_DECISIONS",
    "EfficiencyInvestment",
    "FactoryDecisions",
    "FinanceDecisions",
    "MarketingDecisions",
    "ProductImprovement",
    "Promotion",
    "RDDecisions",
    "Sponsorship",
    "WorkforceDecisions",
    "validate_decisions",
]
