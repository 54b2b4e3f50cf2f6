from __future__ import annotations

import random
from dataclasses import replace

import pytest

from phonesim.errors import ModuleProcessingError
from phonesim.runtime import constants as C
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
)
from phonesim.runtime.modules import (
    DEFAULT_PIPELINE,
    process_factory,
    process_finance,
    process_marketing,
    process_materials,
    process_rd,
    process_workforce,
)
from phonesim.runtime.modules.factory import allocate_production, apply_efficiency_investment, donation_esg
from phonesim.runtime.modules.finance import debt_interest, loan_interest
from phonesim.runtime.modules.marketing import advertising_impact, branding_impact
from phonesim.runtime.modules.workforce import payroll, turnover_rate
from phonesim.runtime.state import create_initial_market_state, create_initial_team_state


class _Fixed(random.Random):
    """Random whose ``random()`` always returns the same value."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def _run(processor, decisions=EMPTY_DECISIONS, state=None, draw: float = 0.5):
    return processor(
        state or create_initial_team_state(),
        decisions,
        create_initial_market_state(),
        1,
        _Fixed(draw),
    )


def test_pipeline_order() -> None:
    assert [name for name, _ in DEFAULT_PIPELINE] == ["materials", "factory", "workforce", "rd", "marketing", "finance"]


def test_materials_unit_cost_and_automation_discount() -> None:
    plain = _run(process_materials).state
    automated_state = create_initial_team_state()
    automated_state = replace(
        automated_state,
        factories=(replace(automated_state.factories[0], upgrades=("automation",)),),
    )
    automated = _run(process_materials, state=automated_state).state

    budget = plain.product_for_segment(C.BUDGET)
    assert budget is not None
    # 50 raw, no jitter at 0.5, plus (20 + 15) / 0.85 conversion
    assert budget.unit_cost == pytest.approx(50 + 35 / 0.85, abs=0.01)
    assert automated.product_for_segment(C.BUDGET).unit_cost < budget.unit_cost


def test_materials_unknown_segment_is_a_hard_failure() -> None:
    state = create_initial_team_state()
    state = replace(state, products=(replace(state.products[0], segment="Luxury"),))

    with pytest.raises(ModuleProcessingError):
        _run(process_materials, state=state)


def test_efficiency_investment_diminishes_past_threshold() -> None:
    factory = replace(create_initial_team_state().factories[0], efficiency_investment={"machinery": 9_000_000})
    updated, gain = apply_efficiency_investment(factory, EfficiencyInvestment(machinery=2_000_000))

    assert gain == pytest.approx(0.012 + 0.006)
    assert updated.efficiency == pytest.approx(0.718)
    assert updated.efficiency_investment["machinery"] == 11_000_000


def test_factory_spend_is_charged_and_upgrades_are_once_only() -> None:
    state = create_initial_team_state()
    decisions = DecisionBundle(
        factory=FactoryDecisions(
            efficiency_investments={"factory-1": EfficiencyInvestment(machinery=1_000_000)},
            upgrade_purchases=(("factory-1", "automation"), ("factory-1", "automation")),
        )
    )
    result = _run(process_factory, decisions, state=state, draw=0.99)

    assert result.costs == pytest.approx(1_000_000 + C.AUTOMATION_UPGRADE_COST)
    assert result.state.cash == pytest.approx(state.cash - result.costs)
    assert result.state.factories[0].upgrades == ("automation",)
    assert any("already has automation" in m for m in result.messages)


def test_factory_skips_unaffordable_spend() -> None:
    state = replace(create_initial_team_state(), cash=1_000_000)
    decisions = DecisionBundle(factory=FactoryDecisions(upgrade_purchases=(("factory-1", "solar_panels"),)))
    result = _run(process_factory, decisions, state=state, draw=0.99)

    assert result.costs == 0
    assert result.state.factories[0].upgrades == ()


def test_factory_breakdown_draw() -> None:
    broken = _run(process_factory, draw=0.01).state

    assert broken.factories[0].efficiency == pytest.approx(0.7 - C.BREAKDOWN_EFFICIENCY_LOSS)


def test_donation_esg() -> None:
    assert donation_esg(1_000_000, 0.0) == pytest.approx(1.0)
    assert donation_esg(1_000_000, 100_000_000) == pytest.approx(6.28)
    assert donation_esg(0.0, 100.0) == 0.0


def test_payroll_and_turnover_rate() -> None:
    assert payroll(50, 8, 5, 1.0) == pytest.approx((50 * 60_000 + 8 * 120_000 + 5 * 90_000) / 4)
    assert turnover_rate(70) == pytest.approx(0.12)
    assert turnover_rate(40) == pytest.approx(0.27)


def test_workforce_costs_match_cash_movement() -> None:
    state = create_initial_team_state()
    decisions = DecisionBundle(workforce=WorkforceDecisions(hire_workers=10, training_budget=500_000))
    result = _run(process_workforce, decisions, state=state)

    assert result.state.cash == pytest.approx(state.cash - result.costs)
    assert result.state.workforce.average_morale > state.workforce.average_morale
    assert result.state.workforce.labor_cost > 0


def test_layoffs_hurt_morale() -> None:
    result = _run(process_workforce, DecisionBundle(workforce=WorkforceDecisions(layoffs=20)))

    assert result.state.workforce.average_morale < 70
    assert result.state.workforce.workers <= 30


def test_rd_progress_patents_and_improvements() -> None:
    state = replace(create_initial_team_state(), rd_progress=480)
    decisions = DecisionBundle(
        rd=RDDecisions(
            rd_budget=5_000_000,
            product_improvements=(ProductImprovement("budget-product", quality_increase=2, features_increase=2),),
        )
    )
    result = _run(process_rd, decisions, state=state)

    # yield 1.0 at draw 0.5
    assert result.state.rd_progress == pytest.approx(530)
    assert result.state.patents == 1
    budget = result.state.product_for_segment(C.BUDGET)
    assert budget.quality == 52 and budget.features == 32
    assert result.costs == pytest.approx(5_000_000 + 2_000_000 + 1_000_000)


def test_rd_negative_or_unaffordable_budget_spends_nothing() -> None:
    negative = _run(process_rd, DecisionBundle(rd=RDDecisions(rd_budget=-10)))
    broke = _run(
        process_rd,
        DecisionBundle(rd=RDDecisions(rd_budget=5_000_000)),
        state=replace(create_initial_team_state(), cash=0),
    )

    assert negative.costs == 0
    assert broke.costs == 0
    assert any("Insufficient cash" in m for m in broke.messages)


def test_advertising_chunks_decay() -> None:
    assert advertising_impact(3_000_000, C.GENERAL) == pytest.approx(0.0045)
    assert advertising_impact(6_000_000, C.GENERAL) == pytest.approx(0.0045 + 0.0018)
    assert advertising_impact(3_000_000, C.PROFESSIONAL) < advertising_impact(3_000_000, C.BUDGET)


def test_branding_is_linear_then_logarithmic() -> None:
    assert branding_impact(5_000_000) == pytest.approx(0.0125)
    assert branding_impact(20_000_000) == pytest.approx(0.025)


def test_marketing_caps_growth_then_decays() -> None:
    state = create_initial_team_state()
    result = _run(process_marketing, DecisionBundle(marketing=MarketingDecisions(branding_investment=20_000_000)))

    assert result.state.brand_value == pytest.approx((state.brand_value + 0.02) * (1 - C.BRAND_DECAY_RATE))
    assert result.state.cash == pytest.approx(state.cash - 20_000_000)


def test_promotions_last_one_round() -> None:
    promo = DecisionBundle(
        marketing=MarketingDecisions(promotions=(Promotion(segment=C.BUDGET, discount_percent=10),))
    )
    discounted = _run(process_marketing, promo).state
    assert discounted.product_for_segment(C.BUDGET).price == 180

    next_round = _run(process_marketing, state=discounted).state
    assert next_round.product_for_segment(C.BUDGET).price == 200


def test_sponsorship_requires_cash() -> None:
    decisions = DecisionBundle(
        marketing=MarketingDecisions(sponsorships=(Sponsorship(name="Stadium", cost=5_000_000, brand_impact=0.01),))
    )
    result = _run(process_marketing, decisions, state=replace(create_initial_team_state(), cash=1_000_000))

    assert result.costs == 0
    assert any("Insufficient funds" in m for m in result.messages)


def test_finance_charges_loan_interest_and_dividends() -> None:
    state = create_initial_team_state()
    decisions = DecisionBundle(finance=FinanceDecisions(loan_amount=10_000_000, dividend_per_share=0.5))
    result = _run(process_finance, decisions, state=state)

    # a 12 month loan at the 6% corporate rate owes 600k, a twelfth is due now
    interest = 10_000_000 * 0.06 / 12
    dividends = 0.5 * state.shares_issued
    assert result.costs == pytest.approx(interest + dividends)
    assert result.state.debt == 10_000_000
    assert result.state.total_liabilities == 10_000_000
    assert result.state.cash == pytest.approx(state.cash + 10_000_000 - dividends - interest)
    assert any("short-term" in m for m in result.messages)


def test_loan_term_scales_interest() -> None:
    short = _run(process_finance, DecisionBundle(finance=FinanceDecisions(loan_amount=10_000_000)))
    long = _run(process_finance, DecisionBundle(finance=FinanceDecisions(loan_amount=10_000_000, loan_term_months=36)))

    assert long.costs == pytest.approx(3 * short.costs)
    assert loan_interest(10_000_000, 6.0, 36) == pytest.approx(1_800_000)
    assert any("long-term" in m for m in long.messages)


def test_carried_debt_accrues_quarterly_interest() -> None:
    state = replace(create_initial_team_state(), debt=20_000_000, total_liabilities=20_000_000)
    result = _run(process_finance, DecisionBundle(finance=FinanceDecisions(corporate_bonds=5_000_000)), state=state)

    assert result.costs == pytest.approx(debt_interest(20_000_000, 6.0))
    assert result.costs == pytest.approx(300_000)
    assert result.state.debt == 25_000_000
    assert result.state.cash == pytest.approx(state.cash + 5_000_000 - 300_000)


def test_share_buyback_retires_shares() -> None:
    state = create_initial_team_state()
    result = _run(process_finance, DecisionBundle(finance=FinanceDecisions(share_buyback=5_000_000)), state=state)

    assert result.state.shares_issued == pytest.approx(state.shares_issued - 100_000)
    assert result.costs == pytest.approx(5_000_000)
    assert result.state.cash == pytest.approx(state.cash - 5_000_000)


def test_buyback_keeps_a_share_floor() -> None:
    state = replace(create_initial_team_state(), shares_issued=1_050_000)
    result = _run(process_finance, DecisionBundle(finance=FinanceDecisions(share_buyback=5_000_000)), state=state)

    assert result.state.shares_issued == C.MIN_SHARES_OUTSTANDING


def test_production_allocation_idles_unlisted_segments() -> None:
    allocation = {C.BUDGET: 60.0, C.GENERAL: 40.0}
    decisions = DecisionBundle(factory=FactoryDecisions(production_allocation=allocation))
    idled = _run(process_factory, decisions, draw=0.99).state

    assert idled.product_for_segment(C.BUDGET) is not None
    assert idled.product_for_segment(C.PROFESSIONAL) is None
    assert {p.status for p in idled.products if p.segment not in allocation} == {"idle"}

    resumed = _run(process_factory, state=idled, draw=0.99)
    assert all(p.launched for p in resumed.state.products)
    assert any("production resumed" in m for m in resumed.messages)


def test_allocate_production_leaves_discontinued_lines() -> None:
    state = create_initial_team_state()
    retired = replace(state.products[0], status="discontinued")
    products, messages = allocate_production((retired,), None)

    assert products == (retired,)
    assert messages == []
