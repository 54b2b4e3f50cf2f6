from __future__ import annotations

import math
import random
from dataclasses import replace

from phonesim.runtime import constants as C
from phonesim.runtime.decisions import DecisionBundle
from phonesim.runtime.modules.base import ModuleResult, fmt_millions
from phonesim.runtime.state import MarketState, TeamState


def loan_interest(amount: float, annual_rate_percent: float, term_months: int) -> float:
    """Interest owed over the whole life of a bank loan."""

    return amount * annual_rate_percent / 100.0 * (term_months / 12.0)


def debt_interest(debt: float, annual_rate_percent: float) -> float:
    return debt * annual_rate_percent / 100.0 / C.ROUNDS_PER_YEAR


def process_finance(
    state: TeamState,
    decisions: DecisionBundle,
    market: MarketState,
    round_number: int,
    rng: random.Random,
) -> ModuleResult:
    """Raise or return capital and charge interest.

    Debt carried into the round accrues a quarter of the corporate rate. A new
    loan is charged a twelfth of its lifetime interest in the round it is
    taken. Dividends and buybacks are reported as costs.
    """

    messages: list[str] = []
    corporate = market.interest_rates.corporate_bond
    cash = state.cash
    debt = state.debt
    shares = state.shares_issued
    costs = 0.0

    carried = debt_interest(state.debt, corporate) if state.debt > 0 else 0.0
    if carried > 0:
        cash -= carried
        costs += carried
        messages.append(f"Interest on {fmt_millions(state.debt)} debt: {fmt_millions(carried)}")

    plan = decisions.finance
    if plan is not None:
        for label, amount in (("treasury bills", plan.treasury_bills), ("corporate bonds", plan.corporate_bonds)):
            if amount <= 0:
                continue
            cash += amount
            debt += amount
            messages.append(f"Issued {fmt_millions(amount)} in {label}")

        if plan.loan_amount > 0:
            term = plan.loan_term_months
            interest = loan_interest(plan.loan_amount, corporate, term) / 12.0
            cash += plan.loan_amount - interest
            debt += plan.loan_amount
            costs += interest
            kind = "short-term" if term <= 12 else "long-term"
            messages.append(f"Secured {fmt_millions(plan.loan_amount)} {kind} loan at {corporate:.1f}%")

        if plan.share_buyback > 0 and state.share_price > 0:
            if plan.share_buyback <= cash:
                retired = math.floor(plan.share_buyback / state.share_price)
                shares = max(C.MIN_SHARES_OUTSTANDING, shares - retired)
                cash -= plan.share_buyback
                costs += plan.share_buyback
                messages.append(f"Bought back {retired:,} shares for {fmt_millions(plan.share_buyback)}")
            else:
                messages.append("Insufficient cash for share buyback")

        dividend = plan.dividend_per_share * shares
        if dividend > 0:
            if dividend <= cash:
                cash -= dividend
                costs += dividend
                messages.append(f"Paid dividends of {fmt_millions(dividend)}")
            else:
                messages.append("Insufficient cash for dividend")

    new_state = replace(
        state,
        cash=cash,
        debt=debt,
        total_liabilities=debt,
        shares_issued=shares,
    )
    return ModuleResult(state=new_state, costs=costs, messages=messages)


__all__ = ["debt_interest", "loan_interest", "process_finance"]
