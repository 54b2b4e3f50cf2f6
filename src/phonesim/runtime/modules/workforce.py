"""Workforce department: hiring, layoffs, pay, training and turnover."""

from __future__ import annotations

import random
from dataclasses import replace

from phonesim.runtime import constants as C
from phonesim.runtime.decisions import DecisionBundle
from phonesim.runtime.modules.base import ModuleResult, fmt_millions
from phonesim.runtime.state import MarketState, TeamState, Workforce


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def payroll(workers: int, engineers: int, supervisors: int, salary_multiplier: float) -> float:
    annual = (
        workers * C.ANNUAL_SALARY["workers"]
        + engineers * C.ANNUAL_SALARY["engineers"]
        + supervisors * C.ANNUAL_SALARY["supervisors"]
    )
    return annual / C.ROUNDS_PER_YEAR * salary_multiplier


def turnover_rate(morale: float) -> float:
    rate = C.BASE_TURNOVER_RATE
    if morale < 50:
        rate += C.LOW_MORALE_TURNOVER
    return min(0.5, rate)


def _departures(count: int, rate: float, draw: float) -> int:
    if count <= 0:
        return 0
    return min(count, int(round(count * rate / C.ROUNDS_PER_YEAR * (0.5 + draw))))


def process_workforce(
    state: TeamState,
    decisions: DecisionBundle,
    market: MarketState,
    round_number: int,
    rng: random.Random,
) -> ModuleResult:
    wf = state.workforce
    messages: list[str] = []
    cash = state.cash
    costs = 0.0
    workers, engineers, supervisors = wf.workers, wf.engineers, wf.supervisors
    morale = wf.average_morale
    salary_multiplier = wf.salary_multiplier

    plan = decisions.workforce
    if plan is not None:
        hire_cost = (
            plan.hire_workers * C.HIRE_COST["workers"]
            + plan.hire_engineers * C.HIRE_COST["engineers"]
            + plan.hire_supervisors * C.HIRE_COST["supervisors"]
        )
        if hire_cost > 0:
            if hire_cost > cash:
                messages.append(f"Insufficient cash to hire ({fmt_millions(hire_cost)})")
            else:
                workers += plan.hire_workers
                engineers += plan.hire_engineers
                supervisors += plan.hire_supervisors
                cash -= hire_cost
                costs += hire_cost
                messages.append(
                    f"Hired {plan.hire_workers} workers, {plan.hire_engineers} engineers, "
                    f"{plan.hire_supervisors} supervisors"
                )
        if plan.layoffs > 0:
            cut = min(plan.layoffs, workers)
            headcount = max(1, workers + engineers + supervisors)
            workers -= cut
            severance = cut * C.LAYOFF_COST
            cash -= severance
            costs += severance
            morale -= cut / headcount * 20.0
            messages.append(f"Laid off {cut} workers")
        if plan.salary_adjustment_percent:
            salary_multiplier = max(0.5, salary_multiplier * (1.0 + plan.salary_adjustment_percent / 100.0))
            morale += plan.salary_adjustment_percent * 0.5
        if plan.training_budget > 0 and plan.training_budget <= cash:
            morale += plan.training_budget / 100_000 * C.MORALE_PER_100K_TRAINING
            cash -= plan.training_budget
            costs += plan.training_budget

    morale = _clamp(morale, 0.0, 100.0)
    rate = turnover_rate(morale)
    left = (
        _departures(workers, rate, rng.random()),
        _departures(engineers, rate, rng.random()),
        _departures(supervisors, rate, rng.random()),
    )
    workers -= left[0]
    engineers -= left[1]
    supervisors -= left[2]
    if sum(left):
        messages.append(f"Turnover: {sum(left)} employees left")

    labor_cost = payroll(workers, engineers, supervisors, salary_multiplier)
    cash -= labor_cost
    costs += labor_cost

    workforce = Workforce(
        workers=workers,
        engineers=engineers,
        supervisors=supervisors,
        average_morale=morale,
        turnover_rate=rate,
        labor_cost=labor_cost,
        salary_multiplier=salary_multiplier,
    )
    return ModuleResult(state=replace(state, cash=cash, workforce=workforce), costs=costs, messages=messages)


__all__ = ["payroll", "process_workforce", "turnover_rate"]
