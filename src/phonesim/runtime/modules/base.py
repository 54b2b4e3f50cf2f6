from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable

from phonesim.runtime.decisions import DecisionBundle
from phonesim.runtime.state import MarketState, TeamState


@dataclass(slots=True)
class ModuleResult:
    state: TeamState
    costs: float = 0.0
    messages: list[str] = field(default_factory=list)


ModuleProcessor = Callable[[TeamState, DecisionBundle, MarketState, int, random.Random], ModuleResult]


def affordable(state: TeamState, amount: float) -> bool:
    return amount <= 0 or state.cash >= amount


def fmt_millions(amount: float) -> str:
    return f"${amount / 1_000_000:.1f}M"


__all__ = ["ModuleProcessor", "ModuleResult", "affordable", "fmt_millions"]
