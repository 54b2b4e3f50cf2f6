from __future__ import annotations

from typing import List

from phonesim.balance.metrics import (
    BALANCE_THRESHOLDS,
    BalanceMetrics,
    BalanceThresholds,
    DiversityIndex,
    StrategicHealth,
    passes_balance_check,
)

_WIDTH = 64


def _row(text: str = "") -> str:
    return f"| {text[: _WIDTH - 2].ljust(_WIDTH - 2)} |"


def _rule(char: str = "-") -> str:
    return "+" + char * _WIDTH + "+"


def generate_report(
    metrics: BalanceMetrics,
    diversity: DiversityIndex,
    strategic: StrategicHealth,
    thresholds: BalanceThresholds = BALANCE_THRESHOLDS,
) -> str:
    """Render the boxed plain-text balance report."""

    passed, failures = passes_balance_check(metrics, diversity, thresholds)
    lines: List[str] = [
        _rule("="),
        _row("BALANCE ANALYSIS REPORT".center(_WIDTH - 2)),
        _rule("="),
        _row(f"Status: {'BALANCED' if passed else 'IMBALANCED'}"),
        _rule(),
        _row("CORE METRICS"),
        _row(f"  Average revenue:   ${metrics.average_revenue / 1_000_000:,.1f}M"),
        _row(f"  Revenue spread:    {metrics.revenue_spread:.2f}x"),
        _row(f"  Bankruptcy rate:   {metrics.bankruptcy_rate * 100:.1f}%"),
        _row(f"  Competitiveness:   {metrics.competitiveness * 100:.1f}%"),
        _rule(),
        _row("STRATEGY DIVERSITY"),
        _row(f"  Unique winners:    {diversity.unique_winners}"),
        _row(f"  Diversity score:   {diversity.diversity_score:.2f}"),
        _row(f"  Dominant strategy: {diversity.dominant_strategy or 'None'}"),
        _rule(),
        _row("WIN DISTRIBUTION"),
    ]
    for archetype, rate in diversity.win_distribution.items():
        bar = "#" * int(round(rate * 20))
        lines.append(_row(f"  {archetype:<12} {bar:<20} {rate * 100:5.1f}%"))
    lines.extend(
        [
            _rule(),
            _row("STRATEGIC HEALTH"),
            _row(f"  Strategy variety:   {'yes' if strategic.has_strategy_variety else 'no'}"),
            _row(f"  Snowball risk:      {strategic.snowball_risk * 100:.0f}%"),
            _row(f"  Comeback potential: {strategic.comeback_potential * 100:.0f}%"),
            _row(f"  Decision impact:    {strategic.decision_impact * 100:.0f}%"),
        ]
    )
    if failures:
        lines.append(_rule())
        lines.append(_row("ISSUES DETECTED"))
        for failure in failures:
            lines.append(_row(f"  - {failure}"))
    lines.append(_rule("="))
    return "\n".join(lines) + "\n"


__all__ = ["generate_report"]
