from __future__ import annotations

from dataclasses import replace

import pytest

from phonesim.balance.metrics import (
    BalanceMetrics,
    DiversityIndex,
    compute_balance_metrics,
    compute_diversity,
    compute_strategic_health,
    diversity_score,
    is_close_game,
    passes_balance_check,
    revenue_variance_share,
)
from phonesim.balance.runs import RoundRecord, SimulationRun, TeamRunMetrics, TeamRunResult
from phonesim.runtime.state import create_initial_market_state, create_initial_team_state


def _run(rows: dict[str, list[float]], archetypes: dict[str, str], bankrupt=()) -> SimulationRun:
    base = create_initial_team_state()
    market = create_initial_market_state()
    rounds = len(next(iter(rows.values())))
    records = tuple(
        RoundRecord(
            round_number=i + 1,
            team_states={tid: replace(base, revenue=revs[i]) for tid, revs in rows.items()},
            market_state=market,
        )
        for i in range(rounds)
    )
    totals = {tid: sum(revs) for tid, revs in rows.items()}
    ordered = sorted(rows, key=lambda tid: -totals[tid])
    results = tuple(
        TeamRunResult(
            team_id=tid,
            archetype=archetypes[tid],
            final_state=base,
            final_rank=ordered.index(tid) + 1,
            metrics=TeamRunMetrics(
                total_revenue=totals[tid],
                total_net_income=0.0,
                average_market_share=0.0,
                peak_cash=0.0,
                min_cash=0.0,
                went_bankrupt=tid in bankrupt,
            ),
        )
        for tid in rows
    )
    return SimulationRun(
        seed="synthetic",
        team_results=results,
        winner_id=ordered[0],
        winner_archetype=archetypes[ordered[0]],
        rounds=records,
        rankings=(),
    )


ARCH = {"t0": "volume", "t1": "premium"}


def test_diversity_score_bounds() -> None:
    assert diversity_score({}) == 0.0
    assert diversity_score({"volume": 0, "premium": 0}) == 0.0
    assert diversity_score({"volume": 5}) == 0.0
    assert diversity_score({"volume": 10, "premium": 0}) == 0.0
    assert diversity_score({"volume": 5, "premium": 5}) == pytest.approx(1.0)
    assert 0.0 < diversity_score({"volume": 8, "premium": 1, "brand": 1}) < 1.0


def test_compute_diversity_flags_dominance() -> None:
    index = compute_diversity(["volume", "volume", "premium"], ["volume", "premium", "brand"])

    assert index.unique_winners == 2
    assert index.win_counts == {"volume": 2, "premium": 1, "brand": 0}
    assert index.win_distribution["volume"] == pytest.approx(2 / 3)
    assert index.has_dominant_strategy
    assert index.dominant_strategy == "volume"


def test_compute_diversity_with_no_games() -> None:
    index = compute_diversity([], ["volume", "premium"])

    assert index.unique_winners == 0
    assert index.dominant_strategy is None
    assert index.diversity_score == 0.0


def test_is_close_game() -> None:
    assert is_close_game([200.0, 180.0])
    assert not is_close_game([300.0, 100.0])
    assert not is_close_game([100.0])


def test_compute_balance_metrics() -> None:
    close = _run({"t0": [100.0, 100.0], "t1": [90.0, 90.0]}, ARCH)
    blowout = _run({"t0": [300.0], "t1": [100.0]}, ARCH, bankrupt=("t1",))

    metrics = compute_balance_metrics([close, blowout])

    assert metrics.average_revenue == pytest.approx(195.0)
    assert metrics.revenue_spread == pytest.approx(3.0)
    assert metrics.bankruptcy_rate == pytest.approx(0.5)
    assert metrics.competitiveness == pytest.approx(0.5)
    assert compute_balance_metrics([]) == BalanceMetrics(0.0, 0.0, 0.0, 0.0)


def test_strategic_health_snowball_and_comeback() -> None:
    snowball = _run({"t0": [100.0, 100.0], "t1": [90.0, 90.0]}, ARCH)
    comeback = _run({"t0": [10.0, 500.0], "t1": [100.0, 100.0]}, ARCH)
    diversity = compute_diversity([snowball.winner_archetype, comeback.winner_archetype], list(ARCH.values()))

    health = compute_strategic_health([snowball, comeback], diversity)

    assert health.snowball_risk == pytest.approx(0.5)
    assert health.comeback_potential == pytest.approx(0.5)
    assert not health.has_strategy_variety


def test_revenue_variance_share() -> None:
    assert revenue_variance_share({"a": [1.0, 1.0], "b": [3.0, 3.0]}) == pytest.approx(1.0)
    assert revenue_variance_share({"a": [1.0, 3.0], "b": [1.0, 3.0]}) == pytest.approx(0.0)
    assert revenue_variance_share({"a": [2.0, 2.0], "b": [2.0, 2.0]}) == 0.0
    assert revenue_variance_share({"a": [5.0]}) == 0.0


def test_passes_balance_check() -> None:
    healthy = BalanceMetrics(average_revenue=1.0, revenue_spread=2.0, bankruptcy_rate=0.0, competitiveness=0.5)
    varied = DiversityIndex(unique_winners=4, diversity_score=0.9)

    assert passes_balance_check(healthy, varied) == (True, [])

    broken = BalanceMetrics(average_revenue=1.0, revenue_spread=4.2, bankruptcy_rate=0.2, competitiveness=0.1)
    dominated = DiversityIndex(
        unique_winners=1, has_dominant_strategy=True, dominant_strategy="volume", diversity_score=0.0
    )
    passed, failures = passes_balance_check(broken, dominated)

    assert not passed
    assert failures[0].startswith("Dominant strategy detected: volume")
    assert any(f.startswith("Bankruptcy rate too high: 20.0%") for f in failures)
    assert any("Revenue spread too high: 4.20x" in f for f in failures)
    assert any(f.startswith("Competitiveness too low") for f in failures)
