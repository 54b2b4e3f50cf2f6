from __future__ import annotations

import copy

from phonesim.runtime.rng_context import STREAMS, RNGConfig, RNGContext, market_context


def test_same_inputs_give_same_draws() -> None:
    a = RNGContext(seed="s-round-1", round_number=1, team_id="team-0")
    b = RNGContext(seed="s-round-1", round_number=1, team_id="team-0")

    assert [a.rand("materials") for _ in range(5)] == [b.rand("materials") for _ in range(5)]


def test_team_and_round_change_the_stream() -> None:
    base = RNGContext(seed="s", round_number=1, team_id="team-0").rand("factory")

    assert RNGContext(seed="s", round_number=1, team_id="team-1").rand("factory") != base
    assert RNGContext(seed="s", round_number=2, team_id="team-0").rand("factory") != base
    assert RNGContext(seed="t", round_number=1, team_id="team-0").rand("factory") != base


def test_streams_are_independent_of_each_other() -> None:
    quiet = RNGContext(seed="s", round_number=1, team_id="a")
    noisy = RNGContext(seed="s", round_number=1, team_id="a")
    for _ in range(10):
        noisy.rand("workforce")

    assert quiet.rand("materials") == noisy.rand("materials")


def test_stream_is_memoized() -> None:
    ctx = RNGContext(seed="s", round_number=1)

    assert ctx.stream("market") is ctx.stream("market")


def test_counters_and_audit_summary_sorted() -> None:
    ctx = RNGContext(seed="s", round_number=3, team_id="x")
    for _ in range(3):
        ctx.rand("rd")
    ctx.rand("marketing")
    ctx.rand("marketing")

    summary = ctx.audit_summary()
    assert summary[0] == ("rd", 3)
    assert summary[1] == ("marketing", 2)


def test_audit_disabled_keeps_no_counters() -> None:
    ctx = RNGContext(seed="s", round_number=1, config=RNGConfig(audit_enabled=False))
    ctx.rand("general")

    assert ctx.counters == {}
    assert ctx.audit_summary() == []


def test_signature_survives_deepcopy() -> None:
    ctx = RNGContext(seed="s", round_number=1, team_id="a")
    ctx.rand("finance")
    clone = copy.deepcopy(ctx)

    assert clone.signature() == ctx.signature()
    assert clone.rand("finance") == ctx.rand("finance")


def test_seed_bundle_covers_every_stream() -> None:
    bundle = RNGContext(seed="s", round_number=1, team_id="a").seed_bundle()

    assert set(bundle) == set(STREAMS)
    assert len(set(bundle.values())) == len(STREAMS)


def test_market_context_has_no_team() -> None:
    shared = market_context("s", 4)
    explicit = RNGContext(seed="s", round_number=4)

    assert shared.team_id is None
    assert shared.rand("market") == explicit.rand("market")
    assert shared.seed_bundle() != RNGContext(seed="s", round_number=4, team_id="a").seed_bundle()
