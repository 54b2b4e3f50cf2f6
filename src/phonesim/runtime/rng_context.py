from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from hashlib import sha256
from typing import Dict, Tuple

STREAMS: Tuple[str, ...] = (
    "materials",
    "factory",
    "workforce",
    "rd",
    "marketing",
    "finance",
    "market",
    "general",
)

_ANY_TEAM = "*"


@dataclass(slots=True)
class RNGConfig:
    salt: str = "phonesim-rng-v1"
    audit_enabled: bool = True
    max_audit_streams: int = 256


@dataclass
class RNGContext:
    """Named, independently seeded random streams for one team in one round.

    Every stream is derived from ``seed``, ``team_id`` and ``round_number`` so
    the draws a team sees never depend on which other teams exist or the
    order they are processed in.
    """

    seed: str
    round_number: int
    team_id: str | None = None
    config: RNGConfig = field(default_factory=RNGConfig)
    counters: dict[str, int] = field(default_factory=dict)
    _streams: dict[str, random.Random] = field(default_factory=dict, repr=False)

    def _derived_seed(self, stream_key: str) -> int:
        team = self.team_id if self.team_id is not None else _ANY_TEAM
        blob = f"{self.config.salt}|{self.seed}|{team}|{self.round_number}|{stream_key}"
        digest = sha256(blob.encode()).digest()
        return int.from_bytes(digest[:8], "big", signed=False)

    def _count(self, stream_key: str) -> None:
        if not self.config.audit_enabled:
            return
        self.counters[stream_key] = self.counters.get(stream_key, 0) + 1
        if len(self.counters) > self.config.max_audit_streams:
            # Drop the least used streams to keep memory bounded.
            ranked = sorted(self.counters.items(), key=lambda item: (item[1], item[0]))
            for key, _ in ranked[: -self.config.max_audit_streams]:
                self.counters.pop(key, None)

    def stream(self, stream_key: str) -> random.Random:
        rng = self._streams.get(stream_key)
        if rng is None:
            rng = random.Random(self._derived_seed(stream_key))
            self._streams[stream_key] = rng
        return rng

    def rand(self, stream_key: str) -> float:
        self._count(stream_key)
        return self.stream(stream_key).random()

    def seed_bundle(self) -> Dict[str, int]:
        return {name: self._derived_seed(name) for name in STREAMS}

    def signature(self) -> str:
        payload = json.dumps(sorted(self.counters.items()), separators=(",", ":"))
        return sha256(payload.encode()).hexdigest()[:16]

    def audit_summary(self) -> list[tuple[str, int]]:
        if not self.config.audit_enabled:
            return []
        return sorted(self.counters.items(), key=lambda pair: (-pair[1], pair[0]))


def market_context(seed: str, round_number: int, config: RNGConfig | None = None) -> RNGContext:
    """Team-less context shared by demand noise and market drift."""

    return RNGContext(seed=seed, round_number=round_number, config=config or RNGConfig())


__all__ = ["RNGConfig", "RNGContext", "STREAMS", "market_context"]
