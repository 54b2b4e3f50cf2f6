"""In-process telemetry for engine and harness runs.

There is no global logger. Callers pass a ``Metrics`` sink down and read it
back afterwards; structured events go to a bounded ring so long harness runs
keep memory flat.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Mapping


@dataclass(frozen=True, slots=True)
class TopKEntry:
    key: str
    score: float
    payload: Mapping[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class TopK:
    """Highest-scoring keys; equal scores order by key."""

    k: int = 10
    entries: list[TopKEntry] = field(default_factory=list)

    def add(self, key: str, score: float, payload: Mapping[str, object] | None = None) -> None:
        limit = max(1, int(self.k))
        candidate = TopKEntry(key=key, score=float(score), payload=dict(payload or {}))
        ranked = sorted([*self.entries, candidate], key=lambda e: (-e.score, e.key))
        self.entries = ranked[:limit]

    def snapshot(self) -> list[dict[str, object]]:
        return [{"key": e.key, "score": e.score, "payload": dict(e.payload)} for e in self.entries]


@dataclass(slots=True)
class EventRing:
    capacity: int = 200
    events: Deque[dict[str, object]] = field(default_factory=deque)
    recorded: int = 0

    def __post_init__(self) -> None:
        self.events = deque(self.events, maxlen=max(0, int(self.capacity)))

    def append(self, event: Mapping[str, object]) -> None:
        self.recorded += 1
        self.events.append(dict(event))

    def tail(self, n: int = 10) -> list[dict[str, object]]:
        n = max(0, int(n))
        return list(self.events)[-n:] if n else []


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in sorted(value.items(), key=lambda item: str(item[0]))}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return str(value)


@dataclass(slots=True)
class Metrics:
    """Counters, gauges, top-k tables and a bounded event ring.

    Not thread-safe; callers running work on several threads update it from
    the collecting thread only.
    """

    counters: dict[str, float] = field(default_factory=dict)
    gauges: dict[str, Any] = field(default_factory=dict)
    topk: dict[str, TopK] = field(default_factory=dict)
    events: EventRing = field(default_factory=EventRing)

    def inc(self, path: str, n: float = 1.0) -> float:
        total = self.counters.get(path, 0.0) + float(n)
        self.counters[path] = total
        return total

    def counter(self, path: str) -> float:
        return self.counters.get(path, 0.0)

    def set_gauge(self, path: str, value: Any) -> Any:
        self.gauges[path] = value
        return value

    def topk_add(self, path: str, key: str, score: float, payload: Mapping[str, object] | None = None) -> None:
        self.topk.setdefault(path, TopK()).add(key, score, payload=payload)

    def snapshot(self) -> dict[str, Any]:
        return {
            "counters": {k: float(v) for k, v in sorted(self.counters.items())},
            "gauges": _jsonable(self.gauges),
            "topk": {k: bucket.snapshot() for k, bucket in sorted(self.topk.items())},
            "events_recorded": self.events.recorded,
        }

    def snapshot_signature(self) -> str:
        return json.dumps(self.snapshot(), sort_keys=True, separators=(",", ":"))


def record_event(metrics: Metrics | None, event: Mapping[str, object]) -> None:
    """Append ``event`` to the sink's ring; a missing sink or zero capacity is a no-op."""

    if metrics is None or metrics.events.capacity <= 0:
        return
    metrics.events.append(event)


__all__ = ["EventRing", "Metrics", "TopK", "TopKEntry", "record_event"]
