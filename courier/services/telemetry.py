from __future__ import annotations

import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque


@dataclass(frozen=True)
class ActivitySample:
    ts: float
    activity: str
    outcome: str
    latency_ms: float


_activity_samples: Deque[ActivitySample] = deque(maxlen=10000)
_counters: dict[str, int] = defaultdict(int)


def increment_counter(name: str, value: int = 1) -> None:
    # Store counters for outcome dashboards and retry-storm detection.
    _counters[name] += value


def record_activity(*, activity: str, outcome: str, latency_ms: float) -> None:
    # Track per-activity latency and outcome for worker observability.
    _activity_samples.append(
        ActivitySample(ts=time.time(), activity=activity, outcome=outcome, latency_ms=latency_ms)
    )
    increment_counter(f"{activity}.{outcome}")


def activity_stats(window_s: int) -> dict[str, dict[str, int]]:
    cutoff = time.time() - window_s
    stats: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for sample in _activity_samples:
        if sample.ts >= cutoff:
            stats[sample.activity][sample.outcome] += 1
    return {activity: dict(outcomes) for activity, outcomes in stats.items()}


def counters_snapshot() -> dict[str, int]:
    # Return a copy of all counters for metrics reporting.
    return dict(_counters)


def reset() -> None:
    # Tests share the process; clear state between them.
    _counters.clear()
    _activity_samples.clear()
