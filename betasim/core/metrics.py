"""Run-level aggregation.

Everything here is a pure function of already-finished agent results, so
aggregation can be tested without storage or a running event loop.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime
from typing import Iterable, Sequence

from betasim.core.models import (
    AgentResult,
    AgentStatus,
    ErrorSeverity,
    RunAggregates,
    RunResult,
    SchedulingProfile,
)


def success_rate(successful: int, total: int) -> float:
    """Percentage of successes; 0 when nothing was attempted."""
    if total <= 0:
        return 0.0
    return successful / total * 100


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile.

    Expects sorted_values sorted ascending. ``p`` is in percent (0-100); the
    value is taken at index ``ceil(p/100 * n) - 1``. Returns 0 when empty.
    """

    if not sorted_values:
        return 0.0
    index = math.ceil(p / 100 * len(sorted_values)) - 1
    index = min(max(index, 0), len(sorted_values) - 1)
    return float(sorted_values[index])


def throughput(total_actions: int, duration_ms: float) -> float:
    """Recorded actions per second of wall-clock run time."""
    if duration_ms <= 0:
        return 0.0
    return total_actions / (duration_ms / 1000)


def mean(values: Sequence[float]) -> float:
    return (sum(values) / len(values)) if values else 0.0


def _collect_durations(results: Iterable[AgentResult]) -> list[float]:
    durations: list[float] = []
    for result in results:
        durations.extend(result.metrics.response_times)
    durations.sort()
    return durations


def build_aggregates(results: Sequence[AgentResult], duration_ms: float) -> RunAggregates:
    durations = _collect_durations(results)
    total_actions = sum(len(r.metrics.actions) for r in results)

    severity_counts: Counter[str] = Counter()
    type_counts: Counter[str] = Counter()
    for result in results:
        for error in result.metrics.errors:
            severity_counts[error.severity.value] += 1
            type_counts[error.type] += 1

    return RunAggregates(
        avg_response_time_ms=round(mean(durations), 2),
        min_ms=durations[0] if durations else 0.0,
        max_ms=durations[-1] if durations else 0.0,
        p50_ms=percentile(durations, 50),
        p95_ms=percentile(durations, 95),
        p99_ms=percentile(durations, 99),
        throughput_rps=round(throughput(total_actions, duration_ms), 2),
        total_actions=total_actions,
        error_count=sum(severity_counts.values()),
        errors_by_severity={s.value: severity_counts.get(s.value, 0) for s in ErrorSeverity},
        errors_by_type=dict(type_counts.most_common()),
        persona_distribution=dict(Counter(r.persona.type.value for r in results)),
    )


def aggregate_run(
    *,
    run_id: str,
    platform: str,
    profile: SchedulingProfile,
    agent_count: int,
    results: list[AgentResult],
    duration_ms: float,
    started_at: datetime,
    completed_at: datetime,
) -> RunResult:
    """Assemble the RunResult for a finished run."""
    completed = sum(1 for r in results if r.status == AgentStatus.COMPLETED)
    failed = sum(1 for r in results if r.status == AgentStatus.FAILED)

    return RunResult(
        run_id=run_id,
        platform=platform,
        profile=profile,
        total_agents=agent_count,
        completed_agents=completed,
        failed_agents=failed,
        duration_ms=duration_ms,
        success_rate=success_rate(completed, agent_count),
        results=list(results),
        aggregates=build_aggregates(results, duration_ms),
        started_at=started_at,
        completed_at=completed_at,
    )
