from __future__ import annotations

from datetime import datetime
from typing import Any

from betasim.core.models import ErrorSeverity, OrchestrationConfig, RunResult

PASSING_SUCCESS_RATE = 80.0
SLOW_RESPONSE_MS = 2000.0
TOP_ERROR_LIMIT = 10


def build_run_report(config: OrchestrationConfig, result: RunResult) -> dict[str, Any]:
    agents = []
    errors = []
    for agent in result.results:
        m = agent.metrics
        agents.append(
            {
                "agent_name": agent.agent_name,
                "persona_type": agent.persona.type.value,
                "status": agent.status.value,
                "duration_ms": m.duration_ms or 0.0,
                "steps_completed": m.steps_completed,
                "steps_total": m.steps_total,
                "success_rate": m.success_rate,
                "error_count": len(m.errors),
                "summary": agent.summary,
            }
        )
        errors.extend({"agent_name": agent.agent_name, **e.to_dict()} for e in m.errors)

    return {
        "config": config.to_dict(),
        "result": {
            "run_id": result.run_id,
            "platform": result.platform,
            "profile": result.profile.value,
            "total_agents": result.total_agents,
            "completed_agents": result.completed_agents,
            "failed_agents": result.failed_agents,
            "success_rate": result.success_rate,
            "duration_seconds": result.duration_seconds,
            "throughput_rps": result.throughput_rps,
            "started_at": result.started_at.isoformat(),
            "completed_at": result.completed_at.isoformat(),
        },
        "metrics": result.aggregates.to_dict(),
        "agents": agents,
        "errors": errors,
    }


def recommendations(report: dict[str, Any]) -> list[str]:
    """Follow-up actions suggested by a run report; empty when nothing stands out."""
    result = report["result"]
    metrics = report["metrics"]
    found: list[str] = []

    if result["success_rate"] < PASSING_SUCCESS_RATE:
        found.append(
            f"**Low success rate (<{PASSING_SUCCESS_RATE:g}%):** "
            "investigate common failure patterns and API reliability."
        )
    if metrics["error_count"] > result["total_agents"] * 2:
        found.append("**High error count:** review error logs and improve error handling.")
    if metrics["avg_response_time_ms"] > SLOW_RESPONSE_MS:
        found.append(
            f"**Slow response times (>{SLOW_RESPONSE_MS / 1000:g}s):** "
            "optimize API endpoints and database queries."
        )
    critical = metrics["errors_by_severity"].get(ErrorSeverity.CRITICAL.value, 0)
    if critical:
        found.append(f"**{critical} critical errors:** address these before beta launch.")
    return found


def render_markdown(report: dict[str, Any]) -> str:
    result = report["result"]
    metrics = report["metrics"]

    lines = [
        f"# Test Run Report: {result['platform'].upper()}",
        "",
        f"**Run ID:** {result['run_id']}",
        f"**Platform:** {result['platform']}",
        f"**Profile:** {result['profile']}",
        f"**Started:** {_format_time(result['started_at'])}",
        f"**Completed:** {_format_time(result['completed_at'])}",
        f"**Duration:** {result['duration_seconds']:.2f}s",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Agents | {result['total_agents']} |",
        f"| Completed | {result['completed_agents']} |",
        f"| Failed | {result['failed_agents']} |",
        f"| Success Rate | {result['success_rate']:.2f}% |",
        f"| Avg Response Time | {metrics['avg_response_time_ms']}ms |",
        f"| Throughput | {metrics['throughput_rps']} req/s |",
        f"| Total Errors | {metrics['error_count']} |",
        "",
        "## Agent Results",
        "",
        "| Agent | Persona | Status | Duration | Steps | Success Rate | Errors |",
        "|-------|---------|--------|----------|-------|--------------|--------|",
    ]
    for a in report["agents"]:
        lines.append(
            f"| {a['agent_name']} | {a['persona_type']} | {a['status']} | {a['duration_ms']:.0f}ms "
            f"| {a['steps_completed']}/{a['steps_total']} | {a['success_rate']:.2f}% | {a['error_count']} |"
        )

    lines += ["", "## Error Analysis", ""]
    if metrics["error_count"] == 0:
        lines.append("No errors occurred during the run.")
    else:
        lines.append(f"**Total Errors:** {metrics['error_count']}")
        lines += ["", "**By Severity:**"]
        for severity in reversed(list(ErrorSeverity)):
            lines.append(f"- {severity.value}: {metrics['errors_by_severity'].get(severity.value, 0)}")
        lines += ["", "**By Type:**"]
        lines += [f"- {error_type}: {count}" for error_type, count in metrics["errors_by_type"].items()]

    lines += [
        "",
        "## Performance Metrics",
        "",
        f"- **Min:** {metrics['min_ms']:.0f}ms",
        f"- **Max:** {metrics['max_ms']:.0f}ms",
        f"- **Avg:** {metrics['avg_response_time_ms']}ms",
        f"- **P50:** {metrics['p50_ms']:.0f}ms",
        f"- **P95:** {metrics['p95_ms']:.0f}ms",
        f"- **P99:** {metrics['p99_ms']:.0f}ms",
        f"- **Total Actions:** {metrics['total_actions']}",
        "",
        "## Persona Distribution",
        "",
    ]
    lines += [f"- {persona}: {count} agents" for persona, count in metrics["persona_distribution"].items()]

    lines += ["", "## Top Errors", ""]
    if not report["errors"]:
        lines.append("No errors to display.")
    for i, e in enumerate(report["errors"][:TOP_ERROR_LIMIT], start=1):
        lines += [
            f"{i}. **{e['type']}** ({e['severity']}) in {e['agent_name']}",
            f"   - Message: {e['message']}",
            f"   - Endpoint: {e['endpoint'] or 'N/A'}",
            f"   - Status: {e['status_code'] or 'N/A'}",
        ]

    lines += ["", "## Recommendations", ""]
    found = recommendations(report)
    if found:
        lines += [f"{i}. {r}" for i, r in enumerate(found, start=1)]
    else:
        lines.append("All agents passed. The platform is ready for beta testing.")

    return "\n".join(lines) + "\n"


def _format_time(value: str) -> str:
    return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M:%S")
