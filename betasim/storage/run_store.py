"""Run storage layout and record management.

Directory structure written by ``JsonRunStore``::

    <data_dir>/runs/
    ├── <run_id>/
    │   ├── run.json        # run descriptor: config snapshot, counts, aggregates
    │   ├── agents.json     # one record per agent: status, metrics, durations
    │   └── errors.json     # one record per error, tagged with its agent
    └── ...
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from betasim.core.models import OrchestrationConfig, RunResult
from betasim.exceptions import RunNotFoundError, StorageError

_RUN_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass
class StoredRun:
    """A persisted run read back with its agents and errors."""

    run: dict[str, Any]
    agents: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)


class RunStore(Protocol):
    def save_run(self, result: RunResult, config: OrchestrationConfig) -> None: ...

    def load_run(self, run_id: str) -> StoredRun: ...


def build_run_record(result: RunResult, config: OrchestrationConfig) -> dict[str, Any]:
    record = result.to_dict()
    record["configuration"] = config.to_dict()
    record["error_count"] = result.aggregates.error_count
    record["status"] = "COMPLETED"
    return record


def build_agent_records(result: RunResult) -> list[dict[str, Any]]:
    records = []
    for agent in result.results:
        metrics = agent.metrics
        records.append(
            {
                "agent_name": agent.agent_name,
                "persona_type": agent.persona.type.value,
                "persona": agent.persona.to_dict(),
                "status": agent.status.value,
                "summary": agent.summary,
                "steps_total": metrics.steps_total,
                "steps_completed": metrics.steps_completed,
                "success_rate": metrics.success_rate,
                "duration_ms": metrics.duration_ms,
                "response_times": list(metrics.response_times),
                "actions": [a.to_dict() for a in metrics.actions],
                "decisions": [d.to_dict() for d in metrics.decisions],
                "error_count": len(metrics.errors),
            }
        )
    return records


def build_error_records(result: RunResult) -> list[dict[str, Any]]:
    records = []
    for agent in result.results:
        for error in agent.metrics.errors:
            record = error.to_dict()
            record["agent_name"] = agent.agent_name
            records.append(record)
    return records


class JsonRunStore:
    """Persists runs as JSON documents under a data directory."""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def runs_dir(self) -> Path:
        return self._data_dir / "runs"

    def run_dir(self, run_id: str) -> Path:
        if not _RUN_ID_RE.match(run_id):
            raise StorageError(f"invalid run id: {run_id!r}", {"run_id": run_id})
        return self.runs_dir / run_id

    def save_run(self, result: RunResult, config: OrchestrationConfig) -> None:
        """Write run, agent and error records for a finished run.

        ``run.json`` marks a run as stored, so it is written last.
        """
        path = self.run_dir(result.run_id)
        try:
            path.mkdir(parents=True, exist_ok=True)
            self._write(path / "agents.json", build_agent_records(result))
            self._write(path / "errors.json", build_error_records(result))
            self._write(path / "run.json", build_run_record(result, config))
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"failed to persist run {result.run_id}: {exc}", {"run_id": result.run_id}) from exc

    def load_run(self, run_id: str) -> StoredRun:
        """Load a run with its agents and errors (errors newest first)."""
        path = self.run_dir(run_id)
        run_path = path / "run.json"
        if not run_path.exists():
            raise RunNotFoundError(f"Test run not found: {run_id}", {"run_id": run_id})

        errors = self._read(path / "errors.json", default=[])
        errors.sort(key=lambda e: e.get("timestamp", ""), reverse=True)
        return StoredRun(
            run=self._read(run_path, default={}),
            agents=self._read(path / "agents.json", default=[]),
            errors=errors,
        )

    def run_status(self, run_id: str) -> dict[str, Any]:
        """Summarise a stored run: counts per agent status plus headline aggregates."""
        stored = self.load_run(run_id)
        statuses = [a.get("status") for a in stored.agents]
        aggregates = stored.run.get("aggregates", {})
        return {
            "id": run_id,
            "status": stored.run.get("status"),
            "platform": stored.run.get("platform"),
            "agent_count": stored.run.get("total_agents", len(stored.agents)),
            "completed_agents": statuses.count("COMPLETED"),
            "running_agents": statuses.count("RUNNING"),
            "failed_agents": statuses.count("FAILED"),
            "duration_ms": stored.run.get("duration_ms"),
            "success_rate": stored.run.get("success_rate"),
            "avg_response_time_ms": aggregates.get("avg_response_time_ms"),
            "throughput_rps": aggregates.get("throughput_rps"),
            "error_count": len(stored.errors),
            "started_at": stored.run.get("started_at"),
            "completed_at": stored.run.get("completed_at"),
        }

    def list_runs(self) -> list[str]:
        if not self.runs_dir.exists():
            return []
        return sorted(p.name for p in self.runs_dir.iterdir() if (p / "run.json").exists())

    @staticmethod
    def _write(path: Path, payload: Any) -> None:
        path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")

    @staticmethod
    def _read(path: Path, *, default: Any) -> Any:
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StorageError(f"corrupt run file: {path}", {"path": str(path)}) from exc
