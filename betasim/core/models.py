from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PersonaType(str, Enum):
    """Simulated user experience level, ordered from least to most advanced."""

    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    EXPERT = "EXPERT"
    POWER_USER = "POWER_USER"


class AgentStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ErrorSeverity(str, Enum):
    """Operational urgency of a recorded error.

    LOW: rate-limited, expected and recoverable
    MEDIUM: bad request / not found, likely a flow or data bug
    HIGH: authentication / authorization failure
    CRITICAL: server-side fault in the target service
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SchedulingProfile(str, Enum):
    """How agents of a run are dispatched.

    serial: one agent at a time
    parallel / stress: bounded-concurrency admission, differing only in defaults
    """

    SERIAL = "serial"
    PARALLEL = "parallel"
    STRESS = "stress"


class PersonaDistribution(str, Enum):
    """How persona types are assigned across a run's agents."""

    CYCLE = "cycle"
    REALISTIC = "realistic"


ERROR_HANDLING_STYLES = ("retry", "give-up", "seek-help")
FEATURE_ADOPTION_STYLES = ("early", "cautious", "late")


@dataclass(frozen=True)
class Characteristics:
    """Persona trait vector; every trait is an integer in [1, 10]."""

    tech_savvy: int
    patience: int
    risk_tolerance: int
    detail_oriented: int

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            if not isinstance(value, int) or not 1 <= value <= 10:
                raise ValueError(f"{name} must be an integer in [1, 10], got {value!r}")


@dataclass(frozen=True)
class DecisionPatterns:
    exploration_vs_efficiency: float
    error_handling: str
    feature_adoption: str

    def __post_init__(self) -> None:
        if not 0.0 <= self.exploration_vs_efficiency <= 1.0:
            raise ValueError("exploration_vs_efficiency must be in [0, 1]")
        if self.error_handling not in ERROR_HANDLING_STYLES:
            raise ValueError(f"error_handling must be one of {ERROR_HANDLING_STYLES}")
        if self.feature_adoption not in FEATURE_ADOPTION_STYLES:
            raise ValueError(f"feature_adoption must be one of {FEATURE_ADOPTION_STYLES}")


@dataclass(frozen=True)
class Persona:
    """A generated simulated user. Immutable once generated."""

    id: str
    name: str
    type: PersonaType
    characteristics: Characteristics
    goals: tuple[str, ...]
    pain_points: tuple[str, ...]
    decision_patterns: DecisionPatterns

    def describe(self) -> str:
        """Render the persona as the bullet list used in oracle prompts."""
        c = self.characteristics
        d = self.decision_patterns
        return "\n".join(
            [
                f"- Name: {self.name}",
                f"- Type: {self.type.value}",
                f"- Tech Savviness: {c.tech_savvy}/10",
                f"- Patience: {c.patience}/10",
                f"- Risk Tolerance: {c.risk_tolerance}/10",
                f"- Detail Oriented: {c.detail_oriented}/10",
                f"- Goals: {', '.join(self.goals)}",
                f"- Pain Points: {', '.join(self.pain_points)}",
                f"- Exploration vs Efficiency: {d.exploration_vs_efficiency}",
                f"- Error Handling: {d.error_handling}",
                f"- Feature Adoption: {d.feature_adoption}",
            ]
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["goals"] = list(self.goals)
        data["pain_points"] = list(self.pain_points)
        return data


@dataclass(frozen=True)
class RunConfig:
    """Settings shared read-only by every agent of a run."""

    platform: str
    base_url: str
    api_key: str | None = None
    timeout_seconds: float = 30.0
    max_retries: int = 3
    max_concurrent: int = 1
    detailed_logging: bool = False
    backoff_base_ms: float = 1000.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        # Never persist the credential itself.
        data["api_key"] = "***" if self.api_key else None
        return data


@dataclass
class ErrorRecord:
    type: str
    severity: ErrorSeverity
    message: str
    stack_trace: str | None = None
    endpoint: str | None = None
    status_code: int | None = None
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    fatal: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "message": self.message,
            "stack_trace": self.stack_trace,
            "endpoint": self.endpoint,
            "status_code": self.status_code,
            "context": dict(self.context),
            "timestamp": self.timestamp.isoformat(),
            "fatal": self.fatal,
        }


@dataclass
class Action:
    """One recorded outcome of a flow step (``details['attempts']`` >= 1)."""

    type: str
    duration_ms: float
    success: bool
    details: dict[str, Any] = field(default_factory=dict)
    error: ErrorRecord | None = None
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def attempts(self) -> int:
        return int(self.details.get("attempts", 1))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
            "success": self.success,
            "details": {k: v for k, v in self.details.items() if k != "result"},
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class DecisionResponse:
    chosen: str
    reasoning: str
    confidence: float


@dataclass
class Decision:
    context: str
    options: list[str]
    chosen: str
    reasoning: str
    confidence: float
    timestamp: datetime = field(default_factory=utc_now)
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class AgentMetrics:
    """Per-agent measurements; mutated only by the owning agent."""

    steps_total: int
    start_time_ms: float = 0.0
    end_time_ms: float | None = None
    duration_ms: float | None = None
    actions: list[Action] = field(default_factory=list)
    decisions: list[Decision] = field(default_factory=list)
    errors: list[ErrorRecord] = field(default_factory=list)
    success_rate: float = 0.0
    steps_completed: int = 0
    response_times: list[float] = field(default_factory=list)

    def finalize(self, end_time_ms: float) -> None:
        self.end_time_ms = end_time_ms
        self.duration_ms = max(0.0, end_time_ms - self.start_time_ms)
        successful = sum(1 for a in self.actions if a.success)
        self.success_rate = (successful / len(self.actions) * 100) if self.actions else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps_total": self.steps_total,
            "steps_completed": self.steps_completed,
            "duration_ms": self.duration_ms,
            "success_rate": self.success_rate,
            "response_times": list(self.response_times),
            "actions": [a.to_dict() for a in self.actions],
            "decisions": [d.to_dict() for d in self.decisions],
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class AgentResult:
    agent_name: str
    persona: Persona
    status: AgentStatus
    metrics: AgentMetrics
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_name": self.agent_name,
            "persona": self.persona.to_dict(),
            "status": self.status.value,
            "summary": self.summary,
            "metrics": self.metrics.to_dict(),
        }


@dataclass
class RunAggregates:
    avg_response_time_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0
    p50_ms: float = 0.0
    p95_ms: float = 0.0
    p99_ms: float = 0.0
    throughput_rps: float = 0.0
    total_actions: int = 0
    error_count: int = 0
    errors_by_severity: dict[str, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    persona_distribution: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RunResult:
    run_id: str
    platform: str
    profile: SchedulingProfile
    total_agents: int
    completed_agents: int
    failed_agents: int
    duration_ms: float
    success_rate: float
    results: list[AgentResult]
    aggregates: RunAggregates
    started_at: datetime
    completed_at: datetime

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0

    @property
    def throughput_rps(self) -> float:
        return self.aggregates.throughput_rps

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "platform": self.platform,
            "profile": self.profile.value,
            "total_agents": self.total_agents,
            "completed_agents": self.completed_agents,
            "failed_agents": self.failed_agents,
            "duration_ms": self.duration_ms,
            "success_rate": self.success_rate,
            "aggregates": self.aggregates.to_dict(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass(frozen=True)
class OrchestrationConfig:
    """What a run should do: which platform, how many agents, how they are scheduled."""

    platform: str
    profile: SchedulingProfile
    agent_count: int
    max_concurrent: int
    run_config: RunConfig
    distribution: PersonaDistribution = PersonaDistribution.CYCLE

    def __post_init__(self) -> None:
        if self.agent_count < 0:
            raise ValueError("agent_count must be >= 0")
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")

    @property
    def effective_concurrency(self) -> int:
        return 1 if self.profile == SchedulingProfile.SERIAL else self.max_concurrent

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "profile": self.profile.value,
            "agent_count": self.agent_count,
            "max_concurrent": self.max_concurrent,
            "distribution": self.distribution.value,
            "run_config": self.run_config.to_dict(),
        }
