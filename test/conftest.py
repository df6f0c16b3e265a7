"""Pytest configuration and fixtures

Provides shared fixtures for all tests: a controllable clock with a matching
fake sleep, a logger that records calls, seeded personas, a default run
configuration and helpers for building agents against an httpx mock
transport.
"""

import random
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to sys.path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from betasim.core.agent import Agent
from betasim.core.flow import Flow
from betasim.core.models import Persona, PersonaType, RunConfig
from betasim.core.persona import PersonaGenerator
from betasim.core.transport import TargetClient
from betasim.logger import Logger


# ============================================================================
# TIME
# ============================================================================


class FakeClock:
    """Monotonic clock in seconds; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================================
# LOGGING
# ============================================================================


class RecordingLogger(Logger):
    """Logger that keeps every call for later assertions."""

    def __init__(self):
        self.records: list[tuple[str, str, dict]] = []

    def debug(self, message, **kwargs):
        self.records.append(("debug", message, kwargs))

    def info(self, message, **kwargs):
        self.records.append(("info", message, kwargs))

    def warning(self, message, **kwargs):
        self.records.append(("warning", message, kwargs))

    def error(self, message, **kwargs):
        self.records.append(("error", message, kwargs))

    def critical(self, message, **kwargs):
        self.records.append(("critical", message, kwargs))

    def messages(self, level: str | None = None) -> list[str]:
        return [m for lvl, m, _ in self.records if level is None or lvl == level]

    def find(self, message: str) -> list[dict]:
        return [kw for _, m, kw in self.records if m == message]


@pytest.fixture
def recording_logger():
    return RecordingLogger()


# ============================================================================
# DOMAIN FIXTURES
# ============================================================================


def make_persona(persona_type: PersonaType = PersonaType.INTERMEDIATE, index: int = 1) -> Persona:
    return PersonaGenerator(rng=random.Random(7)).generate(persona_type, index)


@pytest.fixture
def persona():
    return make_persona()


@pytest.fixture
def run_config():
    return RunConfig(platform="lumina", base_url="http://target.test", max_retries=3, backoff_base_ms=1000.0)


def mock_client(handler, base_url: str = "http://target.test") -> TargetClient:
    """TargetClient whose requests are answered by ``handler(request)``."""
    return TargetClient(base_url, transport=httpx.MockTransport(handler))


def unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request {request.method} {request.url}")


def make_agent(
    flow: Flow,
    config: RunConfig,
    clock: FakeClock,
    *,
    persona: Persona | None = None,
    name: str = "test_agent_1",
    handler=unreachable,
    logger: Logger | None = None,
    seed: int = 1,
    **kwargs,
) -> Agent:
    return Agent(
        name,
        persona or make_persona(),
        config,
        flow,
        client=mock_client(handler),
        logger=logger or RecordingLogger(),
        rng=random.Random(seed),
        sleep=clock.sleep,
        clock=clock,
        **kwargs,
    )


def make_run_result(statuses=None, *, run_id: str = "lumina-0123456789ab", errors_per_failure: int = 1):
    """A finished RunResult with one agent per entry in ``statuses``."""
    from datetime import datetime, timezone

    from betasim.core.metrics import aggregate_run
    from betasim.core.models import (
        Action,
        AgentMetrics,
        AgentResult,
        AgentStatus,
        ErrorRecord,
        ErrorSeverity,
        SchedulingProfile,
    )

    statuses = statuses or [AgentStatus.COMPLETED, AgentStatus.FAILED]
    types = list(PersonaType)
    results = []
    for i, status in enumerate(statuses):
        metrics = AgentMetrics(steps_total=3, start_time_ms=0.0)
        metrics.actions.append(Action(type="signup_or_login", duration_ms=100.0 * (i + 1), success=True))
        metrics.response_times.append(100.0 * (i + 1))
        metrics.steps_completed = 1
        if status == AgentStatus.FAILED:
            for attempt in range(1, errors_per_failure + 1):
                metrics.errors.append(
                    ErrorRecord(
                        type="server_error",
                        severity=ErrorSeverity.CRITICAL,
                        message="POST /api/manuscripts/upload returned 500",
                        endpoint="/api/manuscripts/upload",
                        status_code=500,
                        context={"action_type": "upload_manuscript", "attempt": attempt},
                    )
                )
        metrics.finalize(1000.0)
        results.append(
            AgentResult(
                agent_name=f"lumina_agent_{i + 1}",
                persona=make_persona(types[i % len(types)], i + 1),
                status=status,
                metrics=metrics,
                summary="",
            )
        )

    started = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    return aggregate_run(
        run_id=run_id,
        platform="lumina",
        profile=SchedulingProfile.SERIAL,
        agent_count=len(statuses),
        results=results,
        duration_ms=2000.0,
        started_at=started,
        completed_at=started,
    )


@pytest.fixture
def orchestration_config(run_config):
    from betasim.core.models import OrchestrationConfig, SchedulingProfile

    return OrchestrationConfig(
        platform="lumina",
        profile=SchedulingProfile.SERIAL,
        agent_count=2,
        max_concurrent=1,
        run_config=run_config,
    )
