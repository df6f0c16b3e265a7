from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Callable
from uuid import uuid4

from betasim.core.agent import Agent
from betasim.core.executor import ClockFn
from betasim.core.metrics import aggregate_run
from betasim.core.models import (
    AgentResult,
    OrchestrationConfig,
    Persona,
    PersonaDistribution,
    RunConfig,
    RunResult,
    SchedulingProfile,
    utc_now,
)
from betasim.core.persona import PersonaGenerator
from betasim.logger import Logger, session_logger

if TYPE_CHECKING:
    from betasim.storage.run_store import RunStore

AgentFactory = Callable[[str, Persona, RunConfig], Agent]


class Orchestrator:
    """Runs many agents against one platform and aggregates their results.

    Serial runs execute agents one at a time. Parallel and stress runs admit
    at most ``max_concurrent`` agents at once through a semaphore and wait
    for every agent to settle. One agent's failure never stops its siblings.
    """

    def __init__(
        self,
        *,
        store: RunStore | None = None,
        persona_generator: PersonaGenerator | None = None,
        logger: Logger | None = None,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._store = store
        self._personas = persona_generator or PersonaGenerator()
        self._logger = logger or session_logger
        self._clock = clock

    async def execute_run(self, config: OrchestrationConfig, agent_factory: AgentFactory) -> RunResult:
        run_id = f"{config.platform}-{uuid4().hex[:12]}"
        started_at = utc_now()
        started = self._clock()

        self._logger.info(
            "orchestrator.run_start",
            event="orchestrator.run_start",
            run_id=run_id,
            platform=config.platform,
            profile=config.profile.value,
            agent_count=config.agent_count,
            max_concurrent=config.effective_concurrency,
        )

        # Persona or agent construction failures are run-fatal and propagate.
        if config.distribution == PersonaDistribution.REALISTIC:
            personas = self._personas.generate_realistic_batch(config.agent_count)
        else:
            personas = self._personas.generate_batch(config.agent_count)
        agents: list[Agent] = []
        try:
            for i, persona in enumerate(personas):
                agents.append(agent_factory(f"{config.platform}_agent_{i + 1}", persona, config.run_config))
        except Exception:
            for agent in agents:
                await agent.client.aclose()
            raise
        self._logger.info("orchestrator.agents_created", event="orchestrator.agents_created", count=len(agents))

        if config.profile == SchedulingProfile.SERIAL:
            results = await self._execute_serial(agents)
        else:
            results = await self._execute_bounded(agents, config.max_concurrent)

        duration_ms = max(0.0, (self._clock() - started) * 1000)
        result = aggregate_run(
            run_id=run_id,
            platform=config.platform,
            profile=config.profile,
            agent_count=config.agent_count,
            results=results,
            duration_ms=duration_ms,
            started_at=started_at,
            completed_at=utc_now(),
        )

        self._logger.info(
            "orchestrator.run_end",
            event="orchestrator.run_end",
            run_id=run_id,
            duration_ms=round(duration_ms, 2),
            success_rate=round(result.success_rate, 2),
            completed_agents=result.completed_agents,
            failed_agents=result.failed_agents,
            avg_response_time_ms=result.aggregates.avg_response_time_ms,
            throughput_rps=result.aggregates.throughput_rps,
        )

        self._persist(result, config)
        return result

    async def _execute_serial(self, agents: list[Agent]) -> list[AgentResult]:
        self._logger.info("orchestrator.serial_start", event="orchestrator.serial_start", count=len(agents))
        results: list[AgentResult] = []
        for agent in agents:
            results.append(await self._run_agent(agent))
        return results

    async def _execute_bounded(self, agents: list[Agent], max_concurrent: int) -> list[AgentResult]:
        self._logger.info(
            "orchestrator.parallel_start",
            event="orchestrator.parallel_start",
            count=len(agents),
            concurrency=max_concurrent,
        )
        gate = asyncio.Semaphore(max_concurrent)

        async def _admit(agent: Agent) -> AgentResult:
            async with gate:
                return await self._run_agent(agent)

        settled = await asyncio.gather(*(_admit(a) for a in agents), return_exceptions=True)

        results: list[AgentResult] = []
        for agent, outcome in zip(agents, settled):
            if isinstance(outcome, BaseException):
                # _run_agent already absorbs Exception; this covers anything stranger.
                self._log_agent_failure(agent, outcome)
                results.append(agent.abandon(outcome))
            else:
                results.append(outcome)
        return results

    async def _run_agent(self, agent: Agent) -> AgentResult:
        self._logger.info("orchestrator.agent_start", event="orchestrator.agent_start", agent=agent.name)
        try:
            result = await agent.run_flow()
        except Exception as exc:
            self._log_agent_failure(agent, exc)
            return agent.abandon(exc)

        self._logger.info(
            "orchestrator.agent_end",
            event="orchestrator.agent_end",
            agent=result.agent_name,
            status=result.status.value,
            duration_ms=round(result.metrics.duration_ms or 0.0, 2),
            success_rate=round(result.metrics.success_rate, 2),
        )
        return result

    def _log_agent_failure(self, agent: Agent, exc: BaseException) -> None:
        self._logger.error(
            "orchestrator.agent_failed",
            event="orchestrator.agent_failed",
            agent=agent.name,
            error_type=type(exc).__name__,
            error=str(exc),
        )

    def _persist(self, result: RunResult, config: OrchestrationConfig) -> None:
        if self._store is None:
            return
        try:
            self._store.save_run(result, config)
        except Exception as exc:
            # The computed result is still returned to the caller.
            self._logger.error(
                "orchestrator.persist_failed",
                event="orchestrator.persist_failed",
                run_id=result.run_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return
        self._logger.info("orchestrator.run_persisted", event="orchestrator.run_persisted", run_id=result.run_id)
