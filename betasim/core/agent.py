from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Mapping

from betasim.core.executor import ActionExecutor, ClockFn, SleepFn
from betasim.core.flow import Flow, FlowStep
from betasim.core.models import (
    AgentMetrics,
    AgentResult,
    AgentStatus,
    Decision,
    DecisionResponse,
    Persona,
    PersonaType,
    RunConfig,
)
from betasim.core.oracle import DecisionOracle
from betasim.core.transport import TargetClient
from betasim.logger import Logger, agent_logger

# Base pacing between steps; slower users pause longer.
DEFAULT_PACING_MS: dict[PersonaType, float] = {
    PersonaType.BEGINNER: 3000.0,
    PersonaType.INTERMEDIATE: 2000.0,
    PersonaType.EXPERT: 1000.0,
    PersonaType.POWER_USER: 1000.0,
}

GENERIC_FALLBACK_CONTENT = "Generated test content"


class Agent:
    """A single simulated beta user.

    The agent executes its ``Flow`` step by step through an
    ``ActionExecutor``, pacing itself like a human between steps, and
    returns an ``AgentResult`` once the flow finishes or a required step
    fails. Flow operations receive the agent itself and use ``client``,
    ``state``, ``make_intelligent_decision`` and
    ``generate_realistic_content``.
    """

    def __init__(
        self,
        name: str,
        persona: Persona,
        config: RunConfig,
        flow: Flow,
        *,
        oracle: DecisionOracle | None = None,
        client: TargetClient | None = None,
        fallback_content: Mapping[str, str] | None = None,
        generic_fallback: str = GENERIC_FALLBACK_CONTENT,
        logger: Logger | None = None,
        rng: random.Random | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
        pacing_ms: Mapping[PersonaType, float] | None = None,
    ) -> None:
        self.name = name
        self.persona = persona
        self.config = config
        self.flow = flow
        self.client = client or TargetClient.from_config(config)
        self.logger = logger or agent_logger(name, detailed=config.detailed_logging)
        self.rng = rng or random.Random()
        self.state: dict[str, Any] = {}

        self._oracle = oracle
        self._fallback_content = dict(fallback_content or {})
        self._generic_fallback = generic_fallback
        self._sleep = sleep
        self._clock = clock
        self._pacing_ms = dict(pacing_ms or DEFAULT_PACING_MS)
        self._status = AgentStatus.PENDING

        self.metrics = AgentMetrics(steps_total=flow.total)
        self._executor = ActionExecutor(
            self.metrics,
            config,
            logger=self.logger,
            sleep=sleep,
            clock=clock,
        )

        self.logger.info(
            "agent.initialized",
            event="agent.initialized",
            persona=persona.name,
            persona_type=persona.type.value,
            flow=flow.name,
        )

    @property
    def status(self) -> AgentStatus:
        return self._status

    async def run_flow(self) -> AgentResult:
        if self._status != AgentStatus.PENDING:
            raise RuntimeError(f"agent {self.name} has already run (status={self._status.value})")

        self._status = AgentStatus.RUNNING
        self.metrics.start_time_ms = self._now_ms()
        self.logger.info("agent.flow_start", event="agent.flow_start", flow=self.flow.name)

        executed = 0
        try:
            for step in self.flow.steps:
                if not step.applies_to(self):
                    self.logger.debug("agent.step_skipped", event="agent.step_skipped", step=step.name)
                    continue

                if executed:
                    await self.human_delay()
                executed += 1

                try:
                    await self._executor.execute(step.name, lambda s=step: s.operation(self), step.retryable)
                except Exception as exc:
                    if step.required:
                        return self._fail(step, exc)
                    self._degrade(step, exc)

            return self._finish(
                AgentStatus.COMPLETED,
                f"Completed {self.flow.name} flow with "
                f"{self.metrics.steps_completed}/{self.metrics.steps_total} steps",
            )
        finally:
            await self.client.aclose()

    def abandon(self, exc: BaseException) -> AgentResult:
        """Build a FAILED result for an agent whose flow crashed outside a step."""
        if self.metrics.start_time_ms == 0.0:
            self.metrics.start_time_ms = self._now_ms()
        return self._finish(AgentStatus.FAILED, f"Agent aborted: {type(exc).__name__}: {exc}")

    async def make_intelligent_decision(self, context: str, options: list[str]) -> DecisionResponse:
        """Ask the oracle which option this persona would pick.

        Never raises on oracle failure: falls back to a uniform random choice
        with confidence 0.5.
        """
        if not options:
            raise ValueError("options must not be empty")

        self.logger.debug("agent.decision_request", event="agent.decision_request", context=context, options=options)

        try:
            if self._oracle is None:
                raise RuntimeError("no decision oracle configured")
            response = await self._oracle.decide(context, self.persona, list(options))
            if response.chosen not in options:
                raise ValueError(f"oracle chose unknown option {response.chosen!r}")
            fallback = False
        except Exception as exc:
            self.logger.error(
                "agent.decision_fallback",
                event="agent.decision_fallback",
                context=context,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            response = DecisionResponse(
                chosen=self.rng.choice(options),
                reasoning=f"Fallback to random choice due to oracle error: {exc}",
                confidence=0.5,
            )
            fallback = True

        self.metrics.decisions.append(
            Decision(
                context=context,
                options=list(options),
                chosen=response.chosen,
                reasoning=response.reasoning,
                confidence=response.confidence,
                fallback=fallback,
            )
        )
        self.logger.debug("agent.decision_made", event="agent.decision_made", chosen=response.chosen, fallback=fallback)
        return response

    async def generate_realistic_content(self, content_type: str) -> str:
        try:
            if self._oracle is None:
                raise RuntimeError("no content oracle configured")
            return await self._oracle.generate(content_type, self.persona, self.config.platform)
        except Exception as exc:
            self.logger.error(
                "agent.content_fallback",
                event="agent.content_fallback",
                content_type=content_type,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return self._fallback_content.get(content_type, self._generic_fallback)

    async def human_delay(self) -> None:
        """Pause like a human would, with +/-50% jitter around the persona's pace."""
        base = self._pacing_ms.get(self.persona.type, DEFAULT_PACING_MS[PersonaType.INTERMEDIATE])
        variation = base * 0.5
        delay_ms = base + self.rng.uniform(-variation, variation)
        await self._sleep(max(0.0, delay_ms) / 1000)

    def _fail(self, step: FlowStep, exc: Exception) -> AgentResult:
        self.logger.error(
            "agent.flow_failed",
            event="agent.flow_failed",
            step=step.name,
            steps_completed=self.metrics.steps_completed,
            error=str(exc),
        )
        return self._finish(
            AgentStatus.FAILED,
            f"Flow failed at step {self.metrics.steps_completed} ({step.name}): {exc}",
        )

    def _degrade(self, step: FlowStep, exc: Exception) -> None:
        # Optional step: keep going, but leave explicit non-fatal errors behind.
        for error in self.metrics.errors:
            if error.context.get("action_type") == step.name:
                error.fatal = False
                error.context["optional_step"] = True
        self.logger.warning(
            "agent.optional_step_failed",
            event="agent.optional_step_failed",
            step=step.name,
            error=str(exc),
        )

    def _finish(self, status: AgentStatus, summary: str) -> AgentResult:
        self._status = status
        self.metrics.finalize(self._now_ms())
        self.logger.info(
            "agent.flow_end",
            event="agent.flow_end",
            status=status.value,
            duration_ms=round(self.metrics.duration_ms or 0.0, 2),
            success_rate=round(self.metrics.success_rate, 2),
            steps=f"{self.metrics.steps_completed}/{self.metrics.steps_total}",
            error_count=len(self.metrics.errors),
        )
        return AgentResult(
            agent_name=self.name,
            persona=self.persona,
            status=status,
            metrics=self.metrics,
            summary=summary,
        )

    def _now_ms(self) -> float:
        return self._clock() * 1000
