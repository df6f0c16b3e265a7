"""Tests for the Agent flow runner."""

from __future__ import annotations

import pytest

from betasim.core.agent import DEFAULT_PACING_MS, Agent
from betasim.core.flow import Flow, FlowStep
from betasim.core.models import AgentStatus, DecisionResponse, PersonaType, RunConfig
from betasim.exceptions import OracleError, TargetServiceError

from conftest import FakeClock, RecordingLogger, make_agent, make_persona


def _ok(value="ok"):
    async def _op(agent):
        return value

    return _op


def _fail(exc: Exception):
    async def _op(agent):
        raise exc

    return _op


class StubOracle:
    def __init__(self, *, decision=None, content="oracle text", error: Exception | None = None):
        self.decision = decision
        self.content = content
        self.error = error
        self.calls = []

    async def decide(self, context, persona, options):
        self.calls.append(("decide", context, tuple(options)))
        if self.error:
            raise self.error
        return self.decision

    async def generate(self, content_type, persona, platform):
        self.calls.append(("generate", content_type, platform))
        if self.error:
            raise self.error
        return self.content


@pytest.fixture
def fast_config():
    return RunConfig(platform="lumina", base_url="http://target.test", max_retries=2, backoff_base_ms=10.0)


class TestFlowValidation:
    def test_empty_flow_rejected(self) -> None:
        with pytest.raises(ValueError):
            Flow(name="empty", steps=())

    def test_duplicate_step_names_rejected(self) -> None:
        with pytest.raises(ValueError):
            Flow(name="dup", steps=(FlowStep("a", _ok()), FlowStep("a", _ok())))

    def test_total_defaults_to_step_count(self) -> None:
        flow = Flow(name="f", steps=(FlowStep("a", _ok()), FlowStep("b", _ok())))
        assert flow.total == 2
        assert Flow(name="g", steps=(FlowStep("a", _ok()),), steps_total=9).total == 9


class TestRunFlow:
    """Status transitions and summaries for complete and failed flows."""

    @pytest.mark.asyncio
    async def test_completes_all_steps(self, fast_config, clock) -> None:
        flow = Flow(name="demo", steps=(FlowStep("a", _ok()), FlowStep("b", _ok()), FlowStep("c", _ok())))
        agent = make_agent(flow, fast_config, clock)
        assert agent.status == AgentStatus.PENDING

        result = await agent.run_flow()

        assert result.status == AgentStatus.COMPLETED
        assert agent.status == AgentStatus.COMPLETED
        assert result.summary == "Completed demo flow with 3/3 steps"
        assert result.metrics.steps_completed == 3
        assert result.metrics.success_rate == 100.0
        assert result.metrics.duration_ms >= 0
        assert 0 <= result.metrics.steps_completed <= result.metrics.steps_total

    @pytest.mark.asyncio
    async def test_required_step_failure_stops_flow(self, fast_config, clock) -> None:
        calls = []

        async def _never(agent):
            calls.append("never")

        flow = Flow(
            name="demo",
            steps=(
                FlowStep("a", _ok()),
                FlowStep("b", _fail(TargetServiceError("down", status_code=500))),
                FlowStep("c", _never),
            ),
        )
        agent = make_agent(flow, fast_config, clock)

        result = await agent.run_flow()

        assert result.status == AgentStatus.FAILED
        assert result.summary.startswith("Flow failed at step 1 (b):")
        assert calls == []
        assert result.metrics.steps_completed == 1
        # Two attempts at "b", each recorded.
        assert len(result.metrics.errors) == 2
        assert result.metrics.success_rate == 50.0

    @pytest.mark.asyncio
    async def test_optional_step_failure_is_swallowed(self, fast_config, clock) -> None:
        flow = Flow(
            name="demo",
            steps=(
                FlowStep("a", _ok()),
                FlowStep("explore", _fail(RuntimeError("nope")), retryable=False, required=False),
                FlowStep("c", _ok()),
            ),
        )
        logger = RecordingLogger()
        agent = make_agent(flow, fast_config, clock, logger=logger)

        result = await agent.run_flow()

        assert result.status == AgentStatus.COMPLETED
        assert result.metrics.steps_completed == 2
        assert len(result.metrics.errors) == 1
        error = result.metrics.errors[0]
        assert error.fatal is False
        assert error.context["optional_step"] is True
        assert logger.find("agent.optional_step_failed")[0]["step"] == "explore"

    @pytest.mark.asyncio
    async def test_condition_skips_step(self, fast_config, clock) -> None:
        calls = []

        async def _advanced_only(agent):
            calls.append(agent.persona.type)

        flow = Flow(
            name="demo",
            steps=(
                FlowStep("a", _ok()),
                FlowStep("advanced", _advanced_only, condition=lambda a: a.persona.type == PersonaType.EXPERT),
            ),
        )
        agent = make_agent(flow, fast_config, clock, persona=make_persona(PersonaType.BEGINNER))

        result = await agent.run_flow()

        assert calls == []
        assert result.status == AgentStatus.COMPLETED
        assert result.summary == "Completed demo flow with 1/2 steps"

    @pytest.mark.asyncio
    async def test_operation_receives_agent_and_state(self, fast_config, clock) -> None:
        async def _produce(agent):
            agent.state["book"] = {"id": "b1"}
            return agent.state["book"]

        async def _consume(agent):
            return agent.state["book"]["id"]

        flow = Flow(name="demo", steps=(FlowStep("produce", _produce), FlowStep("consume", _consume)))
        agent = make_agent(flow, fast_config, clock)

        await agent.run_flow()

        assert [a.details["result"] for a in agent.metrics.actions] == [{"id": "b1"}, "b1"]

    @pytest.mark.asyncio
    async def test_cannot_run_twice(self, fast_config, clock) -> None:
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock)
        await agent.run_flow()

        with pytest.raises(RuntimeError):
            await agent.run_flow()

    @pytest.mark.asyncio
    async def test_pacing_between_steps_only(self, fast_config, clock) -> None:
        flow = Flow(name="demo", steps=(FlowStep("a", _ok()), FlowStep("b", _ok()), FlowStep("c", _ok())))
        agent = make_agent(flow, fast_config, clock, persona=make_persona(PersonaType.EXPERT))

        await agent.run_flow()

        # No pause before the first step; one before each later step.
        assert len(clock.sleeps) == 2
        for seconds in clock.sleeps:
            assert 0.5 <= seconds <= 1.5

    def test_abandon_marks_failed(self, fast_config, clock) -> None:
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock)

        result = agent.abandon(RuntimeError("crashed"))

        assert result.status == AgentStatus.FAILED
        assert result.summary == "Agent aborted: RuntimeError: crashed"
        assert result.metrics.duration_ms is not None


class TestHumanDelay:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("persona_type", list(PersonaType))
    async def test_delay_within_half_of_base(self, fast_config, persona_type) -> None:
        clock = FakeClock()
        agent = make_agent(
            Flow(name="demo", steps=(FlowStep("a", _ok()),)),
            fast_config,
            clock,
            persona=make_persona(persona_type),
        )
        base = DEFAULT_PACING_MS[persona_type]

        for _ in range(20):
            await agent.human_delay()

        for seconds in clock.sleeps:
            assert base * 0.5 <= seconds * 1000 <= base * 1.5


class TestDecisions:
    """The oracle is advisory; its failures never escape."""

    @pytest.mark.asyncio
    async def test_oracle_choice_recorded(self, fast_config, clock) -> None:
        oracle = StubOracle(decision=DecisionResponse(chosen="B", reasoning="fits", confidence=0.9))
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock, oracle=oracle)

        response = await agent.make_intelligent_decision("Pick one", ["A", "B", "C"])

        assert response.chosen == "B"
        assert response.confidence == 0.9
        decision = agent.metrics.decisions[0]
        assert decision.fallback is False
        assert decision.options == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_oracle_failure_falls_back(self, fast_config, clock) -> None:
        oracle = StubOracle(error=OracleError("malformed output"))
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock, oracle=oracle)

        response = await agent.make_intelligent_decision("Which feature?", ["A", "B", "C", "D"])

        assert response.chosen in ["A", "B", "C", "D"]
        assert response.confidence == 0.5
        assert response.reasoning.startswith("Fallback to random choice due to oracle error")
        assert agent.metrics.decisions[0].fallback is True

    @pytest.mark.asyncio
    async def test_unknown_option_falls_back(self, fast_config, clock) -> None:
        oracle = StubOracle(decision=DecisionResponse(chosen="Z", reasoning="", confidence=1.0))
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock, oracle=oracle)

        response = await agent.make_intelligent_decision("Pick", ["A", "B"])

        assert response.chosen in ["A", "B"]
        assert response.confidence == 0.5

    @pytest.mark.asyncio
    async def test_no_oracle_falls_back(self, fast_config, clock) -> None:
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock)

        response = await agent.make_intelligent_decision("Pick", ["only"])

        assert response.chosen == "only"

    @pytest.mark.asyncio
    async def test_empty_options_rejected(self, fast_config, clock) -> None:
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock)

        with pytest.raises(ValueError):
            await agent.make_intelligent_decision("Pick", [])


class TestContent:
    @pytest.mark.asyncio
    async def test_oracle_content(self, fast_config, clock) -> None:
        oracle = StubOracle(content="A gripping tale")
        agent = make_agent(Flow(name="demo", steps=(FlowStep("a", _ok()),)), fast_config, clock, oracle=oracle)

        assert await agent.generate_realistic_content("book_metadata") == "A gripping tale"
        assert oracle.calls == [("generate", "book_metadata", "lumina")]

    @pytest.mark.asyncio
    async def test_fallback_content(self, fast_config, clock) -> None:
        oracle = StubOracle(error=OracleError("down"))
        agent = make_agent(
            Flow(name="demo", steps=(FlowStep("a", _ok()),)),
            fast_config,
            clock,
            oracle=oracle,
            fallback_content={"book_metadata": "fallback metadata"},
            generic_fallback="generic",
        )

        assert await agent.generate_realistic_content("book_metadata") == "fallback metadata"
        assert await agent.generate_realistic_content("other") == "generic"


class TestAgentLogger:
    def test_default_logger_named_after_agent(self, clock) -> None:
        import logging

        config = RunConfig(platform="lumina", base_url="http://target.test", detailed_logging=True)
        agent = Agent("lumina_agent_7", make_persona(), config, Flow(name="demo", steps=(FlowStep("a", _ok()),)))

        assert agent.logger.name == "betasim.agent.lumina_agent_7"
        assert agent.logger.level == logging.DEBUG
