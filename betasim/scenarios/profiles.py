"""Scheduling profiles: pre-built orchestration configs and a runner.

Usage as library::

    from betasim.scenarios.profiles import build_orchestration_config, run_platform_scenario

    config = build_orchestration_config(SchedulingProfile.PARALLEL, run_config=run_config)
    result = await run_platform_scenario(get_platform("lumina"), config, oracle=oracle)
"""

from __future__ import annotations

import random

from betasim.core.models import (
    OrchestrationConfig,
    PersonaDistribution,
    RunConfig,
    RunResult,
    SchedulingProfile,
)
from betasim.core.oracle import DecisionOracle
from betasim.core.orchestrator import AgentFactory, Orchestrator
from betasim.core.persona import PersonaGenerator
from betasim.logger import Logger
from betasim.platforms.base import Platform
from betasim.storage.run_store import RunStore

# (agent count, max concurrent agents)
PROFILE_DEFAULTS: dict[SchedulingProfile, tuple[int, int]] = {
    SchedulingProfile.SERIAL: (10, 1),
    SchedulingProfile.PARALLEL: (20, 5),
    SchedulingProfile.STRESS: (50, 10),
}


def build_orchestration_config(
    profile: SchedulingProfile,
    *,
    run_config: RunConfig,
    agents: int | None = None,
    concurrent: int | None = None,
    distribution: PersonaDistribution = PersonaDistribution.CYCLE,
) -> OrchestrationConfig:
    """Build an ``OrchestrationConfig`` from a profile's defaults.

    ``agents`` and ``concurrent`` override the defaults. Serial runs always
    admit one agent at a time whatever ``concurrent`` says.
    """
    default_agents, default_concurrent = PROFILE_DEFAULTS[profile]
    max_concurrent = 1 if profile == SchedulingProfile.SERIAL else (concurrent or default_concurrent)
    return OrchestrationConfig(
        platform=run_config.platform,
        profile=profile,
        agent_count=default_agents if agents is None else agents,
        max_concurrent=max_concurrent,
        run_config=run_config,
        distribution=distribution,
    )


def build_agent_factory(
    platform: Platform,
    *,
    oracle: DecisionOracle | None = None,
    rng: random.Random | None = None,
) -> AgentFactory:
    def _factory(name, persona, run_config):
        # Each agent gets its own generator so gates stay independent.
        agent_rng = random.Random(rng.random()) if rng is not None else None
        return platform.create_agent(name, persona, run_config, oracle=oracle, rng=agent_rng)

    return _factory


async def run_platform_scenario(
    platform: Platform,
    config: OrchestrationConfig,
    *,
    oracle: DecisionOracle | None = None,
    store: RunStore | None = None,
    logger: Logger | None = None,
    rng: random.Random | None = None,
) -> RunResult:
    """Run one scheduling profile against a platform and return the result."""
    orchestrator = Orchestrator(
        store=store,
        persona_generator=PersonaGenerator(rng=rng, templates=dict(platform.persona_templates)),
        logger=logger,
    )
    return await orchestrator.execute_run(config, build_agent_factory(platform, oracle=oracle, rng=rng))
