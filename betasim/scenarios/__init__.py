"""Pre-built scheduling profiles."""

from __future__ import annotations

__all__ = [
    "PROFILE_DEFAULTS",
    "build_agent_factory",
    "build_orchestration_config",
    "run_platform_scenario",
]

from betasim.scenarios.profiles import (
    PROFILE_DEFAULTS,
    build_agent_factory,
    build_orchestration_config,
    run_platform_scenario,
)
