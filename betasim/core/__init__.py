"""Agent execution and orchestration engine."""

from __future__ import annotations

from betasim.core.agent import Agent
from betasim.core.executor import ActionExecutor, backoff_delay_ms, classify_severity
from betasim.core.flow import Flow, FlowStep
from betasim.core.metrics import aggregate_run, percentile, throughput
from betasim.core.orchestrator import Orchestrator
from betasim.core.persona import PersonaGenerator

__all__ = [
    "ActionExecutor",
    "Agent",
    "Flow",
    "FlowStep",
    "Orchestrator",
    "PersonaGenerator",
    "aggregate_run",
    "backoff_delay_ms",
    "classify_severity",
    "percentile",
    "throughput",
]
