"""Declarative flow definitions.

A flow is an ordered, fixed sequence of named steps. Platforms describe their
business journey as data; the shared ``Agent`` executes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

if TYPE_CHECKING:
    from betasim.core.agent import Agent

Operation = Callable[["Agent"], Awaitable[Any]]
Condition = Callable[["Agent"], bool]


@dataclass(frozen=True)
class FlowStep:
    """One named step of a flow.

    ``required=False`` marks a step whose failure is tolerated; ``condition``
    gates the step at run time (persona type, random adoption gates).
    """

    name: str
    operation: Operation
    retryable: bool = True
    required: bool = True
    condition: Condition | None = None

    def applies_to(self, agent: "Agent") -> bool:
        return self.condition is None or bool(self.condition(agent))


@dataclass(frozen=True)
class Flow:
    name: str
    steps: tuple[FlowStep, ...]
    steps_total: int | None = None

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError(f"flow {self.name!r} must contain at least one step")
        names = [s.name for s in self.steps]
        if len(set(names)) != len(names):
            raise ValueError(f"flow {self.name!r} has duplicate step names")

    @property
    def total(self) -> int:
        return self.steps_total if self.steps_total is not None else len(self.steps)
