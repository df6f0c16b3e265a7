from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Mapping

from betasim.core.agent import GENERIC_FALLBACK_CONTENT, Agent
from betasim.core.flow import Flow
from betasim.core.models import Persona, PersonaType, RunConfig
from betasim.core.oracle import DecisionOracle
from betasim.core.persona import PersonaTemplate
from betasim.core.transport import TargetClient
from betasim.exceptions import FlowStateError, TargetServiceError

SIGNUP_PATH = "/api/auth/signup"
SIGNIN_PATH = "/api/auth/signin"


@dataclass(frozen=True)
class Platform:
    """Everything that distinguishes one target platform from another.

    New platforms add a ``Platform`` value, never a new agent class.
    """

    name: str
    display_name: str
    env_prefix: str
    default_base_url: str
    flow: Flow
    fallback_content: Mapping[str, str] = field(default_factory=dict)
    generic_fallback: str = GENERIC_FALLBACK_CONTENT
    persona_templates: Mapping[PersonaType, PersonaTemplate] = field(default_factory=dict)

    def create_agent(
        self,
        name: str,
        persona: Persona,
        config: RunConfig,
        *,
        oracle: DecisionOracle | None = None,
        client: TargetClient | None = None,
        rng: random.Random | None = None,
        **kwargs: Any,
    ) -> Agent:
        return Agent(
            name,
            persona,
            config,
            self.flow,
            oracle=oracle,
            client=client,
            fallback_content=self.fallback_content,
            generic_fallback=self.generic_fallback,
            rng=rng,
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Helpers shared by platform flows
# ---------------------------------------------------------------------------

def require_state(agent: Agent, key: str) -> Any:
    """Fetch flow state produced by an earlier step, or fail the step."""
    value = agent.state.get(key)
    if value is None:
        raise FlowStateError(f"No {key} available; an earlier step did not produce it", {"key": key})
    return value


def adoption_gate(agent: Agent, *, beginner: float = 0.5, intermediate: float = 0.7) -> bool:
    """Random gate for optional features: experts and power users always adopt."""
    if agent.persona.type == PersonaType.BEGINNER:
        return agent.rng.random() < beginner
    if agent.persona.type == PersonaType.INTERMEDIATE:
        return agent.rng.random() < intermediate
    return True


def is_advanced(agent: Agent) -> bool:
    return agent.persona.type in (PersonaType.EXPERT, PersonaType.POWER_USER)


def agent_email(agent: Agent, domain: str) -> str:
    return f"{agent.name.lower()}@{domain}"


async def signup_or_login(
    agent: Agent,
    *,
    email_domain: str,
    password: str,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Sign up, falling back to sign-in when the account already exists (409).

    The session cookie set by the target is kept by the agent's client.
    """
    email = agent_email(agent, email_domain)
    agent.logger.info("flow.signup_attempt", event="flow.signup_attempt", email=email)

    body = {"email": email, "password": password, "name": agent.persona.name, **(extra or {})}
    try:
        response = await agent.client.post(SIGNUP_PATH, json=body)
    except TargetServiceError as exc:
        if exc.status_code != 409:
            raise
        response = await agent.client.post(SIGNIN_PATH, json={"email": email, "password": password})

    user = response.get("user") if isinstance(response, dict) else None
    if not user:
        raise FlowStateError("authentication response did not include a user")
    agent.state["user"] = user
    agent.logger.info("flow.authenticated", event="flow.authenticated", user_id=user.get("id"))
    return user
