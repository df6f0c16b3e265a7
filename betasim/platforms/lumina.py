"""LUMINA book-marketing platform: an author uploads a manuscript and
generates campaign content around it."""

from __future__ import annotations

from datetime import timedelta

from betasim.core.agent import Agent
from betasim.core.flow import Flow, FlowStep
from betasim.core.models import PersonaType, utc_now
from betasim.core.persona import PersonaTemplate
from betasim.exceptions import FlowStateError
from betasim.platforms.base import Platform, adoption_gate, is_advanced, require_state, signup_or_login


async def _signup_or_login(agent: Agent) -> dict:
    return await signup_or_login(agent, email_domain="test-lumina.local", password="TestUser123!")  # pragma: allowlist secret


async def _upload_manuscript(agent: Agent) -> dict:
    metadata = await agent.generate_realistic_content("book_metadata")
    excerpt = await agent.generate_realistic_content("manuscript_excerpt")

    response = await agent.client.post(
        "/api/manuscripts/upload",
        data={
            "title": f"Test Book - {agent.name}",
            "author": agent.persona.name,
            "genre": "FICTION",
            "description": metadata,
        },
        files={"file": ("manuscript.txt", excerpt.encode("utf-8"), "text/plain")},
    )
    book = response.get("book") if isinstance(response, dict) else None
    if not book:
        raise FlowStateError("upload response did not include a book")
    agent.state["book"] = book
    agent.logger.info("flow.manuscript_uploaded", event="flow.manuscript_uploaded", book_id=book.get("id"))
    return book


async def _extract_quotes(agent: Agent) -> dict:
    book = require_state(agent, "book")
    response = await agent.client.post(
        "/api/content/quotes/extract",
        json={"bookId": book["id"], "minQuotes": 20, "maxQuotes": 50},
    )
    quotes = response.get("quotes", []) if isinstance(response, dict) else []
    agent.state.setdefault("content", []).append({"type": "quotes", "data": response})
    agent.logger.info("flow.quotes_extracted", event="flow.quotes_extracted", count=len(quotes))
    return response


async def _generate_email_campaign(agent: Agent) -> dict:
    book = require_state(agent, "book")
    response = await agent.client.post(
        "/api/content/email/generate",
        json={"bookId": book["id"], "campaignType": "launch", "sequences": 5},
    )
    agent.state.setdefault("content", []).append({"type": "email_campaign", "data": response})
    return response


async def _generate_social_content(agent: Agent) -> dict:
    book = require_state(agent, "book")
    response = await agent.client.post(
        "/api/content/generate",
        json={"bookId": book["id"], "contentType": "social", "platforms": ["twitter", "facebook", "instagram"]},
    )
    agent.state.setdefault("content", []).append({"type": "social_media", "data": response})
    return response


async def _generate_blog_content(agent: Agent) -> dict:
    book = require_state(agent, "book")
    response = await agent.client.post(
        "/api/content/generate",
        json={"bookId": book["id"], "contentType": "blog"},
    )
    agent.state.setdefault("content", []).append({"type": "blog", "data": response})
    return response


async def _schedule_social_posts(agent: Agent) -> dict:
    book = require_state(agent, "book")
    return await agent.client.post(
        "/api/social/schedule",
        json={
            "bookId": book["id"],
            "platform": "twitter",
            "content": "Excited to announce my new book!",
            "scheduledFor": (utc_now() + timedelta(days=1)).isoformat(),
        },
    )


def _invoke_agent(agent_type: str):
    async def _invoke(agent: Agent) -> dict:
        book = require_state(agent, "book")
        response = await agent.client.post("/api/agents/execute", json={"agentType": agent_type, "bookId": book["id"]})
        agent.logger.info(
            "flow.agent_invoked",
            event="flow.agent_invoked",
            agent_type=agent_type,
            execution_id=response.get("executionId") if isinstance(response, dict) else None,
        )
        return response

    return _invoke


async def _view_analytics(agent: Agent) -> dict:
    book = require_state(agent, "book")
    return await agent.client.get("/api/content/performance", params={"bookId": book["id"]})


async def _check_agent_status(agent: Agent) -> dict:
    return await agent.client.get("/api/agents/status")


async def _explore_advanced_features(agent: Agent) -> str:
    decision = await agent.make_intelligent_decision(
        "Which advanced feature would you like to explore?",
        ["Worktree management", "Agent configuration", "API integration", "Bulk operations"],
    )
    agent.logger.info("flow.feature_selected", event="flow.feature_selected", feature=decision.chosen)
    return decision.chosen


FLOW = Flow(
    name="lumina",
    steps=(
        FlowStep("signup_or_login", _signup_or_login),
        FlowStep("upload_manuscript", _upload_manuscript),
        FlowStep("extract_quotes", _extract_quotes),
        FlowStep("generate_email_campaign", _generate_email_campaign),
        FlowStep("generate_social_content", _generate_social_content),
        FlowStep("generate_blog_content", _generate_blog_content),
        FlowStep("schedule_social_posts", _schedule_social_posts),
        FlowStep("invoke_quote_curator", _invoke_agent("quote_curator"), condition=adoption_gate),
        FlowStep("invoke_email_optimizer", _invoke_agent("email_optimizer"), condition=adoption_gate),
        FlowStep("view_analytics", _view_analytics),
        FlowStep("check_agent_status", _check_agent_status),
        FlowStep(
            "explore_advanced_features",
            _explore_advanced_features,
            retryable=False,
            required=False,
            condition=is_advanced,
        ),
    ),
)

PLATFORM = Platform(
    name="lumina",
    display_name="LUMINA Marketing",
    env_prefix="LUMINA",
    default_base_url="http://localhost:3000",
    flow=FLOW,
    fallback_content={
        "book_metadata": "An exciting new book in the fiction genre",
        "manuscript_excerpt": "Chapter 1: The journey begins...",
    },
    persona_templates={
        PersonaType.BEGINNER: PersonaTemplate(
            name_prefix="Novice Author",
            goals=(
                "Learn the platform basics",
                "Complete first book upload",
                "Generate initial marketing content",
            ),
            pain_points=("Overwhelmed by too many options", "Unsure where to start", "Needs clear guidance"),
        ),
        PersonaType.INTERMEDIATE: PersonaTemplate(
            name_prefix="Active Author",
            goals=("Optimize marketing campaigns", "Improve content quality", "Track performance metrics"),
            pain_points=("Wants better results faster", "Managing multiple books"),
        ),
        PersonaType.EXPERT: PersonaTemplate(
            name_prefix="Pro Marketer",
            goals=("Maximize automation", "Fine-tune AI outputs", "Scale across many books"),
            pain_points=("Needs advanced analytics", "Bulk operations"),
        ),
        PersonaType.POWER_USER: PersonaTemplate(
            name_prefix="Publishing House",
            goals=("Manage team workflows", "Process books at scale", "White-label capabilities"),
            pain_points=("Complex approval processes", "Brand consistency"),
        ),
    },
)
