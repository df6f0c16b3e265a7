"""Scholarly-AI: a researcher builds a project around an uploaded paper."""

from __future__ import annotations

from betasim.core.agent import Agent
from betasim.core.flow import Flow, FlowStep
from betasim.core.models import PersonaType
from betasim.exceptions import FlowStateError
from betasim.platforms.base import Platform, is_advanced, require_state, signup_or_login


async def _signup_or_login(agent: Agent) -> dict:
    return await signup_or_login(
        agent,
        email_domain="test-scholarly.local",
        password="TestResearcher123!",  # pragma: allowlist secret
        extra={"affiliation": "Test University", "role": "RESEARCHER"},
    )


async def _create_project(agent: Agent) -> dict:
    name = await agent.generate_realistic_content("research_project_name")
    response = await agent.client.post(
        "/api/projects",
        json={"name": name, "description": "AI-powered academic research project", "field": "Computer Science"},
    )
    project = response.get("project") if isinstance(response, dict) else None
    if not project:
        raise FlowStateError("create project response did not include a project")
    agent.state["project"] = project
    return project


async def _upload_paper(agent: Agent) -> dict:
    project = require_state(agent, "project")
    title = await agent.generate_realistic_content("paper_title")
    abstract = await agent.generate_realistic_content("paper_abstract")
    content = await agent.generate_realistic_content("paper_content")

    response = await agent.client.post(
        "/api/papers/upload",
        data={"projectId": project["id"], "title": title, "abstract": abstract},
        files={"file": ("research-paper.pdf", content.encode("utf-8"), "application/pdf")},
    )
    paper = response.get("paper") if isinstance(response, dict) else None
    if not paper:
        raise FlowStateError("upload response did not include a paper")
    agent.state.setdefault("papers", []).append(paper)
    return paper


async def _search_database(agent: Agent) -> dict:
    query = await agent.generate_realistic_content("academic_search_query")
    response = await agent.client.get("/api/search", params={"q": query})
    results = response.get("results", []) if isinstance(response, dict) else []
    agent.logger.info("flow.search_results", event="flow.search_results", count=len(results))
    return response


async def _generate_citations(agent: Agent) -> dict:
    papers = require_state(agent, "papers")
    return await agent.client.post(
        "/api/citations/generate",
        json={"paperIds": [p["id"] for p in papers], "style": "APA"},
    )


async def _create_bibliography(agent: Agent) -> dict:
    project = require_state(agent, "project")
    return await agent.client.post("/api/bibliography/create", json={"projectId": project["id"], "format": "APA"})


async def _use_ai_assistant(agent: Agent) -> dict:
    papers = require_state(agent, "papers")
    question = await agent.generate_realistic_content("research_question")
    return await agent.client.post("/api/ai-assistant", json={"paperId": papers[0]["id"], "question": question})


async def _setup_collaboration(agent: Agent) -> dict:
    project = require_state(agent, "project")
    return await agent.client.post(
        "/api/collaboration/setup",
        json={"projectId": project["id"], "collaborators": [f"colleague+{agent.name}@test-scholarly.local"]},
    )


async def _export_research(agent: Agent) -> dict:
    project = require_state(agent, "project")
    decision = await agent.make_intelligent_decision("Which export format?", ["PDF", "LaTeX", "Word", "Markdown"])
    return await agent.client.post("/api/export", json={"projectId": project["id"], "format": decision.chosen})


async def _view_analytics(agent: Agent) -> dict:
    project = require_state(agent, "project")
    return await agent.client.get("/api/analytics", params={"projectId": project["id"]})


async def _explore_advanced_features(agent: Agent) -> str:
    decision = await agent.make_intelligent_decision(
        "Which advanced feature would you like to explore?",
        ["Citation graph", "Literature review automation", "API access", "Team workspaces"],
    )
    return decision.chosen


def _collaborates(agent: Agent) -> bool:
    return agent.persona.type != PersonaType.BEGINNER


FLOW = Flow(
    name="scholarly",
    steps=(
        FlowStep("signup_or_login", _signup_or_login),
        FlowStep("create_project", _create_project),
        FlowStep("upload_paper", _upload_paper),
        FlowStep("search_database", _search_database),
        FlowStep("generate_citations", _generate_citations),
        FlowStep("create_bibliography", _create_bibliography),
        FlowStep("use_ai_assistant", _use_ai_assistant),
        FlowStep("setup_collaboration", _setup_collaboration, condition=_collaborates),
        FlowStep("export_research", _export_research),
        FlowStep("view_analytics", _view_analytics),
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
    name="scholarly",
    display_name="Scholarly-AI",
    env_prefix="SCHOLARLY",
    default_base_url="http://localhost:3000",
    flow=FLOW,
    fallback_content={
        "research_project_name": "AI and Machine Learning Research",
        "paper_title": "Advances in Neural Network Architectures",
        "paper_abstract": "This paper explores recent developments in neural network design...",
        "paper_content": "Introduction\n\nRecent advances in artificial intelligence...",
        "academic_search_query": "deep learning transformers",
        "research_question": "What are the main contributions of this paper?",
    },
    generic_fallback="Generated academic content",
)
