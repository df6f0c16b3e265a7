"""Decision and content oracle.

The oracle turns a persona description plus a prompt into a choice among
options, or into generated text. Failures surface as ``OracleError``; the
fallback policy lives with the caller (``Agent``), not here.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import anthropic

from betasim.core.models import DecisionResponse, Persona
from betasim.exceptions import OracleError

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"


class DecisionOracle(Protocol):
    async def decide(self, context: str, persona: Persona, options: list[str]) -> DecisionResponse: ...

    async def generate(self, content_type: str, persona: Persona, platform: str) -> str: ...


def build_decision_prompt(context: str, persona: Persona, options: list[str]) -> str:
    numbered = "\n".join(f"{i}. {opt}" for i, opt in enumerate(options, start=1))
    return (
        "You are simulating a user with the following persona:\n"
        f"{persona.describe()}\n\n"
        f"Context: {context}\n\n"
        f"Available options:\n{numbered}\n\n"
        "Based on this persona's characteristics, which option would they most likely choose?\n\n"
        "Respond in JSON format:\n"
        '{\n  "chosen": "option text",\n  "reasoning": "why this persona would choose this",\n'
        '  "confidence": 0.0-1.0\n}'
    )


def build_content_prompt(content_type: str, persona: Persona, platform: str) -> str:
    c = persona.characteristics
    return (
        f"Generate realistic {content_type} for a {persona.type.value} level user "
        f"testing the {platform} platform.\n\n"
        "Persona characteristics:\n"
        f"- Tech Savvy: {c.tech_savvy}/10\n"
        f"- Detail Oriented: {c.detail_oriented}/10\n\n"
        "Generate content that this persona would realistically create. "
        "Respond with the content only."
    )


def parse_decision(text: str, options: list[str]) -> DecisionResponse:
    """Validate the oracle's JSON answer against the offered options."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise OracleError("oracle returned non-JSON decision", {"raw": text[:200]}) from exc

    if not isinstance(payload, dict):
        raise OracleError("oracle decision must be a JSON object", {"raw": text[:200]})

    chosen = payload.get("chosen")
    if chosen not in options:
        raise OracleError("oracle chose an option that was not offered", {"chosen": chosen})

    try:
        confidence = float(payload.get("confidence", 0.5))
    except (TypeError, ValueError) as exc:
        raise OracleError("oracle confidence is not a number") from exc

    return DecisionResponse(
        chosen=chosen,
        reasoning=str(payload.get("reasoning", "")),
        confidence=min(max(confidence, 0.0), 1.0),
    )


class AnthropicOracle:
    """Oracle backed by the Anthropic Messages API."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        decision_max_tokens: int = 500,
        content_max_tokens: int = 1000,
        client: Any = None,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        self._decision_max_tokens = decision_max_tokens
        self._content_max_tokens = content_max_tokens

    async def decide(self, context: str, persona: Persona, options: list[str]) -> DecisionResponse:
        text = await self._complete(build_decision_prompt(context, persona, options), self._decision_max_tokens)
        return parse_decision(text, options)

    async def generate(self, content_type: str, persona: Persona, platform: str) -> str:
        text = await self._complete(build_content_prompt(content_type, persona, platform), self._content_max_tokens)
        if not text.strip():
            raise OracleError("oracle returned empty content", {"content_type": content_type})
        return text.strip()

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise OracleError(f"oracle request failed: {exc}") from exc

        parts = [getattr(block, "text", "") for block in message.content if getattr(block, "type", "") == "text"]
        return "\n".join(parts)
