"""Tests for the decision oracle: prompt building, answer validation and the Anthropic adapter."""

from __future__ import annotations

from types import SimpleNamespace

import anthropic
import httpx
import pytest

from betasim.core.models import PersonaType
from betasim.core.oracle import (
    AnthropicOracle,
    build_content_prompt,
    build_decision_prompt,
    parse_decision,
)
from betasim.exceptions import OracleError

from conftest import make_persona


class FakeMessages:
    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


def _oracle(text: str = "", error: Exception | None = None):
    messages = FakeMessages(text, error)
    return AnthropicOracle(client=SimpleNamespace(messages=messages), model="test-model"), messages


class TestParseDecision:
    def test_valid_answer(self) -> None:
        response = parse_decision('{"chosen": "PDF", "reasoning": "familiar", "confidence": 0.8}', ["PDF", "HL7"])

        assert response.chosen == "PDF"
        assert response.reasoning == "familiar"
        assert response.confidence == 0.8

    def test_code_fenced_answer(self) -> None:
        text = '```json\n{"chosen": "HL7", "reasoning": "", "confidence": 1}\n```'
        assert parse_decision(text, ["PDF", "HL7"]).chosen == "HL7"

    def test_confidence_clamped(self) -> None:
        assert parse_decision('{"chosen": "A", "confidence": 7}', ["A"]).confidence == 1.0
        assert parse_decision('{"chosen": "A", "confidence": -1}', ["A"]).confidence == 0.0

    @pytest.mark.parametrize(
        "text",
        [
            "I would pick PDF",
            '["PDF"]',
            '{"chosen": "DOCX", "confidence": 0.5}',
            '{"chosen": "PDF", "confidence": "very"}',
        ],
    )
    def test_malformed_answers_rejected(self, text) -> None:
        with pytest.raises(OracleError):
            parse_decision(text, ["PDF", "HL7"])


class TestPrompts:
    def test_decision_prompt_lists_options(self) -> None:
        persona = make_persona(PersonaType.EXPERT)
        prompt = build_decision_prompt("Which format?", persona, ["PDF", "HL7"])

        assert "1. PDF" in prompt
        assert "2. HL7" in prompt
        assert "Context: Which format?" in prompt
        assert persona.name in prompt

    def test_content_prompt_names_platform(self) -> None:
        prompt = build_content_prompt("patient_name", make_persona(PersonaType.BEGINNER), "mednext-healthcare")

        assert "Generate realistic patient_name for a BEGINNER level user" in prompt
        assert "mednext-healthcare platform" in prompt


class TestAnthropicOracle:
    @pytest.mark.asyncio
    async def test_decide(self) -> None:
        oracle, messages = _oracle('{"chosen": "FHIR", "reasoning": "modern", "confidence": 0.7}')

        response = await oracle.decide("Which format?", make_persona(), ["PDF", "HL7", "FHIR"])

        assert response.chosen == "FHIR"
        request = messages.requests[0]
        assert request["model"] == "test-model"
        assert request["max_tokens"] == 500
        assert request["messages"][0]["role"] == "user"

    @pytest.mark.asyncio
    async def test_generate(self) -> None:
        oracle, messages = _oracle("  Chapter 1: It begins.  ")

        text = await oracle.generate("manuscript_excerpt", make_persona(), "lumina")

        assert text == "Chapter 1: It begins."
        assert messages.requests[0]["max_tokens"] == 1000

    @pytest.mark.asyncio
    async def test_empty_content_is_an_error(self) -> None:
        oracle, _ = _oracle("   ")

        with pytest.raises(OracleError):
            await oracle.generate("manuscript_excerpt", make_persona(), "lumina")

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
        oracle, _ = _oracle(error=error)

        with pytest.raises(OracleError):
            await oracle.decide("Which?", make_persona(), ["A", "B"])
