from __future__ import annotations

import random
from dataclasses import dataclass

from betasim.core.models import Characteristics, DecisionPatterns, Persona, PersonaType


@dataclass(frozen=True)
class PersonaTemplate:
    """Platform-flavoured naming and motivation for one persona type."""

    name_prefix: str
    goals: tuple[str, ...]
    pain_points: tuple[str, ...]


DEFAULT_TEMPLATES: dict[PersonaType, PersonaTemplate] = {
    PersonaType.BEGINNER: PersonaTemplate(
        name_prefix="Novice User",
        goals=(
            "Learn the platform basics",
            "Complete a first end-to-end task",
            "Understand what features are available",
        ),
        pain_points=(
            "Overwhelmed by too many options",
            "Unsure where to start",
            "Afraid of making mistakes",
        ),
    ),
    PersonaType.INTERMEDIATE: PersonaTemplate(
        name_prefix="Active User",
        goals=(
            "Get better results faster",
            "Try advanced features",
            "Track performance metrics",
        ),
        pain_points=(
            "Balancing quality vs speed",
            "Understanding analytics",
        ),
    ),
    PersonaType.EXPERT: PersonaTemplate(
        name_prefix="Pro User",
        goals=(
            "Maximize automation",
            "Integrate with existing workflows",
            "Scale usage",
        ),
        pain_points=(
            "Wants full control and customization",
            "Needs API access and bulk operations",
        ),
    ),
    PersonaType.POWER_USER: PersonaTemplate(
        name_prefix="Team Lead",
        goals=(
            "Manage team workflows",
            "Process work at scale",
            "Custom integrations",
        ),
        pain_points=(
            "Multi-user coordination",
            "Cost efficiency at scale",
        ),
    ),
}

# Inclusive (low, high) ranges: tech_savvy, patience, risk_tolerance, detail_oriented.
TRAIT_RANGES: dict[PersonaType, tuple[tuple[int, int], ...]] = {
    PersonaType.BEGINNER: ((2, 4), (4, 6), (2, 4), (5, 7)),
    PersonaType.INTERMEDIATE: ((5, 7), (5, 7), (5, 7), (6, 8)),
    PersonaType.EXPERT: ((8, 10), (6, 8), (7, 9), (7, 9)),
    PersonaType.POWER_USER: ((9, 10), (7, 9), (8, 10), (8, 10)),
}

DECISION_PATTERNS: dict[PersonaType, DecisionPatterns] = {
    PersonaType.BEGINNER: DecisionPatterns(0.7, "seek-help", "cautious"),
    PersonaType.INTERMEDIATE: DecisionPatterns(0.5, "retry", "cautious"),
    PersonaType.EXPERT: DecisionPatterns(0.3, "retry", "early"),
    PersonaType.POWER_USER: DecisionPatterns(0.2, "retry", "early"),
}


class PersonaGenerator:
    """Generates persona inputs for agents.

    All randomness goes through ``rng`` so a seeded ``random.Random`` gives a
    reproducible batch.
    """

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        templates: dict[PersonaType, PersonaTemplate] | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._templates = dict(DEFAULT_TEMPLATES)
        if templates:
            self._templates.update(templates)

    def generate(self, persona_type: PersonaType, index: int) -> Persona:
        template = self._templates[persona_type]
        return Persona(
            id=f"persona_{persona_type.value.lower()}_{index}",
            name=f"{template.name_prefix} {index}",
            type=persona_type,
            characteristics=self._characteristics(persona_type),
            goals=template.goals,
            pain_points=template.pain_points,
            decision_patterns=DECISION_PATTERNS[persona_type],
        )

    def generate_batch(self, count: int) -> list[Persona]:
        """Generate ``count`` personas, cycling through the persona types in order."""
        if count < 0:
            raise ValueError("count must be >= 0")
        types = list(PersonaType)
        return [self.generate(types[i % len(types)], i + 1) for i in range(count)]

    def generate_realistic_batch(self, count: int) -> list[Persona]:
        if count < 0:
            raise ValueError("count must be >= 0")
        return [self.generate(t, i + 1) for i, t in enumerate(self.realistic_distribution(count))]

    def realistic_distribution(self, total: int) -> list[PersonaType]:
        """Shuffled type mix: 30% beginner, 40% intermediate, 20% expert, rest power users."""
        beginners = int(total * 0.3)
        intermediates = int(total * 0.4)
        experts = int(total * 0.2)
        power = total - beginners - intermediates - experts

        distribution = (
            [PersonaType.BEGINNER] * beginners
            + [PersonaType.INTERMEDIATE] * intermediates
            + [PersonaType.EXPERT] * experts
            + [PersonaType.POWER_USER] * power
        )
        self._rng.shuffle(distribution)
        return distribution

    def _characteristics(self, persona_type: PersonaType) -> Characteristics:
        tech, patience, risk, detail = (self._rng.randint(lo, hi) for lo, hi in TRAIT_RANGES[persona_type])
        return Characteristics(
            tech_savvy=tech,
            patience=patience,
            risk_tolerance=risk,
            detail_oriented=detail,
        )
