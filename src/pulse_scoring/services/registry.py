"""Scoring category registry.

Votes are normalized against a :class:`RegistrySnapshot` taken when the vote
is submitted, so later reweighting or retiring a category never changes how
an already-submitted vote was scored.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from pulse_scoring.core.settings import settings
from pulse_scoring.models import ScoringCategory, SpectatorQuestion

logger = logging.getLogger(__name__)

__all__ = [
    "CategorySpec",
    "DEFAULT_SCORING_CATEGORIES",
    "QuestionSpec",
    "RegistrySnapshot",
    "ScoringRegistry",
    "default_snapshot",
]


@dataclass(frozen=True)
class CategorySpec:
    """Immutable view of a judge scoring category."""

    id: str
    name: str
    description: str
    weight: float


@dataclass(frozen=True)
class QuestionSpec:
    """Immutable view of a spectator question."""

    id: str
    text: str


DEFAULT_SCORING_CATEGORIES: tuple[CategorySpec, ...] = (
    CategorySpec(
        "technical",
        "Technical Quality",
        "Evaluate the quality, depth, and significant contribution to the field",
        0.3,
    ),
    CategorySpec(
        "delivery",
        "Delivery",
        "Rate the ability of the researcher to present the research study to the audience",
        0.3,
    ),
    CategorySpec(
        "visuals",
        "Visual Materials",
        "Assess the quality and effectiveness of slides and visual aids.",
        0.1,
    ),
    CategorySpec(
        "relevance",
        "Relevance & Impact",
        "Rate the relevance to the field and potential impact of the research.",
        0.1,
    ),
    CategorySpec(
        "experience",
        "Researcher Experience Level",
        "Professor - 1 Star, Dr- 2 Star, PhD Student- 3 star, Masters- 4 Star, "
        "Undergraduate -5 Star",
        0.2,
    ),
)


@dataclass(frozen=True)
class RegistrySnapshot:
    """Active categories and questions plus the scale ceilings."""

    categories: tuple[CategorySpec, ...]
    questions: tuple[QuestionSpec, ...] = ()
    max_points: int = 25
    max_scale: int = 5

    @property
    def category_ids(self) -> frozenset[str]:
        return frozenset(category.id for category in self.categories)

    @property
    def question_ids(self) -> frozenset[str]:
        return frozenset(question.id for question in self.questions)

    @property
    def weight_sum(self) -> float:
        return sum(category.weight for category in self.categories)

    def category(self, category_id: str) -> CategorySpec | None:
        """Return the active category with ``category_id``, if any."""
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def weights_balanced(self, tolerance: float = 1e-6) -> bool:
        """Return True when the active weights sum to 1.0."""
        return math.isclose(self.weight_sum, 1.0, abs_tol=tolerance)


def default_snapshot(questions: tuple[QuestionSpec, ...] = ()) -> RegistrySnapshot:
    """Snapshot of the built-in category set with configured ceilings."""
    return RegistrySnapshot(
        categories=DEFAULT_SCORING_CATEGORIES,
        questions=questions,
        max_points=settings.scoring_max_points,
        max_scale=settings.scoring_max_scale,
    )


class ScoringRegistry:
    """Database-backed registry of categories and questions."""

    def __init__(self, session: Session) -> None:
        """Initialize the registry with a SQLAlchemy session."""
        self.session = session

    def active_categories(self) -> tuple[CategorySpec, ...]:
        rows = self.session.scalars(
            select(ScoringCategory)
            .where(ScoringCategory.active.is_(True))
            .order_by(ScoringCategory.position, ScoringCategory.id)
        )
        return tuple(
            CategorySpec(row.id, row.name, row.description, float(row.weight)) for row in rows
        )

    def active_questions(self) -> tuple[QuestionSpec, ...]:
        rows = self.session.scalars(
            select(SpectatorQuestion)
            .where(SpectatorQuestion.active.is_(True))
            .order_by(SpectatorQuestion.position, SpectatorQuestion.id)
        )
        return tuple(QuestionSpec(row.id, row.text) for row in rows)

    def snapshot(self) -> RegistrySnapshot:
        """Return the registry as it stands right now.

        Falls back to :data:`DEFAULT_SCORING_CATEGORIES` when no category has
        been configured.
        """
        categories = self.active_categories()
        questions = self.active_questions()
        if not categories:
            return default_snapshot(questions)

        snapshot = RegistrySnapshot(
            categories=categories,
            questions=questions,
            max_points=settings.scoring_max_points,
            max_scale=settings.scoring_max_scale,
        )
        if not snapshot.weights_balanced(tolerance=0.01):
            logger.warning(
                "Active scoring category weights sum to %.3f, expected 1.0",
                snapshot.weight_sum,
            )
        return snapshot

    def seed_defaults(self) -> int:
        """Insert the default categories that are missing. Returns the number added."""
        existing = set(self.session.scalars(select(ScoringCategory.id)))
        added = 0
        for position, spec in enumerate(DEFAULT_SCORING_CATEGORIES):
            if spec.id in existing:
                continue
            self.session.add(
                ScoringCategory(
                    id=spec.id,
                    name=spec.name,
                    description=spec.description,
                    weight=spec.weight,
                    position=position,
                    active=True,
                )
            )
            added += 1
        self.session.flush()
        return added

    def retire_category(self, category_id: str) -> bool:
        """Deactivate a category so new submissions ignore it."""
        row = self.session.get(ScoringCategory, category_id)
        if row is None or not row.active:
            return False
        row.active = False
        self.session.flush()
        return True
