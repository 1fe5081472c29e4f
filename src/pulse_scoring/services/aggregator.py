"""Presentation rollups derived from the full vote set."""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pulse_scoring.core.errors import NotFoundError
from pulse_scoring.models import Presentation, Vote
from pulse_scoring.models.vote import ROLE_JUDGE, ROLE_SPECTATOR
from pulse_scoring.repositories.base import VoteStore
from pulse_scoring.services.normalizer import raw_sum, score_value

logger = logging.getLogger(__name__)

__all__ = [
    "Aggregator",
    "Rollup",
    "compute_rollup",
    "judge_vote_value",
    "spectator_question_averages",
]


@dataclass(frozen=True)
class Rollup:
    """Judge total and spectator likes of one presentation."""

    judge_scores: list[float] = field(default_factory=list)
    judge_total: float = 0
    judge_count: int = 0
    spectator_likes: int = 0

    @classmethod
    def from_presentation(cls, presentation: Presentation) -> "Rollup":
        """Read the cached rollup stored on ``presentation``."""
        scores = [_number(score) for score in (presentation.judge_scores or [])]
        return cls(
            judge_scores=scores,
            judge_total=_number(presentation.judge_total),
            judge_count=presentation.judge_count or 0,
            spectator_likes=presentation.spectator_likes or 0,
        )


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(value)


def judge_vote_value(vote: Vote, *, prefer_raw_sum: bool = False) -> float:
    """Score a judge vote contributes to its presentation.

    Normal aggregation trusts ``total_score``. With ``prefer_raw_sum`` the
    rating scores are summed instead, falling back to ``total_score`` and then
    to the legacy single-number score when there are no ratings.
    """
    if prefer_raw_sum and isinstance(vote.ratings, list):
        return raw_sum(vote.ratings)
    total = _number(vote.total_score)
    if total or vote.legacy_score is None:
        return total
    return _number(vote.legacy_score)


def compute_rollup(votes: Iterable[Vote], *, prefer_raw_sum: bool = False) -> Rollup:
    """Pure rollup of a presentation's votes.

    Only positive judge totals count as scored; the judge total is their sum,
    never an average. Every spectator vote is one like.
    """
    judge_scores: list[float] = []
    spectator_likes = 0
    for vote in votes:
        if vote.role == ROLE_JUDGE:
            value = judge_vote_value(vote, prefer_raw_sum=prefer_raw_sum)
            if value > 0:
                judge_scores.append(value)
        elif vote.role == ROLE_SPECTATOR:
            spectator_likes += 1
        else:
            logger.debug("Skipping vote %s with unknown role %r", vote.id, vote.role)
    return Rollup(
        judge_scores=judge_scores,
        judge_total=sum(judge_scores),
        judge_count=len(judge_scores),
        spectator_likes=spectator_likes,
    )


def spectator_question_averages(votes: Iterable[Vote]) -> dict[str, float]:
    """Average score per spectator question, rounded to one decimal."""
    totals: dict[str, list[float]] = {}
    for vote in votes:
        if vote.role != ROLE_SPECTATOR or not isinstance(vote.ratings, list):
            continue
        for rating in vote.ratings:
            if not isinstance(rating, Mapping) or not isinstance(rating.get("questionId"), str):
                continue
            bucket = totals.setdefault(rating["questionId"], [0.0, 0])
            bucket[0] += score_value(rating)
            bucket[1] += 1
    return {
        question_id: round(total / count, 1) if count else 0.0
        for question_id, (total, count) in totals.items()
    }


class Aggregator:
    """Rebuilds presentation rollups from a fresh read of their votes."""

    def __init__(self, store: VoteStore) -> None:
        """Initialize the aggregator with the store it reads and writes."""
        self.store = store

    def recompute_presentation_rollup(self, presentation_id: str) -> Rollup:
        """Recompute and save the rollup of ``presentation_id``.

        The caller owns the commit, so the rollup lands in the same unit of
        work as the vote write that triggered it.

        Raises:
            NotFoundError: If the presentation does not exist.
        """
        presentation = self.store.get_presentation(presentation_id, for_update=True)
        if presentation is None:
            raise NotFoundError("presentation", presentation_id)
        rollup = compute_rollup(self.store.list_votes_for_presentation(presentation_id))
        self.store.save_rollup(presentation, rollup)
        logger.debug(
            "Rollup for %s: judge_total=%s judges=%d likes=%d",
            presentation_id,
            rollup.judge_total,
            rollup.judge_count,
            rollup.spectator_likes,
        )
        return rollup

    def get_presentation_rollup(self, presentation_id: str) -> Rollup:
        """Return the stored rollup of ``presentation_id``."""
        presentation = self.store.get_presentation(presentation_id)
        if presentation is None:
            raise NotFoundError("presentation", presentation_id)
        return Rollup.from_presentation(presentation)
