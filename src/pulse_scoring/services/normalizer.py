"""Rating normalization.

The canonical total of any vote is the raw, unweighted sum of its rating
scores. Each role gets a :class:`VoteStrategy` that decides which ratings are
admissible under the registry snapshot; inadmissible ratings are dropped
before the vote is stored, so a stored vote's ratings always sum to its
stored total.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from pulse_scoring.core.errors import ValidationError
from pulse_scoring.core.security import ROLE_CONFERENCE_CHAIR
from pulse_scoring.models.vote import ROLE_JUDGE, ROLE_SPECTATOR
from pulse_scoring.services.registry import RegistrySnapshot

logger = logging.getLogger(__name__)

__all__ = [
    "LEGACY_MINIMUM_SCORE",
    "JudgeVoteStrategy",
    "SpectatorVoteStrategy",
    "VoteStrategy",
    "legacy_stored_totals",
    "legacy_weighted_total",
    "raw_sum",
    "score_value",
    "strategy_for",
]


def score_value(rating: Any) -> float:
    """Return the numeric score of one rating, or 0 for anything unusable."""
    if not isinstance(rating, Mapping):
        return 0.0
    score = rating.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return 0.0
    if not math.isfinite(score):
        return 0.0
    return float(score)


def raw_sum(ratings: Iterable[Any] | None) -> float:
    """Sum rating scores without weighting. Missing or malformed data counts as 0."""
    if ratings is None or isinstance(ratings, (str, bytes, Mapping)):
        return 0.0
    try:
        return sum(score_value(rating) for rating in ratings)
    except TypeError:
        return 0.0


LEGACY_MINIMUM_SCORE = 10


def legacy_weighted_total(ratings: Iterable[Any] | None, snapshot: RegistrySnapshot) -> int:
    """Weighted percentage total used by early releases at submission time.

    ``score / max_scale * max_points * weight`` summed and rounded half up.
    Kept only to explain drift in historical data; it is never written as a
    total.
    """
    if ratings is None or isinstance(ratings, (str, bytes, Mapping)):
        return 0
    total = 0.0
    for rating in ratings:
        if not isinstance(rating, Mapping):
            continue
        category = snapshot.category(str(rating.get("categoryId")))
        if category is None:
            continue
        total += score_value(rating) / snapshot.max_scale * snapshot.max_points * category.weight
    return math.floor(total + 0.5)


def legacy_stored_totals(ratings: Iterable[Any] | None, snapshot: RegistrySnapshot) -> set[int]:
    """Totals an early release could have stored for ``ratings``.

    Non-absent judge votes were raised to :data:`LEGACY_MINIMUM_SCORE`, so
    both the plain weighted total and the floored one count.
    """
    weighted = legacy_weighted_total(ratings, snapshot)
    return {weighted, max(LEGACY_MINIMUM_SCORE, weighted)}


class VoteStrategy(ABC):
    """Role-specific rules for turning submitted ratings into a total."""

    role: str
    rating_key: str

    def applies_to(self, role: str) -> bool:
        return role == self.role

    @abstractmethod
    def admissible_ids(self, snapshot: RegistrySnapshot) -> frozenset[str]:
        """Ids that ratings of this role may reference."""

    def clean(self, ratings: Iterable[Any] | None, snapshot: RegistrySnapshot) -> list[dict[str, Any]]:
        """Return the ratings that will be stored.

        Ratings for unknown or retired ids are dropped. A repeated id keeps
        its last score. Unusable scores are stored as 0.
        """
        if ratings is None or isinstance(ratings, (str, bytes, Mapping)):
            return []
        allowed = self.admissible_ids(snapshot)
        cleaned: dict[str, dict[str, Any]] = {}
        for rating in ratings:
            if not isinstance(rating, Mapping):
                continue
            target = rating.get(self.rating_key)
            if not isinstance(target, str) or target not in allowed:
                logger.debug("Ignoring %s rating for unknown id %r", self.role, target)
                continue
            score = score_value(rating)
            cleaned[target] = {
                self.rating_key: target,
                "score": int(score) if score.is_integer() else score,
            }
        return list(cleaned.values())

    def normalize(self, ratings: Iterable[Any] | None, snapshot: RegistrySnapshot) -> float:
        """Canonical total for ``ratings`` under ``snapshot``."""
        return raw_sum(self.clean(ratings, snapshot))


class JudgeVoteStrategy(VoteStrategy):
    """Judges rate every active scoring category; conference chairs vote as judges."""

    role = ROLE_JUDGE
    rating_key = "categoryId"

    def applies_to(self, role: str) -> bool:
        return role in (ROLE_JUDGE, ROLE_CONFERENCE_CHAIR)

    def admissible_ids(self, snapshot: RegistrySnapshot) -> frozenset[str]:
        return snapshot.category_ids


class SpectatorVoteStrategy(VoteStrategy):
    """A spectator vote is one like; question ratings are feedback only."""

    role = ROLE_SPECTATOR
    rating_key = "questionId"

    def admissible_ids(self, snapshot: RegistrySnapshot) -> frozenset[str]:
        return snapshot.question_ids


STRATEGIES: tuple[VoteStrategy, ...] = (JudgeVoteStrategy(), SpectatorVoteStrategy())


def strategy_for(role: str) -> VoteStrategy:
    """Return the strategy handling votes cast by ``role``.

    Raises:
        ValidationError: If no role-specific strategy accepts ``role``.
    """
    for strategy in STRATEGIES:
        if strategy.applies_to(role):
            return strategy
    raise ValidationError(f"Role {role!r} cannot submit votes")
