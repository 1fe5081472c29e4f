"""Vote submission flow: normalize, upsert, re-aggregate, commit."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from pulse_scoring.core.errors import NotFoundError, StoreWriteError
from pulse_scoring.models import Vote
from pulse_scoring.repositories.base import VoteStore
from pulse_scoring.services.aggregator import Aggregator, Rollup
from pulse_scoring.services.normalizer import strategy_for
from pulse_scoring.services.registry import RegistrySnapshot, ScoringRegistry

logger = logging.getLogger(__name__)

__all__ = ["SubmitResult", "VoteService"]


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of a committed vote submission."""

    vote: Vote
    action: str
    total_score: float
    rollup: Rollup


class VoteService:
    """Entry point for judges and spectators casting or revising votes."""

    def __init__(self, store: VoteStore, registry: ScoringRegistry) -> None:
        self.store = store
        self.registry = registry
        self.aggregator = Aggregator(store)

    def submit_vote(
        self,
        *,
        user_id: str,
        presentation_id: str,
        role: str,
        ratings: Iterable[dict[str, Any]] | None = None,
        is_absent: bool = False,
        absent_reason: str | None = None,
        snapshot: RegistrySnapshot | None = None,
    ) -> SubmitResult:
        """Record ``user_id``'s vote on ``presentation_id``.

        A second submission for the same pair updates the existing vote. The
        vote, its history entry and the presentation rollup are committed
        together; nothing is reported as saved unless that commit succeeds.

        Raises:
            ValidationError: If ``role`` cannot vote.
            NotFoundError: If the presentation does not exist.
            StoreWriteError: If the store could not persist the vote.
        """
        strategy = strategy_for(role)
        if self.store.get_presentation(presentation_id, for_update=True) is None:
            raise NotFoundError("presentation", presentation_id)

        snapshot = snapshot or self.registry.snapshot()
        cleaned = strategy.clean(ratings, snapshot)
        total = strategy.normalize(cleaned, snapshot)

        try:
            vote, action = self.store.upsert_vote(
                user_id=user_id,
                presentation_id=presentation_id,
                role=strategy.role,
                ratings=cleaned,
                total_score=total,
                is_absent=is_absent,
                absent_reason=absent_reason,
            )
            rollup = self.aggregator.recompute_presentation_rollup(presentation_id)
            self.store.commit()
        except StoreWriteError:
            logger.error("Vote by %s on %s was not saved", user_id, presentation_id)
            raise

        logger.info(
            "Vote %s %s by %s (%s) on %s: total=%s",
            vote.id,
            action,
            user_id,
            strategy.role,
            presentation_id,
            total,
        )
        return SubmitResult(vote=vote, action=action, total_score=total, rollup=rollup)

    def get_vote(self, user_id: str, presentation_id: str) -> Vote | None:
        return self.store.get_vote(user_id, presentation_id)

    def mark_absent(self, vote_id: int, reason: str) -> Vote:
        """Flag the presenter absent on ``vote_id`` without touching its scores."""
        vote = self.store.mark_absent(vote_id, reason)
        self.store.commit()
        logger.info("Vote %s marked absent: %s", vote_id, reason)
        return vote
