"""SQLAlchemy implementation of the vote store."""
from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pulse_scoring.core.errors import NotFoundError, StoreWriteError
from pulse_scoring.core.settings import settings
from pulse_scoring.db.time import as_utc, parse_timestamp, utcnow
from pulse_scoring.models import Presentation, Vote
from pulse_scoring.models.vote import ACTION_CREATED, ACTION_UPDATED
from pulse_scoring.repositories.base import VoteCorrection

if TYPE_CHECKING:
    from pulse_scoring.services.aggregator import Rollup

logger = logging.getLogger(__name__)

__all__ = ["SqlVoteStore", "select_presentation"]


def select_presentation(presentation_id: str, *, for_update: bool = False) -> Select:
    """Build the query loading one presentation, optionally row-locked."""
    stmt = select(Presentation).where(Presentation.id == presentation_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


class SqlVoteStore:
    """Vote store backed by a SQLAlchemy session.

    Writes are flushed immediately but only become durable on :meth:`commit`.
    Any database failure rolls the session back and surfaces as
    :class:`StoreWriteError`.
    """

    def __init__(self, session: Session, max_batch_writes: int | None = None) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session
        self.max_batch_writes = max_batch_writes or settings.store_max_batch_writes

    @contextmanager
    def _writing(self, what: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Store write failed during %s: %s", what, exc)
            raise StoreWriteError(f"Could not {what}") from exc

    # Reads

    def get_presentation(
        self, presentation_id: str, *, for_update: bool = False
    ) -> Presentation | None:
        """Load a presentation, locking its row when ``for_update`` is set.

        The lock serializes concurrent rollup recomputes on backends that
        support ``SELECT ... FOR UPDATE``; SQLite ignores it.
        """
        if not for_update:
            return self.session.get(Presentation, presentation_id)
        return self.session.scalars(select_presentation(presentation_id, for_update=True)).first()

    def list_presentations(self) -> list[Presentation]:
        return list(self.session.scalars(select(Presentation).order_by(Presentation.id)))

    def get_vote(self, user_id: str, presentation_id: str) -> Vote | None:
        return self.session.scalars(
            select(Vote).where(
                Vote.user_id == user_id,
                Vote.presentation_id == presentation_id,
            )
        ).first()

    def get_vote_by_id(self, vote_id: int) -> Vote | None:
        return self.session.get(Vote, vote_id)

    def list_votes(self) -> list[Vote]:
        return list(self.session.scalars(select(Vote).order_by(Vote.id)))

    def list_votes_for_presentation(self, presentation_id: str) -> list[Vote]:
        return list(
            self.session.scalars(
                select(Vote).where(Vote.presentation_id == presentation_id).order_by(Vote.id)
            )
        )

    def list_votes_for_user(self, user_id: str) -> list[Vote]:
        return list(
            self.session.scalars(select(Vote).where(Vote.user_id == user_id).order_by(Vote.id))
        )

    # Writes

    def upsert_vote(
        self,
        *,
        user_id: str,
        presentation_id: str,
        role: str,
        ratings: list[dict[str, Any]],
        total_score: float,
        is_absent: bool = False,
        absent_reason: str | None = None,
        now: datetime | None = None,
    ) -> tuple[Vote, str]:
        """Create the (user, presentation) vote or update it in place.

        Every call appends one history entry. On update the entry records the
        previous total, and ``total_score``, ``ratings`` and ``updated_at`` are
        replaced together.

        Returns:
            The persisted vote and the history action that was recorded.
        """
        now = as_utc(now) if now is not None else utcnow()
        entry: dict[str, Any] = {
            "totalScore": total_score,
            "ratings": ratings,
            "userId": user_id,
            "isAbsent": is_absent,
        }
        if is_absent and absent_reason:
            entry["absentReason"] = absent_reason

        with self._writing("save vote"):
            vote = self.get_vote(user_id, presentation_id)
            if vote is None:
                vote = Vote(
                    user_id=user_id,
                    presentation_id=presentation_id,
                    role=role,
                    ratings=ratings,
                    total_score=total_score,
                    timestamp=now,
                    is_absent=is_absent,
                    absent_reason=absent_reason if is_absent else None,
                    history=[{**entry, "timestamp": now.isoformat(), "action": ACTION_CREATED}],
                )
                self.session.add(vote)
                self.session.flush()
                return vote, ACTION_CREATED

            history = list(vote.history or [])
            previous = _current_total(vote)
            if not history:
                # Legacy row without a log: keep its original submission as the first entry.
                created_at = parse_timestamp(vote.timestamp)
                history.append(
                    {
                        "timestamp": created_at.isoformat() if created_at else None,
                        "action": ACTION_CREATED,
                        "totalScore": previous,
                        "ratings": list(vote.ratings or []),
                        "userId": vote.user_id,
                        "isAbsent": vote.is_absent,
                    }
                )
            stamp = _not_before(now, history)
            history.append(
                {
                    **entry,
                    "timestamp": stamp.isoformat(),
                    "action": ACTION_UPDATED,
                    "previousScore": previous,
                }
            )

            vote.role = role
            vote.ratings = ratings
            vote.total_score = total_score
            vote.updated_at = stamp
            vote.is_absent = is_absent
            vote.absent_reason = absent_reason if is_absent else None
            vote.history = history
            self.session.flush()
            return vote, ACTION_UPDATED

    def mark_absent(self, vote_id: int, reason: str) -> Vote:
        """Flag the presenter as absent on a vote; scores and history are untouched."""
        vote = self.get_vote_by_id(vote_id)
        if vote is None:
            raise NotFoundError("vote", vote_id)
        with self._writing("mark vote absent"):
            vote.is_absent = True
            vote.absent_reason = reason
            self.session.flush()
        return vote

    def save_rollup(
        self, presentation: Presentation, rollup: Rollup, *, fixed_by_script: bool = False
    ) -> None:
        with self._writing("save presentation rollup"):
            presentation.judge_scores = list(rollup.judge_scores)
            presentation.judge_total = rollup.judge_total
            presentation.judge_count = rollup.judge_count
            presentation.spectator_likes = rollup.spectator_likes
            if fixed_by_script:
                presentation.fixed_by_script = True
            self.session.flush()

    def apply_vote_corrections(self, corrections: Sequence[VoteCorrection]) -> None:
        """Write one batch of repaired totals and commit it.

        Raises:
            ValueError: If the batch exceeds :attr:`max_batch_writes`.
            StoreWriteError: If the batch could not be committed.
        """
        if len(corrections) > self.max_batch_writes:
            raise ValueError(
                f"Batch of {len(corrections)} writes exceeds the limit of {self.max_batch_writes}"
            )
        with self._writing("commit vote corrections"):
            for correction in corrections:
                vote = self.session.get(Vote, correction.vote_id)
                if vote is None:
                    logger.warning("Vote %s vanished before its correction", correction.vote_id)
                    continue
                vote.total_score = correction.total_score
                vote.original_total_score = correction.original_total_score
                vote.fixed_by_script = True
            self.session.commit()

    def commit(self) -> None:
        with self._writing("commit"):
            self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


def _current_total(vote: Vote) -> float:
    if vote.total_score is not None:
        return vote.total_score
    return vote.legacy_score or 0


def _not_before(now: datetime, history: list[dict[str, Any]]) -> datetime:
    """Clamp ``now`` so the history log never goes backwards in time."""
    latest = None
    for entry in history:
        stamp = parse_timestamp(entry.get("timestamp")) if isinstance(entry, dict) else None
        if stamp is not None and (latest is None or stamp > latest):
            latest = stamp
    if latest is not None and latest > now:
        return latest
    return now
