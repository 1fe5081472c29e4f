"""Store port used by the scoring services.

Services receive a :class:`VoteStore` instead of reaching for a module-level
session, so any backend (or a test double) can stand in.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pulse_scoring.models import Presentation, Vote
    from pulse_scoring.services.aggregator import Rollup

__all__ = ["VoteCorrection", "VoteStore"]


@dataclass(frozen=True)
class VoteCorrection:
    """Repair write replacing a vote's drifted total."""

    vote_id: int
    total_score: float
    original_total_score: float


class VoteStore(Protocol):
    """Persistence operations the engine relies on."""

    max_batch_writes: int

    def get_presentation(
        self, presentation_id: str, *, for_update: bool = False
    ) -> Presentation | None: ...

    def list_presentations(self) -> list[Presentation]: ...

    def get_vote(self, user_id: str, presentation_id: str) -> Vote | None: ...

    def get_vote_by_id(self, vote_id: int) -> Vote | None: ...

    def list_votes(self) -> list[Vote]: ...

    def list_votes_for_presentation(self, presentation_id: str) -> list[Vote]: ...

    def list_votes_for_user(self, user_id: str) -> list[Vote]: ...

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
    ) -> tuple[Vote, str]: ...

    def mark_absent(self, vote_id: int, reason: str) -> Vote: ...

    def save_rollup(
        self, presentation: Presentation, rollup: Rollup, *, fixed_by_script: bool = False
    ) -> None: ...

    def apply_vote_corrections(self, corrections: Sequence[VoteCorrection]) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
