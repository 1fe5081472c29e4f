"""Idempotent repair passes for vote totals and presentation rollups.

Run :func:`repair_vote_totals` to completion before
:func:`repair_presentation_rollups`; the rollup pass relies on vote totals
already being corrected. Both passes can be re-run safely: a second run finds
nothing left to fix.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from pulse_scoring.core.errors import ValidationError
from pulse_scoring.core.settings import settings
from pulse_scoring.models import Vote
from pulse_scoring.models.vote import ROLE_JUDGE
from pulse_scoring.repositories.base import VoteCorrection, VoteStore
from pulse_scoring.services.aggregator import compute_rollup
from pulse_scoring.services.normalizer import score_value

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

__all__ = ["RepairReport", "repair_presentation_rollups", "repair_vote_totals", "strict_raw_sum"]


@dataclass
class RepairReport:
    """Counters reported by a repair pass."""

    name: str
    scanned: int = 0
    fixed: int = 0
    skipped: int = 0
    batches: list[int] = field(default_factory=list)
    dry_run: bool = False

    @property
    def commits(self) -> int:
        return len(self.batches)

    def describe(self) -> str:
        mode = " (dry run)" if self.dry_run else ""
        return (
            f"{self.name}{mode}: scanned={self.scanned} fixed={self.fixed} "
            f"skipped={self.skipped} commits={self.commits}"
        )


def strict_raw_sum(ratings: object) -> float:
    """Raw sum of a stored rating list, refusing data it cannot interpret.

    Raises:
        ValidationError: If ``ratings`` is not a list of rating mappings.
    """
    if not isinstance(ratings, list):
        raise ValidationError(f"ratings must be a list, got {type(ratings).__name__}")
    for rating in ratings:
        if not isinstance(rating, Mapping):
            raise ValidationError(f"rating must be a mapping, got {type(rating).__name__}")
    return sum(score_value(rating) for rating in ratings)


def _report(progress: ProgressCallback | None, message: str) -> None:
    logger.info("%s", message)
    if progress is not None:
        progress(message)


def _batch_size(store: VoteStore, batch_size: int | None) -> int:
    batch_size = settings.repair_batch_size if batch_size is None else batch_size
    if batch_size < 1:
        raise ValueError(f"batch size must be positive, got {batch_size}")
    if batch_size > store.max_batch_writes:
        raise ValueError(
            f"batch size {batch_size} exceeds the store limit of {store.max_batch_writes}"
        )
    return batch_size


def _stored_total(vote: Vote) -> float:
    return float(vote.total_score or 0)


def repair_vote_totals(
    store: VoteStore,
    *,
    batch_size: int | None = None,
    tolerance: float | None = None,
    dry_run: bool = False,
    progress: ProgressCallback | None = None,
) -> RepairReport:
    """Reset every drifted vote total to the raw sum of its ratings.

    A vote is corrected when ``|raw_sum - total_score| > tolerance``; its old
    total is kept as ``original_total_score`` and it is tagged
    ``fixed_by_script``. Corrections are committed in batches of
    ``batch_size`` so a crash leaves earlier batches intact. Votes whose
    ratings cannot be interpreted are skipped and counted. A store failure
    stops the run.
    """
    batch_size = _batch_size(store, batch_size)
    tolerance = settings.repair_tolerance if tolerance is None else tolerance

    report = RepairReport(name="vote totals", dry_run=dry_run)
    pending: list[VoteCorrection] = []

    def flush() -> None:
        nonlocal pending
        if not pending:
            return
        batch, pending = pending, []
        if not dry_run:
            store.apply_vote_corrections(batch)
        report.batches.append(len(batch))
        _report(progress, f"Committed batch of {len(batch)} updates")

    # Committing a batch expires loaded rows, so read what the scan needs first.
    rows = [(vote.id, vote.ratings, _stored_total(vote)) for vote in store.list_votes()]
    for vote_id, ratings, stored in rows:
        if ratings is None:
            continue
        report.scanned += 1
        try:
            expected = strict_raw_sum(ratings)
        except ValidationError as exc:
            report.skipped += 1
            logger.warning("Skipping vote %s: %s", vote_id, exc)
            continue

        if abs(expected - stored) <= tolerance:
            continue

        logger.info("Vote %s: fixing totalScore from %s to %s", vote_id, stored, expected)
        pending.append(
            VoteCorrection(vote_id=vote_id, total_score=expected, original_total_score=stored)
        )
        report.fixed += 1
        if len(pending) >= batch_size:
            flush()

    flush()
    _report(progress, f"Fixed {report.fixed} of {report.scanned} votes with ratings")
    return report


def repair_presentation_rollups(
    store: VoteStore,
    *,
    batch_size: int | None = None,
    dry_run: bool = False,
    progress: ProgressCallback | None = None,
) -> RepairReport:
    """Overwrite every presentation rollup with a fresh recomputation.

    Judge votes contribute the raw sum of their ratings (falling back to the
    stored total); spectator votes are counted as likes. Votes with unusable
    data contribute nothing rather than aborting the pass. Every presentation
    is rewritten and tagged ``fixed_by_script`` whether or not it had drifted.
    """
    batch_size = _batch_size(store, batch_size)
    report = RepairReport(name="presentation rollups", dry_run=dry_run)
    in_batch = 0

    for presentation in store.list_presentations():
        report.scanned += 1
        votes = store.list_votes_for_presentation(presentation.id)
        rollup = compute_rollup(votes, prefer_raw_sum=True)

        judge_votes = sum(1 for vote in votes if vote.role == ROLE_JUDGE)
        _report(
            progress,
            f"Presentation {presentation.id}: judgeTotal={rollup.judge_total:g}, "
            f"scores=[{', '.join(f'{score:g}' for score in rollup.judge_scores)}], "
            f"judge votes={judge_votes}, likes={rollup.spectator_likes}",
        )
        report.fixed += 1
        if dry_run:
            continue

        store.save_rollup(presentation, rollup, fixed_by_script=True)
        in_batch += 1
        if in_batch >= batch_size:
            store.commit()
            report.batches.append(in_batch)
            in_batch = 0

    if in_batch and not dry_run:
        store.commit()
        report.batches.append(in_batch)
    _report(progress, f"Updated {report.fixed} of {report.scanned} presentations")
    return report
