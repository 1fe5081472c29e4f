"""Vote audit trail: history replay, drift analysis and exports.

Every function here tolerates partial legacy rows. Missing timestamps,
totals or ratings degrade to ``"N/A"`` or zero rather than raising.
"""
from __future__ import annotations

import csv
import io
import json
import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from pulse_scoring.core.errors import ConsistencyWarning
from pulse_scoring.core.settings import settings
from pulse_scoring.db.time import parse_timestamp, utcnow
from pulse_scoring.models import Presentation, Vote
from pulse_scoring.models.vote import ACTION_CREATED, ACTION_UPDATED
from pulse_scoring.repositories.base import VoteStore
from pulse_scoring.schemas.audit import AuditFilters, ExportFormat
from pulse_scoring.schemas.vote import HistoryEntryOut, VoteOut
from pulse_scoring.services.normalizer import legacy_stored_totals, raw_sum
from pulse_scoring.services.registry import CategorySpec, RegistrySnapshot

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
NOT_UPDATED = "Not updated"
UNKNOWN_PRESENTATION = "Unknown Presentation"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

__all__ = [
    "AuditService",
    "AuditSummary",
    "HistoryEntry",
    "VoteAnalysis",
    "analyze_vote",
    "current_total",
    "export_csv",
    "export_json",
    "filter_votes",
    "format_timestamp",
    "get_history",
    "is_update",
    "summarize",
    "to_vote_out",
]


@dataclass(frozen=True)
class HistoryEntry:
    """One scoring event of a vote, real or synthesized from legacy fields."""

    timestamp: datetime | None
    action: str
    total_score: float
    previous_score: float | None = None
    ratings: list[dict[str, Any]] = field(default_factory=list)
    is_absent: bool = False


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _ratings(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [dict(rating) for rating in value if isinstance(rating, Mapping)]


def current_total(vote: Vote) -> float:
    """Stored total, falling back to the legacy score only when no total exists."""
    total = _number(vote.total_score)
    if total is not None:
        return total
    return _number(vote.legacy_score) or 0.0


def format_timestamp(value: Any, missing: str = NOT_AVAILABLE) -> str:
    stamp = parse_timestamp(value)
    if stamp is None:
        return missing
    return stamp.strftime(TIMESTAMP_FORMAT)


def _entry_from_document(document: Mapping[str, Any]) -> HistoryEntry:
    action = document.get("action")
    return HistoryEntry(
        timestamp=parse_timestamp(document.get("timestamp")),
        action=action if isinstance(action, str) else NOT_AVAILABLE,
        total_score=_number(document.get("totalScore")) or 0.0,
        previous_score=_number(document.get("previousScore")),
        ratings=_ratings(document.get("ratings")),
        is_absent=bool(document.get("isAbsent", False)),
    )


def _legacy_history(vote: Vote) -> list[HistoryEntry]:
    created = parse_timestamp(vote.timestamp)
    updated = parse_timestamp(vote.updated_at)
    total = current_total(vote)
    ratings = _ratings(vote.ratings)
    entries = []
    if created is not None:
        entries.append(HistoryEntry(created, ACTION_CREATED, total, None, ratings, vote.is_absent))
    if updated is not None and updated != created:
        entries.append(HistoryEntry(updated, ACTION_UPDATED, total, None, ratings, vote.is_absent))
    return entries


def get_history(vote: Vote) -> list[HistoryEntry]:
    """Scoring events of ``vote`` in ascending time order.

    Votes written before history tracking get a pseudo-history: one
    ``created`` entry, plus an ``updated`` entry when ``updated_at`` differs
    from the submit time. Undated entries sort last.
    """
    raw = vote.history if isinstance(vote.history, list) else None
    if not raw:
        return _legacy_history(vote)
    entries = [_entry_from_document(doc) for doc in raw if isinstance(doc, Mapping)]
    return sorted(entries, key=lambda entry: (entry.timestamp is None, entry.timestamp or datetime.min))


def is_update(vote: Vote) -> bool:
    """True when the vote has been resubmitted at least once."""
    if isinstance(vote.history, list) and vote.history:
        return len(vote.history) > 1
    created = parse_timestamp(vote.timestamp)
    updated = parse_timestamp(vote.updated_at)
    return created is not None and updated is not None and updated != created


def _last_activity(vote: Vote) -> datetime | None:
    return parse_timestamp(vote.updated_at) or parse_timestamp(vote.timestamp)


def _title(presentations: Mapping[str, Presentation], presentation_id: str) -> str:
    presentation = presentations.get(presentation_id)
    return presentation.title if presentation is not None else UNKNOWN_PRESENTATION


def filter_votes(
    votes: Iterable[Vote],
    presentations: Mapping[str, Presentation],
    filters: AuditFilters,
    *,
    now: datetime | None = None,
) -> list[Vote]:
    """Apply ``filters`` and order by most recent activity first."""
    now = now or utcnow()
    recent_cutoff = now - timedelta(hours=settings.recent_window_hours)
    needle = filters.search.lower() if filters.search else None

    selected = []
    for vote in votes:
        if needle and needle not in _title(presentations, vote.presentation_id).lower() and (
            needle not in (vote.user_id or "").lower()
        ):
            continue
        if filters.role and vote.role != filters.role:
            continue
        if filters.presentation_id and vote.presentation_id != filters.presentation_id:
            continue
        if filters.user_id and vote.user_id != filters.user_id:
            continue
        if filters.updated_only and not is_update(vote):
            continue
        if filters.recent_only:
            submitted = parse_timestamp(vote.timestamp)
            if submitted is None or submitted <= recent_cutoff:
                continue
        if filters.date and filters.date not in format_timestamp(vote.timestamp):
            continue
        selected.append(vote)

    dated = [vote for vote in selected if _last_activity(vote) is not None]
    undated = [vote for vote in selected if _last_activity(vote) is None]
    dated.sort(key=_last_activity, reverse=True)  # type: ignore[arg-type]
    return dated + undated


def _rating_target(rating: Mapping[str, Any]) -> str:
    return str(rating.get("categoryId") or rating.get("questionId") or "Unknown")


def _export_record(
    vote: Vote,
    presentations: Mapping[str, Presentation],
    categories: Sequence[CategorySpec],
) -> dict[str, Any]:
    history = get_history(vote)
    names = {category.id: category.name for category in categories}
    return {
        "voteId": vote.id,
        "userId": vote.user_id,
        "presentationId": vote.presentation_id,
        "presentationTitle": _title(presentations, vote.presentation_id),
        "role": vote.role,
        "currentScore": current_total(vote),
        "originalSubmitTime": format_timestamp(vote.timestamp),
        "lastUpdateTime": format_timestamp(vote.updated_at, missing=NOT_UPDATED),
        "totalHistoryEntries": len(history),
        "isUpdated": is_update(vote),
        "isAbsent": bool(vote.is_absent),
        "absentReason": vote.absent_reason or NOT_AVAILABLE,
        "categoryBreakdown": [
            {
                "category": _rating_target(rating),
                "name": names.get(_rating_target(rating), _rating_target(rating)),
                "score": rating.get("score"),
            }
            for rating in _ratings(vote.ratings)
        ],
        "completeHistory": [
            {
                "entryNumber": number,
                "timestamp": format_timestamp(entry.timestamp),
                "action": entry.action,
                "totalScore": entry.total_score,
                "previousScore": (
                    entry.previous_score if entry.previous_score is not None else NOT_AVAILABLE
                ),
                "isAbsent": entry.is_absent,
                "individualRatings": [
                    {"category": _rating_target(rating), "score": rating.get("score")}
                    for rating in entry.ratings
                ],
            }
            for number, entry in enumerate(history, start=1)
        ],
    }


def export_json(
    votes: Iterable[Vote],
    presentations: Mapping[str, Presentation],
    categories: Sequence[CategorySpec] = (),
) -> bytes:
    """Full-fidelity dump: one record per vote with its complete history."""
    records = [_export_record(vote, presentations, categories) for vote in votes]
    return json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")


def export_csv(
    votes: Iterable[Vote],
    presentations: Mapping[str, Presentation],
    categories: Sequence[CategorySpec],
) -> bytes:
    """Flat export: one row per vote, one column per scoring category."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(
        [
            "userId",
            "presentationTitle",
            "totalScore",
            "originalSubmitTime",
            "lastUpdateTime",
            "isUpdate",
            "isAbsent",
            *(category.name for category in categories),
        ]
    )
    for vote in votes:
        by_category = {
            rating.get("categoryId"): rating.get("score") for rating in _ratings(vote.ratings)
        }
        title = " ".join(_title(presentations, vote.presentation_id).split())
        writer.writerow(
            [
                vote.user_id or "Unknown User",
                title,
                f"{current_total(vote):g}",
                format_timestamp(vote.timestamp),
                format_timestamp(vote.updated_at, missing=NOT_UPDATED),
                "Yes" if is_update(vote) else "No",
                "Yes" if vote.is_absent else "No",
                *(
                    "" if by_category.get(category.id) is None else by_category[category.id]
                    for category in categories
                ),
            ]
        )
    return buffer.getvalue().encode("utf-8")


@dataclass(frozen=True)
class VoteAnalysis:
    """Comparison of a vote's stored total with its ratings."""

    vote_id: int | None
    raw_sum: float
    stored_total: float
    discrepancy: bool
    matches_legacy_weighted: bool
    warning: ConsistencyWarning | None = None


def analyze_vote(
    vote: Vote,
    snapshot: RegistrySnapshot,
    tolerance: float | None = None,
) -> VoteAnalysis:
    """Check whether ``vote``'s stored total still matches its rating sum.

    Drift beyond ``tolerance`` is logged as a :class:`ConsistencyWarning`;
    ``matches_legacy_weighted`` tells whether the stored value came from the
    old weighted formula, including its minimum score of 10.
    """
    tolerance = settings.repair_tolerance if tolerance is None else tolerance
    expected = raw_sum(vote.ratings if isinstance(vote.ratings, list) else None)
    stored = current_total(vote)
    drifted = isinstance(vote.ratings, list) and abs(stored - expected) > tolerance
    warning = None
    if drifted:
        warning = ConsistencyWarning(vote.id, stored, expected)
        logger.warning("%s", warning)
    return VoteAnalysis(
        vote_id=vote.id,
        raw_sum=expected,
        stored_total=stored,
        discrepancy=drifted,
        matches_legacy_weighted=(
            isinstance(vote.ratings, list)
            and stored in legacy_stored_totals(vote.ratings, snapshot)
        ),
        warning=warning,
    )


@dataclass(frozen=True)
class AuditSummary:
    total_votes: int
    updated_votes: int
    recent_votes: int

    @property
    def update_rate(self) -> int:
        """Share of votes that were resubmitted, as a whole percentage."""
        if not self.total_votes:
            return 0
        return round(self.updated_votes / self.total_votes * 100)


def summarize(votes: Sequence[Vote], *, now: datetime | None = None) -> AuditSummary:
    now = now or utcnow()
    cutoff = now - timedelta(hours=settings.recent_window_hours)
    recent = 0
    for vote in votes:
        submitted = parse_timestamp(vote.timestamp)
        if submitted is not None and submitted > cutoff:
            recent += 1
    return AuditSummary(
        total_votes=len(votes),
        updated_votes=sum(1 for vote in votes if is_update(vote)),
        recent_votes=recent,
    )


class AuditService:
    """Reads votes for audit review and renders exports."""

    def __init__(self, store: VoteStore, snapshot: RegistrySnapshot) -> None:
        self.store = store
        self.snapshot = snapshot

    def get_vote_audit(
        self, presentation_id: str | None = None, user_id: str | None = None
    ) -> list[Vote]:
        """Votes of a presentation, of a user, or of both combined; all votes otherwise."""
        if presentation_id is not None:
            votes = self.store.list_votes_for_presentation(presentation_id)
            if user_id is not None:
                votes = [vote for vote in votes if vote.user_id == user_id]
            return votes
        if user_id is not None:
            return self.store.list_votes_for_user(user_id)
        return self.store.list_votes()

    def export_audit(
        self, fmt: ExportFormat, filters: AuditFilters, *, now: datetime | None = None
    ) -> bytes:
        """Render the filtered audit trail.

        All data is read up front; the renderers work purely in memory.
        """
        votes = self.get_vote_audit(filters.presentation_id, filters.user_id)
        presentations = {p.id: p for p in self.store.list_presentations()}
        selected = filter_votes(votes, presentations, filters, now=now)
        logger.info("Exporting %d of %d votes as %s", len(selected), len(votes), fmt.value)
        if fmt is ExportFormat.CSV:
            return export_csv(selected, presentations, self.snapshot.categories)
        return export_json(selected, presentations, self.snapshot.categories)


def to_vote_out(vote: Vote) -> VoteOut:
    """Convert a Vote ORM instance to its API schema, history included."""
    return VoteOut(
        id=vote.id,
        user_id=vote.user_id,
        presentation_id=vote.presentation_id,
        role=vote.role,
        total_score=current_total(vote),
        ratings=_ratings(vote.ratings),
        timestamp=parse_timestamp(vote.timestamp),
        updated_at=parse_timestamp(vote.updated_at),
        is_absent=bool(vote.is_absent),
        absent_reason=vote.absent_reason,
        is_update=is_update(vote),
        history=[
            HistoryEntryOut(
                timestamp=entry.timestamp,
                action=entry.action,
                total_score=entry.total_score,
                previous_score=entry.previous_score,
                ratings=entry.ratings,
                is_absent=entry.is_absent,
            )
            for entry in get_history(vote)
        ],
    )
