# src/pulse_scoring/api/v1/endpoints/presentations.py
"""Presentation rollup, leaderboard and explanation endpoints."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response, status

from pulse_scoring.core.errors import PulseError
from pulse_scoring.models import Presentation
from pulse_scoring.models.presentation import ROOMS
from pulse_scoring.repositories import SqlVoteStore
from pulse_scoring.schemas.audit import ExportFormat
from pulse_scoring.schemas.presentation import (
    LeaderboardEntryOut,
    ReportOut,
    RollupOut,
    RoomActivityOut,
    ScoreExplanationOut,
)
from pulse_scoring.services.aggregator import Aggregator
from pulse_scoring.services.leaderboard import (
    LeaderboardEntry,
    build_report,
    explain_score,
    leaderboard_csv,
    rank_presentations,
    score_breakdown,
)

from ..dependencies import AdminDep, CurrentActorDep, StoreDep, http_error

router = APIRouter(prefix="/presentations", tags=["presentations"])


def _get_presentation_or_404(store: SqlVoteStore, presentation_id: str) -> Presentation:
    presentation = store.get_presentation(presentation_id)
    if presentation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Presentation not found",
        )
    return presentation


def _check_room(room: str | None) -> None:
    if room is not None and room not in ROOMS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown room {room!r}",
        )


def _entry_out(entry: LeaderboardEntry) -> LeaderboardEntryOut:
    return LeaderboardEntryOut(
        rank=entry.rank,
        presentation_id=entry.presentation.id,
        title=entry.presentation.title,
        room=entry.presentation.room,
        judge_total=entry.rollup.judge_total,
        judge_count=entry.rollup.judge_count,
        spectator_likes=entry.rollup.spectator_likes,
    )


@router.get("/leaderboard", response_model=list[LeaderboardEntryOut])
async def get_leaderboard(
    _actor: CurrentActorDep,
    store: StoreDep,
    room: str | None = Query(default=None, description="Restrict to one room"),
    include_unscored: bool = False,
) -> list[LeaderboardEntryOut]:
    """Presentations ranked by judge total, spectator likes breaking ties."""
    _check_room(room)
    entries = rank_presentations(
        store.list_presentations(),
        room=room,
        include_unscored=include_unscored,
    )
    return [_entry_out(entry) for entry in entries]


@router.get("/report", response_model=ReportOut)
async def get_report(
    _admin: AdminDep,
    store: StoreDep,
    room: str | None = Query(default=None, description="Restrict the leaderboard to one room"),
    format: ExportFormat = ExportFormat.JSON,
) -> ReportOut | Response:
    """Voting activity per room and the leaderboard, as JSON or CSV (admin only).

    The CSV download holds only the leaderboard.
    """
    _check_room(room)
    report = build_report(store.list_presentations(), store.list_votes(), room=room)
    if format is ExportFormat.CSV:
        return Response(
            content=leaderboard_csv(report.leaderboard),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": 'attachment; filename="presentation-leaderboard.csv"'},
        )
    return ReportOut(
        total_presentations=report.total_presentations,
        total_votes=report.total_votes,
        total_judges=report.total_judges,
        total_spectators=report.total_spectators,
        rooms=[RoomActivityOut(**asdict(activity)) for activity in report.rooms],
        leaderboard=[_entry_out(entry) for entry in report.leaderboard],
    )


@router.get("/{presentation_id}/rollup", response_model=RollupOut)
async def get_presentation_rollup(
    presentation_id: str,
    _actor: CurrentActorDep,
    store: StoreDep,
) -> RollupOut:
    """Return the stored judge total and spectator likes of a presentation."""
    try:
        rollup = Aggregator(store).get_presentation_rollup(presentation_id)
    except PulseError as exc:
        raise http_error(exc) from exc
    return RollupOut(
        presentation_id=presentation_id,
        judge_scores=rollup.judge_scores,
        judge_total=rollup.judge_total,
        judge_count=rollup.judge_count,
        spectator_likes=rollup.spectator_likes,
    )


@router.get("/{presentation_id}/explanation", response_model=ScoreExplanationOut)
async def get_score_explanation(
    presentation_id: str,
    _admin: AdminDep,
    store: StoreDep,
) -> ScoreExplanationOut:
    """Explain how a presentation's judge total was reached (admin only)."""
    presentation = _get_presentation_or_404(store, presentation_id)
    return ScoreExplanationOut(
        presentation_id=presentation.id,
        judge_total=presentation.judge_total or 0,
        explanation=explain_score(presentation),
    )


@router.get("/{presentation_id}/breakdown")
async def get_score_breakdown(
    presentation_id: str,
    _admin: AdminDep,
    store: StoreDep,
) -> dict[str, Any]:
    """Per-judge breakdown of a presentation's rollup (admin only)."""
    presentation = _get_presentation_or_404(store, presentation_id)
    return score_breakdown(presentation, store.list_votes_for_presentation(presentation_id))
