"""Leaderboard ranking and score explanations built on presentation rollups."""
from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from pulse_scoring.models import Presentation, Vote
from pulse_scoring.models.presentation import ROOMS
from pulse_scoring.models.vote import ROLE_JUDGE, ROLE_SPECTATOR
from pulse_scoring.services.aggregator import Rollup, spectator_question_averages
from pulse_scoring.services.normalizer import raw_sum

__all__ = [
    "LEADERBOARD_CSV_HEADERS",
    "LeaderboardEntry",
    "RoomActivity",
    "ScoringReport",
    "build_report",
    "explain_score",
    "leaderboard_csv",
    "rank_presentations",
    "score_breakdown",
]

LEADERBOARD_CSV_HEADERS = ("Rank", "Title", "Authors", "Room", "JudgeTotal", "SpectatorLikes")


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    presentation: Presentation
    rollup: Rollup


def rank_presentations(
    presentations: Iterable[Presentation],
    *,
    room: str | None = None,
    include_unscored: bool = False,
) -> list[LeaderboardEntry]:
    """Rank by judge total; spectator likes only break ties.

    Presentations no judge has scored are left out unless
    ``include_unscored`` is set.
    """
    rows = []
    for presentation in presentations:
        if room is not None and presentation.room != room:
            continue
        rollup = Rollup.from_presentation(presentation)
        if rollup.judge_total <= 0 and not include_unscored:
            continue
        rows.append((presentation, rollup))

    rows.sort(key=lambda row: (-row[1].judge_total, -row[1].spectator_likes, row[0].id))
    return [
        LeaderboardEntry(rank=index, presentation=presentation, rollup=rollup)
        for index, (presentation, rollup) in enumerate(rows, start=1)
    ]


def explain_score(presentation: Presentation) -> str:
    """Plain-text account of how the presentation's judge total was reached."""
    rollup = Rollup.from_presentation(presentation)
    lines = [
        f'Final score calculation for "{presentation.title}":',
        "",
        f"- {rollup.judge_count} judge(s) have scored this presentation",
    ]
    if rollup.judge_scores:
        lines += [
            "",
            "Detailed calculation:",
            "- Individual judge scores: "
            + " + ".join(f"{score:g}" for score in rollup.judge_scores),
            f"- Sum of all judge scores: {rollup.judge_total:g}",
            "",
            "Each judge's score is the raw sum of their category ratings, and the",
            "presentation's score is the sum of all judge scores (not an average).",
        ]
    return "\n".join(lines)


def score_breakdown(presentation: Presentation, votes: Iterable[Vote]) -> dict[str, Any]:
    """Per-judge view of the rollup for the score explanation screen."""
    votes = list(votes)
    rollup = Rollup.from_presentation(presentation)
    judges = []
    for vote in votes:
        if vote.role != ROLE_JUDGE:
            continue
        ratings = vote.ratings if isinstance(vote.ratings, list) else []
        judges.append(
            {
                "userId": vote.user_id,
                "storedTotalScore": vote.total_score,
                "rawCategorySum": raw_sum(ratings),
                "categories": [
                    {"category": rating.get("categoryId"), "score": rating.get("score")}
                    for rating in ratings
                    if isinstance(rating, dict)
                ],
            }
        )
    return {
        "presentationId": presentation.id,
        "presentationTitle": presentation.title,
        "numberOfJudges": rollup.judge_count,
        "individualScores": rollup.judge_scores,
        "judgeTotal": rollup.judge_total,
        "spectatorLikes": rollup.spectator_likes,
        "spectatorQuestionAverages": spectator_question_averages(votes),
        "voteCalculation": judges,
    }


@dataclass
class RoomActivity:
    """Presentations scheduled in a room and the votes cast on them."""

    room: str
    presentations: int = 0
    judge_votes: int = 0
    spectator_votes: int = 0


@dataclass
class ScoringReport:
    """Conference-wide counts plus the ranked leaderboard."""

    total_presentations: int
    total_votes: int
    total_judges: int
    total_spectators: int
    rooms: list[RoomActivity] = field(default_factory=list)
    leaderboard: list[LeaderboardEntry] = field(default_factory=list)


def build_report(
    presentations: Iterable[Presentation],
    votes: Iterable[Vote],
    *,
    room: str | None = None,
) -> ScoringReport:
    """Summarize voting activity per room and rank the scored presentations.

    Judges and spectators are counted as distinct voters. Only the
    leaderboard honours ``room``; the counts always cover every room.
    """
    presentations = list(presentations)
    votes = list(votes)
    activity = {name: RoomActivity(room=name) for name in ROOMS}
    room_of: dict[str, str | None] = {}
    for presentation in presentations:
        room_of[presentation.id] = presentation.room
        if presentation.room in activity:
            activity[presentation.room].presentations += 1

    judges: set[str] = set()
    spectators: set[str] = set()
    for vote in votes:
        bucket = activity.get(room_of.get(vote.presentation_id))
        if vote.role == ROLE_JUDGE:
            judges.add(vote.user_id)
            if bucket is not None:
                bucket.judge_votes += 1
        elif vote.role == ROLE_SPECTATOR:
            spectators.add(vote.user_id)
            if bucket is not None:
                bucket.spectator_votes += 1

    return ScoringReport(
        total_presentations=len(presentations),
        total_votes=len(votes),
        total_judges=len(judges),
        total_spectators=len(spectators),
        rooms=list(activity.values()),
        leaderboard=rank_presentations(presentations, room=room),
    )


def leaderboard_csv(entries: Sequence[LeaderboardEntry]) -> bytes:
    """Leaderboard as CSV, one row per ranked presentation."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(LEADERBOARD_CSV_HEADERS)
    for entry in entries:
        writer.writerow(
            [
                entry.rank,
                entry.presentation.title,
                ", ".join(entry.presentation.authors or []),
                entry.presentation.room or "",
                f"{entry.rollup.judge_total:g}",
                entry.rollup.spectator_likes,
            ]
        )
    return buffer.getvalue().encode("utf-8")
