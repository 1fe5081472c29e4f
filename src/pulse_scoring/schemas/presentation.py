"""Presentation rollup and leaderboard schemas."""

from pydantic import BaseModel, Field


class RollupOut(BaseModel):
    """Derived scoring aggregate of a presentation."""

    presentation_id: str
    judge_scores: list[float] = Field(default_factory=list)
    judge_total: float = 0
    judge_count: int = 0
    spectator_likes: int = 0


class LeaderboardEntryOut(BaseModel):
    """One ranked presentation."""

    rank: int
    presentation_id: str
    title: str
    room: str | None = None
    judge_total: float
    judge_count: int
    spectator_likes: int


class ScoreExplanationOut(BaseModel):
    """Human-readable account of how a presentation's total was reached."""

    presentation_id: str
    judge_total: float
    explanation: str


class RoomActivityOut(BaseModel):
    """Voting activity in one conference room."""

    room: str
    presentations: int
    judge_votes: int
    spectator_votes: int


class ReportOut(BaseModel):
    """Conference-wide scoring report for the admin dashboard."""

    total_presentations: int
    total_votes: int
    total_judges: int
    total_spectators: int
    rooms: list[RoomActivityOut]
    leaderboard: list[LeaderboardEntryOut]
