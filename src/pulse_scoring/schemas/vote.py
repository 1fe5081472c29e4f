"""Vote-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pulse_scoring.core.settings import settings


class RatingIn(BaseModel):
    """One star rating against a judge category or a spectator question."""

    model_config = ConfigDict(populate_by_name=True)

    category_id: str | None = Field(default=None, alias="categoryId")
    question_id: str | None = Field(default=None, alias="questionId")
    score: int = Field(..., ge=0, description="Star rating on the configured scale")

    @field_validator("score")
    @classmethod
    def _within_scale(cls, value: int) -> int:
        if value > settings.scoring_max_scale:
            raise ValueError(f"score must be at most {settings.scoring_max_scale}")
        return value

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "RatingIn":
        if (self.category_id is None) == (self.question_id is None):
            raise ValueError("a rating needs exactly one of categoryId or questionId")
        return self

    def as_document(self) -> dict[str, Any]:
        """Return the stored JSON shape of this rating."""
        return self.model_dump(by_alias=True, exclude_none=True)


class VoteCreate(BaseModel):
    """Schema for submitting or resubmitting a vote.

    Judges send one rating per category. A spectator submission is itself the
    like; question ratings are optional feedback.
    """

    presentation_id: str
    ratings: list[RatingIn] = Field(default_factory=list)
    is_absent: bool = False
    absent_reason: str | None = None


class VoteSubmitResponse(BaseModel):
    """Result of a vote submission."""

    vote_id: int
    action: str
    total_score: float


class AbsentRequest(BaseModel):
    """Admin request flagging a presenter as absent on a vote."""

    reason: str = Field(default="Presenter did not show up", min_length=1)


class HistoryEntryOut(BaseModel):
    """One scoring event of a vote."""

    timestamp: datetime | None
    action: str
    total_score: float
    previous_score: float | None = None
    ratings: list[dict[str, Any]] = Field(default_factory=list)
    is_absent: bool = False


class VoteOut(BaseModel):
    """Vote with its full history."""

    id: int
    user_id: str
    presentation_id: str
    role: str
    total_score: float
    ratings: list[dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime | None
    updated_at: datetime | None = None
    is_absent: bool = False
    absent_reason: str | None = None
    is_update: bool = False
    history: list[HistoryEntryOut] = Field(default_factory=list)
