# src/pulse_scoring/models/vote.py
"""Models capturing judge and spectator evaluations of presentations."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from pulse_scoring.db.session import Base
from pulse_scoring.db.time import utcnow

ROLE_JUDGE = "judge"
ROLE_SPECTATOR = "spectator"

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"


class Vote(Base):
    """One user's evaluation of one presentation.

    A resubmission updates this row in place and appends to ``history``;
    ``history`` entries are never rewritten.
    """

    __tablename__ = "vote"
    __table_args__ = (
        UniqueConstraint("user_id", "presentation_id", name="uq_vote_user_presentation"),
        CheckConstraint("role IN ('judge', 'spectator')", name="ck_vote_role"),
        Index("ix_vote_presentation_id", "presentation_id"),
        Index("ix_vote_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    presentation_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("presentation.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)

    # [{"categoryId"|"questionId": str, "score": int}, ...]
    ratings: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    total_score: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    # Single-number score written by the first release, before category ratings.
    legacy_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    history: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    is_absent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    absent_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    fixed_by_script: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    original_total_score: Mapped[float | None] = mapped_column(Float, nullable=True)
