# src/pulse_scoring/models/presentation.py
"""SQLAlchemy model for conference presentations and their score rollup."""

from typing import Any

from sqlalchemy import JSON, Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pulse_scoring.db.session import Base

ROOMS = ("AZANIA", "ALOE", "CYCAD", "KHANYA")


class Presentation(Base):
    """A scheduled talk that judges score and attendees like.

    The ``judge_*`` and ``spectator_likes`` columns are a cache derived from
    the presentation's votes. Only the aggregator and the repair pass write
    them.
    """

    __tablename__ = "presentation"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    authors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    abstract: Mapped[str] = mapped_column(Text, nullable=False, default="")
    room: Mapped[str | None] = mapped_column(String(32), nullable=True)
    session_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(16), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # Rollup cache.
    judge_scores: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    judge_total: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    judge_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    spectator_likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    fixed_by_script: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
