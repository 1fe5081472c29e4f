# src/pulse_scoring/models/scoring.py
"""Registry tables for judge scoring categories and spectator questions."""

from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pulse_scoring.db.session import Base


class ScoringCategory(Base):
    """Weighted criterion a judge rates on the star scale."""

    __tablename__ = "scoring_category"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Fractional weight; active weights are expected (not enforced) to sum to 1.0.
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Retired categories stay for historical votes but are excluded from snapshots.
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class SpectatorQuestion(Base):
    """Optional feedback question shown to attendees alongside the like."""

    __tablename__ = "spectator_question"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
