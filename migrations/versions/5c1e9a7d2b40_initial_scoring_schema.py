"""initial scoring schema

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-03-02 09:14:51.402113

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create registry, presentation and vote tables."""
    op.create_table(
        "scoring_category",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "spectator_question",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "presentation",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("authors", sa.JSON(), nullable=False),
        sa.Column("abstract", sa.Text(), nullable=False),
        sa.Column("room", sa.String(length=32), nullable=True),
        sa.Column("session_date", sa.String(length=32), nullable=True),
        sa.Column("start_time", sa.String(length=16), nullable=True),
        sa.Column("end_time", sa.String(length=16), nullable=True),
        sa.Column("judge_scores", sa.JSON(), nullable=False),
        sa.Column("judge_total", sa.Float(), nullable=False),
        sa.Column("judge_count", sa.Integer(), nullable=False),
        sa.Column("spectator_likes", sa.Integer(), nullable=False),
        sa.Column("fixed_by_script", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "vote",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("presentation_id", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("ratings", sa.JSON(), nullable=True),
        sa.Column("total_score", sa.Float(), nullable=False),
        sa.Column("legacy_score", sa.Float(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("history", sa.JSON(), nullable=True),
        sa.Column("is_absent", sa.Boolean(), nullable=False),
        sa.Column("absent_reason", sa.Text(), nullable=True),
        sa.Column("fixed_by_script", sa.Boolean(), nullable=False),
        sa.Column("original_total_score", sa.Float(), nullable=True),
        sa.CheckConstraint("role IN ('judge', 'spectator')", name="ck_vote_role"),
        sa.ForeignKeyConstraint(["presentation_id"], ["presentation.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "presentation_id", name="uq_vote_user_presentation"),
    )
    op.create_index("ix_vote_presentation_id", "vote", ["presentation_id"], unique=False)
    op.create_index("ix_vote_user_id", "vote", ["user_id"], unique=False)


def downgrade() -> None:
    """Drop the scoring schema."""
    op.drop_index("ix_vote_user_id", table_name="vote")
    op.drop_index("ix_vote_presentation_id", table_name="vote")
    op.drop_table("vote")
    op.drop_table("presentation")
    op.drop_table("spectator_question")
    op.drop_table("scoring_category")
