# src/pulse_scoring/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .audit import AuditFilters, ExportFormat
from .presentation import LeaderboardEntryOut, RollupOut, ScoreExplanationOut
from .scoring import RegistryOut, ScoringCategoryOut, SpectatorQuestionOut
from .vote import (
    AbsentRequest,
    HistoryEntryOut,
    RatingIn,
    VoteCreate,
    VoteOut,
    VoteSubmitResponse,
)

__all__ = [
    "AuditFilters", "ExportFormat",
    "LeaderboardEntryOut", "RollupOut", "ScoreExplanationOut",
    "RegistryOut", "ScoringCategoryOut", "SpectatorQuestionOut",
    "AbsentRequest", "HistoryEntryOut", "RatingIn",
    "VoteCreate", "VoteOut", "VoteSubmitResponse",
]
