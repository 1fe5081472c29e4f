# src/pulse_scoring/models/__init__.py
"""SQLAlchemy models for the scoring engine."""

from .presentation import Presentation
from .scoring import ScoringCategory, SpectatorQuestion
from .vote import Vote

__all__ = [
    "Presentation",
    "ScoringCategory", "SpectatorQuestion",
    "Vote",
]
