# src/pulse_scoring/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    audit_router,
    presentations_router,
    scoring_router,
    votes_router,
)

__all__ = [
    "votes_router",
    "presentations_router",
    "audit_router",
    "scoring_router",
]
