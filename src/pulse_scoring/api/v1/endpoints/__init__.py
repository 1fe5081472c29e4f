# src/pulse_scoring/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .audit import router as audit_router
from .presentations import router as presentations_router
from .scoring import router as scoring_router
from .votes import router as votes_router

__all__ = [
    "votes_router",
    "presentations_router",
    "audit_router",
    "scoring_router",
]
