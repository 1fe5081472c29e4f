# src/pulse_scoring/services/__init__.py
"""Scoring engine services."""

from .aggregator import Aggregator, Rollup
from .audit import AuditService
from .registry import RegistrySnapshot, ScoringRegistry
from .vote_service import VoteService

__all__ = [
    "Aggregator",
    "AuditService",
    "RegistrySnapshot",
    "Rollup",
    "ScoringRegistry",
    "VoteService",
]
