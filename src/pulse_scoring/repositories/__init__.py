"""Data access layer for votes and presentations."""

from .base import VoteCorrection, VoteStore
from .vote_repo import SqlVoteStore

__all__ = ["SqlVoteStore", "VoteCorrection", "VoteStore"]
