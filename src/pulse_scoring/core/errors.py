"""Domain errors raised by the scoring engine."""

from __future__ import annotations


class PulseError(Exception):
    """Base class for scoring engine failures."""


class ValidationError(PulseError):
    """A rating set or request is malformed beyond what the engine can degrade."""


class NotFoundError(PulseError):
    """A vote or presentation identifier does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} {identifier!r} not found")
        self.kind = kind
        self.identifier = identifier


class StoreWriteError(PulseError):
    """The underlying store refused or failed a write.

    Callers must treat the operation as not saved.
    """


class ConsistencyWarning(UserWarning):
    """A stored total disagrees with the total recomputed from its ratings."""

    def __init__(self, vote_id: object, stored: float, expected: float) -> None:
        super().__init__(
            f"vote {vote_id!r}: stored total {stored:g} differs from recomputed {expected:g}"
        )
        self.vote_id = vote_id
        self.stored = stored
        self.expected = expected

    @property
    def drift(self) -> float:
        """Absolute difference between stored and recomputed totals."""
        return abs(self.stored - self.expected)
