"""Scoring registry schemas."""

from pydantic import BaseModel


class ScoringCategoryOut(BaseModel):
    """Active judge scoring category."""

    id: str
    name: str
    description: str
    weight: float


class SpectatorQuestionOut(BaseModel):
    """Active spectator feedback question."""

    id: str
    text: str


class RegistryOut(BaseModel):
    """Registry snapshot as seen by the voting UI."""

    max_points: int
    max_scale: int
    categories: list[ScoringCategoryOut]
    questions: list[SpectatorQuestionOut]
