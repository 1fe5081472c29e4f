# src/pulse_scoring/api/v1/endpoints/scoring.py
"""Scoring registry endpoint used by the voting forms."""

from fastapi import APIRouter

from pulse_scoring.schemas.scoring import RegistryOut, ScoringCategoryOut, SpectatorQuestionOut

from ..dependencies import CurrentActorDep, RegistryDep

router = APIRouter(prefix="/scoring", tags=["scoring"])


@router.get("/categories", response_model=RegistryOut)
async def get_scoring_categories(
    _actor: CurrentActorDep,
    registry: RegistryDep,
) -> RegistryOut:
    """Active judge categories, spectator questions and scale ceilings."""
    snapshot = registry.snapshot()
    return RegistryOut(
        max_points=snapshot.max_points,
        max_scale=snapshot.max_scale,
        categories=[
            ScoringCategoryOut(
                id=category.id,
                name=category.name,
                description=category.description,
                weight=category.weight,
            )
            for category in snapshot.categories
        ],
        questions=[
            SpectatorQuestionOut(id=question.id, text=question.text)
            for question in snapshot.questions
        ],
    )
