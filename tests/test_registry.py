# tests/test_registry.py
"""Tests for the scoring category registry."""

import logging

from pulse_scoring.models import ScoringCategory, SpectatorQuestion
from pulse_scoring.services.registry import (
    DEFAULT_SCORING_CATEGORIES,
    ScoringRegistry,
    default_snapshot,
)


def test_empty_registry_falls_back_to_defaults(db_session) -> None:
    snapshot = ScoringRegistry(db_session).snapshot()

    assert snapshot.categories == DEFAULT_SCORING_CATEGORIES
    assert snapshot.max_points == 25
    assert snapshot.max_scale == 5
    assert snapshot.weights_balanced()


def test_seed_defaults_is_idempotent(db_session) -> None:
    registry = ScoringRegistry(db_session)

    assert registry.seed_defaults() == len(DEFAULT_SCORING_CATEGORIES)
    assert registry.seed_defaults() == 0
    assert [c.id for c in registry.active_categories()] == [
        "technical",
        "delivery",
        "visuals",
        "relevance",
        "experience",
    ]


def test_retired_category_leaves_snapshot(registry) -> None:
    assert registry.retire_category("visuals") is True
    assert registry.retire_category("visuals") is False
    assert registry.retire_category("missing") is False

    snapshot = registry.snapshot()
    assert "visuals" not in snapshot.category_ids
    assert snapshot.category("technical").weight == 0.3


def test_unbalanced_weights_are_logged(db_session, caplog) -> None:
    db_session.add(ScoringCategory(id="only", name="Only", weight=0.5, position=0))
    db_session.flush()

    with caplog.at_level(logging.WARNING, logger="pulse_scoring.services.registry"):
        snapshot = ScoringRegistry(db_session).snapshot()

    assert snapshot.category_ids == frozenset({"only"})
    assert "weights sum to 0.500" in caplog.text


def test_active_questions_in_position_order(db_session) -> None:
    db_session.add_all(
        [
            SpectatorQuestion(id="b", text="Second", position=2),
            SpectatorQuestion(id="a", text="First", position=1),
            SpectatorQuestion(id="old", text="Retired", position=0, active=False),
        ]
    )
    db_session.flush()

    questions = ScoringRegistry(db_session).active_questions()

    assert [q.id for q in questions] == ["a", "b"]


def test_default_snapshot_weight_sum() -> None:
    assert abs(default_snapshot().weight_sum - 1.0) < 1e-9
