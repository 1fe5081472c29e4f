# tests/test_normalizer.py
"""Tests for rating normalization and role strategies."""

import math

import pytest

from pulse_scoring.core.errors import ValidationError
from pulse_scoring.services.normalizer import (
    LEGACY_MINIMUM_SCORE,
    JudgeVoteStrategy,
    SpectatorVoteStrategy,
    legacy_stored_totals,
    legacy_weighted_total,
    raw_sum,
    score_value,
    strategy_for,
)
from pulse_scoring.services.registry import QuestionSpec, default_snapshot

from tests.conftest import judge_ratings


@pytest.fixture()
def snapshot():
    return default_snapshot(questions=(QuestionSpec("clarity", "Was the talk clear?"),))


def test_raw_sum_is_unweighted() -> None:
    """The canonical total ignores category weights."""
    assert raw_sum(judge_ratings(5, 4, 3, 2, 1)) == 15


def test_raw_sum_degrades_to_zero() -> None:
    assert raw_sum(None) == 0
    assert raw_sum([]) == 0
    assert raw_sum("not a list") == 0
    assert raw_sum([{"categoryId": "technical", "score": "five"}, 7, None]) == 0


@pytest.mark.parametrize("score", ["3", None, True, math.nan, math.inf])
def test_score_value_rejects_non_numeric(score) -> None:
    assert score_value({"categoryId": "technical", "score": score}) == 0


def test_judge_clean_drops_unknown_and_retired_categories(snapshot) -> None:
    strategy = JudgeVoteStrategy()
    ratings = judge_ratings(4, 5) + [{"categoryId": "charisma", "score": 5}, {"score": 3}]

    cleaned = strategy.clean(ratings, snapshot)

    assert cleaned == [
        {"categoryId": "technical", "score": 4},
        {"categoryId": "delivery", "score": 5},
    ]
    assert strategy.normalize(ratings, snapshot) == 9


def test_judge_clean_keeps_last_duplicate(snapshot) -> None:
    ratings = [
        {"categoryId": "technical", "score": 1},
        {"categoryId": "technical", "score": 4},
    ]
    assert JudgeVoteStrategy().clean(ratings, snapshot) == [{"categoryId": "technical", "score": 4}]


def test_judge_total_can_reach_max_points(snapshot) -> None:
    assert JudgeVoteStrategy().normalize(judge_ratings(5, 5, 5, 5, 5), snapshot) == 25


def test_empty_ratings_normalize_to_zero(snapshot) -> None:
    """No floor is applied to an empty judge vote."""
    assert JudgeVoteStrategy().normalize([], snapshot) == 0


def test_spectator_total_sums_known_questions(snapshot) -> None:
    strategy = SpectatorVoteStrategy()
    ratings = [
        {"questionId": "clarity", "score": 4},
        {"questionId": "unknown", "score": 5},
        {"categoryId": "technical", "score": 5},
    ]
    assert strategy.clean(ratings, snapshot) == [{"questionId": "clarity", "score": 4}]
    assert strategy.normalize(ratings, snapshot) == 4
    assert strategy.normalize(None, snapshot) == 0


def test_strategy_for_roles() -> None:
    assert isinstance(strategy_for("judge"), JudgeVoteStrategy)
    assert isinstance(strategy_for("conference-chair"), JudgeVoteStrategy)
    assert isinstance(strategy_for("spectator"), SpectatorVoteStrategy)
    with pytest.raises(ValidationError):
        strategy_for("admin")


def test_legacy_weighted_total_differs_from_raw_sum(snapshot) -> None:
    """4*0.3*5 + 5*0.3*5 + 3*0.1*5 = 15, while the raw sum is 12."""
    ratings = judge_ratings(4, 5, 3)
    assert legacy_weighted_total(ratings, snapshot) == 15
    assert raw_sum(ratings) == 12


def test_legacy_weighted_total_rounds_half_up(snapshot) -> None:
    """3*1.5 + 2*1.5 + 1*0.5 + 1*0.5 + 4*1.0 = 12.5."""
    assert legacy_weighted_total(judge_ratings(3, 2, 1, 1, 4), snapshot) == 13


def test_legacy_stored_totals_include_minimum_floor(snapshot) -> None:
    assert legacy_stored_totals(judge_ratings(2, 1, 1, 1, 1), snapshot) == {7, LEGACY_MINIMUM_SCORE}
    assert legacy_stored_totals(judge_ratings(4, 5, 3), snapshot) == {15}
