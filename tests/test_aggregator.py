# tests/test_aggregator.py
"""Tests for presentation rollups."""

import pytest

from pulse_scoring.core.errors import NotFoundError
from pulse_scoring.models import Vote
from pulse_scoring.services.aggregator import (
    Aggregator,
    compute_rollup,
    judge_vote_value,
    spectator_question_averages,
)

from tests.conftest import judge_ratings


def _judge(total, ratings=None, legacy=None) -> Vote:
    return Vote(
        user_id="j",
        presentation_id="p",
        role="judge",
        ratings=ratings,
        total_score=total,
        legacy_score=legacy,
    )


def _spectator(ratings=None) -> Vote:
    return Vote(user_id="s", presentation_id="p", role="spectator", ratings=ratings, total_score=0)


def test_judge_total_is_sum_not_average() -> None:
    rollup = compute_rollup([_judge(20), _judge(15), _judge(10)])

    assert rollup.judge_scores == [20, 15, 10]
    assert rollup.judge_total == 45
    assert rollup.judge_count == 3


def test_zero_totals_are_not_counted() -> None:
    rollup = compute_rollup([_judge(12), _judge(0)])

    assert rollup.judge_count == 1
    assert rollup.judge_total == 12


def test_spectators_only_add_likes() -> None:
    judges = [_judge(20), _judge(18)]
    without = compute_rollup(judges)
    with_likes = compute_rollup(judges + [_spectator(), _spectator([{"questionId": "q", "score": 5}])])

    assert with_likes.judge_total == without.judge_total
    assert with_likes.judge_scores == without.judge_scores
    assert with_likes.spectator_likes == 2


def test_empty_vote_set() -> None:
    rollup = compute_rollup([])
    assert (rollup.judge_total, rollup.judge_count, rollup.spectator_likes) == (0, 0, 0)


def test_judge_vote_value_fallbacks() -> None:
    assert judge_vote_value(_judge(0, legacy=17)) == 17
    assert judge_vote_value(_judge(30, ratings=judge_ratings(4, 5, 3))) == 30
    assert judge_vote_value(_judge(30, ratings=judge_ratings(4, 5, 3)), prefer_raw_sum=True) == 12
    assert judge_vote_value(_judge(9, ratings=None), prefer_raw_sum=True) == 9


def test_spectator_question_averages() -> None:
    votes = [
        _spectator([{"questionId": "clarity", "score": 4}]),
        _spectator([{"questionId": "clarity", "score": 5}, {"questionId": "pace", "score": 3}]),
        _judge(10, ratings=judge_ratings(5, 5)),
    ]

    assert spectator_question_averages(votes) == {"clarity": 4.5, "pace": 3.0}


def test_recompute_writes_rollup(store, db_session, presentation) -> None:
    db_session.add_all(
        [
            Vote(user_id="j1", presentation_id=presentation.id, role="judge", total_score=20),
            Vote(user_id="j2", presentation_id=presentation.id, role="judge", total_score=22),
            Vote(user_id="s1", presentation_id=presentation.id, role="spectator", total_score=0),
        ]
    )
    db_session.flush()

    aggregator = Aggregator(store)
    rollup = aggregator.recompute_presentation_rollup(presentation.id)

    assert rollup.judge_total == 42
    assert presentation.judge_total == 42
    assert presentation.spectator_likes == 1
    assert aggregator.get_presentation_rollup(presentation.id) == rollup


def test_recompute_unknown_presentation(store) -> None:
    with pytest.raises(NotFoundError):
        Aggregator(store).recompute_presentation_rollup("missing")
