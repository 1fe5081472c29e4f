# tests/test_repair.py
"""Tests for the vote total and presentation rollup repair passes."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from pulse_scoring.core.errors import StoreWriteError, ValidationError
from pulse_scoring.models import Presentation, Vote
from pulse_scoring.repositories import SqlVoteStore
from pulse_scoring.services.repair import (
    repair_presentation_rollups,
    repair_vote_totals,
    strict_raw_sum,
)

from tests.conftest import judge_ratings


def _add_vote(db_session, presentation, user_id, ratings, total, role="judge") -> Vote:
    vote = Vote(
        user_id=user_id,
        presentation_id=presentation.id,
        role=role,
        ratings=ratings,
        total_score=total,
    )
    db_session.add(vote)
    db_session.flush()
    return vote


def test_drifted_total_is_reset_to_raw_sum(store, db_session, presentation) -> None:
    """A weighted-era total of 15 for ratings [4, 5, 3] becomes 12."""
    vote = _add_vote(db_session, presentation, "judge-1", judge_ratings(4, 5, 3), 15)

    report = repair_vote_totals(store)

    assert report.fixed == 1
    assert vote.total_score == 12
    assert vote.original_total_score == 15
    assert vote.fixed_by_script is True


def test_tolerance_boundary(store, db_session, presentation) -> None:
    within = _add_vote(db_session, presentation, "judge-1", judge_ratings(4, 5, 3), 13)
    beyond = _add_vote(db_session, presentation, "judge-2", judge_ratings(4, 5, 3), 14)

    report = repair_vote_totals(store)

    assert report.fixed == 1
    assert within.total_score == 13
    assert within.fixed_by_script is False
    assert beyond.total_score == 12


def test_votes_without_ratings_are_not_scanned(store, db_session, presentation) -> None:
    _add_vote(db_session, presentation, "legacy", None, 18)

    report = repair_vote_totals(store)

    assert report.scanned == 0
    assert report.fixed == 0


def test_malformed_ratings_are_skipped(store, db_session, presentation) -> None:
    _add_vote(db_session, presentation, "bad-1", {"technical": 5}, 5)
    _add_vote(db_session, presentation, "bad-2", ["five"], 5)
    good = _add_vote(db_session, presentation, "judge-1", judge_ratings(5, 5), 30)

    report = repair_vote_totals(store)

    assert report.scanned == 3
    assert report.skipped == 2
    assert report.fixed == 1
    assert good.total_score == 10


def test_batches_are_committed_in_chunks(store, db_session, presentation) -> None:
    """850 drifted votes are committed as 400, 400 and 50."""
    db_session.add_all(
        Vote(
            user_id=f"judge-{i}",
            presentation_id=presentation.id,
            role="judge",
            ratings=judge_ratings(1, 1),
            total_score=50,
        )
        for i in range(850)
    )
    db_session.flush()

    with patch.object(store, "apply_vote_corrections", wraps=store.apply_vote_corrections) as spy:
        report = repair_vote_totals(store, batch_size=400)

    assert [len(call.args[0]) for call in spy.call_args_list] == [400, 400, 50]
    assert report.batches == [400, 400, 50]
    assert report.fixed == 850


def test_batch_size_above_store_limit_is_refused(store) -> None:
    with pytest.raises(ValueError):
        repair_vote_totals(store, batch_size=store.max_batch_writes + 1)
    with pytest.raises(ValueError):
        repair_presentation_rollups(store, batch_size=store.max_batch_writes + 1)


@pytest.mark.parametrize("batch_size", [0, -1])
def test_non_positive_batch_size_is_refused(store, batch_size) -> None:
    with pytest.raises(ValueError):
        repair_vote_totals(store, batch_size=batch_size)
    with pytest.raises(ValueError):
        repair_presentation_rollups(store, batch_size=batch_size)


def test_failed_batch_keeps_earlier_batches_and_resumes(plain_session) -> None:
    """A crash in the second batch leaves the first committed; a rerun finishes."""
    plain_session.add(Presentation(id="p1", title="Talk"))
    plain_session.commit()
    for index in range(5):
        plain_session.add(
            Vote(
                user_id=f"judge-{index}",
                presentation_id="p1",
                role="judge",
                ratings=judge_ratings(1, 1),
                total_score=50,
            )
        )
    plain_session.commit()
    store = SqlVoteStore(plain_session)

    real_commit = plain_session.commit
    calls = []

    def commit_then_fail() -> None:
        calls.append(1)
        if len(calls) > 1:
            raise SQLAlchemyError("connection lost")
        real_commit()

    with patch.object(plain_session, "commit", side_effect=commit_then_fail):
        with pytest.raises(StoreWriteError):
            repair_vote_totals(store, batch_size=2)

    totals = [vote.total_score for vote in store.list_votes()]
    assert totals == [2, 2, 50, 50, 50]

    report = repair_vote_totals(store, batch_size=2)

    assert report.fixed == 3
    assert report.batches == [2, 1]
    assert [vote.total_score for vote in store.list_votes()] == [2, 2, 2, 2, 2]


def test_repair_is_idempotent(store, db_session, presentation) -> None:
    _add_vote(db_session, presentation, "judge-1", judge_ratings(4, 5, 3), 15)

    first = repair_vote_totals(store)
    second = repair_vote_totals(store)

    assert first.fixed == 1
    assert second.fixed == 0
    assert second.batches == []


def test_dry_run_writes_nothing(store, db_session, presentation) -> None:
    vote = _add_vote(db_session, presentation, "judge-1", judge_ratings(4, 5, 3), 15)
    messages = []

    report = repair_vote_totals(store, dry_run=True, progress=messages.append)

    assert report.fixed == 1
    assert vote.total_score == 15
    assert messages[-1] == "Fixed 1 of 1 votes with ratings"


def test_rollup_repair_uses_raw_sums(store, db_session, make_presentation) -> None:
    presentation = make_presentation(judge_total=99, judge_count=7, spectator_likes=3)
    empty = make_presentation()
    _add_vote(db_session, presentation, "judge-1", judge_ratings(4, 5, 3), 15)
    _add_vote(db_session, presentation, "judge-2", judge_ratings(5, 5, 5, 5, 5), 25)
    _add_vote(db_session, presentation, "judge-3", [], 0)
    _add_vote(db_session, presentation, "fan-1", None, 0, role="spectator")

    report = repair_presentation_rollups(store)

    assert report.scanned == 2
    assert presentation.judge_scores == [12, 25]
    assert presentation.judge_total == 37
    assert presentation.judge_count == 2
    assert presentation.spectator_likes == 1
    assert presentation.fixed_by_script is True
    assert empty.judge_total == 0
    assert empty.fixed_by_script is True


def test_rollup_repair_dry_run(store, db_session, make_presentation) -> None:
    presentation = make_presentation(judge_total=99)
    _add_vote(db_session, presentation, "judge-1", judge_ratings(4, 5, 3), 12)

    report = repair_presentation_rollups(store, dry_run=True)

    assert report.fixed == 1
    assert report.batches == []
    assert presentation.judge_total == 99


def test_strict_raw_sum() -> None:
    assert strict_raw_sum(judge_ratings(1, 2, 3)) == 6
    with pytest.raises(ValidationError):
        strict_raw_sum({"score": 3})
    with pytest.raises(ValidationError):
        strict_raw_sum([3])
