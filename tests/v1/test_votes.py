# mypy: ignore-errors
# tests/v1/test_votes.py
"""Tests for vote submission endpoints."""

from fastapi import status

from tests.conftest import auth_headers, judge_ratings


def _submit(client, headers, presentation_id, ratings=None):
    return client.post(
        "/api/v1/votes/",
        json={"presentation_id": presentation_id, "ratings": ratings or []},
        headers=headers,
    )


def test_judge_submits_vote(client, judge_headers, presentation) -> None:
    response = _submit(client, judge_headers, presentation.id, judge_ratings(5, 4, 3, 2, 1))

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["action"] == "created"
    assert body["total_score"] == 15


def test_resubmission_updates_vote(client, judge_headers, presentation) -> None:
    _submit(client, judge_headers, presentation.id, judge_ratings(5, 5, 5, 5, 5))
    response = _submit(client, judge_headers, presentation.id, judge_ratings(4, 4, 4, 4, 4))

    assert response.json()["action"] == "updated"
    assert response.json()["total_score"] == 20

    mine = client.get(f"/api/v1/votes/{presentation.id}/my-vote", headers=judge_headers)
    assert mine.status_code == status.HTTP_200_OK
    vote = mine.json()
    assert vote["is_update"] is True
    assert [entry["action"] for entry in vote["history"]] == ["created", "updated"]
    assert vote["history"][1]["previous_score"] == 25


def test_spectator_like(client, spectator_headers, presentation) -> None:
    response = _submit(client, spectator_headers, presentation.id)

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["total_score"] == 0


def test_rating_above_scale_is_rejected(client, judge_headers, presentation) -> None:
    response = _submit(
        client,
        judge_headers,
        presentation.id,
        [{"categoryId": "technical", "score": 6}],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_rating_needs_one_target(client, judge_headers, presentation) -> None:
    response = _submit(
        client,
        judge_headers,
        presentation.id,
        [{"categoryId": "technical", "questionId": "clarity", "score": 3}],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_vote_on_missing_presentation(client, judge_headers) -> None:
    response = _submit(client, judge_headers, "does-not-exist", judge_ratings(3))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_admin_cannot_vote(client, admin_headers, presentation) -> None:
    response = _submit(client, admin_headers, presentation.id, judge_ratings(3))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_invalid_token(client, presentation) -> None:
    headers = {"Authorization": "Bearer not-a-jwt"}
    response = _submit(client, headers, presentation.id)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_my_vote_missing(client, judge_headers, presentation) -> None:
    response = client.get(f"/api/v1/votes/{presentation.id}/my-vote", headers=judge_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_mark_absent_requires_admin(client, judge_headers, admin_headers, presentation) -> None:
    vote_id = _submit(client, judge_headers, presentation.id, judge_ratings(3, 3)).json()["vote_id"]

    forbidden = client.post(f"/api/v1/votes/{vote_id}/absent", json={}, headers=judge_headers)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    response = client.post(
        f"/api/v1/votes/{vote_id}/absent",
        json={"reason": "No show"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["is_absent"] is True
    assert body["absent_reason"] == "No show"
    assert body["total_score"] == 6


def test_mark_absent_unknown_vote(client, admin_headers) -> None:
    response = client.post("/api/v1/votes/9999/absent", json={}, headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_conference_chair_can_vote_and_audit(client, presentation) -> None:
    headers = auth_headers("chair-1", "conference-chair")

    response = _submit(client, headers, presentation.id, judge_ratings(2, 2, 2, 2, 2))
    assert response.status_code == status.HTTP_201_CREATED

    audit = client.get("/api/v1/audit/votes", headers=headers)
    assert audit.status_code == status.HTTP_200_OK
    assert audit.json()[0]["role"] == "judge"
