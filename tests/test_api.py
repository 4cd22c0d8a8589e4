"""Tests for the public HTTP endpoints."""

from uuid import uuid4

from fastapi.testclient import TestClient

from portrait_analysis.api.app import create_app
from tests.conftest import make_user


def test_health(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/health").json() == {"status": "ok"}


def test_submit_analysis_accepted(container, user_store, job_queue) -> None:
    user = user_store.add(make_user(credits=2))
    client = TestClient(create_app(container))

    response = client.post(
        "/analyses",
        json={
            "userId": str(user.id),
            "photoRefs": ["file-1", "file-2"],
            "chatId": 5001,
            "variant": "PAIRED",
            "replyToMessageId": 10,
        },
    )

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "PENDING"
    assert str(job_queue.enqueued[0][0].id) == body["id"]
    assert user_store.balance(user.id) == 1


def test_submit_analysis_without_credits(container, user_store) -> None:
    user = user_store.add(make_user(credits=0))
    client = TestClient(create_app(container))

    response = client.post(
        "/analyses",
        json={"userId": str(user.id), "photoRefs": ["file-1"], "chatId": 5001},
    )

    assert response.status_code == 402


def test_submit_analysis_unknown_user(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/analyses",
        json={"userId": str(uuid4()), "photoRefs": ["file-1"], "chatId": 5001},
    )

    assert response.status_code == 404


def test_submit_analysis_invalid_photo_count(container, user_store, job_queue) -> None:
    user = user_store.add(make_user(credits=2))
    client = TestClient(create_app(container))

    response = client.post(
        "/analyses",
        json={
            "userId": str(user.id),
            "photoRefs": ["a", "b", "c", "d"],
            "chatId": 5001,
        },
    )

    assert response.status_code == 422
    assert "Invalid photo count" in response.json()["detail"]
    assert job_queue.enqueued == []
