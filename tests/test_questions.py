from http import HTTPStatus
from unittest.mock import MagicMock

import pytest

from spaceforum.errors import StoreError

VALID = {"title": "How do ion engines work?", "content": "Asking for a lander.", "category_id": 2}


@pytest.mark.parametrize("field", ["title", "content", "category_id"])
@pytest.mark.parametrize("empty", [None, "", "   "])
def test_missing_field_returns_400_and_writes_nothing(client, store, auth_headers, field, empty):
    payload = dict(VALID)
    payload[field] = empty

    resp = client.post("/questions", json=payload, headers=auth_headers)

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json() == {"error": f"Missing required field: {field}", "field": field}
    assert store.list_questions() == []


def test_author_comes_from_token_not_body(client, store, login_user):
    body = login_user()
    headers = {"Authorization": f"Bearer {body['token']}"}

    resp = client.post("/questions", json={**VALID, "user_id": 999}, headers=headers)

    assert resp.status_code == HTTPStatus.CREATED
    assert resp.json() == {"message": "Question posted!"}
    rows = store.list_questions()
    assert len(rows) == 1
    assert rows[0]["user_id"] == body["user"]["id"]
    assert rows[0]["author"] == "pilot"
    assert rows[0]["category_name"] == "Rocketry"


def test_numeric_string_category_id_is_stored_as_int(client, store, auth_headers):
    resp = client.post("/questions", json={**VALID, "category_id": "3"}, headers=auth_headers)

    assert resp.status_code == HTTPStatus.CREATED
    assert store.list_questions()[0]["category_id"] == 3


@pytest.mark.parametrize("category_id", ["abc", "1.5", "-1", 1.5, "²", "١٢", True])
def test_non_integer_category_id_returns_400(client, store, auth_headers, category_id):
    resp = client.post(
        "/questions", json={**VALID, "category_id": category_id}, headers=auth_headers
    )

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json()["field"] == "category_id"
    assert store.list_questions() == []


def test_unknown_category_returns_400(client, store, auth_headers):
    resp = client.post("/questions", json={**VALID, "category_id": 9999}, headers=auth_headers)

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json() == {"error": "Unknown category", "field": "category_id"}
    assert store.list_questions() == []


@pytest.mark.parametrize("category_id", [0, -1, 2**31, 10**30, str(10**30)])
def test_out_of_range_category_id_is_unknown(client, store, auth_headers, category_id):
    resp = client.post(
        "/questions", json={**VALID, "category_id": category_id}, headers=auth_headers
    )

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json() == {"error": "Unknown category", "field": "category_id"}
    assert store.list_questions() == []


def test_post_question_store_failure_returns_generic_500(client, store, auth_headers, monkeypatch):
    mock = MagicMock(side_effect=StoreError("INSERT INTO questions exploded"))
    monkeypatch.setattr(store, "create_question", mock)

    resp = client.post("/questions", json=VALID, headers=auth_headers)

    assert resp.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert resp.json() == {"error": "Failed to post question"}
    assert "INSERT" not in resp.text
    mock.assert_called_once()


def test_posting_requires_token(client, store):
    resp = client.post("/questions", json=VALID)

    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    assert store.list_questions() == []


def test_questions_are_listed_newest_first(client, auth_headers):
    for n in range(3):
        client.post(
            "/questions",
            json={**VALID, "title": f"Question {n}"},
            headers=auth_headers,
        )

    questions = client.get("/data", headers=auth_headers).json()["questions"]

    assert [q["title"] for q in questions] == ["Question 2", "Question 1", "Question 0"]
