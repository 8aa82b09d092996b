from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from neuroqbank import create_app
from neuroqbank.auth import create_access_token
from neuroqbank.clock import get_now
from neuroqbank.config import settings

START = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def client(tmp_path, monkeypatch, clock):
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    app = create_app()
    app.dependency_overrides[get_now] = clock
    with TestClient(app) as c:
        yield c


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def alice():
    return auth_headers("alice")


@pytest.fixture
def bob():
    return auth_headers("bob")


@pytest.fixture
def make_question(client):
    """Create a question and return its JSON. Correct answer is always A."""

    def _make(headers, **overrides):
        body = {
            "category": "Epilepsia",
            "statement": "Which drug is first line?",
            "alternatives": ["Valproate", "Phenytoin", "Lamotrigine", "Topiramate"],
            "answer": "A",
            "difficulty": "Médio",
        }
        body.update(overrides)
        res = client.post("/questions/", json=body, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()

    return _make


@pytest.fixture
def answer(client):
    """Record attempts on a question: answer(headers, qid, "✓✗✗")."""

    def _answer(headers, question_id, pattern):
        for mark in pattern:
            res = client.post(
                f"/questions/{question_id}/attempts",
                json={"selected_answer": "A" if mark == "✓" else "B", "attempt_time": 30},
                headers=headers,
            )
            assert res.status_code == 201, res.text

    return _answer
