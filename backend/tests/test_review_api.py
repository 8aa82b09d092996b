"""End-to-end tests for the smart review and daily review endpoints."""

import sqlite3

import aiosqlite
import pytest

from neuroqbank.config import settings
from neuroqbank.services import review as review_service


@pytest.fixture
def history(client, alice, make_question, answer):
    """Alice's bank: one mostly wrong, one right, one hard, one never seen."""
    wrong = make_question(alice, statement="wrong")
    right = make_question(alice, statement="right")
    hard = make_question(alice, statement="hard", difficulty="Difícil", category="Sono")
    never = make_question(alice, statement="never")
    answer(alice, wrong["id"], "✗✗✓")
    answer(alice, right["id"], "✓✓")
    answer(alice, hard["id"], "✓")
    return {"wrong": wrong, "right": right, "hard": hard, "never": never}


# --- Smart review ---


def test_smart_review_without_user_is_neutral(client):
    res = client.post("/review/smart")

    assert res.status_code == 200
    assert res.json()["outcome"] == "no_user"
    assert res.json()["items"] == []


def test_smart_review_without_history_is_advisory(client, alice, make_question):
    make_question(alice)
    res = client.post("/review/smart", headers=alice)

    assert res.status_code == 200
    body = res.json()
    assert body["outcome"] == "no_history"
    assert body["items"] == []
    assert body["message"]


def test_smart_review_skips_questions_answered_in_last_three_days(client, alice, history):
    res = client.post("/review/smart", headers=alice)

    assert res.json()["outcome"] == "nothing_to_review"
    assert res.json()["items"] == []


def test_smart_review_ranks_old_attempts(client, alice, history, clock):
    clock.advance(days=5)
    res = client.post("/review/smart", headers=alice)

    body = res.json()
    assert body["outcome"] == "ok"
    ids = [item["question"]["id"] for item in body["items"]]
    assert ids == [history["wrong"]["id"], history["hard"]["id"], history["right"]["id"]]
    assert [item["score"] for item in body["items"]] == [22, 10, 5]
    assert history["never"]["id"] not in ids


def test_smart_review_respects_candidate_set(client, alice, history, clock):
    clock.advance(days=5)

    by_ids = client.post(
        "/review/smart", json={"question_ids": [history["hard"]["id"]]}, headers=alice
    ).json()
    assert [i["question"]["id"] for i in by_ids["items"]] == [history["hard"]["id"]]

    by_category = client.post(
        "/review/smart", json={"category": "Epilepsia"}, headers=alice
    ).json()
    assert {i["question"]["id"] for i in by_category["items"]} == {
        history["wrong"]["id"],
        history["right"]["id"],
    }


def test_smart_review_count(client, alice, history, clock):
    assert client.post("/review/smart/count", headers=alice).json() == {"count": 0}

    clock.advance(days=5)
    assert client.post("/review/smart/count", headers=alice).json() == {"count": 2}
    assert client.post("/review/smart/count").json() == {"count": 0}


def test_smart_review_is_per_user(client, bob, history, clock):
    clock.advance(days=5)
    res = client.post("/review/smart", headers=bob)
    assert res.json()["outcome"] == "no_history"


# --- Daily review ---


@pytest.fixture
def daily_bank(client, alice, make_question, answer):
    qs = {name: make_question(alice, statement=name) for name in "abcd"}
    answer(alice, qs["a"]["id"], "✗✗✓")      # 66.7% errors
    answer(alice, qs["b"]["id"], "✓✓✓✗")     # 25%
    answer(alice, qs["c"]["id"], "✓✓")       # 0%
    answer(alice, qs["d"]["id"], "✓✓✓✓✗")    # 20%, not above the threshold
    return qs


def test_daily_review_without_user_is_neutral(client):
    res = client.post("/review/daily")
    assert res.status_code == 200
    assert res.json()["outcome"] == "no_user"


def test_daily_review_without_attempts_is_400(client, alice):
    res = client.post("/review/daily", headers=alice)

    assert res.status_code == 400
    assert res.json()["outcome"] == "no_history"
    assert res.json()["message"]


def test_daily_review_ignores_attempts_older_than_thirty_days(client, alice, daily_bank, clock):
    clock.advance(days=31)
    res = client.post("/review/daily", headers=alice)
    assert res.status_code == 400


def test_daily_review_selects_and_scores(client, alice, daily_bank, clock):
    clock.advance(days=1)
    res = client.post("/review/daily", headers=alice)

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["question_count"] == 2
    selected = [q["question_id"] for q in body["questions"]]
    assert selected == [daily_bank["a"]["id"], daily_bank["b"]["id"]]
    for q in body["questions"]:
        assert q["error_rate"] > 20
        assert q["recency_score"] == pytest.approx(90)
        assert q["final_score"] == pytest.approx(q["error_rate"] * 0.6 + q["recency_score"] * 0.4)


def test_daily_review_is_idempotent_per_day(client, alice, daily_bank, clock):
    clock.advance(days=1)
    first = client.post("/review/daily", headers=alice).json()

    clock.advance(hours=6)
    second = client.post("/review/daily", headers=alice).json()

    assert second["review_id"] == first["review_id"]
    assert second["success"] is False
    assert second["message"]

    stored = client.get("/review/daily", headers=alice).json()
    assert stored["id"] == first["review_id"]
    assert stored["question_ids"] == [daily_bank["a"]["id"], daily_bank["b"]["id"]]


def test_daily_review_questions_keep_ranked_order(client, alice, daily_bank, clock):
    assert client.get("/review/daily/questions", headers=alice).json() == []

    clock.advance(days=1)
    client.post("/review/daily", headers=alice)
    questions = client.get("/review/daily/questions", headers=alice).json()

    assert [q["statement"] for q in questions] == ["a", "b"]


def test_daily_review_excludes_questions_selected_in_last_three_days(
    client, alice, daily_bank, answer, clock
):
    clock.advance(days=1)
    client.post("/review/daily", headers=alice)

    clock.advance(days=1)
    res = client.post("/review/daily", headers=alice)
    assert res.json()["outcome"] == "nothing_to_review"
    assert client.get("/review/daily", headers=alice).json() is None

    answer(alice, daily_bank["c"]["id"], "✗")
    res = client.post("/review/daily", headers=alice).json()
    assert [q["question_id"] for q in res["questions"]] == [daily_bank["c"]["id"]]


def test_daily_review_exclusion_window_expires(client, alice, daily_bank, clock):
    clock.advance(days=1)
    client.post("/review/daily", headers=alice)

    clock.advance(days=4)
    res = client.post("/review/daily", headers=alice).json()
    assert res["success"] is True
    assert [q["question_id"] for q in res["questions"]] == [
        daily_bank["a"]["id"],
        daily_bank["b"]["id"],
    ]


def test_daily_review_concurrent_insert_returns_stored_review(
    client, alice, daily_bank, clock, monkeypatch, tmp_path
):
    clock.advance(days=1)
    stored = client.post("/review/daily", headers=alice).json()

    # Replay a request that read the store before the first one committed
    real_lookup = review_service.get_daily_review
    lookups = []

    async def miss_first_lookup(db, user_id, review_date):
        lookups.append(review_date)
        if len(lookups) == 1:
            return None
        return await real_lookup(db, user_id, review_date)

    async def no_recent_reviews(db, user_id, since_date):
        return []

    monkeypatch.setattr(review_service, "get_daily_review", miss_first_lookup)
    monkeypatch.setattr(review_service, "list_daily_reviews_since", no_recent_reviews)
    res = client.post("/review/daily", headers=alice)

    assert res.status_code == 200
    assert res.json()["review_id"] == stored["review_id"]
    assert res.json()["success"] is False
    assert len(lookups) == 2

    conn = sqlite3.connect(tmp_path / settings.sqlite_filename)
    try:
        (rows,) = conn.execute("SELECT COUNT(*) FROM daily_reviews").fetchone()
    finally:
        conn.close()
    assert rows == 1


def test_store_failure_returns_500(client, alice, monkeypatch):
    async def locked(*args, **kwargs):
        raise aiosqlite.OperationalError("database is locked")

    monkeypatch.setattr(review_service, "list_attempts", locked)
    res = client.post("/review/smart", headers=alice)

    assert res.status_code == 500
    assert res.json() == {"error": "database is locked"}
