"""Tests for the flashcard endpoints and persisted SM-2 schedule."""

import pytest


@pytest.fixture
def card(client, alice):
    res = client.post(
        "/flashcards/",
        json={"front": "Triptan contraindication?", "back": "Coronary disease", "category": "Cefaleia"},
        headers=alice,
    )
    assert res.status_code == 201
    return res.json()


def test_new_card_has_defaults_and_is_due(client, alice, card):
    assert card["ease_factor"] == 2.5
    assert card["interval_days"] == 1
    assert card["repetitions"] == 0
    assert card["next_review_at"] == "2024-03-10 12:00:00"

    due = client.get("/flashcards/due", headers=alice).json()
    assert [c["id"] for c in due["items"]] == [card["id"]]


def test_review_persists_schedule(client, alice, card, clock):
    res = client.post(f"/flashcards/{card['id']}/review", json={"quality": "good"}, headers=alice)
    assert res.status_code == 200
    assert res.json()["interval_days"] == 1

    clock.advance(days=1)
    client.post(f"/flashcards/{card['id']}/review", json={"quality": "good"}, headers=alice)

    stored = client.get(f"/flashcards/{card['id']}", headers=alice).json()
    assert stored["repetitions"] == 2
    assert stored["interval_days"] == 6
    assert stored["ease_factor"] == pytest.approx(2.22)
    assert stored["next_review_at"] == "2024-03-17 12:00:00"


def test_again_resets_progress(client, alice, card):
    for _ in range(3):
        client.post(f"/flashcards/{card['id']}/review", json={"quality": "easy"}, headers=alice)

    res = client.post(f"/flashcards/{card['id']}/review", json={"quality": "again"}, headers=alice)
    body = res.json()
    assert body["repetitions"] == 0
    assert body["interval_days"] == 1
    assert body["ease_factor"] == pytest.approx(2.8 - 0.8)
    assert body["next_review_at"] == "2024-03-11 12:00:00"


def test_reviewed_card_leaves_due_list_until_due(client, alice, card, clock):
    client.post(f"/flashcards/{card['id']}/review", json={"quality": "good"}, headers=alice)
    assert client.get("/flashcards/due", headers=alice).json()["total"] == 0

    clock.advance(days=1)
    assert client.get("/flashcards/due", headers=alice).json()["total"] == 1


def test_review_unknown_or_foreign_card_is_404(client, alice, bob, card):
    res = client.post("/flashcards/nope/review", json={"quality": "good"}, headers=alice)
    assert res.status_code == 404

    res = client.post(f"/flashcards/{card['id']}/review", json={"quality": "good"}, headers=bob)
    assert res.status_code == 404
    assert client.get(f"/flashcards/{card['id']}", headers=alice).json()["repetitions"] == 0


def test_invalid_quality_is_rejected(client, alice, card):
    res = client.post(f"/flashcards/{card['id']}/review", json={"quality": "perfect"}, headers=alice)
    assert res.status_code == 422


def test_flashcards_require_authentication(client):
    assert client.get("/flashcards/").status_code == 401
    res = client.get("/flashcards/", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


def test_edit_delete_and_stats(client, alice, card):
    res = client.patch(f"/flashcards/{card['id']}", json={"back": "Ischemic heart disease"}, headers=alice)
    assert res.json()["back"] == "Ischemic heart disease"
    assert res.json()["front"] == card["front"]

    client.post("/flashcards/", json={"front": "f", "back": "b"}, headers=alice)
    stats = client.get("/flashcards/stats", headers=alice).json()
    assert stats["total_cards"] == 2
    assert stats["due_now"] == 2
    assert {row["category"] for row in stats["per_category"]} == {None, "Cefaleia"}

    assert client.delete(f"/flashcards/{card['id']}", headers=alice).status_code == 204
    assert client.get(f"/flashcards/{card['id']}", headers=alice).status_code == 404
    assert client.delete(f"/flashcards/{card['id']}", headers=alice).status_code == 404
