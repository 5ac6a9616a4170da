"""End-to-end tests for the SnapVocab HTTP API."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from snapvocab.index import app, get_card_store, review_sessions
from snapvocab.rate_limit import limiter
from snapvocab.services.card_store import InMemoryCardStore, StorageError
from snapvocab.services.monitoring import metrics


class BrokenStore(InMemoryCardStore):
    def load_all(self):
        raise StorageError("database is down")


@pytest.fixture
def store():
    return InMemoryCardStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_card_store] = lambda: store
    review_sessions.clear()
    metrics.reset()
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    review_sessions.clear()


def _legacy(word, days_from_today, stage=0, count=0):
    return {
        "word": word,
        "translation": f"{word}-t",
        "example": f"A {word}.",
        "image": f"https://img.example/{word}.png",
        "savedAt": "2024-01-01T12:00:00.000Z",
        "reviewStage": stage,
        "nextReviewDate": (date.today() + timedelta(days=days_from_today)).isoformat(),
        "reviewCount": count,
        "lastReviewDate": (date.today() - timedelta(days=1)).isoformat(),
    }


def _import(client, *entries):
    response = client.post("/api/cards/import", json={"cards": list(entries)})
    assert response.status_code == 200, response.text
    return response.json()["cards"]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_create_card_is_learning_until_tomorrow(client):
    response = client.post(
        "/api/cards",
        json={"word": " keyboard ", "translation": "键盘", "example": "Type on the keyboard."},
    )

    assert response.status_code == 200
    card = response.json()
    assert card["word"] == "keyboard"
    assert card["review_stage"] == 0
    assert card["review_count"] == 0
    assert card["next_review_date"] == (date.today() + timedelta(days=1)).isoformat()
    assert card["status"] == "learning"

    summary = client.get("/api/review/summary").json()
    assert summary["due"] == 0
    assert summary["learning"] == 1
    assert summary["next_review_date"] == card["next_review_date"]


def test_create_card_rejects_blank_word(client):
    response = client.post("/api/cards", json={"word": "   "})
    assert response.status_code == 400


def test_list_and_delete_cards(client):
    cards = _import(client, _legacy("a", 0), _legacy("b", 3))

    listed = client.get("/api/cards").json()
    assert listed["count"] == 2
    assert [c["status"] for c in listed["cards"]] == ["due", "learning"]

    response = client.delete(f"/api/cards/{cards[0]['id']}")
    assert response.status_code == 200
    assert client.get("/api/cards").json()["count"] == 1

    assert client.delete(f"/api/cards/{cards[0]['id']}").status_code == 404


def test_list_cards_newest_first_with_saved_today(client):
    _import(client, _legacy("older", 0))
    client.post(
        "/api/cards",
        json={"word": "fresh", "saved_at": f"{date.today().isoformat()}T12:00:00"},
    )

    listed = client.get("/api/cards").json()

    assert [c["word"] for c in listed["cards"]] == ["fresh", "older"]
    assert listed["saved_today"] == 1


def test_create_card_reports_status_for_the_day_it_saved(client, monkeypatch):
    days = iter([date(2024, 3, 10), date(2024, 3, 11)])
    monkeypatch.setattr("snapvocab.index.today", lambda: next(days))

    card = client.post("/api/cards", json={"word": "clock"}).json()

    assert card["next_review_date"] == "2024-03-11"
    assert card["status"] == "learning"


def test_clear_cards(client):
    _import(client, _legacy("a", 0), _legacy("b", 0))

    assert client.delete("/api/cards").json() == {"deleted": 2}
    assert client.get("/api/cards").json()["count"] == 0


def test_import_rejects_entry_without_word(client):
    response = client.post("/api/cards/import", json={"cards": [{"translation": "x"}]})
    assert response.status_code == 400


def test_review_pass(client):
    """Defer, remember and reset through a full pass."""
    _import(
        client,
        _legacy("card1", 0),
        _legacy("card2", -2, stage=2, count=2),
        _legacy("card3", 0, stage=5, count=5),
        _legacy("future", 4),
    )

    session = client.post("/api/review/sessions").json()
    session_id = session["session_id"]
    assert session["remaining"] == 3
    assert session["current"]["word"] == "card1"

    deferred = client.post(f"/api/review/sessions/{session_id}/defer").json()
    assert deferred["current"]["word"] == "card2"
    assert deferred["remaining"] == 3

    remembered = client.post(f"/api/review/sessions/{session_id}/remember").json()
    assert remembered["reviewed_card"]["review_stage"] == 3
    assert remembered["reviewed_card"]["next_review_date"] == (date.today() + timedelta(days=7)).isoformat()
    assert remembered["remaining"] == 2
    assert remembered["current"]["word"] == "card1"

    client.post(f"/api/review/sessions/{session_id}/defer")
    mastered = client.post(f"/api/review/sessions/{session_id}/remember").json()
    assert mastered["reviewed_card"]["word"] == "card3"
    assert mastered["reviewed_card"]["review_stage"] == 6

    reset = client.post(f"/api/review/sessions/{session_id}/reset").json()
    assert reset["reviewed_card"]["word"] == "card1"
    assert reset["reviewed_card"]["review_stage"] == 0
    assert reset["finished"] is True
    assert reset["current"] is None

    summary = client.get("/api/review/summary").json()
    assert summary == {
        "total": 4,
        "due": 0,
        "mastered": 1,
        "learning": 3,
        "next_review_date": (date.today() + timedelta(days=1)).isoformat(),
    }

    assert client.post(f"/api/review/sessions/{session_id}/remember").status_code == 409
    assert client.post(f"/api/review/sessions/{session_id}/defer").status_code == 409


def test_get_and_close_session(client):
    _import(client, _legacy("a", 0))
    session_id = client.post("/api/review/sessions").json()["session_id"]

    fetched = client.get(f"/api/review/sessions/{session_id}").json()
    assert fetched["current"]["word"] == "a"

    assert client.delete(f"/api/review/sessions/{session_id}").status_code == 200
    assert client.get(f"/api/review/sessions/{session_id}").status_code == 404
    assert client.post(f"/api/review/sessions/{session_id}/remember").status_code == 404


def test_deleted_card_during_session_returns_404(client):
    cards = _import(client, _legacy("a", 0), _legacy("b", 0))
    session_id = client.post("/api/review/sessions").json()["session_id"]

    client.delete(f"/api/cards/{cards[0]['id']}")
    response = client.post(f"/api/review/sessions/{session_id}/remember")

    assert response.status_code == 404
    current = client.get(f"/api/review/sessions/{session_id}").json()["current"]
    assert current["word"] == "b"


def test_storage_failure_returns_503(client):
    app.dependency_overrides[get_card_store] = lambda: BrokenStore()

    assert client.get("/api/cards").status_code == 503
    assert client.get("/api/review/summary").status_code == 503
    assert client.post("/api/review/sessions").status_code == 503


def test_metrics_count_requests_and_decisions(client):
    _import(client, _legacy("a", 0))
    session_id = client.post("/api/review/sessions").json()["session_id"]
    client.post(f"/api/review/sessions/{session_id}/defer")
    client.post(f"/api/review/sessions/{session_id}/remember")

    body = client.get("/api/metrics").text

    assert 'snapvocab_review_decisions_total{decision="remember"} 1' in body
    assert 'snapvocab_review_decisions_total{decision="defer"} 1' in body
    assert 'path="/api/review/sessions/:id/remember"' in body
    assert "snapvocab_review_sessions_open 1" in body
