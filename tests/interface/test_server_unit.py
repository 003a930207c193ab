import pytest
from fastapi.testclient import TestClient

from keystride.application.engine import ProgressionEngine
from keystride.consts import VERSION
from keystride.infrastructure.adapters import MemoryStateStore
from keystride.server import app, get_engine


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def engine(store, rng):
    return ProgressionEngine(store, rng=rng)


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def _miss(client, key, times=10):
    for _ in range(times):
        client.post("/keystrokes", json={"key": key, "correct": False, "iki_ms": 200})


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version(client):
    response = client.get("/version")
    assert response.json() == {"version": VERSION}


class TestEvents:
    def test_record_keystroke(self, client, store):
        response = client.post(
            "/keystrokes", json={"key": "f", "correct": True, "iki_ms": 120, "previous_key": "j"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["accuracy"] == 1.0
        assert data["avg_iki"] == 120
        assert store.writes == 0

    def test_empty_key_rejected(self, client):
        response = client.post("/keystrokes", json={"key": "", "correct": True, "iki_ms": 120})
        assert response.status_code == 422

    def test_end_session(self, client, store):
        response = client.post(
            "/sessions",
            json={"game": "pong", "wpm": 30, "accuracy": 96, "exercise_count": 3, "keys_used": ["f"]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["stars_earned"] == 4
        assert data["total_stars"] == 4
        assert data["daily_streak"] == 1
        assert data["total_sessions"] == 1
        assert store.writes == 1


class TestQueries:
    def test_key_sets(self, client):
        _miss(client, "j")
        assert client.get("/keys/weak").json() == {"keys": ["j"]}
        assert client.get("/keys/weak", params={"threshold": 0.0}).json() == {"keys": []}
        assert client.get("/keys/mastered").json() == {"keys": []}
        assert client.get("/keys/review").json() == {"keys": []}

        client.post("/sessions", json={"game": "pong"})
        assert client.get("/keys/review").json() == {"keys": ["j"]}

    def test_norms(self, client):
        assert client.get("/norms").json() == {"wpm": 28, "accuracy": 85, "session_minutes": 20}

    def test_report(self, client):
        data = client.get("/report").json()
        assert data["summary"] == "No practice sessions this week yet."
        assert data["compared_to_norm"] is None


class TestExercise:
    def test_drill(self, client):
        response = client.post("/exercise", json={"module_id": "home-index"})
        assert response.status_code == 200
        assert response.json() == {
            "module_id": "home-index",
            "phase": "drill",
            "text": "ffff fjfjfj fjfjfj",
        }

    def test_phase_from_keystrokes(self, client):
        keystrokes = [{"key": "f", "correct": True, "time_ms": 300}] * 20
        response = client.post(
            "/exercise", json={"module_id": "home-middle", "keystrokes": keystrokes}
        )
        assert response.json()["phase"] == "mastery"

    def test_forced_phase(self, client):
        response = client.post("/exercise", json={"module_id": "home-index", "phase": "words"})
        assert response.json()["text"] == "fjfj jfjf fjf jfj"

    def test_unknown_module(self, client):
        response = client.post("/exercise", json={"module_id": "dvorak"})
        assert response.status_code == 404
        assert "dvorak" in response.json()["detail"]


class TestChallenge:
    def test_no_weak_keys(self, client):
        assert client.post("/challenge").json() == {"token": None}

    def test_create_and_open(self, client):
        _miss(client, "d")
        token = client.post("/challenge").json()["token"]

        response = client.get(f"/challenge/{token}", params={"seed": 1})
        assert response.status_code == 200
        data = response.json()
        assert data["keys"] == ["d"]
        assert data["text"].startswith("dddd ")

    def test_invalid_token(self, client):
        response = client.get("/challenge/garbage")
        assert response.status_code == 400
