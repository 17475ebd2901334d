from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from phenom.main import app
from phenom.user_stats import StatsStore, UserStats, get_stats_store


class _FakeRemote:
    def __init__(self) -> None:
        self.storage: dict[str, UserStats] = {}
        self.sessions: list[str] = []

    def get(self, uid: str) -> UserStats | None:
        return self.storage.get(uid)

    def set(self, uid: str, stats: UserStats) -> UserStats:
        self.storage[uid] = stats
        return stats

    def append_session(self, uid: str, result) -> None:
        self.sessions.append(uid)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[StatsStore]:
    stats_store = StatsStore(local_path=tmp_path / "stats.json")
    app.dependency_overrides[get_stats_store] = lambda: stats_store
    yield stats_store
    app.dependency_overrides.clear()


@pytest.fixture
def client(store: StatsStore) -> TestClient:
    return TestClient(app)


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_challenge_catalog_endpoints(client: TestClient) -> None:
    everything = client.get("/api/challenges").json()
    assert len(everything) == 153

    beginner = client.get("/api/challenges", params={"level": "beginner"}).json()
    assert len(beginner) == 51
    assert beginner[-1]["is_exam"]

    assert client.get("/api/challenges", params={"level": "nope"}).status_code == 400
    assert client.get("/api/challenges/52").json()["level"] == "Intermediate"
    assert client.get("/api/challenges/999").status_code == 404
    assert [exam["id"] for exam in client.get("/api/exams").json()] == [51, 102, 153]


def test_question_endpoints(client: TestClient) -> None:
    dojo = client.post("/api/questions/dojo", json={"count": 3, "seed": 7}).json()
    assert len(dojo["questions"]) == 3
    assert dojo["max_xp"] == 30

    practice = client.post("/api/questions/practice/Master", json={"count": 2, "seed": 1}).json()
    assert all(len(question["target_melody"]) == 5 for question in practice["questions"])
    assert client.post("/api/questions/practice/legend", json={}).status_code == 400

    challenge = client.post("/api/questions/challenge/1", json={"seed": 3}).json()
    assert challenge["challenge_id"] == 1
    assert len(challenge["questions"]) == 10
    again = client.post("/api/questions/challenge/1", json={"seed": 3, "count": 2}).json()
    assert again["questions"] == challenge["questions"]


def test_locked_challenges_are_refused_but_exams_are_open(client: TestClient) -> None:
    assert client.post("/api/questions/challenge/2").status_code == 403
    assert client.post("/api/questions/challenge/999").status_code == 404
    exam = client.post("/api/questions/challenge/153").json()
    assert len(exam["questions"]) == 20


def test_profile_lifecycle(client: TestClient, store: StatsStore) -> None:
    profile = client.get("/api/profile").json()
    assert profile["stats"]["xp"] == 0
    assert len(profile["heatmap_cells"]) == 12
    assert profile["weak_spots"] == [0, 1, 2, 3]

    result = {"xp_gained": 90, "passed": True, "max_xp": 100, "challenge_id": 1, "mode": "CHALLENGE"}
    updated = client.post("/api/profile/results", json=result).json()
    assert updated["stats"]["unlocked_challenges"] == [1, 2]
    assert store.load().xp == 90

    replaced = client.put("/api/profile", json={"xp": 1000, "theme": "light"}).json()
    assert replaced["stats"]["level"] == 3

    reset = client.delete("/api/profile").json()
    assert reset["stats"]["xp"] == 0
    assert store.load().xp == 0


def test_sync_requires_identity_and_merges(client: TestClient, store: StatsStore) -> None:
    assert client.post("/api/profile/sync").status_code == 400

    remote = _FakeRemote()
    remote.storage["learner"] = UserStats(xp=700, unlocked_challenges=[1, 2, 3])
    store._remote = remote  # type: ignore[assignment]
    store.save(UserStats(xp=100, high_scores={1: 80}))

    synced = client.post("/api/profile/sync", headers={"X-Phenom-Uid": "learner"}).json()
    assert synced["stats"]["xp"] == 700
    assert synced["stats"]["high_scores"] == {"1": 80}
    assert synced["remote_enabled"]

    client.post(
        "/api/profile/results",
        json={"xp_gained": 10, "passed": True, "max_xp": 10, "mode": "DOJO"},
        headers={"X-Phenom-Uid": "learner"},
    )
    assert remote.sessions == ["learner"]
    assert remote.storage["learner"].xp == 710


def test_results_for_unknown_challenges_are_not_found(client: TestClient, store: StatsStore) -> None:
    result = {"xp_gained": 50, "passed": True, "max_xp": 50, "challenge_id": 9999, "mode": "CHALLENGE"}
    response = client.post("/api/profile/results", json=result)
    assert response.status_code == 404
    assert store.load().high_scores == {}
    assert store.load().xp == 0
