from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from phenom.config import get_settings
from phenom.db.models import UserStatsDocumentModel
from phenom.db.session import dispose_engine, get_engine, session_scope
from phenom.progression import SessionMode, SessionResult
from phenom.repositories.user_stats import user_stats_documents
from phenom.user_stats import StatsStore, UserStats


@pytest.fixture
def database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("PHENOM_DATABASE_URL", f"sqlite:///{tmp_path / 'phenom.db'}")
    monkeypatch.setenv("PHENOM_PERSISTENCE_MODE", "hybrid")
    get_settings.cache_clear()
    dispose_engine()
    get_engine()
    yield
    dispose_engine()
    get_settings.cache_clear()


def test_missing_document_reads_as_none(database) -> None:
    with session_scope() as session:
        assert user_stats_documents.get(session, "nobody") is None


def test_set_merges_into_existing_document(database) -> None:
    with session_scope() as session:
        session.add(UserStatsDocumentModel(uid="learner", document={"xp": 10, "device": "ipad"}))

    with session_scope() as session:
        saved = user_stats_documents.set(session, " learner ", UserStats(xp=250, theme="light"))
    assert saved.xp == 250

    with session_scope() as session:
        model = session.get(UserStatsDocumentModel, "learner")
        assert model is not None
        assert model.document["device"] == "ipad"
        assert model.document["xp"] == 250
        loaded = user_stats_documents.get(session, "learner")
    assert loaded is not None
    assert loaded.theme == "light"


def test_session_log_is_append_only(database) -> None:
    first = SessionResult(xp_gained=30, passed=False, max_xp=100, challenge_id=4, mode=SessionMode.CHALLENGE)
    second = SessionResult(
        xp_gained=100,
        passed=True,
        max_xp=100,
        mode=SessionMode.PRACTICE,
        difficulty="Master",
        accuracy=90.0,
    )
    with session_scope() as session:
        user_stats_documents.append_session(session, "learner", first)
        user_stats_documents.append_session(session, "learner", second)
        user_stats_documents.append_session(session, "someone-else", first)

    with session_scope() as session:
        logs = user_stats_documents.recent_sessions(session, "learner")
        assert [log.mode for log in logs] == ["PRACTICE", "CHALLENGE"]
        assert logs[0].difficulty == "Master"
        assert logs[1].challenge_id == 4
        assert not logs[1].passed


def test_blank_uid_is_rejected(database) -> None:
    with session_scope() as session:
        with pytest.raises(ValueError):
            user_stats_documents.get(session, "   ")


def test_store_syncs_through_the_database(database, tmp_path: Path) -> None:
    store = StatsStore(local_path=tmp_path / "stats.json")
    assert store.remote_enabled

    first = store.sync_with_cloud("learner", UserStats(xp=300, unlocked_challenges=[1, 2]))
    assert first.xp == 300

    other_device = StatsStore(local_path=tmp_path / "other.json")
    merged = other_device.sync_with_cloud("learner", UserStats(xp=50, high_scores={5: 70}))
    assert merged.xp == 300
    assert merged.unlocked_challenges == [1, 2]
    assert merged.high_scores == {5: 70}
    assert other_device.load() == merged
