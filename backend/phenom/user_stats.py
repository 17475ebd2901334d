"""Learner stats model and persistence helpers."""

from __future__ import annotations

import json
import logging
import threading
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .config import get_settings
from .heatmap import HEATMAP_SIZE, DEFAULT_MASTERY, clamp, default_heatmap
from .telemetry import emit_event

if TYPE_CHECKING:
    from .progression import SessionResult
    from .repositories.user_stats import UserStatsRepository

logger = logging.getLogger(__name__)

MAX_HEARTS = 5
XP_PER_LEVEL = 500
FIRST_CHALLENGE_ID = 1

# Keys written by the first (camelCase) generation of stored profiles.
_LEGACY_KEYS = {
    "unlockedChallenges": "unlocked_challenges",
    "highScores": "high_scores",
    "lastPlayedDate": "last_played_date",
}


def _repo() -> "UserStatsRepository":
    from .repositories.user_stats import user_stats_documents as repository

    return repository


def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


class UserStats(BaseModel):
    """The learner profile; the only long-lived mutable entity."""

    model_config = ConfigDict(extra="ignore")

    xp: int = Field(default=0, ge=0)
    level: int = 1
    hearts: int = MAX_HEARTS
    streak: int = Field(default=0, ge=0)
    heatmap: List[float] = Field(default_factory=default_heatmap)
    unlocked_challenges: List[int] = Field(default_factory=lambda: [FIRST_CHALLENGE_ID])
    high_scores: Dict[int, int] = Field(default_factory=dict)
    last_played_date: Optional[date] = None
    theme: Literal["light", "dark"] = "dark"

    @field_validator("hearts", mode="before")
    @classmethod
    def _clamp_hearts(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return min(MAX_HEARTS, max(0, int(value)))
        return value

    @field_validator("heatmap", mode="before")
    @classmethod
    def _normalize_heatmap(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return value
        try:
            cells = [clamp(cell) for cell in value[:HEATMAP_SIZE]]
        except (TypeError, ValueError) as exc:
            raise ValueError(f"heatmap cells must be numbers: {exc}") from exc
        cells.extend([DEFAULT_MASTERY] * (HEATMAP_SIZE - len(cells)))
        return cells

    @field_validator("unlocked_challenges")
    @classmethod
    def _normalize_unlocked(cls, value: List[int]) -> List[int]:
        return sorted({FIRST_CHALLENGE_ID, *(entry for entry in value if entry >= FIRST_CHALLENGE_ID)})

    @field_validator("high_scores")
    @classmethod
    def _normalize_high_scores(cls, value: Dict[int, int]) -> Dict[int, int]:
        return {key: max(0, score) for key, score in sorted(value.items())}

    @model_validator(mode="after")
    def _derive_level(self) -> "UserStats":
        self.level = level_for_xp(self.xp)
        return self

    @property
    def highest_unlocked(self) -> int:
        return max(self.unlocked_challenges)

    def evolve(self, **changes: Any) -> "UserStats":
        """Return a validated copy with ``changes`` applied."""
        payload = self.model_dump()
        payload.update(changes)
        return UserStats.model_validate(payload)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def initial_stats() -> UserStats:
    return UserStats()


def coerce_stats(raw: Any) -> UserStats:
    """Validate a stored document field by field, defaulting whatever is unusable."""
    if not isinstance(raw, Mapping):
        logger.warning("Stored stats payload is %s, not an object; using defaults", type(raw).__name__)
        return initial_stats()

    payload: Dict[str, Any] = {}
    for key, value in raw.items():
        payload[_LEGACY_KEYS.get(str(key), str(key))] = value

    for _ in range(len(UserStats.model_fields) + 1):
        try:
            return UserStats.model_validate(payload)
        except ValidationError as exc:
            invalid = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
            dropped = invalid & payload.keys()
            if not dropped:
                break
            logger.warning("Dropping malformed stats fields %s", sorted(dropped))
            for key in dropped:
                payload.pop(key, None)
    return initial_stats()


def merge_stats(local: UserStats, remote: UserStats) -> UserStats:
    """Reconcile a local profile with its remote copy.

    Progress fields only ever grow: xp, level and streak take the maximum,
    unlocked challenges are unioned and high scores keep the per-challenge
    maximum; level is re-derived from the merged xp. The remote heatmap
    replaces the local one; theme and every other field stay local.
    """
    high_scores = dict(remote.high_scores)
    for challenge_id, score in local.high_scores.items():
        high_scores[challenge_id] = max(score, high_scores.get(challenge_id, 0))

    merged = local.evolve(
        xp=max(local.xp, remote.xp),
        unlocked_challenges=sorted(set(local.unlocked_challenges) | set(remote.unlocked_challenges)),
        high_scores=high_scores,
        heatmap=list(remote.heatmap),
        streak=max(local.streak, remote.streak),
        theme=local.theme,
    )
    return merged


class _LocalStatsStore:
    """JSON file holding the single local learner profile."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UserStats:
        with self._lock:
            if not self._path.exists():
                return initial_stats()
            try:
                with self._path.open("r", encoding="utf-8") as handle:
                    raw = json.load(handle)
            except (OSError, ValueError):
                logger.exception("Failed to read stored stats from %s", self._path)
                return initial_stats()
        return coerce_stats(raw)

    def save(self, stats: UserStats) -> bool:
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("w", encoding="utf-8") as handle:
                    json.dump(stats.to_document(), handle, indent=2)
            except OSError:
                logger.exception("Failed to save stats to %s", self._path)
                return False
        return True

    def clear(self) -> None:
        with self._lock:
            try:
                self._path.unlink(missing_ok=True)
            except OSError:
                logger.exception("Failed to clear stored stats at %s", self._path)


class _RemoteStatsStore:
    """Database-backed keyed document store."""

    def get(self, uid: str) -> Optional[UserStats]:
        from .db.session import session_scope

        with session_scope() as session:
            return _repo().get(session, uid)

    def set(self, uid: str, stats: UserStats) -> UserStats:
        from .db.session import session_scope

        with session_scope() as session:
            return _repo().set(session, uid, stats, merge=True)

    def append_session(self, uid: str, result: "SessionResult") -> None:
        from .db.session import session_scope

        with session_scope() as session:
            _repo().append_session(session, uid, result)


class StatsStore:
    """Single entry point for loading, mutating and syncing learner stats."""

    def __init__(self, local_path: Optional[Path] = None) -> None:
        settings = get_settings()
        self._local = _LocalStatsStore(local_path or settings.stats_path)
        self._remote: Optional[_RemoteStatsStore] = _RemoteStatsStore() if settings.remote_enabled else None

    @property
    def remote_enabled(self) -> bool:
        return self._remote is not None

    def load(self) -> UserStats:
        return self._local.load()

    def save(self, stats: UserStats) -> UserStats:
        self._local.save(stats)
        return stats

    def reset(self) -> UserStats:
        self._local.clear()
        emit_event("stats_reset")
        return initial_stats()

    def apply_result(
        self,
        stats: UserStats,
        result: "SessionResult",
        *,
        uid: Optional[str] = None,
        today: Optional[date] = None,
    ) -> UserStats:
        from .progression import apply_result

        updated = apply_result(stats, result, today=today)
        self.save(updated)
        emit_event(
            "session_completed",
            mode=result.mode.value,
            challenge_id=result.challenge_id,
            difficulty=result.difficulty,
            xp_gained=result.xp_gained,
            max_xp=result.max_xp,
            passed=result.passed,
            total_xp=updated.xp,
            level=updated.level,
        )
        if uid:
            self.save_to_cloud(uid, updated)
            self.record_session(uid, result)
        return updated

    def sync_with_cloud(self, uid: str, local: UserStats) -> UserStats:
        """Reconcile ``local`` with the remote copy; failures return ``local``."""
        if self._remote is None:
            logger.debug("Remote store disabled; skipping sync for %s", uid)
            return local
        try:
            remote = self._remote.get(uid)
            if remote is None:
                self._remote.set(uid, local)
                emit_event("stats_synced", uid=uid, created=True)
                return local
            merged = merge_stats(local, remote)
            self._remote.set(uid, merged)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Remote sync failed for %s; keeping local stats: %s", uid, exc)
            emit_event("stats_sync_failed", uid=uid, operation="sync", error=str(exc))
            return local
        self.save(merged)
        emit_event("stats_synced", uid=uid, created=False, xp=merged.xp)
        return merged

    def save_to_cloud(self, uid: str, stats: UserStats) -> bool:
        if self._remote is None:
            return False
        try:
            self._remote.set(uid, stats)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to push stats for %s: %s", uid, exc)
            emit_event("stats_sync_failed", uid=uid, operation="save", error=str(exc))
            return False
        return True

    def record_session(self, uid: str, result: "SessionResult") -> bool:
        if self._remote is None:
            return False
        try:
            self._remote.append_session(uid, result)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to log session for %s: %s", uid, exc)
            emit_event("stats_sync_failed", uid=uid, operation="log_session", error=str(exc))
            return False
        return True


stats_store = StatsStore()


def get_stats_store() -> StatsStore:
    return stats_store


__all__ = [
    "MAX_HEARTS",
    "StatsStore",
    "UserStats",
    "XP_PER_LEVEL",
    "coerce_stats",
    "get_stats_store",
    "initial_stats",
    "level_for_xp",
    "merge_stats",
    "stats_store",
]
