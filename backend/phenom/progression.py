"""XP, hearts, streak and unlock rules applied after a finished session."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from .curriculum import CURRICULUM, Challenge, challenge_exists, get_challenge
from .telemetry import emit_event
from .user_stats import UserStats

logger = logging.getLogger(__name__)

PASS_RATIO = 0.8


class SessionMode(str, Enum):
    DOJO = "DOJO"
    PRACTICE = "PRACTICE"
    CHALLENGE = "CHALLENGE"
    EXAM = "EXAM"


class SessionResult(BaseModel):
    """Outcome handed from a finished session to the progression engine."""

    xp_gained: int = Field(default=0, ge=0)
    passed: bool = False
    max_xp: int = Field(default=0, ge=0)
    challenge_id: Optional[int] = None
    mode: SessionMode = SessionMode.DOJO
    difficulty: Optional[str] = None
    accuracy: float = Field(default=0.0, ge=0.0, le=100.0)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def has_passed(xp_gained: int, max_xp: int) -> bool:
    return xp_gained >= PASS_RATIO * max_xp


def update_streak(stats: UserStats, today: Optional[date] = None) -> UserStats:
    """Count consecutive played days; a gap restarts the streak at 1."""
    today = today or utc_today()
    last = stats.last_played_date
    if last == today:
        return stats.evolve(last_played_date=today)
    if last == today - timedelta(days=1):
        streak = stats.streak + 1
    else:
        streak = 1
    return stats.evolve(streak=streak, last_played_date=today)


def apply_result(
    stats: UserStats,
    result: SessionResult,
    *,
    today: Optional[date] = None,
    catalog: Sequence[Challenge] = CURRICULUM,
) -> UserStats:
    """Fold one session outcome into the profile and return the new profile.

    Raises ``LookupError`` when the result names a challenge outside ``catalog``.
    """
    if result.challenge_id is not None:
        get_challenge(result.challenge_id, None if catalog is CURRICULUM else catalog)

    changes: dict = {"xp": stats.xp + result.xp_gained}
    if not result.passed:
        changes["hearts"] = max(0, stats.hearts - 1)
    updated = stats.evolve(**changes)

    if not result.passed:
        return updated

    if result.challenge_id is None:
        return update_streak(updated, today)

    challenge_id = result.challenge_id
    high_scores = dict(updated.high_scores)
    high_scores[challenge_id] = max(high_scores.get(challenge_id, 0), result.xp_gained)
    unlocked = list(updated.unlocked_challenges)
    next_id = challenge_id + 1
    if challenge_exists(next_id, None if catalog is CURRICULUM else catalog) and next_id not in unlocked:
        unlocked.append(next_id)
        logger.info("Unlocked challenge %s after passing %s", next_id, challenge_id)
        emit_event("challenge_unlocked", challenge_id=next_id, passed_challenge_id=challenge_id)
    return updated.evolve(high_scores=high_scores, unlocked_challenges=unlocked)


def can_attempt(stats: UserStats, challenge: Challenge) -> bool:
    """Unlocked challenges are playable; exams may also be attempted early."""
    return challenge.is_exam or challenge.id in stats.unlocked_challenges


__all__ = [
    "PASS_RATIO",
    "SessionMode",
    "SessionResult",
    "apply_result",
    "can_attempt",
    "has_passed",
    "update_streak",
    "utc_today",
]
