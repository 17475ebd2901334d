"""Database-backed remote store for learner stats documents and session logs."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import SessionLogModel, UserStatsDocumentModel
from ..progression import SessionResult
from ..user_stats import UserStats, coerce_stats


def _normalize_uid(uid: str) -> str:
    normalized = uid.strip()
    if not normalized:
        raise ValueError("User id cannot be empty.")
    return normalized


class UserStatsRepository:
    """Keyed stats documents plus an append-only session log."""

    def get(self, session: Session, uid: str) -> Optional[UserStats]:
        model = session.get(UserStatsDocumentModel, _normalize_uid(uid))
        if model is None:
            return None
        return coerce_stats(model.document)

    def set(self, session: Session, uid: str, stats: UserStats, *, merge: bool = True) -> UserStats:
        """Write ``stats``; with ``merge`` the document's other keys are kept."""
        normalized = _normalize_uid(uid)
        payload: Dict[str, Any] = stats.to_document()
        model = session.get(UserStatsDocumentModel, normalized)
        if model is None:
            model = UserStatsDocumentModel(uid=normalized, document=payload)
            session.add(model)
        elif merge:
            model.document = {**(model.document or {}), **payload}
        else:
            model.document = payload
        session.flush()
        return coerce_stats(model.document)

    def append_session(self, session: Session, uid: str, result: SessionResult) -> None:
        session.add(
            SessionLogModel(
                uid=_normalize_uid(uid),
                mode=result.mode.value,
                challenge_id=result.challenge_id,
                difficulty=result.difficulty,
                xp_earned=result.xp_gained,
                max_xp=result.max_xp,
                accuracy=result.accuracy,
                passed=result.passed,
            )
        )
        session.flush()

    def recent_sessions(self, session: Session, uid: str, limit: int = 50) -> List[SessionLogModel]:
        stmt = (
            select(SessionLogModel)
            .where(SessionLogModel.uid == _normalize_uid(uid))
            .order_by(SessionLogModel.created_at.desc(), SessionLogModel.id.desc())
            .limit(limit)
        )
        return list(session.execute(stmt).scalars())

    def delete(self, session: Session, uid: str) -> bool:
        model = session.get(UserStatsDocumentModel, _normalize_uid(uid))
        if model is None:
            return False
        session.delete(model)
        session.flush()
        return True


user_stats_documents = UserStatsRepository()

__all__ = ["UserStatsRepository", "user_stats_documents"]
