"""Learner profile endpoints: read, replace, reset, apply results and sync."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel

from .heatmap import heatmap_cells, weak_spots
from .progression import SessionResult
from .user_stats import StatsStore, UserStats, get_stats_store

router = APIRouter(prefix="/api/profile", tags=["profile"])
logger = logging.getLogger(__name__)

UID_HEADER = "X-Phenom-Uid"


class ProfilePayload(BaseModel):
    stats: UserStats
    heatmap_cells: List[Dict[str, Any]]
    weak_spots: List[int]
    remote_enabled: bool = False


def _profile_payload(stats: UserStats, store: StatsStore) -> ProfilePayload:
    return ProfilePayload(
        stats=stats,
        heatmap_cells=heatmap_cells(stats.heatmap),
        weak_spots=weak_spots(stats.heatmap),
        remote_enabled=store.remote_enabled,
    )


@router.get("", response_model=ProfilePayload)
def read_profile(store: StatsStore = Depends(get_stats_store)) -> ProfilePayload:
    return _profile_payload(store.load(), store)


@router.put("", response_model=ProfilePayload)
def replace_profile(
    stats: UserStats,
    store: StatsStore = Depends(get_stats_store),
    uid: Optional[str] = Header(default=None, alias=UID_HEADER),
) -> ProfilePayload:
    saved = store.save(stats)
    if uid:
        store.save_to_cloud(uid, saved)
    return _profile_payload(saved, store)


@router.delete("", response_model=ProfilePayload)
def reset_profile(store: StatsStore = Depends(get_stats_store)) -> ProfilePayload:
    logger.info("Resetting local learner stats")
    return _profile_payload(store.reset(), store)


@router.post("/results", response_model=ProfilePayload)
def submit_result(
    result: SessionResult,
    store: StatsStore = Depends(get_stats_store),
    uid: Optional[str] = Header(default=None, alias=UID_HEADER),
) -> ProfilePayload:
    try:
        updated = store.apply_result(store.load(), result, uid=uid)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _profile_payload(updated, store)


@router.post("/sync", response_model=ProfilePayload)
def sync_profile(
    store: StatsStore = Depends(get_stats_store),
    uid: Optional[str] = Header(default=None, alias=UID_HEADER),
) -> ProfilePayload:
    if not uid or not uid.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{UID_HEADER} header is required to sync.",
        )
    merged = store.sync_with_cloud(uid.strip(), store.load())
    return _profile_payload(merged, store)


__all__ = ["router"]
