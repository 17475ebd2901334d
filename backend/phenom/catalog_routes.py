"""Read-only curriculum endpoints plus question batches for the stored profile."""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from .curriculum import CURRICULUM, LEVEL_ORDER, Challenge, challenges_for_level, exam_for_level, get_challenge
from .progression import can_attempt
from .questions import (
    DEFAULT_QUESTION_COUNT,
    Question,
    generate_challenge_questions,
    generate_dojo_questions,
    generate_practice_questions,
)
from .user_stats import StatsStore, get_stats_store

router = APIRouter(prefix="/api", tags=["catalog"])
logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 50


class QuestionBatchRequest(BaseModel):
    count: int = Field(default=DEFAULT_QUESTION_COUNT, ge=1, le=MAX_BATCH_SIZE)
    force_weak: bool = False
    seed: Optional[int] = None


class QuestionBatchResponse(BaseModel):
    questions: List[Question]
    max_xp: int
    challenge_id: Optional[int] = None


def _rng(seed: Optional[int]) -> random.Random:
    return random.Random(seed) if seed is not None else random.Random()


def _batch(questions: List[Question], challenge_id: Optional[int] = None) -> QuestionBatchResponse:
    return QuestionBatchResponse(
        questions=questions,
        max_xp=sum(question.max_xp for question in questions),
        challenge_id=challenge_id,
    )


def _lookup(challenge_id: int) -> Challenge:
    try:
        return get_challenge(challenge_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/challenges", response_model=List[Challenge])
def list_challenges(level: Optional[str] = Query(default=None)) -> List[Challenge]:
    if level is None:
        return list(CURRICULUM)
    try:
        return challenges_for_level(level)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/challenges/{challenge_id}", response_model=Challenge)
def read_challenge(challenge_id: int) -> Challenge:
    return _lookup(challenge_id)


@router.get("/exams", response_model=List[Challenge])
def list_exams() -> List[Challenge]:
    return [exam_for_level(level) for level in LEVEL_ORDER]


@router.post("/questions/dojo", response_model=QuestionBatchResponse)
def dojo_questions(
    request: QuestionBatchRequest,
    store: StatsStore = Depends(get_stats_store),
) -> QuestionBatchResponse:
    stats = store.load()
    questions = generate_dojo_questions(stats, request.count, request.force_weak, rng=_rng(request.seed))
    return _batch(questions)


@router.post("/questions/practice/{difficulty}", response_model=QuestionBatchResponse)
def practice_questions(
    difficulty: str,
    request: QuestionBatchRequest,
    store: StatsStore = Depends(get_stats_store),
) -> QuestionBatchResponse:
    stats = store.load()
    try:
        questions = generate_practice_questions(
            difficulty,
            stats,
            request.count,
            request.force_weak,
            rng=_rng(request.seed),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _batch(questions)


@router.post("/questions/challenge/{challenge_id}", response_model=QuestionBatchResponse)
def challenge_questions(
    challenge_id: int,
    request: Optional[QuestionBatchRequest] = None,
    store: StatsStore = Depends(get_stats_store),
) -> QuestionBatchResponse:
    """Only ``seed`` applies here; the batch size comes from the challenge."""
    seed = request.seed if request is not None else None
    challenge = _lookup(challenge_id)
    if not can_attempt(store.load(), challenge):
        logger.info("Rejected locked challenge %s", challenge_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Challenge {challenge_id} is locked.",
        )
    return _batch(generate_challenge_questions(challenge, rng=_rng(seed)), challenge_id=challenge.id)


__all__ = ["router"]
