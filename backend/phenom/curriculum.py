"""Deterministic challenge catalog for the three training tiers.

Challenge ids are assigned sequentially in generation order and double as the
prerequisite chain: passing challenge ``n`` unlocks challenge ``n + 1``. Any
change to the tier order, tier sizes or exam placement renumbers every later
challenge and therefore rewrites stored learner progress.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

CHROMATIC: Tuple[int, ...] = tuple(range(12))
MAJOR_SCALE: Tuple[int, ...] = (0, 2, 4, 5, 7, 9, 11)

CHALLENGES_PER_TIER = 50
DEFAULT_TASKS_COUNT = 10
EXAM_TASKS_MULTIPLIER = 2


class DifficultyLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    MASTER = "Master"


LEVEL_ORDER: Tuple[DifficultyLevel, ...] = (
    DifficultyLevel.BEGINNER,
    DifficultyLevel.INTERMEDIATE,
    DifficultyLevel.MASTER,
)


class Challenge(BaseModel):
    """Immutable curriculum unit."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    level: DifficultyLevel
    title: str
    subtitle: str
    note_pool: Tuple[int, ...] = Field(min_length=1)
    sequence_length: int = Field(ge=1)
    octave_range: float = 1.0
    is_modulating: bool = False
    chaos_mode: bool = False
    tasks_count: int = Field(default=DEFAULT_TASKS_COUNT, ge=1)
    is_exam: bool = False


class _TierStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    subtitle: str
    note_pool: Tuple[int, ...]
    is_modulating: bool = False
    chaos_mode: bool = False


# Beginner widens the pool from the 1/5/b2 anchor set to the full chromatic set.
def _beginner_step(index: int) -> _TierStep:
    pool: Tuple[int, ...] = (0, 7, 1)
    title = "Stability vs Tension"
    if index > 10:
        pool = pool + (4, 3)
        title = "Color Quality"
    if index > 20:
        pool = pool + (6, 5)
        title = "The Center (Tritone)"
    if index > 30:
        pool = pool + (11, 10, 2)
        title = "Leading Tones"
    if index > 40:
        pool = CHROMATIC
        title = "Full Chromatic"

    if index <= 10:
        subtitle = "Anchors & Minor 2nd"
    elif index <= 20:
        subtitle = "Bright vs Dark"
    else:
        subtitle = "Expanding Spectrum"
    return _TierStep(title=f"{title} {((index - 1) % 10) + 1}", subtitle=subtitle, note_pool=pool)


def _intermediate_step(index: int) -> _TierStep:
    if index <= 15:
        title, subtitle, modulating = "Functional Shapes", "Common Melodic Words", False
    elif index <= 30:
        title, subtitle, modulating = "Chromatic Movement", "Enclosures & Approaches", False
    else:
        title, subtitle, modulating = "Modulation Master", "Instant Key Reset", True
    return _TierStep(
        title=f"{title} {((index - 1) % 15) + 1}",
        subtitle=subtitle,
        note_pool=CHROMATIC,
        is_modulating=modulating,
    )


def _master_step(index: int) -> _TierStep:
    if index <= 25:
        title, subtitle, chaos = "Non-Diatonic Clusters", "Altered Scale Structures", False
    else:
        title, subtitle, chaos = "Chaos Mode", "Wide Leaps & Timbre Shuffle", True
    return _TierStep(
        title=f"{title} {((index - 1) % 25) + 1}",
        subtitle=subtitle,
        note_pool=CHROMATIC,
        is_modulating=True,
        chaos_mode=chaos,
    )


# (sequence_length, octave_range) per tier.
_TIER_SHAPE: Dict[DifficultyLevel, Tuple[int, float]] = {
    DifficultyLevel.BEGINNER: (1, 1.0),
    DifficultyLevel.INTERMEDIATE: (3, 1.5),
    DifficultyLevel.MASTER: (5, 2.0),
}

_TIER_STEPS = {
    DifficultyLevel.BEGINNER: _beginner_step,
    DifficultyLevel.INTERMEDIATE: _intermediate_step,
    DifficultyLevel.MASTER: _master_step,
}


def generate_curriculum() -> List[Challenge]:
    """Build the ordered catalog: 50 graded challenges plus one exam per tier."""
    challenges: List[Challenge] = []
    next_id = 1
    for level in LEVEL_ORDER:
        sequence_length, octave_range = _TIER_SHAPE[level]
        step_for = _TIER_STEPS[level]
        for index in range(1, CHALLENGES_PER_TIER + 1):
            step = step_for(index)
            challenges.append(
                Challenge(
                    id=next_id,
                    level=level,
                    title=step.title,
                    subtitle=step.subtitle,
                    note_pool=step.note_pool,
                    sequence_length=sequence_length,
                    octave_range=octave_range,
                    is_modulating=step.is_modulating,
                    chaos_mode=step.chaos_mode,
                    tasks_count=DEFAULT_TASKS_COUNT,
                )
            )
            next_id += 1

        challenges.append(
            Challenge(
                id=next_id,
                level=level,
                title=f"{level.value} Exam",
                subtitle="Silent grading, no retries",
                note_pool=CHROMATIC,
                sequence_length=sequence_length,
                octave_range=octave_range,
                is_modulating=True,
                chaos_mode=level is DifficultyLevel.MASTER,
                tasks_count=DEFAULT_TASKS_COUNT * EXAM_TASKS_MULTIPLIER,
                is_exam=True,
            )
        )
        next_id += 1
    return challenges


CURRICULUM: Tuple[Challenge, ...] = tuple(generate_curriculum())
_BY_ID: Dict[int, Challenge] = {challenge.id: challenge for challenge in CURRICULUM}


def get_challenge(challenge_id: int, catalog: Optional[Sequence[Challenge]] = None) -> Challenge:
    if catalog is None:
        challenge = _BY_ID.get(challenge_id)
    else:
        challenge = next((entry for entry in catalog if entry.id == challenge_id), None)
    if challenge is None:
        raise LookupError(f"Challenge {challenge_id} does not exist.")
    return challenge


def challenge_exists(challenge_id: int, catalog: Optional[Sequence[Challenge]] = None) -> bool:
    if catalog is None:
        return challenge_id in _BY_ID
    return any(entry.id == challenge_id for entry in catalog)


def challenges_for_level(level: DifficultyLevel | str) -> List[Challenge]:
    resolved = parse_level(level)
    return [challenge for challenge in CURRICULUM if challenge.level is resolved]


def exam_for_level(level: DifficultyLevel | str) -> Challenge:
    resolved = parse_level(level)
    for challenge in CURRICULUM:
        if challenge.level is resolved and challenge.is_exam:
            return challenge
    raise LookupError(f"No exam defined for level {resolved.value}.")


def parse_level(value: DifficultyLevel | str) -> DifficultyLevel:
    if isinstance(value, DifficultyLevel):
        return value
    normalized = value.strip().lower()
    for level in DifficultyLevel:
        if level.value.lower() == normalized or level.name.lower() == normalized:
            return level
    raise ValueError(f"Unknown difficulty level: {value!r}")


__all__ = [
    "CHROMATIC",
    "CURRICULUM",
    "Challenge",
    "DifficultyLevel",
    "LEVEL_ORDER",
    "MAJOR_SCALE",
    "challenge_exists",
    "challenges_for_level",
    "exam_for_level",
    "generate_curriculum",
    "get_challenge",
    "parse_level",
]
