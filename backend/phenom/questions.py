"""Question batches for Dojo, Practice and Challenge/Exam sessions."""

from __future__ import annotations

import logging
import math
import random
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .curriculum import CHROMATIC, CURRICULUM, MAJOR_SCALE, Challenge, DifficultyLevel, parse_level
from .heatmap import weak_spots
from .user_stats import UserStats

logger = logging.getLogger(__name__)

TONIC_PITCH = 60
MODULATION_FLOOR = 54
MODULATION_SPAN = 12
WEAK_SPOT_PROBABILITY = 0.7
RANDOM_MODULATION_PROBABILITY = 0.2
DEFAULT_QUESTION_COUNT = 10

# difficulty -> (pool, sequence_length, octave_range)
_PRACTICE_SHAPES = {
    DifficultyLevel.BEGINNER: (MAJOR_SCALE, 1, 1.0),
    DifficultyLevel.INTERMEDIATE: (CHROMATIC, 3, 1.5),
    DifficultyLevel.MASTER: (CHROMATIC, 5, 2.0),
}


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    key_center: int
    target_melody: Tuple[int, ...] = Field(min_length=1)
    description: str = ""

    @property
    def max_xp(self) -> int:
        return 10 * len(self.target_melody)


def unlocked_notes(unlocked_ids: Sequence[int], catalog: Sequence[Challenge] = CURRICULUM) -> List[int]:
    """Union of note pools for every challenge up to the highest unlocked id."""
    highest = max(unlocked_ids, default=1)
    notes: dict[int, None] = {}
    for challenge in catalog:
        if challenge.id > highest:
            continue
        for note in challenge.note_pool:
            notes.setdefault(note, None)
    return list(notes) or [0]


def _restrict(
    pool: Sequence[int],
    allowed: Sequence[int],
    fallback: Optional[Sequence[int]] = None,
) -> List[int]:
    """Intersect ``pool`` with ``allowed``; never returns an empty pool."""
    allowed_set = set(allowed)
    intersection = [note for note in pool if note in allowed_set]
    if intersection:
        return intersection
    resolved = list(fallback if fallback else pool)
    logger.debug("Pool intersection empty for %s; falling back to %s", list(pool), resolved)
    return resolved


def _modulated_key(rng: random.Random) -> int:
    return MODULATION_FLOOR + rng.randrange(MODULATION_SPAN)


def _build_melody(
    key_center: int,
    pool: Sequence[int],
    sequence_length: int,
    octave_range: float,
    rng: random.Random,
) -> Tuple[int, ...]:
    melody: List[int] = []
    span = math.floor(octave_range)
    for _ in range(sequence_length):
        note = key_center + rng.choice(pool)
        if octave_range > 1:
            note += 12 * rng.randrange(-span, span)
        melody.append(note)
    return tuple(melody)


def generate_dojo_questions(
    stats: UserStats,
    count: int = DEFAULT_QUESTION_COUNT,
    force_weak: bool = False,
    *,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    rng = rng or random.Random()
    unlocked = unlocked_notes(stats.unlocked_challenges)
    weak_pool = _restrict(weak_spots(stats.heatmap), unlocked, fallback=unlocked)

    questions: List[Question] = []
    for _ in range(count):
        use_weak = force_weak or rng.random() < WEAK_SPOT_PROBABILITY
        pool = weak_pool if use_weak else unlocked
        questions.append(
            Question(
                key_center=TONIC_PITCH,
                target_melody=(TONIC_PITCH + rng.choice(pool),),
                description="Weak Spot Training" if use_weak else "Daily Warmup",
            )
        )
    return questions


def generate_practice_questions(
    difficulty: DifficultyLevel | str,
    stats: UserStats,
    count: int = DEFAULT_QUESTION_COUNT,
    force_weak: bool = False,
    *,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    rng = rng or random.Random()
    level = parse_level(difficulty)
    base_pool, sequence_length, octave_range = _PRACTICE_SHAPES[level]
    pool = list(base_pool)
    if force_weak:
        pool = _restrict(base_pool, weak_spots(stats.heatmap))

    questions: List[Question] = []
    for _ in range(count):
        key_center = TONIC_PITCH if level is DifficultyLevel.BEGINNER else _modulated_key(rng)
        questions.append(
            Question(
                key_center=key_center,
                target_melody=_build_melody(key_center, pool, sequence_length, octave_range, rng),
                description="Targeting Weakness" if force_weak else f"{level.value} Practice",
            )
        )
    return questions


def generate_challenge_questions(
    challenge: Challenge,
    *,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    rng = rng or random.Random()
    questions: List[Question] = []
    for _ in range(challenge.tasks_count):
        # The roll is drawn even for modulating challenges so seeded batches stay aligned.
        rolled = rng.random() < RANDOM_MODULATION_PROBABILITY
        key_center = _modulated_key(rng) if challenge.is_modulating or rolled else TONIC_PITCH
        questions.append(
            Question(
                key_center=key_center,
                target_melody=_build_melody(
                    key_center,
                    challenge.note_pool,
                    challenge.sequence_length,
                    challenge.octave_range,
                    rng,
                ),
                description=challenge.title,
            )
        )
    return questions


__all__ = [
    "DEFAULT_QUESTION_COUNT",
    "MODULATION_FLOOR",
    "Question",
    "TONIC_PITCH",
    "generate_challenge_questions",
    "generate_dojo_questions",
    "generate_practice_questions",
    "unlocked_notes",
]
