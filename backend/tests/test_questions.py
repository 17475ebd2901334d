from __future__ import annotations

import random

import pytest

from phenom.curriculum import MAJOR_SCALE, get_challenge
from phenom.questions import (
    MODULATION_FLOOR,
    TONIC_PITCH,
    generate_challenge_questions,
    generate_dojo_questions,
    generate_practice_questions,
    unlocked_notes,
)
from phenom.user_stats import UserStats


def _stats_with_weakness(*intervals: int, unlocked: list[int] | None = None) -> UserStats:
    heatmap = [0.9] * 12
    for offset, interval in enumerate(intervals):
        heatmap[interval] = 0.1 + offset * 0.01
    return UserStats(heatmap=heatmap, unlocked_challenges=unlocked or [1])


def test_unlocked_notes_collects_pools_up_to_highest_id() -> None:
    assert sorted(unlocked_notes([1])) == [0, 1, 7]
    assert sorted(unlocked_notes([1, 11])) == [0, 1, 3, 4, 7]


def test_dojo_questions_use_single_notes_in_the_home_key() -> None:
    questions = generate_dojo_questions(UserStats(), 25, rng=random.Random(3))
    assert len(questions) == 25
    for question in questions:
        assert question.key_center == TONIC_PITCH
        assert len(question.target_melody) == 1
        assert question.target_melody[0] - TONIC_PITCH in {0, 1, 7}
        assert question.description in {"Weak Spot Training", "Daily Warmup"}


def test_forced_weak_dojo_stays_inside_unlocked_weak_spots() -> None:
    stats = _stats_with_weakness(7, 2, 5, 9)
    questions = generate_dojo_questions(stats, 20, force_weak=True, rng=random.Random(1))
    assert {question.target_melody[0] - TONIC_PITCH for question in questions} == {7}
    assert all(question.description == "Weak Spot Training" for question in questions)


def test_forced_weak_dojo_falls_back_to_unlocked_pool() -> None:
    stats = _stats_with_weakness(2, 5, 9, 11)
    questions = generate_dojo_questions(stats, 30, force_weak=True, rng=random.Random(5))
    assert {question.target_melody[0] - TONIC_PITCH for question in questions} <= {0, 1, 7}


def test_beginner_practice_uses_major_scale_in_home_key() -> None:
    questions = generate_practice_questions("Beginner", UserStats(), 30, rng=random.Random(7))
    for question in questions:
        assert question.key_center == TONIC_PITCH
        assert question.target_melody[0] - TONIC_PITCH in MAJOR_SCALE
        assert question.description == "Beginner Practice"


def test_master_practice_modulates_and_spans_octaves() -> None:
    questions = generate_practice_questions("Master", UserStats(), 40, rng=random.Random(11))
    for question in questions:
        assert MODULATION_FLOOR <= question.key_center < MODULATION_FLOOR + 12
        assert len(question.target_melody) == 5
        for pitch in question.target_melody:
            assert question.key_center - 24 <= pitch < question.key_center + 12 + 12
    offsets = {pitch - question.key_center for question in questions for pitch in question.target_melody}
    assert any(offset < 0 for offset in offsets)


def test_forced_weak_practice_targets_weak_intervals() -> None:
    stats = _stats_with_weakness(3, 8, 10, 1)
    questions = generate_practice_questions("Intermediate", stats, 20, force_weak=True, rng=random.Random(2))
    for question in questions:
        assert question.description == "Targeting Weakness"
        for pitch in question.target_melody:
            assert (pitch - question.key_center) % 12 in {1, 3, 8, 10}


def test_practice_rejects_unknown_difficulty() -> None:
    with pytest.raises(ValueError):
        generate_practice_questions("Legend", UserStats())


def test_challenge_questions_follow_challenge_shape() -> None:
    challenge = get_challenge(1)
    questions = generate_challenge_questions(challenge, rng=random.Random(4))
    assert len(questions) == challenge.tasks_count
    for question in questions:
        assert question.description == challenge.title
        assert (question.target_melody[0] - question.key_center) in challenge.note_pool
        assert question.key_center == TONIC_PITCH or MODULATION_FLOOR <= question.key_center < MODULATION_FLOOR + 12


def test_exam_questions_always_modulate() -> None:
    exam = get_challenge(102)
    questions = generate_challenge_questions(exam, rng=random.Random(9))
    assert len(questions) == 20
    assert all(MODULATION_FLOOR <= question.key_center < MODULATION_FLOOR + 12 for question in questions)
    assert all(len(question.target_melody) == 3 for question in questions)


def test_seeded_batches_are_reproducible() -> None:
    challenge = get_challenge(120)
    first = generate_challenge_questions(challenge, rng=random.Random(42))
    second = generate_challenge_questions(challenge, rng=random.Random(42))
    assert first == second
