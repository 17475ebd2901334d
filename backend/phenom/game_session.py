"""Listen, answer, grade and advance loop for one training session.

Every playback call and timed pause is a suspension point. Actions that move
the session on (retry, skip, advance, repeat, abandon) bump ``token``; any
coroutine that was suspended under an older token returns as soon as it
resumes instead of touching the new state.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from .curriculum import Challenge, DifficultyLevel, parse_level
from .heatmap import interval_of, update_heatmap
from .player import Player
from .progression import SessionMode, SessionResult, has_passed
from .questions import (
    DEFAULT_QUESTION_COUNT,
    Question,
    generate_challenge_questions,
    generate_dojo_questions,
    generate_practice_questions,
)
from .telemetry import emit_event
from .user_stats import UserStats

logger = logging.getLogger(__name__)

XP_PER_NOTE = 10
MAX_WRONG_BEFORE_REVEAL = 3

STANDARD_TEMPO = 100
MASTER_TEMPO = 140
ANSWER_REPLAY_TEMPO = 180
TARGET_REPLAY_TEMPO = 120

CADENCE_TONE_SECONDS = 1.5
CADENCE_PAUSE_SECONDS = 1.0
ECHO_SECONDS = 0.4
FEEDBACK_PAUSE_SECONDS = 0.5
REFERENCE_TONE_SECONDS = 1.0

Sleep = Callable[[float], Awaitable[None]]


class SessionPhase(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    ANSWERING = "answering"
    CORRECT = "correct"
    WRONG = "wrong"
    ADVANCING = "advancing"
    SUMMARY = "summary"


class InvalidSessionAction(RuntimeError):
    """Raised when an action is not allowed in the session's current phase."""


@dataclass(frozen=True)
class Feedback:
    correct: bool
    played: Tuple[int, ...]
    target: Tuple[int, ...]
    mismatched: Tuple[int, ...]
    revealed: bool = False


@dataclass(frozen=True)
class SessionSummary:
    xp_gained: int
    max_xp: int
    passed: bool
    accuracy: float
    mistakes: int
    questions: int


class GameSession:
    def __init__(
        self,
        stats: UserStats,
        questions: Sequence[Question],
        player: Player,
        *,
        mode: SessionMode,
        challenge: Optional[Challenge] = None,
        difficulty: Optional[DifficultyLevel] = None,
        regenerate: Optional[Callable[[int], List[Question]]] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.stats = stats
        self.questions: List[Question] = list(questions)
        self.player = player
        self.mode = mode
        self.challenge = challenge
        self.difficulty = difficulty
        self._regenerate = regenerate
        self._sleep = sleep

        self.phase = SessionPhase.IDLE
        self.index = 0
        self.input: List[int] = []
        self.feedback: Optional[Feedback] = None
        self.xp_gained = 0
        self.mistakes = 0
        self.first_try_correct = 0
        self.answer_revealed = False
        self.summary: Optional[SessionSummary] = None
        self._wrong_attempts = 0
        self._awarded = False
        self._graded = False
        self._graded_questions = 0
        self._graded_max_xp = 0
        self._token = 0
        self._feedback_task: Optional[asyncio.Future[None]] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def dojo(
        cls,
        stats: UserStats,
        player: Player,
        *,
        count: int = DEFAULT_QUESTION_COUNT,
        force_weak: bool = False,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "GameSession":
        questions = generate_dojo_questions(stats, count, force_weak, rng=rng)
        return cls(stats, questions, player, mode=SessionMode.DOJO, sleep=sleep)

    @classmethod
    def practice(
        cls,
        difficulty: DifficultyLevel | str,
        stats: UserStats,
        player: Player,
        *,
        count: int = DEFAULT_QUESTION_COUNT,
        force_weak: bool = False,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "GameSession":
        level = parse_level(difficulty)
        session = cls(
            stats,
            generate_practice_questions(level, stats, count, force_weak, rng=rng),
            player,
            mode=SessionMode.PRACTICE,
            difficulty=level,
            sleep=sleep,
        )
        # Later batches follow the heatmap as it evolves during the session.
        session._regenerate = lambda size: generate_practice_questions(
            level, session.stats, size, force_weak, rng=rng
        )
        return session

    @classmethod
    def for_challenge(
        cls,
        challenge: Challenge,
        stats: UserStats,
        player: Player,
        *,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "GameSession":
        return cls(
            stats,
            generate_challenge_questions(challenge, rng=rng),
            player,
            mode=SessionMode.EXAM if challenge.is_exam else SessionMode.CHALLENGE,
            challenge=challenge,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def token(self) -> int:
        return self._token

    @property
    def is_exam(self) -> bool:
        return self.mode is SessionMode.EXAM

    @property
    def current_question(self) -> Question:
        if not self.questions:
            raise InvalidSessionAction("Session has no questions.")
        return self.questions[self.index]

    @property
    def tempo(self) -> int:
        level = self.challenge.level if self.challenge else self.difficulty
        return MASTER_TEMPO if level is DifficultyLevel.MASTER else STANDARD_TEMPO

    @property
    def max_potential_xp(self) -> int:
        return sum(XP_PER_NOTE * len(question.target_melody) for question in self.questions)

    @property
    def can_check(self) -> bool:
        return (
            self.phase is SessionPhase.ANSWERING
            and len(self.input) == len(self.current_question.target_melody)
        )

    def _require(self, *phases: SessionPhase) -> None:
        if self.phase not in phases:
            allowed = ", ".join(phase.value for phase in phases)
            raise InvalidSessionAction(f"Action not allowed while {self.phase.value}; expected {allowed}.")

    def _is_stale(self, token: int) -> bool:
        return token != self._token

    # ------------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self._require(SessionPhase.IDLE)
        if not self.questions:
            raise InvalidSessionAction("Session has no questions.")
        logger.info("Starting %s session with %d questions", self.mode.value, len(self.questions))
        await self._listen()

    async def repeat(self) -> None:
        """Replay the cadence and melody of the current question."""
        self._require(SessionPhase.LISTENING, SessionPhase.ANSWERING)
        await self._listen()

    async def _listen(self) -> None:
        self._token += 1
        token = self._token
        question = self.current_question
        self.phase = SessionPhase.LISTENING
        self.input = []
        self.feedback = None

        await self.player.play_tone(question.key_center, CADENCE_TONE_SECONDS)
        if self._is_stale(token):
            return
        await self._sleep(CADENCE_PAUSE_SECONDS)
        if self._is_stale(token):
            return
        await self.player.play_sequence(question.target_melody, self.tempo)
        if self._is_stale(token):
            return
        self.phase = SessionPhase.ANSWERING

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    async def press(self, pitch: int) -> List[int]:
        self._require(SessionPhase.ANSWERING)
        if len(self.input) < len(self.current_question.target_melody):
            self.input.append(pitch)
        entered = list(self.input)
        await self.player.play_tone(pitch, ECHO_SECONDS)
        return entered

    def backspace(self) -> List[int]:
        if self.is_exam:
            raise InvalidSessionAction("Exams do not allow editing an answer.")
        self._require(SessionPhase.ANSWERING)
        if self.input:
            self.input.pop()
        return list(self.input)

    async def check(self) -> Optional[Feedback]:
        """Grade the entered answer.

        Exams return ``None`` and move straight on to the next question.
        """
        self._require(SessionPhase.ANSWERING)
        question = self.current_question
        target = tuple(question.target_melody)
        if len(self.input) != len(target):
            raise InvalidSessionAction(f"Enter {len(target)} note(s) before checking.")

        played = tuple(self.input)
        mismatched = tuple(i for i, (note, expected) in enumerate(zip(played, target)) if note != expected)
        correct = not mismatched
        emit_event(
            "question_graded",
            mode=self.mode.value,
            index=self.index,
            correct=correct,
            attempt=self._wrong_attempts + 1,
        )
        self._mark_graded(question)

        if self.is_exam:
            if correct:
                self._award(question)
                self._record(question, range(len(target)), correct=True)
            else:
                self.mistakes += 1
                self._record(question, mismatched, correct=False)
            await self._advance()
            return None

        if correct:
            self._award(question)
            self._record(question, range(len(target)), correct=True)
            self.phase = SessionPhase.CORRECT
            self.feedback = Feedback(True, played, target, (), self.answer_revealed)
            return self.feedback

        self.mistakes += 1
        self._wrong_attempts += 1
        self._record(question, mismatched, correct=False)
        if self._wrong_attempts >= MAX_WRONG_BEFORE_REVEAL:
            self.answer_revealed = True
        self.phase = SessionPhase.WRONG
        self.feedback = Feedback(False, played, target, mismatched, self.answer_revealed)
        self._feedback_task = asyncio.ensure_future(self._play_feedback(self._token, played, question))
        self._feedback_task.add_done_callback(_log_feedback_failure)
        return self.feedback

    def _mark_graded(self, question: Question) -> None:
        if self._graded:
            return
        self._graded = True
        self._graded_questions += 1
        self._graded_max_xp += XP_PER_NOTE * len(question.target_melody)

    def _award(self, question: Question) -> None:
        if self._awarded or self.answer_revealed:
            return
        self._awarded = True
        self.xp_gained += XP_PER_NOTE * len(question.target_melody)
        if self._wrong_attempts == 0:
            self.first_try_correct += 1

    def _record(self, question: Question, positions: Sequence[int], *, correct: bool) -> None:
        heatmap = self.stats.heatmap
        for position in positions:
            interval = interval_of(question.target_melody[position], question.key_center)
            heatmap = update_heatmap(heatmap, interval, correct)
        self.stats.heatmap = heatmap

    async def _play_feedback(self, token: int, played: Tuple[int, ...], question: Question) -> None:
        steps: List[Callable[[], Awaitable[None]]] = [
            lambda: self.player.play_sequence(played, ANSWER_REPLAY_TEMPO),
            lambda: self.player.play_sequence(question.target_melody, TARGET_REPLAY_TEMPO),
            lambda: self.player.play_tone(question.key_center, REFERENCE_TONE_SECONDS),
        ]
        for position, step in enumerate(steps):
            if position:
                await self._sleep(FEEDBACK_PAUSE_SECONDS)
            if self._is_stale(token):
                logger.debug("Abandoning feedback playback after %d step(s)", position)
                return
            await step()

    async def wait_for_feedback(self) -> None:
        task = self._feedback_task
        if task is not None:
            await task

    # ------------------------------------------------------------------
    # Moving on
    # ------------------------------------------------------------------

    def retry(self) -> None:
        if self.is_exam:
            raise InvalidSessionAction("Exams do not allow retries.")
        self._require(SessionPhase.WRONG)
        self._token += 1
        self.input = []
        self.feedback = None
        self.phase = SessionPhase.ANSWERING

    async def skip(self) -> None:
        """Give up on the current question; always costs a mistake."""
        self._require(SessionPhase.LISTENING, SessionPhase.ANSWERING, SessionPhase.WRONG)
        question = self.current_question
        self.mistakes += 1
        self._mark_graded(question)
        self._record(question, range(len(question.target_melody)), correct=False)
        await self._advance()

    async def advance(self) -> None:
        self._require(SessionPhase.CORRECT)
        await self._advance()

    async def _advance(self) -> None:
        self._token += 1
        self.phase = SessionPhase.ADVANCING
        self.input = []
        self.feedback = None
        self.answer_revealed = False
        self._wrong_attempts = 0
        self._awarded = False
        self._graded = False

        if self.index < len(self.questions) - 1:
            self.index += 1
        elif self.mode is SessionMode.PRACTICE and self._regenerate is not None:
            self.questions = self._regenerate(len(self.questions))
            self.index = 0
        else:
            self.summary = self._summarize()
            self.phase = SessionPhase.SUMMARY
            return
        await self._listen()

    def _summarize(self) -> SessionSummary:
        # Practice has no fixed batch, so it is scored over the questions graded so far.
        if self.mode is SessionMode.PRACTICE:
            max_xp = self._graded_max_xp
            total = self._graded_questions
        else:
            max_xp = self.max_potential_xp
            total = len(self.questions)
        return SessionSummary(
            xp_gained=self.xp_gained,
            max_xp=max_xp,
            passed=total > 0 and has_passed(self.xp_gained, max_xp),
            accuracy=round(100.0 * self.first_try_correct / total, 1) if total else 0.0,
            mistakes=self.mistakes,
            questions=total,
        )

    def finish(self) -> SessionResult:
        """Leave the summary and hand the outcome to the progression engine.

        Practice never reaches a summary on its own and may be finished from
        any phase outside of wrong-answer feedback.
        """
        if self.mode is SessionMode.PRACTICE and self.phase is not SessionPhase.SUMMARY:
            self._require(SessionPhase.LISTENING, SessionPhase.ANSWERING, SessionPhase.CORRECT)
            self._token += 1
            self.summary = self._summarize()
        else:
            self._require(SessionPhase.SUMMARY)
        summary = self.summary or self._summarize()
        self.input = []
        self.feedback = None
        self.phase = SessionPhase.IDLE
        return SessionResult(
            xp_gained=summary.xp_gained,
            passed=summary.passed,
            max_xp=summary.max_xp,
            challenge_id=self.challenge.id if self.challenge else None,
            mode=self.mode,
            difficulty=self.difficulty.value if self.difficulty else None,
            accuracy=summary.accuracy,
        )

    def abandon(self) -> None:
        """Stop without producing a result; pending playback is dropped."""
        self._token += 1
        self.input = []
        self.feedback = None
        self.phase = SessionPhase.IDLE


def _log_feedback_failure(task: "asyncio.Future[None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Feedback playback failed: %s", exc)


__all__ = [
    "Feedback",
    "GameSession",
    "InvalidSessionAction",
    "SessionPhase",
    "SessionSummary",
]
