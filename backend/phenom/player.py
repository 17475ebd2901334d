"""Audio playback collaborator used by training sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Sequence

logger = logging.getLogger(__name__)

OCTAVE_NOTES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


class Player(Protocol):
    """Anything that can sound pitches and resolve once they have finished."""

    async def play_tone(self, pitch: int, duration: float) -> None:  # pragma: no cover - protocol definition
        ...

    async def play_sequence(self, pitches: Sequence[int], tempo: int) -> None:  # pragma: no cover - protocol definition
        ...


def note_name(pitch: int) -> str:
    return f"{OCTAVE_NOTES[pitch % 12]}{pitch // 12 - 1}"


def frequency(pitch: int) -> float:
    return 440.0 * 2 ** ((pitch - 69) / 12)


def beat_seconds(tempo: int) -> float:
    return 60.0 / max(tempo, 1)


class TimedPlayer:
    """Headless player that only keeps time, for servers and tests without audio."""

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self._sleep = sleep

    async def play_tone(self, pitch: int, duration: float) -> None:
        logger.debug("tone %s (%.1f Hz) for %.2fs", note_name(pitch), frequency(pitch), duration)
        await self._sleep(duration)

    async def play_sequence(self, pitches: Sequence[int], tempo: int) -> None:
        beat = beat_seconds(tempo)
        for pitch in pitches:
            logger.debug("note %s at %s bpm", note_name(pitch), tempo)
            await self._sleep(beat)


__all__ = ["Player", "TimedPlayer", "beat_seconds", "frequency", "note_name"]
