from __future__ import annotations

import pytest

from phenom.player import TimedPlayer, beat_seconds, frequency, note_name


def test_note_names_and_frequencies() -> None:
    assert note_name(60) == "C4"
    assert note_name(61) == "C#4"
    assert frequency(69) == pytest.approx(440.0)
    assert frequency(81) == pytest.approx(880.0)
    assert beat_seconds(120) == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_timed_player_waits_one_beat_per_note() -> None:
    waits: list[float] = []

    async def record(seconds: float) -> None:
        waits.append(seconds)

    player = TimedPlayer(sleep=record)
    await player.play_tone(60, 1.5)
    await player.play_sequence([60, 62, 64], 100)

    assert waits[0] == 1.5
    assert waits[1:] == pytest.approx([0.6, 0.6, 0.6])
