"""Per-interval mastery vector and weak-spot selection."""

from __future__ import annotations

from typing import List, Sequence

HEATMAP_SIZE = 12
DEFAULT_MASTERY = 0.5
CORRECT_STEP = 0.05
WRONG_STEP = 0.10
WEAK_SPOT_COUNT = 4

INTERVAL_NAMES = ("1", "b2", "2", "b3", "3", "4", "b5", "5", "b6", "6", "b7", "7")
SOLFEGE = ("Doh", "Di", "Re", "Ri", "Mi", "Fah", "Fi", "Soh", "Zi", "La", "Toh", "Ti")


def default_heatmap() -> List[float]:
    return [DEFAULT_MASTERY] * HEATMAP_SIZE


def clamp(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def interval_of(pitch: int, key_center: int) -> int:
    """Pitch class of ``pitch`` measured from ``key_center``."""
    return (pitch - key_center) % HEATMAP_SIZE


def update_heatmap(heatmap: Sequence[float], index: int, correct: bool) -> List[float]:
    """Return a copy of ``heatmap`` with slot ``index`` nudged up or down.

    Successes add 0.05 and mistakes subtract 0.10; the result is clamped to [0, 1].
    """
    if not 0 <= index < HEATMAP_SIZE:
        raise IndexError(f"Heatmap index {index} is outside 0..{HEATMAP_SIZE - 1}.")
    updated = [clamp(value) for value in heatmap]
    if correct:
        updated[index] = min(1.0, updated[index] + CORRECT_STEP)
    else:
        updated[index] = max(0.0, updated[index] - WRONG_STEP)
    return updated


def weak_spots(heatmap: Sequence[float], k: int = WEAK_SPOT_COUNT) -> List[int]:
    """Indices of the ``k`` lowest scores; ties keep ascending index order."""
    ranked = sorted(range(len(heatmap)), key=lambda index: heatmap[index])
    return ranked[: max(k, 0)]


def heatmap_cells(heatmap: Sequence[float]) -> List[dict]:
    return [
        {
            "interval": index,
            "name": INTERVAL_NAMES[index],
            "solfege": SOLFEGE[index],
            "score": round(clamp(score), 4),
        }
        for index, score in enumerate(heatmap)
    ]


__all__ = [
    "CORRECT_STEP",
    "DEFAULT_MASTERY",
    "HEATMAP_SIZE",
    "INTERVAL_NAMES",
    "SOLFEGE",
    "WEAK_SPOT_COUNT",
    "WRONG_STEP",
    "default_heatmap",
    "heatmap_cells",
    "interval_of",
    "update_heatmap",
    "weak_spots",
]
