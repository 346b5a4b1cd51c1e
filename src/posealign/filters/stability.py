# src/posealign/filters/stability.py
import collections
from dataclasses import dataclass
from typing import Deque, Optional, Sequence, Tuple

import numpy as np

from ..config import SCORE_WINDOW, STABILITY_BANDS, STABILITY_FALLBACK, STABLE_EMA_ALPHA
from .ema import ema_of


@dataclass(frozen=True)
class StabilityReading:
    is_stable: bool
    reported: float               # value to show the user this frame
    stable_score: Optional[float] = None
    variance: Optional[float] = None


def stability_threshold(
    mean: float,
    bands: Sequence[Tuple[float, float]] = STABILITY_BANDS,
    fallback: float = STABILITY_FALLBACK,
) -> float:
    """Variance limit for a window; higher mean scores demand a tighter window."""
    for mean_above, limit in bands:
        if mean > mean_above:
            return limit
    return fallback


class StabilityTracker:
    """Classifies the recent overall-accuracy window as settled or still adjusting."""

    def __init__(
        self,
        window: int = SCORE_WINDOW,
        alpha: float = STABLE_EMA_ALPHA,
        bands: Sequence[Tuple[float, float]] = STABILITY_BANDS,
        fallback: float = STABILITY_FALLBACK,
    ):
        self.window = window
        self.alpha = alpha
        self.bands = tuple(bands)
        self.fallback = fallback
        self._scores: Deque[float] = collections.deque(maxlen=window)

    def __len__(self) -> int:
        return len(self._scores)

    @property
    def is_full(self) -> bool:
        return len(self._scores) == self.window

    def reset(self) -> None:
        self._scores.clear()

    def update(self, score: float) -> StabilityReading:
        self._scores.append(float(score))
        if not self.is_full:
            return StabilityReading(is_stable=False, reported=float(score))

        arr = np.fromiter(self._scores, dtype=np.float64)
        variance = float(np.var(arr))
        limit = stability_threshold(float(arr.mean()), self.bands, self.fallback)
        if variance < limit:
            stable = ema_of(self._scores, self.alpha)
            return StabilityReading(is_stable=True, reported=stable, stable_score=stable, variance=variance)
        return StabilityReading(is_stable=False, reported=float(score), variance=variance)
