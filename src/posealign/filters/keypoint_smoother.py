# src/posealign/filters/keypoint_smoother.py
import collections
import math
from typing import Deque, Dict, List, Optional, Sequence

import numpy as np

from ..config import KEYPOINT_HISTORY, MIN_SMOOTHING_SAMPLES, SMOOTHING_DECAY
from ..data_models import Keypoint
from ..geometry.angles import to_kpmap


class KeypointSmoother:
    """
    Exponentially weighted per-point smoothing over the last K keypoint sets.

    Each named point is averaged over the frames in which it appeared, with
    weight exp(-decay * age) where age 0 is the newest frame. Points with fewer
    than `min_samples` historical samples pass through raw. The smoothed
    confidence is the maximum seen in history for that point.

    History is reset whenever the coordinate space key changes (raw detector
    coordinates, or a body frame per anchor pair), since points from different
    frames of reference cannot be averaged.
    """

    def __init__(
        self,
        history: int = KEYPOINT_HISTORY,
        min_samples: int = MIN_SMOOTHING_SAMPLES,
        decay: float = SMOOTHING_DECAY,
    ):
        self.min_samples = max(1, int(min_samples))
        self.decay = decay
        self._history: Deque[Dict[str, Keypoint]] = collections.deque(maxlen=history)
        self._space: Optional[str] = None

    def __len__(self) -> int:
        return len(self._history)

    def reset(self) -> None:
        self._history.clear()
        self._space = None

    def smooth(self, keypoints: Sequence[Keypoint], space: str = "body") -> List[Keypoint]:
        if space != self._space:
            self._history.clear()
            self._space = space
        self._history.append(to_kpmap(keypoints))

        frames = list(self._history)
        newest = len(frames) - 1
        out: List[Keypoint] = []
        for kp in keypoints:
            samples = [(newest - i, f[kp.name]) for i, f in enumerate(frames) if kp.name in f]
            if len(samples) < self.min_samples:
                out.append(kp)
                continue
            weights = np.array([math.exp(-self.decay * age) for age, _ in samples])
            xs = np.array([s.x for _, s in samples])
            ys = np.array([s.y for _, s in samples])
            conf = max(s.confidence for _, s in samples)
            out.append(kp.model_copy(update={
                "x": float(np.average(xs, weights=weights)),
                "y": float(np.average(ys, weights=weights)),
                "confidence": conf,
            }))
        return out
