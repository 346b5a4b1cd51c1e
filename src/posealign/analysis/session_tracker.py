# src/posealign/analysis/session_tracker.py
from __future__ import annotations
import time
from typing import List, Optional

import numpy as np

from ..data_models import ScoreResult, SessionSummary

COUNTED_MIN_ACCURACY = 50   # stable frames above this feed the session average
GOOD_FRAME_ACCURACY = 70    # frames at or above this count toward stable_percentage


class SessionTracker:
    """
    In-memory consumer of per-frame results for one practice session.
    Only settled (stable) frames scoring above 50 feed the session average,
    so the number reflects held form rather than transitions.
    """

    def __init__(self, pose_key: Optional[str] = None, started_at: Optional[float] = None):
        self.pose_key = pose_key
        # Without an explicit start the first recorded frame opens the session
        self.started_at: Optional[float] = None if started_at is None else float(started_at)
        self.last_seen: Optional[float] = self.started_at
        self.frames = 0
        self.stable_frames = 0
        self._scored: List[int] = []
        self._counted: List[int] = []

    def record(self, result: ScoreResult, timestamp: Optional[float] = None) -> None:
        """`timestamp` is in seconds; all frames of a session must share one clock."""
        t = time.time() if timestamp is None else float(timestamp)
        if self.started_at is None:
            self.started_at = t
        self.frames += 1
        self.last_seen = t
        if result.pose_key is None:
            return  # unknown pose: nothing to aggregate
        self._scored.append(result.overall_accuracy)
        if result.is_stable:
            self.stable_frames += 1
            if result.overall_accuracy > COUNTED_MIN_ACCURACY:
                self._counted.append(result.overall_accuracy)

    def summary(self) -> SessionSummary:
        scored = np.array(self._scored, dtype=np.float64)
        good = float(np.mean(scored >= GOOD_FRAME_ACCURACY) * 100.0) if scored.size else 0.0
        avg = float(np.mean(self._counted)) if self._counted else 0.0
        elapsed = 0.0
        if self.started_at is not None and self.last_seen is not None:
            elapsed = max(0.0, self.last_seen - self.started_at)
        return SessionSummary(
            pose_key=self.pose_key,
            frames=self.frames,
            scored_frames=int(scored.size),
            stable_frames=self.stable_frames,
            average_accuracy=round(avg, 2),
            best_accuracy=int(scored.max()) if scored.size else 0,
            stable_percentage=round(good, 2),
            duration_minutes=round(elapsed / 60.0, 2),
        )
