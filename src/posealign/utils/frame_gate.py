# src/posealign/utils/frame_gate.py
import time
from typing import Optional

from ..config import PROCESS_INTERVAL_MS


def now_ms() -> float:
    return time.monotonic() * 1000.0


class FrameThrottle:
    """Skip a frame if the previous processed frame was less than N ms ago."""

    def __init__(self, min_interval_ms: float = PROCESS_INTERVAL_MS):
        self.min_interval_ms = float(min_interval_ms)
        self._last: Optional[float] = None

    def should_process(self, t_ms: Optional[float] = None) -> bool:
        t = now_ms() if t_ms is None else float(t_ms)
        if self._last is not None and (t - self._last) < self.min_interval_ms:
            return False
        self._last = t
        return True

    def reset(self) -> None:
        self._last = None
