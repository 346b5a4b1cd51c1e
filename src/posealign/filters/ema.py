# src/posealign/filters/ema.py
from typing import Iterable, Optional


class EMA:
    def __init__(self, alpha: float = 0.3):
        # Smoothing factor (alpha in (0,1]) and the previous filtered value
        self.alpha = alpha
        self.y: Optional[float] = None

    def update(self, x: Optional[float]) -> Optional[float]:
        if x is None:
            return self.y  # no input, keep last value
        # First value initializes y; later values blend in with weight alpha
        self.y = x if self.y is None else (self.alpha * x + (1 - self.alpha) * self.y)
        return self.y

    def reset(self) -> None:
        self.y = None


def ema_of(values: Iterable[float], alpha: float = 0.3) -> Optional[float]:
    """Run a fresh EMA over a finite series, oldest first, and return the final value."""
    f = EMA(alpha)
    for v in values:
        f.update(v)
    return f.y
