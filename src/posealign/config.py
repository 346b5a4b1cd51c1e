# src/posealign/config.py
# ---------------------------------------------------------------
# Global tuning parameters for the pose-alignment scoring engine.
# Every constant below is a default for ScoringConfig; engines can
# be built with their own ScoringConfig (or one read from the
# environment) without touching this module.
# ---------------------------------------------------------------

import os
from dataclasses import dataclass, field
from typing import Tuple

# ------------------ Confidence / Geometry ------------------

KP_CONF_THRESH = 0.3                 # A keypoint is usable only if confidence > this value
ANGLE_EPS = 1e-6                     # Zero-length guard for rays and normalization scale

# Canonical 17-point COCO layout produced by MoveNet / BlazePose-lite backends
EXPECTED_KEYPOINTS: Tuple[str, ...] = (
    "nose",
    "left_eye", "right_eye",
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)

# ------------------ Tolerance Falloff ------------------

FALLOFF_K = 0.3                      # Gaussian shape constant beyond the tolerance band
JOINT_SCORE_FLOOR = 0.1              # Lower bound of a joint score (never exactly 0)

# ------------------ Temporal Smoothing ------------------

KEYPOINT_HISTORY = 8                 # K: keypoint sets kept for smoothing
MIN_SMOOTHING_SAMPLES = 3            # Below this many samples a point passes through raw
SMOOTHING_DECAY = 0.5                # Weight of a sample = exp(-decay * age_in_frames)

SCORE_WINDOW = 10                    # W: overall-accuracy values kept for stability
STABLE_EMA_ALPHA = 0.3               # EMA factor used for the reported stable score
# (mean_above, variance_threshold) checked in order; fallback applies otherwise
STABILITY_BANDS: Tuple[Tuple[float, float], ...] = ((80.0, 15.0), (60.0, 20.0))
STABILITY_FALLBACK = 25.0

# ------------------ Aggregation / Reporting ------------------

MIN_ACCURACY = 5.0                   # Reported floor for any known pose
MAX_ACCURACY = 100.0
UNKNOWN_POSE_ACCURACY = 0            # Sentinel for unresolved pose ids

# ------------------ Feedback ------------------

NEEDS_IMPROVEMENT = 0.7              # Joint scores below this get corrective text
FEEDBACK_CAP = 3
BAND_EDGES: Tuple[float, float, float] = (30.0, 60.0, 85.0)

# ------------------ Frame Rate Guard ------------------

PROCESS_INTERVAL_MS = 100            # ~10 Hz processing cap at the call site


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


# ------------------ ScoringConfig Dataclass ------------------
# Bundles every tunable so an engine instance carries its own settings.
# The blending and stability constants are empirical; treat them as knobs.

@dataclass
class ScoringConfig:
    visibility_threshold: float = KP_CONF_THRESH
    falloff_k: float = FALLOFF_K
    joint_score_floor: float = JOINT_SCORE_FLOOR

    keypoint_history: int = KEYPOINT_HISTORY
    min_smoothing_samples: int = MIN_SMOOTHING_SAMPLES
    smoothing_decay: float = SMOOTHING_DECAY

    score_window: int = SCORE_WINDOW
    stable_ema_alpha: float = STABLE_EMA_ALPHA
    stability_bands: Tuple[Tuple[float, float], ...] = field(default=STABILITY_BANDS)
    stability_fallback: float = STABILITY_FALLBACK

    min_accuracy: float = MIN_ACCURACY
    needs_improvement: float = NEEDS_IMPROVEMENT
    feedback_cap: int = FEEDBACK_CAP
    band_edges: Tuple[float, float, float] = field(default=BAND_EDGES)

    process_interval_ms: int = PROCESS_INTERVAL_MS

    def __post_init__(self):
        if not 0.0 <= self.visibility_threshold < 1.0:
            raise ValueError("visibility_threshold must be in [0, 1)")
        if not 0.0 < self.joint_score_floor < 1.0:
            raise ValueError("joint_score_floor must be in (0, 1)")
        if self.keypoint_history < 1 or self.score_window < 2:
            raise ValueError("history sizes must be positive (score_window >= 2)")
        if not 0.0 < self.stable_ema_alpha <= 1.0:
            raise ValueError("stable_ema_alpha must be in (0, 1]")
        if not 0.0 < self.min_accuracy < MAX_ACCURACY:
            raise ValueError("min_accuracy must be in (0, 100)")
        if self.feedback_cap < 1:
            raise ValueError("feedback_cap must be >= 1")

    @classmethod
    def from_env(cls) -> "ScoringConfig":
        """Build a config from POSEALIGN_* environment variables, falling back to defaults."""
        return cls(
            visibility_threshold=_env_float("POSEALIGN_VISIBILITY_THRESHOLD", KP_CONF_THRESH),
            falloff_k=_env_float("POSEALIGN_FALLOFF_K", FALLOFF_K),
            joint_score_floor=_env_float("POSEALIGN_JOINT_SCORE_FLOOR", JOINT_SCORE_FLOOR),
            keypoint_history=_env_int("POSEALIGN_KEYPOINT_HISTORY", KEYPOINT_HISTORY),
            score_window=_env_int("POSEALIGN_SCORE_WINDOW", SCORE_WINDOW),
            stable_ema_alpha=_env_float("POSEALIGN_STABLE_EMA_ALPHA", STABLE_EMA_ALPHA),
            min_accuracy=_env_float("POSEALIGN_MIN_ACCURACY", MIN_ACCURACY),
            needs_improvement=_env_float("POSEALIGN_NEEDS_IMPROVEMENT", NEEDS_IMPROVEMENT),
            feedback_cap=_env_int("POSEALIGN_FEEDBACK_CAP", FEEDBACK_CAP),
            process_interval_ms=_env_int("POSEALIGN_PROCESS_INTERVAL_MS", PROCESS_INTERVAL_MS),
        )

    # Example usage:
    #   cfg = ScoringConfig(score_window=12, min_accuracy=10.0)
    #   engine = PoseScoringEngine(config=cfg)
