# src/posealign/pose_engine.py

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from .activities.pose_profiles import UnknownPoseError, get_profile
from .analysis.feedback import (
    COVERAGE_MESSAGE, UNKNOWN_POSE_MESSAGE, band_message, build_feedback,
)
from .analysis.validation import validate_position
from .backends.keypoint_adapter import keypoints_from_dicts
from .config import MAX_ACCURACY, UNKNOWN_POSE_ACCURACY, ScoringConfig
from .data_models import (
    FrameOutcome, Keypoint, NoDetection, PoseProfile, Scored, ScoreResult, Skipped,
)
from .filters.keypoint_smoother import KeypointSmoother
from .filters.stability import StabilityTracker
from .geometry.normalize import normalize_keypoints
from .scoring.scorer import (
    blend_accuracy, confidence_baseline, evaluate_profile, scale_accuracy, visibility_ratio,
)
from .utils.frame_gate import FrameThrottle

logger = logging.getLogger(__name__)

KeypointInput = Union[Keypoint, dict]


@dataclass
class ScoringState:
    """
    The only mutable state of the engine: bounded keypoint and score histories
    for one stream. Create one per practice session; never share it.
    """
    smoother: KeypointSmoother
    stability: StabilityTracker
    pose_key: Optional[str] = None
    frames: int = field(default=0)

    @classmethod
    def from_config(cls, cfg: ScoringConfig) -> "ScoringState":
        return cls(
            smoother=KeypointSmoother(cfg.keypoint_history, cfg.min_smoothing_samples, cfg.smoothing_decay),
            stability=StabilityTracker(
                cfg.score_window, cfg.stable_ema_alpha, cfg.stability_bands, cfg.stability_fallback
            ),
        )

    def reset(self) -> None:
        self.smoother.reset()
        self.stability.reset()
        self.pose_key = None
        self.frames = 0


def unknown_pose_result() -> ScoreResult:
    return ScoreResult(
        pose_key=None,
        overall_accuracy=UNKNOWN_POSE_ACCURACY,
        per_joint_score={},
        feedback=[UNKNOWN_POSE_MESSAGE],
        is_stable=False,
    )


class PoseScoringEngine:
    """
    Scores one stream of detector frames against named reference poses.

    Synchronous and single-threaded: call score_frame()/process() once per
    frame from the frame loop. Neither method raises for bad input; unknown
    poses, empty detections and numerical trouble come back as degenerate
    ScoreResults so the loop keeps running.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()
        self.state = ScoringState.from_config(self.config)
        self.throttle = FrameThrottle(self.config.process_interval_ms)

    def reset(self) -> None:
        self.state.reset()
        self.throttle.reset()

    # ---------------------- Public API ---------------------- #
    def process(
        self,
        keypoints: Optional[Iterable[KeypointInput]],
        pose_id: str,
        now_ms: Optional[float] = None,
    ) -> FrameOutcome:
        """Frame-loop entry point: throttles, then scores. Returns a tagged outcome."""
        if not self.throttle.should_process(now_ms):
            return Skipped()
        kps = list(keypoints or [])
        result = self.score_frame(kps, pose_id)
        if not kps:
            return NoDetection(result=result)
        return Scored(result=result)

    def score_frame(self, keypoints: Optional[Iterable[KeypointInput]], pose_id: str) -> ScoreResult:
        try:
            profile = get_profile(pose_id)
        except UnknownPoseError as e:
            logger.warning("[PoseEngine] %s", e)
            return unknown_pose_result()

        try:
            return self._score(profile, keypoints)
        except Exception:
            logger.exception("[PoseEngine] Scoring failed for %s, returning degenerate result", profile.key)
            return self._insufficient_input_result(profile)

    # ---------------------- Pipeline ---------------------- #
    def _score(self, profile: PoseProfile, keypoints: Optional[Iterable[KeypointInput]]) -> ScoreResult:
        cfg = self.config
        thr = cfg.visibility_threshold

        if self.state.pose_key != profile.key:
            if self.state.pose_key is not None:
                logger.info("[PoseEngine] Pose changed %s -> %s, clearing history", self.state.pose_key, profile.key)
            self.state.reset()
            self.state.pose_key = profile.key
        self.state.frames += 1

        kps = keypoints_from_dicts(keypoints)
        normalized, anchor = normalize_keypoints(kps, profile.scale_reference, thr)
        # Frames anchored on shoulders and on hips have different origins and scales
        smoothed = self.state.smoother.smooth(normalized, space=f"body:{anchor}" if anchor else "image")

        evaluation = evaluate_profile(profile, smoothed, thr, cfg.falloff_k, cfg.joint_score_floor)
        visibility = visibility_ratio(smoothed, thr)
        baseline = confidence_baseline(smoothed)
        blended = blend_accuracy(evaluation.raw_accuracy, baseline, evaluation.coverage, visibility)
        instant = scale_accuracy(blended, cfg.min_accuracy)

        reading = self.state.stability.update(instant)
        reported = self._report(reading.reported)

        position = validate_position(smoothed, profile, thr, mirrored=evaluation.mirrored)
        feedback = build_feedback(
            reported,
            evaluation.measurements,
            extra=position.messages + position.adjustments,
            needs_improvement=cfg.needs_improvement,
            cap=cfg.feedback_cap,
            edges=cfg.band_edges,
        )

        logger.debug(
            "[PoseEngine] %s frame=%d measured=%d/%d raw=%.3f base=%.3f inst=%.1f reported=%d stable=%s",
            profile.key, self.state.frames, len(evaluation.measured), len(evaluation.measurements),
            evaluation.raw_accuracy, baseline, instant, reported, reading.is_stable,
        )

        return ScoreResult(
            pose_key=profile.key,
            overall_accuracy=reported,
            per_joint_score=evaluation.joint_scores(),
            feedback=feedback,
            is_stable=reading.is_stable,
            raw_accuracy=evaluation.raw_accuracy,
            coverage=evaluation.coverage,
            visibility_ratio=visibility,
            stable_score=reading.stable_score,
            position_ok=position.is_valid,
        )

    # ---------------------- Helpers ---------------------- #
    def _report(self, value: float) -> int:
        floor = int(math.ceil(self.config.min_accuracy))
        return max(floor, min(int(MAX_ACCURACY), int(round(value))))

    def _insufficient_input_result(self, profile: PoseProfile) -> ScoreResult:
        score = self._report(self.config.min_accuracy)
        return ScoreResult(
            pose_key=profile.key,
            overall_accuracy=score,
            per_joint_score={},
            feedback=[band_message(score, self.config.band_edges), COVERAGE_MESSAGE][: self.config.feedback_cap],
            is_stable=False,
        )


def score_once(keypoints: Iterable[Any], pose_id: str, config: Optional[ScoringConfig] = None) -> ScoreResult:
    """Stateless convenience: score a single frame with a throwaway engine."""
    return PoseScoringEngine(config).score_frame(keypoints, pose_id)
