# src/posealign/scoring/scorer.py
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config import (
    EXPECTED_KEYPOINTS, FALLOFF_K, JOINT_SCORE_FLOOR, KP_CONF_THRESH,
    MAX_ACCURACY, MIN_ACCURACY,
)
from ..data_models import JointCheck, Keypoint, PoseProfile
from ..geometry.angles import KeypointMap, angle_at, mirror_name, to_kpmap, usable, with_derived

# Relative importance of each landmark in the confidence baseline
KEYPOINT_WEIGHTS: Dict[str, float] = {
    "nose": 0.5,
    "left_eye": 0.3, "right_eye": 0.3,
    "left_ear": 0.2, "right_ear": 0.2,
    "left_shoulder": 0.8, "right_shoulder": 0.8,
    "left_elbow": 0.7, "right_elbow": 0.7,
    "left_wrist": 0.6, "right_wrist": 0.6,
    "left_hip": 0.9, "right_hip": 0.9,
    "left_knee": 0.8, "right_knee": 0.8,
    "left_ankle": 0.7, "right_ankle": 0.7,
}


def tolerance_score(
    measured: float,
    target: float,
    tolerance: float,
    k: float = FALLOFF_K,
    floor: float = JOINT_SCORE_FLOOR,
) -> float:
    """
    Maps an angle deviation to [floor, 1.0].
    Full credit inside |measured - target| <= tolerance; beyond it a Gaussian
    falloff exp(-k * ((d - tol) / tol)^2) that equals 1 at the band edge and
    approaches `floor` without reaching 0.
    """
    d = abs(float(measured) - float(target))
    if d <= tolerance:
        return 1.0
    excess = (d - tolerance) / tolerance
    return max(floor, math.exp(-k * excess * excess))


@dataclass
class JointMeasurement:
    check: JointCheck
    angle: Optional[float] = None
    score: Optional[float] = None

    @property
    def measured(self) -> bool:
        return self.score is not None


@dataclass
class ProfileEvaluation:
    """Per-check measurements for one frame plus the weighted profile accuracy."""
    measurements: List[JointMeasurement] = field(default_factory=list)
    mirrored: bool = False  # checks were measured with left/right swapped

    @property
    def measured(self) -> List[JointMeasurement]:
        return [m for m in self.measurements if m.measured]

    @property
    def unmeasured(self) -> List[JointMeasurement]:
        return [m for m in self.measurements if not m.measured]

    @property
    def coverage(self) -> float:
        if not self.measurements:
            return 0.0
        return len(self.measured) / len(self.measurements)

    @property
    def raw_accuracy(self) -> float:
        return weighted_accuracy([(m.score, m.check.weight) for m in self.measured])

    def joint_scores(self) -> Dict[str, float]:
        return {m.check.name: float(m.score) for m in self.measured}


def evaluate_profile(
    profile: PoseProfile,
    keypoints: Sequence[Keypoint],
    threshold: float = KP_CONF_THRESH,
    k: float = FALLOFF_K,
    floor: float = JOINT_SCORE_FLOOR,
) -> ProfileEvaluation:
    """
    Measure every joint check whose three points are usable; the rest stay unmeasured.
    Mirrorable profiles are also measured with left/right swapped, and the side
    with more coverage (then higher accuracy) wins; ties keep the declared side.
    """
    kpmap: KeypointMap = with_derived(to_kpmap(keypoints), threshold)
    evaluation = _measure(profile, kpmap, threshold, k, floor, mirrored=False)
    if profile.mirrorable:
        other = _measure(profile, kpmap, threshold, k, floor, mirrored=True)
        if (other.coverage, other.raw_accuracy) > (evaluation.coverage, evaluation.raw_accuracy):
            return other
    return evaluation


def _measure(
    profile: PoseProfile,
    kpmap: KeypointMap,
    threshold: float,
    k: float,
    floor: float,
    mirrored: bool,
) -> ProfileEvaluation:
    evaluation = ProfileEvaluation(mirrored=mirrored)
    for check in profile.checks:
        names = [mirror_name(n) for n in check.points] if mirrored else check.points
        a, b, c = (kpmap.get(name) for name in names)
        angle = angle_at(a, b, c, threshold)
        if angle is None:
            evaluation.measurements.append(JointMeasurement(check=check))
            continue
        score = tolerance_score(angle, check.target_angle, check.tolerance, k=k, floor=floor)
        evaluation.measurements.append(JointMeasurement(check=check, angle=angle, score=score))
    return evaluation


def weighted_accuracy(scored: Sequence[Tuple[float, float]]) -> float:
    """Sum(score * weight) / Sum(weight); 0.0 when nothing was measured."""
    if not scored:
        return 0.0
    scores = np.array([s for s, _ in scored], dtype=np.float64)
    weights = np.array([w for _, w in scored], dtype=np.float64)
    total = float(weights.sum())
    if total <= 0.0:
        return 0.0
    return float(np.clip(np.dot(scores, weights) / total, 0.0, 1.0))


def visibility_ratio(keypoints: Sequence[Keypoint], threshold: float = KP_CONF_THRESH) -> float:
    """Usable expected keypoints divided by the number of expected keypoints."""
    kpmap = to_kpmap(keypoints)
    seen = sum(1 for name in EXPECTED_KEYPOINTS if usable(kpmap.get(name), threshold))
    return seen / len(EXPECTED_KEYPOINTS)


def _sigmoid(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-10.0 * (x - 0.5)))


def confidence_baseline(keypoints: Sequence[Keypoint]) -> float:
    """
    Pose-agnostic score in [0, 1] from detection confidence alone.
    Each expected landmark contributes sigmoid(confidence) with its weight;
    missing landmarks contribute zero.
    """
    kpmap = to_kpmap(keypoints)
    total = 0.0
    weight_sum = 0.0
    for name in EXPECTED_KEYPOINTS:
        w = KEYPOINT_WEIGHTS.get(name, 0.5)
        kp = kpmap.get(name)
        if kp is not None and kp.confidence > 0.0:
            total += _sigmoid(kp.confidence) * w
        weight_sum += w
    return total / weight_sum if weight_sum > 0 else 0.0


def blend_accuracy(raw: float, baseline: float, coverage: float, visibility: float) -> float:
    """
    Trust the profile measurement in proportion to coverage and visibility;
    fall back toward the confidence baseline when few joints were measurable.
    The baseline's pull is itself scaled by coverage, so a well-detected body
    with no measurable joints still lands at the bottom of the range.
    """
    coverage = float(np.clip(coverage, 0.0, 1.0))
    w = float(np.clip(coverage * visibility, 0.0, 1.0))
    return float(np.clip(w * raw + (1.0 - w) * baseline * coverage, 0.0, 1.0))


def scale_accuracy(blended: float, min_accuracy: float = MIN_ACCURACY) -> float:
    """Map a [0, 1] accuracy onto [min_accuracy, 100] percent."""
    pct = min_accuracy + (MAX_ACCURACY - min_accuracy) * float(blended)
    return float(np.clip(pct, min_accuracy, MAX_ACCURACY))
