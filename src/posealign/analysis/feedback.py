# src/posealign/analysis/feedback.py
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import BAND_EDGES, FEEDBACK_CAP, NEEDS_IMPROVEMENT
from ..scoring.scorer import JointMeasurement

# One canned message per band, lowest band first
BAND_MESSAGES: Tuple[str, str, str, str] = (
    "Focus on the basic alignment of the pose",
    "Keep adjusting to find better alignment",
    "Good form! Make small refinements",
    "Excellent form! Maintain your stability",
)

COVERAGE_MESSAGE = "Move closer to the camera and make sure your full body is visible"
UNKNOWN_POSE_MESSAGE = "Unknown pose type"


def band_message(score: float, edges: Sequence[float] = BAND_EDGES) -> str:
    """Overall message for a 0-100 score. A score equal to an edge stays in the lower band."""
    for edge, message in zip(edges, BAND_MESSAGES):
        if score <= edge:
            return message
    return BAND_MESSAGES[len(edges)]


def visibility_message(joint_name: str) -> str:
    return f"Move closer to the camera to detect {joint_name.replace('_', ' ')} alignment"


def joint_messages(
    measurements: Iterable[JointMeasurement],
    needs_improvement: float = NEEDS_IMPROVEMENT,
) -> List[str]:
    """
    Messages for joints in profile order: form corrections for measured joints
    below their threshold, visibility corrections for joints that could not
    be measured.
    """
    out: List[str] = []
    for m in measurements:
        if not m.measured:
            out.append(visibility_message(m.check.name))
            continue
        limit = m.check.feedback_threshold if m.check.feedback_threshold is not None else needs_improvement
        if m.score < limit:
            out.append(m.check.feedback)
    return out


def rank_feedback(candidates: Iterable[Optional[str]], cap: int = FEEDBACK_CAP) -> List[str]:
    """Keep first occurrences in priority order, drop blanks, cap the list."""
    seen = set()
    ranked: List[str] = []
    for msg in candidates:
        if not msg or msg in seen:
            continue
        seen.add(msg)
        ranked.append(msg)
        if len(ranked) >= cap:
            break
    return ranked


def build_feedback(
    score: float,
    measurements: Sequence[JointMeasurement],
    extra: Sequence[str] = (),
    needs_improvement: float = NEEDS_IMPROVEMENT,
    cap: int = FEEDBACK_CAP,
    edges: Sequence[float] = BAND_EDGES,
) -> List[str]:
    """Band message, coverage message when nothing was measured, joint messages, then extras."""
    candidates: List[str] = [band_message(score, edges)]
    if not any(m.measured for m in measurements):
        candidates.append(COVERAGE_MESSAGE)
    candidates.extend(joint_messages(measurements, needs_improvement))
    candidates.extend(extra)
    return rank_feedback(candidates, cap)
