# src/posealign/geometry/angles.py
from typing import Dict, Iterable, Optional, Tuple
import math

from ..config import ANGLE_EPS, KP_CONF_THRESH
from ..data_models import Keypoint

# --- TYPE ALIASES ---
Point = Tuple[float, float]
KeypointMap = Dict[str, Keypoint]

# Virtual midpoints built from left/right landmark pairs
DERIVED_PAIRS: Dict[str, Tuple[str, str]] = {
    "shoulder_center": ("left_shoulder", "right_shoulder"),
    "hip_center": ("left_hip", "right_hip"),
    "elbow_center": ("left_elbow", "right_elbow"),
    "wrist_center": ("left_wrist", "right_wrist"),
    "knee_center": ("left_knee", "right_knee"),
    "ankle_center": ("left_ankle", "right_ankle"),
}

# --- UTILITY FUNCTIONS ---

def usable(kp: Optional[Keypoint], threshold: float = KP_CONF_THRESH) -> bool:
    """A keypoint counts only if present, finite and strictly above the visibility threshold."""
    return (
        kp is not None
        and kp.confidence > threshold
        and math.isfinite(kp.x)
        and math.isfinite(kp.y)
    )

def mirror_name(name: str) -> str:
    """left_knee <-> right_knee; names without a side are unchanged."""
    if name.startswith("left_"):
        return "right_" + name[len("left_"):]
    if name.startswith("right_"):
        return "left_" + name[len("right_"):]
    return name

def to_kpmap(kps: Iterable[Keypoint]) -> KeypointMap:
    # Later duplicates win, matching how detectors overwrite by name
    return {kp.name: kp for kp in kps}

def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)

def distance(a: Point, b: Point) -> float:
    """Euclidean distance. Only used for normalization scale."""
    return math.hypot(b[0] - a[0], b[1] - a[1])

def xy(kp: Keypoint) -> Point:
    return (kp.x, kp.y)

def angle_deg(a: Point, j: Point, b: Point) -> Optional[float]:
    """
    Angle at J between rays J->A and J->B in degrees, folded to [0, 180].
    Uses the difference of atan2 arguments so values near 0/180 stay stable.
    Returns None when either ray has zero length or a coordinate is not finite.
    """
    if not all(math.isfinite(v) for v in (*a, *j, *b)):
        return None
    ax, ay = a[0] - j[0], a[1] - j[1]
    bx, by = b[0] - j[0], b[1] - j[1]
    if math.hypot(ax, ay) < ANGLE_EPS or math.hypot(bx, by) < ANGLE_EPS:
        return None
    radians = math.atan2(by, bx) - math.atan2(ay, ax)
    angle = abs(math.degrees(radians)) % 360.0
    if angle > 180.0:
        angle = 360.0 - angle
    return angle

def angle_at(
    a: Optional[Keypoint],
    b: Optional[Keypoint],
    c: Optional[Keypoint],
    threshold: float = KP_CONF_THRESH,
) -> Optional[float]:
    """
    Angle at vertex `b` formed by b->a and b->c.

    None means "unavailable": a point is missing, below the confidence
    threshold, or a ray is degenerate. Callers skip the joint for this frame.
    """
    if not (usable(a, threshold) and usable(b, threshold) and usable(c, threshold)):
        return None
    return angle_deg(xy(a), xy(b), xy(c))

# --- DERIVED KEYPOINTS ---

def compute_derived(kpmap: KeypointMap, threshold: float = KP_CONF_THRESH) -> Dict[str, Keypoint]:
    """Derive midpoint landmarks. A midpoint exists only if both sources are usable."""
    out: Dict[str, Keypoint] = {}
    for name, (left, right) in DERIVED_PAIRS.items():
        lk, rk = kpmap.get(left), kpmap.get(right)
        if usable(lk, threshold) and usable(rk, threshold):
            mx, my = midpoint(xy(lk), xy(rk))
            out[name] = Keypoint(name=name, x=mx, y=my, confidence=min(lk.confidence, rk.confidence))
    return out

def with_derived(kpmap: KeypointMap, threshold: float = KP_CONF_THRESH) -> KeypointMap:
    """Keypoint map extended with derived midpoints; real detector points win on name clashes."""
    return {**compute_derived(kpmap, threshold), **kpmap}
