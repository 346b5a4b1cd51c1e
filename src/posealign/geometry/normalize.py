# src/posealign/geometry/normalize.py
from typing import List, Literal, Optional, Sequence, Tuple
import logging

import numpy as np

from ..config import ANGLE_EPS, KP_CONF_THRESH
from ..data_models import Keypoint
from .angles import Point, distance, midpoint, to_kpmap, usable, xy

logger = logging.getLogger(__name__)

# Checked in order; the first pair with both points usable becomes the anchor
ANCHOR_PAIRS: Tuple[Tuple[str, str, str], ...] = (
    ("shoulders", "left_shoulder", "right_shoulder"),
    ("hips", "left_hip", "right_hip"),
)

def _anchor_pair(
    keypoints: Sequence[Keypoint], threshold: float
) -> Optional[Tuple[str, Point, Point]]:
    kpmap = to_kpmap(keypoints)
    for label, left, right in ANCHOR_PAIRS:
        lk, rk = kpmap.get(left), kpmap.get(right)
        if usable(lk, threshold) and usable(rk, threshold):
            return label, xy(lk), xy(rk)
    return None

def find_anchor(
    keypoints: Sequence[Keypoint], threshold: float = KP_CONF_THRESH
) -> Optional[Tuple[Point, Point]]:
    found = _anchor_pair(keypoints, threshold)
    return None if found is None else (found[1], found[2])

def bbox_diagonal(keypoints: Sequence[Keypoint], threshold: float = KP_CONF_THRESH) -> float:
    """Diagonal of the bounding box around all usable points (0.0 if fewer than two)."""
    pts = np.array([(kp.x, kp.y) for kp in keypoints if usable(kp, threshold)], dtype=np.float64)
    if pts.shape[0] < 2:
        return 0.0
    w, h = np.ptp(pts, axis=0)
    return float(np.hypot(w, h))

def normalize_keypoints(
    keypoints: Sequence[Keypoint],
    scale_reference: Literal["anchor", "bbox"] = "anchor",
    threshold: float = KP_CONF_THRESH,
) -> Tuple[List[Keypoint], Optional[str]]:
    """
    Re-express keypoints in a body-relative frame.

    The anchor midpoint (shoulders, else hips) becomes the origin and all
    coordinates are divided by the body scale: the anchor distance, or the
    bounding-box diagonal of usable points for "bbox" profiles.

    Returns (keypoints, anchor) where anchor is "shoulders" or "hips". Without
    a usable anchor pair or with a zero scale the input passes through
    unchanged and anchor is None. Frames anchored on different pairs live in
    different frames of reference. Never mutates the input.
    """
    found = _anchor_pair(keypoints, threshold)
    if found is None:
        logger.debug("[Normalizer] No usable anchor pair, passing %d points through", len(keypoints))
        return list(keypoints), None
    label, left, right = found

    if scale_reference == "bbox":
        scale = bbox_diagonal(keypoints, threshold)
    else:
        scale = distance(left, right)
    if not np.isfinite(scale) or scale < ANGLE_EPS:
        logger.debug("[Normalizer] Degenerate body scale %.3g, skipping normalization", scale)
        return list(keypoints), None

    cx, cy = midpoint(left, right)
    out = [
        kp.model_copy(update={"x": (kp.x - cx) / scale, "y": (kp.y - cy) / scale})
        for kp in keypoints
    ]
    return out, label
