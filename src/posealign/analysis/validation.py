# src/posealign/analysis/validation.py
# Framing checks that do not depend on the target angles: is enough of the
# body in view, and is the subject facing the camera when the pose needs it.
# Pose-specific adjustment rules from the profile run here too; none of this
# changes the score.

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config import KP_CONF_THRESH
from ..data_models import AdjustmentRule, Keypoint, PoseProfile
from ..geometry.angles import (
    KeypointMap, angle_at, distance, mirror_name, to_kpmap, usable, with_derived, xy,
)
from ..scoring.scorer import visibility_ratio

FULL_VISIBILITY = 0.8       # below this the frame is missing body parts
MIN_VISIBILITY = 0.5        # below this the subject is too close / cropped
MIN_SHOULDER_TORSO = 0.2    # shoulder width vs torso length when facing the camera

MOVE_BACK_MESSAGE = "Please move back so your full body is visible"
ADJUST_MESSAGE = "Adjust your position to ensure all body parts are visible"
FACE_CAMERA_MESSAGE = "Turn to face the camera directly"


@dataclass
class PositionCheck:
    is_valid: bool = True
    visibility_ratio: float = 0.0
    messages: List[str] = field(default_factory=list)
    adjustments: List[str] = field(default_factory=list)


def _torso_length(kpmap: KeypointMap) -> Optional[float]:
    sc, hc = kpmap.get("shoulder_center"), kpmap.get("hip_center")
    if sc is None or hc is None:
        return None
    torso = distance(xy(sc), xy(hc))
    return torso if torso > 0 else None


def _rule_points(rule: AdjustmentRule, kpmap: KeypointMap, mirrored: bool, threshold: float):
    names = rule.points
    if rule.on_standing_leg:
        # y grows downward: the lower ankle carries the weight
        la, ra = kpmap.get("left_ankle"), kpmap.get("right_ankle")
        if not (usable(la, threshold) and usable(ra, threshold)):
            return None
        if ra.y > la.y:
            names = tuple(mirror_name(n) for n in names)
    elif mirrored:
        names = tuple(mirror_name(n) for n in names)
    points = [kpmap.get(n) for n in names]
    if not all(usable(p, threshold) for p in points):
        return None
    return points


def check_adjustments(
    keypoints: Sequence[Keypoint],
    profile: PoseProfile,
    threshold: float = KP_CONF_THRESH,
    mirrored: bool = False,
) -> List[str]:
    """
    Messages for the profile's adjustment rules that fire on this frame.
    Rules whose points are not all usable are skipped. Distance rules are in
    torso lengths and are skipped when the torso cannot be measured.
    `mirrored` follows the side the profile checks were measured on.
    """
    if not profile.adjustments:
        return []
    kpmap = with_derived(to_kpmap(keypoints), threshold)
    torso = _torso_length(kpmap)
    out: List[str] = []
    for rule in profile.adjustments:
        points = _rule_points(rule, kpmap, mirrored, threshold)
        if points is None:
            continue
        if rule.kind == "angle":
            angle = angle_at(*points, threshold)
            if angle is not None and abs(angle - rule.target) > rule.limit:
                out.append(rule.message)
            continue
        if torso is None:
            continue
        a, b = points
        dx = abs(a.x - b.x) / torso
        dy = abs(a.y - b.y) / torso
        if rule.kind == "level" and dy > rule.limit:
            out.append(rule.message)
        elif rule.kind == "spread" and dx < rule.limit:
            out.append(rule.message)
        elif rule.kind == "lift" and dy < rule.limit:
            out.append(rule.message)
    return out


def validate_position(
    keypoints: Sequence[Keypoint],
    profile: PoseProfile,
    threshold: float = KP_CONF_THRESH,
    mirrored: bool = False,
) -> PositionCheck:
    ratio = visibility_ratio(keypoints, threshold)
    check = PositionCheck(visibility_ratio=ratio)

    if ratio < FULL_VISIBILITY:
        check.is_valid = False
        check.messages.append(MOVE_BACK_MESSAGE if ratio < MIN_VISIBILITY else ADJUST_MESSAGE)

    if profile.expects_frontal:
        kpmap = with_derived(to_kpmap(keypoints), threshold)
        ls, rs = kpmap.get("left_shoulder"), kpmap.get("right_shoulder")
        torso = _torso_length(kpmap)
        # shoulder_center / hip_center only exist when their sources are usable
        if torso is not None and distance(xy(ls), xy(rs)) < MIN_SHOULDER_TORSO * torso:
            check.is_valid = False
            check.messages.append(FACE_CAMERA_MESSAGE)

    # Adjustments are coaching cues; they leave is_valid alone
    check.adjustments = check_adjustments(keypoints, profile, threshold, mirrored)
    return check
