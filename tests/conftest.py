# tests/conftest.py
# Shared fixtures: a synthetic front-facing body in pixel coordinates that
# matches the Tree_Pose profile exactly (straight left leg, right knee at 45°).

import pytest

from posealign.data_models import Keypoint
from posealign.pose_engine import PoseScoringEngine
from posealign.config import ScoringConfig

TREE_POSE_PIXELS = {
    "nose": (300, 100),
    "left_eye": (310, 90), "right_eye": (290, 90),
    "left_ear": (320, 95), "right_ear": (280, 95),
    "left_shoulder": (350, 150), "right_shoulder": (250, 150),
    "left_elbow": (370, 220), "right_elbow": (230, 220),
    "left_wrist": (380, 290), "right_wrist": (220, 290),
    "left_hip": (330, 300), "right_hip": (270, 300),
    "left_knee": (330, 400), "right_knee": (270, 400),
    "left_ankle": (330, 500), "right_ankle": (345, 325),
}


@pytest.fixture
def make_body():
    """Factory: Tree_Pose body with optional per-point overrides, scaling and offset."""
    def _make(overrides=None, confidence=0.9, scale=1.0, offset=(0.0, 0.0), drop=()):
        overrides = overrides or {}
        kps = []
        for name, (x, y) in TREE_POSE_PIXELS.items():
            if name in drop:
                continue
            conf = confidence
            if name in overrides:
                spec = overrides[name]
                x, y = spec.get("xy", (x, y))
                conf = spec.get("confidence", conf)
            kps.append(Keypoint(name=name, x=x * scale + offset[0], y=y * scale + offset[1], confidence=conf))
        return kps
    return _make


@pytest.fixture
def tree_body(make_body):
    return make_body()


@pytest.fixture
def straight_leg_body(make_body):
    """Both legs straight: the bent_knee check is far outside its tolerance."""
    return make_body({"right_ankle": {"xy": (270, 500)}})


@pytest.fixture
def engine():
    # No throttling so tests can call process() back to back
    return PoseScoringEngine(ScoringConfig(process_interval_ms=0))


@pytest.fixture
def kp():
    def _kp(name, x, y, confidence=1.0):
        return Keypoint(name=name, x=x, y=y, confidence=confidence)
    return _kp
