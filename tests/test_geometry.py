# tests/test_geometry.py
# Unit tests for geometry/angles.py and geometry/normalize.py

import math

import pytest

from posealign.geometry.angles import (
    angle_at, angle_deg, compute_derived, distance, mirror_name, to_kpmap, usable, with_derived,
)
from posealign.geometry.normalize import bbox_diagonal, find_anchor, normalize_keypoints


class TestAngleAt:
    """Angle at the middle point, atan2 based, folded to [0, 180]"""

    def test_colinear_points_measure_180(self, kp):
        a, b, c = kp("a", 0, 0), kp("b", 1, 0), kp("c", 2, 0)
        assert angle_at(a, b, c) == pytest.approx(180.0)

    def test_right_angle_measures_90(self, kp):
        a, b, c = kp("a", 0, 1), kp("b", 0, 0), kp("c", 1, 0)
        assert angle_at(a, b, c) == pytest.approx(90.0)

    def test_reflex_angles_fold_back(self):
        # 270 degrees going one way is 90 the other way
        assert angle_deg((1, 0), (0, 0), (0, -1)) == pytest.approx(90.0)
        assert angle_deg((-1, -1), (0, 0), (1, -1)) == pytest.approx(90.0)

    def test_order_of_outer_points_does_not_matter(self, kp):
        a, b, c = kp("a", 3, 1), kp("b", 0, 0), kp("c", -1, 2)
        assert angle_at(a, b, c) == pytest.approx(angle_at(c, b, a))

    def test_result_always_in_range(self):
        for deg in range(0, 360, 15):
            r = math.radians(deg)
            ang = angle_deg((1, 0), (0, 0), (math.cos(r), math.sin(r)))
            assert 0.0 <= ang <= 180.0

    def test_missing_point_is_unavailable(self, kp):
        assert angle_at(None, kp("b", 0, 0), kp("c", 1, 0)) is None

    def test_low_confidence_point_is_unavailable(self, kp):
        a, b, c = kp("a", 0, 1), kp("b", 0, 0, confidence=0.3), kp("c", 1, 0)
        # exactly at the threshold is not enough
        assert angle_at(a, b, c) is None

    def test_zero_length_ray_is_unavailable(self, kp):
        a, b, c = kp("a", 0, 0), kp("b", 0, 0), kp("c", 1, 0)
        assert angle_at(a, b, c) is None

    def test_non_finite_coordinates_are_unavailable(self, kp):
        assert angle_deg((float("nan"), 0.0), (0.0, 0.0), (1.0, 0.0)) is None
        assert angle_deg((0.0, 1.0), (0.0, float("inf")), (1.0, 0.0)) is None
        a, b, c = kp("a", 0, 1), kp("b", 0, 0), kp("c", float("nan"), 0)
        assert not usable(c)
        assert angle_at(a, b, c) is None

    def test_mirror_name(self):
        assert mirror_name("left_knee") == "right_knee"
        assert mirror_name("right_ankle") == "left_ankle"
        assert mirror_name("hip_center") == "hip_center"

    def test_repeated_calls_are_identical(self, kp):
        a, b, c = kp("a", 0.3, 1.7), kp("b", 0.1, 0.2), kp("c", 2.2, -0.4)
        assert angle_at(a, b, c) == angle_at(a, b, c)


class TestDerivedPoints:
    def test_midpoints_need_both_sides(self, tree_body, make_body):
        derived = compute_derived(to_kpmap(tree_body))
        assert derived["shoulder_center"].x == pytest.approx(300)
        assert derived["hip_center"].y == pytest.approx(300)

        partial = make_body({"right_knee": {"confidence": 0.1}})
        assert "knee_center" not in compute_derived(to_kpmap(partial))

    def test_midpoint_confidence_is_weaker_side(self, make_body):
        body = make_body({"left_hip": {"confidence": 0.5}})
        assert compute_derived(to_kpmap(body))["hip_center"].confidence == pytest.approx(0.5)

    def test_detector_points_win_on_name_clash(self, tree_body, kp):
        kpmap = to_kpmap(tree_body + [kp("hip_center", 1, 1)])
        assert with_derived(kpmap)["hip_center"].x == 1

    def test_distance(self):
        assert distance((0, 0), (3, 4)) == pytest.approx(5.0)


class TestNormalizeKeypoints:
    """Body-relative frame: anchor midpoint at origin, anchor distance as unit"""

    def test_shoulder_anchor_recenters_and_rescales(self, tree_body):
        out, anchor = normalize_keypoints(tree_body)
        assert anchor == "shoulders"
        m = to_kpmap(out)
        assert (m["left_shoulder"].x + m["right_shoulder"].x) / 2 == pytest.approx(0.0)
        assert (m["left_shoulder"].y + m["right_shoulder"].y) / 2 == pytest.approx(0.0)
        assert distance((m["left_shoulder"].x, m["left_shoulder"].y),
                        (m["right_shoulder"].x, m["right_shoulder"].y)) == pytest.approx(1.0)

    def test_same_pose_any_size_or_position_normalizes_identically(self, make_body):
        near, _ = normalize_keypoints(make_body())
        far, _ = normalize_keypoints(make_body(scale=0.4, offset=(900, -50)))
        for a, b in zip(near, far):
            assert a.x == pytest.approx(b.x)
            assert a.y == pytest.approx(b.y)

    def test_falls_back_to_hips(self, make_body):
        body = make_body({"left_shoulder": {"confidence": 0.1}})
        assert find_anchor(body) == ((330, 300), (270, 300))
        out, anchor = normalize_keypoints(body)
        m = to_kpmap(out)
        assert anchor == "hips"
        assert m["left_hip"].x == pytest.approx(0.5)

    def test_without_anchor_input_passes_through(self, make_body):
        body = make_body({"left_shoulder": {"confidence": 0.1}, "left_hip": {"confidence": 0.1}})
        out, anchor = normalize_keypoints(body)
        assert anchor is None
        assert out == body

    def test_zero_scale_skips_normalization(self, kp):
        body = [kp("left_shoulder", 5, 5), kp("right_shoulder", 5, 5), kp("nose", 5, 1)]
        out, anchor = normalize_keypoints(body)
        assert anchor is None
        assert [(p.x, p.y) for p in out] == [(5, 5), (5, 5), (5, 1)]

    def test_bbox_scale_uses_usable_points(self, kp):
        body = [
            kp("left_shoulder", 0, 0), kp("right_shoulder", 2, 0),
            kp("left_ankle", 0, 6), kp("right_ankle", 8, 6, confidence=0.1),
        ]
        assert bbox_diagonal(body) == pytest.approx(math.hypot(2, 6))
        out, anchor = normalize_keypoints(body, scale_reference="bbox")
        assert anchor == "shoulders"
        assert to_kpmap(out)["left_ankle"].y == pytest.approx(6 / math.hypot(2, 6))

    def test_non_finite_shoulder_falls_back_to_hips(self, make_body):
        body = make_body({"right_shoulder": {"xy": (float("inf"), 150)}})
        _, anchor = normalize_keypoints(body)
        assert anchor == "hips"

    def test_input_is_not_modified(self, tree_body):
        before = [(k.x, k.y) for k in tree_body]
        normalize_keypoints(tree_body)
        assert [(k.x, k.y) for k in tree_body] == before
