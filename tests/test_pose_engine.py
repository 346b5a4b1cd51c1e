# tests/test_pose_engine.py
# End-to-end tests of PoseScoringEngine: scoring pipeline, stability,
# degenerate inputs and frame throttling.

import random

import pytest

from posealign.analysis.feedback import BAND_MESSAGES, COVERAGE_MESSAGE, UNKNOWN_POSE_MESSAGE
from posealign.config import EXPECTED_KEYPOINTS, ScoringConfig
from posealign.data_models import Keypoint, NoDetection, Scored, Skipped
from posealign.pose_engine import PoseScoringEngine, score_once


class TestScoreFrame:
    def test_perfect_pose_scores_full(self, engine, tree_body):
        result = engine.score_frame(tree_body, "tree")
        assert result.pose_key == "Tree_Pose"
        assert result.overall_accuracy == 100
        assert result.per_joint_score == {"standing_leg": 1.0, "bent_knee": 1.0}
        assert result.feedback == [BAND_MESSAGES[3]]
        assert result.position_ok
        assert not result.is_stable

    def test_wrong_knee_gets_correction(self, engine, straight_leg_body):
        result = engine.score_frame(straight_leg_body, "Tree_Pose")
        assert result.overall_accuracy == 63
        assert result.per_joint_score["bent_knee"] == pytest.approx(0.1)
        assert result.feedback == [
            BAND_MESSAGES[2],
            "Open your hip and place your foot against your inner thigh",
            "Lift one foot and place it on your inner thigh or calf",
        ]
        # coaching cues never mark the framing as bad
        assert result.position_ok

    def test_mirrored_pose_scores_full(self, engine, make_body):
        body = make_body({"right_ankle": {"xy": (270, 500)}, "left_ankle": {"xy": (255, 325)}})
        result = engine.score_frame(body, "tree")
        assert result.overall_accuracy == 100
        assert result.feedback == [BAND_MESSAGES[3]]

    def test_score_ignores_body_size_and_position(self, make_body):
        near = score_once(make_body(), "tree")
        far = score_once(make_body(scale=0.35, offset=(820, 40)), "tree")
        assert near.overall_accuracy == far.overall_accuracy
        assert near.per_joint_score == pytest.approx(far.per_joint_score)

    def test_unusable_joint_falls_back_toward_baseline(self, engine, make_body):
        result = engine.score_frame(make_body({"right_ankle": {"confidence": 0.1}}), "tree")
        assert "bent_knee" not in result.per_joint_score
        assert result.coverage == 0.5
        assert 60 < result.overall_accuracy < 85
        assert "Move closer to the camera to detect bent knee alignment" in result.feedback

    def test_visible_body_without_measurable_joints_lands_in_lowest_band(self, engine, make_body):
        body = make_body({"left_ankle": {"confidence": 0.2}, "right_ankle": {"confidence": 0.2}})
        result = engine.score_frame(body, "tree")
        assert result.per_joint_score == {}
        assert result.coverage == 0.0
        assert result.overall_accuracy == 5
        assert result.feedback[0] == BAND_MESSAGES[0]
        assert COVERAGE_MESSAGE in result.feedback

    def test_nan_coordinate_skips_joint(self, engine, make_body):
        result = engine.score_frame(make_body({"right_ankle": {"xy": (float("nan"), 325)}}), "tree")
        assert "bent_knee" not in result.per_joint_score
        assert result.per_joint_score["standing_leg"] == 1.0

    def test_dict_keypoints_are_accepted(self, engine, tree_body):
        dicts = [{"name": k.name, "x": k.x, "y": k.y, "score": k.confidence} for k in tree_body]
        assert engine.score_frame(dicts, "tree").overall_accuracy == 100

    def test_nameless_dict_entries_are_dropped(self, engine, tree_body):
        frame = list(tree_body) + [{"x": 10.0, "y": 10.0, "score": 0.9}]
        assert engine.score_frame(frame, "tree").overall_accuracy == 100

    def test_same_input_same_output(self, make_body):
        body = make_body({"right_knee": {"xy": (250, 410)}})
        assert score_once(body, "tree") == score_once(body, "tree")


class TestDegenerateInputs:
    def test_empty_detection_reports_floor(self, engine):
        result = engine.score_frame([], "tree")
        assert result.overall_accuracy == 5
        assert COVERAGE_MESSAGE in result.feedback
        assert result.per_joint_score == {}
        assert not result.is_stable

    def test_none_detection(self, engine):
        assert engine.score_frame(None, "tree").overall_accuracy == 5

    def test_unknown_pose(self, engine, tree_body):
        result = engine.score_frame(tree_body, "not-a-pose")
        assert result.overall_accuracy == 0
        assert result.feedback == [UNKNOWN_POSE_MESSAGE]
        assert result.per_joint_score == {}
        assert result.pose_key is None

    def test_internal_failure_becomes_degenerate_result(self, engine, tree_body, monkeypatch):
        def boom(*args, **kwargs):
            raise FloatingPointError("overflow")

        monkeypatch.setattr("posealign.pose_engine.evaluate_profile", boom)
        result = engine.score_frame(tree_body, "tree")
        assert result.overall_accuracy == 5
        assert result.feedback == [BAND_MESSAGES[0], COVERAGE_MESSAGE]
        assert not result.is_stable

    def test_malformed_keypoint_does_not_raise(self, engine):
        result = engine.score_frame([{"name": "nose", "x": 1.0, "y": 1.0, "confidence": 4.0}], "tree")
        assert result.overall_accuracy == 5


class TestStability:
    def test_constant_frames_converge(self, engine, tree_body):
        results = [engine.score_frame(tree_body, "tree") for _ in range(10)]
        assert not any(r.is_stable for r in results[:9])
        assert results[9].is_stable
        assert results[9].stable_score == pytest.approx(100.0)
        assert results[9].overall_accuracy == 100

    def test_pose_change_clears_history(self, engine, tree_body):
        for _ in range(10):
            engine.score_frame(tree_body, "tree")
        result = engine.score_frame(tree_body, "lotus")
        assert result.pose_key == "Lotus_Pose"
        assert not result.is_stable
        assert engine.state.frames == 1
        assert len(engine.state.stability) == 1

    def test_anchor_switch_clears_keypoint_history(self, engine, tree_body, make_body):
        for _ in range(4):
            engine.score_frame(tree_body, "tree")
        assert len(engine.state.smoother) == 4
        no_shoulders = make_body({"left_shoulder": {"confidence": 0.1}})
        engine.score_frame(no_shoulders, "tree")
        assert len(engine.state.smoother) == 1
        engine.score_frame(tree_body, "tree")
        assert len(engine.state.smoother) == 1

    def test_reset(self, engine, tree_body):
        for _ in range(10):
            engine.score_frame(tree_body, "tree")
        engine.reset()
        assert engine.state.pose_key is None
        assert len(engine.state.smoother) == 0
        assert not engine.score_frame(tree_body, "tree").is_stable


class TestCoverage:
    def test_dropping_points_never_adds_measured_joints(self, tree_body, make_body):
        full = score_once(tree_body, "tree")
        for name in EXPECTED_KEYPOINTS:
            partial = score_once(make_body(drop=(name,)), "tree")
            assert len(partial.per_joint_score) <= len(full.per_joint_score)
            assert partial.coverage <= full.coverage
            assert partial.overall_accuracy <= full.overall_accuracy


class TestOutputBounds:
    def test_random_frames_stay_in_range(self):
        rng = random.Random(7)
        poses = ["tree", "lotus", "warrior1", "downward-dog", "chair", "plank",
                 "headstand", "corpse", "forward-bend"]
        for pose in poses:
            engine = PoseScoringEngine(ScoringConfig(process_interval_ms=0))
            for _ in range(25):
                kps = [
                    Keypoint(name=n, x=rng.uniform(0, 640), y=rng.uniform(0, 480), confidence=rng.random())
                    for n in EXPECTED_KEYPOINTS
                    if rng.random() > 0.15
                ]
                result = engine.score_frame(kps, pose)
                assert 5 <= result.overall_accuracy <= 100
                assert all(0.1 <= s <= 1.0 for s in result.per_joint_score.values())
                assert 1 <= len(result.feedback) <= 3
                assert len(set(result.feedback)) == len(result.feedback)


class TestProcess:
    def test_throttles_frames(self, tree_body):
        engine = PoseScoringEngine()
        assert isinstance(engine.process(tree_body, "tree", now_ms=0), Scored)
        skipped = engine.process(tree_body, "tree", now_ms=50)
        assert isinstance(skipped, Skipped)
        assert skipped.kind == "skipped"
        assert isinstance(engine.process(tree_body, "tree", now_ms=100), Scored)
        # skipped frames never touch the score history
        assert engine.state.frames == 2

    def test_no_detection(self, engine):
        outcome = engine.process([], "tree", now_ms=0)
        assert isinstance(outcome, NoDetection)
        assert outcome.result.overall_accuracy == 5

    def test_scored_outcome_carries_result(self, engine, tree_body):
        outcome = engine.process(tree_body, "tree")
        assert outcome.kind == "scored"
        assert outcome.result.overall_accuracy == 100
