# tests/test_session_tracker.py
# Unit tests for analysis/session_tracker.py

import pytest

from posealign.analysis.session_tracker import SessionTracker
from posealign.data_models import ScoreResult


def _result(score, stable, pose_key="Tree_Pose"):
    return ScoreResult(pose_key=pose_key, overall_accuracy=score, is_stable=stable)


class TestSessionTracker:
    def test_empty_session(self):
        summary = SessionTracker("Tree_Pose").summary()
        assert summary.frames == 0
        assert summary.average_accuracy == 0.0
        assert summary.best_accuracy == 0
        assert summary.duration_minutes == 0.0

    def test_only_settled_frames_feed_the_average(self):
        tracker = SessionTracker("Tree_Pose")
        tracker.record(_result(90, True), timestamp=100.0)
        tracker.record(_result(40, True), timestamp=130.0)   # stable but too low
        tracker.record(_result(80, False), timestamp=160.0)  # still adjusting
        tracker.record(ScoreResult(pose_key=None, overall_accuracy=0), timestamp=220.0)

        summary = tracker.summary()
        assert summary.frames == 4
        assert summary.scored_frames == 3
        assert summary.stable_frames == 2
        assert summary.average_accuracy == 90.0
        assert summary.best_accuracy == 90
        assert summary.stable_percentage == pytest.approx(66.67)
        assert summary.duration_minutes == 2.0

    def test_explicit_start_time(self):
        tracker = SessionTracker("Plank", started_at=0.0)
        tracker.record(_result(70, True), timestamp=90.0)
        assert tracker.summary().duration_minutes == 1.5
