# src/posealign/data_models.py

from __future__ import annotations
from typing import Annotated, Dict, List, Optional, Literal, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, confloat, model_validator

# --- Base Structures ---

class Keypoint(BaseModel):
    """One named 2D landmark with its detection confidence."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Canonical keypoint name.")
    x: float = Field(description="X in the detector's frame (or body frame once normalized).")
    y: float = Field(description="Y in the detector's frame (or body frame once normalized).")
    # TF.js detectors call it "score", the MoveNet/MediaPipe backends call it "conf"
    confidence: confloat(ge=0.0, le=1.0) = Field(
        default=0.0,
        validation_alias=AliasChoices("confidence", "score", "conf"),
        description="Detection confidence.",
    )

# --- Pose Profiles ---

class JointCheck(BaseModel):
    """A single three-point angle measurement declared by a pose profile."""
    model_config = ConfigDict(frozen=True)

    name: str
    points: Tuple[str, str, str]  # (A, vertex, C)
    target_angle: confloat(ge=0.0, le=180.0)
    tolerance: confloat(gt=0.0)
    weight: confloat(gt=0.0) = 1.0
    feedback: str
    # Per-check override of the global needs-improvement threshold
    feedback_threshold: Optional[confloat(gt=0.0, le=1.0)] = None

class AdjustmentRule(BaseModel):
    """
    A pose-specific framing cue, checked after scoring. It never changes the score.

    angle:  |angle(points) - target| > limit degrees
    level:  |dy| between two points > limit torso lengths
    spread: |dx| between two points < limit torso lengths
    lift:   |dy| between two points < limit torso lengths
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["angle", "level", "spread", "lift"]
    points: Tuple[str, ...]
    limit: confloat(gt=0.0)
    target: Optional[confloat(ge=0.0, le=180.0)] = None
    message: str
    # Angle rules only: measure the leg whose ankle is lower in the frame
    on_standing_leg: bool = False

    @model_validator(mode="after")
    def _check_arity(self) -> "AdjustmentRule":
        expected = 3 if self.kind == "angle" else 2
        if len(self.points) != expected:
            raise ValueError(f"{self.kind} rule needs {expected} points")
        if self.kind == "angle" and self.target is None:
            raise ValueError("angle rule needs a target")
        return self

class PoseProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    checks: Tuple[JointCheck, ...]
    scale_reference: Literal["anchor", "bbox"] = "anchor"
    expects_frontal: bool = False
    # Pose may be held on either side; checks are also tried with left/right swapped
    mirrorable: bool = False
    adjustments: Tuple[AdjustmentRule, ...] = ()

# --- Engine Output ---

class ScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    pose_key: Optional[str] = None
    overall_accuracy: int
    per_joint_score: Dict[str, confloat(ge=0.0, le=1.0)] = {}
    feedback: List[str] = []
    is_stable: bool = False
    # Diagnostics
    raw_accuracy: float = 0.0
    coverage: float = 0.0
    visibility_ratio: float = 0.0
    stable_score: Optional[float] = None
    position_ok: bool = False

class Skipped(BaseModel):
    kind: Literal["skipped"] = "skipped"
    reason: str = "throttled"

class NoDetection(BaseModel):
    kind: Literal["no_detection"] = "no_detection"
    result: ScoreResult

class Scored(BaseModel):
    kind: Literal["scored"] = "scored"
    result: ScoreResult

FrameOutcome = Annotated[Union[Skipped, NoDetection, Scored], Field(discriminator="kind")]

# --- Session Analytics ---

class SessionSummary(BaseModel):
    pose_key: Optional[str] = None
    frames: int = 0
    scored_frames: int = 0
    stable_frames: int = 0
    average_accuracy: float = 0.0
    best_accuracy: int = 0
    stable_percentage: float = 0.0
    duration_minutes: float = 0.0

# --- API Requests ---

class StartSessionRequest(BaseModel):
    pose_id: str

class StartSessionResponse(BaseModel):
    session_id: str
    pose_key: str

class ScoreFrameRequest(BaseModel):
    """
    One detector result; an empty list means no body was detected.
    Raw MoveNet rows of (y, x, score) may be sent instead of named keypoints.
    """
    keypoints: List[Keypoint] = []
    movenet_output: Optional[List[List[float]]] = None
    frame_size: Optional[Tuple[int, int]] = None  # (w, h) to scale MoveNet rows to pixels
    pose_id: Optional[str] = None  # overrides the session's pose when given
    timestamp_ms: Optional[float] = None

class PoseListing(BaseModel):
    key: str
    label: str
    aliases: List[str]
    joints: List[str]
