# src/posealign/activities/pose_profiles.py
# Point names refer to detector keypoints or to derived midpoints from
# geometry/angles.py (shoulder_center, hip_center, knee_center, ...).

from typing import Dict, List

from ..data_models import PoseProfile


class UnknownPoseError(KeyError):
    """Raised when a pose id resolves to no registered profile."""

    def __init__(self, pose_id: str):
        super().__init__(pose_id)
        self.pose_id = pose_id

    def __str__(self) -> str:
        return f"Unknown pose type: {self.pose_id!r}"


POSE_LIBRARY = {  # central registry of scorable poses, keyed by canonical id
    "Standing_Forward_Bend": {
        "label": "Standing Forward Bend",
        "scale_reference": "bbox",
        "checks": [
            {"name": "spine", "points": ("shoulder_center", "hip_center", "knee_center"),
             "target_angle": 90, "tolerance": 15, "weight": 2.0,
             "feedback": "Fold forward from your hips, keeping your spine long"},
            {"name": "legs", "points": ("hip_center", "knee_center", "ankle_center"),
             "target_angle": 180, "tolerance": 10, "weight": 1.5,
             "feedback": "Keep your legs straight or slightly bent"},
        ],
    },
    "Lotus_Pose": {
        "label": "Lotus Pose",
        "expects_frontal": True,
        "checks": [
            {"name": "spine", "points": ("shoulder_center", "hip_center", "knee_center"),
             "target_angle": 180, "tolerance": 10, "weight": 2.0,
             "feedback": "Keep your spine straight and tall"},
            {"name": "hips", "points": ("left_hip", "right_hip", "right_knee"),
             "target_angle": 45, "tolerance": 15, "weight": 1.5,
             "feedback": "Open your hips and cross your legs comfortably"},
        ],
        "adjustments": [
            {"kind": "level", "points": ("left_hip", "right_hip"), "limit": 0.25,
             "message": "Level your hips"},
            {"kind": "spread", "points": ("left_knee", "right_knee"), "limit": 0.6,
             "message": "Spread your knees wider for proper lotus position"},
            {"kind": "angle", "points": ("nose", "shoulder_center", "hip_center"),
             "target": 180, "limit": 15, "message": "Straighten your spine"},
        ],
    },
    "Tree_Pose": {
        "label": "Tree Pose",
        "expects_frontal": True,
        "mirrorable": True,
        "checks": [
            {"name": "standing_leg", "points": ("left_hip", "left_knee", "left_ankle"),
             "target_angle": 180, "tolerance": 8, "weight": 2.0,
             "feedback": "Keep your standing leg strong and straight"},
            {"name": "bent_knee", "points": ("right_hip", "right_knee", "right_ankle"),
             "target_angle": 45, "tolerance": 10, "weight": 1.5,
             "feedback": "Open your hip and place your foot against your inner thigh"},
        ],
        "adjustments": [
            {"kind": "lift", "points": ("left_ankle", "right_ankle"), "limit": 0.5,
             "message": "Lift one foot and place it on your inner thigh or calf"},
            {"kind": "angle", "points": ("left_hip", "left_knee", "left_ankle"),
             "target": 180, "limit": 15, "on_standing_leg": True,
             "message": "Straighten your standing leg"},
        ],
    },
    "Headstand": {
        "label": "Headstand",
        "scale_reference": "bbox",
        "checks": [
            {"name": "body_line", "points": ("hip_center", "shoulder_center", "elbow_center"),
             "target_angle": 180, "tolerance": 10, "weight": 2.0,
             "feedback": "Keep your body in a straight line"},
            {"name": "legs", "points": ("ankle_center", "knee_center", "hip_center"),
             "target_angle": 180, "tolerance": 8, "weight": 1.5,
             "feedback": "Point your toes up towards the ceiling"},
        ],
    },
    "Corpse_Pose": {
        "label": "Corpse Pose",
        "scale_reference": "bbox",
        "checks": [
            {"name": "body_alignment", "points": ("shoulder_center", "hip_center", "ankle_center"),
             "target_angle": 180, "tolerance": 10, "weight": 1.0,
             "feedback": "Keep your body relaxed and symmetrical"},
            {"name": "arms", "points": ("left_elbow", "left_shoulder", "left_hip"),
             "target_angle": 15, "tolerance": 10, "weight": 1.0,
             "feedback": "Let your arms rest slightly away from your body"},
        ],
    },
    "Warrior_I": {
        "label": "Warrior I",
        "scale_reference": "bbox",
        "mirrorable": True,
        "checks": [
            {"name": "front_knee", "points": ("left_hip", "left_knee", "left_ankle"),
             "target_angle": 90, "tolerance": 10, "weight": 2.0, "feedback_threshold": 0.8,
             "feedback": "Bend your front knee to 90 degrees, align over ankle"},
            {"name": "back_leg", "points": ("right_hip", "right_knee", "right_ankle"),
             "target_angle": 180, "tolerance": 10, "weight": 1.5, "feedback_threshold": 0.8,
             "feedback": "Straighten your back leg and ground the heel"},
            {"name": "torso", "points": ("left_shoulder", "left_hip", "left_knee"),
             "target_angle": 90, "tolerance": 15, "weight": 1.0,
             "feedback": "Keep your torso upright and chest open"},
            {"name": "hips", "points": ("left_hip", "right_hip", "right_knee"),
             "target_angle": 120, "tolerance": 12, "weight": 1.0, "feedback_threshold": 0.8,
             "feedback": "Square your hips to the front"},
        ],
        "adjustments": [
            {"kind": "angle", "points": ("left_hip", "left_knee", "left_ankle"),
             "target": 90, "limit": 15, "message": "Bend your front knee to 90 degrees"},
            {"kind": "angle", "points": ("right_hip", "right_knee", "right_ankle"),
             "target": 180, "limit": 15, "message": "Straighten your back leg"},
        ],
    },
    "Downward_Dog": {
        "label": "Downward-Facing Dog",
        "scale_reference": "bbox",
        "checks": [
            {"name": "spine", "points": ("left_shoulder", "left_hip", "left_ankle"),
             "target_angle": 70, "tolerance": 12, "weight": 2.0, "feedback_threshold": 0.8,
             "feedback": "Create an inverted V-shape with your body"},
            {"name": "arms", "points": ("left_shoulder", "left_elbow", "left_wrist"),
             "target_angle": 180, "tolerance": 10, "weight": 1.5, "feedback_threshold": 0.8,
             "feedback": "Straighten your arms and press the ground away"},
            {"name": "legs", "points": ("left_hip", "left_knee", "left_ankle"),
             "target_angle": 180, "tolerance": 12, "weight": 1.5, "feedback_threshold": 0.75,
             "feedback": "Straighten your legs and press your heels down"},
            {"name": "shoulders", "points": ("left_hip", "left_shoulder", "left_elbow"),
             "target_angle": 170, "tolerance": 10, "weight": 1.0, "feedback_threshold": 0.8,
             "feedback": "Keep your shoulders away from your ears"},
        ],
    },
    "Chair_Pose": {
        "label": "Chair Pose",
        "scale_reference": "bbox",
        "checks": [
            {"name": "knees", "points": ("left_hip", "left_knee", "left_ankle"),
             "target_angle": 110, "tolerance": 10, "weight": 2.0, "feedback_threshold": 0.8,
             "feedback": "Bend your knees as if sitting in a chair"},
            {"name": "spine", "points": ("nose", "left_shoulder", "left_hip"),
             "target_angle": 170, "tolerance": 12, "weight": 1.5, "feedback_threshold": 0.8,
             "feedback": "Keep your spine straight, chest lifted"},
            {"name": "arms", "points": ("left_shoulder", "left_elbow", "left_wrist"),
             "target_angle": 180, "tolerance": 15, "weight": 1.0, "feedback_threshold": 0.75,
             "feedback": "Reach your arms long and keep your elbows straight"},
            {"name": "ankles", "points": ("left_knee", "left_ankle", "left_hip"),
             "target_angle": 20, "tolerance": 8, "weight": 1.0, "feedback_threshold": 0.85,
             "feedback": "Keep weight in your heels"},
        ],
    },
    "Plank": {
        "label": "Plank",
        "scale_reference": "bbox",
        "checks": [
            {"name": "spine", "points": ("left_shoulder", "left_hip", "left_ankle"),
             "target_angle": 180, "tolerance": 8, "weight": 2.0, "feedback_threshold": 0.85,
             "feedback": "Keep your body in one straight line"},
            {"name": "arms", "points": ("left_shoulder", "left_elbow", "left_wrist"),
             "target_angle": 180, "tolerance": 10, "weight": 1.5, "feedback_threshold": 0.8,
             "feedback": "Stack shoulders over wrists, engage arms"},
            {"name": "hips", "points": ("left_shoulder", "left_hip", "left_knee"),
             "target_angle": 180, "tolerance": 8, "weight": 1.5, "feedback_threshold": 0.85,
             "feedback": "Keep your hips level with shoulders"},
            {"name": "legs", "points": ("left_hip", "left_knee", "left_ankle"),
             "target_angle": 180, "tolerance": 10, "weight": 1.0, "feedback_threshold": 0.8,
             "feedback": "Engage your legs and keep them straight"},
        ],
    },
}

# Public ids (URLs, dataset labels) -> canonical keys
POSE_ALIASES: Dict[str, str] = {
    "standing-forward-bend": "Standing_Forward_Bend",
    "forward-bend": "Standing_Forward_Bend",
    "lotus": "Lotus_Pose",
    "tree": "Tree_Pose",
    "headstand": "Headstand",
    "corpse": "Corpse_Pose",
    "warrior1": "Warrior_I",
    "downward-dog": "Downward_Dog",
    "chair": "Chair_Pose",
    "plank": "Plank",
    # numeric ids from the yoga training dataset
    "1": "Standing_Forward_Bend",
    "2": "Lotus_Pose",
    "3": "Tree_Pose",
    "4": "Headstand",
    "5": "Corpse_Pose",
}

# Built once at import; PoseProfile is frozen so nothing mutates these at runtime
_PROFILES: Dict[str, PoseProfile] = {
    key: PoseProfile.model_validate({"key": key, **spec}) for key, spec in POSE_LIBRARY.items()
}


def resolve_pose_id(pose_id: str) -> str:
    """Map a public or canonical pose id to its canonical key, or raise UnknownPoseError."""
    if not isinstance(pose_id, str):
        raise UnknownPoseError(str(pose_id))
    if pose_id in _PROFILES:
        return pose_id
    if pose_id in POSE_ALIASES:
        return POSE_ALIASES[pose_id]
    relaxed = pose_id.strip().lower().replace("_", "-").replace(" ", "-")
    if relaxed in POSE_ALIASES:
        return POSE_ALIASES[relaxed]
    raise UnknownPoseError(pose_id)


def get_profile(pose_id: str) -> PoseProfile:
    return _PROFILES[resolve_pose_id(pose_id)]


def list_profiles() -> List[PoseProfile]:
    return list(_PROFILES.values())


def aliases_for(key: str) -> List[str]:
    return sorted(alias for alias, target in POSE_ALIASES.items() if target == key)
