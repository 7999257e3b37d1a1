from __future__ import annotations

from typing import Dict, Optional, Tuple

from posearena.metrics.keypoints import Joint, Pose


# Upright person facing the camera, shoulders 100 px apart, y grows downwards.
STANDING: Dict[str, Tuple[float, float]] = {
    "nose": (300, 100),
    "left_eye": (310, 90),
    "right_eye": (290, 90),
    "left_ear": (320, 95),
    "right_ear": (280, 95),
    "left_shoulder": (350, 150),
    "right_shoulder": (250, 150),
    "left_elbow": (360, 220),
    "right_elbow": (240, 220),
    "left_wrist": (365, 290),
    "right_wrist": (235, 290),
    "left_hip": (335, 300),
    "right_hip": (265, 300),
    "left_knee": (335, 400),
    "right_knee": (265, 400),
    "left_ankle": (335, 500),
    "right_ankle": (265, 500),
}

T_POSE = {
    **STANDING,
    "left_elbow": (400, 150),
    "right_elbow": (200, 150),
    "left_wrist": (450, 150),
    "right_wrist": (150, 150),
}

HANDS_UP = {
    **STANDING,
    "left_elbow": (340, 60),
    "right_elbow": (260, 60),
    "left_wrist": (330, 0),
    "right_wrist": (270, 0),
}

# Knees bent to 90 degrees.
SQUAT = {
    **STANDING,
    "left_knee": (335, 380),
    "right_knee": (265, 380),
    "left_ankle": (415, 380),
    "right_ankle": (185, 380),
}


def make_pose(
    points: Dict[str, Tuple[float, float]],
    confidence: float = 0.9,
    drop: Tuple[str, ...] = (),
    overrides: Optional[Dict[str, float]] = None,
) -> Pose:
    """Build a Pose; ``overrides`` sets per-joint confidence."""
    overrides = overrides or {}
    joints = [
        Joint(name=name, x=float(x), y=float(y), confidence=overrides.get(name, confidence))
        for name, (x, y) in points.items()
        if name not in drop
    ]
    return Pose.from_joints(joints)
