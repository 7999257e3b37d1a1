from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .keypoints import JOINT_NAMES, QUALITY_JOINT_CONFIDENCE, Pose


MIN_PLAUSIBLE_JOINTS = 10
# Mean confidence below this usually means poor lighting or heavy blur.
MIN_MEAN_CONFIDENCE = 0.45

_FULL_BODY = (
    "left_shoulder",
    "right_shoulder",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)


@dataclass(frozen=True)
class BodyQuality:
    confident_joints: int
    mean_confidence: float
    full_body: bool
    lighting_ok: bool
    plausible: bool


def assess_body(
    pose: Optional[Pose],
    min_confidence: float = QUALITY_JOINT_CONFIDENCE,
    min_joints: int = MIN_PLAUSIBLE_JOINTS,
    min_mean_confidence: float = MIN_MEAN_CONFIDENCE,
) -> BodyQuality:
    if pose is None or len(pose) == 0:
        return BodyQuality(0, 0.0, False, False, False)
    confs = [pose.joints[n].confidence for n in JOINT_NAMES if n in pose.joints]
    mean_conf = float(np.mean(np.asarray(confs, dtype=np.float32))) if confs else 0.0
    confident = sum(1 for c in confs if c > min_confidence)
    full_body = all(pose.usable(n, min_confidence) for n in _FULL_BODY)
    lighting_ok = mean_conf >= min_mean_confidence
    return BodyQuality(
        confident_joints=confident,
        mean_confidence=mean_conf,
        full_body=full_body,
        lighting_ok=lighting_ok,
        plausible=confident >= min_joints,
    )


def is_body_plausible(
    pose: Optional[Pose],
    min_confidence: float = QUALITY_JOINT_CONFIDENCE,
    min_joints: int = MIN_PLAUSIBLE_JOINTS,
) -> bool:
    return assess_body(pose, min_confidence=min_confidence, min_joints=min_joints).plausible
