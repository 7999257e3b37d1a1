from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..errors import MissingJointData


# Confidence floor for geometry; skeleton/quality signals use the looser one.
MIN_JOINT_CONFIDENCE = 0.35
QUALITY_JOINT_CONFIDENCE = 0.3

JOINT_NAMES: Tuple[str, ...] = (
    "nose",
    "left_eye",
    "right_eye",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)

_KNOWN = frozenset(JOINT_NAMES)


@dataclass(frozen=True)
class Joint:
    name: str
    x: float
    y: float
    confidence: float = 1.0


@dataclass(frozen=True)
class Pose:
    """All joints of one tracker sample, keyed by name.

    Coordinates are 2-D pixels with y growing downwards.
    """

    joints: Mapping[str, Joint] = field(default_factory=dict)
    min_confidence: float = MIN_JOINT_CONFIDENCE

    @staticmethod
    def from_joints(joints: Iterable[Joint], min_confidence: float = MIN_JOINT_CONFIDENCE) -> "Pose":
        out: Dict[str, Joint] = {}
        for j in joints:
            if j.name not in _KNOWN:
                continue
            out[j.name] = j
        return Pose(joints=out, min_confidence=min_confidence)

    @staticmethod
    def from_keypoints(items: Iterable[Mapping[str, Any]], min_confidence: float = MIN_JOINT_CONFIDENCE) -> "Pose":
        joints = []
        for item in items or []:
            joint = _parse_keypoint(item)
            if joint is not None:
                joints.append(joint)
        return Pose.from_joints(joints, min_confidence=min_confidence)

    def to_keypoints(self) -> list[dict]:
        out = []
        for name in JOINT_NAMES:
            j = self.joints.get(name)
            if j is None:
                continue
            out.append({"name": j.name, "x": j.x, "y": j.y, "score": j.confidence})
        return out

    def with_min_confidence(self, min_confidence: float) -> "Pose":
        return Pose(joints=self.joints, min_confidence=min_confidence)

    def get(self, name: str, min_confidence: Optional[float] = None) -> Optional[Joint]:
        j = self.joints.get(name)
        if j is None:
            return None
        floor = self.min_confidence if min_confidence is None else min_confidence
        if j.confidence < floor:
            return None
        return j

    def usable(self, name: str, min_confidence: Optional[float] = None) -> bool:
        return self.get(name, min_confidence) is not None

    def require(self, *names: str) -> Tuple[Joint, ...]:
        found = []
        for name in names:
            j = self.get(name)
            if j is None:
                raise MissingJointData(name)
            found.append(j)
        return tuple(found)

    def __len__(self) -> int:
        return len(self.joints)


def _parse_keypoint(item: Any) -> Optional[Joint]:
    if not isinstance(item, Mapping):
        return None
    name = item.get("name")
    if not isinstance(name, str):
        return None
    try:
        x = float(item.get("x"))
        y = float(item.get("y"))
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    raw_conf = item.get("score", item.get("confidence", 0.0))
    try:
        conf = float(raw_conf) if raw_conf is not None else 0.0
    except (TypeError, ValueError):
        conf = 0.0
    if not math.isfinite(conf):
        conf = 0.0
    conf = max(0.0, min(1.0, conf))
    return Joint(name=name.strip().lower(), x=x, y=y, confidence=conf)
