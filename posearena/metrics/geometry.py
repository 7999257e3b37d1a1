from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from .keypoints import Joint, Pose


# Used when neither shoulders nor hips give a usable width (pixels).
FALLBACK_SCALE = 100.0
MIN_SCALE = 1.0


def _xy(j: Joint) -> np.ndarray:
    return np.array([j.x, j.y], dtype=float)


def distance(a: Joint, b: Joint) -> float:
    return float(np.linalg.norm(_xy(a) - _xy(b)))


def angle_at_vertex(a: Joint, b: Joint, c: Joint) -> float:
    """Angle ABC in degrees. A zero-length ray reads as 180 (no bend)."""
    ba = _xy(a) - _xy(b)
    bc = _xy(c) - _xy(b)
    mag1 = float(np.linalg.norm(ba))
    mag2 = float(np.linalg.norm(bc))
    if mag1 == 0.0 or mag2 == 0.0:
        return 180.0
    cosang = float(np.clip(np.dot(ba, bc) / (mag1 * mag2), -1.0, 1.0))
    return math.degrees(math.acos(cosang))


def body_scale(pose: Pose) -> float:
    ls, rs = pose.get("left_shoulder"), pose.get("right_shoulder")
    if ls is not None and rs is not None:
        s = distance(ls, rs)
        if s > MIN_SCALE:
            return s
    lh, rh = pose.get("left_hip"), pose.get("right_hip")
    if lh is not None and rh is not None:
        s = distance(lh, rh)
        if s > MIN_SCALE:
            return s
    return FALLBACK_SCALE


def midpoint(a: Joint, b: Joint) -> Tuple[float, float]:
    return (a.x + b.x) / 2.0, (a.y + b.y) / 2.0


def mean_x(a: Joint, b: Joint) -> float:
    return (a.x + b.x) / 2.0


def mean_y(a: Joint, b: Joint) -> float:
    return (a.y + b.y) / 2.0


def clamp01(x: float) -> float:
    if math.isnan(x):
        return 0.0
    return max(0.0, min(1.0, x))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def score_from_ratio(ratio: float, lo: float, hi: float) -> float:
    """Map ``ratio`` linearly onto [0, 100]: ``lo`` gives 0, ``hi`` gives 100.

    ``lo > hi`` scores descending ratios (e.g. knee angle for squat depth).
    Values outside the band saturate.
    """
    if hi == lo:
        return 100.0 if ratio >= hi else 0.0
    return 100.0 * clamp01((ratio - lo) / (hi - lo))


def to_accuracy(value: float) -> int:
    # Half-up rounding, matching the tracker UI's display of scores.
    value = float(value)
    if math.isnan(value):
        return 0
    return int(math.floor(max(0.0, min(100.0, value)) + 0.5))


def weighted(*parts: Tuple[float, float]) -> int:
    """Combine ``(weight, score_0_100)`` pairs into an accuracy."""
    total = 0.0
    for w, s in parts:
        total += float(w) * float(s)
    return to_accuracy(total)


def points_for(accuracy: int) -> int:
    """Points awarded for a round: 80% -> 8, 100% -> 10."""
    return max(0, min(10, int(accuracy) // 10))
