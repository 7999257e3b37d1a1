from __future__ import annotations

import functools
from typing import Callable, Dict

from ..errors import MissingJointData
from ..metrics.geometry import (
    angle_at_vertex,
    body_scale,
    distance,
    mean_x,
    mean_y,
    score_from_ratio,
    to_accuracy,
    weighted,
)
from ..metrics.keypoints import Pose


Validator = Callable[[Pose], int]

# Populated by @validator at import time; treat as read-only afterwards.
VALIDATORS: Dict[str, Validator] = {}


def validator(challenge_id: str) -> Callable[[Validator], Validator]:
    """Register a pose validator.

    The wrapped function may call ``pose.require(...)``; a missing joint makes
    the validator return 0 instead of raising.
    """

    def deco(fn: Validator) -> Validator:
        @functools.wraps(fn)
        def wrapper(pose: Pose) -> int:
            if pose is None:
                return 0
            try:
                return to_accuracy(fn(pose))
            except MissingJointData:
                return 0

        if challenge_id in VALIDATORS:
            raise ValueError(f"Duplicate validator id: {challenge_id}")
        VALIDATORS[challenge_id] = wrapper
        return wrapper

    return deco


def _knee_angles(pose: Pose) -> tuple[float, float]:
    lh, lk, la, rh, rk, ra = pose.require(
        "left_hip", "left_knee", "left_ankle", "right_hip", "right_knee", "right_ankle"
    )
    return angle_at_vertex(lh, lk, la), angle_at_vertex(rh, rk, ra)


# --------------------
# Arms
# --------------------


@validator("t_pose")
def t_pose(pose: Pose) -> int:
    ls, rs, lw, rw = pose.require("left_shoulder", "right_shoulder", "left_wrist", "right_wrist")
    s = body_scale(pose)
    span = score_from_ratio(abs(rw.x - lw.x) / s, 1.0, 1.45)
    level = score_from_ratio(abs(mean_y(lw, rw) - mean_y(ls, rs)) / s, 0.30, 0.0)
    # Both conditions must hold, so the sub-scores multiply.
    return to_accuracy(span * level / 100.0)


@validator("hands_up")
def hands_up(pose: Pose) -> int:
    nose, lw, rw = pose.require("nose", "left_wrist", "right_wrist")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio((nose.y - mean_y(lw, rw)) / s, 0.0, 0.75))


@validator("arms_wide")
def arms_wide(pose: Pose) -> int:
    _ls, _rs, lw, rw = pose.require("left_shoulder", "right_shoulder", "left_wrist", "right_wrist")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio(abs(rw.x - lw.x) / s, 1.05, 1.55))


@validator("antlers")
def antlers(pose: Pose) -> int:
    lw, rw, nose = pose.require("left_wrist", "right_wrist", "nose")
    s = body_scale(pose)
    up = score_from_ratio((nose.y - mean_y(lw, rw)) / s, 0.0, 0.65)
    apart = score_from_ratio(abs(rw.x - lw.x) / s, 0.0, 1.2)
    return weighted((0.7, up), (0.3, apart))


@validator("hands_on_hips")
def hands_on_hips(pose: Pose) -> int:
    lh, rh, lw, rw = pose.require("left_hip", "right_hip", "left_wrist", "right_wrist")
    s = body_scale(pose)
    left = score_from_ratio(distance(lw, lh) / s, 0.9, 0.0)
    right = score_from_ratio(distance(rw, rh) / s, 0.9, 0.0)
    return weighted((0.5, left), (0.5, right))


@validator("left_arm_up")
def left_arm_up(pose: Pose) -> int:
    nose, _ls, rs, lw, rw = pose.require(
        "nose", "left_shoulder", "right_shoulder", "left_wrist", "right_wrist"
    )
    s = body_scale(pose)
    up = score_from_ratio((nose.y - lw.y) / s, 0.0, 0.7)
    down = score_from_ratio((rw.y - rs.y) / s, 0.0, 0.6)
    return weighted((0.65, up), (0.35, down))


@validator("right_arm_up")
def right_arm_up(pose: Pose) -> int:
    nose, ls, _rs, lw, rw = pose.require(
        "nose", "left_shoulder", "right_shoulder", "left_wrist", "right_wrist"
    )
    s = body_scale(pose)
    up = score_from_ratio((nose.y - rw.y) / s, 0.0, 0.7)
    down = score_from_ratio((lw.y - ls.y) / s, 0.0, 0.6)
    return weighted((0.65, up), (0.35, down))


@validator("clap")
def clap(pose: Pose) -> int:
    lw, rw = pose.require("left_wrist", "right_wrist")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio(distance(lw, rw) / s, 0.45, 0.0))


@validator("hands_behind_head")
def hands_behind_head(pose: Pose) -> int:
    le, re, lw, rw = pose.require("left_ear", "right_ear", "left_wrist", "right_wrist")
    s = body_scale(pose)
    left = score_from_ratio(distance(lw, le) / s, 0.75, 0.0)
    right = score_from_ratio(distance(rw, re) / s, 0.75, 0.0)
    return weighted((0.5, left), (0.5, right))


@validator("punch_left")
def punch_left(pose: Pose) -> int:
    ls, le, lw = pose.require("left_shoulder", "left_elbow", "left_wrist")
    return to_accuracy(score_from_ratio(angle_at_vertex(ls, le, lw), 135.0, 175.0))


@validator("punch_right")
def punch_right(pose: Pose) -> int:
    rs, re, rw = pose.require("right_shoulder", "right_elbow", "right_wrist")
    return to_accuracy(score_from_ratio(angle_at_vertex(rs, re, rw), 135.0, 175.0))


@validator("salute")
def salute(pose: Pose) -> int:
    rw, re = pose.require("right_wrist", "right_ear")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio(distance(rw, re) / s, 0.7, 0.0))


@validator("reindeer_jump")
def reindeer_jump(pose: Pose) -> int:
    lw, rw, nose = pose.require("left_wrist", "right_wrist", "nose")
    s = body_scale(pose)
    up = score_from_ratio((nose.y - mean_y(lw, rw)) / s, 0.0, 0.7)
    apart = score_from_ratio(abs(rw.x - lw.x) / s, 0.0, 1.4)
    return weighted((0.6, up), (0.4, apart))


@validator("snowman_stand")
def snowman_stand(pose: Pose) -> int:
    lw, rw, lh, rh = pose.require("left_wrist", "right_wrist", "left_hip", "right_hip")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio((mean_y(lw, rw) - mean_y(lh, rh)) / s, 0.0, 0.7))


@validator("christmas_tree")
def christmas_tree(pose: Pose) -> int:
    lw, rw, nose = pose.require("left_wrist", "right_wrist", "nose")
    s = body_scale(pose)
    up = score_from_ratio((nose.y - mean_y(lw, rw)) / s, 0.0, 0.6)
    together = score_from_ratio(distance(lw, rw) / s, 0.8, 0.0)
    return weighted((0.5, up), (0.5, together))


@validator("snowball_throw")
def snowball_throw(pose: Pose) -> int:
    rw, rs, _re = pose.require("right_wrist", "right_shoulder", "right_ear")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio((rs.y - rw.y) / s, 0.0, 0.5))


@validator("grinch")
def grinch(pose: Pose) -> int:
    lw, rw, ls, rs = pose.require("left_wrist", "right_wrist", "left_shoulder", "right_shoulder")
    s = body_scale(pose)
    # Each wrist sits over the opposite shoulder when the arms are crossed.
    cross = abs((lw.x - rs.x) + (rw.x - ls.x)) / s
    return to_accuracy(score_from_ratio(cross, 1.2, 0.0))


@validator("angel_wings")
def angel_wings(pose: Pose) -> int:
    ls, rs, lw, rw = pose.require("left_shoulder", "right_shoulder", "left_wrist", "right_wrist")
    s = body_scale(pose)
    upward = score_from_ratio((mean_y(ls, rs) - mean_y(lw, rw)) / s, 0.0, 0.5)
    wide = score_from_ratio(abs(rw.x - lw.x) / s, 0.0, 1.5)
    return weighted((0.5, upward), (0.5, wide))


@validator("ho_ho_ho")
def ho_ho_ho(pose: Pose) -> int:
    lw, rw, lh, rh, ls, rs = pose.require(
        "left_wrist", "right_wrist", "left_hip", "right_hip", "left_shoulder", "right_shoulder"
    )
    s = body_scale(pose)
    belly_y = (mean_y(ls, rs) + mean_y(lh, rh)) / 2.0
    return to_accuracy(score_from_ratio(abs(mean_y(lw, rw) - belly_y) / s, 0.4, 0.0))


@validator("sleigh_ride")
def sleigh_ride(pose: Pose) -> int:
    lw, rw, ls, rs = pose.require("left_wrist", "right_wrist", "left_shoulder", "right_shoulder")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio((mean_y(lw, rw) - mean_y(ls, rs)) / s, 0.0, 0.4))


@validator("present_surprise")
def present_surprise(pose: Pose) -> int:
    lw, rw, nose = pose.require("left_wrist", "right_wrist", "nose")
    s = body_scale(pose)
    near = (distance(lw, nose) + distance(rw, nose)) / s
    return to_accuracy(score_from_ratio(near, 1.5, 0.0))


@validator("jingle_bell_rock")
def jingle_bell_rock(pose: Pose) -> int:
    lw, rw, nose, lh = pose.require("left_wrist", "right_wrist", "nose", "left_hip")
    s = body_scale(pose)
    one_up = max(
        score_from_ratio((nose.y - lw.y) / s, 0.0, 0.6),
        score_from_ratio((nose.y - rw.y) / s, 0.0, 0.6),
    )
    one_down = max(
        score_from_ratio((lw.y - lh.y) / s, 0.0, 0.5),
        score_from_ratio((rw.y - lh.y) / s, 0.0, 0.5),
    )
    return weighted((0.5, one_up), (0.5, one_down))


@validator("frosty_wave")
def frosty_wave(pose: Pose) -> int:
    rw, rs, nose = pose.require("right_wrist", "right_shoulder", "nose")
    s = body_scale(pose)
    up = score_from_ratio((nose.y - rw.y) / s, 0.0, 0.6)
    to_side = score_from_ratio(abs(rw.x - rs.x) / s, 0.0, 0.5)
    return weighted((0.7, up), (0.3, to_side))


@validator("mistletoe_kiss")
def mistletoe_kiss(pose: Pose) -> int:
    rw, nose = pose.require("right_wrist", "nose")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio(distance(rw, nose) / s, 0.6, 0.0))


@validator("chimney_climb")
def chimney_climb(pose: Pose) -> int:
    lw, rw, nose = pose.require("left_wrist", "right_wrist", "nose")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio((nose.y - mean_y(lw, rw)) / s, 0.0, 0.8))


@validator("bag_carry")
def bag_carry(pose: Pose) -> int:
    rw, rs, _re = pose.require("right_wrist", "right_shoulder", "right_ear")
    s = body_scale(pose)
    near = score_from_ratio(distance(rw, rs) / s, 0.6, 0.0)
    up = score_from_ratio((rs.y - rw.y) / s, 0.0, 0.4)
    return weighted((0.7, near), (0.3, up))


# --------------------
# Legs
# --------------------


@validator("touch_toes")
def touch_toes(pose: Pose) -> int:
    lw, rw, la, ra = pose.require("left_wrist", "right_wrist", "left_ankle", "right_ankle")
    s = body_scale(pose)
    left = score_from_ratio(distance(lw, la) / s, 1.2, 0.0)
    right = score_from_ratio(distance(rw, ra) / s, 1.2, 0.0)
    return weighted((0.5, left), (0.5, right))


@validator("squat")
def squat(pose: Pose) -> int:
    a1, a2 = _knee_angles(pose)
    # ~95 degrees is a deep squat, 160+ is standing.
    return to_accuracy(score_from_ratio((a1 + a2) / 2.0, 160.0, 95.0))


@validator("elf_hop")
def elf_hop(pose: Pose) -> int:
    a1, a2 = _knee_angles(pose)
    return to_accuracy(score_from_ratio((a1 + a2) / 2.0, 155.0, 105.0))


@validator("high_knee_left")
def high_knee_left(pose: Pose) -> int:
    lh, lk, rh = pose.require("left_hip", "left_knee", "right_hip")
    s = body_scale(pose)
    lift = score_from_ratio((lh.y - lk.y) / s, 0.0, 0.65)
    stable = score_from_ratio((lk.y - rh.y) / s, 0.0, 1.2)
    return weighted((0.75, lift), (0.25, stable))


@validator("high_knee_right")
def high_knee_right(pose: Pose) -> int:
    rh, rk, lh = pose.require("right_hip", "right_knee", "left_hip")
    s = body_scale(pose)
    lift = score_from_ratio((rh.y - rk.y) / s, 0.0, 0.65)
    stable = score_from_ratio((rk.y - lh.y) / s, 0.0, 1.2)
    return weighted((0.75, lift), (0.25, stable))


@validator("side_lunge_left")
def side_lunge_left(pose: Pose) -> int:
    left, right = _knee_angles(pose)
    bend = score_from_ratio(left, 160.0, 100.0)
    straight = score_from_ratio(right, 145.0, 175.0)
    return weighted((0.7, bend), (0.3, straight))


@validator("side_lunge_right")
def side_lunge_right(pose: Pose) -> int:
    left, right = _knee_angles(pose)
    bend = score_from_ratio(right, 160.0, 100.0)
    straight = score_from_ratio(left, 145.0, 175.0)
    return weighted((0.7, bend), (0.3, straight))


@validator("balance_left")
def balance_left(pose: Pose) -> int:
    la, ra, lk, rk = pose.require("left_ankle", "right_ankle", "left_knee", "right_knee")
    s = body_scale(pose)
    # Right foot lifted: its ankle and knee sit above the standing leg's.
    lift = score_from_ratio((la.y - ra.y) / s, 0.0, 0.7)
    knee = score_from_ratio((lk.y - rk.y) / s, 0.0, 0.8)
    return weighted((0.7, lift), (0.3, knee))


@validator("balance_right")
def balance_right(pose: Pose) -> int:
    la, ra, lk, rk = pose.require("left_ankle", "right_ankle", "left_knee", "right_knee")
    s = body_scale(pose)
    lift = score_from_ratio((ra.y - la.y) / s, 0.0, 0.7)
    knee = score_from_ratio((rk.y - lk.y) / s, 0.0, 0.8)
    return weighted((0.7, lift), (0.3, knee))


@validator("kick_left")
def kick_left(pose: Pose) -> int:
    lh, la = pose.require("left_hip", "left_ankle")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio((lh.y - la.y) / s, 0.0, 0.75))


@validator("kick_right")
def kick_right(pose: Pose) -> int:
    rh, ra = pose.require("right_hip", "right_ankle")
    s = body_scale(pose)
    return to_accuracy(score_from_ratio((rh.y - ra.y) / s, 0.0, 0.75))


@validator("nutcracker_march")
def nutcracker_march(pose: Pose) -> int:
    lk, rk, lh, rh = pose.require("left_knee", "right_knee", "left_hip", "right_hip")
    s = body_scale(pose)
    lift = max(
        score_from_ratio((lh.y - lk.y) / s, 0.0, 0.65),
        score_from_ratio((rh.y - rk.y) / s, 0.0, 0.65),
    )
    return to_accuracy(lift)


# --------------------
# Full body
# --------------------


@validator("star_pose")
def star_pose(pose: Pose) -> int:
    lw, rw, nose, la, ra = pose.require("left_wrist", "right_wrist", "nose", "left_ankle", "right_ankle")
    s = body_scale(pose)
    hands = score_from_ratio((nose.y - mean_y(lw, rw)) / s, 0.0, 0.65)
    feet = score_from_ratio(abs(ra.x - la.x) / s, 0.0, 1.6)
    return weighted((0.6, hands), (0.4, feet))


@validator("warrior")
def warrior(pose: Pose) -> int:
    ls, rs, lw, rw, la, ra = pose.require(
        "left_shoulder", "right_shoulder", "left_wrist", "right_wrist", "left_ankle", "right_ankle"
    )
    s = body_scale(pose)
    span = score_from_ratio(abs(rw.x - lw.x) / s, 0.0, 1.45)
    level = score_from_ratio(abs(mean_y(lw, rw) - mean_y(ls, rs)) / s, 0.32, 0.0)
    stance = score_from_ratio(abs(ra.x - la.x) / s, 0.0, 1.6)
    return weighted((0.5, span), (0.2, level), (0.3, stance))


def _lean_offset(pose: Pose) -> float:
    ls, rs, lh, rh = pose.require("left_shoulder", "right_shoulder", "left_hip", "right_hip")
    s = body_scale(pose)
    return (mean_x(ls, rs) - mean_x(lh, rh)) / s


@validator("lean_left")
def lean_left(pose: Pose) -> int:
    # The feed is mirrored, so only the size of the offset is scored.
    return to_accuracy(score_from_ratio(abs(_lean_offset(pose)), 0.0, 0.35))


@validator("lean_right")
def lean_right(pose: Pose) -> int:
    return to_accuracy(score_from_ratio(abs(_lean_offset(pose)), 0.0, 0.35))


@validator("gift_box_squat")
def gift_box_squat(pose: Pose) -> int:
    lw, rw = pose.require("left_wrist", "right_wrist")
    a1, a2 = _knee_angles(pose)
    s = body_scale(pose)
    hands = score_from_ratio(distance(lw, rw) / s, 0.5, 0.0)
    depth = score_from_ratio((a1 + a2) / 2.0, 160.0, 100.0)
    return weighted((0.4, hands), (0.6, depth))


@validator("candy_cane")
def candy_cane(pose: Pose) -> int:
    rw, nose, ls, rs, lh, rh = pose.require(
        "right_wrist", "nose", "left_shoulder", "right_shoulder", "left_hip", "right_hip"
    )
    s = body_scale(pose)
    arm = score_from_ratio((nose.y - rw.y) / s, 0.0, 0.65)
    lean = score_from_ratio(abs(mean_x(lh, rh) - mean_x(ls, rs)) / s, 0.0, 0.3)
    return weighted((0.7, arm), (0.3, lean))


@validator("elf_dance")
def elf_dance(pose: Pose) -> int:
    lh, rh, lw, rw, lk, rk = pose.require(
        "left_hip", "right_hip", "left_wrist", "right_wrist", "left_knee", "right_knee"
    )
    s = body_scale(pose)
    hips = score_from_ratio((distance(lw, lh) + distance(rw, rh)) / s, 1.5, 0.0)
    knee = score_from_ratio(abs(lk.y - rk.y) / s, 0.0, 0.6)
    return weighted((0.5, hips), (0.5, knee))


@validator("star_on_top")
def star_on_top(pose: Pose) -> int:
    lw, rw, la, ra, nose = pose.require("left_wrist", "right_wrist", "left_ankle", "right_ankle", "nose")
    s = body_scale(pose)
    arms = score_from_ratio(abs(rw.x - lw.x) / s, 0.0, 1.6)
    legs = score_from_ratio(abs(ra.x - la.x) / s, 0.0, 1.5)
    up = score_from_ratio((nose.y - mean_y(lw, rw)) / s, 0.0, 0.6)
    return weighted((0.4, arms), (0.3, legs), (0.3, up))
