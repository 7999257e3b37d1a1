from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Callable, Dict, List, Optional, Sequence

from ..errors import UnknownChallengeError
from ..metrics.keypoints import Pose
from .scoring import VALIDATORS


@dataclass(frozen=True)
class Challenge:
    id: str
    display_name: str
    description: str
    validate: Callable[[Pose], int]


# (id, display name, description) in presentation order.
_DEFS = (
    ("t_pose", "T-Pose", "Arms straight out to the sides"),
    ("hands_up", "Hands Up", "Raise both hands above your head"),
    ("arms_wide", "Arms Wide", "Open your arms wide"),
    ("antlers", "Antlers (Reindeer)", "Hands up near your head"),
    ("hands_on_hips", "Hands on Hips", "Place hands near your hips"),
    ("left_arm_up", "Left Arm Up", "Left hand up, right hand down"),
    ("right_arm_up", "Right Arm Up", "Right hand up, left hand down"),
    ("clap", "Clap", "Bring your hands together"),
    ("touch_toes", "Touch Toes", "Reach down towards your ankles"),
    ("squat", "Squat", "Bend your knees (squat down)"),
    ("high_knee_left", "High Knee (Left)", "Lift your left knee up"),
    ("high_knee_right", "High Knee (Right)", "Lift your right knee up"),
    ("side_lunge_left", "Side Lunge (Left)", "Step wide and bend left knee"),
    ("side_lunge_right", "Side Lunge (Right)", "Step wide and bend right knee"),
    ("balance_left", "Balance (Left)", "Stand on left leg (lift right foot)"),
    ("balance_right", "Balance (Right)", "Stand on right leg (lift left foot)"),
    ("star_pose", "Star Pose", "Hands up and feet wide"),
    ("warrior", "Warrior", "Wide stance + arms out"),
    ("hands_behind_head", "Hands Behind Head", "Put hands near your ears"),
    ("punch_left", "Punch Left", "Extend left arm forward"),
    ("punch_right", "Punch Right", "Extend right arm forward"),
    ("kick_left", "Kick Left", "Lift left foot up (kick)"),
    ("kick_right", "Kick Right", "Lift right foot up (kick)"),
    ("lean_left", "Lean Left", "Lean body to the left"),
    ("lean_right", "Lean Right", "Lean body to the right"),
    ("elf_hop", "Elf Hop (Bend Knees)", "Bend knees like you're about to jump"),
    ("salute", "Salute", "Right hand salute near forehead"),
    ("reindeer_jump", "Reindeer Jump", "Both hands above head like antlers"),
    ("snowman_stand", "Snowman Stand", "Arms straight down, stand stiff"),
    ("gift_box_squat", "Gift Box Squat", "Squat down with hands together"),
    ("christmas_tree", "Christmas Tree", "Hands above head forming triangle"),
    ("snowball_throw", "Snowball Throw", "Right hand behind head like throwing"),
    ("grinch", "Grinch Pose", "Arms crossed over chest"),
    ("angel_wings", "Angel Wings", "Arms out at 45 degrees up"),
    ("candy_cane", "Candy Cane", "One arm straight up, lean sideways"),
    ("ho_ho_ho", "Ho Ho Ho", "Both hands on belly"),
    ("sleigh_ride", "Sleigh Ride", "Lean back, hands forward like holding reins"),
    ("elf_dance", "Elf Dance", "One knee up, hands on hips"),
    ("star_on_top", "Star on Top", "Jump position - arms and legs wide"),
    ("present_surprise", "Present Surprise", "Hands near face in surprise"),
    ("jingle_bell_rock", "Jingle Bell Rock", "One hand up, one hand down"),
    ("frosty_wave", "Frosty Wave", "Wave with right hand high"),
    ("mistletoe_kiss", "Mistletoe Kiss", "Blow a kiss - hand near lips"),
    ("nutcracker_march", "Nutcracker March", "Stand tall, one knee lifted high"),
    ("chimney_climb", "Chimney Climb", "Both arms reaching up high"),
    ("bag_carry", "Bag Carry", "One hand on shoulder carrying a heavy bag"),
)


def _build_registry() -> Dict[str, Challenge]:
    out: Dict[str, Challenge] = {}
    for cid, display, description in _DEFS:
        fn = VALIDATORS.get(cid)
        if fn is None:
            raise UnknownChallengeError(cid)
        out[cid] = Challenge(id=cid, display_name=display, description=description, validate=fn)
    missing = set(VALIDATORS) - set(out)
    if missing:
        raise ValueError(f"Validators without a challenge definition: {sorted(missing)}")
    return out


CHALLENGES: Dict[str, Challenge] = _build_registry()


# Fixed playlists. "classic" is the ten-pose flow shown at the kiosk.
ROUTINES: Dict[str, List[str]] = {
    "classic": [
        "t_pose",
        "hands_up",
        "arms_wide",
        "hands_on_hips",
        "squat",
        "star_pose",
        "warrior",
        "clap",
        "balance_left",
        "high_knee_left",
    ],
    "festive": [
        "antlers",
        "reindeer_jump",
        "snowman_stand",
        "christmas_tree",
        "candy_cane",
        "ho_ho_ho",
        "star_on_top",
    ],
}

DEFAULT_ROUND_COUNT = 3


def get_challenge(challenge_id: str) -> Challenge:
    try:
        return CHALLENGES[challenge_id]
    except KeyError:
        raise UnknownChallengeError(challenge_id) from None


def resolve_challenges(ids: Sequence[str]) -> List[Challenge]:
    return [get_challenge(cid) for cid in ids]


def select_challenges(
    ids: Optional[Sequence[str]] = None,
    routine: Optional[str] = None,
    count: int = DEFAULT_ROUND_COUNT,
    rng: Optional[random.Random] = None,
) -> List[Challenge]:
    """Pick the ordered challenge list for one session.

    An explicit id list wins, then a named routine; otherwise ``count``
    challenges are sampled without replacement.
    """
    if ids:
        return resolve_challenges(ids)
    if routine:
        if routine not in ROUTINES:
            raise KeyError(f"Unknown routine: {routine}")
        return resolve_challenges(ROUTINES[routine])
    pool = list(CHALLENGES.values())
    n = max(1, min(int(count), len(pool)))
    return (rng or random.Random()).sample(pool, n)
