#!/usr/bin/env python3
"""Play a synthetic session end to end and print the leaderboard.

Nothing is written to disk; the leaderboard lives in memory.
"""
from __future__ import annotations

from datetime import datetime, timezone

from posearena.app import Sample, replay_session
from posearena.config import GameSettings
from posearena.game.session import GameSession
from posearena.leaderboard.board import Leaderboard, TimeWindow
from posearena.metrics.keypoints import Joint, Pose
from posearena.poses.library import resolve_challenges
from posearena.storage.kv import MemoryStore


_BODY = {
    "nose": (300, 100),
    "left_eye": (310, 90),
    "right_eye": (290, 90),
    "left_ear": (320, 95),
    "right_ear": (280, 95),
    "left_shoulder": (350, 150),
    "right_shoulder": (250, 150),
    "left_elbow": (400, 150),
    "right_elbow": (200, 150),
    "left_wrist": (450, 150),
    "right_wrist": (150, 150),
    "left_hip": (335, 300),
    "right_hip": (265, 300),
    "left_knee": (335, 400),
    "right_knee": (265, 400),
    "left_ankle": (335, 500),
    "right_ankle": (265, 500),
}


def _t_pose() -> Pose:
    return Pose.from_joints(Joint(name, float(x), float(y), 0.9) for name, (x, y) in _BODY.items())


def main() -> None:
    settings = GameSettings()
    board = Leaderboard(MemoryStore())
    pose = _t_pose()
    samples = [Sample(t=i * settings.sampling.interval_sec, pose=pose) for i in range(40)]

    for player in ("Ana", "Bo", "ana"):
        session = GameSession(player, resolve_challenges(["t_pose", "arms_wide", "squat"]), settings.round)
        summary = replay_session(session, samples, settings.sampling.deadline_check_interval_sec)
        assert summary is not None
        board.record(summary, now=datetime.now(timezone.utc))
        print(f"{summary.player_name}: {[r.points for r in summary.rounds]} -> {summary.total_score}")

    for r in board.ranked(TimeWindow.ALLTIME):
        print(f"{r.rank}. {r.entry.name} {r.entry.score} pts x{r.entry.attempts}")


if __name__ == "__main__":
    main()
