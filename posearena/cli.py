from __future__ import annotations

import argparse
import json
from pathlib import Path

from .config import load_settings
from .errors import PoseArenaError
from .leaderboard.board import TimeWindow, leaderboard_stats, rank_entries
from .metrics.keypoints import Pose
from .poses.library import CHALLENGES, ROUTINES, get_challenge


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="posearena",
        description="Pose challenge game: timed webcam pose rounds with a persistent leaderboard.",
    )
    p.add_argument("--config", default=None, help="Path to game.yaml (default: config/game.yaml).")
    p.add_argument("--data-dir", default=None, help="Override leaderboard storage directory.")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_list = sub.add_parser("challenges", help="List challenges and routines")
    p_list.add_argument("--routine", default=None, choices=sorted(ROUTINES), help="Only list one routine.")

    p_score = sub.add_parser("score", help="Score one recorded pose against a challenge")
    p_score.add_argument("--pose", required=True, help="JSON file with a keypoint list")
    p_score.add_argument("--challenge", required=True, help="Challenge id")

    p_replay = sub.add_parser("replay", help="Play a recorded sample stream as a session")
    p_replay.add_argument("--player", required=True)
    p_replay.add_argument("--samples", required=True, help="JSON-lines file of {t, keypoints}")
    p_replay.add_argument("--challenge", action="append", default=None, help="Challenge id (repeatable)")
    p_replay.add_argument("--routine", default=None, choices=sorted(ROUTINES))
    p_replay.add_argument("--no-record", action="store_true", help="Do not write to the leaderboard.")

    p_live = sub.add_parser("live", help="Play a live session with the webcam")
    p_live.add_argument("--player", required=True)
    p_live.add_argument(
        "--camera",
        "--cam-index",
        dest="camera",
        type=str,
        default="0",
        help="Camera index (e.g. 0, 1) or device path (e.g. /dev/video2).",
    )
    p_live.add_argument("--source", choices=["geometric", "oracle"], default=None)
    p_live.add_argument("--challenge", action="append", default=None, help="Challenge id (repeatable)")
    p_live.add_argument("--routine", default=None, choices=sorted(ROUTINES))

    p_lb = sub.add_parser("leaderboard", help="Show the leaderboard")
    p_lb.add_argument("--window", choices=[w.value for w in TimeWindow], default=TimeWindow.ALLTIME.value)
    p_lb.add_argument("--limit", type=int, default=20)

    return p


def _print_summary(summary) -> None:
    print(f"Player: {summary.player_name}")
    for r in summary.rounds:
        print(f"  {r.index + 1}. {r.challenge_id:<20} {r.outcome.value:<9} best={r.best_accuracy:>3} points={r.points}")
    print(f"Total score: {summary.total_score}  (passed {summary.passed_count}, failed {summary.failed_count})")
    print(f"Mean best accuracy: {summary.mean_best_accuracy}%")


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    overrides = {}
    if args.data_dir:
        overrides["leaderboard"] = {"storage_dir": str(Path(args.data_dir).resolve())}
    try:
        settings = load_settings(Path(args.config) if args.config else None, overrides=overrides)
    except (PoseArenaError, KeyError, ValueError) as e:
        print(f"[posearena] Invalid configuration: {e}")
        return 2

    if args.cmd == "challenges":
        ids = ROUTINES[args.routine] if args.routine else list(CHALLENGES)
        for cid in ids:
            c = CHALLENGES[cid]
            print(f"{c.id:<20} {c.display_name:<22} {c.description}")
        if not args.routine:
            print()
            for name, members in ROUTINES.items():
                print(f"routine {name}: {', '.join(members)}")
        return 0

    if args.cmd == "score":
        try:
            challenge = get_challenge(args.challenge)
            data = json.loads(Path(args.pose).read_text(encoding="utf-8"))
        except (PoseArenaError, OSError, ValueError) as e:
            print(f"[posearena] {e}")
            return 2
        items = data.get("keypoints", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            print(f"[posearena] {args.pose}: expected a keypoint list")
            return 2
        pose = Pose.from_keypoints(items, min_confidence=settings.tracking.min_joint_confidence)
        print(f"{challenge.id}: {challenge.validate(pose)}")
        return 0

    if args.cmd == "replay":
        from .app import run_replay

        try:
            summary = run_replay(
                settings,
                args.player,
                Path(args.samples),
                ids=args.challenge,
                routine=args.routine,
                record=not args.no_record,
            )
        except (PoseArenaError, OSError, ValueError) as e:
            print(f"[posearena] {e}")
            return 2
        _print_summary(summary)
        print(json.dumps(summary.to_handoff()))
        return 0

    if args.cmd == "live":
        from .app import run_live

        cam: int | str = int(args.camera) if str(args.camera).isdigit() else str(args.camera)
        try:
            summary = run_live(
                settings,
                args.player,
                camera=cam,
                source_kind=args.source,
                ids=args.challenge,
                routine=args.routine,
            )
        except ModuleNotFoundError as e:
            print(f"[posearena] Missing dependency: {e.name}")
            print("[posearena] Install the live extra: pip install 'posearena[live]'")
            return 1
        except (PoseArenaError, RuntimeError, ValueError) as e:
            print(f"[posearena] {e}")
            return 1
        if summary is None:
            return 1
        _print_summary(summary)
        return 0

    if args.cmd == "leaderboard":
        from .app import make_log, open_leaderboard

        board = open_leaderboard(settings, make_log(settings))
        entries = board.load()
        ranked = rank_entries(entries, TimeWindow(args.window), limit=args.limit)
        if not ranked:
            print("No entries.")
        for r in ranked:
            e = r.entry
            print(f"{r.rank:>3}. {e.name:<24} {e.score:>5} pts  {e.accuracy:>3}%  x{e.attempts}  {e.timestamp}")
        stats = leaderboard_stats(entries)
        print(f"Players: {stats.total_players}  Games: {stats.games_played}  High score: {stats.high_score}")
        return 0

    return 2
