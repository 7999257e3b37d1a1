from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from pydantic import ValidationError

from posearena.config import DEFAULT_CONFIG_PATH, GameSettings, load_settings
from posearena.errors import UnknownChallengeError


class ConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        s = GameSettings()
        self.assertEqual(s.round.time_limit_sec, 20.0)
        self.assertEqual(s.round.hold_sec, 2.0)
        self.assertEqual(s.round.pass_threshold, 80)
        self.assertAlmostEqual(s.sampling.interval_sec, 0.08)
        self.assertAlmostEqual(s.sampling.deadline_check_interval_sec, 0.2)
        self.assertEqual(s.tracking.min_joint_confidence, 0.35)
        self.assertEqual(s.leaderboard.capacity, 200)
        self.assertEqual(s.session.rounds, 3)

    def test_shipped_config_matches_defaults(self) -> None:
        self.assertTrue(DEFAULT_CONFIG_PATH.exists())
        s = load_settings()
        self.assertEqual(s.round, GameSettings().round)
        self.assertEqual(s.session.accuracy_source, "geometric")

    def test_missing_or_broken_file_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertEqual(load_settings(Path(tmpdir) / "none.yaml"), GameSettings())
            broken = Path(tmpdir) / "broken.yaml"
            broken.write_text("round: [unclosed", encoding="utf-8")
            self.assertEqual(load_settings(broken), GameSettings())

    def test_yaml_and_overrides_merge(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "game.yaml"
            path.write_text(
                "round:\n  time_limit_sec: 30\nsession:\n  challenges: [squat, clap]\n",
                encoding="utf-8",
            )
            s = load_settings(path, overrides={"round": {"hold_sec": 1.5}})
        self.assertEqual(s.round.time_limit_sec, 30)
        self.assertEqual(s.round.hold_sec, 1.5)
        self.assertEqual(s.round.pass_threshold, 80)
        self.assertEqual(s.session.challenges, ["squat", "clap"])

    def test_invalid_values_raise(self) -> None:
        with self.assertRaises(ValidationError):
            GameSettings.model_validate({"round": {"pass_threshold": 120}})
        with self.assertRaises(ValidationError):
            GameSettings.model_validate({"session": {"routine": "disco"}})
        with self.assertRaises(ValidationError):
            GameSettings.model_validate({"tracking": {"quality_joint_confidence": 0.5}})

    def test_unknown_challenge_fails_loudly(self) -> None:
        with self.assertRaises(UnknownChallengeError):
            GameSettings.model_validate({"session": {"challenges": ["t_pose", "moonwalk"]}})

    def test_relative_paths_resolve_under_repo(self) -> None:
        s = GameSettings.model_validate({"leaderboard": {"storage_dir": "data"}})
        self.assertEqual(s.leaderboard.resolved_storage_dir(), DEFAULT_CONFIG_PATH.parent.parent / "data")
        s = GameSettings.model_validate({"logging": {"path": None}})
        self.assertIsNone(s.logging.resolved_path())


if __name__ == "__main__":
    unittest.main()
