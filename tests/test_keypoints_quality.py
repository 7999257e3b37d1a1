from __future__ import annotations

import unittest

from posearena.errors import MissingJointData
from posearena.metrics.keypoints import JOINT_NAMES, Pose
from posearena.metrics.quality import assess_body, is_body_plausible

from pose_fixtures import STANDING, make_pose


class PoseParsingTests(unittest.TestCase):
    def test_from_keypoints_accepts_score_or_confidence(self) -> None:
        pose = Pose.from_keypoints(
            [
                {"name": "nose", "x": 1, "y": 2, "score": 0.9},
                {"name": "left_wrist", "x": 3, "y": 4, "confidence": 0.8},
            ]
        )
        self.assertEqual(len(pose), 2)
        self.assertAlmostEqual(pose.joints["left_wrist"].confidence, 0.8)

    def test_unknown_names_and_bad_coordinates_are_dropped(self) -> None:
        pose = Pose.from_keypoints(
            [
                {"name": "tail", "x": 1, "y": 1, "score": 1},
                {"name": "nose", "x": float("nan"), "y": 1, "score": 1},
                {"name": "left_hip", "x": "abc", "y": 1, "score": 1},
                "garbage",
                {"name": "right_hip", "x": 1, "y": 1, "score": 1},
            ]
        )
        self.assertEqual(list(pose.joints), ["right_hip"])

    def test_confidence_is_clamped(self) -> None:
        pose = Pose.from_keypoints(
            [
                {"name": "nose", "x": 0, "y": 0, "score": 3.0},
                {"name": "left_eye", "x": 0, "y": 0, "score": -1},
            ]
        )
        self.assertEqual(pose.joints["nose"].confidence, 1.0)
        self.assertEqual(pose.joints["left_eye"].confidence, 0.0)

    def test_to_keypoints_inverts_from_keypoints(self) -> None:
        pose = make_pose(STANDING)
        again = Pose.from_keypoints(pose.to_keypoints())
        self.assertEqual(again.joints, pose.joints)

    def test_joint_below_floor_is_unusable(self) -> None:
        pose = make_pose(STANDING, overrides={"nose": 0.34})
        self.assertIsNone(pose.get("nose"))
        self.assertTrue(pose.usable("nose", min_confidence=0.3))
        with self.assertRaises(MissingJointData) as ctx:
            pose.require("left_wrist", "nose")
        self.assertEqual(ctx.exception.joint, "nose")


class BodyQualityTests(unittest.TestCase):
    def test_full_standing_body_is_plausible(self) -> None:
        q = assess_body(make_pose(STANDING))
        self.assertEqual(q.confident_joints, len(JOINT_NAMES))
        self.assertTrue(q.full_body)
        self.assertTrue(q.lighting_ok)
        self.assertTrue(q.plausible)

    def test_needs_ten_confident_joints(self) -> None:
        names = list(STANDING)
        weak = {n: 0.1 for n in names[:8]}
        self.assertFalse(is_body_plausible(make_pose(STANDING, overrides=weak)))
        weak = {n: 0.1 for n in names[:7]}
        self.assertTrue(is_body_plausible(make_pose(STANDING, overrides=weak)))

    def test_confidence_must_exceed_quality_floor(self) -> None:
        self.assertFalse(is_body_plausible(make_pose(STANDING, confidence=0.3)))

    def test_missing_pose(self) -> None:
        q = assess_body(None)
        self.assertFalse(q.plausible)
        self.assertEqual(q.confident_joints, 0)


if __name__ == "__main__":
    unittest.main()
