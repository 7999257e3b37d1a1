from __future__ import annotations

from types import SimpleNamespace
import unittest

from posearena.metrics.keypoints import JOINT_NAMES
from posearena.vision.pose import MEDIAPIPE_INDEX, landmarks_to_pose


def _landmarks(n: int = 33, visibility: float = 0.9):
    return [SimpleNamespace(x=i / 100.0, y=0.5, visibility=visibility) for i in range(n)]


class LandmarkConversionTests(unittest.TestCase):
    def test_maps_all_validator_joints(self) -> None:
        self.assertEqual(set(MEDIAPIPE_INDEX), set(JOINT_NAMES))
        pose = landmarks_to_pose(_landmarks(), width=640, height=480, min_confidence=0.35)
        self.assertEqual(len(pose), len(JOINT_NAMES))
        ls = pose.joints["left_shoulder"]
        self.assertAlmostEqual(ls.x, 0.11 * 640)
        self.assertAlmostEqual(ls.y, 240.0)
        self.assertAlmostEqual(ls.confidence, 0.9)

    def test_mirror_flips_x_only(self) -> None:
        pose = landmarks_to_pose(_landmarks(), width=640, height=480, min_confidence=0.35, mirror=True)
        self.assertAlmostEqual(pose.joints["nose"].x, 640.0)
        self.assertIn("left_wrist", pose.joints)

    def test_visibility_becomes_confidence_floor(self) -> None:
        pose = landmarks_to_pose(_landmarks(visibility=0.2), width=640, height=480, min_confidence=0.35)
        self.assertIsNone(pose.get("nose"))

    def test_short_landmark_list(self) -> None:
        pose = landmarks_to_pose(_landmarks(n=13), width=100, height=100, min_confidence=0.35)
        self.assertIn("right_shoulder", pose.joints)
        self.assertNotIn("left_hip", pose.joints)


if __name__ == "__main__":
    unittest.main()
