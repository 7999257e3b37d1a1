from __future__ import annotations

import threading
from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..config import TrackingSettings
from ..metrics.keypoints import Joint, Pose


# MediaPipe Pose landmark indices for the 17 joints the validators use.
MEDIAPIPE_INDEX: Dict[str, int] = {
    "nose": 0,
    "left_eye": 2,
    "right_eye": 5,
    "left_ear": 7,
    "right_ear": 8,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
}


def landmarks_to_pose(
    landmarks: Sequence[Any],
    width: int,
    height: int,
    min_confidence: float,
    mirror: bool = False,
) -> Pose:
    """Convert normalised MediaPipe landmarks into a pixel-space Pose.

    ``visibility`` becomes the joint confidence. With ``mirror`` the x axis is
    flipped to match a selfie-view display; joint names are kept.
    """
    joints = []
    for name, i in MEDIAPIPE_INDEX.items():
        if i >= len(landmarks):
            continue
        p = landmarks[i]
        x = float(p.x) * width
        if mirror:
            x = width - x
        y = float(p.y) * height
        conf = float(getattr(p, "visibility", 1.0))
        joints.append(Joint(name=name, x=x, y=y, confidence=min(1.0, max(0.0, conf))))
    return Pose.from_joints(joints, min_confidence=min_confidence)


class PoseBackend:
    """Mediapipe-based 2-D pose estimation."""

    def __init__(self, model_complexity: int = 1) -> None:
        # Lazy import so the core works without the live extra installed
        import mediapipe as mp

        if not hasattr(mp, "solutions"):
            raise RuntimeError(
                "Your mediapipe package does not include the Solutions API (mp.solutions.*). "
                "Install a compatible version, e.g.:\n\n"
                "  pip install 'mediapipe<0.10.30'\n"
            )
        self.pose = mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=model_complexity,
            enable_segmentation=False,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5,
        )

    def process_bgr(self, frame_bgr: np.ndarray, min_confidence: float, mirror: bool = False) -> Optional[Pose]:
        frame_rgb = np.ascontiguousarray(frame_bgr[:, :, ::-1])
        res = self.pose.process(frame_rgb)
        if res.pose_landmarks is None:
            return None
        h, w = frame_bgr.shape[:2]
        return landmarks_to_pose(res.pose_landmarks.landmark, w, h, min_confidence, mirror=mirror)

    def close(self) -> None:
        self.pose.close()


class CameraTracker:
    """Webcam + MediaPipe tracker used by the live game.

    ``read`` runs on the sampler thread; ``capture_jpeg`` may be called from
    another thread and encodes the most recent frame.
    """

    def __init__(
        self,
        camera: int | str = 0,
        tracking: Optional[TrackingSettings] = None,
        mirror: bool = True,
        width: int = 1280,
        height: int = 720,
    ) -> None:
        import cv2

        self.cv2 = cv2
        self.tracking = tracking or TrackingSettings()
        self.mirror = mirror
        self.cap = cv2.VideoCapture(camera)
        if not self.cap.isOpened():
            raise RuntimeError(f"Could not open camera: {camera}")
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self.backend = PoseBackend()
        self._lock = threading.Lock()
        self._last_frame: Optional[np.ndarray] = None

    def read(self) -> Optional[Pose]:
        ok, frame = self.cap.read()
        if not ok or frame is None:
            return None
        with self._lock:
            self._last_frame = frame
        return self.backend.process_bgr(frame, self.tracking.min_joint_confidence, mirror=self.mirror)

    def capture_jpeg(self, quality: int = 90) -> Optional[bytes]:
        with self._lock:
            frame = None if self._last_frame is None else self._last_frame.copy()
        if frame is None:
            return None
        if self.mirror:
            frame = self.cv2.flip(frame, 1)
        ok, buf = self.cv2.imencode(".jpg", frame, [int(self.cv2.IMWRITE_JPEG_QUALITY), int(quality)])
        if not ok:
            return None
        return buf.tobytes()

    def close(self) -> None:
        try:
            self.cap.release()
        finally:
            self.backend.close()
