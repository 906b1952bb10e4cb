"""Hand detection and landmark extraction using MediaPipe."""

from __future__ import annotations

from typing import Optional

import numpy as np

from gesture_tuner.landmarks import JointName, JointPoint, LandmarkFrame

try:
    import mediapipe as mp
except ImportError:
    mp = None

# MediaPipe reports the 21 landmarks in JointName declaration order
_JOINT_ORDER = tuple(JointName)


def landmarks_to_frame(points: np.ndarray, confidence: float) -> LandmarkFrame:
    """Convert a (21, 2+) array of image-space (y-down) landmarks to a y-up frame."""
    joints = {
        joint: JointPoint(float(x), 1.0 - float(y), confidence)
        for joint, (x, y) in zip(_JOINT_ORDER, points[:, :2])
    }
    return LandmarkFrame(joints=joints, confidence=confidence)


class HandDetector:
    """Extracts a single hand's 21 landmarks per frame using MediaPipe Hands.

    The y axis is flipped so fingertips above the wrist have larger y, and
    the handedness score is used as both the frame and joint confidence
    (MediaPipe does not report per-joint confidence).
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.7,
        min_tracking_confidence: float = 0.5,
        static_image_mode: bool = False,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install gesture-tuner[camera]"
            )

        self._hands = mp.solutions.hands.Hands(
            static_image_mode=static_image_mode,
            max_num_hands=1,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame_rgb: np.ndarray) -> Optional[LandmarkFrame]:
        """Detect a hand in an RGB image (H, W, 3), uint8.

        Returns:
            A LandmarkFrame, or None if no hand was found.
        """
        results = self._hands.process(frame_rgb)

        if not results.multi_hand_landmarks:
            return None

        hand_landmarks = results.multi_hand_landmarks[0]
        confidence = 1.0
        if results.multi_handedness:
            confidence = float(results.multi_handedness[0].classification[0].score)

        points = np.array(
            [[lm.x, lm.y] for lm in hand_landmarks.landmark], dtype=np.float32
        )
        return landmarks_to_frame(points, confidence)

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
