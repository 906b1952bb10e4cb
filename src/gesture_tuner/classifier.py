"""Per-frame geometric gesture classification.

Each frame yields at most one hypothesis. Predicates run in a fixed order
and the first match wins:

    swipe -> open palm -> pinch -> thumbs up/down

Swipe runs first because a moving open hand also looks like an open palm;
open palm in turn rejects frames whose recent wrist motion is horizontal.
"""

from __future__ import annotations

import logging
from typing import Optional

from gesture_tuner.gestures import GestureKind
from gesture_tuner.landmarks import (
    FINGER_MCPS,
    FINGERTIPS,
    JointName,
    LandmarkFrame,
    distance,
)
from gesture_tuner.thresholds import ThresholdProfile
from gesture_tuner.trajectory import TrajectoryHistory

logger = logging.getLogger("gesture_tuner.classifier")

# Trajectory points inspected when ruling out a palm that is mid-swipe
PALM_MOTION_SAMPLES = 3


class GestureClassifier:
    """Classifies hand gestures from a single LandmarkFrame.

    The only state carried between frames is the wrist trajectory, which is
    appended to as a side effect of swipe detection. Missing or
    low-confidence joints simply mean "no hypothesis"; nothing here raises.
    """

    def __init__(
        self,
        profile: Optional[ThresholdProfile] = None,
        trajectory: Optional[TrajectoryHistory] = None,
    ):
        self._profile = (
            profile.validate() if profile is not None else ThresholdProfile.defaults()
        )
        self.trajectory = trajectory or TrajectoryHistory()
        self.trajectory.window_seconds = self._profile.swipe_time_window

    @property
    def profile(self) -> ThresholdProfile:
        return self._profile

    def apply_profile(self, profile: ThresholdProfile):
        """Swap in a new profile. Raises InvalidThresholds if out of range."""
        profile.validate()
        self._profile = profile
        self.trajectory.window_seconds = profile.swipe_time_window

    def classify(self, frame: LandmarkFrame, now: float) -> Optional[GestureKind]:
        """Return the gesture hypothesis for this frame, or None."""
        swipe = self.detect_swipe(frame, now)
        if swipe is not None:
            return swipe

        if self.detect_open_palm(frame):
            return GestureKind.OPEN_PALM

        if self.detect_pinch(frame):
            return GestureKind.PINCH

        return self.detect_thumbs(frame)

    # --- Swipe ---

    def detect_swipe(self, frame: LandmarkFrame, now: float) -> Optional[GestureKind]:
        p = self._profile
        wrist = frame.confident(JointName.WRIST, p.gesture_confidence_threshold)
        if wrist is None:
            return None

        self.trajectory.add(wrist.x, wrist.y, now)

        if len(self.trajectory) < p.swipe_min_frames:
            return None

        dx = self.trajectory.horizontal_displacement()
        dy = self.trajectory.vertical_displacement()

        if dy > p.swipe_vertical_tolerance:
            return None

        if dx > p.swipe_distance_threshold:
            return GestureKind.SWIPE_RIGHT
        if dx < -p.swipe_distance_threshold:
            return GestureKind.SWIPE_LEFT
        return None

    # --- Open palm ---

    def detect_open_palm(self, frame: LandmarkFrame) -> bool:
        p = self._profile
        threshold = p.gesture_confidence_threshold

        wrist = frame.confident(JointName.WRIST, threshold)
        tips = [frame.confident(j, threshold) for j in FINGERTIPS]
        if wrist is None or any(t is None for t in tips):
            return False

        recent = self.trajectory.recent(PALM_MOTION_SAMPLES)
        if len(recent) >= PALM_MOTION_SAMPLES:
            if abs(recent[-1].x - recent[0].x) > p.palm_horizontal_movement_threshold:
                logger.debug("Open palm rejected: hand moving horizontally")
                return False

        all_extended = all(
            t.y > wrist.y + p.palm_finger_extension_offset for t in tips
        )
        if not all_extended:
            return False

        _, index_tip, middle_tip, ring_tip, _ = tips
        return (
            distance(index_tip, middle_tip) > p.palm_finger_spread_min_index
            and distance(middle_tip, ring_tip) > p.palm_finger_spread_min_middle
        )

    # --- Pinch ---

    def detect_pinch(self, frame: LandmarkFrame) -> bool:
        p = self._profile
        threshold = p.gesture_confidence_threshold

        thumb_tip = frame.confident(JointName.THUMB_TIP, threshold)
        index_tip = frame.confident(JointName.INDEX_TIP, threshold)
        if thumb_tip is None or index_tip is None:
            return False

        wrist = frame.get(JointName.WRIST)
        thumb_ip = frame.get(JointName.THUMB_IP)
        index_dip = frame.get(JointName.INDEX_DIP)
        others = [
            frame.get(j)
            for j in (JointName.MIDDLE_TIP, JointName.RING_TIP, JointName.LITTLE_TIP)
        ]
        if wrist is None or thumb_ip is None or index_dip is None or None in others:
            return False

        if distance(thumb_tip, index_tip) >= p.pinch_distance:
            return False

        thumb_extended = distance(thumb_tip, thumb_ip) > p.pinch_finger_extension_min
        index_extended = distance(index_tip, index_dip) > p.pinch_finger_extension_min
        if not (thumb_extended and index_extended):
            return False

        curl_line = wrist.y + p.pinch_other_fingers_offset
        return any(tip.y < curl_line for tip in others)

    # --- Thumbs up / down ---

    def detect_thumbs(self, frame: LandmarkFrame) -> Optional[GestureKind]:
        p = self._profile

        thumb_tip = frame.confident(JointName.THUMB_TIP, p.gesture_confidence_threshold)
        thumb_ip = frame.get(JointName.THUMB_IP)
        if thumb_tip is None or thumb_ip is None:
            return None

        pairs = [(frame.get(tip), frame.get(mcp)) for tip, mcp in FINGER_MCPS]
        if any(tip is None or mcp is None for tip, mcp in pairs):
            return None

        if not all(tip.y < mcp.y for tip, mcp in pairs):
            return None

        if distance(thumb_tip, thumb_ip) <= p.thumb_extension_distance:
            return None

        avg_mcp_y = sum(mcp.y for _, mcp in pairs) / len(pairs)
        delta = thumb_tip.y - avg_mcp_y

        if delta > p.thumb_vertical_delta:
            return GestureKind.THUMBS_UP
        if delta < -p.thumb_vertical_delta:
            return GestureKind.THUMBS_DOWN

        logger.debug("Thumb gesture ambiguous (delta=%.3f)", delta)
        return None
