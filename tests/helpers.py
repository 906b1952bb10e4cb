"""Synthetic hand poses for tests (y-up, default thresholds)."""

from gesture_tuner.calibration import CalibrationSample
from gesture_tuner.gestures import GestureKind
from gesture_tuner.landmarks import JointName as J, LandmarkFrame


def open_palm(confidence=0.9, dx=0.0):
    points = {
        J.WRIST: (0.5, 0.3),
        J.THUMB_IP: (0.4, 0.4),
        J.THUMB_TIP: (0.35, 0.45),
        J.INDEX_MCP: (0.44, 0.45),
        J.INDEX_DIP: (0.425, 0.56),
        J.INDEX_TIP: (0.42, 0.6),
        J.MIDDLE_MCP: (0.5, 0.46),
        J.MIDDLE_TIP: (0.5, 0.62),
        J.RING_MCP: (0.56, 0.45),
        J.RING_TIP: (0.58, 0.6),
        J.LITTLE_MCP: (0.62, 0.42),
        J.LITTLE_TIP: (0.65, 0.5),
    }
    return LandmarkFrame.from_points(
        {k: (x + dx, y) for k, (x, y) in points.items()}, confidence
    )


def pinch(confidence=0.9, gap=0.02):
    """Thumb and index tips `gap` apart along both axes."""
    return LandmarkFrame.from_points({
        J.WRIST: (0.5, 0.3),
        J.THUMB_IP: (0.40, 0.45),
        J.THUMB_TIP: (0.45, 0.5),
        J.INDEX_MCP: (0.48, 0.4),
        J.INDEX_DIP: (0.45 + gap, 0.47),
        J.INDEX_TIP: (0.45 + gap, 0.5 + gap),
        J.MIDDLE_MCP: (0.52, 0.4),
        J.MIDDLE_TIP: (0.52, 0.32),
        J.RING_MCP: (0.55, 0.39),
        J.RING_TIP: (0.55, 0.31),
        J.LITTLE_MCP: (0.58, 0.37),
        J.LITTLE_TIP: (0.58, 0.31),
    }, confidence)


def pinch_at_distance(distance, confidence=0.9):
    """Pinch whose thumb-index tip distance is exactly `distance` (horizontal)."""
    return LandmarkFrame.from_points({
        J.WRIST: (0.5, 0.3),
        J.THUMB_IP: (0.40, 0.45),
        J.THUMB_TIP: (0.45, 0.5),
        J.INDEX_MCP: (0.48, 0.4),
        J.INDEX_DIP: (0.45 + distance, 0.45),
        J.INDEX_TIP: (0.45 + distance, 0.5),
        J.MIDDLE_MCP: (0.52, 0.4),
        J.MIDDLE_TIP: (0.52, 0.32),
        J.RING_MCP: (0.55, 0.39),
        J.RING_TIP: (0.55, 0.31),
        J.LITTLE_MCP: (0.58, 0.37),
        J.LITTLE_TIP: (0.58, 0.31),
    }, confidence)


def _thumbs(thumb_ip_y, thumb_tip_y, confidence):
    return LandmarkFrame.from_points({
        J.WRIST: (0.5, 0.3),
        J.THUMB_IP: (0.45, thumb_ip_y),
        J.THUMB_TIP: (0.45, thumb_tip_y),
        J.INDEX_MCP: (0.5, 0.45),
        J.INDEX_TIP: (0.54, 0.43),
        J.MIDDLE_MCP: (0.5, 0.42),
        J.MIDDLE_TIP: (0.54, 0.40),
        J.RING_MCP: (0.5, 0.39),
        J.RING_TIP: (0.54, 0.37),
        J.LITTLE_MCP: (0.5, 0.36),
        J.LITTLE_TIP: (0.54, 0.34),
    }, confidence)


def thumbs_up(confidence=0.9):
    return _thumbs(0.5, 0.6, confidence)


def thumbs_down(confidence=0.9):
    return _thumbs(0.35, 0.25, confidence)


def wrist_only(x, y=0.5, confidence=0.9):
    return LandmarkFrame.from_points({J.WRIST: (x, y)}, confidence)


def swipe_frames(start=0.10, end=0.35, drift=0.0, count=6, duration=0.5, t0=0.0):
    """(frame, timestamp) pairs moving the wrist from `start` to `end`."""
    frames = []
    for i in range(count):
        f = i / (count - 1)
        x = start + (end - start) * f
        frames.append((wrist_only(x, 0.5 + drift * f), t0 + duration * f))
    return frames


def full_hand_swipe(x, confidence=0.9):
    """Open-palm-shaped hand positioned at wrist x, for swipe calibration samples."""
    return open_palm(confidence, dx=x - 0.5)


def sample(gesture, frame, timestamp=0.0, confidence=None):
    return CalibrationSample(
        gesture=gesture,
        timestamp=timestamp,
        frame=frame,
        confidence=frame.confidence if confidence is None else confidence,
    )


POSES = {
    GestureKind.OPEN_PALM: open_palm,
    GestureKind.THUMBS_UP: thumbs_up,
    GestureKind.THUMBS_DOWN: thumbs_down,
    GestureKind.PINCH: pinch,
}
