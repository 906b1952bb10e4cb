"""Tests for per-frame geometric classification."""

import pytest

from gesture_tuner.classifier import GestureClassifier
from gesture_tuner.errors import InvalidThresholds
from gesture_tuner.gestures import GestureKind
from gesture_tuner.landmarks import JointName as J, JointPoint, LandmarkFrame
from gesture_tuner.thresholds import ThresholdProfile

from helpers import (
    open_palm,
    pinch,
    swipe_frames,
    thumbs_down,
    thumbs_up,
    wrist_only,
)


def run_swipe(classifier, frames):
    result = None
    for frame, t in frames:
        result = classifier.classify(frame, t)
    return result


class TestStaticPoses:
    def test_open_palm(self):
        assert GestureClassifier().classify(open_palm(), 0.0) is GestureKind.OPEN_PALM

    def test_pinch(self):
        assert GestureClassifier().classify(pinch(), 0.0) is GestureKind.PINCH

    def test_thumbs_up(self):
        assert GestureClassifier().classify(thumbs_up(), 0.0) is GestureKind.THUMBS_UP

    def test_thumbs_down(self):
        assert GestureClassifier().classify(thumbs_down(), 0.0) is GestureKind.THUMBS_DOWN

    def test_empty_frame(self):
        assert GestureClassifier().classify(LandmarkFrame(), 0.0) is None

    def test_wrist_only_is_nothing(self):
        assert GestureClassifier().classify(wrist_only(0.5), 0.0) is None


class TestOpenPalm:
    def test_low_confidence_tip_rejects(self):
        frame = open_palm()
        joints = dict(frame.joints)
        tip = joints[J.INDEX_TIP]
        joints[J.INDEX_TIP] = JointPoint(tip.x, tip.y, 0.3)
        assert not GestureClassifier().detect_open_palm(LandmarkFrame(joints, 0.9))

    def test_confidence_equal_to_threshold_rejects(self):
        assert not GestureClassifier().detect_open_palm(open_palm(confidence=0.5))

    def test_missing_tip_rejects(self):
        joints = dict(open_palm().joints)
        del joints[J.LITTLE_TIP]
        assert not GestureClassifier().detect_open_palm(LandmarkFrame(joints, 0.9))

    def test_fingers_together_rejects(self):
        profile = ThresholdProfile.defaults().replace(palm_finger_spread_min_index=0.1)
        assert not GestureClassifier(profile).detect_open_palm(open_palm())

    def test_horizontal_motion_rejects(self):
        c = GestureClassifier()
        # Wrist drifts 0.06 over three frames: too slow for a swipe, too fast for a palm
        c.classify(open_palm(dx=0.0), 0.0)
        c.classify(open_palm(dx=0.03), 0.05)
        assert c.classify(open_palm(dx=0.06), 0.1) is None


class TestPinch:
    def test_tips_too_far(self):
        assert not GestureClassifier().detect_pinch(pinch(gap=0.05))

    def test_missing_thumb_ip(self):
        joints = dict(pinch().joints)
        del joints[J.THUMB_IP]
        assert not GestureClassifier().detect_pinch(LandmarkFrame(joints, 0.9))

    def test_all_fingers_extended_is_not_pinch(self):
        profile = ThresholdProfile.defaults().replace(pinch_other_fingers_offset=0.01)
        assert not GestureClassifier(profile).detect_pinch(pinch())


class TestThumbs:
    def test_short_thumb_rejects(self):
        profile = ThresholdProfile.defaults().replace(thumb_extension_distance=0.15)
        assert GestureClassifier(profile).detect_thumbs(thumbs_up()) is None

    def test_ambiguous_vertical_delta(self):
        profile = ThresholdProfile.defaults().replace(thumb_vertical_delta=0.2)
        assert GestureClassifier(profile).detect_thumbs(thumbs_up()) is None

    def test_extended_fingers_reject(self):
        # An open palm has tips above MCPs
        assert GestureClassifier().detect_thumbs(open_palm()) is None


class TestSwipe:
    def test_swipe_right(self):
        assert run_swipe(GestureClassifier(), swipe_frames()) is GestureKind.SWIPE_RIGHT

    def test_swipe_left(self):
        frames = swipe_frames(start=0.35, end=0.10)
        assert run_swipe(GestureClassifier(), frames) is GestureKind.SWIPE_LEFT

    def test_small_drift_still_swipes(self):
        frames = swipe_frames(drift=0.05)
        assert run_swipe(GestureClassifier(), frames) is GestureKind.SWIPE_RIGHT

    def test_vertical_drift_rejects(self):
        frames = swipe_frames(drift=0.15)
        assert run_swipe(GestureClassifier(), frames) is None

    def test_needs_min_frames(self):
        c = GestureClassifier()
        results = [c.classify(f, t) for f, t in swipe_frames()]
        assert results[:5] == [None] * 5

    def test_too_short_distance(self):
        frames = swipe_frames(start=0.10, end=0.25)
        assert run_swipe(GestureClassifier(), frames) is None

    def test_too_slow_swipe_falls_out_of_window(self):
        frames = swipe_frames(duration=1.5)
        assert run_swipe(GestureClassifier(), frames) is None

    def test_trajectory_records_wrist(self):
        c = GestureClassifier()
        run_swipe(c, swipe_frames())
        assert len(c.trajectory) == 6


class TestProfile:
    def test_apply_profile_updates_window(self):
        c = GestureClassifier()
        c.apply_profile(ThresholdProfile.defaults().replace(swipe_time_window=1.2))
        assert c.trajectory.window_seconds == 1.2

    def test_invalid_profile_rejected(self):
        c = GestureClassifier()
        with pytest.raises(InvalidThresholds):
            c.apply_profile(ThresholdProfile.defaults().replace(pinch_distance=1.0))
        assert c.profile.pinch_distance == 0.05

    def test_invalid_profile_rejected_at_construction(self):
        with pytest.raises(InvalidThresholds):
            GestureClassifier(ThresholdProfile.defaults().replace(pinch_distance=0.9))
