"""Statistical derivation of a ThresholdProfile from calibration sessions.

Starts from the default profile and, for every gesture with enough accepted
samples, overwrites that gesture's sub-thresholds with values derived from
the sample geometry. Every derived value is clamped into its valid range.

Gestures below the sample minimum keep their defaults; they are reported
in `CalibrationResult.insufficient` but the resulting profile does not mark
which fields were calibrated.

The derivation is pure and deterministic: sessions are visited in
GestureKind order and no clock is read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from gesture_tuner.calibration import CalibrationSample, CalibrationSession, SessionSummary
from gesture_tuner.errors import InsufficientSamples
from gesture_tuner.gestures import GestureKind
from gesture_tuner.landmarks import FINGERTIPS, JointName, distance
from gesture_tuner.thresholds import ThresholdBuilder, ThresholdProfile

logger = logging.getLogger("gesture_tuner.engine")

MIN_SAMPLES_PER_GESTURE = 5

_MCP_JOINTS = (
    JointName.INDEX_MCP,
    JointName.MIDDLE_MCP,
    JointName.RING_MCP,
    JointName.LITTLE_MCP,
)


@dataclass
class CalibrationResult:
    """Outcome of a calibration run."""
    profile: ThresholdProfile
    calibrated: list[GestureKind] = field(default_factory=list)
    insufficient: list[InsufficientSamples] = field(default_factory=list)
    summaries: dict[GestureKind, SessionSummary] = field(default_factory=dict)

    @property
    def fully_calibrated(self) -> bool:
        return not self.insufficient


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values))


def _std(values: Sequence[float]) -> float:
    """Population standard deviation."""
    return float(np.std(values))


class CalibrationEngine:
    """Computes thresholds from per-gesture calibration sessions."""

    def __init__(
        self,
        base: ThresholdProfile | None = None,
        min_samples: int = MIN_SAMPLES_PER_GESTURE,
    ):
        self.base = base or ThresholdProfile.defaults()
        self.min_samples = min_samples

    def compute_thresholds(
        self, sessions: Mapping[GestureKind, CalibrationSession]
    ) -> ThresholdProfile:
        """Derive a new profile. Callers should `validate()` it before use."""
        return self.calibrate(sessions).profile

    def calibrate(
        self, sessions: Mapping[GestureKind, CalibrationSession]
    ) -> CalibrationResult:
        builder = ThresholdBuilder(self.base)
        result = CalibrationResult(profile=self.base)

        for gesture in GestureKind:
            session = sessions.get(gesture)
            if session is None:
                continue

            samples = session.samples
            result.summaries[gesture] = session.summary()

            if len(samples) < self.min_samples:
                logger.warning(
                    "Insufficient samples for %s (%d/%d), using defaults",
                    gesture.display_name, len(samples), self.min_samples,
                )
                result.insufficient.append(
                    InsufficientSamples(gesture, len(samples), self.min_samples)
                )
                continue

            if gesture is GestureKind.OPEN_PALM:
                self._calibrate_open_palm(samples, builder)
            elif gesture.is_thumbs:
                self._calibrate_thumbs(samples, builder)
            elif gesture.is_swipe:
                self._calibrate_swipe(samples, builder)
            elif gesture is GestureKind.PINCH:
                self._calibrate_pinch(samples, builder)

            result.calibrated.append(gesture)

        self._calibrate_global(sessions, builder)

        result.profile = builder.build()
        logger.info(
            "Computed thresholds: %d gesture(s) calibrated, %d using defaults",
            len(result.calibrated), len(result.insufficient),
        )
        return result

    # --- Per-gesture derivations ---

    def _calibrate_open_palm(
        self, samples: list[CalibrationSample], builder: ThresholdBuilder
    ):
        extensions: list[float] = []
        index_middle: list[float] = []
        middle_ring: list[float] = []

        for sample in samples:
            wrist = sample.point(JointName.WRIST)
            index_tip = sample.point(JointName.INDEX_TIP)
            middle_tip = sample.point(JointName.MIDDLE_TIP)
            ring_tip = sample.point(JointName.RING_TIP)
            if wrist is None or index_tip is None or middle_tip is None or ring_tip is None:
                continue

            heights = [
                tip.y - wrist.y
                for tip in (sample.point(j) for j in FINGERTIPS)
                if tip is not None
            ]
            if heights:
                extensions.append(min(heights))

            index_middle.append(distance(index_tip, middle_tip))
            middle_ring.append(distance(middle_tip, ring_tip))

        if extensions:
            offset = _mean(extensions) - 0.5 * _std(extensions)
            builder.set_clamped("palm_finger_extension_offset", offset)
        if index_middle:
            builder.set_clamped("palm_finger_spread_min_index", 0.7 * _mean(index_middle))
        if middle_ring:
            builder.set_clamped("palm_finger_spread_min_middle", 0.7 * _mean(middle_ring))

    def _calibrate_thumbs(
        self, samples: list[CalibrationSample], builder: ThresholdBuilder
    ):
        deltas: list[float] = []
        extensions: list[float] = []

        for sample in samples:
            thumb_tip = sample.point(JointName.THUMB_TIP)
            thumb_ip = sample.point(JointName.THUMB_IP)
            mcps = [sample.point(j) for j in _MCP_JOINTS]
            if thumb_tip is None or thumb_ip is None or None in mcps:
                continue

            avg_mcp_y = sum(m.y for m in mcps) / len(mcps)
            deltas.append(abs(thumb_tip.y - avg_mcp_y))
            extensions.append(distance(thumb_tip, thumb_ip))

        if deltas:
            delta = _mean(deltas) - 0.3 * _std(deltas)
            builder.set_clamped("thumb_vertical_delta", delta)
        if extensions:
            builder.set_clamped("thumb_extension_distance", 0.8 * _mean(extensions))

    def _calibrate_swipe(
        self, samples: list[CalibrationSample], builder: ThresholdBuilder
    ):
        ordered = sorted(samples, key=lambda s: s.timestamp)
        if len(ordered) < 3:
            return

        horizontal: list[float] = []
        vertical: list[float] = []
        durations: list[float] = []

        # Sample i is paired with i + 2, stepping by 3
        for i in range(0, len(ordered) - 2, 3):
            start, end = ordered[i], ordered[i + 2]
            first = start.point(JointName.WRIST)
            last = end.point(JointName.WRIST)
            if first is None or last is None:
                continue

            horizontal.append(abs(last.x - first.x))
            vertical.append(abs(last.y - first.y))
            durations.append(end.timestamp - start.timestamp)

        if horizontal:
            builder.set_clamped("swipe_distance_threshold", 0.7 * _mean(horizontal))
        if durations:
            builder.set_clamped("swipe_time_window", 1.5 * _mean(durations))
        if vertical:
            builder.set_clamped("swipe_vertical_tolerance", 1.2 * max(vertical))

    def _calibrate_pinch(
        self, samples: list[CalibrationSample], builder: ThresholdBuilder
    ):
        pinch: list[float] = []
        thumb_ext: list[float] = []
        index_ext: list[float] = []

        for sample in samples:
            thumb_tip = sample.point(JointName.THUMB_TIP)
            index_tip = sample.point(JointName.INDEX_TIP)
            thumb_ip = sample.point(JointName.THUMB_IP)
            index_dip = sample.point(JointName.INDEX_DIP)
            if thumb_tip is None or index_tip is None or thumb_ip is None or index_dip is None:
                continue

            pinch.append(distance(thumb_tip, index_tip))
            thumb_ext.append(distance(thumb_tip, thumb_ip))
            index_ext.append(distance(index_tip, index_dip))

        if pinch:
            builder.set_clamped("pinch_distance", _mean(pinch) + 0.5 * _std(pinch))
        if thumb_ext and index_ext:
            shortest = min(_mean(thumb_ext), _mean(index_ext))
            builder.set_clamped("pinch_finger_extension_min", 0.8 * shortest)

    def _calibrate_global(
        self,
        sessions: Mapping[GestureKind, CalibrationSession],
        builder: ThresholdBuilder,
    ):
        # Every accepted sample counts here, including gestures below the minimum.
        # Cooldown and hold frames are user preference and stay as they are.
        confidences = [
            s.confidence
            for gesture in GestureKind
            if gesture in sessions
            for s in sessions[gesture].samples
        ]
        if confidences:
            builder.set_clamped("gesture_confidence_threshold", 0.9 * min(confidences))
