"""Frame routing: landmark frames in, gesture events or calibration samples out."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from gesture_tuner.calibration import CalibrationSample
from gesture_tuner.classifier import GestureClassifier
from gesture_tuner.gestures import GestureEvent, GestureKind
from gesture_tuner.landmarks import LandmarkFrame
from gesture_tuner.observers import ObserverHub
from gesture_tuner.temporal import TemporalConfirmation
from gesture_tuner.thresholds import ThresholdProfile

logger = logging.getLogger("gesture_tuner.pipeline")

SampleSink = Callable[[CalibrationSample], object]


@dataclass
class PipelineStats:
    """Runtime counters."""
    fps: float
    avg_latency_ms: float
    total_frames: int
    hand_lost_frames: int
    total_gestures: int
    samples_captured: int


class GesturePipeline:
    """Classifier + temporal confirmation behind a single calibration-mode flag.

    In recognition mode each frame goes through the classifier and confirmed
    gestures are returned and dispatched to observers and callbacks. In
    calibration mode a present hand becomes a CalibrationSample for the
    target gesture, handed to the calibration sink; no gestures are emitted.

    All methods mutate per-stream state and must be called from one
    serialized context (see FrameWorker).
    """

    def __init__(
        self,
        profile: Optional[ThresholdProfile] = None,
        observers: Optional[ObserverHub] = None,
        calibration_sink: Optional[SampleSink] = None,
    ):
        self.classifier = GestureClassifier(profile)
        self.temporal = TemporalConfirmation(self.classifier)
        self.observers = observers or ObserverHub()
        self.calibration_sink = calibration_sink

        self._calibration_mode = False
        self._target: Optional[GestureKind] = None
        self._callbacks: list[Callable[[GestureEvent], None]] = []

        self._frame_times: deque = deque(maxlen=60)
        self._total_frames = 0
        self._hand_lost_frames = 0
        self._total_gestures = 0
        self._samples_captured = 0

    def on_gesture(self, callback: Callable[[GestureEvent], None]):
        """Register a callback for gesture events."""
        self._callbacks.append(callback)

    @property
    def profile(self) -> ThresholdProfile:
        return self.classifier.profile

    @property
    def calibration_mode(self) -> bool:
        return self._calibration_mode

    @property
    def calibration_target(self) -> Optional[GestureKind]:
        return self._target

    def process(
        self, frame: Optional[LandmarkFrame], now: Optional[float] = None
    ) -> Optional[GestureEvent]:
        """Handle one frame (None = no hand). Returns a confirmed gesture, if any."""
        t_start = time.monotonic()
        if now is None:
            now = t_start
        self._total_frames += 1
        if frame is None:
            self._hand_lost_frames += 1

        try:
            if self._calibration_mode:
                self._capture(frame, now)
                return None
            return self._recognize(frame, now)
        finally:
            self._frame_times.append(time.monotonic() - t_start)

    def _recognize(
        self, frame: Optional[LandmarkFrame], now: float
    ) -> Optional[GestureEvent]:
        event = self.temporal.process(frame, now)
        if event is None:
            return None

        self._total_gestures += 1
        self.observers.dispatch("gesture", event)
        for cb in self._callbacks:
            try:
                cb(event)
            except Exception as e:
                logger.error("Gesture callback error: %s", e)
        return event

    def _capture(self, frame: Optional[LandmarkFrame], now: float):
        if frame is None:
            self.temporal.reset()
            return
        if self._target is None:
            return

        sample = CalibrationSample(
            gesture=self._target,
            timestamp=now,
            frame=frame,
            confidence=frame.confidence,
        )
        self._samples_captured += 1
        self.observers.dispatch("sample", sample)
        if self.calibration_sink is not None:
            self.calibration_sink(sample)

    def set_calibration_mode(self, enabled: bool, target: Optional[GestureKind] = None):
        """Switch between recognition and sample capture.

        Temporal state is cleared so nothing carries across the switch.
        """
        self._calibration_mode = enabled
        self._target = target if enabled else None
        self.temporal.reset()
        logger.info(
            "Calibration mode %s%s",
            "on" if enabled else "off",
            f" ({target.value})" if enabled and target else "",
        )

    def apply_profile(self, profile: ThresholdProfile):
        """Switch thresholds. Raises InvalidThresholds and keeps the old ones if out of range."""
        self.classifier.apply_profile(profile)
        self.temporal.reset()
        logger.info("Applied threshold profile")

    @property
    def stats(self) -> PipelineStats:
        if self._frame_times:
            avg_latency = sum(self._frame_times) / len(self._frame_times)
            fps = 1.0 / avg_latency if avg_latency > 0 else 0.0
        else:
            avg_latency = 0.0
            fps = 0.0

        return PipelineStats(
            fps=fps,
            avg_latency_ms=avg_latency * 1000,
            total_frames=self._total_frames,
            hand_lost_frames=self._hand_lost_frames,
            total_gestures=self._total_gestures,
            samples_captured=self._samples_captured,
        )

    def reset(self):
        """Clear temporal state, trajectory and counters."""
        self.temporal.reset()
        self._frame_times.clear()
        self._total_frames = 0
        self._hand_lost_frames = 0
        self._total_gestures = 0
        self._samples_captured = 0
